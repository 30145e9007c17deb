"""Validated push of the commits made by a run."""

from __future__ import annotations

import logging
from typing import Optional

from .exceptions import PushError
from .git import GitRepo

logger = logging.getLogger(__name__)

_HOST_MARKERS = {
    "github": ("github", "GitHub"),
    "gitlab": ("gitlab", "GitLab"),
}


def validate_remote_url(provider: str, remote_url: str) -> None:
    """Reject a remote that does not belong to the declared provider.

    ``generic`` accepts any URL.
    """
    marker = _HOST_MARKERS.get(provider)
    if marker is None:
        return
    needle, label = marker
    if needle not in remote_url.lower():
        raise PushError(f"Remote URL does not look like {label}: {remote_url}")


class PushValidator:
    def __init__(self, git_repo: GitRepo) -> None:
        self.git_repo = git_repo

    def push(self, remote: str, branch: Optional[str], provider: str) -> None:
        """Check the remote URL against ``provider``, then push.

        Nothing is sent when validation fails. Any git failure raises.
        """
        remote_url = self.git_repo.remote_url(remote)
        validate_remote_url(provider, remote_url)
        target = branch or self.git_repo.current_branch()
        logger.debug("pushing %s to %s (%s)", target, remote, remote_url)
        self.git_repo.push(remote, target)
