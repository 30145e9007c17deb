"""Exception hierarchy for cac."""

from __future__ import annotations


class AutoCommitError(Exception):
    """Base class for every error raised by cac."""


class ConfigError(AutoCommitError):
    """Configuration could not be loaded or failed validation."""


class GitError(AutoCommitError):
    """A git command failed or the worktree is not a repository."""


class ValidationError(AutoCommitError):
    """A precondition of the commit pipeline does not hold."""


class PushError(AutoCommitError):
    """The push target was rejected before any network push."""


class LLMError(AutoCommitError):
    """Message generation failed (network, protocol or content)."""


class ProviderHTTPError(LLMError):
    """Provider answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}: {body}")
