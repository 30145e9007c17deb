"""Git operations for cac."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .exceptions import GitError

logger = logging.getLogger(__name__)

PATCH_LIMIT = 12000


@dataclass(frozen=True)
class ChangedFile:
    """One entry of ``git status --porcelain``."""

    path: str
    index_status: str = " "
    worktree_status: str = " "
    original_path: Optional[str] = None

    @property
    def primary_status(self) -> str:
        """Index status when set, otherwise the worktree column.

        Untracked entries (``??``) count as additions.
        """
        if self.index_status == "?":
            return "A"
        if self.index_status != " ":
            return self.index_status
        return self.worktree_status


@dataclass(frozen=True)
class CommitSummary:
    """Staged diff material handed to the message generator."""

    name_status: str = ""
    diff_stat: str = ""
    patch: str = ""


def parse_porcelain_z(output: str) -> list[ChangedFile]:
    """Parse ``git status --porcelain -z`` output.

    Renames and copies carry a second NUL-terminated field holding the
    source path.
    """
    files: list[ChangedFile] = []
    offset = 0
    while offset < len(output):
        status = output[offset : offset + 2]
        offset += 3
        end = output.find("\0", offset)
        if end == -1:
            break
        path = output[offset:end]
        offset = end + 1

        index_status, worktree_status = status[0], status[1]
        original_path = None
        if "R" in status or "C" in status:
            end = output.find("\0", offset)
            if end == -1:
                break
            original_path = output[offset:end]
            offset = end + 1
        files.append(
            ChangedFile(
                path=path,
                index_status=index_status,
                worktree_status=worktree_status,
                original_path=original_path,
            )
        )
    return files


class GitRepo:
    """Handles Git repository operations."""

    def __init__(self, repo_path: Optional[str | Path] = None) -> None:
        self.repo_path = Path(repo_path or Path.cwd()).expanduser().resolve(
            strict=False
        )
        if not self._is_git_repo():
            raise GitError(f"Not a git repository: {self.repo_path}")

    def _is_git_repo(self) -> bool:
        try:
            result = subprocess.run(
                ["git", "rev-parse", "--is-inside-work-tree"],
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                check=False,
            )
        except (FileNotFoundError, NotADirectoryError):
            return False
        return result.returncode == 0 and result.stdout.strip() == "true"

    def _run_git_command(self, args: list[str], strip: bool = True) -> str:
        """Run a Git command and return its output."""
        try:
            result = subprocess.run(
                ["git"] + args,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            cmd = " ".join(args)
            stderr = (e.stderr or "").strip() or "unknown error"
            raise GitError(f"Git command failed: git {cmd}\n{stderr}") from e
        except FileNotFoundError as exc:
            raise GitError("Git command not found. Please install Git.") from exc
        return result.stdout.strip() if strip else result.stdout

    def list_changed_files(self) -> list[ChangedFile]:
        """Return every changed path in the worktree, including untracked."""
        output = self._run_git_command(
            ["status", "--porcelain", "-z", "--untracked-files=all"], strip=False
        )
        return parse_porcelain_z(output)

    def stage_path(self, file_path: str) -> None:
        """Stage additions, modifications and deletions under ``file_path``."""
        self._run_git_command(["add", "-A", "--", file_path])

    def has_staged_changes(self) -> bool:
        """Return True when the index differs from HEAD."""
        result = subprocess.run(
            ["git", "diff", "--cached", "--quiet"],
            cwd=self.repo_path,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode not in (0, 1):
            raise GitError(
                "Git command failed: git diff --cached --quiet\n"
                + (result.stderr.strip() or "unknown error")
            )
        return result.returncode == 1

    def commit(self, message: str) -> str:
        """Commit the index and return the new HEAD hash."""
        self._run_git_command(["commit", "-m", message])
        commit_hash = self._run_git_command(["rev-parse", "HEAD"])
        logger.debug("committed %s %s", commit_hash[:12], message)
        return commit_hash

    def get_staged_summary(self, only_path: Optional[str] = None) -> CommitSummary:
        """Name-status, stat and a truncated patch of the staged content."""
        path_args = ["--", only_path] if only_path else []
        name_status = self._run_git_command(
            ["diff", "--cached", "--name-status"] + path_args
        )
        diff_stat = self._run_git_command(["diff", "--cached", "--stat"] + path_args)
        patch = self._run_git_command(["diff", "--cached"] + path_args, strip=False)
        return CommitSummary(
            name_status=name_status,
            diff_stat=diff_stat,
            patch=patch[:PATCH_LIMIT],
        )

    def current_branch(self) -> str:
        return self._run_git_command(["rev-parse", "--abbrev-ref", "HEAD"])

    def remote_url(self, remote: str = "origin") -> str:
        return self._run_git_command(["remote", "get-url", remote])

    def push(self, remote: str = "origin", branch: Optional[str] = None) -> str:
        """Push ``branch`` (default: current branch) to ``remote``."""
        if not branch:
            branch = self.current_branch()
        return self._run_git_command(["push", remote, branch])
