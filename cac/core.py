"""Core auto-commit workflow for cac."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import httpx

from .commit import (
    CommitGenerator,
    GeneratedMessage,
    fallback_per_file_message,
    fallback_single_message,
)
from .config import AutoCommitConfig, get_active_config
from .exceptions import ValidationError
from .filter import filter_changes
from .git import ChangedFile, GitRepo
from .llm import LLMClient, TokenUsage
from .push import PushValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitRecord:
    """One commit made by a run."""

    hash: str
    message: str
    files: tuple[str, ...]


@dataclass(frozen=True)
class RunContext:
    """Who triggered the run (agent host hook or a manual call)."""

    tool: str = "manual"
    worktree: Optional[str] = None
    session_id: Optional[str] = None
    event: Any = None


@dataclass(frozen=True)
class RunResult:
    """Terminal value of a run."""

    worktree: str
    skipped: bool = False
    reason: Optional[str] = None
    committed: tuple[CommitRecord, ...] = ()
    pushed: bool = False
    token_usage: Optional[TokenUsage] = None
    ai_warning: Optional[str] = None


@dataclass
class _RunState:
    commits: list[CommitRecord] = field(default_factory=list)
    usage: Optional[TokenUsage] = None
    warning: Optional[str] = None

    def absorb(self, generated: GeneratedMessage) -> None:
        if generated.usage is not None:
            self.usage = (
                generated.usage if self.usage is None else self.usage + generated.usage
            )
        if generated.warning and self.warning is None:
            self.warning = generated.warning


class AutoCommitWorkflow:
    """Stages, describes and commits the changes left by an agent turn."""

    def __init__(
        self,
        config: Optional[AutoCommitConfig] = None,
        git_repo: Optional[GitRepo] = None,
        llm_client: Optional[LLMClient] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config or get_active_config()
        self.git_repo = git_repo
        self.llm_client = llm_client or LLMClient(
            self._config.ai, http_client=http_client
        )
        self.commit_generator = CommitGenerator(
            self.llm_client,
            self._config.commit.fallback_prefix,
            self._config.commit.max_message_length,
        )

    def _skipped(self, worktree: str, reason: str) -> RunResult:
        logger.debug("run skipped: %s", reason)
        return RunResult(worktree=worktree, skipped=True, reason=reason)

    async def run(
        self,
        context: Optional[RunContext] = None,
        changed_files: Optional[list[ChangedFile]] = None,
    ) -> RunResult:
        """Execute one auto-commit pass.

        ``changed_files`` replaces discovery from ``git status`` when given.
        Git failures and the per-file clean-index precondition raise; AI
        failures only degrade the subject and set ``ai_warning``.
        """
        context = context or RunContext()
        worktree = str(
            Path(context.worktree or self._config.worktree).expanduser().resolve()
        )
        if not self._config.enabled:
            return self._skipped(worktree, "disabled")

        repo = self.git_repo or GitRepo(worktree)
        self.git_repo = repo

        if changed_files is None:
            changed_files = repo.list_changed_files()
        changes = filter_changes(
            changed_files,
            self._config.filters.include,
            self._config.filters.exclude,
        )
        if not changes:
            return self._skipped(worktree, "no changes")

        state = _RunState()
        if self._config.commit.mode == "single":
            if not await self._commit_single(repo, changes, state):
                return self._skipped(worktree, "no staged changes")
        else:
            await self._commit_per_file(repo, changes, state)

        pushed = False
        push_cfg = self._config.push
        if state.commits and push_cfg.enabled:
            PushValidator(repo).push(push_cfg.remote, push_cfg.branch, push_cfg.provider)
            pushed = True

        return RunResult(
            worktree=worktree,
            committed=tuple(state.commits),
            pushed=pushed,
            token_usage=state.usage,
            ai_warning=state.warning,
        )

    async def _commit_single(
        self, repo: GitRepo, changes: list[ChangedFile], state: _RunState
    ) -> bool:
        for change in changes:
            repo.stage_path(change.path)
        if not repo.has_staged_changes():
            return False

        fallback = fallback_single_message(
            self._config.commit.fallback_prefix, len(changes)
        )
        generated = await self.commit_generator.build(
            repo.get_staged_summary(), fallback
        )
        state.absorb(generated)
        commit_hash = repo.commit(generated.message)
        state.commits.append(
            CommitRecord(
                hash=commit_hash,
                message=generated.message,
                files=tuple(change.path for change in changes),
            )
        )
        return True

    async def _commit_per_file(
        self, repo: GitRepo, changes: list[ChangedFile], state: _RunState
    ) -> None:
        if repo.has_staged_changes():
            raise ValidationError(
                "per-file mode requires a clean staging area before auto-commit"
            )
        for change in changes:
            repo.stage_path(change.path)
            if not repo.has_staged_changes():
                logger.debug("nothing staged for %s; skipping", change.path)
                continue
            fallback = fallback_per_file_message(
                self._config.commit.fallback_prefix, change
            )
            generated = await self.commit_generator.build(
                repo.get_staged_summary(change.path), fallback
            )
            state.absorb(generated)
            commit_hash = repo.commit(generated.message)
            state.commits.append(
                CommitRecord(
                    hash=commit_hash, message=generated.message, files=(change.path,)
                )
            )


async def run_auto_commit(
    context: Optional[RunContext] = None,
    config: Optional[AutoCommitConfig] = None,
    changed_files: Optional[list[ChangedFile]] = None,
) -> RunResult:
    return await AutoCommitWorkflow(config).run(context, changed_files)
