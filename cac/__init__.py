"""cac - auto-commit the changes left by an AI coding agent turn."""

from importlib import import_module
from typing import TYPE_CHECKING

__version__ = "0.1.0"

# Public API (lazy-exported to avoid import-time side effects)
__all__ = [
    # Config
    "AutoCommitConfig", "load_config",
    # LLM
    "LLMClient", "TokenUsage",
    # Git
    "GitRepo", "ChangedFile", "CommitSummary",
    # Filtering
    "filter_changes",
    # Core workflow
    "AutoCommitWorkflow", "RunContext", "RunResult", "CommitRecord",
    "run_auto_commit",
    # Exceptions
    "AutoCommitError", "GitError", "LLMError", "ConfigError",
    "ValidationError", "PushError",
]


def __getattr__(name: str):
    """Lazy attribute loader so ``import cac`` stays cheap.

    The HTTP stacks (httpx, openai) load only when the LLM or workflow
    symbols are first accessed.
    """
    mapping = {
        "AutoCommitConfig": ("cac.config", "AutoCommitConfig"),
        "load_config": ("cac.config", "load_config"),
        "LLMClient": ("cac.llm", "LLMClient"),
        "TokenUsage": ("cac.llm", "TokenUsage"),
        "GitRepo": ("cac.git", "GitRepo"),
        "ChangedFile": ("cac.git", "ChangedFile"),
        "CommitSummary": ("cac.git", "CommitSummary"),
        "filter_changes": ("cac.filter", "filter_changes"),
        "AutoCommitWorkflow": ("cac.core", "AutoCommitWorkflow"),
        "RunContext": ("cac.core", "RunContext"),
        "RunResult": ("cac.core", "RunResult"),
        "CommitRecord": ("cac.core", "CommitRecord"),
        "run_auto_commit": ("cac.core", "run_auto_commit"),
        "AutoCommitError": ("cac.exceptions", "AutoCommitError"),
        "GitError": ("cac.exceptions", "GitError"),
        "LLMError": ("cac.exceptions", "LLMError"),
        "ConfigError": ("cac.exceptions", "ConfigError"),
        "ValidationError": ("cac.exceptions", "ValidationError"),
        "PushError": ("cac.exceptions", "PushError"),
    }
    if name in mapping:
        mod_name, attr = mapping[name]
        mod = import_module(mod_name)
        value = getattr(mod, attr)
        globals()[name] = value  # cache for future access
        return value
    raise AttributeError(f"module 'cac' has no attribute {name!r}")


if TYPE_CHECKING:
    from .config import AutoCommitConfig, load_config
    from .core import (
        AutoCommitWorkflow,
        CommitRecord,
        RunContext,
        RunResult,
        run_auto_commit,
    )
    from .exceptions import (
        AutoCommitError,
        ConfigError,
        GitError,
        LLMError,
        PushError,
        ValidationError,
    )
    from .filter import filter_changes
    from .git import ChangedFile, CommitSummary, GitRepo
    from .llm import LLMClient, TokenUsage
