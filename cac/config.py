"""Configuration management for cac."""

from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

PROJECT_DIR_NAME = ".cac"
PROJECT_CONFIG_NAME = ".code-agent-auto-commit.json"
GLOBAL_DIR_NAME = "code-agent-auto-commit"
GLOBAL_CONFIG_NAME = "config.json"

COMMIT_MODES = ("single", "per-file")
PUSH_PROVIDERS = ("github", "gitlab", "generic")
PROVIDER_APIS = ("openai-completions", "anthropic-messages")

DEFAULT_MODEL = "openai/gpt-4.1-mini"
DEFAULT_PROVIDER = "openai"
MIN_MESSAGE_LENGTH = 20
MIN_TIMEOUT_MS = 1000

DEFAULT_PROVIDERS: Dict[str, Dict[str, str]] = {
    "openai": {
        "api": "openai-completions",
        "base_url": "https://api.openai.com/v1",
        "api_key_env": "OPENAI_API_KEY",
    },
    "anthropic": {
        "api": "anthropic-messages",
        "base_url": "https://api.anthropic.com/v1",
        "api_key_env": "ANTHROPIC_API_KEY",
    },
    "openrouter": {
        "api": "openai-completions",
        "base_url": "https://openrouter.ai/api/v1",
        "api_key_env": "OPENROUTER_API_KEY",
    },
    "moonshot": {
        "api": "openai-completions",
        "base_url": "https://api.moonshot.ai/v1",
        "api_key_env": "MOONSHOT_API_KEY",
    },
    "minimax": {
        "api": "openai-completions",
        "base_url": "https://api.minimax.chat/v1",
        "api_key_env": "MINIMAX_API_KEY",
    },
    "kimi-coding": {
        "api": "anthropic-messages",
        "base_url": "https://api.moonshot.ai/anthropic",
        "api_key_env": "KIMI_API_KEY",
    },
    "ollama": {
        "api": "openai-completions",
        "base_url": "http://127.0.0.1:11434/v1",
        "api_key_env": "OLLAMA_API_KEY",
    },
}

DEFAULT_EXCLUDES = [".env", ".env.*", "*.pem", "*.key", "*.p12"]

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class AIProviderConfig:
    """One HTTP endpoint able to generate commit messages."""

    api: str
    base_url: str
    api_key: Optional[str] = None
    api_key_env: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def resolve_api_key(self) -> Optional[str]:
        """Return the explicit key, else the value of ``api_key_env``."""
        if self.api_key and self.api_key.strip():
            return self.api_key.strip()
        if not self.api_key_env:
            return None
        value = os.environ.get(self.api_key_env)
        if not value or not value.strip():
            return None
        return value.strip()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AIProviderConfig":
        return cls(
            api=str(data.get("api", "")),
            base_url=str(data.get("baseUrl", "")),
            api_key=data.get("apiKey"),
            api_key_env=data.get("apiKeyEnv"),
            headers=dict(data.get("headers") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"api": self.api, "baseUrl": self.base_url}
        if self.api_key:
            out["apiKey"] = self.api_key
        if self.api_key_env:
            out["apiKeyEnv"] = self.api_key_env
        if self.headers:
            out["headers"] = dict(self.headers)
        return out


def default_providers() -> Dict[str, AIProviderConfig]:
    return {
        name: AIProviderConfig(**values)
        for name, values in DEFAULT_PROVIDERS.items()
    }


@dataclass
class CommitConfig:
    mode: str = "single"
    fallback_prefix: str = "chore(auto)"
    max_message_length: int = 72


@dataclass
class AIConfig:
    enabled: bool = False
    timeout_ms: int = 15000
    model: str = DEFAULT_MODEL
    default_provider: str = DEFAULT_PROVIDER
    providers: Dict[str, AIProviderConfig] = field(default_factory=default_providers)


@dataclass
class PushConfig:
    enabled: bool = False
    provider: str = "github"
    remote: str = "origin"
    branch: str = ""


@dataclass
class FilterConfig:
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))


@dataclass
class AutoCommitConfig:
    """Runtime configuration for cac."""

    version: int = 1
    enabled: bool = True
    worktree: str = "."
    commit: CommitConfig = field(default_factory=CommitConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    push: PushConfig = field(default_factory=PushConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise configuration using the on-disk camelCase keys."""
        return {
            "version": self.version,
            "enabled": self.enabled,
            "worktree": self.worktree,
            "commit": {
                "mode": self.commit.mode,
                "fallbackPrefix": self.commit.fallback_prefix,
                "maxMessageLength": self.commit.max_message_length,
            },
            "ai": {
                "enabled": self.ai.enabled,
                "timeoutMs": self.ai.timeout_ms,
                "model": self.ai.model,
                "defaultProvider": self.ai.default_provider,
                "providers": {
                    name: provider.to_dict()
                    for name, provider in self.ai.providers.items()
                },
            },
            "push": {
                "enabled": self.push.enabled,
                "provider": self.push.provider,
                "remote": self.push.remote,
                "branch": self.push.branch,
            },
            "filters": {
                "include": list(self.filters.include),
                "exclude": list(self.filters.exclude),
            },
        }


_CONFIG_STATE: Dict[str, Optional[AutoCommitConfig]] = {"active": None}


def _ensure_path(path_like: Optional[Path | str]) -> Path:
    if path_like is None:
        return Path.cwd().resolve(strict=False)
    return Path(path_like).expanduser().resolve(strict=False)


def user_config_home() -> Path:
    for env_name in ("CAC_CONFIG_HOME", "XDG_CONFIG_HOME"):
        value = os.environ.get(env_name, "").strip()
        if value:
            return Path(value).expanduser()
    return Path.home() / ".config"


def project_config_path(worktree: Path | str) -> Path:
    return _ensure_path(worktree) / PROJECT_DIR_NAME / PROJECT_CONFIG_NAME


def legacy_project_config_path(worktree: Path | str) -> Path:
    return _ensure_path(worktree) / PROJECT_CONFIG_NAME


def global_config_path() -> Path:
    return user_config_home() / GLOBAL_DIR_NAME / GLOBAL_CONFIG_NAME


def resolve_config_path(
    explicit_path: Optional[Path | str] = None,
    worktree: Optional[Path | str] = None,
) -> Path:
    """Pick the config file: explicit, project, legacy project, then global."""
    if explicit_path:
        return _ensure_path(explicit_path)
    for candidate in (
        project_config_path(_ensure_path(worktree)),
        legacy_project_config_path(_ensure_path(worktree)),
    ):
        if candidate.exists():
            return candidate
    return global_config_path()


def _read_json(path: Path) -> Optional[Dict[str, Any]]:
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def _write_json(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def _as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: {value!r}") from exc


def merge_config(base: AutoCommitConfig, raw: Dict[str, Any]) -> AutoCommitConfig:
    """Overlay a parsed config file on top of ``base``.

    Sections merge key by key; provider entries merge per provider so a file
    may override just ``apiKeyEnv`` of a built-in provider. Filter lists
    replace rather than extend.
    """
    merged = copy.deepcopy(base)
    if "version" in raw:
        merged.version = _as_int(raw["version"], "version")
    if "enabled" in raw:
        merged.enabled = _as_bool(raw["enabled"])
    if raw.get("worktree"):
        merged.worktree = str(raw["worktree"])

    commit = raw.get("commit") or {}
    if "mode" in commit:
        merged.commit.mode = str(commit["mode"])
    if "fallbackPrefix" in commit:
        merged.commit.fallback_prefix = str(commit["fallbackPrefix"])
    if "maxMessageLength" in commit:
        merged.commit.max_message_length = _as_int(
            commit["maxMessageLength"], "commit.maxMessageLength"
        )

    ai = raw.get("ai") or {}
    if "enabled" in ai:
        merged.ai.enabled = _as_bool(ai["enabled"])
    if "timeoutMs" in ai:
        merged.ai.timeout_ms = _as_int(ai["timeoutMs"], "ai.timeoutMs")
    if "model" in ai:
        merged.ai.model = str(ai["model"] or "")
    if "defaultProvider" in ai:
        merged.ai.default_provider = str(ai["defaultProvider"] or "")
    for name, provider_raw in (ai.get("providers") or {}).items():
        existing = merged.ai.providers.get(name)
        combined: Dict[str, Any] = existing.to_dict() if existing else {}
        combined.update(provider_raw or {})
        merged.ai.providers[name] = AIProviderConfig.from_dict(combined)

    push = raw.get("push") or {}
    if "enabled" in push:
        merged.push.enabled = _as_bool(push["enabled"])
    if "provider" in push:
        merged.push.provider = str(push["provider"])
    if "remote" in push:
        merged.push.remote = str(push["remote"])
    if "branch" in push:
        merged.push.branch = str(push["branch"] or "")

    filters = raw.get("filters") or {}
    if filters.get("include") is not None:
        merged.filters.include = [str(p) for p in filters["include"]]
    if filters.get("exclude") is not None:
        merged.filters.exclude = [str(p) for p in filters["exclude"]]
    return merged


def _apply_env_overrides(config: AutoCommitConfig) -> None:
    mode = os.environ.get("CAC_COMMIT_MODE")
    if mode:
        config.commit.mode = mode
    model = os.environ.get("CAC_AI_MODEL")
    if model:
        config.ai.model = model
    ai_enabled = os.environ.get("CAC_AI_ENABLED")
    if ai_enabled:
        config.ai.enabled = _as_bool(ai_enabled)
    auto_push = os.environ.get("CAC_AUTO_PUSH")
    if auto_push:
        config.push.enabled = _as_bool(auto_push)
    max_len = os.environ.get("CAC_MAX_MESSAGE_LENGTH")
    if max_len:
        config.commit.max_message_length = _as_int(
            max_len, "CAC_MAX_MESSAGE_LENGTH"
        )


def normalize_config(config: AutoCommitConfig) -> AutoCommitConfig:
    """Validate ``config`` in place and clamp out-of-range values."""
    if config.commit.mode not in COMMIT_MODES:
        raise ConfigError(f"Invalid commit.mode: {config.commit.mode}")
    if config.push.provider not in PUSH_PROVIDERS:
        raise ConfigError(f"Invalid push.provider: {config.push.provider}")
    if config.commit.max_message_length < MIN_MESSAGE_LENGTH:
        config.commit.max_message_length = MIN_MESSAGE_LENGTH
    if config.ai.timeout_ms < MIN_TIMEOUT_MS:
        config.ai.timeout_ms = MIN_TIMEOUT_MS
    if not config.ai.model.strip():
        config.ai.model = DEFAULT_MODEL
    if not config.ai.default_provider.strip():
        config.ai.default_provider = DEFAULT_PROVIDER

    for name, provider in config.ai.providers.items():
        base_url = (provider.base_url or "").strip()
        if not base_url:
            raise ConfigError(f"Invalid ai.providers.{name}.baseUrl")
        if not base_url.lower().startswith(("http://", "https://")):
            raise ConfigError(
                f"Invalid ai.providers.{name}.baseUrl (not HTTP): {base_url}"
            )
        if provider.api not in PROVIDER_APIS:
            raise ConfigError(f"Invalid ai.providers.{name}.api: {provider.api}")

    if config.ai.default_provider not in config.ai.providers:
        raise ConfigError(f"Missing ai.providers.{config.ai.default_provider}")
    return config


def load_config(
    *,
    explicit_path: Optional[Path | str] = None,
    worktree: Optional[Path | str] = None,
) -> AutoCommitConfig:
    """Build configuration from defaults, config file and environment."""
    cwd = _ensure_path(worktree)
    path = resolve_config_path(explicit_path, cwd)
    raw = _read_json(path)
    logger.debug("config path=%s found=%s", path, raw is not None)

    config = merge_config(AutoCommitConfig(worktree=str(cwd)), raw or {})
    _apply_env_overrides(config)
    if not config.worktree or config.worktree == ".":
        config.worktree = str(cwd)
    normalize_config(config)
    set_active_config(config)
    return config


def init_config_file(target: Path | str, worktree: Path | str) -> AutoCommitConfig:
    """Write the default configuration for ``worktree`` to ``target``."""
    config = AutoCommitConfig(worktree=str(_ensure_path(worktree)))
    _write_json(_ensure_path(target), config.to_dict())
    return config


def update_config_worktree(
    config_path: Path | str, worktree: Path | str
) -> AutoCommitConfig:
    """Point an existing (or new) config file at another worktree."""
    path = _ensure_path(config_path)
    resolved = str(_ensure_path(worktree))
    config = merge_config(AutoCommitConfig(worktree=resolved), _read_json(path) or {})
    config.worktree = resolved
    normalize_config(config)
    _write_json(path, config.to_dict())
    return config


def set_active_config(config: AutoCommitConfig) -> None:
    _CONFIG_STATE["active"] = config


def get_active_config() -> AutoCommitConfig:
    active = _CONFIG_STATE.get("active")
    if active is None:
        return load_config()
    return active


def clear_active_config() -> None:
    _CONFIG_STATE["active"] = None
