import json

import pytest

from cac.config import (
    DEFAULT_EXCLUDES,
    DEFAULT_PROVIDERS,
    AIProviderConfig,
    AutoCommitConfig,
    clear_active_config,
    get_active_config,
    global_config_path,
    init_config_file,
    load_config,
    project_config_path,
    resolve_config_path,
    update_config_worktree,
)
from cac.exceptions import ConfigError


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_defaults_without_any_file(tmp_path):
    config = load_config(worktree=tmp_path)

    assert config.enabled
    assert config.worktree == str(tmp_path.resolve())
    assert config.commit.mode == "single"
    assert config.commit.fallback_prefix == "chore(auto)"
    assert config.commit.max_message_length == 72
    assert not config.ai.enabled
    assert config.ai.timeout_ms == 15000
    assert config.ai.model == "openai/gpt-4.1-mini"
    assert set(config.ai.providers) == set(DEFAULT_PROVIDERS)
    assert config.ai.providers["kimi-coding"].api == "anthropic-messages"
    assert not config.push.enabled
    assert config.push.provider == "github"
    assert config.filters.include == []
    assert config.filters.exclude == DEFAULT_EXCLUDES


def test_project_file_merges_over_defaults(tmp_path):
    _write(
        project_config_path(tmp_path),
        {
            "commit": {"mode": "per-file", "maxMessageLength": 5},
            "ai": {
                "timeoutMs": 10,
                "providers": {"openai": {"apiKeyEnv": "MY_OPENAI_KEY"}},
            },
            "filters": {"exclude": ["*.log"]},
        },
    )

    config = load_config(worktree=tmp_path)

    assert config.commit.mode == "per-file"
    # Clamped to the documented minimums
    assert config.commit.max_message_length == 20
    assert config.ai.timeout_ms == 1000
    openai = config.ai.providers["openai"]
    assert openai.api_key_env == "MY_OPENAI_KEY"
    assert openai.base_url == "https://api.openai.com/v1"
    assert config.filters.exclude == ["*.log"]


def test_custom_provider_is_added(tmp_path):
    _write(
        project_config_path(tmp_path),
        {
            "ai": {
                "model": "local/qwen",
                "providers": {
                    "local": {
                        "api": "openai-completions",
                        "baseUrl": "http://localhost:8000/v1",
                        "apiKey": "none",
                        "headers": {"X-Team": "dev"},
                    }
                },
            }
        },
    )
    config = load_config(worktree=tmp_path)
    local = config.ai.providers["local"]
    assert local.resolve_api_key() == "none"
    assert local.headers == {"X-Team": "dev"}
    assert "openai" in config.ai.providers


def test_resolution_order(tmp_path):
    assert resolve_config_path(worktree=tmp_path) == global_config_path()

    legacy = _write(tmp_path / ".code-agent-auto-commit.json", {})
    assert resolve_config_path(worktree=tmp_path) == legacy.resolve()

    project = _write(project_config_path(tmp_path), {})
    assert resolve_config_path(worktree=tmp_path) == project

    explicit = _write(tmp_path / "elsewhere.json", {})
    assert resolve_config_path(explicit, tmp_path) == explicit.resolve()


def test_global_file_used_as_last_resort(tmp_path):
    _write(global_config_path(), {"push": {"enabled": True, "provider": "gitlab"}})
    config = load_config(worktree=tmp_path)
    assert config.push.enabled
    assert config.push.provider == "gitlab"


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("CAC_COMMIT_MODE", "per-file")
    monkeypatch.setenv("CAC_AI_MODEL", "anthropic/claude-test")
    monkeypatch.setenv("CAC_AI_ENABLED", "true")
    monkeypatch.setenv("CAC_AUTO_PUSH", "1")
    monkeypatch.setenv("CAC_MAX_MESSAGE_LENGTH", "50")

    config = load_config(worktree=tmp_path)

    assert config.commit.mode == "per-file"
    assert config.ai.model == "anthropic/claude-test"
    assert config.ai.enabled
    assert config.push.enabled
    assert config.commit.max_message_length == 50


@pytest.mark.parametrize(
    "raw,message",
    [
        ({"commit": {"mode": "batch"}}, "commit.mode"),
        ({"push": {"provider": "bitbucket"}}, "push.provider"),
        (
            {"ai": {"providers": {"openai": {"baseUrl": "ftp://x"}}}},
            "not HTTP",
        ),
        (
            {"ai": {"providers": {"openai": {"api": "grpc"}}}},
            "ai.providers.openai.api",
        ),
        ({"ai": {"defaultProvider": "nobody"}}, "Missing ai.providers.nobody"),
        ({"commit": {"maxMessageLength": "long"}}, "maxMessageLength"),
    ],
)
def test_invalid_config_raises(tmp_path, raw, message):
    _write(project_config_path(tmp_path), raw)
    with pytest.raises(ConfigError, match=message):
        load_config(worktree=tmp_path)


def test_invalid_json_raises(tmp_path):
    path = project_config_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid JSON"):
        load_config(worktree=tmp_path)


def test_init_config_file_round_trips(tmp_path):
    target = project_config_path(tmp_path)
    written = init_config_file(target, tmp_path)

    data = json.loads(target.read_text(encoding="utf-8"))
    assert data["commit"]["fallbackPrefix"] == "chore(auto)"
    assert data["ai"]["providers"]["openai"]["apiKeyEnv"] == "OPENAI_API_KEY"

    loaded = load_config(worktree=tmp_path)
    assert loaded.to_dict() == written.to_dict()


def test_update_config_worktree(tmp_path):
    target = tmp_path / "cfg.json"
    _write(target, {"commit": {"mode": "per-file"}})
    other = tmp_path / "other"
    other.mkdir()

    updated = update_config_worktree(target, other)

    data = json.loads(target.read_text(encoding="utf-8"))
    assert data["worktree"] == str(other.resolve())
    assert data["commit"]["mode"] == "per-file"
    assert updated.worktree == str(other.resolve())


def test_active_config_lifecycle(tmp_path):
    config = load_config(worktree=tmp_path)
    assert get_active_config() is config
    clear_active_config()
    assert get_active_config() is not config


def test_resolve_api_key(monkeypatch):
    provider = AIProviderConfig(
        api="openai-completions", base_url="https://x", api_key_env="SOME_KEY"
    )
    assert provider.resolve_api_key() is None
    monkeypatch.setenv("SOME_KEY", "  ")
    assert provider.resolve_api_key() is None
    monkeypatch.setenv("SOME_KEY", " env-key ")
    assert provider.resolve_api_key() == "env-key"
    provider.api_key = "explicit"
    assert provider.resolve_api_key() == "explicit"


def test_to_dict_uses_camel_case():
    data = AutoCommitConfig().to_dict()
    assert data["ai"]["timeoutMs"] == 15000
    assert data["commit"]["maxMessageLength"] == 72
    assert data["ai"]["providers"]["ollama"]["baseUrl"].startswith("http://")
