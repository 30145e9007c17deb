import subprocess
from collections.abc import Generator
from pathlib import Path

import pytest

_PROVIDER_KEYS = (
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "OPENROUTER_API_KEY",
    "MOONSHOT_API_KEY",
    "MINIMAX_API_KEY",
    "KIMI_API_KEY",
    "OLLAMA_API_KEY",
)
_CAC_VARS = (
    "CAC_COMMIT_MODE",
    "CAC_AI_MODEL",
    "CAC_AI_ENABLED",
    "CAC_AUTO_PUSH",
    "CAC_MAX_MESSAGE_LENGTH",
)


@pytest.fixture(autouse=True)
def reset_config(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[None, None, None]:
    for name in _PROVIDER_KEYS + _CAC_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep the global config lookup inside the test sandbox
    monkeypatch.setenv("CAC_CONFIG_HOME", str(tmp_path / "config-home"))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")

    from cac.config import clear_active_config

    clear_active_config()
    yield
    clear_active_config()


def git(args: list[str], cwd: Path) -> str:
    result = subprocess.run(
        ["git"] + args,
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """A git repository with one commit containing ``README.md``."""
    root = tmp_path / "repo"
    root.mkdir()
    git(["init", "-q"], root)
    git(["config", "user.name", "Test"], root)
    git(["config", "user.email", "test@example.com"], root)
    git(["config", "commit.gpgsign", "false"], root)
    (root / "README.md").write_text("hello\n")
    git(["add", "README.md"], root)
    git(["commit", "-q", "-m", "chore: init"], root)
    return root


@pytest.fixture
def run_git():
    return git
