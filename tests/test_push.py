import pytest

from cac.config import AutoCommitConfig
from cac.core import AutoCommitWorkflow
from cac.exceptions import PushError
from cac.git import GitRepo
from cac.push import PushValidator, validate_remote_url


@pytest.mark.parametrize(
    "provider,url",
    [
        ("github", "git@github.com:me/repo.git"),
        ("github", "https://GitHub.com/me/repo"),
        ("gitlab", "https://gitlab.example.com/me/repo.git"),
        ("generic", "/srv/git/repo.git"),
        ("generic", "https://gitlab.com/me/repo.git"),
    ],
)
def test_validate_remote_url_accepts(provider, url):
    validate_remote_url(provider, url)


def test_validate_remote_url_rejects_wrong_host():
    with pytest.raises(PushError, match="does not look like GitHub"):
        validate_remote_url("github", "https://gitlab.com/me/repo.git")
    with pytest.raises(PushError, match="does not look like GitLab"):
        validate_remote_url("gitlab", "git@github.com:me/repo.git")


@pytest.fixture
def bare_remote(tmp_path, repo, run_git):
    remote = tmp_path / "remote.git"
    run_git(["init", "-q", "--bare", str(remote)], tmp_path)
    run_git(["remote", "add", "origin", str(remote)], repo)
    return remote


def test_rejected_remote_is_not_pushed(repo, run_git, monkeypatch):
    run_git(["remote", "add", "origin", "https://gitlab.com/me/repo.git"], repo)
    gr = GitRepo(repo)
    pushed = []
    monkeypatch.setattr(gr, "push", lambda *a, **k: pushed.append(a))

    with pytest.raises(PushError):
        PushValidator(gr).push("origin", None, "github")

    assert pushed == []


def test_push_to_bare_remote(repo, run_git, bare_remote):
    branch = run_git(["rev-parse", "--abbrev-ref", "HEAD"], repo)
    PushValidator(GitRepo(repo)).push("origin", "", "generic")
    assert run_git(["rev-parse", branch], bare_remote) == run_git(
        ["rev-parse", "HEAD"], repo
    )


@pytest.mark.asyncio
async def test_workflow_pushes_after_commit(repo, run_git, bare_remote):
    (repo / "a.txt").write_text("a\n")
    config = AutoCommitConfig(worktree=str(repo))
    config.push.enabled = True
    config.push.provider = "generic"

    result = await AutoCommitWorkflow(config).run()

    assert result.pushed
    branch = run_git(["rev-parse", "--abbrev-ref", "HEAD"], repo)
    assert run_git(["rev-parse", branch], bare_remote) == result.committed[0].hash


@pytest.mark.asyncio
async def test_workflow_push_validation_failure_raises(repo, run_git):
    run_git(["remote", "add", "origin", "https://gitlab.com/me/repo.git"], repo)
    (repo / "a.txt").write_text("a\n")
    config = AutoCommitConfig(worktree=str(repo))
    config.push.enabled = True

    with pytest.raises(PushError, match="GitHub"):
        await AutoCommitWorkflow(config).run()


@pytest.mark.asyncio
async def test_workflow_does_not_push_when_nothing_committed(repo, run_git):
    config = AutoCommitConfig(worktree=str(repo))
    config.push.enabled = True
    result = await AutoCommitWorkflow(config).run()
    assert result.skipped
    assert not result.pushed
