import pytest

from cac.commit import (
    CommitGenerator,
    fallback_per_file_message,
    fallback_single_message,
    generic_fallback_message,
    normalize_fallback_type,
)
from cac.git import ChangedFile, CommitSummary
from cac.llm import AIGenerateResult, TokenUsage


class FakeLLM:
    def __init__(self, result: AIGenerateResult):
        self.result = result
        self.calls = []

    async def generate(self, summary, max_length):
        self.calls.append((summary, max_length))
        return self.result


@pytest.mark.parametrize(
    "prefix,expected",
    [
        ("chore(auto)", "chore"),
        ("feat(auto)", "feat"),
        ("Feature", "feat"),
        ("fix", "fix"),
        ("bugfix(auto)", "fix"),
        ("hotfix", "fix"),
        ("wip", "chore"),
        ("", "chore"),
    ],
)
def test_normalize_fallback_type(prefix, expected):
    assert normalize_fallback_type(prefix) == expected


def test_fallback_single_message_counts_files():
    assert fallback_single_message("chore(auto)", 2) == "chore: update 2 files"
    assert fallback_single_message("feat", 1) == "feat: update 1 file"


@pytest.mark.parametrize(
    "change,expected",
    [
        (ChangedFile("src/new.py", "?", "?"), "chore: add new.py"),
        (ChangedFile("src/new.py", "A", " "), "chore: add new.py"),
        (ChangedFile("old.txt", " ", "D"), "chore: remove old.txt"),
        (ChangedFile("docs/b.md", "R", " ", "docs/a.md"), "chore: rename b.md"),
        (ChangedFile("app.py", " ", "M"), "chore: update app.py"),
    ],
)
def test_fallback_per_file_message(change, expected):
    assert fallback_per_file_message("chore(auto)", change) == expected


def test_generic_fallback_message():
    assert generic_fallback_message("fix(auto)", 72) == "fix: update changes"


@pytest.mark.asyncio
async def test_generator_prefers_ai_message():
    usage = TokenUsage(3, 2, 5)
    llm = FakeLLM(AIGenerateResult(message="feat: add parser", usage=usage))
    generator = CommitGenerator(llm, "chore(auto)", 72)

    generated = await generator.build(CommitSummary(), "chore: update 1 file")

    assert generated.message == "feat: add parser"
    assert generated.from_ai
    assert generated.usage == usage
    assert llm.calls[0][1] == 72


@pytest.mark.asyncio
async def test_generator_falls_back_on_warning():
    llm = FakeLLM(AIGenerateResult(warning="AI request timed out after 1000ms"))
    generator = CommitGenerator(llm, "chore(auto)", 72)

    generated = await generator.build(CommitSummary(), "chore: update 3 files")

    assert generated.message == "chore: update 3 files"
    assert not generated.from_ai
    assert generated.warning == "AI request timed out after 1000ms"


@pytest.mark.asyncio
async def test_generator_falls_back_when_ai_disabled():
    generator = CommitGenerator(FakeLLM(AIGenerateResult()), "feat", 72)

    generated = await generator.build(CommitSummary(), "feat: add main.py")

    assert generated.message == "feat: add main.py"
    assert generated.warning is None


@pytest.mark.asyncio
async def test_generator_uses_generic_fallback_when_too_long():
    generator = CommitGenerator(FakeLLM(AIGenerateResult()), "chore(auto)", 21)

    generated = await generator.build(CommitSummary(), "chore: update 12 files")

    assert generated.message == "chore: update changes"
