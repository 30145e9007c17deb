"""Commit message selection for cac.

The AI message wins when it is usable; otherwise a deterministic fallback
subject built from the configured prefix is used.
"""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass
from typing import Optional

from .git import ChangedFile, CommitSummary
from .llm import LLMClient, TokenUsage

logger = logging.getLogger(__name__)

_FEAT_RE = re.compile(r"(^|[^a-z])(feat|feature)([^a-z]|$)")
_FIX_RE = re.compile(r"(^|[^a-z])(fix|bugfix|hotfix)([^a-z]|$)")

_VERBS = {"A": "add", "D": "remove", "R": "rename"}


def normalize_fallback_type(prefix: str) -> str:
    """Bucket a free-form prefix into ``feat``, ``fix`` or ``chore``."""
    value = (prefix or "").lower()
    if _FEAT_RE.search(value):
        return "feat"
    if _FIX_RE.search(value):
        return "fix"
    return "chore"


def fallback_single_message(prefix: str, count: int) -> str:
    noun = "file" if count == 1 else "files"
    return f"{normalize_fallback_type(prefix)}: update {count} {noun}"


def fallback_per_file_message(prefix: str, change: ChangedFile) -> str:
    verb = _VERBS.get(change.primary_status, "update")
    name = posixpath.basename(change.path.rstrip("/")) or change.path
    return f"{normalize_fallback_type(prefix)}: {verb} {name}"


def generic_fallback_message(prefix: str, max_length: int) -> str:
    return f"{normalize_fallback_type(prefix)}: update changes"[:max_length]


@dataclass(frozen=True)
class GeneratedMessage:
    message: str
    usage: Optional[TokenUsage] = None
    warning: Optional[str] = None
    from_ai: bool = False


class CommitGenerator:
    """Picks the commit subject for one commit unit."""

    def __init__(self, llm_client: LLMClient, fallback_prefix: str, max_length: int):
        self.llm_client = llm_client
        self.fallback_prefix = fallback_prefix
        self.max_length = max_length

    def _fallback(self, fallback: str) -> str:
        if len(fallback) <= self.max_length:
            return fallback
        return generic_fallback_message(self.fallback_prefix, self.max_length)

    async def build(self, summary: CommitSummary, fallback: str) -> GeneratedMessage:
        """Ask the LLM for a subject; fall back when it has none to give."""
        result = await self.llm_client.generate(summary, self.max_length)
        message = (result.message or "").strip()
        if message and len(message) <= self.max_length:
            return GeneratedMessage(
                message=message, usage=result.usage, warning=result.warning, from_ai=True
            )
        if result.warning:
            logger.debug("using fallback subject: %s", result.warning)
        return GeneratedMessage(
            message=self._fallback(fallback),
            usage=result.usage,
            warning=result.warning,
        )
