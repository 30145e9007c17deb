"""LLM integration for cac.

Turns a staged-diff summary into a single conventional commit subject line.
Two protocol flavours are supported (see ``cac.providers``); both share the
timeout and model-fallback retry wrapper in ``LLMClient``. Failures never
escape ``LLMClient.generate``: they come back as a warning string so the
caller can fall back to a deterministic subject.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from .config import AIConfig, AIProviderConfig
from .exceptions import LLMError, ProviderHTTPError
from .git import CommitSummary
from .providers import DRIVERS, ProviderReply, TokenUsage

logger = logging.getLogger(__name__)

__all__ = [
    "AIGenerateResult",
    "AITestResult",
    "LLMClient",
    "TokenUsage",
    "format_typed_message",
    "generate_commit_message",
    "is_retryable_model_error",
    "normalize_message",
    "split_model_ref",
]

COMMIT_TYPES = (
    "feat",
    "fix",
    "refactor",
    "docs",
    "style",
    "test",
    "chore",
    "perf",
    "ci",
    "build",
    "revert",
)
TYPE_ALIASES = {
    "feature": "feat",
    "features": "feat",
    "bugfix": "fix",
    "hotfix": "fix",
    "refactoring": "refactor",
    "refector": "refactor",
    "doc": "docs",
    "tests": "test",
    "testing": "test",
    "performance": "perf",
}
DEFAULT_COMMIT_TYPE = "chore"
ELLIPSIS = "…"

# Providers whose model catalogue changes often; a rejected model id is
# retried once with the documented fallback.
MODEL_FALLBACKS = {
    "kimi-coding": "kimi-for-coding",
}

ERROR_BODY_LIMIT = 300

SYSTEM_PROMPT = (
    "You generate exactly one conventional commit message. "
    "Format: '<type>(<scope>): <description>'. Scope is optional. "
    "Allowed types: feat, fix, refactor, docs, style, test, chore, perf, ci, "
    "build. Description must be imperative, lowercase, no period. Describe "
    "the actual change, not just 'update <file>'. No quotes. No code block."
)

PING_SYSTEM_PROMPT = "You are a connectivity check. Reply with the word: ok"

_THINK_BLOCK_RE = re.compile(r"<(think|thinking)>.*?</\1>", re.IGNORECASE | re.DOTALL)
_THINK_TAG_RE = re.compile(r"</?(?:think|thinking)>", re.IGNORECASE)
_FENCE_RE = re.compile(r"^```[\w+-]*$")
_QUOTES = "'\"`"
_CONVENTIONAL_RE = re.compile(r"^([a-zA-Z-]+)(?:\(([^)]*)\))?\s*:\s*(.+)$")
_SHORTHAND_RE = re.compile(
    r"^(feat|feature|fix|bugfix|hotfix|refactor|refactoring)\b[\s:-]+(.+)$",
    re.IGNORECASE,
)
_MODEL_ERROR_RE = re.compile(
    r"(unknown|invalid|unsupported|not supported|not found|does not exist|"
    r"no such)[^\n]{0,40}model"
    r"|model[^\n]{0,60}(unknown|invalid|unsupported|not supported|not found|"
    r"does not exist|not exist)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class AIGenerateResult:
    message: Optional[str] = None
    usage: Optional[TokenUsage] = None
    warning: Optional[str] = None


@dataclass(frozen=True)
class AITestResult:
    ok: bool
    reply: Optional[str] = None
    usage: Optional[TokenUsage] = None
    error: Optional[str] = None


# ----------------------------------------------------------------------
# Pure helpers
# ----------------------------------------------------------------------
def split_model_ref(model_ref: str, default_provider: str) -> tuple[str, str]:
    """Split ``provider/model``; a bare model uses ``default_provider``."""
    trimmed = (model_ref or "").strip()
    if "/" not in trimmed:
        return default_provider, trimmed
    provider, model = trimmed.split("/", 1)
    return provider.strip(), model.strip()


def normalize_commit_type(raw: str) -> Optional[str]:
    value = (raw or "").strip().lower()
    if value in COMMIT_TYPES:
        return value
    return TYPE_ALIASES.get(value)


def _strip_quotes(text: str) -> str:
    return text.strip().strip(_QUOTES).strip()


def _truncate(text: str, limit: int = ERROR_BODY_LIMIT) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[: limit - 1] + ELLIPSIS


def format_typed_message(raw: str, max_length: int) -> str:
    """Coerce one line into ``type(scope): subject`` within ``max_length``.

    Unknown types become ``chore``; a line with no type prefix becomes the
    subject of a ``chore`` message. An over-long subject is cut and ends
    with an ellipsis; if the prefix leaves no room the whole string is cut.
    """
    line = raw.strip()
    conventional = _CONVENTIONAL_RE.match(line)
    shorthand = None if conventional else _SHORTHAND_RE.match(line)

    scope = ""
    if conventional:
        detected = normalize_commit_type(conventional.group(1))
        scope = (conventional.group(2) or "").strip()
        subject = conventional.group(3)
    elif shorthand:
        detected = normalize_commit_type(shorthand.group(1))
        subject = shorthand.group(2)
    else:
        detected = None
        subject = line

    subject = _strip_quotes(subject).lstrip("-:").strip()
    if not subject:
        return ""

    commit_type = detected or DEFAULT_COMMIT_TYPE
    prefix = f"{commit_type}({scope}): " if scope else f"{commit_type}: "
    full = prefix + subject
    if len(full) <= max_length:
        return full

    available = max_length - len(prefix)
    if available <= 0:
        return full[:max_length].rstrip()
    return prefix + subject[: available - 1].rstrip() + ELLIPSIS


def normalize_message(raw: str, max_length: int) -> str:
    """Reduce raw model output to one formatted subject line ("" if none)."""
    text = _THINK_BLOCK_RE.sub("\n", raw or "")
    text = _THINK_TAG_RE.sub("\n", text)
    for line in re.split(r"\r?\n", text):
        stripped = line.strip()
        if _FENCE_RE.match(stripped):
            continue
        candidate = _strip_quotes(stripped)
        if candidate:
            return format_typed_message(candidate, max_length)
    return ""


def is_retryable_model_error(status: int, body: str) -> bool:
    """True for a 4xx whose body says the requested model is unusable."""
    if not 400 <= status < 500:
        return False
    return bool(_MODEL_ERROR_RE.search(body or ""))


def build_user_prompt(summary: CommitSummary, max_length: int) -> str:
    return "\n".join(
        [
            f"Generate a concise commit message (<= {max_length} chars) in "
            'Conventional Commits format: "<type>(<scope>): <description>".',
            "Rules:",
            "- type: feat | fix | refactor | docs | style | test | chore | "
            "perf | ci | build",
            "- scope: optional, the module or file area affected",
            "- description: imperative mood, lowercase, no period",
            "- Do NOT just say 'update <filename>'; describe the actual change",
            "- Output exactly one line, no quotes, no code block",
            "",
            "Changed files:",
            summary.name_status or "(none)",
            "Diff stat:",
            summary.diff_stat or "(none)",
            "Patch excerpt:",
            summary.patch or "(none)",
        ]
    )


def _describe(error: Exception) -> str:
    if isinstance(error, ProviderHTTPError):
        return f"HTTP {error.status_code}: {_truncate(error.body)}"
    return _truncate(str(error))


# ----------------------------------------------------------------------
# Client
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class _Target:
    provider_name: str
    provider: AIProviderConfig
    model: str
    api_key: str


class LLMClient:
    """Provider-aware client for generating commit messages."""

    def __init__(
        self,
        ai_config: AIConfig,
        *,
        resolver: Optional[Callable[[AIProviderConfig], Optional[str]]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.ai_config = ai_config
        self._resolver = resolver or AIProviderConfig.resolve_api_key
        self._http_client = http_client

    def _resolve_target(self) -> _Target:
        """Validation gate; raises LLMError naming what to fix."""
        ai = self.ai_config
        provider_name, model = split_model_ref(ai.model, ai.default_provider)
        if not provider_name or not model:
            raise LLMError(f"Invalid ai.model '{ai.model}'")
        provider = ai.providers.get(provider_name)
        if provider is None:
            raise LLMError(f"AI provider '{provider_name}' is not configured")
        if provider.api not in DRIVERS:
            raise LLMError(
                f"AI provider '{provider_name}' uses unsupported api '{provider.api}'"
            )
        api_key = self._resolver(provider)
        if not api_key:
            if provider.api_key_env:
                raise LLMError(
                    f"Missing API key for AI provider '{provider_name}': "
                    f"set {provider.api_key_env}"
                )
            raise LLMError(
                f"Missing API key for AI provider '{provider_name}': "
                "set apiKey or apiKeyEnv"
            )
        return _Target(provider_name, provider, model, api_key)

    async def _invoke_once(
        self, target: _Target, model: str, system: str, prompt: str
    ) -> ProviderReply:
        driver = DRIVERS[target.provider.api]
        return await asyncio.wait_for(
            driver(
                target.provider,
                model,
                target.api_key,
                system,
                prompt,
                http_client=self._http_client,
            ),
            timeout=self.ai_config.timeout_ms / 1000.0,
        )

    async def _invoke(self, target: _Target, system: str, prompt: str) -> ProviderReply:
        try:
            return await self._invoke_once(target, target.model, system, prompt)
        except ProviderHTTPError as first:
            fallback = MODEL_FALLBACKS.get(target.provider_name)
            if (
                not fallback
                or fallback == target.model
                or not is_retryable_model_error(first.status_code, first.body)
            ):
                raise
            logger.debug(
                "model %s rejected by %s (HTTP %s); retrying with %s",
                target.model,
                target.provider_name,
                first.status_code,
                fallback,
            )
            try:
                return await self._invoke_once(target, fallback, system, prompt)
            except LLMError as second:
                raise LLMError(
                    f"model '{target.model}' rejected ({_describe(first)}); "
                    f"fallback model '{fallback}' failed ({_describe(second)})"
                ) from second

    async def generate(
        self, summary: CommitSummary, max_length: int
    ) -> AIGenerateResult:
        """Return a normalized subject, or a warning explaining why not."""
        if not self.ai_config.enabled:
            return AIGenerateResult()
        try:
            target = self._resolve_target()
        except LLMError as e:
            return AIGenerateResult(warning=str(e))

        logger.debug(
            "generating commit message provider=%s model=%s",
            target.provider_name,
            target.model,
        )
        prompt = build_user_prompt(summary, max_length)
        try:
            reply = await self._invoke(target, SYSTEM_PROMPT, prompt)
        except asyncio.TimeoutError:
            return AIGenerateResult(
                warning=f"AI request timed out after {self.ai_config.timeout_ms}ms"
            )
        except LLMError as e:
            return AIGenerateResult(
                warning=f"AI request to '{target.provider_name}' failed: {_describe(e)}"
            )
        except Exception as e:  # noqa: BLE001
            logger.debug("unexpected AI failure", exc_info=True)
            return AIGenerateResult(warning=f"AI request failed: {_truncate(str(e))}")

        message = normalize_message(reply.text or "", max_length)
        if not message:
            return AIGenerateResult(
                usage=reply.usage, warning="AI returned an empty commit message"
            )
        return AIGenerateResult(message=message, usage=reply.usage)

    async def test_connection(self) -> AITestResult:
        """Round-trip a tiny prompt to check provider, model and key."""
        try:
            target = self._resolve_target()
            reply = await self._invoke(target, PING_SYSTEM_PROMPT, "ping")
        except asyncio.TimeoutError:
            return AITestResult(
                ok=False,
                error=f"AI request timed out after {self.ai_config.timeout_ms}ms",
            )
        except LLMError as e:
            return AITestResult(ok=False, error=_describe(e))
        text = (reply.text or "").strip()
        if not text:
            return AITestResult(ok=False, usage=reply.usage, error="empty reply")
        return AITestResult(ok=True, reply=text, usage=reply.usage)


async def generate_commit_message(
    ai_config: AIConfig,
    summary: CommitSummary,
    max_length: int,
    *,
    resolver: Optional[Callable[[AIProviderConfig], Optional[str]]] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AIGenerateResult:
    client = LLMClient(ai_config, resolver=resolver, http_client=http_client)
    return await client.generate(summary, max_length)
