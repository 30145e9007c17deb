from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from ..config import AIProviderConfig


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported by a provider; additive across commits."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        if not isinstance(other, TokenUsage):
            return NotImplemented
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


@dataclass(frozen=True)
class ProviderReply:
    text: Optional[str]
    usage: Optional[TokenUsage] = None


class Driver(Protocol):
    """Call shape shared by every protocol flavour.

    A driver sends one request and returns the raw reply text plus usage.
    Non-2xx answers raise ``ProviderHTTPError``; transport and decoding
    failures raise ``LLMError``. Timeouts and retries belong to the caller.
    """

    async def __call__(
        self,
        provider: AIProviderConfig,
        model: str,
        api_key: str,
        system: str,
        prompt: str,
        *,
        http_client: Optional[httpx.AsyncClient] = ...,
    ) -> ProviderReply: ...


def endpoint(base_url: str, path: str) -> str:
    return base_url.rstrip("/") + path


def _as_int(value: object) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
