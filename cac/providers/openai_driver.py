"""openai-completions flavour: ``POST {base_url}/chat/completions``."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
import openai

from ..config import AIProviderConfig
from ..exceptions import LLMError, ProviderHTTPError
from .base import ProviderReply, TokenUsage, _as_int

logger = logging.getLogger(__name__)


def _extract_content(choice: Any) -> Optional[str]:
    message = getattr(choice, "message", None)
    if message is None:
        return None
    content = getattr(message, "content", None)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Some compatible servers return content fragments
        fragments: list[str] = []
        for part in content:
            if isinstance(part, dict):
                fragments.append(str(part.get("text") or ""))
            else:
                fragments.append(str(getattr(part, "text", "") or ""))
        return "".join(fragments)
    return None


def _extract_usage(resp: Any) -> Optional[TokenUsage]:
    usage = getattr(resp, "usage", None)
    if usage is None:
        return None
    return TokenUsage(
        prompt_tokens=_as_int(getattr(usage, "prompt_tokens", 0)),
        completion_tokens=_as_int(getattr(usage, "completion_tokens", 0)),
        total_tokens=_as_int(getattr(usage, "total_tokens", 0)),
    )


async def invoke(
    provider: AIProviderConfig,
    model: str,
    api_key: str,
    system: str,
    prompt: str,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ProviderReply:
    """Run one chat completion through the OpenAI SDK.

    SDK retries are disabled; the caller owns retry and timeout policy.
    """
    client = openai.AsyncOpenAI(
        api_key=api_key,
        base_url=provider.base_url.rstrip("/"),
        default_headers=dict(provider.headers) or None,
        max_retries=0,
        http_client=http_client,
    )
    logger.debug("openai-completions request model=%s", model)
    try:
        resp = await client.chat.completions.create(
            model=model,
            temperature=0.2,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        )
    except openai.APIStatusError as e:
        raise ProviderHTTPError(e.status_code, e.response.text) from e
    except openai.APIError as e:
        raise LLMError(f"OpenAI-compatible request failed: {e}") from e
    finally:
        # A caller-supplied client stays open for reuse
        if http_client is None:
            await client.close()

    try:
        choice0 = resp.choices[0]
    except (AttributeError, IndexError, TypeError):
        raise LLMError("Missing choices in chat completion response") from None
    return ProviderReply(text=_extract_content(choice0), usage=_extract_usage(resp))
