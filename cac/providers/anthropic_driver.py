"""anthropic-messages flavour: ``POST {base_url}/messages``."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..config import AIProviderConfig
from ..exceptions import LLMError, ProviderHTTPError
from .base import ProviderReply, TokenUsage, _as_int, endpoint

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 120


def build_request(
    provider: AIProviderConfig,
    model: str,
    api_key: str,
    system: str,
    prompt: str,
    max_tokens: int = MAX_TOKENS,
) -> tuple[str, dict[str, str], dict[str, Any]]:
    """Return ``(url, headers, payload)`` for a messages call."""
    headers = {
        "content-type": "application/json",
        "x-api-key": api_key,
        "anthropic-version": ANTHROPIC_VERSION,
    }
    headers.update(provider.headers)
    payload = {
        "model": model,
        "max_tokens": max_tokens,
        "temperature": 0.2,
        "system": system,
        "messages": [{"role": "user", "content": prompt}],
    }
    return endpoint(provider.base_url, "/messages"), headers, payload


def parse_response(data: Any) -> ProviderReply:
    """First text block plus usage derived from input/output tokens."""
    if not isinstance(data, dict):
        raise LLMError("Malformed messages response: expected a JSON object")
    text = None
    for block in data.get("content") or []:
        if isinstance(block, dict) and block.get("type") == "text":
            text = block.get("text")
            break
    usage = None
    raw_usage = data.get("usage")
    if isinstance(raw_usage, dict):
        prompt_tokens = _as_int(raw_usage.get("input_tokens"))
        completion_tokens = _as_int(raw_usage.get("output_tokens"))
        usage = TokenUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )
    return ProviderReply(text=text, usage=usage)


async def invoke(
    provider: AIProviderConfig,
    model: str,
    api_key: str,
    system: str,
    prompt: str,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ProviderReply:
    url, headers, payload = build_request(provider, model, api_key, system, prompt)
    logger.debug("anthropic-messages request model=%s url=%s", model, url)
    try:
        if http_client is not None:
            response = await http_client.post(url, headers=headers, json=payload)
        else:
            async with httpx.AsyncClient(timeout=None) as client:
                response = await client.post(url, headers=headers, json=payload)
    except httpx.HTTPError as e:
        raise LLMError(f"Anthropic-compatible network error: {e}") from e

    if response.status_code >= 300:
        raise ProviderHTTPError(response.status_code, response.text)
    try:
        data = response.json()
    except ValueError as e:
        raise LLMError(f"Malformed messages response: {e}") from e
    return parse_response(data)
