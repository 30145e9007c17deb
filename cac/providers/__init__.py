"""Provider drivers keyed by the ``api`` field of a provider config."""

from __future__ import annotations

from . import anthropic_driver, openai_driver
from .base import Driver, ProviderReply, TokenUsage

DRIVERS: dict[str, Driver] = {
    "openai-completions": openai_driver.invoke,
    "anthropic-messages": anthropic_driver.invoke,
}

__all__ = ["DRIVERS", "Driver", "ProviderReply", "TokenUsage"]
