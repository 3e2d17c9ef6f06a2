"""AI provider availability, cached behind an explicit object."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from ..core import config

logger = logging.getLogger(__name__)

ProviderStatus = Dict[str, Dict[str, Any]]

PROVIDER_MODELS = {
    "openai": ["gpt-4o-mini", "gpt-4o"],
    "gemini": ["gemini-1.5-flash", "gemini-1.5-pro"],
    "anthropic": ["claude-3-5-sonnet-20241022", "claude-3-5-haiku-20241022"],
    "mistral": ["mistral-small-latest", "mistral-large-latest"],
}


def configured_provider_status() -> ProviderStatus:
    """Report which providers have an API key configured."""

    keys = {
        "openai": config.OPENAI_API_KEY,
        "gemini": config.GEMINI_API_KEY,
        "anthropic": config.ANTHROPIC_API_KEY,
        "mistral": config.MISTRAL_API_KEY,
    }
    return {
        name: {
            "available": bool(keys[name]),
            "message": "Configured" if keys[name] else "Not configured",
            "models": models,
        }
        for name, models in PROVIDER_MODELS.items()
    }


class ProviderStatusCache:
    """Holds the last provider status and when it stops being fresh."""

    def __init__(
        self,
        loader: Callable[[], ProviderStatus] = configured_provider_status,
        *,
        ttl_seconds: float = config.PROVIDER_STATUS_TTL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self.value: Optional[ProviderStatus] = None
        self.expires_at: float = 0.0

    def is_stale(self) -> bool:
        return self.value is None or self._clock() >= self.expires_at

    def refresh(self) -> ProviderStatus:
        self.value = self._loader()
        self.expires_at = self._clock() + self._ttl
        logger.debug("Provider status refreshed")
        return self.value

    def get(self, *, force_refresh: bool = False) -> ProviderStatus:
        if force_refresh or self.is_stale():
            return self.refresh()
        return self.value  # type: ignore[return-value]

    def clear(self) -> None:
        self.value = None
        self.expires_at = 0.0


__all__ = ["PROVIDER_MODELS", "ProviderStatusCache", "configured_provider_status"]
