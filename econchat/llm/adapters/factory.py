from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from ...config import Settings, get_settings
from ...models import RouterConfig, Tier
from .anthropic import ANTHROPIC_PROFILE, AnthropicCodec
from .base import ProviderAdapter
from .gemini import GEMINI_PROFILE, GeminiCodec
from .groq import GROQ_PROFILE, OpenAICompatibleCodec

logger = logging.getLogger(__name__)


def build_anthropic_adapter(settings: Settings, timeout: float, client: Optional[httpx.AsyncClient] = None) -> ProviderAdapter:
    return ProviderAdapter(
        ANTHROPIC_PROFILE,
        AnthropicCodec(),
        api_key=settings.anthropic_api_key,
        base_url=settings.anthropic_base_url,
        timeout=timeout,
        client=client,
    )


def build_gemini_adapter(settings: Settings, timeout: float, client: Optional[httpx.AsyncClient] = None) -> ProviderAdapter:
    return ProviderAdapter(
        GEMINI_PROFILE,
        GeminiCodec(),
        api_key=settings.gemini_api_key,
        base_url=settings.gemini_base_url,
        timeout=timeout,
        client=client,
    )


def build_groq_adapter(settings: Settings, timeout: float, client: Optional[httpx.AsyncClient] = None) -> ProviderAdapter:
    return ProviderAdapter(
        GROQ_PROFILE,
        OpenAICompatibleCodec(),
        api_key=settings.groq_api_key,
        base_url=settings.groq_base_url,
        timeout=timeout,
        client=client,
    )


def build_default_adapters(
    settings: Optional[Settings] = None,
    config: Optional[RouterConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Dict[Tier, ProviderAdapter]:
    """Build the tier -> adapter map from settings."""
    settings = settings or get_settings()
    config = config or RouterConfig.from_settings(settings)
    timeout = config.timeout_seconds

    if settings.standard_provider == "groq":
        standard = build_groq_adapter(settings, timeout, client)
    else:
        standard = build_gemini_adapter(settings, timeout, client)

    adapters = {
        Tier.PREMIUM: build_anthropic_adapter(settings, timeout, client),
        Tier.STANDARD: standard,
    }
    for tier, adapter in adapters.items():
        if not adapter.api_key:
            logger.warning("No API key configured for %s (tier %s); calls will fail over", adapter.provider, int(tier))
    return adapters
