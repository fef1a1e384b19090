"""Remote text provider clients.

Each client wraps one backend behind ``TextProviderPort``; construction is
cheap and side-effect free, credentials load in ``initialize()``.
"""

from __future__ import annotations

import httpx

from textsense.adapters.outbound.llm.base import BaseProviderClient, classify_http_error
from textsense.adapters.outbound.llm.claude import ClaudeClient
from textsense.adapters.outbound.llm.groq import GroqClient
from textsense.config import Settings
from textsense.ports.outbound import KeyValueStorePort
from textsense.shared.providers.rate_limiter import RateLimiterFactory


def build_provider_clients(
    settings: Settings,
    store: KeyValueStorePort,
    http_client: httpx.AsyncClient,
    factory: RateLimiterFactory | None = None,
) -> list[BaseProviderClient]:
    """Build every remote client from settings, sharing one HTTP client."""
    limiters = factory or RateLimiterFactory(store)
    return [
        GroqClient(
            http_client,
            store,
            limiters.groq(),
            base_url=settings.groq_base_url,
            model=settings.groq_model,
            validate_credentials=settings.validate_credentials,
        ),
        ClaudeClient(
            http_client,
            store,
            limiters,
            tier=settings.claude_tier,
            api_version=settings.claude_api_version,
            base_url=settings.claude_base_url,
            model=settings.claude_model,
            validate_credentials=settings.validate_credentials,
        ),
    ]


__all__ = [
    "BaseProviderClient",
    "ClaudeClient",
    "GroqClient",
    "build_provider_clients",
    "classify_http_error",
]
