"""Dependency container — wires adapters to ports.

``build_container`` assembles the object graph once per application; route
handlers reach the orchestrator through ``get_orchestrator`` which reads it
off ``app.state``.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

import httpx
import structlog
from fastapi import Request

from textsense.adapters.outbound.llm import build_provider_clients
from textsense.adapters.outbound.store import (
    JsonFileKeyValueStore,
    MemoryKeyValueStore,
    RedisKeyValueStore,
)
from textsense.application.services import PREFERRED_PROVIDER_KEY, AIOrchestrationService
from textsense.config import Settings, StoreBackend, get_settings
from textsense.ports.outbound import KeyValueStorePort
from textsense.shared.providers import ProviderHealthRegistry, RateLimiterFactory, ResponseCache

logger = structlog.get_logger(__name__)


# ── Settings ─────────────────────────────────────────────────
@lru_cache(maxsize=1)
def get_cached_settings() -> Settings:
    return get_settings()


# ── Factories ────────────────────────────────────────────────
def build_store(settings: Settings) -> KeyValueStorePort:
    if settings.store_backend is StoreBackend.REDIS:
        return RedisKeyValueStore(settings.redis_url, max_connections=settings.redis_max_connections)
    if settings.store_backend is StoreBackend.FILE:
        return JsonFileKeyValueStore(settings.store_path)
    return MemoryKeyValueStore()


async def seed_store(store: KeyValueStorePort, settings: Settings) -> None:
    """Copy credentials and preferences configured in the environment into the store."""
    seeded = {
        key: value
        for key, value in (
            ("groq_api_key", settings.groq_api_key),
            ("claude_api_key", settings.claude_api_key),
            (PREFERRED_PROVIDER_KEY, settings.preferred_provider),
        )
        if value
    }
    if seeded:
        await store.set(seeded)
        logger.info("store_seeded", keys=sorted(seeded))


@dataclass
class Container:
    settings: Settings
    store: KeyValueStorePort
    http_client: httpx.AsyncClient
    orchestrator: AIOrchestrationService

    async def close(self) -> None:
        await self.orchestrator.close()
        await self.http_client.aclose()
        await self.store.close()


def build_container(
    settings: Settings,
    *,
    store: KeyValueStorePort | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> Container:
    store = store if store is not None else build_store(settings)
    http_client = http_client or httpx.AsyncClient(timeout=settings.provider_timeout_seconds)

    clients = build_provider_clients(settings, store, http_client, RateLimiterFactory(store))
    orchestrator = AIOrchestrationService(
        clients,
        store,
        cache=ResponseCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
            prefix_chars=settings.cache_key_prefix_chars,
        ),
        health=ProviderHealthRegistry(
            error_threshold=settings.provider_error_threshold,
            error_cooldown_seconds=settings.provider_error_cooldown_seconds,
            rate_limit_cooldown_seconds=settings.provider_rate_limit_cooldown_seconds,
        ),
    )
    return Container(
        settings=settings,
        store=store,
        http_client=http_client,
        orchestrator=orchestrator,
    )


# ── Request-scoped accessors ─────────────────────────────────
def get_container(request: Request) -> Container:
    return request.app.state.container


def get_orchestrator(request: Request) -> AIOrchestrationService:
    return request.app.state.container.orchestrator
