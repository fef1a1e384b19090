"""Outbound ports — interfaces that infrastructure adapters must implement.

These are the *driven* ports in hexagonal architecture.  The orchestrator
depends only on these abstractions, never on concrete implementations
(HTTP clients, Redis, files on disk).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from textsense.domain.enums import ExplanationLevel, ProviderName, SummaryLength
from textsense.domain.value_objects import (
    GenerationOptions,
    ProviderExplanation,
    ProviderSummary,
)
from textsense.shared.providers.types import RateLimitStatus


# ═══════════════════════════════════════════════════════════════
#  Key-value store port
# ═══════════════════════════════════════════════════════════════
class KeyValueStorePort(ABC):
    """Persisted settings store: credentials, limiter state, preferences.

    ``get`` returns only the keys that exist; values are JSON-compatible.
    """

    @abstractmethod
    async def get(self, keys: Iterable[str]) -> dict[str, Any]: ...

    @abstractmethod
    async def set(self, mapping: Mapping[str, Any]) -> None: ...

    @abstractmethod
    async def delete(self, keys: Iterable[str]) -> None: ...

    async def close(self) -> None:
        return None

    async def health_check(self) -> bool:
        return True


# ═══════════════════════════════════════════════════════════════
#  Text provider port
# ═══════════════════════════════════════════════════════════════
class TextProviderPort(ABC):
    """One remote explanation backend.

    Implementations must raise only ``ProviderError`` subclasses from
    ``explain``/``summarize`` so the orchestrator can branch on ``kind``.
    """

    name: ProviderName

    @abstractmethod
    async def initialize(self) -> bool:
        """Load credentials; return False (never raise) when unusable."""
        ...

    @abstractmethod
    async def explain(
        self,
        text: str,
        level: ExplanationLevel,
        options: GenerationOptions | None = None,
    ) -> ProviderExplanation: ...

    @abstractmethod
    async def summarize(
        self,
        text: str,
        length: SummaryLength,
        options: GenerationOptions | None = None,
    ) -> ProviderSummary: ...

    @abstractmethod
    async def rate_limit_status(self) -> RateLimitStatus: ...

    async def await_availability(self, max_wait_ms: float = 60_000) -> bool:
        return True

    def get_status(self) -> dict[str, Any]:
        return {"name": self.name.value}

    async def close(self) -> None:
        return None
