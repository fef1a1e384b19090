"""Short-lived response cache.

Entries expire a fixed TTL after insertion, independent of access.  When
full, the *oldest inserted* entry is evicted (FIFO, not LRU), so a hot entry
can be dropped before a cold one that was inserted later.
"""

from __future__ import annotations

import hashlib
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CacheEntry:
    key: str
    response: Any
    inserted_at: float


class ResponseCache:
    """TTL + FIFO memoization keyed by (operation, text prefix, level tag)."""

    def __init__(
        self,
        *,
        ttl_seconds: float = 300.0,
        max_entries: int = 100,
        prefix_chars: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._prefix_chars = prefix_chars
        self._clock = clock
        # dict preserves insertion order
        self._entries: dict[str, CacheEntry] = {}

    def make_key(self, operation: str, text: str, tag: str) -> str:
        prefix = text.strip()[: self._prefix_chars]
        digest = hashlib.sha256(prefix.encode("utf-8")).hexdigest()[:24]
        return f"{operation}:{tag}:{digest}"

    def get(self, operation: str, text: str, tag: str) -> Any | None:
        key = self.make_key(operation, text, tag)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.inserted_at >= self._ttl:
            del self._entries[key]
            return None
        return entry.response

    def put(self, operation: str, text: str, tag: str, response: Any) -> None:
        if self._max_entries <= 0:
            return
        key = self.make_key(operation, text, tag)
        self._entries.pop(key, None)
        while len(self._entries) >= self._max_entries:
            evicted = next(iter(self._entries))
            del self._entries[evicted]
            logger.debug("response_cache_evicted", key=evicted)
        self._entries[key] = CacheEntry(key=key, response=response, inserted_at=self._clock())

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now - e.inserted_at >= self._ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
