"""Sliding-window rate limiter with persisted state.

Every call prunes timestamps older than the window, then derives
``remaining = capacity − len(timestamps)``.  Exact, and O(requests in
window), which is fine at the configured scales (≤ 4000/min).

State is loaded lazily from the key-value store on first use and written
back after every admission decision, so limits survive process restarts.
Admissions within one process are serialized with an ``asyncio.Lock``;
nothing serializes two processes sharing the same identifier.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import structlog

from textsense.domain.enums import ClaudeTier
from textsense.shared.observability.metrics import RATE_LIMIT_REJECTIONS
from textsense.shared.providers.types import RateLimitStatus

if TYPE_CHECKING:
    from textsense.ports.outbound import KeyValueStorePort

logger = structlog.get_logger(__name__)

STORAGE_KEY_PREFIX = "rate_limiter:"
MAX_POLL_INTERVAL_MS = 5_000.0
MIN_POLL_INTERVAL_MS = 50.0


class SlidingWindowRateLimiter:
    """Per-backend admission control over a rolling window."""

    def __init__(
        self,
        identifier: str,
        capacity: int,
        window_ms: float,
        *,
        store: KeyValueStorePort | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        if window_ms <= 0:
            raise ValueError("window_ms must be > 0")
        self._identifier = identifier
        self._capacity = capacity
        self._window_ms = float(window_ms)
        self._store = store
        self._clock = clock
        self._sleep = sleep

        self._requests: deque[float] = deque()
        self._loaded = store is None
        self._lock = asyncio.Lock()

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def window_ms(self) -> float:
        return self._window_ms

    @property
    def storage_key(self) -> str:
        return f"{STORAGE_KEY_PREFIX}{self._identifier}"

    # ── Admission ────────────────────────────────────────────
    async def admit(self) -> bool:
        """Consume one unit of window capacity if available."""
        async with self._lock:
            await self._ensure_loaded()
            now = self._now_ms()
            self._prune(now)

            admitted = len(self._requests) < self._capacity
            if admitted:
                self._requests.append(now)
            else:
                RATE_LIMIT_REJECTIONS.labels(identifier=self._identifier).inc()
                logger.debug(
                    "rate_limit_rejected",
                    identifier=self._identifier,
                    requests_in_window=len(self._requests),
                    capacity=self._capacity,
                )
            await self._save()
            return admitted

    async def status(self) -> RateLimitStatus:
        async with self._lock:
            await self._ensure_loaded()
            now = self._now_ms()
            self._prune(now)
            in_window = len(self._requests)
            remaining = max(0, self._capacity - in_window)
            reset_in = (
                max(0.0, self._requests[0] + self._window_ms - now)
                if self._requests
                else 0.0
            )
            return RateLimitStatus(
                identifier=self._identifier,
                remaining=remaining,
                capacity=self._capacity,
                window_ms=self._window_ms,
                requests_in_window=in_window,
                reset_in_ms=reset_in,
                rate_limited=remaining == 0,
            )

    async def await_admission(self, max_wait_ms: float = 60_000) -> bool:
        """Poll ``admit()`` until admitted or ``max_wait_ms`` elapses."""
        start = self._now_ms()
        while True:
            if await self.admit():
                return True
            elapsed = self._now_ms() - start
            left = max_wait_ms - elapsed
            if left <= 0:
                return False
            status = await self.status()
            wait_ms = min(
                max(status.reset_in_ms, MIN_POLL_INTERVAL_MS),
                left,
                MAX_POLL_INTERVAL_MS,
            )
            await self._sleep(wait_ms / 1000)

    async def is_rate_limited(self) -> bool:
        return (await self.status()).rate_limited

    async def time_until_next_slot_ms(self) -> float:
        status = await self.status()
        return 0.0 if status.remaining > 0 else status.reset_in_ms

    async def reset(self) -> None:
        """Clear request history and persist the empty window."""
        async with self._lock:
            self._requests.clear()
            self._loaded = True
            await self._save()
            logger.info("rate_limiter_reset", identifier=self._identifier)

    # ── Persistence ──────────────────────────────────────────
    async def _ensure_loaded(self) -> None:
        """Caller holds lock."""
        if self._loaded:
            return
        if self._store is None:
            self._loaded = True
            return
        # Stay unloaded if the read fails so the next call retries it.
        saved = (await self._store.get([self.storage_key])).get(self.storage_key)
        self._loaded = True
        if saved is None:
            return
        requests = saved.get("requests") if isinstance(saved, dict) else None
        if not isinstance(requests, list):
            logger.warning("rate_limiter_state_invalid", identifier=self._identifier)
            return
        valid = sorted(
            float(ts)
            for ts in requests
            if isinstance(ts, (int, float)) and not isinstance(ts, bool) and ts > 0
        )
        self._requests = deque(valid)
        self._prune(self._now_ms())
        logger.debug(
            "rate_limiter_state_loaded",
            identifier=self._identifier,
            requests_in_window=len(self._requests),
        )

    async def _save(self) -> None:
        """Caller holds lock."""
        if self._store is None:
            return
        recent = list(self._requests)[-self._capacity:] if self._capacity else []
        await self._store.set(
            {
                self.storage_key: {
                    "capacity": self._capacity,
                    "window_ms": self._window_ms,
                    "requests": recent,
                }
            }
        )

    # ── Internals ────────────────────────────────────────────
    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _prune(self, now_ms: float) -> None:
        cutoff = now_ms - self._window_ms
        while self._requests and self._requests[0] <= cutoff:
            self._requests.popleft()


# ═══════════════════════════════════════════════════════════════
#  Pre-configured limiters
# ═══════════════════════════════════════════════════════════════
CLAUDE_TIER_LIMITS: dict[ClaudeTier, int] = {
    ClaudeTier.TIER1: 60,
    ClaudeTier.TIER2: 1_000,
    ClaudeTier.TIER3: 2_000,
    ClaudeTier.TIER4: 4_000,
}

GROQ_REQUESTS_PER_HOUR = 100
HOUR_MS = 3_600_000
MINUTE_MS = 60_000


class RateLimiterFactory:
    """Builds limiters for the known backends, sharing one store and clock."""

    def __init__(
        self,
        store: KeyValueStorePort | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock

    def groq(self) -> SlidingWindowRateLimiter:
        return self.custom(GROQ_REQUESTS_PER_HOUR, HOUR_MS / 1000, "groq")

    def claude(self, tier: ClaudeTier | str = ClaudeTier.TIER1) -> SlidingWindowRateLimiter:
        try:
            resolved = ClaudeTier(tier)
        except ValueError:
            logger.warning("claude_tier_unknown", tier=str(tier), fallback=ClaudeTier.TIER1.value)
            resolved = ClaudeTier.TIER1
        return self.custom(
            CLAUDE_TIER_LIMITS[resolved], MINUTE_MS / 1000, f"claude_{resolved.value}"
        )

    def custom(
        self, requests: int, window_seconds: float, identifier: str
    ) -> SlidingWindowRateLimiter:
        return SlidingWindowRateLimiter(
            identifier,
            requests,
            window_seconds * 1000,
            store=self._store,
            clock=self._clock,
        )

    @staticmethod
    def tier_for_limit(limit: int) -> ClaudeTier:
        """Map a backend-echoed requests-per-minute limit to a tier."""
        if limit >= CLAUDE_TIER_LIMITS[ClaudeTier.TIER4]:
            return ClaudeTier.TIER4
        if limit >= CLAUDE_TIER_LIMITS[ClaudeTier.TIER3]:
            return ClaudeTier.TIER3
        if limit >= CLAUDE_TIER_LIMITS[ClaudeTier.TIER2]:
            return ClaudeTier.TIER2
        return ClaudeTier.TIER1
