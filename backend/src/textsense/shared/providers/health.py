"""Provider health registry — keeps failing backends out of fallback chains.

State machine per provider:
    UNKNOWN    → (initialize ok)          → AVAILABLE
    UNKNOWN    → (initialize failed)      → UNAVAILABLE
    AVAILABLE  → (cool-down started)      → TEMPORARILY_DISABLED
    TEMPORARILY_DISABLED → (cool-down expires) → AVAILABLE
    AVAILABLE  → (auth failure)           → UNAVAILABLE
UNAVAILABLE only leaves via ``register`` (a fresh initialize).

Cool-downs are wall-clock deadlines checked lazily on every access.  The
error count survives cool-down expiry, so the first failure after
re-enabling trips the provider again straight away (half-open probe).
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import replace

import structlog

from textsense.domain.enums import ProviderState
from textsense.shared.observability.metrics import PROVIDER_DISABLED
from textsense.shared.providers.types import ProviderStatus

logger = structlog.get_logger(__name__)


class ProviderHealthRegistry:
    """Owns one ``ProviderStatus`` per registered provider."""

    def __init__(
        self,
        *,
        error_threshold: int = 3,
        error_cooldown_seconds: float = 300.0,
        rate_limit_cooldown_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._error_threshold = error_threshold
        self._error_cooldown = error_cooldown_seconds
        self._rate_limit_cooldown = rate_limit_cooldown_seconds
        self._clock = clock
        self._statuses: dict[str, ProviderStatus] = {}

    # ── Registration ─────────────────────────────────────────
    def register(self, name: str, *, initialized: bool, error: str | None = None) -> None:
        """Record the outcome of a provider's ``initialize()``."""
        self._statuses[name] = ProviderStatus(
            name=name,
            initialized=initialized,
            available=initialized,
            error_count=0 if error is None else 1,
            last_error=error,
            registered=True,
        )
        logger.info(
            "provider_registered",
            provider=name,
            state=self._statuses[name].state.value,
            error=error,
        )

    def names(self) -> Iterable[str]:
        return self._statuses.keys()

    # ── Queries ──────────────────────────────────────────────
    def state(self, name: str) -> ProviderState:
        status = self._statuses.get(name)
        if status is None:
            return ProviderState.UNKNOWN
        self._maybe_reenable(status)
        return status.state

    def is_available(self, name: str) -> bool:
        return self.state(name) == ProviderState.AVAILABLE

    def available_providers(self) -> list[str]:
        return [name for name in self._statuses if self.is_available(name)]

    def snapshot(self) -> dict[str, ProviderStatus]:
        """Copies of every status, cool-downs resolved as of now."""
        result: dict[str, ProviderStatus] = {}
        for name, status in self._statuses.items():
            self._maybe_reenable(status)
            result[name] = replace(status)
        return result

    # ── Events ───────────────────────────────────────────────
    def mark_success(self, name: str) -> None:
        status = self._statuses.get(name)
        if status is None:
            return
        status.error_count = 0
        status.last_error = None
        status.disabled_until = None
        status.available = status.initialized

    def record_error(self, name: str, error: str) -> int:
        """Count a non-rate-limit failure; disable once the threshold is hit.

        Returns the provider's error count after this failure.
        """
        status = self._statuses.get(name)
        if status is None:
            return 0
        status.error_count += 1
        status.last_error = error
        if status.error_count >= self._error_threshold:
            self.disable(name, self._error_cooldown, reason="error_threshold")
        return status.error_count

    def record_rate_limited(self, name: str, error: str) -> None:
        """Quota exhaustion disables immediately, whatever the error count."""
        status = self._statuses.get(name)
        if status is None:
            return
        status.last_error = error
        self.disable(name, self._rate_limit_cooldown, reason="rate_limited")

    def mark_unavailable(self, name: str, error: str) -> None:
        """Terminal for the session; only a new ``register`` revives it."""
        status = self._statuses.get(name)
        if status is None:
            return
        status.initialized = False
        status.available = False
        status.disabled_until = None
        status.last_error = error
        PROVIDER_DISABLED.labels(provider=name, reason="unavailable").inc()
        logger.warning("provider_marked_unavailable", provider=name, error=error)

    def disable(self, name: str, seconds: float, *, reason: str) -> None:
        status = self._statuses.get(name)
        if status is None or not status.initialized:
            return
        status.available = False
        status.disabled_until = self._clock() + seconds
        PROVIDER_DISABLED.labels(provider=name, reason=reason).inc()
        logger.warning(
            "provider_temporarily_disabled",
            provider=name,
            reason=reason,
            cooldown_s=seconds,
            error_count=status.error_count,
        )

    # ── Internals ────────────────────────────────────────────
    def _maybe_reenable(self, status: ProviderStatus) -> None:
        if status.available or status.disabled_until is None:
            return
        if self._clock() >= status.disabled_until:
            status.available = status.initialized
            status.disabled_until = None
            logger.info(
                "provider_reenabled",
                provider=status.name,
                error_count=status.error_count,
            )
