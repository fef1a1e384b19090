"""Core types for the provider orchestration layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from textsense.domain.enums import ErrorKind, ProviderState


@dataclass(frozen=True)
class RateLimitStatus:
    """Read-only snapshot of a sliding-window limiter.

    Attributes:
        identifier:         Persistence key suffix (e.g. "groq", "claude_tier1").
        remaining:          Admissions left in the current window.
        capacity:           Max admissions per window.
        window_ms:          Window length in milliseconds.
        requests_in_window: Timestamps currently inside the window.
        reset_in_ms:        Time until the earliest timestamp leaves the window.
        rate_limited:       True when ``remaining`` is zero.
    """

    identifier: str
    remaining: int
    capacity: int
    window_ms: float
    requests_in_window: int
    reset_in_ms: float
    rate_limited: bool


@dataclass
class ProviderStatus:
    """Mutable health record for one registered provider."""

    name: str
    initialized: bool = False
    available: bool = False
    error_count: int = 0
    last_error: str | None = None
    disabled_until: float | None = None
    registered: bool = False

    @property
    def state(self) -> ProviderState:
        if not self.registered:
            return ProviderState.UNKNOWN
        if not self.initialized:
            return ProviderState.UNAVAILABLE
        if not self.available:
            return ProviderState.TEMPORARILY_DISABLED
        return ProviderState.AVAILABLE


@dataclass(frozen=True)
class ErrorRecord:
    provider: str
    kind: ErrorKind
    error: str
    timestamp: datetime


@dataclass(frozen=True)
class StatisticsSnapshot:
    """Read-only view of orchestrator statistics."""

    total_requests: int
    successful_requests: int
    provider_usage: dict[str, int]
    average_response_time_ms: float
    recent_errors: tuple[ErrorRecord, ...]
