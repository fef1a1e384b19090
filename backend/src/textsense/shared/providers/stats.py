"""Request statistics for the orchestrator.

Cumulative counters plus a running mean of successful response times and a
bounded ring of the most recent provider errors.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

from textsense.domain.enums import ErrorKind
from textsense.domain.value_objects import utc_now
from textsense.shared.providers.types import ErrorRecord, StatisticsSnapshot

MAX_RECENT_ERRORS = 10


class RequestStatistics:
    def __init__(self, providers: Iterable[str] = (), *, max_errors: int = MAX_RECENT_ERRORS) -> None:
        self._total_requests = 0
        self._successful_requests = 0
        self._average_ms = 0.0
        self._usage: dict[str, int] = {name: 0 for name in providers}
        self._errors: deque[ErrorRecord] = deque(maxlen=max_errors)

    def record_request(self) -> None:
        self._total_requests += 1

    def record_success(self, provider: str, duration_ms: float) -> None:
        self._successful_requests += 1
        self._usage[provider] = self._usage.get(provider, 0) + 1
        n = self._successful_requests
        self._average_ms += (duration_ms - self._average_ms) / n

    def record_error(self, provider: str, kind: ErrorKind, error: str) -> None:
        self._errors.append(
            ErrorRecord(provider=provider, kind=kind, error=error, timestamp=utc_now())
        )

    @property
    def total_requests(self) -> int:
        return self._total_requests

    def snapshot(self) -> StatisticsSnapshot:
        return StatisticsSnapshot(
            total_requests=self._total_requests,
            successful_requests=self._successful_requests,
            provider_usage=dict(self._usage),
            average_response_time_ms=self._average_ms,
            recent_errors=tuple(self._errors),
        )
