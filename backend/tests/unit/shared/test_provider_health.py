"""Tests for provider health, fallback chains and request statistics."""

from __future__ import annotations

import pytest

from textsense.domain.enums import ErrorKind, ProviderName, ProviderState, TaskType
from textsense.shared.providers.chain import build_provider_chain, promote, validate_chains
from textsense.shared.providers.health import ProviderHealthRegistry
from textsense.shared.providers.stats import RequestStatistics


@pytest.fixture
def registry(clock) -> ProviderHealthRegistry:
    reg = ProviderHealthRegistry(clock=clock)
    reg.register("groq", initialized=True)
    reg.register("claude", initialized=False)
    return reg


# ═══════════════════════════════════════════════════════════════
#  ProviderHealthRegistry
# ═══════════════════════════════════════════════════════════════
class TestProviderHealthRegistry:
    def test_initial_states(self, registry: ProviderHealthRegistry) -> None:
        assert registry.state("groq") == ProviderState.AVAILABLE
        assert registry.state("claude") == ProviderState.UNAVAILABLE
        assert registry.state("nobody") == ProviderState.UNKNOWN
        assert registry.available_providers() == ["groq"]

    def test_threshold_disables_for_five_minutes(self, registry, clock) -> None:
        assert registry.record_error("groq", "boom") == 1
        assert registry.record_error("groq", "boom") == 2
        assert registry.is_available("groq")
        assert registry.record_error("groq", "boom") == 3
        assert registry.state("groq") == ProviderState.TEMPORARILY_DISABLED

        clock.advance(299)
        assert not registry.is_available("groq")
        clock.advance(1)
        assert registry.is_available("groq")

    def test_reenabled_provider_keeps_error_count(self, registry, clock) -> None:
        for _ in range(3):
            registry.record_error("groq", "boom")
        clock.advance(300)
        assert registry.is_available("groq")
        assert registry.snapshot()["groq"].error_count == 3

        registry.record_error("groq", "again")
        assert registry.state("groq") == ProviderState.TEMPORARILY_DISABLED

    def test_rate_limit_disables_for_one_minute_without_counting(self, registry, clock) -> None:
        registry.record_rate_limited("groq", "429")
        status = registry.snapshot()["groq"]
        assert status.state == ProviderState.TEMPORARILY_DISABLED
        assert status.error_count == 0
        assert status.disabled_until == pytest.approx(clock() + 60)

        clock.advance(60)
        assert registry.is_available("groq")

    def test_rate_limit_ignores_prior_error_count(self, registry, clock) -> None:
        registry.record_error("groq", "boom")
        registry.record_error("groq", "boom")
        registry.record_rate_limited("groq", "429")

        status = registry.snapshot()["groq"]
        assert status.state == ProviderState.TEMPORARILY_DISABLED
        assert status.error_count == 2
        assert status.disabled_until == pytest.approx(clock() + 60)

        clock.advance(60)
        assert registry.is_available("groq")

        assert registry.record_error("groq", "boom") == 3
        status = registry.snapshot()["groq"]
        assert status.state == ProviderState.TEMPORARILY_DISABLED
        assert status.disabled_until == pytest.approx(clock() + 300)

    def test_success_resets(self, registry) -> None:
        registry.record_error("groq", "boom")
        registry.mark_success("groq")
        status = registry.snapshot()["groq"]
        assert status.error_count == 0
        assert status.last_error is None

    def test_unavailable_is_terminal_until_register(self, registry, clock) -> None:
        registry.mark_unavailable("groq", "bad key")
        clock.advance(3_600)
        assert registry.state("groq") == ProviderState.UNAVAILABLE

        registry.register("groq", initialized=True)
        assert registry.is_available("groq")

    def test_uninitialized_provider_is_never_disabled(self, registry) -> None:
        registry.record_rate_limited("claude", "429")
        assert registry.snapshot()["claude"].disabled_until is None
        assert registry.state("claude") == ProviderState.UNAVAILABLE

    def test_snapshot_is_a_copy(self, registry) -> None:
        registry.snapshot()["groq"].error_count = 99
        assert registry.snapshot()["groq"].error_count == 0

    def test_custom_thresholds(self, clock) -> None:
        reg = ProviderHealthRegistry(
            error_threshold=1, error_cooldown_seconds=5, clock=clock
        )
        reg.register("groq", initialized=True)
        reg.record_error("groq", "boom")
        assert not reg.is_available("groq")
        clock.advance(5)
        assert reg.is_available("groq")


# ═══════════════════════════════════════════════════════════════
#  Fallback chains
# ═══════════════════════════════════════════════════════════════
class TestProviderChain:
    def test_task_defaults(self) -> None:
        assert build_provider_chain(TaskType.EXPLANATION) == [
            ProviderName.GROQ,
            ProviderName.CLAUDE,
            ProviderName.LOCAL,
        ]
        assert build_provider_chain(TaskType.SUMMARY) == [
            ProviderName.CLAUDE,
            ProviderName.GROQ,
            ProviderName.LOCAL,
        ]

    def test_preferred_is_promoted(self) -> None:
        assert build_provider_chain(TaskType.EXPLANATION, ProviderName.CLAUDE) == [
            ProviderName.CLAUDE,
            ProviderName.GROQ,
            ProviderName.LOCAL,
        ]

    def test_preferred_local_goes_first(self) -> None:
        chain = build_provider_chain(TaskType.SUMMARY, ProviderName.LOCAL)
        assert chain == [ProviderName.LOCAL, ProviderName.CLAUDE, ProviderName.GROQ]

    def test_local_appended_when_missing(self) -> None:
        chain = build_provider_chain(
            TaskType.EXPLANATION,
            chains={TaskType.EXPLANATION: (ProviderName.GROQ,)},
        )
        assert chain == [ProviderName.GROQ, ProviderName.LOCAL]

    def test_promote_without_preference_is_identity(self) -> None:
        chain = (ProviderName.GROQ, ProviderName.LOCAL)
        assert promote(chain, None) == chain

    def test_validate_rejects_chain_not_ending_in_local(self) -> None:
        with pytest.raises(ValueError, match="must end with 'local'"):
            validate_chains(
                {
                    TaskType.EXPLANATION: (ProviderName.LOCAL, ProviderName.GROQ),
                    TaskType.SUMMARY: (ProviderName.LOCAL,),
                }
            )

    def test_validate_rejects_missing_task(self) -> None:
        with pytest.raises(ValueError, match="summary"):
            validate_chains({TaskType.EXPLANATION: (ProviderName.LOCAL,)})


# ═══════════════════════════════════════════════════════════════
#  RequestStatistics
# ═══════════════════════════════════════════════════════════════
class TestRequestStatistics:
    def test_running_average(self) -> None:
        stats = RequestStatistics(["groq", "claude", "local"])
        for ms in (100.0, 200.0, 600.0):
            stats.record_success("groq", ms)
        snap = stats.snapshot()
        assert snap.average_response_time_ms == pytest.approx(300.0)
        assert snap.successful_requests == 3
        assert snap.provider_usage == {"groq": 3, "claude": 0, "local": 0}

    def test_recent_errors_ring(self) -> None:
        stats = RequestStatistics(max_errors=10)
        for i in range(12):
            stats.record_error("groq", ErrorKind.TRANSIENT, f"err {i}")
        errors = stats.snapshot().recent_errors
        assert len(errors) == 10
        assert errors[0].error == "err 2"
        assert errors[-1].kind is ErrorKind.TRANSIENT

    def test_request_counter(self) -> None:
        stats = RequestStatistics()
        stats.record_request()
        stats.record_request()
        assert stats.total_requests == 2
        assert stats.snapshot().successful_requests == 0
