"""Shared test fixtures."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable
from typing import Any

import pytest

# Add src to path so imports work
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

from textsense.adapters.outbound.store import MemoryKeyValueStore
from textsense.domain.enums import ExplanationLevel, ProviderName, SummaryLength
from textsense.domain.value_objects import (
    GenerationOptions,
    ProviderExplanation,
    ProviderSummary,
)
from textsense.ports.outbound import TextProviderPort
from textsense.shared.providers.types import RateLimitStatus


class FakeClock:
    """Manually advanced clock; ``sleep`` advances it instead of waiting."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StubProvider(TextProviderPort):
    """Scripted provider: each call pops the next outcome (result or exception)."""

    def __init__(
        self,
        name: ProviderName,
        *,
        initialized: bool = True,
        outcomes: Iterable[Any] = (),
    ) -> None:
        self.name = name
        self._init_result = initialized
        self.outcomes: list[Any] = list(outcomes)
        self.calls: list[tuple[str, str, str]] = []
        self.options: list[GenerationOptions | None] = []
        self.init_calls = 0

    async def initialize(self) -> bool:
        self.init_calls += 1
        return self._init_result

    def _next(self) -> Any:
        if not self.outcomes:
            return None
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def explain(
        self,
        text: str,
        level: ExplanationLevel,
        options: GenerationOptions | None = None,
    ) -> ProviderExplanation:
        self.calls.append(("explain", text, level.value))
        self.options.append(options)
        outcome = self._next()
        return outcome or ProviderExplanation(
            explanation=f"{self.name.value} explains", tokens_used=42, model=f"{self.name.value}-model"
        )

    async def summarize(
        self,
        text: str,
        length: SummaryLength,
        options: GenerationOptions | None = None,
    ) -> ProviderSummary:
        self.calls.append(("summarize", text, length.value))
        self.options.append(options)
        outcome = self._next()
        return outcome or ProviderSummary(
            summary=f"{self.name.value} summary", tokens_used=21, model=f"{self.name.value}-model"
        )

    async def rate_limit_status(self) -> RateLimitStatus:
        return RateLimitStatus(
            identifier=self.name.value,
            remaining=10,
            capacity=10,
            window_ms=60_000,
            requests_in_window=0,
            reset_in_ms=0,
            rate_limited=False,
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def groq_stub() -> StubProvider:
    return StubProvider(ProviderName.GROQ)


@pytest.fixture
def claude_stub() -> StubProvider:
    return StubProvider(ProviderName.CLAUDE)


SAMPLE_TEXT = (
    "Photosynthesis converts sunlight into chemical energy. Plants absorb carbon dioxide "
    "through their leaves. Chlorophyll captures light in the chloroplasts. Oxygen is released "
    "as a byproduct. Glucose stores the energy for later use. This process sustains most "
    "ecosystems on Earth. Without it, the atmosphere would lack oxygen."
)


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_TEXT


@pytest.fixture
def make_stub():
    """Factory for scripted providers: ``make_stub(ProviderName.GROQ, outcomes=[...])``."""
    return StubProvider
