"""Domain value objects — immutable results and options.

Results are frozen so a cached instance can be handed to any number of
callers without one of them mutating what the next one sees.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════
#  Generation options
# ═══════════════════════════════════════════════════════════════
@dataclass(frozen=True, slots=True)
class GenerationOptions:
    """Per-call overrides passed through to provider clients.

    ``None`` means "use the client's default".
    """

    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None


# ═══════════════════════════════════════════════════════════════
#  Text analysis
# ═══════════════════════════════════════════════════════════════
@dataclass(frozen=True, slots=True)
class TextAnalysis:
    """Lightweight statistics used by the local fallback."""

    word_count: int
    sentence_count: int
    keywords: tuple[str, ...]
    topics: tuple[str, ...]
    text_type: str
    reading_level: str
    avg_words_per_sentence: int


# ═══════════════════════════════════════════════════════════════
#  Provider-level results
# ═══════════════════════════════════════════════════════════════
@dataclass(frozen=True, slots=True)
class ProviderExplanation:
    """What a single provider client returns for an explanation."""

    explanation: str
    tokens_used: int
    model: str


@dataclass(frozen=True, slots=True)
class ProviderSummary:
    summary: str
    tokens_used: int
    model: str


# ═══════════════════════════════════════════════════════════════
#  Caller-facing results
# ═══════════════════════════════════════════════════════════════
@dataclass(frozen=True, slots=True)
class ExplanationResult:
    """Unified explanation handed back by the orchestrator."""

    explanation: str
    provider: str
    level: str
    timestamp: datetime = field(default_factory=utc_now)
    model: str | None = None
    tokens_used: int = 0
    analysis: TextAnalysis | None = None


@dataclass(frozen=True, slots=True)
class SummaryResult:
    summary: str
    provider: str
    original_length: int
    summary_length: int
    timestamp: datetime = field(default_factory=utc_now)
    model: str | None = None
    tokens_used: int = 0
