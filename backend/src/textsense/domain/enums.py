"""Domain enumerations for the text explanation service."""

from __future__ import annotations

import enum


class ProviderName(str, enum.Enum):
    """Closed set of explanation backends, including the local heuristic."""

    GROQ = "groq"
    CLAUDE = "claude"
    LOCAL = "local"

    @property
    def is_remote(self) -> bool:
        return self is not ProviderName.LOCAL


class TaskType(str, enum.Enum):
    """Kind of work a fallback chain is built for."""

    EXPLANATION = "explanation"
    SUMMARY = "summary"


class ExplanationLevel(str, enum.Enum):
    SIMPLE = "simple"
    DETAILED = "detailed"
    TECHNICAL = "technical"


class SummaryLength(str, enum.Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class ErrorKind(str, enum.Enum):
    """Normalized classification of a provider failure."""

    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TRANSIENT = "transient"
    REQUEST = "request"


class ProviderState(str, enum.Enum):
    """Health state machine for a registered provider.

    UNKNOWN → AVAILABLE | UNAVAILABLE   (after initialize)
    AVAILABLE ⇄ TEMPORARILY_DISABLED    (failures / cool-down expiry)
    UNAVAILABLE is terminal until the provider is initialized again.
    """

    UNKNOWN = "unknown"
    AVAILABLE = "available"
    TEMPORARILY_DISABLED = "temporarily_disabled"
    UNAVAILABLE = "unavailable"


class ClaudeTier(str, enum.Enum):
    """Anthropic usage tiers, ordered by request allowance."""

    TIER1 = "tier1"
    TIER2 = "tier2"
    TIER3 = "tier3"
    TIER4 = "tier4"
