"""Data Transfer Objects — Pydantic models for API boundaries.

Option values (level, length, provider) are plain strings here; the
orchestrator validates them so unknown values surface as ``INVALID_INPUT``
like every other domain error.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from textsense.domain.value_objects import GenerationOptions


# ═══════════════════════════════════════════════════════════════
#  Common
# ═══════════════════════════════════════════════════════════════
class ErrorResponse(BaseModel):
    code: str
    message: str


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    environment: str = "development"
    services: dict[str, str] = Field(default_factory=dict)
    available_providers: list[str] = Field(default_factory=list)


# ═══════════════════════════════════════════════════════════════
#  Generation
# ═══════════════════════════════════════════════════════════════
class GenerationOptionsIn(BaseModel):
    model: str | None = None
    max_tokens: int | None = Field(None, ge=1, le=4096)
    temperature: float | None = Field(None, ge=0.0, le=2.0)
    top_p: float | None = Field(None, gt=0.0, le=1.0)

    def to_domain(self) -> GenerationOptions:
        return GenerationOptions(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
        )


class ExplainRequest(BaseModel):
    text: str = Field(..., max_length=50_000)
    level: str = "simple"
    preferred_provider: str | None = None
    skip_cache: bool = False
    options: GenerationOptionsIn | None = None


class SummarizeRequest(BaseModel):
    text: str = Field(..., max_length=50_000)
    length: str = "medium"
    preferred_provider: str | None = None
    skip_cache: bool = False
    options: GenerationOptionsIn | None = None


class TextAnalysisOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    word_count: int
    sentence_count: int
    keywords: list[str]
    topics: list[str]
    text_type: str
    reading_level: str
    avg_words_per_sentence: float


class ExplanationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    explanation: str
    provider: str
    level: str
    timestamp: datetime
    model: str | None = None
    tokens_used: int = 0
    analysis: TextAnalysisOut | None = None


class SummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    summary: str
    provider: str
    original_length: int
    summary_length: int
    timestamp: datetime
    model: str | None = None
    tokens_used: int = 0


# ═══════════════════════════════════════════════════════════════
#  Providers
# ═══════════════════════════════════════════════════════════════
class ErrorRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    provider: str
    kind: str
    error: str
    timestamp: datetime


class ProviderStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    state: str
    initialized: bool
    available: bool
    error_count: int
    last_error: str | None = None
    disabled_until: float | None = None


class StatisticsResponse(BaseModel):
    total_requests: int
    successful_requests: int
    provider_usage: dict[str, int]
    average_response_time_ms: float
    recent_errors: list[ErrorRecordOut]
    provider_status: dict[str, ProviderStatusOut]
    cache_size: int
    uptime_s: float


class StatusResponse(BaseModel):
    initialized: bool
    available_providers: list[str]
    total_providers: int
    cache_enabled: bool
    statistics: StatisticsResponse
    providers: dict[str, dict[str, Any]] = Field(default_factory=dict)
