"""Health, AI and provider REST routers."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from textsense import __version__
from textsense.application.dtos import (
    ErrorRecordOut,
    ExplainRequest,
    ExplanationResponse,
    HealthResponse,
    ProviderStatusOut,
    StatisticsResponse,
    StatusResponse,
    SummarizeRequest,
    SummaryResponse,
    TextAnalysisOut,
)
from textsense.application.services import AIOrchestrationService, OrchestratorStatistics
from textsense.dependencies import Container, get_container, get_orchestrator


# ═══════════════════════════════════════════════════════════════
#  Health
# ═══════════════════════════════════════════════════════════════
health_router = APIRouter(tags=["Health"])


@health_router.get("/health", response_model=HealthResponse)
async def health_check(container: Container = Depends(get_container)) -> HealthResponse:
    store_ok = await container.store.health_check()
    status = container.orchestrator.get_status()
    return HealthResponse(
        # local fallback keeps the service answering even with no remote provider
        status="ok" if store_ok else "degraded",
        version=__version__,
        environment=container.settings.app_env.value,
        services={
            "store": f"{container.settings.store_backend.value} ({'ok' if store_ok else 'unreachable'})",
            "orchestrator": "initialized" if status.initialized else "starting",
        },
        available_providers=status.available_providers,
    )


@health_router.get("/metrics")
async def prometheus_metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


# ═══════════════════════════════════════════════════════════════
#  AI
# ═══════════════════════════════════════════════════════════════
ai_router = APIRouter(prefix="/ai", tags=["AI"])


@ai_router.post("/explain", response_model=ExplanationResponse)
async def explain(
    body: ExplainRequest,
    service: AIOrchestrationService = Depends(get_orchestrator),
) -> ExplanationResponse:
    result = await service.explain_text(
        body.text,
        body.level,
        preferred_provider=body.preferred_provider,
        skip_cache=body.skip_cache,
        options=body.options.to_domain() if body.options else None,
    )
    analysis = result.analysis
    return ExplanationResponse(
        explanation=result.explanation,
        provider=result.provider,
        level=result.level,
        timestamp=result.timestamp,
        model=result.model,
        tokens_used=result.tokens_used,
        analysis=(
            TextAnalysisOut(
                word_count=analysis.word_count,
                sentence_count=analysis.sentence_count,
                keywords=list(analysis.keywords),
                topics=list(analysis.topics),
                text_type=analysis.text_type,
                reading_level=analysis.reading_level,
                avg_words_per_sentence=analysis.avg_words_per_sentence,
            )
            if analysis is not None
            else None
        ),
    )


@ai_router.post("/summarize", response_model=SummaryResponse)
async def summarize(
    body: SummarizeRequest,
    service: AIOrchestrationService = Depends(get_orchestrator),
) -> SummaryResponse:
    result = await service.summarize_text(
        body.text,
        body.length,
        preferred_provider=body.preferred_provider,
        skip_cache=body.skip_cache,
        options=body.options.to_domain() if body.options else None,
    )
    return SummaryResponse.model_validate(result)


@ai_router.delete("/cache", status_code=204)
async def clear_cache(service: AIOrchestrationService = Depends(get_orchestrator)) -> Response:
    service.clear_cache()
    return Response(status_code=204)


# ═══════════════════════════════════════════════════════════════
#  Providers
# ═══════════════════════════════════════════════════════════════
providers_router = APIRouter(prefix="/providers", tags=["Providers"])


def _statistics_response(stats: OrchestratorStatistics) -> StatisticsResponse:
    snap = stats.statistics
    return StatisticsResponse(
        total_requests=snap.total_requests,
        successful_requests=snap.successful_requests,
        provider_usage=snap.provider_usage,
        average_response_time_ms=snap.average_response_time_ms,
        recent_errors=[
            ErrorRecordOut(
                provider=e.provider,
                kind=e.kind.value,
                error=e.error,
                timestamp=e.timestamp,
            )
            for e in snap.recent_errors
        ],
        provider_status={
            name: ProviderStatusOut(
                name=s.name,
                state=s.state.value,
                initialized=s.initialized,
                available=s.available,
                error_count=s.error_count,
                last_error=s.last_error,
                disabled_until=s.disabled_until,
            )
            for name, s in stats.provider_status.items()
        },
        cache_size=stats.cache_size,
        uptime_s=stats.uptime_s,
    )


@providers_router.get("/status", response_model=StatusResponse)
async def provider_status(
    service: AIOrchestrationService = Depends(get_orchestrator),
) -> StatusResponse:
    status = service.get_status()
    return StatusResponse(
        initialized=status.initialized,
        available_providers=status.available_providers,
        total_providers=status.total_providers,
        cache_enabled=status.cache_enabled,
        statistics=_statistics_response(status.statistics),
        providers=service.provider_details(),
    )


@providers_router.get("/statistics", response_model=StatisticsResponse)
async def provider_statistics(
    service: AIOrchestrationService = Depends(get_orchestrator),
) -> StatisticsResponse:
    return _statistics_response(service.get_statistics())


@providers_router.get("/rate-limits")
async def rate_limits(
    service: AIOrchestrationService = Depends(get_orchestrator),
) -> dict[str, dict[str, Any]]:
    return await service.check_rate_limits()


@providers_router.post("/initialize", response_model=StatusResponse)
async def reinitialize(
    service: AIOrchestrationService = Depends(get_orchestrator),
) -> StatusResponse:
    """Reload credentials and re-validate every provider."""
    await service.initialize()
    return await provider_status(service)
