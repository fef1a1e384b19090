"""AI Orchestration Service.

Owns the remote provider clients, their health, the response cache and
request statistics.  ``explain_text`` / ``summarize_text`` walk a
task-specific fallback chain one provider at a time; the local heuristics
close every chain, so a caller always gets an answer.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, TypeVar

import structlog

from textsense.domain.enums import (
    ErrorKind,
    ExplanationLevel,
    ProviderName,
    SummaryLength,
    TaskType,
)
from textsense.domain.exceptions import (
    InvalidInputError,
    OrchestrationError,
    ProviderError,
    TransientError,
)
from textsense.domain.services import local_explanation, local_summary
from textsense.domain.value_objects import (
    ExplanationResult,
    GenerationOptions,
    SummaryResult,
)
from textsense.ports.outbound import KeyValueStorePort, TextProviderPort
from textsense.shared.observability.metrics import (
    CACHE_HITS,
    ORCHESTRATOR_REQUESTS,
    PROVIDER_FAILURES,
    PROVIDER_LATENCY,
)
from textsense.shared.providers import (
    DEFAULT_TASK_CHAINS,
    ProviderHealthRegistry,
    ProviderStatus,
    RequestStatistics,
    ResponseCache,
    StatisticsSnapshot,
    build_provider_chain,
)
from textsense.shared.providers.chain import promote

logger = structlog.get_logger(__name__)

PREFERRED_PROVIDER_KEY = "preferred_provider"

R = TypeVar("R")
E = TypeVar("E", bound=Enum)


@dataclass(frozen=True)
class OrchestratorStatistics:
    """Statistics plus per-provider health, as returned by ``get_statistics``."""

    statistics: StatisticsSnapshot
    provider_status: dict[str, ProviderStatus]
    cache_size: int
    uptime_s: float


@dataclass(frozen=True)
class OrchestratorStatus:
    initialized: bool
    available_providers: list[str]
    total_providers: int
    cache_enabled: bool
    statistics: OrchestratorStatistics


class AIOrchestrationService:
    """Sequential multi-provider fallback with caching and health tracking.

    Usage::

        service = AIOrchestrationService([groq, claude], store)
        await service.initialize()
        result = await service.explain_text("...", ExplanationLevel.DETAILED)

    Remote failures never reach the caller; they are recorded, fed to the
    health registry, and the next provider in the chain is tried.
    """

    def __init__(
        self,
        providers: Sequence[TextProviderPort],
        store: KeyValueStorePort,
        *,
        cache: ResponseCache | None = None,
        health: ProviderHealthRegistry | None = None,
        chains: Mapping[TaskType, Sequence[ProviderName]] = DEFAULT_TASK_CHAINS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._providers: dict[ProviderName, TextProviderPort] = {p.name: p for p in providers}
        self._store = store
        self._cache = cache if cache is not None else ResponseCache()
        self._health = health if health is not None else ProviderHealthRegistry()
        self._default_chains = dict(chains)
        self._chains: dict[TaskType, tuple[ProviderName, ...]] = {
            task: tuple(chain) for task, chain in chains.items()
        }
        self._stats = RequestStatistics(p.value for p in ProviderName)
        self._clock = clock
        self._started_at = clock()
        self._initialized = False
        self._stored_preference: ProviderName | None = None

    # ── Lifecycle ────────────────────────────────────────────
    async def initialize(self) -> bool:
        """Initialize every client concurrently and register their health.

        Always returns True: the local provider needs no setup.
        """
        names = list(self._providers)
        outcomes = await asyncio.gather(
            *(self._providers[n].initialize() for n in names),
            return_exceptions=True,
        )
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("provider_initialize_failed", provider=name.value, error=str(outcome))
                self._health.register(name.value, initialized=False, error=str(outcome))
            else:
                self._health.register(name.value, initialized=bool(outcome))
        self._health.register(ProviderName.LOCAL.value, initialized=True)

        await self._load_preference()
        self._initialized = True
        logger.info(
            "orchestrator_initialized",
            available=self._health.available_providers(),
            preferred=self._stored_preference.value if self._stored_preference else None,
        )
        return True

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()

    async def _load_preference(self) -> None:
        stored = (await self._store.get([PREFERRED_PROVIDER_KEY])).get(PREFERRED_PROVIDER_KEY)
        preference: ProviderName | None = None
        if stored:
            try:
                preference = ProviderName(stored)
            except ValueError:
                logger.warning("stored_preference_unknown", value=stored)
        if preference is not None and not preference.is_remote:
            preference = None
        self._stored_preference = preference
        self._chains = {
            task: promote(chain, preference) for task, chain in self._default_chains.items()
        }

    # ── Operations ───────────────────────────────────────────
    async def explain_text(
        self,
        text: str | None,
        level: ExplanationLevel | str = ExplanationLevel.SIMPLE,
        *,
        preferred_provider: ProviderName | str | None = None,
        skip_cache: bool = False,
        options: GenerationOptions | None = None,
    ) -> ExplanationResult:
        self._stats.record_request()
        content = _require_text(text)
        lvl = _coerce(ExplanationLevel, level, "level")
        preferred = _coerce_optional(ProviderName, preferred_provider, "preferred_provider")

        async def remote(
            provider: TextProviderPort, opts: GenerationOptions | None
        ) -> ExplanationResult:
            reply = await provider.explain(content, lvl, opts)
            return ExplanationResult(
                explanation=reply.explanation,
                provider=provider.name.value,
                level=lvl.value,
                model=reply.model,
                tokens_used=reply.tokens_used,
            )

        def local() -> ExplanationResult:
            explanation, analysis = local_explanation(content, lvl)
            return ExplanationResult(
                explanation=explanation,
                provider=ProviderName.LOCAL.value,
                level=lvl.value,
                model="local-heuristic",
                analysis=analysis,
            )

        return await self._run(
            operation="explain",
            task=TaskType.EXPLANATION,
            text=content,
            tag=lvl.value,
            preferred=preferred,
            skip_cache=skip_cache,
            options=options,
            remote=remote,
            local=local,
        )

    async def summarize_text(
        self,
        text: str | None,
        length: SummaryLength | str = SummaryLength.MEDIUM,
        *,
        preferred_provider: ProviderName | str | None = None,
        skip_cache: bool = False,
        options: GenerationOptions | None = None,
    ) -> SummaryResult:
        self._stats.record_request()
        content = _require_text(text)
        size = _coerce(SummaryLength, length, "length")
        preferred = _coerce_optional(ProviderName, preferred_provider, "preferred_provider")

        async def remote(
            provider: TextProviderPort, opts: GenerationOptions | None
        ) -> SummaryResult:
            reply = await provider.summarize(content, size, opts)
            return SummaryResult(
                summary=reply.summary,
                provider=provider.name.value,
                original_length=len(content),
                summary_length=len(reply.summary),
                model=reply.model,
                tokens_used=reply.tokens_used,
            )

        def local() -> SummaryResult:
            summary = local_summary(content, size)
            return SummaryResult(
                summary=summary,
                provider=ProviderName.LOCAL.value,
                original_length=len(content),
                summary_length=len(summary),
                model="local-heuristic",
            )

        return await self._run(
            operation="summarize",
            task=TaskType.SUMMARY,
            text=content,
            tag=size.value,
            preferred=preferred,
            skip_cache=skip_cache,
            options=options,
            remote=remote,
            local=local,
        )

    async def check_rate_limits(self) -> dict[str, dict[str, Any]]:
        """Limiter status of every remote client; one failure doesn't abort the rest."""
        names = list(self._providers)
        outcomes = await asyncio.gather(
            *(self._providers[n].rate_limit_status() for n in names),
            return_exceptions=True,
        )
        report: dict[str, dict[str, Any]] = {}
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("rate_limit_check_failed", provider=name.value, error=str(outcome))
                report[name.value] = {"error": str(outcome)}
            else:
                report[name.value] = {
                    "identifier": outcome.identifier,
                    "remaining": outcome.remaining,
                    "capacity": outcome.capacity,
                    "window_ms": outcome.window_ms,
                    "requests_in_window": outcome.requests_in_window,
                    "reset_in_ms": outcome.reset_in_ms,
                    "rate_limited": outcome.rate_limited,
                }
        return report

    def get_statistics(self) -> OrchestratorStatistics:
        return OrchestratorStatistics(
            statistics=self._stats.snapshot(),
            provider_status=self._health.snapshot(),
            cache_size=len(self._cache),
            uptime_s=self._clock() - self._started_at,
        )

    def get_status(self) -> OrchestratorStatus:
        return OrchestratorStatus(
            initialized=self._initialized,
            available_providers=self._health.available_providers(),
            total_providers=len(self._providers) + 1,
            cache_enabled=True,
            statistics=self.get_statistics(),
        )

    def provider_details(self) -> dict[str, dict[str, Any]]:
        return {name.value: p.get_status() for name, p in self._providers.items()}

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("response_cache_cleared")

    # ── Chain walking ────────────────────────────────────────
    async def _run(
        self,
        *,
        operation: str,
        task: TaskType,
        text: str,
        tag: str,
        preferred: ProviderName | None,
        skip_cache: bool,
        options: GenerationOptions | None,
        remote: Callable[[TextProviderPort, GenerationOptions | None], Awaitable[R]],
        local: Callable[[], R],
    ) -> R:
        log = logger.bind(operation=operation, tag=tag)

        if not skip_cache:
            cached = self._cache.get(operation, text, tag)
            if cached is not None:
                CACHE_HITS.labels(operation=operation).inc()
                log.debug("response_cache_hit")
                return cached

        chain = build_provider_chain(task, preferred, chains=self._chains)
        errors: dict[str, str] = {}

        for name in chain:
            if name is ProviderName.LOCAL:
                return self._run_local(operation, local, errors, log)

            provider = self._providers.get(name)
            if provider is None or not self._health.is_available(name.value):
                log.debug("provider_skipped", provider=name.value, state=self._health.state(name.value).value)
                continue

            start = self._clock()
            try:
                result = await remote(provider, _options_for(name, chain, options))
            except ProviderError as exc:
                self._handle_failure(operation, name, exc, errors, log)
                continue
            except Exception as exc:
                wrapped = TransientError(name.value, f"{type(exc).__name__}: {exc}")
                self._handle_failure(operation, name, wrapped, errors, log)
                continue

            duration_ms = (self._clock() - start) * 1000
            self._cache.put(operation, text, tag, result)
            self._health.mark_success(name.value)
            self._stats.record_success(name.value, duration_ms)
            PROVIDER_LATENCY.labels(operation=operation, provider=name.value).observe(duration_ms / 1000)
            ORCHESTRATOR_REQUESTS.labels(operation=operation, provider=name.value, outcome="success").inc()
            log.info("provider_succeeded", provider=name.value, duration_ms=round(duration_ms, 1))
            return result

        # build_provider_chain always ends with local
        raise OrchestrationError(errors)

    def _run_local(
        self,
        operation: str,
        local: Callable[[], R],
        errors: dict[str, str],
        log: Any,
    ) -> R:
        start = self._clock()
        try:
            result = local()
        except Exception as exc:
            errors[ProviderName.LOCAL.value] = str(exc)
            ORCHESTRATOR_REQUESTS.labels(operation=operation, provider="local", outcome="failure").inc()
            log.error("local_fallback_failed", error=str(exc), errors=errors)
            raise OrchestrationError(errors) from exc

        self._stats.record_success(ProviderName.LOCAL.value, (self._clock() - start) * 1000)
        ORCHESTRATOR_REQUESTS.labels(operation=operation, provider="local", outcome="success").inc()
        if errors:
            log.warning("served_by_local_fallback", errors=errors)
        return result

    def _handle_failure(
        self,
        operation: str,
        name: ProviderName,
        exc: ProviderError,
        errors: dict[str, str],
        log: Any,
    ) -> None:
        errors[name.value] = exc.message
        self._stats.record_error(name.value, exc.kind, exc.message)
        PROVIDER_FAILURES.labels(provider=name.value, kind=exc.kind.value).inc()
        ORCHESTRATOR_REQUESTS.labels(operation=operation, provider=name.value, outcome="failure").inc()

        if exc.kind is ErrorKind.RATE_LIMIT:
            self._health.record_rate_limited(name.value, exc.message)
        elif exc.kind is ErrorKind.AUTH:
            self._health.mark_unavailable(name.value, exc.message)
        else:
            self._health.record_error(name.value, exc.message)

        log.warning(
            "provider_failed",
            provider=name.value,
            kind=exc.kind.value,
            error=exc.message,
        )


# ── Input coercion ───────────────────────────────────────────
def _options_for(
    name: ProviderName,
    chain: Sequence[ProviderName],
    options: GenerationOptions | None,
) -> GenerationOptions | None:
    """A model override names a model of the chain's first provider only."""
    if options is None or options.model is None or name is chain[0]:
        return options
    return replace(options, model=None)


def _require_text(text: str | None) -> str:
    if text is None or not isinstance(text, str) or not text.strip():
        raise InvalidInputError("No text provided")
    return text


def _coerce(enum_cls: type[E], value: E | str, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(str(m.value) for m in enum_cls)
        raise InvalidInputError(f"Unknown {field_name} {value!r}; expected one of: {allowed}") from None


def _coerce_optional(enum_cls: type[E], value: E | str | None, field_name: str) -> E | None:
    if value is None or value == "":
        return None
    return _coerce(enum_cls, value, field_name)


__all__ = [
    "AIOrchestrationService",
    "OrchestratorStatistics",
    "OrchestratorStatus",
    "PREFERRED_PROVIDER_KEY",
]
