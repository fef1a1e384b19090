"""Shared mechanics for remote text providers.

Subclasses supply prompt wording, request/response shapes and auth headers.
This base handles credential loading, rate-limiter admission, the HTTP
round trip, and normalizing every failure into one of the four
``ProviderError`` kinds before it leaves the adapter.
"""

from __future__ import annotations

import math
from abc import abstractmethod
from typing import Any

import httpx
import structlog

from textsense.domain.enums import ErrorKind, ExplanationLevel, ProviderName, SummaryLength
from textsense.domain.exceptions import (
    PROVIDER_ERRORS,
    AuthError,
    InvalidInputError,
    ProviderError,
    RateLimitError,
    TransientError,
)
from textsense.domain.value_objects import (
    GenerationOptions,
    ProviderExplanation,
    ProviderSummary,
)
from textsense.ports.outbound import KeyValueStorePort, TextProviderPort
from textsense.shared.providers.rate_limiter import SlidingWindowRateLimiter
from textsense.shared.providers.types import RateLimitStatus

logger = structlog.get_logger(__name__)

EXPLAIN_MAX_TOKENS = 500
SUMMARY_MAX_TOKENS = 300
DEFAULT_TEMPERATURE = 0.3

# Backend error ``code``/``type`` strings, checked before the HTTP status.
ERROR_TYPE_KINDS: dict[str, ErrorKind] = {
    "authentication_error": ErrorKind.AUTH,
    "invalid_api_key": ErrorKind.AUTH,
    "permission_error": ErrorKind.AUTH,
    "rate_limit_error": ErrorKind.RATE_LIMIT,
    "rate_limit_exceeded": ErrorKind.RATE_LIMIT,
    "insufficient_quota": ErrorKind.RATE_LIMIT,
    "overloaded_error": ErrorKind.TRANSIENT,
    "api_error": ErrorKind.TRANSIENT,
    "service_unavailable": ErrorKind.TRANSIENT,
}


def kind_for_status(status_code: int) -> ErrorKind:
    if status_code in (401, 403):
        return ErrorKind.AUTH
    if status_code in (402, 429):
        return ErrorKind.RATE_LIMIT
    if status_code >= 500:
        return ErrorKind.TRANSIENT
    return ErrorKind.REQUEST


def classify_http_error(provider: str, status_code: int, payload: Any) -> ProviderError:
    """Turn a non-2xx backend response into a typed ``ProviderError``.

    Understands both ``{"error": {"type", "code", "message"}}`` (OpenAI-style)
    and ``{"type": "error", "error": {"type", "message"}}`` (Anthropic-style).
    """
    error_type: str | None = None
    error_code: str | None = None
    message = f"HTTP {status_code}"

    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            error_type = err.get("type")
            error_code = err.get("code")
            message = err.get("message") or message
        elif isinstance(err, str):
            message = err

    kind = (
        ERROR_TYPE_KINDS.get(str(error_code))
        or ERROR_TYPE_KINDS.get(str(error_type))
        or kind_for_status(status_code)
    )
    return PROVIDER_ERRORS[kind](
        provider,
        f"HTTP {status_code}: {message}",
        status_code=status_code,
        raw=payload,
    )


class BaseProviderClient(TextProviderPort):
    """Template for an HTTP-backed explanation provider."""

    name: ProviderName
    credential_key: str
    default_base_url: str
    default_model: str
    completion_path: str

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        store: KeyValueStorePort,
        limiter: SlidingWindowRateLimiter,
        *,
        base_url: str | None = None,
        model: str | None = None,
        validate_credentials: bool = True,
    ) -> None:
        self._http = http_client
        self._store = store
        self._limiter = limiter
        self._base_url = (base_url or self.default_base_url).rstrip("/")
        self._model = model or self.default_model
        self._validate_credentials = validate_credentials

        self._api_key: str | None = None
        self._initialized = False
        self._log = logger.bind(provider=self.name.value)

    @property
    def limiter(self) -> SlidingWindowRateLimiter:
        return self._limiter

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ── Lifecycle ────────────────────────────────────────────
    async def initialize(self) -> bool:
        self._initialized = False
        stored = await self._store.get([self.credential_key])
        api_key = stored.get(self.credential_key)
        if not isinstance(api_key, str) or not api_key.strip():
            self._log.warning("provider_credential_missing", key=self.credential_key)
            return False
        self._api_key = api_key.strip()

        await self._prepare()

        if self._validate_credentials:
            try:
                await self._validate()
            except ProviderError as exc:
                self._log.error("provider_credential_invalid", error=exc.message, kind=exc.kind.value)
                return False

        self._initialized = True
        self._log.info("provider_initialized", model=self._model)
        return True

    async def _prepare(self) -> None:
        """Hook run after the credential loads, before validation."""
        return None

    @abstractmethod
    async def _validate(self) -> None:
        """Probe the backend; raise ``ProviderError`` if the key is unusable."""
        ...

    # ── Operations ───────────────────────────────────────────
    async def explain(
        self,
        text: str,
        level: ExplanationLevel,
        options: GenerationOptions | None = None,
    ) -> ProviderExplanation:
        self._ensure_ready(text)
        await self._admit()

        opts = options or GenerationOptions()
        model = opts.model or self._model
        payload = self._build_payload(
            self.explanation_prompt(text, level),
            model=model,
            max_tokens=opts.max_tokens or EXPLAIN_MAX_TOKENS,
            options=opts,
        )
        data = await self._post(self.completion_path, payload)
        content = self._extract_text(data)
        if not content or not content.strip():
            raise TransientError(self.name.value, "No explanation in response", raw=data)

        return ProviderExplanation(
            explanation=content.strip(),
            tokens_used=self._extract_tokens(data),
            model=model,
        )

    async def summarize(
        self,
        text: str,
        length: SummaryLength,
        options: GenerationOptions | None = None,
    ) -> ProviderSummary:
        self._ensure_ready(text)
        await self._admit()

        opts = options or GenerationOptions()
        model = opts.model or self._model
        payload = self._build_payload(
            self.summary_prompt(text, length),
            model=model,
            max_tokens=opts.max_tokens or SUMMARY_MAX_TOKENS,
            options=opts,
        )
        data = await self._post(self.completion_path, payload)
        content = self._extract_text(data)
        if not content or not content.strip():
            raise TransientError(self.name.value, "No summary in response", raw=data)

        return ProviderSummary(
            summary=content.strip(),
            tokens_used=self._extract_tokens(data),
            model=model,
        )

    async def rate_limit_status(self) -> RateLimitStatus:
        return await self._limiter.status()

    async def await_availability(self, max_wait_ms: float = 60_000) -> bool:
        return await self._limiter.await_admission(max_wait_ms)

    def get_status(self) -> dict[str, Any]:
        return {
            "name": self.name.value,
            "initialized": self._initialized,
            "has_credential": self._api_key is not None,
            "model": self._model,
            "base_url": self._base_url,
            "rate_limiter": self._limiter.identifier,
        }

    # ── Backend specifics ────────────────────────────────────
    @abstractmethod
    def explanation_prompt(self, text: str, level: ExplanationLevel) -> str: ...

    @abstractmethod
    def summary_prompt(self, text: str, length: SummaryLength) -> str: ...

    @abstractmethod
    def _headers(self) -> dict[str, str]: ...

    @abstractmethod
    def _build_payload(
        self,
        prompt: str,
        *,
        model: str,
        max_tokens: int,
        options: GenerationOptions,
    ) -> dict[str, Any]: ...

    @abstractmethod
    def _extract_text(self, data: dict[str, Any]) -> str | None: ...

    @abstractmethod
    def _extract_tokens(self, data: dict[str, Any]) -> int: ...

    async def _on_response(self, response: httpx.Response) -> None:
        """Hook to inspect headers of every response, successful or not."""
        return None

    # ── HTTP ─────────────────────────────────────────────────
    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", path, payload)

    async def _get(self, path: str) -> dict[str, Any]:
        return await self._request("GET", path, None)

    async def _request(
        self, method: str, path: str, payload: dict[str, Any] | None
    ) -> dict[str, Any]:
        if not self._api_key:
            raise AuthError(self.name.value, "No API key available")

        url = f"{self._base_url}{path}"
        try:
            if method == "GET":
                response = await self._http.get(url, headers=self._headers())
            else:
                response = await self._http.post(url, headers=self._headers(), json=payload)
        except httpx.TimeoutException as exc:
            raise TransientError(self.name.value, f"Timeout: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransientError(self.name.value, f"{type(exc).__name__}: {exc}") from exc

        await self._on_response(response)

        if response.status_code >= 400:
            error = classify_http_error(self.name.value, response.status_code, _safe_json(response))
            self._log.warning(
                "provider_http_error",
                status=response.status_code,
                kind=error.kind.value,
                error=error.message,
            )
            raise error

        body = _safe_json(response)
        if not isinstance(body, dict):
            raise TransientError(self.name.value, "Response body is not a JSON object", raw=body)
        return body

    # ── Internals ────────────────────────────────────────────
    def _ensure_ready(self, text: str) -> None:
        if not self._initialized:
            raise AuthError(self.name.value, "Client not initialized; configure an API key")
        if not text or not text.strip():
            raise InvalidInputError("No text provided")

    async def _admit(self) -> None:
        if await self._limiter.admit():
            return
        status = await self._limiter.status()
        retry_s = math.ceil(status.reset_in_ms / 1000)
        raise RateLimitError(
            self.name.value,
            f"Local rate limit reached; retry in {retry_s}s",
            raw=status,
        )


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
