"""Domain-specific exception hierarchy.

All exceptions inherit from ``DomainError`` so callers can catch the entire
family in one clause while still discriminating on subclass.  Provider
failures are normalized into one of four ``ProviderError`` kinds at the
client boundary; the orchestrator branches on ``kind``, never on wording.
"""

from __future__ import annotations

from typing import Any

from textsense.domain.enums import ErrorKind


class DomainError(Exception):
    """Base class for all domain-layer errors."""

    def __init__(self, message: str, *, code: str = "DOMAIN_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


# ── Validation ───────────────────────────────────────────────
class InvalidInputError(DomainError):
    """Caller supplied empty text or an unknown option value."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVALID_INPUT")


# ── Providers ────────────────────────────────────────────────
class ProviderError(DomainError):
    """Base for normalized provider failures."""

    kind: ErrorKind = ErrorKind.REQUEST

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        status_code: int | None = None,
        raw: Any = None,
    ) -> None:
        self.provider = provider
        self.status_code = status_code
        self.raw = raw
        super().__init__(f"[{provider}] {message}", code=f"PROVIDER_{self.kind.name}")


class AuthError(ProviderError):
    """Bad or missing credential."""

    kind = ErrorKind.AUTH


class RateLimitError(ProviderError):
    """Backend-reported quota, HTTP 429, or local limiter rejection."""

    kind = ErrorKind.RATE_LIMIT


class TransientError(ProviderError):
    """Server error, overload, network failure or malformed response."""

    kind = ErrorKind.TRANSIENT


class RequestError(ProviderError):
    """Any other rejected request."""

    kind = ErrorKind.REQUEST


PROVIDER_ERRORS: dict[ErrorKind, type[ProviderError]] = {
    ErrorKind.AUTH: AuthError,
    ErrorKind.RATE_LIMIT: RateLimitError,
    ErrorKind.TRANSIENT: TransientError,
    ErrorKind.REQUEST: RequestError,
}


# ── Orchestration ────────────────────────────────────────────
class OrchestrationError(DomainError):
    """Raised when even the local fallback could not produce a result."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = errors
        providers = ", ".join(errors.keys())
        super().__init__(
            f"No provider produced a result: {providers}",
            code="ORCHESTRATION_FAILED",
        )
