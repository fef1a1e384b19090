"""FastAPI middleware stack — request ID, logging, metrics.

Logging and metrics both label requests by the matched route template
(``/api/v1/ai/explain``), never the raw path.  A handler that raises is
recorded as a 500 before the exception continues to the server error
handler.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Awaitable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from textsense.shared.observability.metrics import HTTP_REQUEST_DURATION, HTTP_REQUESTS_TOTAL

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
UNMATCHED_ENDPOINT = "unmatched"

CallNext = Callable[[Request], Awaitable[Response]]


def route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ENDPOINT


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Echoes or mints an X-Request-ID and binds it to the log context."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "http_request_failed",
                method=request.method,
                endpoint=route_template(request),
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            raise

        status = response.status_code
        log = logger.error if status >= 500 else logger.warning if status >= 400 else logger.info
        log(
            "http_request",
            method=request.method,
            path=request.url.path,
            endpoint=route_template(request),
            status=status,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
            client=request.client.host if request.client else "unknown",
        )
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collects Prometheus HTTP metrics, keyed by matched route template."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        start = time.monotonic()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            endpoint = route_template(request)
            HTTP_REQUESTS_TOTAL.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status,
            ).inc()
            HTTP_REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(time.monotonic() - start)
