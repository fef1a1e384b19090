"""FastAPI application entry-point.

Assembles routers, middleware, exception handlers, and lifecycle hooks.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from textsense import __version__
from textsense.adapters.inbound.rest.routers import (
    ai_router,
    health_router,
    providers_router,
)
from textsense.config import Settings
from textsense.dependencies import build_container, get_cached_settings, seed_store
from textsense.ports.outbound import KeyValueStorePort
from textsense.shared.errors import register_exception_handlers
from textsense.shared.middleware import (
    LoggingMiddleware,
    MetricsMiddleware,
    RequestIdMiddleware,
)
from textsense.shared.observability import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifecycle — startup & shutdown hooks."""
    settings: Settings = app.state.settings
    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.is_production,
    )
    logger.info(
        "application_starting",
        env=settings.app_env.value,
        store_backend=settings.store_backend.value,
    )

    container = build_container(settings, store=app.state.store_override)
    await seed_store(container.store, settings)
    await container.orchestrator.initialize()
    app.state.container = container

    yield

    await container.close()
    logger.info("application_shutdown")


def create_app(
    settings: Settings | None = None,
    *,
    store: KeyValueStorePort | None = None,
) -> FastAPI:
    """Application factory — creates a fully configured FastAPI instance."""
    settings = settings or get_cached_settings()

    app = FastAPI(
        title="textsense",
        description=(
            "Text explanation and summarization over Groq and Claude, with "
            "rate limiting, response caching and a local heuristic fallback."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store_override = store

    # ── Middleware (order matters: last added = outermost) ───
    cors_origins = settings.cors_origins
    allow_all_origins = "*" in cors_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[] if allow_all_origins else cors_origins,
        allow_origin_regex=".*" if allow_all_origins else None,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # ── Exception handlers ───────────────────────────────────
    register_exception_handlers(app)

    # ── REST routers (versioned) ─────────────────────────────
    api_v1 = "/api/v1"
    app.include_router(health_router, prefix=api_v1)
    app.include_router(ai_router, prefix=api_v1)
    app.include_router(providers_router, prefix=api_v1)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {
            "message": "textsense API is running",
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    return app


# Uvicorn entry-point
app = create_app()
