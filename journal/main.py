"""FastAPI application entrypoint.

Application startup order:
1. Load settings (from environment)
2. Configure structured logging
3. Initialize database engine and session factory
4. Seed the prompt catalog if it is empty
5. Register middleware, exception handlers and routers

Shutdown order:
1. Close DB connection pool
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from journal.api.errors import register_exception_handlers
from journal.api.router import api_router, public_router
from journal.config import Settings, get_settings
from journal.core.security import (
    RequestIdMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from journal.database import close_db, get_session_factory, init_db
from journal.services.prompts import seed_default_prompts
from journal.storage import SqlJournalStore
from journal.telemetry import configure_logging

log = structlog.get_logger(__name__)


async def _seed_prompts(settings: Settings) -> None:
    if not settings.seed_prompts_on_startup:
        return
    try:
        async with get_session_factory()() as session:
            added = await seed_default_prompts(SqlJournalStore(session))
            await session.commit()
    except (SQLAlchemyError, OSError) as exc:
        # The API still serves everything but the catalog without seed data
        log.warning("app.prompt_seed_failed", error=str(exc))
        return
    if added:
        log.info("app.prompts_seeded", count=added)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown."""
    settings = get_settings()

    configure_logging(
        json_logs=settings.is_prod,
        log_level="DEBUG" if settings.debug else "INFO",
    )

    log.info(
        "app.starting",
        environment=settings.environment,
        db_url=settings.database_url.split("@")[-1],
    )

    init_db(settings)
    await _seed_prompts(settings)

    log.info("app.ready")
    yield

    await close_db()
    log.info("app.shutdown")


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    app = FastAPI(
        title="Memory Journal API",
        description=(
            "Personal memory journal with sharing, visibility control and "
            "AI-assisted semantic search."
        ),
        version="0.1.0",
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
        openapi_url="/openapi.json" if settings.is_dev else None,
        lifespan=lifespan,
    )

    # ------------------------------------------------------------------ #
    # Middleware (added in reverse order - last added = first executed)
    # ------------------------------------------------------------------ #
    cors_origins = ["*"] if settings.is_dev else settings.cors_allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.is_prod,
        allow_methods=["*"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )
    app.add_middleware(SecurityHeadersMiddleware, is_production=settings.is_prod)
    app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.max_request_size_bytes)
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(public_router)
    app.include_router(api_router)

    return app


# Module-level app instance for uvicorn
app = create_app()
