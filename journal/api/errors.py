"""Exception handlers mapping domain errors to HTTP responses."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from journal.core.exceptions import JournalError

log = structlog.get_logger(__name__)


async def journal_error_handler(request: Request, exc: JournalError) -> JSONResponse:
    if exc.status_code >= 500:
        log.warning(
            "api.upstream_error",
            path=request.url.path,
            method=request.method,
            error=exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error(
        "app.unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(JournalError, journal_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
