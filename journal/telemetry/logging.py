"""Structured logging setup.

structlog renders JSON lines in production and a coloured console view in
dev. Every entry carries an ISO8601 UTC timestamp, level, logger name and
whatever is bound in the request's context variables:

    {
        "timestamp": "2026-10-17T09:12:03.512907Z",
        "level": "info",
        "logger": "journal.services.sharing",
        "event": "share.granted",
        "request_id": "3f1c...",
        "user_id": "google-oauth2|1234",
        "memory_id": "b7e0..."
    }

request_id is bound by RequestIdMiddleware (journal.core.security);
user_id is bound once the bearer token has been verified.
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import Processor


def configure_logging(
    *,
    json_logs: bool = False,
    log_level: str = "INFO",
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        json_logs: Emit JSON (production) instead of console output
        log_level: Minimum level name (DEBUG, INFO, WARNING, ...)
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: list[Processor]
    if json_logs:
        renderer = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=shared_processors + renderer,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_user_context(user_id: str) -> None:
    """Attach the authenticated user's id to every log entry of this request."""
    structlog.contextvars.bind_contextvars(user_id=str(user_id))
