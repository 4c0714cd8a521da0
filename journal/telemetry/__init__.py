"""Telemetry package: structured logging and log context helpers."""

from __future__ import annotations

from journal.telemetry.logging import (
    bind_user_context,
    configure_logging,
)

__all__ = [
    "bind_user_context",
    "configure_logging",
]
