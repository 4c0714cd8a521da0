"""Domain exceptions shared by stores, services and routers.

Services raise these; the app factory maps them to HTTP responses:

  NotFoundError      -> 404
  ValidationError    -> 400
  UnauthorizedError  -> 403
  UpstreamError      -> 502
"""

from __future__ import annotations


class JournalError(Exception):
    """Base class for all domain errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(JournalError):
    """Requested entity does not exist (or is not servable)."""

    status_code = 404


class ValidationError(JournalError):
    """Malformed input: bad email, enum value, vector length, ..."""

    status_code = 400


class UnauthorizedError(JournalError):
    """Viewer is not allowed to see or change the entity."""

    status_code = 403


class UpstreamError(JournalError):
    """The language/embedding provider failed, timed out or returned garbage."""

    status_code = 502
