"""HTTP hardening middleware and log-safety helpers.

- SecurityHeadersMiddleware: conservative headers on every API response
- RequestSizeLimitMiddleware: rejects bodies above MAX_REQUEST_SIZE_BYTES
  (audio uploads are the largest legitimate payload)
- RequestIdMiddleware: per-request correlation id, bound into structlog
- sanitize_log_value: strips control characters from user text before logging
"""

from __future__ import annotations

import re
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

log = structlog.get_logger(__name__)

DEFAULT_MAX_REQUEST_SIZE = 25 * 1024 * 1024

_CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_CLIENT_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach security headers to every response.

    HSTS is only sent in production, where TLS terminates in front of us.
    """

    def __init__(self, app: ASGIApp, *, is_production: bool = False) -> None:
        super().__init__(app)
        self._is_production = is_production

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        # Journal entries are personal; never let intermediaries cache them
        response.headers["Cache-Control"] = "no-store, private"

        if self._is_production:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def _too_large(max_size: int) -> JSONResponse:
    return JSONResponse(
        status_code=413,
        content={
            "detail": f"Request body too large. Maximum allowed: {max_size // (1024 * 1024)} MB"
        },
    )


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject request bodies larger than max_size with 413.

    Bodies with a Content-Length are checked up front. Chunked bodies are
    buffered while counting and replayed to the route once under the limit.
    """

    def __init__(self, app: ASGIApp, *, max_size: int = DEFAULT_MAX_REQUEST_SIZE) -> None:
        super().__init__(app)
        self._max_size = max_size

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        content_length = request.headers.get("content-length")
        if content_length is not None:
            if not content_length.isdigit():
                return JSONResponse(status_code=400, content={"detail": "Invalid Content-Length"})
            if int(content_length) > self._max_size:
                log.warning(
                    "security.request_too_large",
                    content_length=int(content_length),
                    max_size=self._max_size,
                    path=request.url.path,
                )
                return _too_large(self._max_size)
            return await call_next(request)

        if request.method not in ("POST", "PUT", "PATCH"):
            return await call_next(request)

        chunks: list[bytes] = []
        total = 0
        async for chunk in request.stream():
            total += len(chunk)
            if total > self._max_size:
                log.warning(
                    "security.chunked_request_too_large",
                    total_bytes=total,
                    max_size=self._max_size,
                    path=request.url.path,
                )
                return _too_large(self._max_size)
            chunks.append(chunk)

        body = b"".join(chunks)

        async def replay() -> dict[str, object]:
            return {"type": "http.request", "body": body, "more_body": False}

        # Starlette hands a cached _body to the downstream app; older
        # releases read from _receive instead
        request._body = body  # type: ignore[attr-defined]
        request._receive = replay  # type: ignore[attr-defined]
        return await call_next(request)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Give every request a correlation id.

    A well-formed incoming X-Request-ID is reused, otherwise a UUID4 is
    generated. The id lands in request.state, the structlog context and
    the X-Request-ID response header.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = request.headers.get("x-request-id", "")
        request_id = incoming if _CLIENT_REQUEST_ID.match(incoming) else str(uuid.uuid4())

        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            structlog.contextvars.clear_contextvars()


def sanitize_log_value(value: str | None, max_length: int = 200) -> str:
    """Make user-supplied text safe to put in a log field.

    Removes control characters (newlines included) and truncates long
    values, so a query or email cannot forge extra log lines.
    """
    if not value:
        return ""
    sanitized = _CONTROL_CHARS_PATTERN.sub("", value)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."
    return sanitized
