"""FastAPI dependencies for authentication.

get_current_user turns the bearer token into an AuthenticatedUser.

Design: JIT user provisioning
  The identity provider issues user ids (the `sub` claim). A caller whose
  token is valid but who has no users row yet gets one created from the
  token claims on their first request.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import Depends, HTTPException, Request, status

from journal.auth.oidc import TokenValidationError, validate_token
from journal.config import Settings, get_settings
from journal.models.user import AuthProvider, User
from journal.storage import JournalStore, get_store
from journal.telemetry import bind_user_context

log = structlog.get_logger(__name__)


class AuthenticatedUser:
    """The calling user plus the raw claims of their token."""

    def __init__(self, user: User, claims: dict[str, Any]) -> None:
        self.user = user
        self.claims = claims

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def email(self) -> str:
        return self.user.email.lower()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _validated_claims(request: Request, settings: Settings) -> dict[str, Any]:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise _unauthorized("Missing or invalid Authorization header")

    token = auth_header.removeprefix("Bearer ").strip()
    try:
        return await validate_token(token, settings)
    except TokenValidationError as exc:
        log.warning("auth.token_invalid", error=str(exc))
        raise _unauthorized("Invalid or expired authentication token") from exc


def _provider_from_claims(claims: dict[str, Any]) -> str:
    claimed = str(claims.get("provider", "")).lower()
    if claimed in {p.value for p in AuthProvider}:
        return claimed
    return AuthProvider.GOOGLE.value


async def get_current_user(
    request: Request,
    store: JournalStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> AuthenticatedUser:
    """Resolve the bearer token to a User, provisioning it if new.

    Raises HTTP 401 when the token is missing or invalid, and HTTP 409
    when a first-time caller's email already belongs to another account.
    """
    claims = await _validated_claims(request, settings)
    sub = str(claims["sub"])

    user = await store.get_user(sub)
    if user is None:
        email = str(claims["email"]).strip().lower()
        if await store.get_user_by_email(email) is not None:
            log.warning("auth.email_conflict", sub=sub)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email is already registered to another account",
            )
        user = await store.create_user(
            User(
                id=sub,
                email=email,
                display_name=claims.get("name"),
                avatar_url=claims.get("picture"),
                provider=_provider_from_claims(claims),
            )
        )
        log.info("auth.user_provisioned", user_id=sub)

    bind_user_context(user.id)
    return AuthenticatedUser(user=user, claims=claims)
