"""Bearer token validation.

Production (ENVIRONMENT=prod):
- JWKS is fetched via the issuer's OIDC discovery document (or read from
  JWKS_LOCAL_PATH) and cached for five minutes
- Signatures are checked with RS256/ES256 against that key set
- Audience and issuer must match OIDC_AUDIENCE / OIDC_ISSUER_URL

Dev/test:
- Tokens are HS256-signed with DEV_JWT_SECRET; no network access

Required claims: sub (the user id), email, exp, aud.
Optional claims: name, picture, provider.
"""

from __future__ import annotations

import json
import time
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx
import jwt
import structlog
from jwt.exceptions import InvalidTokenError

from journal.config import Settings

log = structlog.get_logger(__name__)

_JWKS_TTL_SECONDS = 300


class TokenValidationError(Exception):
    """Raised when a bearer token cannot be trusted."""


async def _fetch_jwks(issuer_url: str) -> dict[str, Any]:
    discovery_url = f"{issuer_url.rstrip('/')}/.well-known/openid-configuration"
    async with httpx.AsyncClient(timeout=10.0) as client:
        discovery = await client.get(discovery_url)
        discovery.raise_for_status()
        jwks_response = await client.get(discovery.json()["jwks_uri"])
        jwks_response.raise_for_status()
        return jwks_response.json()  # type: ignore[no-any-return]


def _load_local_jwks(path: str) -> dict[str, Any]:
    """Read a JWKS document from disk instead of the identity provider."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if "keys" not in raw:
        raise ValueError(f"JWKS file at {path!r} is missing the 'keys' array")
    log.info("oidc.local_jwks_loaded", jwks_local_path=path)
    return raw  # type: ignore[no-any-return]


class _KeySet:
    """Signing keys indexed by kid, reloaded once they are older than the TTL."""

    def __init__(self, ttl_seconds: float = _JWKS_TTL_SECONDS) -> None:
        self.ttl_seconds = ttl_seconds
        self.keys: dict[str, dict[str, Any]] = {}
        self.loaded_at = 0.0

    def _stale(self) -> bool:
        return not self.keys or time.monotonic() - self.loaded_at > self.ttl_seconds

    async def refresh_if_stale(self, settings: Settings) -> None:
        if not self._stale():
            return
        if settings.jwks_local_path:
            raw = _load_local_jwks(settings.jwks_local_path)
        else:
            raw = await _fetch_jwks(settings.oidc_issuer_url)
        self.keys = {key.get("kid", str(i)): key for i, key in enumerate(raw.get("keys", []))}
        self.loaded_at = time.monotonic()
        log.info("oidc.jwks_refreshed", key_count=len(self.keys))

    def pick(self, kid: str | None) -> dict[str, Any]:
        # Tokens without a known kid fall back to the first published key.
        if kid and kid in self.keys:
            return self.keys[kid]
        if self.keys:
            return next(iter(self.keys.values()))
        raise TokenValidationError("No JWKS keys available")


_key_set = _KeySet()


async def validate_token(token: str, settings: Settings) -> dict[str, Any]:
    """Validate a bearer JWT and return its claims.

    Raises:
        TokenValidationError: bad signature, expired, wrong audience/issuer,
            or a required claim is missing
    """
    if settings.is_dev:
        return _validate_dev_token(token, settings)

    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except InvalidTokenError as exc:
        raise TokenValidationError(f"Cannot decode token header: {exc}") from exc

    try:
        await _key_set.refresh_if_stale(settings)
    except (httpx.HTTPError, OSError, ValueError) as exc:
        log.error("oidc.jwks_unavailable", error=str(exc))
        raise TokenValidationError("Signing keys unavailable") from exc

    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            jwt.PyJWK(_key_set.pick(kid)).key,
            algorithms=["RS256", "ES256"],
            audience=settings.oidc_audience,
            issuer=settings.oidc_issuer_url,
        )
    except (InvalidTokenError, jwt.PyJWKError) as exc:
        raise TokenValidationError(f"Token validation failed: {exc}") from exc

    _assert_required_claims(claims)
    return claims


def _validate_dev_token(token: str, settings: Settings) -> dict[str, Any]:
    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            settings.dev_jwt_secret.get_secret_value(),
            algorithms=["HS256"],
            audience=settings.oidc_audience,
        )
    except InvalidTokenError as exc:
        raise TokenValidationError(f"Dev token validation failed: {exc}") from exc

    _assert_required_claims(claims)
    return claims


def _assert_required_claims(claims: dict[str, Any]) -> None:
    missing = [c for c in ("sub", "email") if not claims.get(c)]
    if missing:
        raise TokenValidationError(f"Missing required JWT claims: {missing}")


def create_dev_token(
    *,
    sub: str,
    email: str,
    secret: str,
    name: str | None = None,
    audience: str = "memory-journal-api",
    expires_in: int = 3600,
) -> str:
    """Mint an HS256 token accepted in dev/test mode. Never use in production."""
    now = int(datetime.now(UTC).timestamp())
    payload: dict[str, Any] = {
        "sub": sub,
        "email": email,
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        "jti": str(uuid.uuid4()),
    }
    if name:
        payload["name"] = name
    return jwt.encode(payload, secret, algorithm="HS256")
