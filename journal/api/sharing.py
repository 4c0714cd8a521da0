"""Sharing endpoints.

POST   /api/memories/{id}/share             - Issue (or rotate) the public link
POST   /api/memories/{id}/share-with-user   - Grant an email view/edit access
GET    /api/memories/{id}/shares            - List grants on a memory
PATCH  /api/memories/{id}/visibility        - Set private/shared/public
DELETE /api/shares/{share_id}               - Revoke a grant (idempotent)
GET    /api/shared-memories?email=          - Memories granted to the caller
GET    /api/shared/{token}                  - Public link lookup (no auth)

Everything that changes sharing state is owner-only.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, Query

from journal.api.schemas import (
    MemoryResponse,
    MemoryShareResponse,
    RevokeResponse,
    ShareLinkResponse,
    ShareWithUserRequest,
    VisibilityRequest,
)
from journal.auth.dependencies import AuthenticatedUser, get_current_user
from journal.config import Settings, get_settings
from journal.core.exceptions import NotFoundError, UnauthorizedError
from journal.core.visibility import TokenHolder, can_view
from journal.services.memory import MemoryService
from journal.services.sharing import SharingLedger, normalise_email
from journal.storage import JournalStore, get_store

log = structlog.get_logger(__name__)

router = APIRouter(tags=["sharing"])

# Mounted without authentication; see journal.api.router
public_router = APIRouter(tags=["sharing"])


@router.post(
    "/memories/{memory_id}/share",
    response_model=ShareLinkResponse,
    summary="Create a public share link",
)
async def create_share_link(
    memory_id: uuid.UUID,
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ShareLinkResponse:
    """Issue a new share token. Any earlier link for this memory stops working."""
    await MemoryService(store).require_owner(memory_id, current_user.id)
    token = await SharingLedger(store).generate_public_link(memory_id)
    path = f"/shared/{token}"
    return ShareLinkResponse(token=token, url=f"{settings.public_base_url.rstrip('/')}{path}")


@router.post(
    "/memories/{memory_id}/share-with-user",
    response_model=MemoryShareResponse,
    summary="Share a memory with an email address",
)
async def share_with_user(
    memory_id: uuid.UUID,
    body: ShareWithUserRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
) -> MemoryShareResponse:
    if body.shared_by_user_id is not None and body.shared_by_user_id != current_user.id:
        raise UnauthorizedError("sharedByUserId must be the calling user")

    await MemoryService(store).require_owner(memory_id, current_user.id)
    share = await SharingLedger(store).share_with_user(
        memory_id,
        email=body.email,
        granter_id=current_user.id,
        permission=body.permission,
    )
    return MemoryShareResponse.from_share(share)


@router.get(
    "/memories/{memory_id}/shares",
    response_model=list[MemoryShareResponse],
    summary="List grants on a memory",
)
async def list_shares(
    memory_id: uuid.UUID,
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
) -> list[MemoryShareResponse]:
    await MemoryService(store).require_owner(memory_id, current_user.id)
    shares = await SharingLedger(store).list_shares(memory_id)
    return [MemoryShareResponse.from_share(s) for s in shares]


@router.patch(
    "/memories/{memory_id}/visibility",
    response_model=MemoryResponse,
    summary="Change a memory's visibility",
)
async def update_visibility(
    memory_id: uuid.UUID,
    body: VisibilityRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
) -> MemoryResponse:
    await MemoryService(store).require_owner(memory_id, current_user.id)
    memory = await SharingLedger(store).set_visibility(memory_id, body.visibility)
    return MemoryResponse.from_memory(memory)


@router.delete(
    "/shares/{share_id}",
    response_model=RevokeResponse,
    summary="Revoke a grant",
)
async def revoke_share(
    share_id: uuid.UUID,
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
) -> RevokeResponse:
    """Always 200. revoked is false when the grant was already gone."""
    ledger = SharingLedger(store)
    share = await ledger.get_share(share_id)
    if share is None:
        return RevokeResponse(message="Share not found or already revoked", revoked=False)

    memory = await store.get_memory(share.memory_id)
    if memory is None or memory.user_id != current_user.id:
        raise UnauthorizedError("Only the memory owner can revoke this share")

    revoked = await ledger.revoke(share_id)
    return RevokeResponse(
        message="Share revoked successfully" if revoked else "Share not found or already revoked",
        revoked=revoked,
    )


@router.get(
    "/shared-memories",
    response_model=list[MemoryResponse],
    summary="Memories shared with me",
)
async def shared_with_me(
    email: str | None = Query(default=None, max_length=320),
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
) -> list[MemoryResponse]:
    if email is not None and normalise_email(email) != current_user.email:
        raise UnauthorizedError("You can only list memories shared with your own email")

    memories = await SharingLedger(store).list_shared_with_email(current_user.email)
    return [MemoryResponse.from_memory(m) for m in memories]


@public_router.get(
    "/shared/{token}",
    response_model=MemoryResponse,
    summary="Open a public share link",
)
async def get_shared_memory(
    token: str,
    store: JournalStore = Depends(get_store),
) -> MemoryResponse:
    memory = await SharingLedger(store).resolve_by_token(token)
    if not can_view(memory, TokenHolder(token)):
        # Token matched but the memory was made private
        raise NotFoundError("Shared memory not found")
    return MemoryResponse.from_memory(memory)
