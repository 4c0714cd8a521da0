"""Sharing Ledger - public links and per-email grants.

Two independent ways to let someone else see a memory:

1. Public link: an unguessable share_token on the memory. The token only
   resolves while is_public is true; issuing a new one replaces the old.
2. Email grant: a MemoryShare row naming a grantee email and a permission
   (view or edit). Duplicate grants for the same email are allowed and
   revoked one at a time.
"""

from __future__ import annotations

import re
import secrets
import uuid

import structlog

from journal.core.exceptions import NotFoundError, ValidationError
from journal.core.security import sanitize_log_value
from journal.models.memory import Memory, Visibility
from journal.models.memory_share import MemoryShare, SharePermission
from journal.storage import JournalStore

log = structlog.get_logger(__name__)

# 32 random bytes -> 43 url-safe characters, 256 bits of entropy
_TOKEN_BYTES = 32

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalise_email(email: str) -> str:
    """Lowercase and validate an email address.

    Raises:
        ValidationError: if it does not look like local@domain.tld
    """
    cleaned = (email or "").strip().lower()
    if len(cleaned) > 320 or not _EMAIL_PATTERN.match(cleaned):
        raise ValidationError("Invalid email address")
    return cleaned


class SharingLedger:
    """Issues share tokens, records email grants and revokes them."""

    def __init__(self, store: JournalStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Public links
    # ------------------------------------------------------------------

    async def generate_public_link(self, memory_id: uuid.UUID) -> str:
        """Issue a fresh share token for a memory and open it for token lookup.

        Any previous token stops resolving. A private memory becomes shared.

        Raises:
            NotFoundError: no such memory
        """
        token = secrets.token_urlsafe(_TOKEN_BYTES)
        memory = await self._store.set_share_token(memory_id, token)
        if memory is None:
            raise NotFoundError(f"Memory {memory_id} not found")
        log.info("share.link_issued", memory_id=str(memory_id))
        return token

    async def resolve_by_token(self, token: str) -> Memory:
        """Return the memory for a public share token.

        Raises:
            NotFoundError: unknown token, or the memory is no longer public
        """
        memory = await self._store.get_memory_by_share_token(token) if token else None
        if memory is None:
            raise NotFoundError("Shared memory not found")
        return memory

    # ------------------------------------------------------------------
    # Email grants
    # ------------------------------------------------------------------

    async def share_with_user(
        self,
        memory_id: uuid.UUID,
        *,
        email: str,
        granter_id: str,
        permission: SharePermission | str = SharePermission.VIEW,
    ) -> MemoryShare:
        """Grant an email address access to a memory.

        Args:
            memory_id: Memory being shared
            email: Grantee address (case-insensitive)
            granter_id: User creating the grant
            permission: "view" or "edit"

        Returns:
            The new MemoryShare row

        Raises:
            NotFoundError: no such memory
            ValidationError: malformed email or unknown permission
        """
        grantee = normalise_email(email)
        try:
            permission = SharePermission(permission)
        except ValueError as exc:
            raise ValidationError(f"Invalid permission: {permission!r}") from exc

        if await self._store.get_memory(memory_id) is None:
            raise NotFoundError(f"Memory {memory_id} not found")

        existing_user = await self._store.get_user_by_email(grantee)
        share = await self._store.add_share(
            MemoryShare(
                memory_id=memory_id,
                shared_with_email=grantee,
                shared_with_user_id=existing_user.id if existing_user else None,
                shared_by_user_id=granter_id,
                permission=permission,
            )
        )
        log.info(
            "share.granted",
            share_id=str(share.id),
            memory_id=str(memory_id),
            grantee=sanitize_log_value(grantee),
            permission=permission.value,
        )
        return share

    async def list_shares(self, memory_id: uuid.UUID) -> list[MemoryShare]:
        return await self._store.list_shares(memory_id)

    async def list_shared_with_email(self, email: str) -> list[Memory]:
        """Memories granted to email, one entry per memory, newest grant first."""
        grantee = normalise_email(email)
        shares = await self._store.list_shares_for_email(grantee)

        ordered_ids: list[uuid.UUID] = []
        seen: set[uuid.UUID] = set()
        for share in shares:
            if share.memory_id not in seen:
                seen.add(share.memory_id)
                ordered_ids.append(share.memory_id)

        by_id = {m.id: m for m in await self._store.get_memories(ordered_ids)}
        return [by_id[mid] for mid in ordered_ids if mid in by_id]

    async def get_share(self, share_id: uuid.UUID) -> MemoryShare | None:
        return await self._store.get_share(share_id)

    async def revoke(self, share_id: uuid.UUID) -> bool:
        """Delete a grant. Returns False if it was already gone."""
        revoked = await self._store.delete_share(share_id)
        log.info("share.revoked", share_id=str(share_id), revoked=revoked)
        return revoked

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    async def set_visibility(
        self, memory_id: uuid.UUID, visibility: Visibility | str
    ) -> Memory:
        """Change a memory's visibility.

        private closes the public link (is_public = false), public opens it,
        shared leaves it as it was. The token itself is kept, so switching
        back to public revives the same link.

        Raises:
            ValidationError: unknown visibility value
            NotFoundError: no such memory
        """
        try:
            visibility = Visibility(visibility)
        except ValueError as exc:
            raise ValidationError(f"Invalid visibility: {visibility!r}") from exc

        changes: dict[str, object] = {"visibility": visibility}
        if visibility == Visibility.PRIVATE:
            changes["is_public"] = False
        elif visibility == Visibility.PUBLIC:
            changes["is_public"] = True

        memory = await self._store.update_memory(memory_id, changes)
        if memory is None:
            raise NotFoundError(f"Memory {memory_id} not found")
        log.info("share.visibility_changed", memory_id=str(memory_id), visibility=visibility.value)
        return memory
