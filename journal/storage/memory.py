"""Dict-backed JournalStore for tests and single-process dev.

Mirrors the relational store's semantics, including the cascades:
deleting a memory deletes its shares, deleting nothing else. Does NOT
persist across process restarts.
"""

from __future__ import annotations

import itertools
import uuid
from datetime import UTC, datetime
from typing import Any

import structlog

from journal.models.memory import Memory, MemoryType, Visibility
from journal.models.memory_prompt import MemoryPrompt
from journal.models.memory_share import MemoryShare, SharePermission
from journal.models.user import AuthProvider, User
from journal.storage.base import JournalStore, MemoryFilters

log = structlog.get_logger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


class InMemoryJournalStore(JournalStore):
    """In-process store keeping ORM instances in plain dicts.

    Column defaults are applied here on insert, since SQLAlchemy only
    fills Python-side defaults during a flush.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._memories: dict[uuid.UUID, Memory] = {}
        self._shares: dict[uuid.UUID, MemoryShare] = {}
        self._prompts: dict[int, MemoryPrompt] = {}
        self._prompt_ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        wanted = email.lower()
        for user in self._users.values():
            if user.email.lower() == wanted:
                return user
        return None

    async def create_user(self, user: User) -> User:
        if user.provider is None:
            user.provider = AuthProvider.GOOGLE.value
        if user.created_at is None:
            user.created_at = _now()
        self._users[user.id] = user
        return user

    async def update_user(self, user_id: str, changes: dict[str, Any]) -> User | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        for key, value in changes.items():
            setattr(user, key, value)
        return user

    # ------------------------------------------------------------------
    # Memories
    # ------------------------------------------------------------------

    async def get_memory(self, memory_id: uuid.UUID) -> Memory | None:
        return self._memories.get(memory_id)

    async def get_memories(self, memory_ids: list[uuid.UUID]) -> list[Memory]:
        return [self._memories[mid] for mid in memory_ids if mid in self._memories]

    async def list_memories(
        self,
        user_id: str,
        filters: MemoryFilters | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Memory]:
        filters = filters or MemoryFilters()
        owned = [
            m for m in self._memories.values()
            if m.user_id == user_id and filters.matches(m)
        ]
        owned.sort(key=lambda m: m.date, reverse=True)
        return owned[offset:offset + limit]

    async def create_memory(self, memory: Memory) -> Memory:
        now = _now()
        if memory.id is None:
            memory.id = uuid.uuid4()
        if memory.type is None:
            memory.type = MemoryType.TEXT
        if memory.visibility is None:
            memory.visibility = Visibility.PRIVATE
        if memory.is_public is None:
            memory.is_public = False
        if memory.people is None:
            memory.people = []
        if memory.attachments is None:
            memory.attachments = []
        if memory.date is None:
            memory.date = now
        memory.created_at = memory.created_at or now
        memory.updated_at = memory.updated_at or now
        self._memories[memory.id] = memory
        return memory

    async def update_memory(
        self, memory_id: uuid.UUID, changes: dict[str, Any]
    ) -> Memory | None:
        memory = self._memories.get(memory_id)
        if memory is None:
            return None
        for key, value in changes.items():
            setattr(memory, key, value)
        memory.updated_at = _now()
        return memory

    async def delete_memory(self, memory_id: uuid.UUID) -> bool:
        if self._memories.pop(memory_id, None) is None:
            return False
        orphaned = [sid for sid, s in self._shares.items() if s.memory_id == memory_id]
        for sid in orphaned:
            del self._shares[sid]
        log.debug("store.memory.cascade", memory_id=str(memory_id), shares=len(orphaned))
        return True

    # ------------------------------------------------------------------
    # Share tokens
    # ------------------------------------------------------------------

    async def set_share_token(self, memory_id: uuid.UUID, token: str) -> Memory | None:
        # No await between read and write: the replace is atomic for this loop.
        memory = self._memories.get(memory_id)
        if memory is None:
            return None
        memory.share_token = token
        memory.is_public = True
        if memory.visibility == Visibility.PRIVATE:
            memory.visibility = Visibility.SHARED
        memory.updated_at = _now()
        return memory

    async def get_memory_by_share_token(self, token: str) -> Memory | None:
        for memory in self._memories.values():
            if memory.share_token == token and memory.is_public:
                return memory
        return None

    # ------------------------------------------------------------------
    # Shares
    # ------------------------------------------------------------------

    async def add_share(self, share: MemoryShare) -> MemoryShare:
        if share.id is None:
            share.id = uuid.uuid4()
        if share.permission is None:
            share.permission = SharePermission.VIEW
        if share.created_at is None:
            share.created_at = _now()
        self._shares[share.id] = share
        return share

    async def get_share(self, share_id: uuid.UUID) -> MemoryShare | None:
        return self._shares.get(share_id)

    async def list_shares(self, memory_id: uuid.UUID) -> list[MemoryShare]:
        shares = [s for s in self._shares.values() if s.memory_id == memory_id]
        return sorted(shares, key=lambda s: s.created_at)

    async def list_shares_for_email(self, email: str) -> list[MemoryShare]:
        wanted = email.lower()
        shares = [s for s in self._shares.values() if s.shared_with_email.lower() == wanted]
        return sorted(shares, key=lambda s: s.created_at, reverse=True)

    async def delete_share(self, share_id: uuid.UUID) -> bool:
        return self._shares.pop(share_id, None) is not None

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    async def list_prompts(self, category: str | None = None) -> list[MemoryPrompt]:
        return [
            p for p in self._prompts.values()
            if p.is_active and (category is None or p.category == category)
        ]

    async def add_prompt(self, prompt: MemoryPrompt) -> MemoryPrompt:
        if prompt.id is None:
            prompt.id = next(self._prompt_ids)
        if prompt.is_active is None:
            prompt.is_active = True
        self._prompts[prompt.id] = prompt
        return prompt

    async def count_prompts(self) -> int:
        return len(self._prompts)
