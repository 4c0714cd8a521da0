"""Persistence interface for the journal.

Defines the JournalStore ABC that the services depend on. Two concrete
implementations live next to it:

- SqlJournalStore: production store over an AsyncSession (PostgreSQL)
- InMemoryJournalStore: dict-backed store for tests and local dev

Stores are constructed per request and injected; nothing here is a
process-wide singleton.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from journal.models.memory import Emotion, Memory
from journal.models.memory_prompt import MemoryPrompt
from journal.models.memory_share import MemoryShare
from journal.models.user import User


@dataclass(frozen=True)
class MemoryFilters:
    """Optional filters for listing a user's memories.

    All given filters are combined with AND. Text matching is
    case-insensitive substring matching.
    """

    emotion: Emotion | None = None
    location: str | None = None
    people: tuple[str, ...] = field(default_factory=tuple)
    start_date: datetime | None = None
    end_date: datetime | None = None
    search: str | None = None

    def matches(self, memory: Memory) -> bool:
        """Evaluate the filters against one memory (used by in-process stores)."""
        if self.emotion is not None and memory.emotion != self.emotion:
            return False
        if self.location:
            if not memory.location or self.location.lower() not in memory.location.lower():
                return False
        if self.people:
            wanted = [p.lower() for p in self.people]
            names = [name.lower() for name in (memory.people or [])]
            if not any(w in name for name in names for w in wanted):
                return False
        if self.start_date is not None and memory.date < self.start_date:
            return False
        if self.end_date is not None and memory.date > self.end_date:
            return False
        if self.search:
            needle = self.search.lower()
            haystacks = [
                memory.content,
                memory.transcript,
                memory.location,
                memory.title,
                str(memory.emotion) if memory.emotion else None,
                *(memory.people or []),
            ]
            if not any(h and needle in h.lower() for h in haystacks):
                return False
        return True


class JournalStore(ABC):
    """Abstract interface all journal stores must implement."""

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_user(self, user_id: str) -> User | None:
        """Return the user with this id, or None."""

    @abstractmethod
    async def get_user_by_email(self, email: str) -> User | None:
        """Return the user with this email (case-insensitive), or None."""

    @abstractmethod
    async def create_user(self, user: User) -> User:
        """Persist a new user."""

    @abstractmethod
    async def update_user(self, user_id: str, changes: dict[str, Any]) -> User | None:
        """Apply field changes to a user. Returns None if absent."""

    # ------------------------------------------------------------------
    # Memories
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_memory(self, memory_id: uuid.UUID) -> Memory | None:
        """Return one memory by id, or None."""

    @abstractmethod
    async def get_memories(self, memory_ids: list[uuid.UUID]) -> list[Memory]:
        """Return the memories among memory_ids that exist (any order)."""

    @abstractmethod
    async def list_memories(
        self,
        user_id: str,
        filters: MemoryFilters | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Memory]:
        """Return a user's memories matching filters, newest `date` first."""

    @abstractmethod
    async def create_memory(self, memory: Memory) -> Memory:
        """Persist a new memory."""

    @abstractmethod
    async def update_memory(
        self, memory_id: uuid.UUID, changes: dict[str, Any]
    ) -> Memory | None:
        """Apply field changes to a memory. Returns None if absent."""

    @abstractmethod
    async def delete_memory(self, memory_id: uuid.UUID) -> bool:
        """Delete a memory and its shares. Returns False if absent."""

    # ------------------------------------------------------------------
    # Share tokens
    # ------------------------------------------------------------------

    @abstractmethod
    async def set_share_token(self, memory_id: uuid.UUID, token: str) -> Memory | None:
        """Atomically replace the memory's share token and mark it public.

        A private memory becomes shared so the token can be served.

        Returns the updated memory, or None if the memory does not exist.
        """

    @abstractmethod
    async def get_memory_by_share_token(self, token: str) -> Memory | None:
        """Return the memory holding this token if it is also is_public."""

    # ------------------------------------------------------------------
    # Shares
    # ------------------------------------------------------------------

    @abstractmethod
    async def add_share(self, share: MemoryShare) -> MemoryShare:
        """Persist a new share row."""

    @abstractmethod
    async def get_share(self, share_id: uuid.UUID) -> MemoryShare | None:
        """Return one share by id, or None."""

    @abstractmethod
    async def list_shares(self, memory_id: uuid.UUID) -> list[MemoryShare]:
        """Return the shares of a memory, oldest first."""

    @abstractmethod
    async def list_shares_for_email(self, email: str) -> list[MemoryShare]:
        """Return the shares granted to an email, newest first."""

    @abstractmethod
    async def delete_share(self, share_id: uuid.UUID) -> bool:
        """Delete a share. Returns False if absent."""

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    @abstractmethod
    async def list_prompts(self, category: str | None = None) -> list[MemoryPrompt]:
        """Return active prompts, optionally restricted to one category."""

    @abstractmethod
    async def add_prompt(self, prompt: MemoryPrompt) -> MemoryPrompt:
        """Persist a new prompt."""

    @abstractmethod
    async def count_prompts(self) -> int:
        """Return the total number of prompts (active or not)."""
