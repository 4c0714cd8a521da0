"""Relational JournalStore over an async SQLAlchemy session.

The session is owned by the request (see journal.database.get_db_session);
this store only flushes, it never commits or rolls back.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import (
    Select,
    String,
    case,
    cast,
    delete,
    func,
    literal,
    or_,
    select,
    update,
)
from sqlalchemy.ext.asyncio import AsyncSession

from journal.models.memory import Memory, Visibility
from journal.models.memory_prompt import MemoryPrompt
from journal.models.memory_share import MemoryShare
from journal.models.user import User
from journal.storage.base import JournalStore, MemoryFilters

log = structlog.get_logger(__name__)


def _apply_filters(stmt: Select[tuple[Memory]], filters: MemoryFilters) -> Select[tuple[Memory]]:
    """Translate MemoryFilters into WHERE clauses."""
    people_text = func.array_to_string(Memory.people, " ")

    if filters.emotion is not None:
        stmt = stmt.where(Memory.emotion == filters.emotion)
    if filters.location:
        stmt = stmt.where(Memory.location.ilike(f"%{filters.location}%"))
    if filters.people:
        stmt = stmt.where(or_(*(people_text.ilike(f"%{name}%") for name in filters.people)))
    if filters.start_date is not None:
        stmt = stmt.where(Memory.date >= filters.start_date)
    if filters.end_date is not None:
        stmt = stmt.where(Memory.date <= filters.end_date)
    if filters.search:
        pattern = f"%{filters.search}%"
        stmt = stmt.where(
            or_(
                Memory.content.ilike(pattern),
                Memory.transcript.ilike(pattern),
                Memory.location.ilike(pattern),
                Memory.title.ilike(pattern),
                cast(Memory.emotion, String).ilike(pattern),
                people_text.ilike(pattern),
            )
        )
    return stmt


class SqlJournalStore(JournalStore):
    """Production store backed by PostgreSQL."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, user_id: str) -> User | None:
        return await self._db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        stmt = select(User).where(func.lower(User.email) == email.lower())
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_user(self, user: User) -> User:
        self._db.add(user)
        await self._db.flush()
        return user

    async def update_user(self, user_id: str, changes: dict[str, Any]) -> User | None:
        user = await self._db.get(User, user_id)
        if user is None:
            return None
        for key, value in changes.items():
            setattr(user, key, value)
        await self._db.flush()
        return user

    # ------------------------------------------------------------------
    # Memories
    # ------------------------------------------------------------------

    async def get_memory(self, memory_id: uuid.UUID) -> Memory | None:
        return await self._db.get(Memory, memory_id)

    async def get_memories(self, memory_ids: list[uuid.UUID]) -> list[Memory]:
        if not memory_ids:
            return []
        result = await self._db.execute(select(Memory).where(Memory.id.in_(memory_ids)))
        return list(result.scalars().all())

    async def list_memories(
        self,
        user_id: str,
        filters: MemoryFilters | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Memory]:
        stmt = select(Memory).where(Memory.user_id == user_id)
        if filters is not None:
            stmt = _apply_filters(stmt, filters)
        stmt = stmt.order_by(Memory.date.desc()).limit(limit).offset(offset)

        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def create_memory(self, memory: Memory) -> Memory:
        self._db.add(memory)
        await self._db.flush()
        return memory

    async def update_memory(
        self, memory_id: uuid.UUID, changes: dict[str, Any]
    ) -> Memory | None:
        memory = await self._db.get(Memory, memory_id)
        if memory is None:
            return None
        for key, value in changes.items():
            setattr(memory, key, value)
        memory.updated_at = datetime.now(UTC)
        await self._db.flush()
        return memory

    async def delete_memory(self, memory_id: uuid.UUID) -> bool:
        # memory_shares rows go with it via ON DELETE CASCADE
        result = await self._db.execute(delete(Memory).where(Memory.id == memory_id))
        return (result.rowcount or 0) > 0

    # ------------------------------------------------------------------
    # Share tokens
    # ------------------------------------------------------------------

    async def set_share_token(self, memory_id: uuid.UUID, token: str) -> Memory | None:
        # Single-row UPDATE: the old token is replaced in one statement.
        shared = literal(Visibility.SHARED, Memory.visibility.type)
        opened = case((Memory.visibility == Visibility.PRIVATE, shared), else_=Memory.visibility)
        stmt = (
            update(Memory)
            .where(Memory.id == memory_id)
            .values(
                share_token=token,
                is_public=True,
                visibility=opened,
                updated_at=datetime.now(UTC),
            )
            .returning(Memory)
            .execution_options(populate_existing=True)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_memory_by_share_token(self, token: str) -> Memory | None:
        stmt = (
            select(Memory)
            .where(Memory.share_token == token, Memory.is_public.is_(True))
            .limit(1)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Shares
    # ------------------------------------------------------------------

    async def add_share(self, share: MemoryShare) -> MemoryShare:
        self._db.add(share)
        await self._db.flush()
        return share

    async def get_share(self, share_id: uuid.UUID) -> MemoryShare | None:
        return await self._db.get(MemoryShare, share_id)

    async def list_shares(self, memory_id: uuid.UUID) -> list[MemoryShare]:
        stmt = (
            select(MemoryShare)
            .where(MemoryShare.memory_id == memory_id)
            .order_by(MemoryShare.created_at.asc())
        )
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def list_shares_for_email(self, email: str) -> list[MemoryShare]:
        stmt = (
            select(MemoryShare)
            .where(func.lower(MemoryShare.shared_with_email) == email.lower())
            .order_by(MemoryShare.created_at.desc())
        )
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def delete_share(self, share_id: uuid.UUID) -> bool:
        result = await self._db.execute(delete(MemoryShare).where(MemoryShare.id == share_id))
        return (result.rowcount or 0) > 0

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    async def list_prompts(self, category: str | None = None) -> list[MemoryPrompt]:
        stmt = select(MemoryPrompt).where(MemoryPrompt.is_active.is_(True))
        if category:
            stmt = stmt.where(MemoryPrompt.category == category)
        result = await self._db.execute(stmt.order_by(MemoryPrompt.id))
        return list(result.scalars().all())

    async def add_prompt(self, prompt: MemoryPrompt) -> MemoryPrompt:
        self._db.add(prompt)
        await self._db.flush()
        return prompt

    async def count_prompts(self) -> int:
        result = await self._db.execute(select(func.count(MemoryPrompt.id)))
        return int(result.scalar() or 0)
