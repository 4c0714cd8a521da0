"""Journal persistence: the JournalStore interface and its adapters."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from journal.database import get_db_session
from journal.storage.base import JournalStore, MemoryFilters
from journal.storage.memory import InMemoryJournalStore
from journal.storage.sql import SqlJournalStore


async def get_store(
    db: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[JournalStore, None]:
    """FastAPI dependency yielding a request-scoped relational store.

    Tests override this with an InMemoryJournalStore.
    """
    yield SqlJournalStore(db)


__all__ = [
    "InMemoryJournalStore",
    "JournalStore",
    "MemoryFilters",
    "SqlJournalStore",
    "get_store",
]
