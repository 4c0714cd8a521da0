"""
Database engine and session management (SQLAlchemy 2.0 async, asyncpg).

The engine and session factory are created once by init_db() in the app
lifespan (or by scripts/seed.py) and disposed by close_db(). Requests get
their session from get_db_session(), which owns the transaction: commit
when the handler returns, rollback when it raises. Stores and services
never commit.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from journal.config import Environment, Settings, get_settings

log = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for users, memories, memory_shares and memory_prompts."""


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(settings: Settings) -> dict[str, Any]:
    if settings.environment == Environment.TEST:
        # Each test run opens and closes its own connections.
        return {"echo": settings.db_echo_sql, "poolclass": NullPool}
    return {
        "echo": settings.db_echo_sql,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }


def _redacted(url: str) -> str:
    return url.rsplit("@", 1)[-1]


def init_db(settings: Settings | None = None) -> None:
    global _engine, _session_factory
    cfg = settings or get_settings()
    _engine = create_async_engine(cfg.database_url, **_engine_options(cfg))
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    log.info("database.initialized", url=_redacted(cfg.database_url))


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    log.info("database.closed")


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory


async def ping() -> bool:
    """Return True when the database answers a trivial query."""
    if _engine is None:
        return False
    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (OSError, SQLAlchemyError) as exc:
        log.warning("database.unreachable", error=str(exc))
        return False
    return True


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session bound to the request's transaction."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
