"""Async SQLAlchemy engine and sessions.

The API gets sessions through the ``get_session`` dependency; the arq worker,
which has no request scope, uses ``session_scope()``.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

_engine: AsyncEngine | None = None
_sessions: async_sessionmaker[AsyncSession] | None = None


def _engine_options(url: str, pool_size: int, max_overflow: int) -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True}
    # Queue-pool sizing and the asyncpg statement cache only apply to Postgres
    if url.startswith("postgresql"):
        options["pool_size"] = pool_size
        options["max_overflow"] = max_overflow
        options["connect_args"] = {"statement_cache_size": 0}
    return options


async def init_db(url: str, pool_size: int = 20, max_overflow: int = 10) -> None:
    global _engine, _sessions  # noqa: PLW0603
    _engine = create_async_engine(url, **_engine_options(url, pool_size, max_overflow))
    _sessions = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)


async def close_db() -> None:
    global _engine, _sessions  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessions = None


def _session_factory() -> async_sessionmaker[AsyncSession]:
    if _sessions is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _sessions


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Standalone session for background jobs."""
    async with _session_factory()() as session:
        yield session


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with _session_factory()() as session:
        yield session
