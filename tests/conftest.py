"""Shared test fixtures.

Tests run against an in-memory SQLite database (aiosqlite + StaticPool) so
the suite needs neither Postgres nor Redis. The schema is rebuilt per test.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("ORBIT_JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("ORBIT_LOG_FORMAT", "console")

from orbit.auth.jwt import create_access_token  # noqa: E402
from orbit.config import get_settings  # noqa: E402
from orbit.database import get_session  # noqa: E402
from orbit.db.base import Base  # noqa: E402
from orbit.db.models import (  # noqa: E402
    Achievement,
    Group,
    Institute,
    User,
    UserRole,
    UserSettings,
)
from orbit.dependencies import get_notifier  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng.sync_engine, "connect")
    def _enable_sqlite_fks(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Fresh session per test. Objects stay readable after commit."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def sink() -> AsyncMock:
    """Stand-in notification queue recording every enqueue call."""
    mock = AsyncMock()
    mock.enqueue = AsyncMock(return_value=None)
    return mock


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, sink: AsyncMock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the test session and the mock notification queue."""
    get_settings.cache_clear()
    from orbit.main import create_app

    app = create_app()

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_session] = _override_session
    app.dependency_overrides[get_notifier] = lambda: sink

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers(user_id: str, role: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


# --- Factories ---


async def make_institute(db: AsyncSession, name: str = "ИКНТ") -> Institute:
    institute = Institute(name=name)
    db.add(institute)
    await db.commit()
    return institute


async def make_group(db: AsyncSession, institute: Institute, name: str = "5130901/10001") -> Group:
    group = Group(name=name, institute_id=institute.id)
    db.add(group)
    await db.commit()
    return group


async def make_user(
    db: AsyncSession,
    *,
    role: str = UserRole.STUDENT,
    first_name: str = "Иван",
    last_name: str = "Петров",
    balance: int = 0,
    group: Group | None = None,
    institute: Institute | None = None,
    is_banned: bool = False,
    visible_in_top: bool = True,
    tg_id: str | None = None,
    vk_id: str | None = None,
    receive_tg: bool = True,
    receive_vk: bool = True,
) -> User:
    user = User(
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_banned=is_banned,
        balance=balance,
        group_id=group.id if group else None,
        institute_id=institute.id if institute else (group.institute_id if group else None),
        tg_id=tg_id,
        vk_id=vk_id,
        created_at=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.flush()
    if role == UserRole.STUDENT:
        db.add(UserSettings(
            user_id=user.id,
            is_visible_in_top=visible_in_top,
            receive_tg_achievement_notifications=receive_tg,
            receive_vk_achievement_notifications=receive_vk,
        ))
    await db.commit()
    # Load group/institute/settings relationships for later attribute access
    await db.refresh(user)
    return user


async def make_achievement(
    db: AsyncSession,
    *,
    name: str = "Первый шаг",
    reward: int = 10,
    rarity: str = "common",
) -> Achievement:
    achievement = Achievement(
        name=name,
        type="activity",
        category="study",
        rarity=rarity,
        reward=reward,
        hidden_icon_path="/icons/hidden.png",
        opened_icon_path="/icons/opened.png",
        sputnik_requirement="Проверить участие",
        student_requirement="Поучаствовать",
        hint=None,
        rofl_description=None,
    )
    db.add(achievement)
    await db.commit()
    return achievement
