"""arq worker task tests."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from conftest import make_user
from orbit.db.models import RefreshSession
from orbit.workers.tasks import (
    WorkerSettings,
    deliver_notification,
    purge_sessions,
    reconcile_balances,
    stream_key,
)


@pytest.mark.asyncio
async def test_deliver_appends_to_channel_stream():
    redis = AsyncMock()
    redis.xadd.return_value = "1700000000000-0"

    entry = await deliver_notification({"redis": redis}, "vk", "222", "hello")

    assert entry == "1700000000000-0"
    args, kwargs = redis.xadd.await_args
    assert args == ("notifications:vk", {"recipient": "222", "message": "hello"})
    assert kwargs["approximate"] is True
    assert kwargs["maxlen"] > 0


def test_stream_key():
    assert stream_key("telegram") == "notifications:telegram"


def test_worker_registers_tasks():
    names = {f.__name__ for f in WorkerSettings.functions}
    assert names == {"deliver_notification", "purge_sessions", "reconcile_balances"}
    assert len(WorkerSettings.cron_jobs) == 2


def _scope_for(session):
    @asynccontextmanager
    async def _scope():
        yield session

    return _scope


@pytest.mark.asyncio
async def test_purge_sessions_job(db_session):
    user = await make_user(db_session)
    db_session.add(RefreshSession(
        user_id=user.id, expires_at=datetime.now(timezone.utc) - timedelta(hours=1),
    ))
    await db_session.commit()

    with patch("orbit.workers.tasks.session_scope", _scope_for(db_session)):
        assert await purge_sessions({}) == 1


@pytest.mark.asyncio
async def test_reconcile_job_counts_drift(db_session):
    await make_user(db_session, balance=0)
    await make_user(db_session, first_name="Дрейф", balance=5)

    with patch("orbit.workers.tasks.session_scope", _scope_for(db_session)):
        assert await reconcile_balances({}) == 1
