"""Balance reconciliation and refresh-session purge."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from conftest import make_achievement, make_user
from orbit.achievements.workflow import cancel_achievement, issue_achievement
from orbit.auth.sessions import purge_expired_sessions
from orbit.db.models import RefreshSession, UserRole
from orbit.ledger.reconciliation import find_balance_drift
from orbit.ledger.service import credit


class TestBalanceDrift:
    @pytest.mark.asyncio
    async def test_consistent_ledger_has_no_drift(self, db_session):
        sputnik = await make_user(db_session, role=UserRole.SPUTNIK)
        student = await make_user(db_session)
        achievement = await make_achievement(db_session, reward=15)

        award = await issue_achievement(db_session, sputnik.id, student.id, achievement.id)
        await issue_achievement(db_session, sputnik.id, student.id, achievement.id)
        await cancel_achievement(db_session, sputnik.id, award.id, "mistake")

        assert await find_balance_drift(db_session) == []

    @pytest.mark.asyncio
    async def test_out_of_band_change_is_reported(self, db_session):
        student = await make_user(db_session)
        await credit(db_session, student.id, 7)
        await db_session.commit()

        drifts = await find_balance_drift(db_session)

        assert len(drifts) == 1
        assert drifts[0].user_id == student.id
        assert drifts[0].balance == 7
        assert drifts[0].expected == 0
        assert drifts[0].delta == 7

    @pytest.mark.asyncio
    async def test_staff_balances_ignored(self, db_session):
        await make_user(db_session, role=UserRole.CURATOR, balance=99)
        assert await find_balance_drift(db_session) == []


class TestPurgeSessions:
    @pytest.mark.asyncio
    async def test_removes_only_expired(self, db_session):
        user = await make_user(db_session)
        now = datetime.now(timezone.utc)
        db_session.add_all([
            RefreshSession(user_id=user.id, expires_at=now - timedelta(days=1)),
            RefreshSession(user_id=user.id, expires_at=now - timedelta(seconds=1)),
            RefreshSession(user_id=user.id, expires_at=now + timedelta(days=30)),
        ])
        await db_session.commit()

        assert await purge_expired_sessions(db_session, now=now) == 2
        assert await purge_expired_sessions(db_session, now=now) == 0

        remaining = await db_session.execute(select(func.count()).select_from(RefreshSession))
        assert remaining.scalar_one() == 1
