"""Operation log tests: visibility by role, filters, ordering."""

from __future__ import annotations

import pytest
import pytest_asyncio

from conftest import make_achievement, make_group, make_institute, make_user
from orbit.achievements.audit import list_operations
from orbit.achievements.workflow import cancel_achievement, issue_achievement
from orbit.db.models import OperationType, UserRole
from orbit.errors import ForbiddenError, InvalidError


@pytest_asyncio.fixture
async def history(db_session):
    """Three issues (two in institute 1, one in institute 2) and one cancel."""
    inst1 = await make_institute(db_session, "ИКНТ")
    inst2 = await make_institute(db_session, "ИЭ")
    g1 = await make_group(db_session, inst1, "G1")
    g2 = await make_group(db_session, inst2, "G2")

    sputnik = await make_user(db_session, role=UserRole.SPUTNIK)
    admin = await make_user(db_session, role=UserRole.ADMIN)
    curator = await make_user(db_session, role=UserRole.CURATOR, institute=inst1)
    s1 = await make_user(db_session, first_name="S1", group=g1)
    s2 = await make_user(db_session, first_name="S2", group=g2)
    achievement = await make_achievement(db_session, reward=20)

    a1 = await issue_achievement(db_session, sputnik.id, s1.id, achievement.id)
    a2 = await issue_achievement(db_session, sputnik.id, s1.id, achievement.id)
    a3 = await issue_achievement(db_session, admin.id, s2.id, achievement.id)
    await cancel_achievement(db_session, admin.id, a2.id, "duplicate")

    return {
        "sputnik": sputnik, "admin": admin, "curator": curator,
        "s1": s1.id, "s2": s2.id, "awards": [a1.id, a2.id, a3.id],
    }


class TestListOperations:
    @pytest.mark.asyncio
    async def test_admin_sees_everything_newest_first(self, db_session, history):
        page = await list_operations(db_session, history["admin"])

        assert page.total == 4
        assert page.items[0].type == OperationType.CANCEL
        stamps = [op.created_at for op in page.items]
        assert stamps == sorted(stamps, reverse=True)

    @pytest.mark.asyncio
    async def test_ascending_order(self, db_session, history):
        page = await list_operations(db_session, history["admin"], order="asc")
        assert page.items[0].type == OperationType.ISSUE
        assert page.items[-1].type == OperationType.CANCEL
        assert page.sort_by == [("created_at", "ASC")]

    @pytest.mark.asyncio
    async def test_curator_limited_to_own_institute(self, db_session, history):
        page = await list_operations(db_session, history["curator"])

        assert page.total == 3
        assert {op.issued_achievement.student_id for op in page.items} == {history["s1"]}

    @pytest.mark.asyncio
    async def test_curator_without_institute_sees_nothing(self, db_session, history):
        curator = await make_user(db_session, role=UserRole.CURATOR)
        loner = await make_user(db_session, first_name="Loner")
        achievement = await make_achievement(db_session, name="Solo", reward=5)
        await issue_achievement(db_session, history["admin"].id, loner.id, achievement.id)

        page = await list_operations(db_session, curator)

        assert page.total == 0
        assert page.items == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [UserRole.STUDENT, UserRole.SPUTNIK])
    async def test_other_roles_refused(self, db_session, history, role):
        viewer = history["sputnik"] if role == UserRole.SPUTNIK else await make_user(db_session)
        with pytest.raises(ForbiddenError):
            await list_operations(db_session, viewer)

    @pytest.mark.asyncio
    async def test_filter_by_type(self, db_session, history):
        page = await list_operations(db_session, history["admin"], type_=OperationType.CANCEL)
        assert page.total == 1
        assert page.items[0].issued_achievement_id == history["awards"][1]

    @pytest.mark.asyncio
    async def test_filter_by_actor(self, db_session, history):
        page = await list_operations(db_session, history["admin"], actor_id=history["admin"].id)
        assert page.total == 2

    @pytest.mark.asyncio
    async def test_filter_by_student(self, db_session, history):
        page = await list_operations(db_session, history["admin"], student_id=history["s2"])
        assert page.total == 1

    @pytest.mark.asyncio
    async def test_filter_by_award(self, db_session, history):
        page = await list_operations(
            db_session, history["admin"], issued_achievement_id=history["awards"][1],
        )
        assert sorted(op.type for op in page.items) == [OperationType.CANCEL, OperationType.ISSUE]

    @pytest.mark.asyncio
    async def test_pagination(self, db_session, history):
        page = await list_operations(db_session, history["admin"], page=2, per_page=3)
        assert page.total == 4
        assert page.total_pages == 2
        assert len(page.items) == 1

    @pytest.mark.asyncio
    async def test_invalid_type(self, db_session, history):
        with pytest.raises(InvalidError):
            await list_operations(db_session, history["admin"], type_="delete")

    @pytest.mark.asyncio
    async def test_invalid_order(self, db_session, history):
        with pytest.raises(InvalidError):
            await list_operations(db_session, history["admin"], order="sideways")
