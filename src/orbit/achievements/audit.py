"""Operator view of the append-only achievement operation log."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from orbit.db.models import (
    AchievementOperation,
    IssuedAchievement,
    OperationType,
    User,
    UserRole,
)
from orbit.errors import ForbiddenError, InvalidError
from orbit.pagination import Page, paginate

VALID_OPERATION_TYPES = {OperationType.ISSUE, OperationType.CANCEL}


async def list_operations(
    db: AsyncSession,
    viewer: User,
    page: int = 1,
    per_page: int = 20,
    type_: str | None = None,
    actor_id: str | None = None,
    student_id: str | None = None,
    issued_achievement_id: str | None = None,
    order: str = "desc",
) -> Page[AchievementOperation]:
    """Paginated audit trail.

    Admins see every entry; curators only entries about students of their
    own institute. Other roles are refused.
    """
    if viewer.role not in (UserRole.ADMIN, UserRole.CURATOR):
        raise ForbiddenError("Only curators and admins can read the operation log")
    if type_ is not None and type_ not in VALID_OPERATION_TYPES:
        raise InvalidError(f"Unknown operation type: {type_}")
    if order not in ("asc", "desc"):
        raise InvalidError(f"Unknown sort order: {order}")

    student = aliased(User)
    query = (
        select(AchievementOperation)
        .join(IssuedAchievement, AchievementOperation.issued_achievement_id == IssuedAchievement.id)
        .join(student, IssuedAchievement.student_id == student.id)
    )

    if viewer.role == UserRole.CURATOR:
        # A curator without an institute oversees nobody
        if viewer.institute_id is None:
            return Page(items=[], total=0, page=max(page, 1), per_page=per_page,
                        sort_by=[("created_at", order.upper())])
        query = query.where(student.institute_id == viewer.institute_id)
    if type_ is not None:
        query = query.where(AchievementOperation.type == type_)
    if actor_id is not None:
        query = query.where(AchievementOperation.actor_id == actor_id)
    if student_id is not None:
        query = query.where(IssuedAchievement.student_id == student_id)
    if issued_achievement_id is not None:
        query = query.where(AchievementOperation.issued_achievement_id == issued_achievement_id)

    created = AchievementOperation.created_at
    query = query.order_by(
        created.desc() if order == "desc" else created.asc(),
        AchievementOperation.id,
    )

    return await paginate(
        db, query, page=page, per_page=per_page,
        sort_by=[("created_at", order.upper())],
    )
