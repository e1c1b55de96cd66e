"""Achievement catalog and per-student award lookups."""

from __future__ import annotations

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orbit.db.models import Achievement, IssuedAchievement


async def get_achievement(db: AsyncSession, achievement_id: str) -> Achievement | None:
    """Fetch a catalog entry by id."""
    result = await db.execute(select(Achievement).where(Achievement.id == achievement_id))
    return result.scalar_one_or_none()


async def list_achievements(db: AsyncSession) -> list[Achievement]:
    result = await db.execute(select(Achievement).order_by(Achievement.name, Achievement.id))
    return list(result.scalars().all())


async def list_achievements_for_user(
    db: AsyncSession, user_id: str,
) -> list[tuple[Achievement, int]]:
    """Every catalog entry paired with how many active awards of it the user holds."""
    unlocked = func.count(IssuedAchievement.id)
    result = await db.execute(
        select(Achievement, unlocked.label("unlocked_count"))
        .outerjoin(
            IssuedAchievement,
            and_(
                IssuedAchievement.achievement_id == Achievement.id,
                IssuedAchievement.student_id == user_id,
                IssuedAchievement.is_canceled.is_(False),
            ),
        )
        .group_by(Achievement.id)
        .order_by(Achievement.name, Achievement.id)
    )
    return [(row.Achievement, row.unlocked_count) for row in result]


async def list_unlocked(db: AsyncSession, student_id: str) -> list[IssuedAchievement]:
    """A student's active awards, newest first."""
    result = await db.execute(
        select(IssuedAchievement)
        .where(
            IssuedAchievement.student_id == student_id,
            IssuedAchievement.is_canceled.is_(False),
        )
        .order_by(IssuedAchievement.created_at.desc())
    )
    return list(result.scalars().all())
