"""Read access to the profile store."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orbit.db.models import User, UserRole


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by id."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_student(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by id only if they hold the student role."""
    result = await db.execute(
        select(User).where(User.id == user_id, User.role == UserRole.STUDENT)
    )
    return result.scalar_one_or_none()
