"""Unseen-award inbox for students.

Canceled awards never show up as unseen. Acknowledging ids that are not the
caller's (or are unknown, or already seen) is a silent no-op.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from orbit.db.models import AwardAcknowledgment, IssuedAchievement


async def list_unseen(db: AsyncSession, user_id: str) -> list[IssuedAchievement]:
    """Active awards the user has not acknowledged yet, newest first."""
    result = await db.execute(
        select(IssuedAchievement)
        .join(
            AwardAcknowledgment,
            AwardAcknowledgment.issued_achievement_id == IssuedAchievement.id,
        )
        .where(
            AwardAcknowledgment.user_id == user_id,
            AwardAcknowledgment.is_seen.is_(False),
            IssuedAchievement.is_canceled.is_(False),
        )
        .order_by(IssuedAchievement.created_at.desc())
    )
    return list(result.scalars().all())


async def mark_seen(db: AsyncSession, user_id: str, award_ids: Iterable[str]) -> int:
    """Acknowledge the caller's own awards among ``award_ids``. Returns count flipped."""
    ids = set(award_ids)
    if not ids:
        return 0

    result = await db.execute(
        update(AwardAcknowledgment)
        .where(
            AwardAcknowledgment.issued_achievement_id.in_(ids),
            AwardAcknowledgment.user_id == user_id,
            AwardAcknowledgment.is_seen.is_(False),
        )
        .values(is_seen=True, seen_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount
