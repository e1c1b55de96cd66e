"""Balance drift detection.

Compares each student's stored balance with the sum of the rewards of
their active (non-canceled) awards. Reports only; never rewrites a balance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orbit.db.models import IssuedAchievement, User, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceDrift:
    user_id: str
    balance: int
    expected: int

    @property
    def delta(self) -> int:
        return self.balance - self.expected


async def find_balance_drift(db: AsyncSession) -> list[BalanceDrift]:
    """Return every student whose balance disagrees with their active awards."""
    expected = func.coalesce(func.sum(IssuedAchievement.reward), 0)
    result = await db.execute(
        select(User.id, User.balance, expected.label("expected"))
        .outerjoin(
            IssuedAchievement,
            and_(
                IssuedAchievement.student_id == User.id,
                IssuedAchievement.is_canceled.is_(False),
            ),
        )
        .where(User.role == UserRole.STUDENT)
        .group_by(User.id, User.balance)
        .having(User.balance != expected)
        .order_by(User.id)
    )
    drifts = [
        BalanceDrift(user_id=row.id, balance=row.balance, expected=int(row.expected))
        for row in result
    ]
    for drift in drifts:
        logger.warning(
            "Balance drift for user %s: stored=%d expected=%d",
            drift.user_id, drift.balance, drift.expected,
        )
    return drifts
