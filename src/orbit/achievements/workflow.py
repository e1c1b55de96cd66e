"""Issuance and cancellation of achievement awards.

Each workflow is one transaction: the award row, the balance change, the
audit entry and (for issuance) the inbox row commit together or not at all.
Notifications are queued only after the commit succeeds.

Rules:
- The award stores a copy of the catalog reward; cancellation debits that copy
- An award flips Active -> Canceled once; a second cancel is a ConflictError
- The flip is a guarded UPDATE (``WHERE is_canceled = false``) so two
  concurrent cancels cannot both debit
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from orbit.achievements.catalog import get_achievement
from orbit.db.models import (
    ISSUER_ROLES,
    MAX_CANCELLATION_REASON_LENGTH,
    AchievementOperation,
    AwardAcknowledgment,
    IssuedAchievement,
    OperationType,
    User,
)
from orbit.errors import ConflictError, ForbiddenError, InvalidError, NotFoundError
from orbit.ledger.service import credit, debit
from orbit.notifications.dispatch import notify_canceled, notify_issued
from orbit.notifications.queue import NotificationSink
from orbit.users.service import get_student, get_user_by_id

logger = logging.getLogger(__name__)


def normalize_reason(reason: object) -> str:
    """Validate a free-text cancellation reason."""
    if not isinstance(reason, str):
        raise InvalidError("Cancellation reason must be text")
    cleaned = reason.strip()
    if not cleaned:
        raise InvalidError("Cancellation reason must not be empty")
    if len(cleaned) > MAX_CANCELLATION_REASON_LENGTH:
        raise InvalidError(
            f"Cancellation reason is longer than {MAX_CANCELLATION_REASON_LENGTH} characters"
        )
    return cleaned


async def _get_acting_issuer(db: AsyncSession, user_id: str) -> User:
    actor = await get_user_by_id(db, user_id)
    if actor is None:
        raise NotFoundError(f"User {user_id} not found")
    if actor.role not in ISSUER_ROLES:
        raise ForbiddenError("Only sputniks, curators and admins can issue or cancel achievements")
    return actor


async def get_award(db: AsyncSession, award_id: str) -> IssuedAchievement | None:
    """Fetch an award, bypassing any stale copy in the session."""
    result = await db.execute(
        select(IssuedAchievement)
        .where(IssuedAchievement.id == award_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def issue_achievement(
    db: AsyncSession,
    issuer_id: str,
    student_id: str,
    achievement_id: str,
    notifier: NotificationSink | None = None,
) -> IssuedAchievement:
    """Award an achievement to a student and credit its reward."""
    try:
        issuer = await _get_acting_issuer(db, issuer_id)

        student = await get_student(db, student_id)
        if student is None:
            raise NotFoundError(f"Student {student_id} not found")

        achievement = await get_achievement(db, achievement_id)
        if achievement is None:
            raise NotFoundError(f"Achievement {achievement_id} not found")

        now = datetime.now(timezone.utc)
        award = IssuedAchievement(
            id=str(uuid.uuid4()),
            achievement=achievement,
            issuer=issuer,
            student=student,
            canceler=None,
            reward=achievement.reward,
            is_canceled=False,
            cancellation_reason=None,
            created_at=now,
            updated_at=now,
        )
        db.add(award)
        await db.flush()

        await credit(db, student.id, award.reward)

        db.add(AchievementOperation(
            type=OperationType.ISSUE,
            actor_id=issuer.id,
            issued_achievement_id=award.id,
            created_at=now,
        ))
        db.add(AwardAcknowledgment(
            issued_achievement_id=award.id,
            user_id=student.id,
            is_seen=False,
        ))

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Issued achievement %s to %s by %s (award=%s, reward=%d)",
        achievement.id, student.id, issuer.id, award.id, award.reward,
    )
    await notify_issued(notifier, award)
    return award


async def cancel_achievement(
    db: AsyncSession,
    canceler_id: str,
    award_id: str,
    reason: object,
    notifier: NotificationSink | None = None,
) -> IssuedAchievement:
    """Cancel an active award and debit its stored reward."""
    cleaned_reason = normalize_reason(reason)

    try:
        canceler = await _get_acting_issuer(db, canceler_id)

        award = await get_award(db, award_id)
        if award is None:
            raise NotFoundError(f"Issued achievement {award_id} not found")
        if award.is_canceled:
            raise ConflictError(f"Issued achievement {award_id} is already canceled")

        now = datetime.now(timezone.utc)
        result = await db.execute(
            update(IssuedAchievement)
            .where(
                IssuedAchievement.id == award.id,
                IssuedAchievement.is_canceled.is_(False),
            )
            .values(
                is_canceled=True,
                cancellation_reason=cleaned_reason,
                canceler_id=canceler.id,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(f"Issued achievement {award_id} is already canceled")

        await debit(db, award.student_id, award.reward)

        db.add(AchievementOperation(
            type=OperationType.CANCEL,
            actor_id=canceler.id,
            issued_achievement_id=award.id,
            created_at=now,
        ))

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(award)
    logger.info(
        "Canceled award %s of %s by %s (reward=%d, reason=%r)",
        award.id, award.student_id, canceler.id, award.reward, cleaned_reason,
    )
    await notify_canceled(notifier, award)
    return award
