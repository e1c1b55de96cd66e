"""Achievement API endpoints: catalog, issue/cancel, inbox and audit log."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orbit.achievements.audit import list_operations
from orbit.achievements.catalog import list_achievements_for_user, list_unlocked
from orbit.achievements.inbox import list_unseen, mark_seen
from orbit.achievements.schemas import (
    AchievementResponse,
    CancelRequest,
    CatalogEntryResponse,
    CatalogResponse,
    IssueRequest,
    IssuedAchievementListResponse,
    IssuedAchievementResponse,
    MarkSeenRequest,
    MarkSeenResponse,
    OperationListResponse,
    OperationResponse,
)
from orbit.achievements.workflow import cancel_achievement, issue_achievement
from orbit.auth.dependencies import get_current_user, require_roles
from orbit.database import get_session
from orbit.db.models import STAFF_ROLES, User, UserRole
from orbit.dependencies import get_notifier
from orbit.notifications.queue import NotificationSink
from orbit.users.service import get_student

router = APIRouter(prefix="/api/v1", tags=["Achievements"])

_student = require_roles(UserRole.STUDENT)
_issuer = require_roles(UserRole.SPUTNIK, UserRole.CURATOR, UserRole.ADMIN)
_staff = require_roles(*STAFF_ROLES)
_auditor = require_roles(UserRole.CURATOR, UserRole.ADMIN)


def _award_list(awards: list) -> IssuedAchievementListResponse:
    return IssuedAchievementListResponse(
        items=[IssuedAchievementResponse.model_validate(a) for a in awards],
        total=len(awards),
    )


# ── Catalog ──


@router.get("/achievements", response_model=CatalogResponse)
async def get_catalog(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Full catalog with how many times the caller has unlocked each entry."""
    rows = await list_achievements_for_user(db, user.id)
    return CatalogResponse(achievements=[
        CatalogEntryResponse(
            **AchievementResponse.model_validate(achievement).model_dump(),
            unlocked_count=count,
            is_unlocked=count > 0,
        )
        for achievement, count in rows
    ])


@router.get("/achievements/me/unlocked", response_model=IssuedAchievementListResponse)
async def get_my_unlocked(
    user: User = Depends(_student),
    db: AsyncSession = Depends(get_session),
):
    return _award_list(await list_unlocked(db, user.id))


@router.get("/students/{student_id}/achievements/unlocked", response_model=IssuedAchievementListResponse)
async def get_student_unlocked(
    student_id: str,
    _user: User = Depends(_staff),
    db: AsyncSession = Depends(get_session),
):
    """Active awards of any student, for staff."""
    student = await get_student(db, student_id)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")
    return _award_list(await list_unlocked(db, student.id))


# ── Issue / cancel ──


@router.post("/achievements/issue", response_model=IssuedAchievementResponse, status_code=201)
async def issue(
    body: IssueRequest,
    user: User = Depends(_issuer),
    db: AsyncSession = Depends(get_session),
    notifier: NotificationSink | None = Depends(get_notifier),
):
    award = await issue_achievement(db, user.id, body.student_id, body.achievement_id, notifier=notifier)
    return IssuedAchievementResponse.model_validate(award)


@router.delete("/achievements/cancel", response_model=IssuedAchievementResponse)
async def cancel(
    body: CancelRequest,
    user: User = Depends(_issuer),
    db: AsyncSession = Depends(get_session),
    notifier: NotificationSink | None = Depends(get_notifier),
):
    award = await cancel_achievement(db, user.id, body.issued_achievement_id, body.reason, notifier=notifier)
    return IssuedAchievementResponse.model_validate(award)


# ── Inbox ──


@router.get("/achievements/me/issued/unseen", response_model=IssuedAchievementListResponse)
async def get_unseen(
    user: User = Depends(_student),
    db: AsyncSession = Depends(get_session),
):
    """Awards the caller has not acknowledged yet."""
    return _award_list(await list_unseen(db, user.id))


@router.patch("/achievements/me/issued/unseen/mark-as-seen", response_model=MarkSeenResponse)
async def post_mark_seen(
    body: MarkSeenRequest,
    user: User = Depends(_student),
    db: AsyncSession = Depends(get_session),
):
    updated = await mark_seen(db, user.id, body.ids)
    return MarkSeenResponse(updated=updated)


# ── Audit ──


@router.get("/achievements/operations", response_model=OperationListResponse)
async def get_operations(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    type: str | None = Query(None, description="issue or cancel"),  # noqa: A002
    actor_id: str | None = Query(None),
    student_id: str | None = Query(None),
    issued_achievement_id: str | None = Query(None),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    user: User = Depends(_auditor),
    db: AsyncSession = Depends(get_session),
):
    """Paginated operation log, scoped to the curator's institute."""
    result = await list_operations(
        db, user,
        page=page,
        per_page=per_page,
        type_=type,
        actor_id=actor_id,
        student_id=student_id,
        issued_achievement_id=issued_achievement_id,
        order=order,
    )
    return OperationListResponse(
        operations=[
            OperationResponse(
                id=op.id,
                type=op.type,
                actor_id=op.actor_id,
                issued_achievement_id=op.issued_achievement_id,
                created_at=op.created_at,
                student_id=op.issued_achievement.student_id,
                achievement_id=op.issued_achievement.achievement_id,
                reward=op.issued_achievement.reward,
            )
            for op in result.items
        ],
        total=result.total,
        page=result.page,
        per_page=result.per_page,
        total_pages=result.total_pages,
    )
