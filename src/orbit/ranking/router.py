"""Rank and leaderboard endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orbit.auth.dependencies import get_current_user, require_roles
from orbit.config import get_settings
from orbit.database import get_session
from orbit.db.models import User, UserRole
from orbit.ranking.schemas import (
    AllRanksResponse,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    RankResponse,
)
from orbit.ranking.service import get_all_ranks, get_rank, get_top_students

router = APIRouter(prefix="/api/v1", tags=["Ranking"])

_student = require_roles(UserRole.STUDENT)

_SCOPE_PATTERN = "^(group|institute|university)$"


@router.get("/students/me/rank", response_model=RankResponse)
async def get_my_rank(
    scope: str = Query("university", pattern=_SCOPE_PATTERN),
    user: User = Depends(_student),
    db: AsyncSession = Depends(get_session),
):
    """Caller's rank within one scope."""
    result = await get_rank(db, user.id, scope)
    return RankResponse(scope=scope, rank=result.rank, total=result.total)


@router.get("/students/me/ranks", response_model=AllRanksResponse)
async def get_my_ranks(
    user: User = Depends(_student),
    db: AsyncSession = Depends(get_session),
):
    ranks = await get_all_ranks(db, user.id)
    return AllRanksResponse(**{
        scope: RankResponse(scope=scope, rank=r.rank, total=r.total)
        for scope, r in ranks.items()
    })


@router.get("/students/top", response_model=LeaderboardResponse)
async def get_top(
    scope: str = Query("university", pattern=_SCOPE_PATTERN),
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, ge=1),
    group_id: int | None = Query(None),
    institute_id: int | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Leaderboard of active students; hidden students are anonymised for student viewers."""
    settings = get_settings()
    per_page = min(per_page or settings.leaderboard_default_page_size, settings.leaderboard_max_page_size)

    result = await get_top_students(
        db, user,
        scope=scope,
        page=page,
        per_page=per_page,
        group_id=group_id,
        institute_id=institute_id,
    )
    return LeaderboardResponse(
        scope=scope,
        entries=[LeaderboardEntryResponse(**asdict(row)) for row in result.items],
        total=result.total,
        page=result.page,
        per_page=result.per_page,
        total_pages=result.total_pages,
    )
