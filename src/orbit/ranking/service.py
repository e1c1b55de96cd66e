"""Scoped student ranking and privacy-aware leaderboards.

Rank is "number of active students in scope with a strictly greater balance,
plus one", so equal balances share a rank (80, 80, 60 -> 1, 1, 3). Active
means role=student and not banned. An active student is always counted in
its own group and institute, so one without either ranks 1 of 1 there.

A user's rank and total for every requested scope are computed by a single
SELECT that reads the subject's balance and all peers at once, so the
numbers always describe the same balance state even while issuances commit
concurrently. They are still only a point-in-time reading.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import ColumnElement, and_, case, func, or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from orbit.db.models import User, UserRole
from orbit.errors import InvalidError, NotFoundError
from orbit.pagination import Page, paginate

SCOPES = ("group", "institute", "university")


@dataclass(frozen=True)
class RankResult:
    rank: int
    total: int


@dataclass
class LeaderboardRow:
    position: int
    rank: int
    balance: int
    user_id: str | None
    first_name: str | None
    last_name: str | None
    avatar: str | None
    group_id: int | None
    group_name: str | None
    institute_id: int | None
    institute_name: str | None
    is_current_user: bool = False
    is_hidden: bool = False


def _check_scope(scope: str) -> None:
    if scope not in SCOPES:
        raise InvalidError(f"Unknown scope: {scope}. Must be one of {SCOPES}")


def _active_student(user: type[User]) -> ColumnElement[bool]:
    return and_(user.is_banned.is_(False), user.role == UserRole.STUDENT)


def _same_scope(scope: str, peer: type[User], subject: type[User]) -> ColumnElement[bool]:
    present = peer.id.is_not(None)
    # An active subject always belongs to its own scope, even without a group
    # or institute (NULL = NULL matches nothing)
    if scope == "group":
        return and_(present, or_(peer.id == subject.id, peer.group_id == subject.group_id))
    if scope == "institute":
        return and_(present, or_(peer.id == subject.id, peer.institute_id == subject.institute_id))
    return and_(present, true())


async def _compute_ranks(db: AsyncSession, user_id: str, scopes: tuple[str, ...]) -> dict[str, RankResult]:
    subject = aliased(User, name="subject")
    peer = aliased(User, name="peer")

    columns = []
    for scope in scopes:
        in_scope = _same_scope(scope, peer, subject)
        columns.append(
            func.coalesce(func.sum(case((and_(in_scope, peer.balance > subject.balance), 1), else_=0)), 0)
            .label(f"{scope}_above")
        )
        columns.append(
            func.coalesce(func.sum(case((in_scope, 1), else_=0)), 0).label(f"{scope}_total")
        )

    result = await db.execute(
        select(*columns)
        .select_from(subject)
        .outerjoin(peer, _active_student(peer))
        .where(subject.id == user_id)
        .group_by(subject.id)
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError(f"User {user_id} not found")

    mapping = row._mapping
    return {
        scope: RankResult(
            rank=int(mapping[f"{scope}_above"]) + 1,
            total=int(mapping[f"{scope}_total"]),
        )
        for scope in scopes
    }


async def get_rank(db: AsyncSession, user_id: str, scope: str) -> RankResult:
    """Rank and scope size of one user within ``scope``."""
    _check_scope(scope)
    ranks = await _compute_ranks(db, user_id, (scope,))
    return ranks[scope]


async def get_all_ranks(db: AsyncSession, user_id: str) -> dict[str, RankResult]:
    """Group, institute and university ranks from one consistent read."""
    return await _compute_ranks(db, user_id, SCOPES)


def should_hide(requester: User, user: User) -> bool:
    """Whether a leaderboard row must be anonymised for this requester."""
    if requester.role != UserRole.STUDENT:
        return False
    if user.id == requester.id:
        return False
    return user.settings is not None and not user.settings.is_visible_in_top


def _build_row(requester: User, user: User, rank: int, position: int) -> LeaderboardRow:
    row = LeaderboardRow(
        position=position,
        rank=rank,
        balance=user.balance,
        user_id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        avatar=user.avatar,
        group_id=user.group_id,
        group_name=user.group.name if user.group else None,
        institute_id=user.institute_id,
        institute_name=user.institute.name if user.institute else None,
        is_current_user=user.id == requester.id,
    )
    if should_hide(requester, user):
        row.user_id = None
        row.first_name = None
        row.last_name = None
        row.avatar = None
        row.group_id = None
        row.group_name = None
        row.is_hidden = True
    return row


async def get_top_students(
    db: AsyncSession,
    requester: User,
    scope: str = "university",
    page: int = 1,
    per_page: int = 20,
    group_id: int | None = None,
    institute_id: int | None = None,
) -> Page[LeaderboardRow]:
    """Balance-descending leaderboard of active students.

    ``group`` and ``institute`` scopes default to the requester's own group
    or institute when no explicit id is given. Redaction runs on the fetched
    page only, after ordering and slicing.
    """
    _check_scope(scope)

    filters = [_active_student(User)]
    if scope == "group":
        if group_id is None:
            group_id = requester.group_id
        if group_id is None:
            raise InvalidError("Group scope requires a group")
        filters.append(User.group_id == group_id)
    elif scope == "institute":
        if institute_id is None:
            institute_id = requester.institute_id
        if institute_id is None:
            raise InvalidError("Institute scope requires an institute")
        filters.append(User.institute_id == institute_id)

    rank_col = func.rank().over(order_by=User.balance.desc()).label("rank")
    query = (
        select(User, rank_col)
        .where(*filters)
        .order_by(User.balance.desc(), User.id)
    )

    def _redact(rows: list, offset: int) -> list[LeaderboardRow]:
        return [
            _build_row(requester, row.User, int(row.rank), offset + idx + 1)
            for idx, row in enumerate(rows)
        ]

    return await paginate(
        db, query, page=page, per_page=per_page,
        sort_by=[("balance", "DESC")],
        transform=_redact,
        scalars=False,
    )
