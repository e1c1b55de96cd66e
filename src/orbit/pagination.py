"""Offset pagination over SQLAlchemy selects.

``paginate`` runs a COUNT over the filtered query and fetches one page.
An optional ``transform`` is applied to the fetched rows only, after
ordering and slicing, so it can never change page membership or totals.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    per_page: int
    sort_by: list[tuple[str, str]] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        if self.per_page <= 0:
            return 0
        return math.ceil(self.total / self.per_page)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


async def count_rows(db: AsyncSession, query: Select[Any]) -> int:
    """COUNT(*) of a select, ignoring its ORDER BY."""
    subquery = query.order_by(None).subquery()
    result = await db.execute(select(func.count()).select_from(subquery))
    return result.scalar_one()


async def paginate(
    db: AsyncSession,
    query: Select[Any],
    page: int = 1,
    per_page: int = 20,
    sort_by: Sequence[tuple[str, str]] = (),
    transform: Callable[[list[Any], int], list[R]] | None = None,
    scalars: bool = True,
) -> Page[Any]:
    """Fetch one page of ``query`` (already filtered and ordered).

    ``transform(rows, offset)`` receives the page rows and the absolute
    offset of the first row. With ``scalars=False`` rows are full result
    rows instead of the first entity.
    """
    if page < 1:
        page = 1
    total = await count_rows(db, query)
    offset = (page - 1) * per_page

    result = await db.execute(query.offset(offset).limit(per_page))
    rows: list[Any] = list(result.scalars().all()) if scalars else list(result.all())
    items = transform(rows, offset) if transform is not None else rows

    return Page(items=items, total=total, page=page, per_page=per_page, sort_by=list(sort_by))
