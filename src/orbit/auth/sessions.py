"""Refresh session housekeeping."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from orbit.db.models import RefreshSession

logger = logging.getLogger(__name__)


async def purge_expired_sessions(db: AsyncSession, now: datetime | None = None) -> int:
    """Delete refresh sessions that expired at or before ``now``. Idempotent."""
    cutoff = now or datetime.now(timezone.utc)
    result = await db.execute(
        delete(RefreshSession).where(RefreshSession.expires_at <= cutoff)
    )
    await db.commit()
    logger.info("Purged %d expired refresh sessions", result.rowcount)
    return result.rowcount
