"""arq worker for notification delivery and periodic maintenance.

Runs as a separate process. Notification jobs are appended to one Redis
stream per channel (``notifications:telegram``, ``notifications:vk``) from
which the chat-bot gateways read and send.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from arq import cron
from arq.connections import RedisSettings

from orbit.auth.sessions import purge_expired_sessions
from orbit.config import get_settings
from orbit.database import close_db, init_db, session_scope
from orbit.ledger.reconciliation import find_balance_drift

logger = logging.getLogger(__name__)

STREAM_PREFIX = "notifications"


def stream_key(channel: str) -> str:
    return f"{STREAM_PREFIX}:{channel}"


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Open the database pool and the Redis client used for delivery streams."""
    settings = get_settings()
    await init_db(settings.database_url, settings.db_pool_size, settings.db_max_overflow)
    ctx["redis"] = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    logger.info("Notification worker started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    redis_client: aioredis.Redis | None = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Notification worker shut down")


async def deliver_notification(
    ctx: dict,  # type: ignore[type-arg]
    channel: str,
    recipient_external_id: str,
    message: str,
) -> str:
    """Append one outbound message to its channel stream. Returns the entry id."""
    redis_client: aioredis.Redis = ctx["redis"]
    settings = get_settings()
    entry_id = await redis_client.xadd(
        stream_key(channel),
        {"recipient": recipient_external_id, "message": message},
        maxlen=settings.notification_stream_maxlen,
        approximate=True,
    )
    logger.debug("Queued %s message for %s (entry=%s)", channel, recipient_external_id, entry_id)
    return entry_id


async def purge_sessions(ctx: dict) -> int:  # type: ignore[type-arg]
    """Daily cleanup of expired refresh sessions."""
    async with session_scope() as session:
        return await purge_expired_sessions(session)


async def reconcile_balances(ctx: dict) -> int:  # type: ignore[type-arg]
    """Nightly check that every balance equals the sum of its active awards."""
    async with session_scope() as session:
        drifts = await find_balance_drift(session)
    if drifts:
        logger.error("Balance reconciliation found %d drifted students", len(drifts))
    return len(drifts)


_settings = get_settings()


class WorkerSettings:
    """arq worker settings for notifications and maintenance."""

    functions = [deliver_notification, purge_sessions, reconcile_balances]
    cron_jobs = [
        cron(purge_sessions, hour={_settings.session_purge_hour}, minute={0}),
        cron(reconcile_balances, hour={_settings.balance_reconcile_hour}, minute={0}),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(_settings.arq_redis_url)
    max_jobs = 10
    job_timeout = 60
