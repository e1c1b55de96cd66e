"""Outbound notification queue (arq).

The API pushes ``deliver_notification`` jobs; the worker in
orbit.workers.settings consumes them. Enqueueing never blocks on delivery.
"""

from __future__ import annotations

import logging
from typing import Protocol

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings

logger = logging.getLogger(__name__)

DELIVER_TASK = "deliver_notification"


class NotificationSink(Protocol):
    async def enqueue(self, channel: str, recipient_external_id: str, message: str) -> None: ...


class NotificationQueue:
    """Pushes notification jobs onto the arq queue."""

    def __init__(self, pool: ArqRedis) -> None:
        self._pool = pool

    async def enqueue(self, channel: str, recipient_external_id: str, message: str) -> None:
        await self._pool.enqueue_job(DELIVER_TASK, channel, recipient_external_id, message)

    async def close(self) -> None:
        await self._pool.aclose()


_queue: NotificationQueue | None = None


async def init_notification_queue(url: str) -> None:
    """Create the arq pool used for notification jobs."""
    global _queue  # noqa: PLW0603
    pool = await create_pool(RedisSettings.from_dsn(url))
    _queue = NotificationQueue(pool)


async def close_notification_queue() -> None:
    global _queue  # noqa: PLW0603
    if _queue:
        await _queue.close()
        _queue = None


def get_notification_queue() -> NotificationSink | None:
    """Return the queue, or None when the API runs without a worker backend."""
    return _queue
