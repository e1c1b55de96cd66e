"""Post-commit fan-out of award notifications.

Called strictly after the workflow transaction commits. A failed enqueue is
logged and dropped: the award already exists and must not be rolled back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from orbit.config import get_settings
from orbit.db.models import IssuedAchievement, User
from orbit.notifications.queue import NotificationSink
from orbit.notifications.templates import (
    render_telegram_cancel,
    render_telegram_issue,
    render_vk_cancel,
    render_vk_issue,
)

logger = logging.getLogger(__name__)

Renderer = Callable[[IssuedAchievement], str]


def resolve_channels(recipient: User) -> list[tuple[str, str]]:
    """Return (channel, external_id) pairs the recipient should be notified on."""
    settings = get_settings()
    prefs = recipient.settings
    channels: list[tuple[str, str]] = []

    if (
        settings.notify_telegram_enabled
        and recipient.tg_id
        and (prefs is None or prefs.receive_tg_achievement_notifications)
    ):
        channels.append(("telegram", recipient.tg_id))

    if (
        settings.notify_vk_enabled
        and recipient.vk_id
        and (prefs is None or prefs.receive_vk_achievement_notifications)
    ):
        channels.append(("vk", recipient.vk_id))

    return channels


async def _fan_out(
    sink: NotificationSink | None,
    award: IssuedAchievement,
    renderers: dict[str, Renderer],
) -> int:
    if sink is None:
        return 0

    sent = 0
    for channel, external_id in resolve_channels(award.student):
        try:
            message = renderers[channel](award)
            await sink.enqueue(channel, external_id, message)
            sent += 1
        except Exception:
            logger.warning(
                "Failed to enqueue %s notification for award %s",
                channel, award.id,
                exc_info=True,
            )
    return sent


async def notify_issued(sink: NotificationSink | None, award: IssuedAchievement) -> int:
    """Enqueue "you got an achievement" messages. Returns how many were queued."""
    return await _fan_out(
        sink, award, {"telegram": render_telegram_issue, "vk": render_vk_issue},
    )


async def notify_canceled(sink: NotificationSink | None, award: IssuedAchievement) -> int:
    """Enqueue "your achievement was canceled" messages."""
    return await _fan_out(
        sink, award, {"telegram": render_telegram_cancel, "vk": render_vk_cancel},
    )
