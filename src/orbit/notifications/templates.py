"""Rendered texts for achievement notifications.

Telegram messages use the bot's HTML parse mode; VK messages are plain text.
"""

from __future__ import annotations

from orbit.db.models import IssuedAchievement


def _canceler_name(award: IssuedAchievement) -> str:
    canceler = award.canceler
    if canceler is None:
        return ""
    return f"{canceler.first_name} {canceler.last_name}"


def render_telegram_issue(award: IssuedAchievement) -> str:
    return f"🏆 Вы получили новое достижение <b>{award.achievement.name}</b>!"


def render_vk_issue(award: IssuedAchievement) -> str:
    return f"🏆 Вы получили новое достижение «{award.achievement.name}»!"


def render_telegram_cancel(award: IssuedAchievement) -> str:
    return (
        f"🚩 К сожалению, достижение <b>{award.achievement.name}</b> было отменено "
        f"по причине <b>{award.cancellation_reason}</b>\n"
        f"<b>Отменил:</b> {_canceler_name(award)}"
    )


def render_vk_cancel(award: IssuedAchievement) -> str:
    return (
        f"🚩 К сожалению, достижение «{award.achievement.name}» было отменено "
        f"по причине «{award.cancellation_reason}»\n"
        f"Отменил: {_canceler_name(award)}"
    )
