"""Notification channel resolution, message templates and queue wrapper."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from orbit.config import get_settings
from orbit.notifications.dispatch import notify_canceled, notify_issued, resolve_channels
from orbit.notifications.queue import DELIVER_TASK, NotificationQueue
from orbit.notifications.templates import (
    render_telegram_cancel,
    render_telegram_issue,
    render_vk_cancel,
    render_vk_issue,
)


def _recipient(tg_id="111", vk_id="222", tg=True, vk=True, with_settings=True):
    settings = (
        SimpleNamespace(
            receive_tg_achievement_notifications=tg,
            receive_vk_achievement_notifications=vk,
        )
        if with_settings
        else None
    )
    return SimpleNamespace(tg_id=tg_id, vk_id=vk_id, settings=settings)


def _award(recipient=None, canceled=False):
    return SimpleNamespace(
        id="award-1",
        student=recipient or _recipient(),
        achievement=SimpleNamespace(name="Активист"),
        cancellation_reason="ошибка" if canceled else None,
        canceler=SimpleNamespace(first_name="Анна", last_name="Смирнова") if canceled else None,
    )


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    monkeypatch.delenv("ORBIT_NOTIFY_TELEGRAM_ENABLED", raising=False)
    monkeypatch.delenv("ORBIT_NOTIFY_VK_ENABLED", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestResolveChannels:
    def test_both_channels(self):
        assert resolve_channels(_recipient()) == [("telegram", "111"), ("vk", "222")]

    def test_missing_external_ids(self):
        assert resolve_channels(_recipient(tg_id=None, vk_id=None)) == []

    def test_opted_out_of_telegram(self):
        assert resolve_channels(_recipient(tg=False)) == [("vk", "222")]

    def test_no_settings_row_means_allowed(self):
        assert resolve_channels(_recipient(with_settings=False)) == [("telegram", "111"), ("vk", "222")]

    def test_channel_disabled_globally(self, monkeypatch):
        monkeypatch.setenv("ORBIT_NOTIFY_VK_ENABLED", "false")
        get_settings.cache_clear()
        assert resolve_channels(_recipient()) == [("telegram", "111")]


class TestTemplates:
    def test_issue_texts(self):
        award = _award()
        assert "<b>Активист</b>" in render_telegram_issue(award)
        assert "«Активист»" in render_vk_issue(award)

    def test_cancel_texts_include_reason_and_canceler(self):
        award = _award(canceled=True)
        for text in (render_telegram_cancel(award), render_vk_cancel(award)):
            assert "Активист" in text
            assert "ошибка" in text
            assert "Анна Смирнова" in text


class TestDispatch:
    @pytest.mark.asyncio
    async def test_no_sink_is_noop(self):
        assert await notify_issued(None, _award()) == 0

    @pytest.mark.asyncio
    async def test_issued_enqueues_per_channel(self):
        sink = AsyncMock()
        assert await notify_issued(sink, _award()) == 2
        sink.enqueue.assert_any_await("telegram", "111", render_telegram_issue(_award()))
        sink.enqueue.assert_any_await("vk", "222", render_vk_issue(_award()))

    @pytest.mark.asyncio
    async def test_one_failing_channel_does_not_stop_the_other(self):
        sink = AsyncMock()
        sink.enqueue.side_effect = [ConnectionError("down"), None]
        assert await notify_canceled(sink, _award(canceled=True)) == 1
        assert sink.enqueue.await_count == 2


class TestNotificationQueue:
    @pytest.mark.asyncio
    async def test_enqueue_pushes_arq_job(self):
        pool = AsyncMock()
        queue = NotificationQueue(pool)

        await queue.enqueue("telegram", "111", "hello")

        pool.enqueue_job.assert_awaited_once_with(DELIVER_TASK, "telegram", "111", "hello")

    @pytest.mark.asyncio
    async def test_close(self):
        pool = AsyncMock()
        await NotificationQueue(pool).close()
        pool.aclose.assert_awaited_once()
