"""Shared FastAPI dependencies."""

from orbit.notifications.queue import NotificationSink, get_notification_queue


def get_notifier() -> NotificationSink | None:
    """Notification sink for workflows; None when the queue is not configured.

    Kept as its own dependency so tests can swap in a recording sink.
    """
    return get_notification_queue()
