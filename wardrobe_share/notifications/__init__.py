"""Notification delivery and inbox helpers."""

from .dispatcher import (
    DatabaseNotificationDispatcher,
    FanOutDispatcher,
    NotificationDispatcher,
    NotificationRequest,
    WebhookNotificationDispatcher,
    build_dispatcher,
    notify_safely,
)
from .inbox import NotificationInbox

__all__ = [
    "DatabaseNotificationDispatcher",
    "FanOutDispatcher",
    "NotificationDispatcher",
    "NotificationInbox",
    "NotificationRequest",
    "WebhookNotificationDispatcher",
    "build_dispatcher",
    "notify_safely",
]
