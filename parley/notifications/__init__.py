"""Outbound notifications: payloads, channel adapters and the dispatcher."""

from parley.notifications.completion import CompletionNotifier
from parley.notifications.dispatcher import NotificationDispatcher
from parley.notifications.models import (
    ChannelResult,
    ChannelStatus,
    NotificationEvent,
    NotificationPayload,
    NotificationPreferences,
)

__all__ = [
    "ChannelResult",
    "ChannelStatus",
    "CompletionNotifier",
    "NotificationDispatcher",
    "NotificationEvent",
    "NotificationPayload",
    "NotificationPreferences",
]
