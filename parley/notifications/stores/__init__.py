"""Notification store implementations."""

from parley.notifications.stores.inmemory import (
    InMemoryNotificationLogStore,
    InMemoryNotificationPreferenceStore,
)

__all__ = ["InMemoryNotificationLogStore", "InMemoryNotificationPreferenceStore"]
