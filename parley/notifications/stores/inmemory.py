"""In-memory notification stores."""

from parley.notifications.models import NotificationLogEntry, NotificationPreferences
from parley.notifications.store import NotificationLogStore, NotificationPreferenceStore


class InMemoryNotificationLogStore(NotificationLogStore):
    """In-memory notification log for testing and development."""

    def __init__(self) -> None:
        self._entries: list[NotificationLogEntry] = []

    async def append(self, entries: list[NotificationLogEntry]) -> None:
        self._entries.extend(entries)

    async def list_for_tenant(
        self, tenant_id: str, *, limit: int = 100
    ) -> list[NotificationLogEntry]:
        results = [e for e in self._entries if e.tenant_id == tenant_id]
        results.sort(key=lambda e: e.created_at, reverse=True)
        return results[:limit]


class InMemoryNotificationPreferenceStore(NotificationPreferenceStore):
    """In-memory preference store for testing and development."""

    def __init__(self) -> None:
        self._preferences: dict[str, NotificationPreferences] = {}

    async def get(self, tenant_id: str) -> NotificationPreferences | None:
        prefs = self._preferences.get(tenant_id)
        return prefs.model_copy(deep=True) if prefs else None

    async def save(self, preferences: NotificationPreferences) -> None:
        self._preferences[preferences.tenant_id] = preferences.model_copy(deep=True)
