"""Notification store interfaces."""

from abc import ABC, abstractmethod

from parley.notifications.models import NotificationLogEntry, NotificationPreferences


class NotificationLogStore(ABC):
    """Append-only log of delivery attempts."""

    @abstractmethod
    async def append(self, entries: list[NotificationLogEntry]) -> None:
        """Append delivery results."""
        pass

    @abstractmethod
    async def list_for_tenant(
        self, tenant_id: str, *, limit: int = 100
    ) -> list[NotificationLogEntry]:
        """List a tenant's log entries, newest first."""
        pass


class NotificationPreferenceStore(ABC):
    """Per-tenant notification preferences."""

    @abstractmethod
    async def get(self, tenant_id: str) -> NotificationPreferences | None:
        """Get preferences, or None when the tenant never saved any."""
        pass

    @abstractmethod
    async def save(self, preferences: NotificationPreferences) -> None:
        """Create or replace preferences."""
        pass
