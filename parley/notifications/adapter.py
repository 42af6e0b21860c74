"""Channel adapter protocol.

Each outbound channel (email, Slack, WhatsApp) implements this interface.
Adapters report delivery problems as failed results; exceptions that do
escape are converted to failed results by the dispatcher.
"""

from abc import abstractmethod
from typing import Any, Protocol

from parley.notifications.models import ChannelResult, NotificationPayload


class ChannelAdapter(Protocol):
    """Protocol for notification channels."""

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Unique channel identifier: 'email', 'slack', 'whatsapp'."""
        ...

    @abstractmethod
    async def send(
        self,
        payload: NotificationPayload,
        config: dict[str, Any],
    ) -> ChannelResult:
        """Deliver one notification.

        Args:
            payload: Channel-agnostic notification content
            config: Tenant channel preference (webhook url, phone, recipient)
        """
        ...


def mask_phone(phone: str) -> str:
    if len(phone) <= 6:
        return "***"
    return f"{phone[:3]}***{phone[-4:]}"


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:2]}***@{domain}"
