"""Test doubles for notification channels."""

from typing import Any

from parley.notifications.models import ChannelResult, ChannelStatus, NotificationPayload


class RecordingAdapter:
    """Channel adapter that records payloads instead of delivering them."""

    def __init__(self, channel: str = "email", *, fail_with: Exception | None = None) -> None:
        self._channel = channel
        self._fail_with = fail_with
        self.sent: list[tuple[NotificationPayload, dict[str, Any]]] = []

    @property
    def channel_name(self) -> str:
        return self._channel

    async def send(self, payload: NotificationPayload, config: dict[str, Any]) -> ChannelResult:
        if self._fail_with is not None:
            raise self._fail_with
        self.sent.append((payload, config))
        return ChannelResult(channel=self._channel, status=ChannelStatus.SENT, recipient="test")

    @property
    def events(self) -> list[str]:
        return [payload.event.value for payload, _ in self.sent]
