"""WhatsApp channel via the Twilio REST API."""

from typing import Any

import httpx

from parley.notifications.adapter import mask_phone
from parley.notifications.models import ChannelResult, ChannelStatus, NotificationPayload


class WhatsAppAdapter:
    """Sends WhatsApp messages using platform-level Twilio credentials."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        account_sid: str | None,
        auth_token: str | None,
        from_number: str | None,
        base_url: str = "https://api.twilio.com",
        estimated_cost_usd: float = 0.005,
    ) -> None:
        self._client = client
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._from = from_number
        self._base_url = base_url.rstrip("/")
        self._cost = estimated_cost_usd

    @property
    def channel_name(self) -> str:
        return "whatsapp"

    @staticmethod
    def build_message(payload: NotificationPayload) -> str:
        lines = [f"*{payload.title}*", "", *payload.lines()]
        if payload.dashboard_url:
            lines += ["", f"View results: {payload.dashboard_url}"]
        return "\n".join(lines)

    async def send(self, payload: NotificationPayload, config: dict[str, Any]) -> ChannelResult:
        phone = config.get("phone_number")
        if not phone:
            return ChannelResult(
                channel=self.channel_name,
                status=ChannelStatus.FAILED,
                error="No phone number configured",
            )
        if not (self._account_sid and self._auth_token and self._from):
            return ChannelResult(
                channel=self.channel_name,
                status=ChannelStatus.FAILED,
                error="Twilio credentials not configured on platform",
                recipient=mask_phone(phone),
            )

        url = f"{self._base_url}/2010-04-01/Accounts/{self._account_sid}/Messages.json"
        response = await self._client.post(
            url,
            auth=(self._account_sid, self._auth_token),
            data={
                "From": f"whatsapp:{self._from}",
                "To": f"whatsapp:{phone}",
                "Body": self.build_message(payload),
            },
        )
        if response.status_code >= 400:
            try:
                message = response.json().get("message")
            except ValueError:
                message = None
            return ChannelResult(
                channel=self.channel_name,
                status=ChannelStatus.FAILED,
                error=message or f"Twilio returned {response.status_code}",
                recipient=mask_phone(phone),
            )
        return ChannelResult(
            channel=self.channel_name,
            status=ChannelStatus.SENT,
            recipient=mask_phone(phone),
            estimated_cost_usd=self._cost,
        )
