"""Email channel via the Resend HTTP API."""

from html import escape
from typing import Any

import httpx

from parley.notifications.adapter import mask_email
from parley.notifications.models import ChannelResult, ChannelStatus, NotificationPayload
from parley.observability.logging import get_logger

logger = get_logger(__name__)


class EmailAdapter:
    """Sends notifications through Resend (POST /emails)."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_key: str | None,
        from_address: str,
        base_url: str = "https://api.resend.com",
        estimated_cost_usd: float = 0.0004,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._from = from_address
        self._url = f"{base_url.rstrip('/')}/emails"
        self._cost = estimated_cost_usd

    @property
    def channel_name(self) -> str:
        return "email"

    def _result(
        self, status: ChannelStatus, recipient: str, error: str | None = None
    ) -> ChannelResult:
        return ChannelResult(
            channel=self.channel_name,
            status=status,
            error=error,
            recipient=recipient,
            estimated_cost_usd=self._cost if status is ChannelStatus.SENT else 0.0,
        )

    async def send(self, payload: NotificationPayload, config: dict[str, Any]) -> ChannelResult:
        recipient = config.get("recipient_email")
        if not recipient:
            return self._result(ChannelStatus.FAILED, "unknown", "No recipient email provided")
        if not self._api_key:
            return self._result(
                ChannelStatus.FAILED, mask_email(recipient), "Email provider not configured"
            )

        subject = payload.title
        if payload.participant_name:
            subject = f"{subject}: {payload.participant_name}"
        body = "".join(f"<p>{escape(line)}</p>" for line in payload.lines())
        if payload.dashboard_url:
            url = escape(payload.dashboard_url, quote=True)
            body += f'<p><a href="{url}">View in dashboard</a></p>'

        response = await self._client.post(
            self._url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            json={
                "from": self._from,
                "to": [recipient],
                "subject": subject,
                "html": body,
                "text": "\n".join(payload.lines()),
            },
        )
        if response.status_code >= 400:
            logger.warning("email_send_failed", status_code=response.status_code)
            return self._result(
                ChannelStatus.FAILED,
                mask_email(recipient),
                f"Resend returned {response.status_code}: {response.text[:200]}",
            )
        return self._result(ChannelStatus.SENT, mask_email(recipient))
