"""Slack channel via incoming webhooks (Block Kit)."""

from typing import Any

import httpx

from parley.notifications.models import ChannelResult, ChannelStatus, NotificationPayload


class SlackAdapter:
    """Posts Block Kit messages to a tenant's incoming webhook."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @property
    def channel_name(self) -> str:
        return "slack"

    @staticmethod
    def build_blocks(payload: NotificationPayload) -> list[dict[str, Any]]:
        blocks: list[dict[str, Any]] = [
            {"type": "header", "text": {"type": "plain_text", "text": payload.title}},
            {
                "type": "section",
                "fields": [{"type": "mrkdwn", "text": line} for line in payload.lines()],
            },
        ]
        if payload.dashboard_url:
            blocks.append({
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "View in Dashboard"},
                        "url": payload.dashboard_url,
                        "style": "primary",
                    }
                ],
            })
        return blocks

    async def send(self, payload: NotificationPayload, config: dict[str, Any]) -> ChannelResult:
        webhook_url = config.get("webhook_url")
        recipient = f"#{config.get('channel_name') or 'notifications'}"
        if not webhook_url:
            return ChannelResult(
                channel=self.channel_name,
                status=ChannelStatus.FAILED,
                error="No webhook URL configured",
            )

        response = await self._client.post(
            webhook_url, json={"blocks": self.build_blocks(payload)}
        )
        if response.status_code >= 400:
            return ChannelResult(
                channel=self.channel_name,
                status=ChannelStatus.FAILED,
                error=f"Slack webhook returned {response.status_code}: {response.text[:200]}",
                recipient=recipient,
            )
        return ChannelResult(
            channel=self.channel_name,
            status=ChannelStatus.SENT,
            recipient=recipient,
        )
