"""Notification dispatcher.

Loads tenant preferences, fans a payload out to every enabled channel
concurrently and writes every result to the notification log. Sends are
never retried and dispatch never raises: a failed channel is a logged
result, not an error for the caller.
"""

import asyncio
from collections.abc import Mapping

from parley.notifications.adapter import ChannelAdapter
from parley.notifications.models import (
    ChannelResult,
    ChannelStatus,
    NotificationLogEntry,
    NotificationPayload,
    NotificationPreferences,
)
from parley.notifications.store import NotificationLogStore, NotificationPreferenceStore
from parley.observability.logging import get_logger
from parley.observability.metrics import NOTIFICATIONS

logger = get_logger(__name__)


class NotificationDispatcher:
    """Routes payloads to channel adapters according to tenant preferences."""

    def __init__(
        self,
        adapters: Mapping[str, ChannelAdapter],
        preferences: NotificationPreferenceStore,
        log: NotificationLogStore,
        *,
        enabled: bool = True,
    ) -> None:
        self._adapters = dict(adapters)
        self._preferences = preferences
        self._log = log
        self._enabled = enabled

    async def preferences_for(self, tenant_id: str) -> NotificationPreferences:
        prefs = await self._preferences.get(tenant_id)
        return prefs or NotificationPreferences(tenant_id=tenant_id)

    async def dispatch(
        self,
        tenant_id: str,
        payload: NotificationPayload,
        *,
        recipient_email: str | None = None,
    ) -> list[ChannelResult]:
        """Send a payload to all enabled channels of a tenant.

        Args:
            tenant_id: Tenant whose preferences apply
            payload: Notification content
            recipient_email: Fallback address when preferences carry none

        Returns:
            One result per enabled channel, in channel order
        """
        if not self._enabled:
            return []

        try:
            prefs = await self.preferences_for(tenant_id)
        except Exception as e:
            logger.error("notification_preferences_failed", tenant_id=tenant_id, error=str(e))
            prefs = NotificationPreferences(tenant_id=tenant_id)

        if not prefs.wants(payload.event):
            logger.debug(
                "notification_suppressed", tenant_id=tenant_id, event_type=payload.event.value
            )
            return []

        configs = prefs.channels.model_dump()
        configs["email"]["recipient_email"] = prefs.recipient_email or recipient_email
        enabled = [(name, cfg) for name, cfg in configs.items() if cfg.get("enabled")]

        results = list(
            await asyncio.gather(*(self._send_one(name, cfg, payload) for name, cfg in enabled))
        )

        for result in results:
            NOTIFICATIONS.labels(
                channel=result.channel,
                event=payload.event.value,
                status=result.status.value,
            ).inc()
        logger.info(
            "notification_dispatched",
            tenant_id=tenant_id,
            event_type=payload.event.value,
            sent=sum(1 for r in results if r.status is ChannelStatus.SENT),
            failed=sum(1 for r in results if r.status is ChannelStatus.FAILED),
        )

        await self._write_log(tenant_id, payload, results)
        return results

    async def _send_one(
        self, channel: str, config: dict, payload: NotificationPayload
    ) -> ChannelResult:
        adapter = self._adapters.get(channel)
        if adapter is None:
            return ChannelResult(
                channel=channel,
                status=ChannelStatus.FAILED,
                error=f"No adapter for channel: {channel}",
            )
        try:
            return await adapter.send(payload, config)
        except Exception as e:
            logger.warning("notification_channel_error", channel=channel, error=str(e))
            return ChannelResult(
                channel=channel,
                status=ChannelStatus.FAILED,
                error=str(e) or type(e).__name__,
            )

    async def _write_log(
        self,
        tenant_id: str,
        payload: NotificationPayload,
        results: list[ChannelResult],
    ) -> None:
        if not results:
            return
        entries = [
            NotificationLogEntry(
                tenant_id=tenant_id,
                event=payload.event,
                channel=r.channel,
                status=r.status,
                error=r.error,
                recipient=r.recipient,
                estimated_cost_usd=r.estimated_cost_usd,
                metadata=payload.metadata,
            )
            for r in results
        ]
        try:
            await self._log.append(entries)
        except Exception as e:
            logger.error("notification_log_write_failed", tenant_id=tenant_id, error=str(e))
