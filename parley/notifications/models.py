"""Notification payloads, channel results, preferences and log entries."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class NotificationEvent(str, Enum):
    """Events that can produce an outbound notification."""

    SESSION_COMPLETED = "session_completed"
    USAGE_WARNING_75 = "usage_warning_75"
    USAGE_WARNING_90 = "usage_warning_90"
    USAGE_WARNING_100 = "usage_warning_100"

    @classmethod
    def for_threshold(cls, bucket: int) -> "NotificationEvent":
        return cls(f"usage_warning_{bucket}")

    @property
    def is_usage_warning(self) -> bool:
        return self.value.startswith("usage_warning")


class ChannelStatus(str, Enum):
    """Delivery outcome of one channel."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class NotificationPayload(BaseModel):
    """Channel-agnostic notification content."""

    event: NotificationEvent
    tenant_id: str
    participant_name: str = Field(default="", description="Stakeholder, for session events")
    assessment_type: str = Field(default="", description="Campaign or assessment label")
    dashboard_url: str = ""
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def title(self) -> str:
        if self.event is NotificationEvent.SESSION_COMPLETED:
            return "Session Completed"
        bucket = self.event.value.rsplit("_", 1)[-1]
        if bucket == "100":
            return "Usage limit reached"
        return f"Usage at {bucket}% of limit"

    def lines(self) -> list[str]:
        """Plain-text body lines shared by text channels."""
        if self.event is NotificationEvent.SESSION_COMPLETED:
            return [
                f"Participant: {self.participant_name}",
                f"Assessment: {self.assessment_type}",
                f"Completed: {self.occurred_at.isoformat()}",
            ]
        tokens = self.metadata.get("cumulative_tokens")
        limit = self.metadata.get("limit")
        lines = [f"Tenant: {self.tenant_id}"]
        if tokens is not None and limit:
            lines.append(f"Usage: {tokens:,} of {limit:,} tokens")
        if "period_end" in self.metadata:
            lines.append(f"Period ends: {self.metadata['period_end']}")
        return lines


class ChannelResult(BaseModel):
    """Result of one adapter send."""

    channel: str
    status: ChannelStatus
    error: str | None = None
    recipient: str = "unknown"
    estimated_cost_usd: float = 0.0


class EmailChannelPreference(BaseModel):
    enabled: bool = True


class SlackChannelPreference(BaseModel):
    enabled: bool = False
    webhook_url: str | None = None
    channel_name: str | None = None


class WhatsAppChannelPreference(BaseModel):
    enabled: bool = False
    phone_number: str | None = None


class ChannelPreferences(BaseModel):
    email: EmailChannelPreference = Field(default_factory=EmailChannelPreference)
    slack: SlackChannelPreference = Field(default_factory=SlackChannelPreference)
    whatsapp: WhatsAppChannelPreference = Field(default_factory=WhatsAppChannelPreference)


class NotificationPreferences(BaseModel):
    """Per-tenant notification settings. Defaults: email only, every event."""

    tenant_id: str
    recipient_email: str | None = None
    channels: ChannelPreferences = Field(default_factory=ChannelPreferences)
    notify_on_session_complete: bool = True
    notify_on_usage_warning: bool = True

    def wants(self, event: NotificationEvent) -> bool:
        if event.is_usage_warning:
            return self.notify_on_usage_warning
        return self.notify_on_session_complete


class NotificationLogEntry(BaseModel):
    """One delivery attempt, as written to the notification log."""

    id: UUID = Field(default_factory=uuid4)
    tenant_id: str
    event: NotificationEvent
    channel: str
    status: ChannelStatus
    error: str | None = None
    recipient: str = "unknown"
    estimated_cost_usd: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
