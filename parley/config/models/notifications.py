"""Notification channel configuration."""

from pydantic import BaseModel, Field, SecretStr


class EmailChannelConfig(BaseModel):
    """Resend email API settings."""

    api_key: SecretStr | None = Field(default=None, description="Resend API key")
    base_url: str = Field(default="https://api.resend.com")
    from_address: str = Field(default="Parley <notifications@parley.local>")
    estimated_cost_usd: float = Field(default=0.0004, ge=0.0)


class WhatsAppChannelConfig(BaseModel):
    """Twilio WhatsApp settings."""

    account_sid: str | None = Field(default=None)
    auth_token: SecretStr | None = Field(default=None)
    from_number: str | None = Field(default=None, description="Sender in E.164 form")
    base_url: str = Field(default="https://api.twilio.com")
    estimated_cost_usd: float = Field(default=0.005, ge=0.0)


class NotificationsConfig(BaseModel):
    """Notification dispatcher configuration."""

    enabled: bool = Field(default=True, description="Master switch for outbound notifications")
    timeout: float = Field(default=10.0, gt=0, description="Per-send HTTP timeout in seconds")
    dashboard_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL used in links inside notifications",
    )
    email: EmailChannelConfig = Field(default_factory=EmailChannelConfig)
    whatsapp: WhatsAppChannelConfig = Field(default_factory=WhatsAppChannelConfig)
