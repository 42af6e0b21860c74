"""Unit tests for the email, Slack and WhatsApp channel adapters."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from parley.notifications import ChannelStatus, NotificationEvent, NotificationPayload
from parley.notifications.adapter import mask_email, mask_phone
from parley.notifications.adapters import EmailAdapter, SlackAdapter, WhatsAppAdapter


def make_client(status_code: int = 200, json: dict | None = None) -> MagicMock:
    client = MagicMock(spec=httpx.AsyncClient)
    client.post = AsyncMock(return_value=httpx.Response(status_code, json=json or {}))
    return client


@pytest.fixture
def payload() -> NotificationPayload:
    return NotificationPayload(
        event=NotificationEvent.SESSION_COMPLETED,
        tenant_id="tenant-1",
        participant_name="Dana <Reyes>",
        assessment_type="campaign-1",
        dashboard_url="https://app.parley.test/dashboard/campaigns/campaign-1",
        occurred_at=datetime(2025, 1, 1, 10, 0, tzinfo=UTC),
    )


class TestMasking:
    @pytest.mark.parametrize(
        "phone,expected",
        [("+15551234567", "+15***4567"), ("12345", "***"), ("", "***")],
    )
    def test_mask_phone(self, phone, expected) -> None:
        assert mask_phone(phone) == expected

    @pytest.mark.parametrize(
        "email,expected",
        [("owner@acme.test", "ow***@acme.test"), ("not-an-email", "***")],
    )
    def test_mask_email(self, email, expected) -> None:
        assert mask_email(email) == expected


class TestPayloadText:
    def test_session_lines(self, payload) -> None:
        assert payload.title == "Session Completed"
        assert payload.lines()[0] == "Participant: Dana <Reyes>"
        assert payload.lines()[1] == "Assessment: campaign-1"

    def test_usage_warning_lines(self) -> None:
        warning = NotificationPayload(
            event=NotificationEvent.USAGE_WARNING_90,
            tenant_id="tenant-1",
            metadata={"cumulative_tokens": 9000, "limit": 10000, "period_end": "2025-01-31"},
        )

        assert warning.title == "Usage at 90% of limit"
        assert warning.lines() == [
            "Tenant: tenant-1",
            "Usage: 9,000 of 10,000 tokens",
            "Period ends: 2025-01-31",
        ]

    def test_limit_reached_title(self) -> None:
        warning = NotificationPayload(
            event=NotificationEvent.for_threshold(100), tenant_id="tenant-1"
        )

        assert warning.title == "Usage limit reached"


class TestEmailAdapter:
    @pytest.mark.asyncio
    async def test_sends_through_resend(self, payload) -> None:
        client = make_client(200, {"id": "email-1"})
        adapter = EmailAdapter(
            client, api_key="re_test", from_address="Parley <noreply@parley.test>"
        )

        result = await adapter.send(payload, {"recipient_email": "owner@acme.test"})

        assert result.status is ChannelStatus.SENT
        assert result.recipient == "ow***@acme.test"
        assert result.estimated_cost_usd == pytest.approx(0.0004)
        url = client.post.call_args.args[0]
        kwargs = client.post.call_args.kwargs
        assert url == "https://api.resend.com/emails"
        assert kwargs["headers"]["Authorization"] == "Bearer re_test"
        assert kwargs["json"]["to"] == ["owner@acme.test"]
        assert kwargs["json"]["subject"] == "Session Completed: Dana <Reyes>"
        assert "Dana &lt;Reyes&gt;" in kwargs["json"]["html"]
        assert "View in dashboard" in kwargs["json"]["html"]

    @pytest.mark.asyncio
    async def test_missing_recipient_fails_without_request(self, payload) -> None:
        client = make_client()
        adapter = EmailAdapter(client, api_key="re_test", from_address="noreply@parley.test")

        result = await adapter.send(payload, {"recipient_email": None})

        assert result.status is ChannelStatus.FAILED
        assert result.error == "No recipient email provided"
        client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_unconfigured_provider_fails(self, payload) -> None:
        client = make_client()
        adapter = EmailAdapter(client, api_key=None, from_address="noreply@parley.test")

        result = await adapter.send(payload, {"recipient_email": "owner@acme.test"})

        assert result.status is ChannelStatus.FAILED
        assert result.estimated_cost_usd == 0.0
        client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_error_status(self, payload) -> None:
        client = make_client(422, {"message": "invalid from"})
        adapter = EmailAdapter(client, api_key="re_test", from_address="bad")

        result = await adapter.send(payload, {"recipient_email": "owner@acme.test"})

        assert result.status is ChannelStatus.FAILED
        assert result.error.startswith("Resend returned 422")


class TestSlackAdapter:
    def test_blocks_include_dashboard_button(self, payload) -> None:
        blocks = SlackAdapter.build_blocks(payload)

        assert blocks[0]["text"]["text"] == "Session Completed"
        assert blocks[-1]["type"] == "actions"
        assert blocks[-1]["elements"][0]["url"] == payload.dashboard_url

    def test_blocks_without_dashboard_url(self, payload) -> None:
        payload.dashboard_url = ""

        assert [b["type"] for b in SlackAdapter.build_blocks(payload)] == ["header", "section"]

    @pytest.mark.asyncio
    async def test_posts_to_webhook(self, payload) -> None:
        client = make_client(200)
        adapter = SlackAdapter(client)

        result = await adapter.send(
            payload, {"webhook_url": "https://hooks.slack.test/x", "channel_name": "ops"}
        )

        assert result.status is ChannelStatus.SENT
        assert result.recipient == "#ops"
        assert client.post.call_args.args[0] == "https://hooks.slack.test/x"
        assert "blocks" in client.post.call_args.kwargs["json"]

    @pytest.mark.asyncio
    async def test_missing_webhook_fails(self, payload) -> None:
        client = make_client()

        result = await SlackAdapter(client).send(payload, {"webhook_url": None})

        assert result.status is ChannelStatus.FAILED
        client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_webhook_error_status(self, payload) -> None:
        client = make_client(404)

        result = await SlackAdapter(client).send(
            payload, {"webhook_url": "https://hooks.slack.test/x"}
        )

        assert result.status is ChannelStatus.FAILED
        assert result.recipient == "#notifications"
        assert "404" in result.error


class TestWhatsAppAdapter:
    def make_adapter(self, client) -> WhatsAppAdapter:
        return WhatsAppAdapter(
            client, account_sid="AC123", auth_token="secret", from_number="+15550000000"
        )

    def test_message_format(self, payload) -> None:
        message = WhatsAppAdapter.build_message(payload)

        assert message.startswith("*Session Completed*\n\n")
        assert message.endswith(f"View results: {payload.dashboard_url}")

    @pytest.mark.asyncio
    async def test_sends_through_twilio(self, payload) -> None:
        client = make_client(201, {"sid": "SM1"})

        result = await self.make_adapter(client).send(payload, {"phone_number": "+15551234567"})

        assert result.status is ChannelStatus.SENT
        assert result.recipient == "+15***4567"
        assert result.estimated_cost_usd == pytest.approx(0.005)
        url = client.post.call_args.args[0]
        kwargs = client.post.call_args.kwargs
        assert url == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
        assert kwargs["auth"] == ("AC123", "secret")
        assert kwargs["data"]["To"] == "whatsapp:+15551234567"
        assert kwargs["data"]["From"] == "whatsapp:+15550000000"

    @pytest.mark.asyncio
    async def test_missing_phone_fails(self, payload) -> None:
        client = make_client()

        result = await self.make_adapter(client).send(payload, {})

        assert result.status is ChannelStatus.FAILED
        client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_credentials_fail(self, payload) -> None:
        client = make_client()
        adapter = WhatsAppAdapter(client, account_sid=None, auth_token=None, from_number=None)

        result = await adapter.send(payload, {"phone_number": "+15551234567"})

        assert result.status is ChannelStatus.FAILED
        assert result.recipient == "+15***4567"
        client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_twilio_error_message_surfaced(self, payload) -> None:
        client = make_client(400, {"message": "Invalid 'To' number"})

        result = await self.make_adapter(client).send(payload, {"phone_number": "+15551234567"})

        assert result.status is ChannelStatus.FAILED
        assert result.error == "Invalid 'To' number"
