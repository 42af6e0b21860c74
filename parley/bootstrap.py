"""Bootstrap module for wiring the Parley services from configuration.

Creates the stores (in-memory or Redis), the model gateway, the billing
chain, the notification dispatcher, the interview state machine and the
synthesis orchestrator, and connects the completion listeners.

Example usage:

    from parley.bootstrap import build_services
    from parley.config import get_settings

    services = await build_services(get_settings())

    session = await services.interviews.register(participant, "campaign-1", "tenant-1")
    transcript, session = await services.interviews.start_or_resume(session.id)

    await services.aclose()
"""

from dataclasses import dataclass

import httpx
import redis.asyncio as redis

from parley.billing.ledger import UsageLedger
from parley.billing.models import ModelPricing
from parley.billing.pricing import CostLedger, StaticPricingSource
from parley.billing.store import UsageLedgerStore
from parley.billing.stores import InMemoryUsageLedgerStore, RedisUsageLedgerStore
from parley.config.settings import Settings
from parley.interview.machine import InterviewStateMachine
from parley.interview.store import InterviewSessionStore
from parley.interview.stores import InMemoryInterviewSessionStore, RedisInterviewSessionStore
from parley.notifications.adapter import ChannelAdapter
from parley.notifications.adapters import EmailAdapter, SlackAdapter, WhatsAppAdapter
from parley.notifications.completion import CompletionNotifier
from parley.notifications.dispatcher import NotificationDispatcher
from parley.notifications.stores import (
    InMemoryNotificationLogStore,
    InMemoryNotificationPreferenceStore,
)
from parley.observability.logging import get_logger, setup_logging
from parley.providers.llm import ModelGateway, TierCatalog, create_gateway
from parley.retry import RetryPolicy
from parley.synthesis.orchestrator import SynthesisOrchestrator
from parley.synthesis.store import SynthesisJobStore
from parley.synthesis.stores import InMemorySynthesisJobStore, RedisSynthesisJobStore
from parley.synthesis.trigger import AutoSynthesisTrigger

logger = get_logger(__name__)


@dataclass
class Services:
    """Everything ``build_services`` created, for callers and tests."""

    settings: Settings
    gateway: ModelGateway
    tiers: TierCatalog
    sessions: InterviewSessionStore
    jobs: SynthesisJobStore
    ledger_store: UsageLedgerStore
    pricing: StaticPricingSource
    cost_ledger: CostLedger
    ledger: UsageLedger
    dispatcher: NotificationDispatcher
    interviews: InterviewStateMachine
    synthesis: SynthesisOrchestrator
    http_client: httpx.AsyncClient
    redis_client: redis.Redis | None = None

    async def aclose(self) -> None:
        """Wait for background work, then close network clients."""
        await self.interviews.drain()
        await self.synthesis.drain()
        await self.gateway.close()
        await self.http_client.aclose()
        if self.redis_client is not None:
            await self.redis_client.aclose()


def _channel_adapters(settings: Settings, client: httpx.AsyncClient) -> dict[str, ChannelAdapter]:
    email = settings.notifications.email
    whatsapp = settings.notifications.whatsapp
    return {
        "email": EmailAdapter(
            client,
            api_key=email.api_key.get_secret_value() if email.api_key else None,
            from_address=email.from_address,
            base_url=email.base_url,
            estimated_cost_usd=email.estimated_cost_usd,
        ),
        "slack": SlackAdapter(client),
        "whatsapp": WhatsAppAdapter(
            client,
            account_sid=whatsapp.account_sid,
            auth_token=whatsapp.auth_token.get_secret_value() if whatsapp.auth_token else None,
            from_number=whatsapp.from_number,
            base_url=whatsapp.base_url,
            estimated_cost_usd=whatsapp.estimated_cost_usd,
        ),
    }


async def build_services(
    settings: Settings,
    *,
    gateway: ModelGateway | None = None,
    configure_logging: bool = True,
) -> Services:
    """Build the full service graph.

    Args:
        settings: Loaded configuration
        gateway: Optional gateway overriding the configured one
        configure_logging: Whether to apply the logging settings

    Returns:
        Services with every component wired
    """
    if configure_logging:
        log_cfg = settings.observability.logging
        setup_logging(
            level=log_cfg.level,
            format=log_cfg.format,
            redact_pii=log_cfg.redact_pii,
            redact_keys=log_cfg.redact_keys,
        )

    storage = settings.storage
    redis_client: redis.Redis | None = None
    sessions: InterviewSessionStore
    jobs: SynthesisJobStore
    ledger_store: UsageLedgerStore
    if storage.backend == "redis":
        redis_client = redis.from_url(
            storage.redis.url, socket_timeout=storage.redis.socket_timeout
        )
        prefix = storage.redis.key_prefix
        sessions = RedisInterviewSessionStore(redis_client, prefix)
        jobs = RedisSynthesisJobStore(redis_client, prefix)
        ledger_store = RedisUsageLedgerStore(redis_client, prefix)
    else:
        sessions = InMemoryInterviewSessionStore()
        jobs = InMemorySynthesisJobStore()
        ledger_store = InMemoryUsageLedgerStore()

    gateway = gateway or create_gateway(settings.providers)
    tiers = TierCatalog(settings.providers.tiers)

    pricing = StaticPricingSource(
        ModelPricing(**p.model_dump()) for p in settings.billing.pricing
    )
    cost_ledger = CostLedger(pricing, ttl_seconds=settings.billing.pricing_cache_ttl_seconds)

    http_client = httpx.AsyncClient(timeout=settings.notifications.timeout)
    dispatcher = NotificationDispatcher(
        _channel_adapters(settings, http_client),
        InMemoryNotificationPreferenceStore(),
        InMemoryNotificationLogStore(),
        enabled=settings.notifications.enabled,
    )
    ledger = UsageLedger(
        ledger_store,
        settings.billing,
        dispatcher=dispatcher,
        dashboard_base_url=settings.notifications.dashboard_base_url,
    )

    turn_retry = RetryPolicy.from_config(settings.interview.retry)
    interviews = InterviewStateMachine(
        sessions,
        gateway,
        settings.interview,
        cost_ledger=cost_ledger,
        ledger=ledger,
        retry=turn_retry,
        turn_lock_ttl_seconds=(
            turn_retry.worst_case_seconds(settings.providers.anthropic.timeout)
            + settings.interview.turn_lock_margin_seconds
        ),
    )
    synthesis = SynthesisOrchestrator(
        jobs,
        sessions,
        gateway,
        tiers,
        settings.synthesis,
        cost_ledger=cost_ledger,
        ledger=ledger,
        retry=RetryPolicy.from_config(settings.synthesis.retry),
        marker_ttl_seconds=storage.redis.running_marker_ttl_seconds,
    )

    interviews.add_completion_listener(
        CompletionNotifier(dispatcher, settings.notifications.dashboard_base_url)
    )
    interviews.add_completion_listener(
        AutoSynthesisTrigger(
            sessions,
            synthesis,
            settings.synthesis.auto_trigger_tier,
            enabled=settings.synthesis.auto_trigger,
        )
    )

    logger.info(
        "services_built",
        storage_backend=storage.backend,
        gateway=gateway.provider_name,
        notifications_enabled=settings.notifications.enabled,
        auto_synthesis=settings.synthesis.auto_trigger,
    )
    return Services(
        settings=settings,
        gateway=gateway,
        tiers=tiers,
        sessions=sessions,
        jobs=jobs,
        ledger_store=ledger_store,
        pricing=pricing,
        cost_ledger=cost_ledger,
        ledger=ledger,
        dispatcher=dispatcher,
        interviews=interviews,
        synthesis=synthesis,
        http_client=http_client,
        redis_client=redis_client,
    )
