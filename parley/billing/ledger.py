"""Usage ledger: per-tenant, per-period cumulative usage against a quota.

All mutation of the cumulative counters goes through ``accumulate``, which
delegates the add and the threshold claim to one atomic store operation.
Notifications are dispatched only for buckets this call claimed, so each
bucket fires at most once per billing period no matter how many commits
race on the same tenant.
"""

import math
from collections.abc import Callable
from datetime import datetime, timedelta

from parley.billing.models import (
    AccumulateResult,
    CallUsage,
    QuotaCheck,
    TenantAccount,
    UsageEvent,
    UsageLedgerEntry,
    UsageSnapshot,
    utc_now,
)
from parley.billing.store import UsageLedgerStore
from parley.config.models.billing import BillingConfig
from parley.errors import InvalidTierError
from parley.notifications.dispatcher import NotificationDispatcher
from parley.notifications.models import NotificationEvent, NotificationPayload
from parley.observability.logging import get_logger
from parley.observability.metrics import THRESHOLDS_CROSSED, USAGE_COST_CENTS

logger = get_logger(__name__)


class UsageLedger:
    """Tenant usage tracking and threshold notification."""

    def __init__(
        self,
        store: UsageLedgerStore,
        config: BillingConfig,
        *,
        dispatcher: NotificationDispatcher | None = None,
        dashboard_base_url: str = "",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._config = config
        self._dispatcher = dispatcher
        self._dashboard_base_url = dashboard_base_url.rstrip("/")
        self._clock = clock
        self._period = timedelta(days=config.period_days)

    # ------------------------------------------------------------------
    # Accounts and periods
    # ------------------------------------------------------------------

    async def account(self, tenant_id: str) -> TenantAccount:
        """Return the tenant account, creating a standard one on first use."""
        existing = await self._store.get_account(tenant_id)
        if existing is not None:
            return existing
        return await self._store.ensure_account(
            TenantAccount(
                tenant_id=tenant_id,
                tier=self._config.default_tier,
                billing_anchor=self._clock(),
            )
        )

    async def set_tier(
        self,
        tenant_id: str,
        tier: str,
        *,
        usage_limit_override: int | None = None,
    ) -> TenantAccount:
        """Change a tenant's billing tier and limit override."""
        if tier not in self._config.tier_limits:
            raise InvalidTierError(
                f"Unknown billing tier: {tier!r}", details={"tier": tier}
            )
        account = await self.account(tenant_id)
        account.tier = tier
        account.usage_limit_override = usage_limit_override
        await self._store.save_account(account)
        logger.info(
            "tenant_tier_changed",
            tenant_id=tenant_id,
            tier=tier,
            usage_limit_override=usage_limit_override,
        )
        return account

    def effective_limit(self, account: TenantAccount) -> int:
        """Override when set, else the tier default. 0 means unlimited."""
        if account.usage_limit_override is not None:
            return account.usage_limit_override
        return self._config.tier_limits.get(account.tier, 0)

    def period_for(self, account: TenantAccount, now: datetime) -> tuple[datetime, datetime]:
        """Half-open period [start, end) containing ``now``."""
        elapsed = now - account.billing_anchor
        k = max(0, math.floor(elapsed / self._period))
        start = account.billing_anchor + k * self._period
        return start, start + self._period

    def _snapshot(
        self,
        account: TenantAccount,
        entry: UsageLedgerEntry | None,
        start: datetime,
        end: datetime,
        now: datetime,
    ) -> UsageSnapshot:
        limit = self.effective_limit(account)
        tokens = entry.cumulative_tokens if entry else 0
        percentage = round(tokens / limit * 100) if limit > 0 else 0
        remaining = max(0.0, (end - now).total_seconds())
        return UsageSnapshot(
            tenant_id=account.tenant_id,
            tier=account.tier,
            cumulative_tokens=tokens,
            cumulative_cost_cents=entry.cumulative_cost_cents if entry else 0,
            limit=limit,
            percentage=percentage,
            period_start=start,
            period_end=end,
            notified_thresholds=set(entry.notified_thresholds) if entry else set(),
            days_remaining=math.ceil(remaining / 86400),
            is_over_limit=limit > 0 and tokens >= limit,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def accumulate(
        self,
        tenant_id: str,
        tokens: int,
        cost_cents: int,
        *,
        breakdown: list[CallUsage] | None = None,
        metadata: dict | None = None,
    ) -> AccumulateResult:
        """Add a usage delta to the tenant's current period.

        Raises:
            ValueError: On a negative delta
            DatabaseError: When the store write fails
        """
        if tokens < 0 or cost_cents < 0:
            raise ValueError("usage deltas must be non-negative")

        account = await self.account(tenant_id)
        now = self._clock()
        start, end = self.period_for(account, now)
        limit = self.effective_limit(account)

        result = await self._store.apply_delta(
            tenant_id,
            start,
            end,
            tokens=tokens,
            cost_cents=cost_cents,
            limit=limit,
            thresholds=self._config.thresholds,
        )
        USAGE_COST_CENTS.labels(tenant_id=tenant_id).inc(cost_cents)
        snapshot = self._snapshot(account, result.entry, start, end, now)

        logger.info(
            "usage_accumulated",
            tenant_id=tenant_id,
            tokens=tokens,
            cost_cents=cost_cents,
            cumulative_tokens=snapshot.cumulative_tokens,
            percentage=snapshot.percentage,
            newly_crossed=result.newly_claimed,
        )

        for bucket in result.newly_claimed:
            THRESHOLDS_CROSSED.labels(bucket=str(bucket)).inc()
            await self._notify_threshold(account, snapshot, bucket)

        await self._store.append_event(
            UsageEvent(
                tenant_id=tenant_id,
                period_start=start,
                tokens=tokens,
                cost_cents=cost_cents,
                breakdown=breakdown or [],
                metadata=metadata or {},
                occurred_at=now,
            )
        )
        return AccumulateResult(snapshot=snapshot, newly_crossed=result.newly_claimed)

    async def _notify_threshold(
        self, account: TenantAccount, snapshot: UsageSnapshot, bucket: int
    ) -> None:
        if self._dispatcher is None:
            return
        payload = NotificationPayload(
            event=NotificationEvent.for_threshold(bucket),
            tenant_id=account.tenant_id,
            assessment_type=account.display_name,
            dashboard_url=f"{self._dashboard_base_url}/dashboard/usage",
            metadata={
                "bucket": bucket,
                "percentage": snapshot.percentage,
                "cumulative_tokens": snapshot.cumulative_tokens,
                "limit": snapshot.limit,
                "period_end": snapshot.period_end.isoformat(),
            },
        )
        try:
            await self._dispatcher.dispatch(
                account.tenant_id, payload, recipient_email=account.contact_email
            )
        except Exception as e:
            logger.error(
                "threshold_notification_failed",
                tenant_id=account.tenant_id,
                bucket=bucket,
                error=str(e),
            )

    async def current(self, tenant_id: str) -> UsageSnapshot:
        """Usage of the tenant's current period."""
        account = await self.account(tenant_id)
        now = self._clock()
        start, end = self.period_for(account, now)
        entry = await self._store.get_entry(tenant_id, start)
        return self._snapshot(account, entry, start, end, now)

    async def reset(self, tenant_id: str) -> UsageSnapshot:
        """Start a new billing period now. Historical events are kept."""
        account = await self.account(tenant_id)
        previous = account.billing_anchor
        account.billing_anchor = self._clock()
        await self._store.save_account(account)
        logger.info(
            "usage_reset",
            tenant_id=tenant_id,
            previous_anchor=previous.isoformat(),
            new_anchor=account.billing_anchor.isoformat(),
        )
        return await self.current(tenant_id)

    async def check_quota(self, tenant_id: str) -> QuotaCheck:
        """Gate a new operation on the tenant's remaining quota."""
        snapshot = await self.current(tenant_id)
        if not snapshot.is_over_limit:
            return QuotaCheck(allowed=True, snapshot=snapshot)

        retry_after = max(0, math.ceil((snapshot.period_end - self._clock()).total_seconds()))
        logger.warning(
            "usage_limit_exceeded",
            tenant_id=tenant_id,
            cumulative_tokens=snapshot.cumulative_tokens,
            limit=snapshot.limit,
        )
        return QuotaCheck(
            allowed=False,
            snapshot=snapshot,
            reason=(
                f"Usage limit of {snapshot.limit:,} tokens reached for the current "
                f"billing period. Usage resets on {snapshot.period_end.date().isoformat()}."
            ),
            retry_after_seconds=retry_after,
        )

    async def history(
        self, tenant_id: str, *, since: datetime | None = None
    ) -> list[UsageEvent]:
        """Historical usage events, oldest first."""
        return await self._store.list_events(tenant_id, since=since)
