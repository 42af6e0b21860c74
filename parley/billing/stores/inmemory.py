"""In-memory implementation of UsageLedgerStore."""

import asyncio
from datetime import UTC, datetime

from parley.billing.models import DeltaResult, TenantAccount, UsageEvent, UsageLedgerEntry
from parley.billing.store import UsageLedgerStore, crossed_thresholds


class InMemoryUsageLedgerStore(UsageLedgerStore):
    """In-memory UsageLedgerStore for testing and development.

    A single asyncio.Lock guards every check-and-set. The lock is never held
    across an await that leaves this object.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, TenantAccount] = {}
        self._entries: dict[tuple[str, datetime], UsageLedgerEntry] = {}
        self._events: list[UsageEvent] = []
        self._lock = asyncio.Lock()

    async def get_account(self, tenant_id: str) -> TenantAccount | None:
        account = self._accounts.get(tenant_id)
        return account.model_copy(deep=True) if account else None

    async def save_account(self, account: TenantAccount) -> None:
        self._accounts[account.tenant_id] = account.model_copy(deep=True)

    async def ensure_account(self, account: TenantAccount) -> TenantAccount:
        async with self._lock:
            existing = self._accounts.setdefault(account.tenant_id, account.model_copy(deep=True))
            return existing.model_copy(deep=True)

    async def get_entry(
        self, tenant_id: str, period_start: datetime
    ) -> UsageLedgerEntry | None:
        entry = self._entries.get((tenant_id, period_start))
        return entry.model_copy(deep=True) if entry else None

    async def apply_delta(
        self,
        tenant_id: str,
        period_start: datetime,
        period_end: datetime,
        *,
        tokens: int,
        cost_cents: int,
        limit: int,
        thresholds: list[int],
    ) -> DeltaResult:
        async with self._lock:
            key = (tenant_id, period_start)
            entry = self._entries.get(key)
            if entry is None:
                entry = UsageLedgerEntry(
                    tenant_id=tenant_id,
                    period_start=period_start,
                    period_end=period_end,
                )
                self._entries[key] = entry

            entry.cumulative_tokens += tokens
            entry.cumulative_cost_cents += cost_cents
            entry.updated_at = datetime.now(UTC)

            claimed = [
                t
                for t in crossed_thresholds(entry.cumulative_tokens, limit, thresholds)
                if t not in entry.notified_thresholds
            ]
            entry.notified_thresholds.update(claimed)
            return DeltaResult(entry=entry.model_copy(deep=True), newly_claimed=claimed)

    async def append_event(self, event: UsageEvent) -> None:
        self._events.append(event.model_copy(deep=True))

    async def list_events(
        self,
        tenant_id: str,
        *,
        since: datetime | None = None,
        limit: int = 1000,
    ) -> list[UsageEvent]:
        results = [
            e
            for e in self._events
            if e.tenant_id == tenant_id and (since is None or e.occurred_at >= since)
        ]
        results.sort(key=lambda e: e.occurred_at)
        return [e.model_copy(deep=True) for e in results[:limit]]
