"""UsageLedgerStore abstract interface."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from parley.billing.models import DeltaResult, TenantAccount, UsageEvent, UsageLedgerEntry


def crossed_thresholds(tokens: int, limit: int, thresholds: Iterable[int]) -> list[int]:
    """Buckets whose percentage is reached by ``tokens`` against ``limit``.

    Integer comparison (tokens * 100 >= t * limit) so a bucket is claimed on
    exactly the same delta in every backend. A limit of 0 is unlimited.
    """
    if limit <= 0:
        return []
    return [t for t in sorted(thresholds) if tokens * 100 >= t * limit]


class UsageLedgerStore(ABC):
    """Persistence for tenant accounts, per-period ledger entries and events.

    ``apply_delta`` is the only write path for the cumulative counters. It
    must add the delta and claim newly crossed threshold buckets in a single
    atomic step so two concurrent commits can never both claim a bucket.
    """

    @abstractmethod
    async def get_account(self, tenant_id: str) -> TenantAccount | None:
        """Get a tenant account."""
        pass

    @abstractmethod
    async def save_account(self, account: TenantAccount) -> None:
        """Create or replace a tenant account."""
        pass

    @abstractmethod
    async def ensure_account(self, account: TenantAccount) -> TenantAccount:
        """Insert the account if absent; return whichever account is stored."""
        pass

    @abstractmethod
    async def get_entry(
        self, tenant_id: str, period_start: datetime
    ) -> UsageLedgerEntry | None:
        """Get the ledger entry of one period, if any usage was recorded."""
        pass

    @abstractmethod
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
        """Atomically add usage and claim crossed, unclaimed thresholds."""
        pass

    @abstractmethod
    async def append_event(self, event: UsageEvent) -> None:
        """Append a historical usage event."""
        pass

    @abstractmethod
    async def list_events(
        self,
        tenant_id: str,
        *,
        since: datetime | None = None,
        limit: int = 1000,
    ) -> list[UsageEvent]:
        """List usage events, oldest first."""
        pass
