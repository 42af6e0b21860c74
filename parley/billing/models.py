"""Billing domain models: accounts, ledger entries, usage events."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(UTC)


class ModelPricing(BaseModel):
    """USD price per million tokens for one model."""

    model_id: str
    input_rate_per_million: float = Field(..., ge=0.0)
    output_rate_per_million: float = Field(..., ge=0.0)


class TenantAccount(BaseModel):
    """Billing identity of a tenant."""

    tenant_id: str
    tier: str = Field(default="standard", description="Billing tier name")
    usage_limit_override: int | None = Field(
        default=None,
        ge=0,
        description="Token limit replacing the tier default; 0 means unlimited",
    )
    billing_anchor: datetime = Field(
        default_factory=utc_now,
        description="Start of the current billing cycle; periods repeat from here",
    )
    display_name: str = ""
    contact_email: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class UsageLedgerEntry(BaseModel):
    """Running total for one tenant and one billing period [start, end)."""

    tenant_id: str
    period_start: datetime
    period_end: datetime
    cumulative_tokens: int = 0
    cumulative_cost_cents: int = 0
    notified_thresholds: set[int] = Field(default_factory=set)
    updated_at: datetime = Field(default_factory=utc_now)


class CallUsage(BaseModel):
    """One priced model call inside an operation."""

    call_type: str
    model_id: str
    tokens_in: int
    tokens_out: int
    cost_cents: int


class UsageTotals(BaseModel):
    """Running total of an accumulator."""

    tokens_in: int = 0
    tokens_out: int = 0
    cost_cents: int = 0
    call_count: int = 0

    @property
    def total_tokens(self) -> int:
        return self.tokens_in + self.tokens_out


class UsageEvent(BaseModel):
    """Historical record of one committed delta. Never deleted by reset."""

    id: UUID = Field(default_factory=uuid4)
    tenant_id: str
    period_start: datetime
    tokens: int
    cost_cents: int
    breakdown: list[CallUsage] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=utc_now)


class DeltaResult(BaseModel):
    """Outcome of the store's atomic add-and-claim."""

    entry: UsageLedgerEntry
    newly_claimed: list[int] = Field(default_factory=list)


class UsageSnapshot(BaseModel):
    """Read view of a tenant's current period."""

    tenant_id: str
    tier: str
    cumulative_tokens: int
    cumulative_cost_cents: int
    limit: int = Field(..., description="Effective token limit; 0 means unlimited")
    percentage: int
    period_start: datetime
    period_end: datetime
    notified_thresholds: set[int] = Field(default_factory=set)
    days_remaining: int
    is_over_limit: bool


class AccumulateResult(BaseModel):
    """Outcome of UsageLedger.accumulate."""

    snapshot: UsageSnapshot
    newly_crossed: list[int] = Field(default_factory=list)


class QuotaCheck(BaseModel):
    """Pre-request quota gate."""

    allowed: bool
    snapshot: UsageSnapshot
    reason: str | None = None
    retry_after_seconds: int | None = None
