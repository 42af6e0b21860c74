"""Cost ledger, usage accumulator and tenant usage ledger."""

from parley.billing.accumulator import UsageAccumulator
from parley.billing.ledger import UsageLedger
from parley.billing.models import (
    AccumulateResult,
    ModelPricing,
    QuotaCheck,
    TenantAccount,
    UsageEvent,
    UsageSnapshot,
)
from parley.billing.pricing import CostLedger, PricingSource, StaticPricingSource

__all__ = [
    "AccumulateResult",
    "CostLedger",
    "ModelPricing",
    "PricingSource",
    "QuotaCheck",
    "StaticPricingSource",
    "TenantAccount",
    "UsageAccumulator",
    "UsageEvent",
    "UsageLedger",
    "UsageSnapshot",
]
