"""Billing, pricing and usage threshold configuration."""

from pydantic import BaseModel, Field, field_validator

# Each bucket has its own notification event
SUPPORTED_THRESHOLDS = frozenset({75, 90, 100})


class ModelPricingConfig(BaseModel):
    """USD price per million tokens for one pricing key."""

    model_id: str = Field(..., description="Pricing key / model identifier")
    input_rate_per_million: float = Field(..., ge=0.0)
    output_rate_per_million: float = Field(..., ge=0.0)


def _default_pricing() -> list[ModelPricingConfig]:
    return [
        ModelPricingConfig(
            model_id="claude-sonnet-4-20250514",
            input_rate_per_million=3.0,
            output_rate_per_million=15.0,
        ),
        ModelPricingConfig(
            model_id="claude-sonnet-4-5-20250929",
            input_rate_per_million=3.0,
            output_rate_per_million=15.0,
        ),
        ModelPricingConfig(
            model_id="claude-opus-4-20250514",
            input_rate_per_million=15.0,
            output_rate_per_million=75.0,
        ),
        ModelPricingConfig(
            model_id="claude-opus-4-1-20250805",
            input_rate_per_million=15.0,
            output_rate_per_million=75.0,
        ),
    ]


def _default_tier_limits() -> dict[str, int]:
    return {
        "standard": 1_000_000,
        "premium": 5_000_000,
        "enterprise": 20_000_000,
    }


class BillingConfig(BaseModel):
    """Usage ledger configuration."""

    period_days: int = Field(default=30, ge=1, description="Billing period length in days")
    thresholds: list[int] = Field(
        default_factory=lambda: [75, 90, 100],
        description="Usage percentage buckets that trigger a notification",
    )
    pricing_cache_ttl_seconds: float = Field(
        default=300.0,
        ge=0.0,
        description="TTL of cached pricing lookups",
    )
    default_tier: str = Field(default="standard", description="Tier of unknown tenants")
    tier_limits: dict[str, int] = Field(
        default_factory=_default_tier_limits,
        description="Monthly token limit per tier; 0 means unlimited",
    )
    pricing: list[ModelPricingConfig] = Field(default_factory=_default_pricing)

    @field_validator("thresholds")
    @classmethod
    def _sorted_thresholds(cls, value: list[int]) -> list[int]:
        unsupported = set(value) - SUPPORTED_THRESHOLDS
        if unsupported:
            raise ValueError(f"unsupported threshold buckets: {sorted(unsupported)}")
        return sorted(set(value))
