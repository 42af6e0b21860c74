"""Report tier to model lookup."""

from enum import Enum

from pydantic import BaseModel, Field

from parley.config.models.providers import TierModelConfig
from parley.errors import InvalidTierError


class ReportTier(str, Enum):
    """Service level selecting model capability and price."""

    STANDARD = "standard"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class TierModel(BaseModel):
    """Model selection for one tier."""

    tier: ReportTier
    model_id: str = Field(..., description="Model identifier sent to the gateway")
    pricing_key: str = Field(..., description="Key into the pricing table")
    display_name: str = ""


class TierCatalog:
    """Static tier table. Tier is always an explicit lookup, never inferred."""

    def __init__(self, tiers: dict[str, TierModelConfig]):
        self._tiers: dict[ReportTier, TierModel] = {}
        for name, cfg in tiers.items():
            tier = ReportTier(name)
            self._tiers[tier] = TierModel(
                tier=tier,
                model_id=cfg.model_id,
                pricing_key=cfg.pricing_key,
                display_name=cfg.display_name,
            )
        missing = set(ReportTier) - set(self._tiers)
        if missing:
            names = ", ".join(sorted(t.value for t in missing))
            raise ValueError(f"Tier table is missing: {names}")

    def resolve(self, tier: ReportTier | str) -> TierModel:
        """Look up a tier.

        Raises:
            InvalidTierError: If the tier is not one of the known tiers
        """
        try:
            key = ReportTier(tier)
        except ValueError as e:
            raise InvalidTierError(
                f"Unknown report tier: {tier!r}",
                details={"tier": str(tier)},
            ) from e
        return self._tiers[key]

    def __iter__(self):
        return iter(self._tiers.values())
