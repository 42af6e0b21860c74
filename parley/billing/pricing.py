"""Cost ledger: token counts to cents, with a TTL pricing cache."""

import math
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any

from parley.billing.models import ModelPricing
from parley.observability.logging import get_logger

logger = get_logger(__name__)


class PricingSource(ABC):
    """Where pricing comes from (static table, database, admin API)."""

    @abstractmethod
    async def get(self, model_id: str) -> ModelPricing | None:
        """Return pricing for a model, or None when the model is unknown."""
        pass


class StaticPricingSource(PricingSource):
    """Pricing table held in memory, usually loaded from configuration."""

    def __init__(self, pricing: Iterable[ModelPricing]) -> None:
        self._pricing = {p.model_id: p for p in pricing}

    async def get(self, model_id: str) -> ModelPricing | None:
        return self._pricing.get(model_id)

    def set(self, pricing: ModelPricing) -> None:
        self._pricing[pricing.model_id] = pricing


def cost_cents(pricing: ModelPricing, tokens_in: int, tokens_out: int) -> int:
    """Cost of one call in whole cents, rounded up."""
    if tokens_in == 0 and tokens_out == 0:
        return 0
    dollars = (
        tokens_in * pricing.input_rate_per_million
        + tokens_out * pricing.output_rate_per_million
    ) / 1_000_000
    return math.ceil(round(dollars * 100, 9))


class CostLedger:
    """Prices model calls.

    Pricing lookups are cached per model id for ``ttl_seconds``. Unknown
    models price at zero and log a warning; the miss is cached as well so a
    burst of calls does not hammer the source.
    """

    def __init__(
        self,
        source: PricingSource,
        *,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._ttl = ttl_seconds
        self._clock = clock
        self._cache: dict[str, tuple[ModelPricing | None, float]] = {}

    async def pricing_for(self, model_id: str) -> ModelPricing | None:
        now = self._clock()
        cached = self._cache.get(model_id)
        if cached is not None and now - cached[1] < self._ttl:
            return cached[0]

        pricing = await self._source.get(model_id)
        self._cache[model_id] = (pricing, now)
        if pricing is None:
            logger.warning("pricing_not_found", model_id=model_id)
        return pricing

    async def price(self, model_id: str, tokens_in: int, tokens_out: int) -> int:
        """Cost of one call in cents."""
        if tokens_in < 0 or tokens_out < 0:
            raise ValueError("token counts must be non-negative")
        pricing = await self.pricing_for(model_id)
        if pricing is None:
            return 0
        return cost_cents(pricing, tokens_in, tokens_out)

    def refresh(self) -> None:
        """Drop every cached lookup."""
        self._cache.clear()
        logger.info("pricing_cache_cleared")

    def cache_stats(self) -> dict[str, Any]:
        return {
            "size": len(self._cache),
            "keys": sorted(self._cache),
            "ttl_seconds": self._ttl,
        }
