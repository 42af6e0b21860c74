"""Usage accumulator: one ledger write per logical operation.

Collects the priced calls of one interview turn or one synthesis run and
commits their sum as a single delta. ``commit`` must be called exactly once,
including when the operation failed part way; the calls it made are still
billed.
"""

from typing import Any

from parley.billing.ledger import UsageLedger
from parley.billing.models import AccumulateResult, CallUsage, UsageTotals
from parley.billing.pricing import CostLedger
from parley.errors import UsageCommitError
from parley.observability.logging import get_logger
from parley.observability.metrics import USAGE_COMMIT_FAILURES

logger = get_logger(__name__)


class UsageAccumulator:
    """Running usage total scoped to one operation."""

    def __init__(
        self,
        cost_ledger: CostLedger,
        ledger: UsageLedger,
        *,
        operation: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self._cost_ledger = cost_ledger
        self._ledger = ledger
        self._operation = operation
        self._metadata = metadata or {}
        self._calls: list[CallUsage] = []
        self._committed = False

    @property
    def committed(self) -> bool:
        return self._committed

    @property
    def calls(self) -> list[CallUsage]:
        return list(self._calls)

    async def record(
        self,
        model_id: str,
        tokens_in: int,
        tokens_out: int,
        *,
        call_type: str = "completion",
    ) -> CallUsage:
        """Price one call and add it to the running total."""
        if self._committed:
            raise RuntimeError(f"usage for {self._operation} was already committed")
        cost = await self._cost_ledger.price(model_id, tokens_in, tokens_out)
        call = CallUsage(
            call_type=call_type,
            model_id=model_id,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            cost_cents=cost,
        )
        self._calls.append(call)
        return call

    def totals(self) -> UsageTotals:
        return UsageTotals(
            tokens_in=sum(c.tokens_in for c in self._calls),
            tokens_out=sum(c.tokens_out for c in self._calls),
            cost_cents=sum(c.cost_cents for c in self._calls),
            call_count=len(self._calls),
        )

    async def commit(self, tenant_id: str) -> AccumulateResult | None:
        """Write the running total to the ledger and clear it.

        Returns None when nothing was recorded.

        Raises:
            RuntimeError: If called a second time
            UsageCommitError: If the ledger write fails
        """
        if self._committed:
            raise RuntimeError(f"usage for {self._operation} was already committed")
        self._committed = True

        totals = self.totals()
        if totals.call_count == 0:
            logger.debug("usage_commit_empty", operation=self._operation, tenant_id=tenant_id)
            return None

        try:
            result = await self._ledger.accumulate(
                tenant_id,
                totals.total_tokens,
                totals.cost_cents,
                breakdown=self._calls,
                metadata={"operation": self._operation, **self._metadata},
            )
        except Exception as e:
            USAGE_COMMIT_FAILURES.labels(tenant_id=tenant_id).inc()
            logger.error(
                "usage_commit_failed",
                operation=self._operation,
                tenant_id=tenant_id,
                tokens=totals.total_tokens,
                cost_cents=totals.cost_cents,
                call_count=totals.call_count,
                error=str(e),
            )
            raise UsageCommitError(
                f"Failed to commit usage for {self._operation}: {e}",
                details={
                    "tenant_id": tenant_id,
                    "tokens": totals.total_tokens,
                    "cost_cents": totals.cost_cents,
                },
                cause=e,
            ) from e

        logger.info(
            "usage_committed",
            operation=self._operation,
            tenant_id=tenant_id,
            tokens_in=totals.tokens_in,
            tokens_out=totals.tokens_out,
            cost_cents=totals.cost_cents,
            call_count=totals.call_count,
            calls=[f"{c.call_type}:{c.tokens_in}+{c.tokens_out}" for c in self._calls],
        )
        self._calls = []
        return result
