"""Redis implementation of UsageLedgerStore.

Key structure:
- {prefix}:account:{tenant_id} - TenantAccount JSON
- {prefix}:ledger:{tenant_id}:{period_ts} - hash of cumulative counters
- {prefix}:ledger:{tenant_id}:{period_ts}:notified - set of claimed buckets
- {prefix}:events:{tenant_id} - sorted set of UsageEvent JSON by timestamp
"""

from datetime import UTC, datetime

import redis.asyncio as redis

from parley.billing.models import DeltaResult, TenantAccount, UsageEvent, UsageLedgerEntry
from parley.billing.store import UsageLedgerStore
from parley.errors import DatabaseError
from parley.observability.logging import get_logger

logger = get_logger(__name__)

# KEYS: entry hash, notified set
# ARGV: tokens, cost_cents, limit, updated_at, period_start, period_end, thresholds...
# Returns: {cumulative_tokens, cumulative_cost_cents, {claimed...}}
APPLY_DELTA_SCRIPT = """
local tokens = tonumber(ARGV[1])
local cost = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])
redis.call('HSETNX', KEYS[1], 'period_start', ARGV[5])
redis.call('HSETNX', KEYS[1], 'period_end', ARGV[6])
local total = redis.call('HINCRBY', KEYS[1], 'cumulative_tokens', tokens)
local total_cost = redis.call('HINCRBY', KEYS[1], 'cumulative_cost_cents', cost)
redis.call('HSET', KEYS[1], 'updated_at', ARGV[4])
local claimed = {}
if limit > 0 then
  for i = 7, #ARGV do
    local t = tonumber(ARGV[i])
    if total * 100 >= t * limit then
      if redis.call('SADD', KEYS[2], ARGV[i]) == 1 then
        table.insert(claimed, ARGV[i])
      end
    end
  end
end
return {total, total_cost, claimed}
"""


def _decode(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


class RedisUsageLedgerStore(UsageLedgerStore):
    """UsageLedgerStore backed by Redis.

    The add-and-claim step runs as one Lua script, so it is atomic on the
    server regardless of how many workers commit usage concurrently.
    """

    def __init__(self, client: redis.Redis, key_prefix: str = "parley") -> None:
        self._client = client
        self._prefix = key_prefix
        self._apply_delta = client.register_script(APPLY_DELTA_SCRIPT)

    def _account_key(self, tenant_id: str) -> str:
        return f"{self._prefix}:account:{tenant_id}"

    def _entry_key(self, tenant_id: str, period_start: datetime) -> str:
        return f"{self._prefix}:ledger:{tenant_id}:{int(period_start.timestamp())}"

    def _notified_key(self, tenant_id: str, period_start: datetime) -> str:
        return f"{self._entry_key(tenant_id, period_start)}:notified"

    def _events_key(self, tenant_id: str) -> str:
        return f"{self._prefix}:events:{tenant_id}"

    async def get_account(self, tenant_id: str) -> TenantAccount | None:
        try:
            data = await self._client.get(self._account_key(tenant_id))
        except redis.RedisError as e:
            raise DatabaseError("get_account", cause=e) from e
        return TenantAccount.model_validate_json(data) if data else None

    async def save_account(self, account: TenantAccount) -> None:
        try:
            await self._client.set(
                self._account_key(account.tenant_id), account.model_dump_json()
            )
        except redis.RedisError as e:
            raise DatabaseError("save_account", cause=e) from e

    async def ensure_account(self, account: TenantAccount) -> TenantAccount:
        key = self._account_key(account.tenant_id)
        try:
            created = await self._client.set(key, account.model_dump_json(), nx=True)
            if created:
                return account
            data = await self._client.get(key)
        except redis.RedisError as e:
            raise DatabaseError("ensure_account", cause=e) from e
        return TenantAccount.model_validate_json(data)

    async def get_entry(
        self, tenant_id: str, period_start: datetime
    ) -> UsageLedgerEntry | None:
        try:
            data = await self._client.hgetall(self._entry_key(tenant_id, period_start))
            if not data:
                return None
            notified = await self._client.smembers(self._notified_key(tenant_id, period_start))
        except redis.RedisError as e:
            raise DatabaseError("get_entry", cause=e) from e

        fields = {_decode(k): _decode(v) for k, v in data.items()}
        return UsageLedgerEntry(
            tenant_id=tenant_id,
            period_start=datetime.fromisoformat(fields["period_start"]),
            period_end=datetime.fromisoformat(fields["period_end"]),
            cumulative_tokens=int(fields.get("cumulative_tokens", 0)),
            cumulative_cost_cents=int(fields.get("cumulative_cost_cents", 0)),
            notified_thresholds={int(_decode(t)) for t in notified},
            updated_at=datetime.fromisoformat(fields["updated_at"])
            if "updated_at" in fields
            else datetime.now(UTC),
        )

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
        now = datetime.now(UTC)
        try:
            total, total_cost, claimed = await self._apply_delta(
                keys=[
                    self._entry_key(tenant_id, period_start),
                    self._notified_key(tenant_id, period_start),
                ],
                args=[
                    tokens,
                    cost_cents,
                    limit,
                    now.isoformat(),
                    period_start.isoformat(),
                    period_end.isoformat(),
                    *sorted(thresholds),
                ],
            )
            notified = await self._client.smembers(self._notified_key(tenant_id, period_start))
        except redis.RedisError as e:
            logger.error("ledger_apply_delta_failed", tenant_id=tenant_id, error=str(e))
            raise DatabaseError("apply_delta", cause=e) from e

        entry = UsageLedgerEntry(
            tenant_id=tenant_id,
            period_start=period_start,
            period_end=period_end,
            cumulative_tokens=int(total),
            cumulative_cost_cents=int(total_cost),
            notified_thresholds={int(_decode(t)) for t in notified},
            updated_at=now,
        )
        return DeltaResult(
            entry=entry,
            newly_claimed=sorted(int(_decode(t)) for t in claimed),
        )

    async def append_event(self, event: UsageEvent) -> None:
        try:
            await self._client.zadd(
                self._events_key(event.tenant_id),
                {event.model_dump_json(): event.occurred_at.timestamp()},
            )
        except redis.RedisError as e:
            raise DatabaseError("append_event", cause=e) from e

    async def list_events(
        self,
        tenant_id: str,
        *,
        since: datetime | None = None,
        limit: int = 1000,
    ) -> list[UsageEvent]:
        low = since.timestamp() if since else "-inf"
        try:
            rows = await self._client.zrangebyscore(
                self._events_key(tenant_id), low, "+inf", start=0, num=limit
            )
        except redis.RedisError as e:
            raise DatabaseError("list_events", cause=e) from e
        return [UsageEvent.model_validate_json(row) for row in rows]
