"""Usage ledger store implementations."""

from parley.billing.stores.inmemory import InMemoryUsageLedgerStore
from parley.billing.stores.redis import RedisUsageLedgerStore

__all__ = ["InMemoryUsageLedgerStore", "RedisUsageLedgerStore"]
