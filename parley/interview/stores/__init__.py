"""Interview session store implementations."""

from parley.interview.stores.inmemory import InMemoryInterviewSessionStore
from parley.interview.stores.redis import RedisInterviewSessionStore

__all__ = ["InMemoryInterviewSessionStore", "RedisInterviewSessionStore"]
