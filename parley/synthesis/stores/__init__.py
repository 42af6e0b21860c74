"""Synthesis job store implementations."""

from parley.synthesis.stores.inmemory import InMemorySynthesisJobStore
from parley.synthesis.stores.redis import RedisSynthesisJobStore

__all__ = ["InMemorySynthesisJobStore", "RedisSynthesisJobStore"]
