"""Storage backend configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

BackendType = Literal["inmemory", "redis"]


class RedisConfig(BaseModel):
    """Redis connection and key layout."""

    url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    key_prefix: str = Field(
        default="parley",
        description="Prefix applied to every key",
    )
    running_marker_ttl_seconds: int = Field(
        default=3600,
        gt=0,
        description="Expiry of the synthesis running marker if a worker dies",
    )
    socket_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Socket timeout in seconds",
    )


class StorageConfig(BaseModel):
    """Storage configuration for all persistent records."""

    backend: BackendType = Field(
        default="inmemory",
        description="Backend used for sessions, jobs and the usage ledger",
    )
    redis: RedisConfig = Field(
        default_factory=RedisConfig,
        description="Redis settings (backend = redis)",
    )
