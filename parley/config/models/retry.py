"""Retry policy configuration shared by interview turns and synthesis calls."""

from pydantic import BaseModel, Field


class RetryConfig(BaseModel):
    """Exponential backoff with jitter."""

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts per call, including the first",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Delay before the second attempt; doubles per attempt",
    )
    jitter_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Upper bound of uniform random jitter added to each delay",
    )
    max_delay_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="Cap applied to the exponential component",
    )
