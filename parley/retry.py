"""Shared retry policy for model calls.

Both the interview turn path and the synthesis call path wrap their gateway
calls in the same policy: classify the failure, short-circuit fatal errors,
back off exponentially with jitter on retryable ones.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from parley.config.models.retry import RetryConfig
from parley.errors import ParleyError, RateLimitError, classify_error
from parley.observability.logging import get_logger
from parley.observability.metrics import RETRIES

logger = get_logger(__name__)

T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[None]]


class RetryPolicy:
    """Exponential backoff with uniform jitter and a fixed attempt cap.

    The delay before retry ``n`` (0-based attempt that just failed) is
    ``min(max_delay, base_delay * 2**n) + uniform(0, jitter)``. When the
    error is a RateLimitError with a larger retry_after hint, the hint wins.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        jitter: float = 1.0,
        max_delay: float = 30.0,
        *,
        sleep: Sleeper = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.jitter = jitter
        self.max_delay = max_delay
        self._sleep = sleep
        self._rng = rng

    @classmethod
    def from_config(
        cls,
        config: RetryConfig,
        *,
        sleep: Sleeper = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay_seconds,
            jitter=config.jitter_seconds,
            max_delay=config.max_delay_seconds,
            sleep=sleep,
            rng=rng,
        )

    def delay_for(self, attempt: int, error: ParleyError | None = None) -> float:
        """Seconds to wait after the given 0-based attempt failed."""
        delay = min(self.max_delay, self.base_delay * (2**attempt))
        delay += self._rng() * self.jitter
        if isinstance(error, RateLimitError) and error.retry_after:
            delay = max(delay, error.retry_after)
        return delay

    def worst_case_seconds(self, call_timeout: float) -> float:
        """Upper bound of one ``run`` when every attempt hits the call timeout.

        Rate-limit hints larger than the backoff are not included.
        """
        backoff = sum(
            min(self.max_delay, self.base_delay * (2**n)) + self.jitter
            for n in range(self.max_attempts - 1)
        )
        return self.max_attempts * call_timeout + backoff

    async def run(
        self,
        func: Callable[[], Awaitable[T]],
        *,
        operation: str,
        on_error: Callable[[ParleyError, int], None] | None = None,
    ) -> T:
        """Call ``func`` until it succeeds or the policy gives up.

        Args:
            func: Zero-argument coroutine factory; called once per attempt
            operation: Name used in logs and metrics
            on_error: Invoked with every classified failure and its attempt index

        Raises:
            ParleyError: The last classified error when the error is fatal or
                attempts are exhausted
        """
        attempt = 0
        while True:
            try:
                return await func()
            except Exception as exc:
                error = classify_error(exc)
                if on_error is not None:
                    on_error(error, attempt)

                if not error.retryable or attempt + 1 >= self.max_attempts:
                    logger.warning(
                        "retry_gave_up",
                        operation=operation,
                        attempts=attempt + 1,
                        error_code=error.code,
                        retryable=error.retryable,
                    )
                    if error is exc:
                        raise
                    raise error from exc

                delay = self.delay_for(attempt, error)
                RETRIES.labels(operation=operation, error_code=error.code).inc()
                logger.info(
                    "retry_scheduled",
                    operation=operation,
                    attempt=attempt + 1,
                    max_attempts=self.max_attempts,
                    error_code=error.code,
                    delay_seconds=round(delay, 3),
                )
                await self._sleep(delay)
                attempt += 1
