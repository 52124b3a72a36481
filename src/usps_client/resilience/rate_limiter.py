"""
Token bucket rate limiter shared by bulk workers.

How Token Bucket Works:
- Bucket holds up to `capacity` tokens and starts full
- One token is added every 1/requests_per_second seconds
- Each request consumes 1 token
- If no tokens are available, the caller polls every half refill interval

The count and last-refill instant are integers guarded by one plain lock
that is never held across a sleep. last_refill advances by whole intervals
only, so fractional progress toward the next token is never lost.

Usage:
    limiter = TokenBucket(requests_per_second=10)
    await limiter.acquire(scope)
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from usps_client.cancellation import CancelScope, ensure_scope

logger = logging.getLogger(__name__)

NANOS_PER_SECOND = 1_000_000_000


@dataclass
class RateLimiterConfig:
    """Configuration for rate limiter behavior."""

    # Maximum requests per second; also the burst capacity
    requests_per_second: int = 10

    # Name for logging
    name: str = "usps_api"

    def __post_init__(self):
        self.requests_per_second = int(self.requests_per_second)
        if self.requests_per_second <= 0:
            raise ValueError(
                f"requests_per_second must be positive, got {self.requests_per_second}"
            )


class TokenBucket:
    """
    Integer token bucket.

    Attributes:
        capacity: Maximum tokens (= requests per second)
        refill_interval_ns: Nanoseconds per token
    """

    def __init__(
        self,
        requests_per_second: int | None = None,
        config: RateLimiterConfig | None = None,
        clock: Callable[[], int] = time.monotonic_ns,
    ):
        if config is None:
            config = RateLimiterConfig(
                requests_per_second=requests_per_second if requests_per_second is not None else 10
            )
        self.config = config
        self.capacity = config.requests_per_second
        self.refill_interval_ns = NANOS_PER_SECOND // config.requests_per_second
        self._clock = clock
        self._tokens = self.capacity
        self._last_refill = clock()
        self._lock = threading.Lock()
        self._waits = 0

        logger.debug(
            f"Rate limiter '{config.name}' initialized",
            extra={
                "rate_limiter": config.name,
                "requests_per_second": config.requests_per_second,
                "burst_capacity": self.capacity,
            },
        )

    @property
    def refill_interval(self) -> float:
        return self.refill_interval_ns / NANOS_PER_SECOND

    def _refill_locked(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed < self.refill_interval_ns:
            return
        new_tokens = elapsed // self.refill_interval_ns
        self._tokens = min(self.capacity, self._tokens + new_tokens)
        self._last_refill += new_tokens * self.refill_interval_ns

    def try_acquire(self) -> bool:
        """Take one token if available without waiting."""
        with self._lock:
            self._refill_locked()
            if self._tokens > 0:
                self._tokens -= 1
                return True
            return False

    async def acquire(self, scope: CancelScope | None = None) -> None:
        """
        Block until a token is available.

        Raises:
            CancellationError: If the scope terminates while waiting
        """
        scope = ensure_scope(scope)
        while True:
            scope.check()
            if self.try_acquire():
                return
            with self._lock:
                self._waits += 1
            await scope.sleep(self.refill_interval / 2)

    def get_stats(self) -> dict:
        """
        Get current rate limiter statistics.

        Returns:
            Dict with current token count and configuration
        """
        with self._lock:
            return {
                "name": self.config.name,
                "requests_per_second": self.config.requests_per_second,
                "capacity": self.capacity,
                "tokens_available": self._tokens,
                "last_refill_ns": self._last_refill,
                "waits": self._waits,
            }


__all__ = [
    "RateLimiterConfig",
    "TokenBucket",
]
