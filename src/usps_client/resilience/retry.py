"""
Retry with exponential backoff driven by error classification.

- Transport errors and 429/5xx API errors: retry with backoff
- Everything else (4xx, OAuth, parse, validation): fail immediately
- Cancellation: never retried, propagates
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from usps_client.cancellation import CancelScope, ensure_scope
from usps_client.errors import CancellationError, classify_exception, is_retryable_error
from usps_client.resilience.rate_limiter import TokenBucket

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Backoff multiplier is capped at 2**5 = 32x the base delay
MAX_BACKOFF_EXPONENT = 5


def _log_retry_failure(
    operation: str,
    e: Exception,
    attempt: int,
    config: "RetryConfig",
) -> None:
    """Log permanent-error or max-retries-exhausted."""
    error_category = classify_exception(e).value
    if not is_retryable_error(e):
        logger.debug(
            "Permanent error for %s, not retrying: %s",
            operation,
            str(e)[:200],
            extra={
                "operation": operation,
                "error_type": type(e).__name__,
                "error_category": error_category,
                "attempt": attempt + 1,
            },
        )
        return

    logger.warning(
        "Max retries exhausted for %s: %s",
        operation,
        str(e)[:200],
        extra={
            "operation": operation,
            "error_type": type(e).__name__,
            "error_category": error_category,
            "max_attempts": config.max_attempts,
            "error_message": str(e)[:200],
        },
    )


def _log_retry_attempt(
    operation: str,
    attempt: int,
    config: "RetryConfig",
    delay: float,
    e: Exception,
) -> None:
    logger.info(
        "Retryable error for %s, will retry",
        operation,
        extra={
            "operation": operation,
            "attempt": attempt + 1,
            "max_attempts": config.max_attempts,
            "error_category": classify_exception(e).value,
            "delay_seconds": round(delay, 2),
            "error_message": str(e)[:200],
        },
    )


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    # Retries after the first attempt; total attempts = max_retries + 1
    max_retries: int = 3
    base_delay: float = 1.0

    def __post_init__(self):
        """Ensure proper types from YAML/env vars."""
        self.max_retries = int(self.max_retries)
        self.base_delay = float(self.base_delay)
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay <= 0:
            raise ValueError(f"base_delay must be positive, got {self.base_delay}")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def get_delay(self, attempt: int) -> float:
        return calculate_backoff(self.base_delay, attempt)


def calculate_backoff(base_delay: float, attempt: int) -> float:
    """base_delay * 2**attempt with the exponent capped at MAX_BACKOFF_EXPONENT."""
    return base_delay * (2 ** min(attempt, MAX_BACKOFF_EXPONENT))


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig,
    scope: CancelScope | None = None,
    rate_limiter: TokenBucket | None = None,
    operation_name: str = "request",
) -> T:
    """
    Run operation until it succeeds, fails terminally, or attempts run out.

    Every attempt first takes a rate-limit token. Backoff sleeps happen only
    when another attempt remains.

    Raises:
        CancellationError: If the scope terminates while waiting or running
        Exception: The last error from operation
    """
    scope = ensure_scope(scope)
    last_error: Exception | None = None

    for attempt in range(config.max_attempts):
        if rate_limiter is not None:
            await rate_limiter.acquire(scope)
        else:
            scope.check()

        try:
            return await scope.run(operation())
        except CancellationError:
            raise
        except Exception as e:
            last_error = e
            if not is_retryable_error(e) or attempt + 1 >= config.max_attempts:
                _log_retry_failure(operation_name, e, attempt, config)
                raise

            delay = config.get_delay(attempt)
            _log_retry_attempt(operation_name, attempt, config, delay, e)
            await scope.sleep(delay)

    raise RuntimeError(f"Retry loop for {operation_name} ended without result") from last_error


__all__ = [
    "MAX_BACKOFF_EXPONENT",
    "RetryConfig",
    "calculate_backoff",
    "retry_with_backoff",
]
