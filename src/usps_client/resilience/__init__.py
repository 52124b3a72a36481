"""Rate limiting and retry utilities for the bulk executor."""

from usps_client.resilience.rate_limiter import RateLimiterConfig, TokenBucket
from usps_client.resilience.retry import (
    MAX_BACKOFF_EXPONENT,
    RetryConfig,
    calculate_backoff,
    retry_with_backoff,
)

__all__ = [
    "MAX_BACKOFF_EXPONENT",
    "RateLimiterConfig",
    "RetryConfig",
    "TokenBucket",
    "calculate_backoff",
    "retry_with_backoff",
]
