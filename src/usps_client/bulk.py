"""
Bulk execution of address queries.

Runs many requests concurrently under a semaphore, paces them with a shared
token bucket, retries transient failures with exponential backoff, and
returns one result per input in input order. A failing input never fails the
batch: its error is recorded on its result.

Usage:
    processor = BulkProcessor(client, BulkConfig(max_concurrency=5))
    results = await processor.process_addresses(requests)
    for result in results:
        if result.error:
            ...
"""

import asyncio
import logging
import threading
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from usps_client.cancellation import CancelScope, ensure_scope
from usps_client.client import USPSClient
from usps_client.errors import CancellationError
from usps_client.logging.context import LogContext
from usps_client.models import (
    AddressRequest,
    AddressResponse,
    CityStateRequest,
    CityStateResponse,
    ZIPCodeRequest,
    ZIPCodeResponse,
)
from usps_client.resilience.rate_limiter import RateLimiterConfig, TokenBucket
from usps_client.resilience.retry import RetryConfig, retry_with_backoff

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT")
ResponseT = TypeVar("ResponseT")

# (completed, total, error) where error is None on success
ProgressCallback = Callable[[int, int, Exception | None], None]

DEFAULT_MAX_CONCURRENCY = 10
DEFAULT_REQUESTS_PER_SECOND = 10
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BACKOFF = 1.0


@dataclass
class BulkConfig:
    """
    Bulk execution settings.

    Attributes:
        max_concurrency: Maximum requests in flight
        requests_per_second: Rate limit, also the burst capacity
        max_retries: Retries after the first attempt
        retry_backoff: Base backoff delay in seconds
        progress_callback: Called once per input after its work completes
    """

    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    requests_per_second: int = DEFAULT_REQUESTS_PER_SECOND
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_backoff: float = DEFAULT_RETRY_BACKOFF
    progress_callback: ProgressCallback | None = None

    def __post_init__(self):
        if self.max_concurrency <= 0:
            raise ValueError(f"max_concurrency must be positive, got {self.max_concurrency}")
        if self.requests_per_second <= 0:
            raise ValueError(
                f"requests_per_second must be positive, got {self.requests_per_second}"
            )
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_backoff <= 0:
            raise ValueError(f"retry_backoff must be positive, got {self.retry_backoff}")


@dataclass
class BulkResult(Generic[RequestT, ResponseT]):
    """Outcome for input `index`. Exactly one of response and error is set."""

    index: int
    request: RequestT
    response: ResponseT | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _Progress:
    """Monotone completion counter shared by the workers of one batch."""

    def __init__(self, total: int, callback: ProgressCallback | None, operation: str):
        self.total = total
        self._callback = callback
        self._operation = operation
        self._completed = 0
        self._lock = threading.Lock()

    def report(self, error: Exception | None) -> None:
        with self._lock:
            self._completed += 1
            completed = self._completed
        if self._callback is None:
            return
        try:
            self._callback(completed, self.total, error)
        except Exception as cb_err:
            logger.warning(
                "Error in progress callback for %s: %s",
                self._operation,
                str(cb_err)[:100],
                extra={"operation": self._operation, "callback_error": str(cb_err)[:100]},
            )


class BulkProcessor:
    """
    Executes batches of requests against a USPSClient.

    The token bucket is owned by the processor, so consecutive batches share
    one rate limit. Concurrency is bounded per batch.
    """

    def __init__(self, client: USPSClient, config: BulkConfig | None = None):
        self.client = client
        self.config = config or BulkConfig()
        self.retry_config = RetryConfig(
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_backoff,
        )
        self.rate_limiter = TokenBucket(
            config=RateLimiterConfig(
                requests_per_second=self.config.requests_per_second,
                name="usps_bulk",
            )
        )

    async def process_addresses(
        self, requests: Sequence[AddressRequest], scope: CancelScope | None = None
    ) -> list[BulkResult[AddressRequest, AddressResponse]]:
        """Standardize many addresses."""
        return await self.process(requests, self.client.get_address, scope, "address")

    async def process_city_states(
        self, requests: Sequence[CityStateRequest], scope: CancelScope | None = None
    ) -> list[BulkResult[CityStateRequest, CityStateResponse]]:
        """Look up city/state for many ZIP Codes."""
        return await self.process(requests, self.client.get_city_state, scope, "city_state")

    async def process_zip_codes(
        self, requests: Sequence[ZIPCodeRequest], scope: CancelScope | None = None
    ) -> list[BulkResult[ZIPCodeRequest, ZIPCodeResponse]]:
        """Look up ZIP Codes for many addresses."""
        return await self.process(requests, self.client.get_zip_code, scope, "zip_code")

    async def process(
        self,
        requests: Sequence[RequestT],
        operation: Callable[[RequestT, CancelScope], Awaitable[ResponseT]],
        scope: CancelScope | None = None,
        operation_name: str = "request",
    ) -> list[BulkResult[RequestT, ResponseT]]:
        """
        Run operation for every request and return results in input order.

        Args:
            requests: Inputs; result i corresponds to requests[i]
            operation: Per-request call, given the request and the scope
            scope: Cancellation scope for the whole batch
            operation_name: Label for logs

        Returns:
            One BulkResult per input
        """
        scope = ensure_scope(scope)
        total = len(requests)
        if total == 0:
            return []

        batch_id = uuid.uuid4().hex
        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        progress = _Progress(total, self.config.progress_callback, operation_name)

        logger.info(
            "Bulk processing started",
            extra={
                "operation": operation_name,
                "total_requests": total,
                "max_concurrency": self.config.max_concurrency,
                "requests_per_second": self.config.requests_per_second,
                "max_retries": self.config.max_retries,
            },
        )

        async def run_one(index: int, request: RequestT) -> BulkResult[RequestT, ResponseT]:
            result: BulkResult[RequestT, ResponseT] = BulkResult(index=index, request=request)
            with LogContext(batch_id=batch_id, operation=operation_name, request_index=index):
                try:
                    await scope.acquire(semaphore)
                except CancellationError as e:
                    result.error = e
                    progress.report(e)
                    return result

                try:
                    result.response = await retry_with_backoff(
                        lambda: operation(request, scope),
                        self.retry_config,
                        scope,
                        self.rate_limiter,
                        operation_name,
                    )
                except Exception as e:
                    result.error = e
                finally:
                    semaphore.release()

                progress.report(result.error)
            return result

        results = list(await asyncio.gather(*(run_one(i, r) for i, r in enumerate(requests))))

        failed = sum(1 for r in results if r.error is not None)
        logger.info(
            "Bulk processing complete",
            extra={
                "operation": operation_name,
                "total_requests": total,
                "succeeded": total - failed,
                "failed": failed,
            },
        )
        return results


__all__ = [
    "BulkConfig",
    "BulkProcessor",
    "BulkResult",
    "DEFAULT_MAX_CONCURRENCY",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_REQUESTS_PER_SECOND",
    "DEFAULT_RETRY_BACKOFF",
    "ProgressCallback",
]
