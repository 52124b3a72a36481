"""
Cancellation scope propagated through every blocking operation.

A scope terminates when cancel() is called or when its deadline passes.
Every wait in the client (semaphore, rate limiter, backoff sleep, HTTP call,
token acquisition) goes through a scope so termination is observed promptly.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable
from typing import TypeVar

from usps_client.errors import CancellationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

REASON_CANCELLED = "cancelled"
REASON_DEADLINE = "deadline exceeded"


class CancelScope:
    """
    Terminal signal plus optional deadline.

    Usage:
        scope = CancelScope(timeout=30.0)
        results = await processor.process_addresses(requests, scope)

        # elsewhere
        scope.cancel()
    """

    def __init__(self, timeout: float | None = None):
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def background(cls) -> "CancelScope":
        """Scope that never terminates unless cancelled explicitly."""
        return cls()

    def cancel(self, reason: str = REASON_CANCELLED) -> None:
        if self._reason is None:
            self._reason = reason
            logger.debug("Cancellation scope terminated", extra={"reason": reason})
        self._event.set()

    @property
    def deadline(self) -> float | None:
        return self._deadline

    @property
    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        if self._reason is not None:
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel(REASON_DEADLINE)
            return True
        return False

    @property
    def error(self) -> CancellationError | None:
        if not self.cancelled:
            return None
        return CancellationError(self._reason or REASON_CANCELLED)

    def check(self) -> None:
        """Raise CancellationError if the scope has terminated."""
        if self.cancelled:
            raise CancellationError(self._reason or REASON_CANCELLED)

    async def wait(self) -> None:
        """Block until the scope terminates."""
        while not self.cancelled:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=self.remaining)
            except TimeoutError:
                pass

    async def sleep(self, delay: float) -> None:
        """
        Sleep for delay seconds, returning early only by raising.

        Raises:
            CancellationError: If the scope terminates before delay elapses
        """
        self.check()
        if delay <= 0:
            return

        remaining = self.remaining
        timeout = delay if remaining is None else min(delay, remaining)
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except TimeoutError:
            if remaining is not None and remaining <= delay:
                self.cancel(REASON_DEADLINE)
                self.check()
            return
        self.check()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Race an awaitable against scope termination.

        On termination the inner task is cancelled and CancellationError raised.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.check()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=self.remaining,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.debug(
                "Cancelled operation raised during teardown",
                extra={"error_message": str(e)},
            )

        if not self.cancelled:
            self.cancel(REASON_DEADLINE)
        raise CancellationError(self._reason or REASON_CANCELLED)

    async def acquire(self, primitive: asyncio.Lock | asyncio.Semaphore) -> None:
        """
        Acquire an asyncio Lock or Semaphore unless the scope terminates first.

        If termination wins the race after the primitive was granted, it is
        released again before CancellationError is raised.
        """
        self.check()
        task = asyncio.ensure_future(primitive.acquire())
        try:
            await self.run(task)
        except BaseException:
            if not task.done():
                task.cancel()
            elif not task.cancelled() and task.exception() is None:
                primitive.release()
            raise


def ensure_scope(scope: CancelScope | None) -> CancelScope:
    return scope if scope is not None else CancelScope.background()


__all__ = [
    "CancelScope",
    "REASON_CANCELLED",
    "REASON_DEADLINE",
    "ensure_scope",
]
