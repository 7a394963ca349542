"""System-wide bound on simultaneous pipeline executions."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from royale.engine.errors import ThrottleTimeoutError

logger = logging.getLogger(__name__)


class PipelineThrottle:
    """Admits at most ``capacity`` pipelines at once; others wait in FIFO order.

    ``acquire_timeout_seconds`` of None waits without limit.
    """

    def __init__(self, capacity: int, acquire_timeout_seconds: Optional[float] = None):
        if capacity < 1:
            raise ValueError("Throttle capacity must be at least 1")
        self.capacity = capacity
        self.acquire_timeout_seconds = acquire_timeout_seconds
        self._semaphore = asyncio.Semaphore(capacity)
        self._active = 0
        self._waiting = 0

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one pipeline slot for the duration of the block."""
        self._waiting += 1
        try:
            if self.acquire_timeout_seconds is None:
                await self._semaphore.acquire()
            else:
                await self._acquire_within(self.acquire_timeout_seconds)
        finally:
            self._waiting -= 1

        self._active += 1
        logger.debug(f"Pipeline slot acquired ({self._active}/{self.capacity} active, {self._waiting} waiting)")
        try:
            yield
        finally:
            self._active -= 1
            self._semaphore.release()

    async def _acquire_within(self, timeout_seconds: float) -> None:
        """Acquire a permit or raise ThrottleTimeoutError.

        The acquisition runs as its own task so a permit granted at the same
        moment the wait times out (or the caller is cancelled) is handed back
        instead of leaking.
        """
        acquire = asyncio.ensure_future(self._semaphore.acquire())
        try:
            await asyncio.wait_for(asyncio.shield(acquire), timeout_seconds)
        except asyncio.TimeoutError:
            self._abandon(acquire)
            raise ThrottleTimeoutError(
                f"No pipeline slot available after {timeout_seconds} seconds"
            ) from None
        except asyncio.CancelledError:
            self._abandon(acquire)
            raise

    def _abandon(self, acquire: asyncio.Future) -> None:
        acquire.cancel()
        acquire.add_done_callback(self._return_permit)

    def _return_permit(self, acquire: asyncio.Future) -> None:
        if not acquire.cancelled() and acquire.exception() is None:
            logger.debug("Returning a permit granted after its waiter gave up")
            self._semaphore.release()

    @property
    def active(self) -> int:
        """Pipelines currently holding a slot."""
        return self._active

    @property
    def waiting(self) -> int:
        """Pipelines queued for a slot."""
        return self._waiting
