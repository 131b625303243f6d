"""Shared concurrency gate for outbound completion calls.

One ConcurrencyLimiter is constructed by the orchestrating pipeline and
injected into every strategy, so the bound applies process-wide across all
categories running at the same time, not per category.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyLimiter:
    """Semaphore-backed gate bounding simultaneous completion calls.

    Args:
        max_concurrent: Maximum number of calls allowed in flight
    """

    def __init__(self, max_concurrent: int):
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        self.max_concurrent = max_concurrent
        # Created inside the loop that uses it; see _get_semaphore()
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        return self._peak_in_flight

    def _get_semaphore(self) -> asyncio.Semaphore:
        """Return the semaphore for the running loop, rebuilding it on a new loop.

        asyncio primitives bind to one event loop, and a long-lived limiter
        outlives each asyncio.run() call made by a sync caller.
        """
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._loop is not loop:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
            self._loop = loop
            self._in_flight = 0
        return self._semaphore

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one slot for the duration of the block.

        Released on success, failure and cancellation alike.
        """
        async with self._get_semaphore():
            self._in_flight += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            try:
                yield
            finally:
                self._in_flight -= 1

    async def run(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Await fn(*args, **kwargs) while holding a slot."""
        async with self.slot():
            return await fn(*args, **kwargs)
