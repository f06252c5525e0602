"""
Start-spacing rate limiter for outbound fetches.
Callers are serviced one at a time in arrival order.
"""

import asyncio
import functools
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tour_crawler.logging_config import get_logger

logger = get_logger("crawler.rate_limiter")

T = TypeVar("T")


class RateLimiter:
    """
    Enforces a minimum spacing between the starts of consecutive calls.

    Waiting callers queue on an ``asyncio.Lock`` (FIFO), so every call is
    serviced exactly once and no pending call is superseded by a newer one.
    One instance belongs to one crawl.
    """

    def __init__(self, wait: float = 1.0):
        """
        Args:
            wait: Minimum seconds between two call starts
        """
        self.wait = max(0.0, wait)
        self._last_start: Optional[float] = None
        self._pending = 0
        self._lock = asyncio.Lock()

    @property
    def pending(self) -> int:
        """Number of callers waiting for their slot."""
        return self._pending

    async def acquire(self) -> float:
        """
        Wait for the next start slot.

        Returns:
            Seconds spent waiting
        """
        self._pending += 1
        try:
            async with self._lock:
                waited = 0.0
                if self._last_start is not None:
                    remaining = self._last_start + self.wait - time.monotonic()
                    # Timers may fire a hair early, so re-check until due
                    while remaining > 0:
                        await asyncio.sleep(remaining)
                        waited += remaining
                        remaining = self._last_start + self.wait - time.monotonic()
                if waited:
                    logger.debug(f"Throttled for {waited:.3f}s")
                self._last_start = time.monotonic()
                return waited
        finally:
            self._pending -= 1

    async def run(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Acquire a slot, then await ``func(*args, **kwargs)``."""
        await self.acquire()
        return await func(*args, **kwargs)

    def wrap(self, func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        """Return a throttled version of a coroutine function."""
        @functools.wraps(func)
        async def throttled(*args: Any, **kwargs: Any) -> T:
            return await self.run(func, *args, **kwargs)

        return throttled
