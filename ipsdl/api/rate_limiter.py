"""
Provides a randomized delay between page fetches and downloads, to avoid
hammering the board and looking like a bot.
"""

import asyncio
import logging
import random
from typing import Optional

from ipsdl.exceptions import InvalidArgumentError

log = logging.getLogger(__name__)


class RateLimiter:
    """
    Waits a uniformly random number of milliseconds inside a `[min, max]` window.
    """

    def __init__(self, min_delay_ms: int = 500, max_delay_ms: int = 2000):
        """
        Initializes the rate limiter.

        Args:
            min_delay_ms: The default lower bound of the delay window.
            max_delay_ms: The default upper bound of the delay window.
        """
        self._check_window(min_delay_ms, max_delay_ms)
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max_delay_ms

    @staticmethod
    def _check_window(min_ms: int, max_ms: int) -> None:
        if min_ms < 0 or max_ms < 0:
            raise InvalidArgumentError("Delays cannot be negative.")
        if min_ms > max_ms:
            raise InvalidArgumentError(
                f"Minimum delay ({min_ms} ms) exceeds maximum delay ({max_ms} ms)."
            )

    def choose(
        self, min_delay_ms: Optional[int] = None, max_delay_ms: Optional[int] = None
    ) -> int:
        """Picks a delay in milliseconds, both bounds inclusive."""
        low = self.min_delay_ms if min_delay_ms is None else min_delay_ms
        high = self.max_delay_ms if max_delay_ms is None else max_delay_ms
        self._check_window(low, high)
        return random.randint(low, high)

    async def wait(self, delay_ms: int) -> None:
        """Suspends for exactly `delay_ms` milliseconds."""
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

    async def delay(
        self, min_delay_ms: Optional[int] = None, max_delay_ms: Optional[int] = None
    ) -> int:
        """
        Waits a random delay inside the window and returns the chosen milliseconds.
        """
        delay_ms = self.choose(min_delay_ms, max_delay_ms)
        log.debug(f"Waiting {delay_ms}ms...")
        await self.wait(delay_ms)
        return delay_ms
