"""
Rate Limiter - fixed-window quota protecting the oracle
"""

import asyncio
import logging
import math
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window request quota shared by every caller of one oracle.

    The window is reset lazily: each ``wait_for_slot`` call checks whether
    the reset instant has passed, so no background timer is kept alive.
    """

    def __init__(self, limit: int = 20, window: float = 60.0, *,
                 clock: Optional[Callable[[], float]] = None,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None):
        if limit <= 0:
            raise ValueError("limit must be greater than zero")
        if window <= 0:
            raise ValueError("window must be greater than zero")
        self.limit = limit
        self.window = window
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._lock = asyncio.Lock()
        self.count = 0
        self.reset_at = self._clock() + window
        self.total_waits = 0

    def _reset_window(self, now: float):
        self.count = 0
        self.reset_at = now + self.window

    async def wait_for_slot(self):
        """Suspend until a slot is free in the current window, then take it"""
        while True:
            async with self._lock:
                now = self._clock()
                if now >= self.reset_at:
                    self._reset_window(now)

                if self.count < self.limit:
                    self.count += 1
                    logger.debug(f"Rate limiter: {self.count}/{self.limit} requests used")
                    return

                wait_time = self.reset_at - now
                self.total_waits += 1

            logger.info(f"Rate limit reached, waiting {math.ceil(wait_time)}s for the next window")
            await self._sleep(wait_time)

    def get_status(self) -> Dict[str, Any]:
        """Read-only snapshot of the current window"""
        resets_in = self.reset_at - self._clock()
        # A stale window counts as empty even before the next caller resets it
        count = self.count if resets_in > 0 else 0
        resets_in = max(0.0, resets_in)
        return {
            "current_count": count,
            "limit": self.limit,
            "window_seconds": self.window,
            "reset_time": datetime.now(timezone.utc) + timedelta(seconds=resets_in),
            "resets_in": resets_in,
            "remaining_requests": max(0, self.limit - count),
            "total_waits": self.total_waits,
        }
