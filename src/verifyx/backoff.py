"""
Backoff Executor - retries rate-limited oracle calls with increasing delay
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import ExhaustedRetries, OracleError, RateLimited
from .rate_limiter import RateLimiter
from .settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackoffExecutor:
    """Runs an operation under the rate limiter with bounded retries.

    Delay for failed attempt k (1-indexed) is
    ``min(base_delay * growth_factor ** (k - 1), max_delay)``. Rate-limit
    signals wait for the server hint (or a fixed fallback) and draw on a
    separate allowance, so they do not push the exponential delay up.
    """

    def __init__(self, rate_limiter: RateLimiter, max_attempts: int = 3,
                 base_delay: float = 0.5, max_delay: float = 5.0,
                 growth_factor: float = 1.5, rate_limit_fallback: float = 30.0,
                 max_rate_limit_retries: int = 5, *,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.rate_limiter = rate_limiter
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.growth_factor = growth_factor
        self.rate_limit_fallback = rate_limit_fallback
        self.max_rate_limit_retries = max_rate_limit_retries
        self._sleep = sleep or asyncio.sleep
        self.attempt = 0
        self.rate_limit_retries = 0

    @classmethod
    def from_settings(cls, rate_limiter: RateLimiter, settings: Settings, *,
                      sleep: Optional[Callable[[float], Awaitable[None]]] = None) -> "BackoffExecutor":
        return cls(
            rate_limiter,
            max_attempts=settings.max_attempts,
            base_delay=settings.base_delay,
            max_delay=settings.max_delay,
            growth_factor=settings.growth_factor,
            rate_limit_fallback=settings.rate_limit_fallback_delay,
            max_rate_limit_retries=settings.max_rate_limit_retries,
            sleep=sleep,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after failed attempt ``attempt`` (1-indexed)"""
        return min(self.base_delay * self.growth_factor ** (attempt - 1), self.max_delay)

    def reset(self):
        """Zero the attempt counters"""
        self.attempt = 0
        self.rate_limit_retries = 0

    async def execute_with_retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` until it succeeds or the attempts run out"""
        calls = 0
        last_error: Optional[BaseException] = None

        while self.attempt < self.max_attempts:
            await self.rate_limiter.wait_for_slot()
            calls += 1
            try:
                result = await operation()
            except RateLimited as e:
                last_error = e
                self.rate_limit_retries += 1
                if self.rate_limit_retries > self.max_rate_limit_retries:
                    break
                wait_time = e.retry_after if e.retry_after is not None else self.rate_limit_fallback
                logger.warning(
                    f"Oracle rate limited, retrying in {wait_time:.1f}s "
                    f"({self.rate_limit_retries}/{self.max_rate_limit_retries})"
                )
                await self._sleep(wait_time)
                continue
            except OracleError as e:
                if e.retryable:
                    last_error = e
                else:
                    logger.error(f"Oracle call failed permanently: {e}")
                    self.reset()
                    raise
            except Exception as e:
                last_error = e
            else:
                self.reset()
                return result

            self.attempt += 1
            if self.attempt >= self.max_attempts:
                break

            delay = self.delay_for(self.attempt)
            logger.info(f"Retry {self.attempt}/{self.max_attempts} in {delay:.2f}s: {last_error}")
            await self._sleep(delay)

        logger.error(f"Maximum retries exceeded ({self.max_attempts}): {last_error}")
        self.reset()
        raise ExhaustedRetries(calls, last_error) from last_error
