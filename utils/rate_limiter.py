"""
Fixed-window rate limiter over the shared key-value store.

Time is cut into non-overlapping windows of window_ms. Each window has its
own counter at "{key_prefix}:{window_start}" that expires with the window.
check() only reads; record() increments. Around a window boundary up to
2 x max_requests calls can pass (end of window n plus start of n+1); this is
the accepted cost of a fixed window.

If the store is unreachable the limiter fails open.
"""

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from storage.kv_store import KeyValueStore
from utils.logger import get_logger

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_ms: int
    key_prefix: str = "rate_limit"
    max_retries: int = 3

    def __post_init__(self):
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: int  # epoch ms when the current window ends
    total_hits: int
    _retry: Callable[[], Awaitable[bool]]

    async def retry(self) -> bool:
        """
        Wait for the window to reset and re-check.

        Returns:
            True if a later window admits the request, False if still
            disallowed after max_retries re-checks
        """
        return await self._retry()


class RateLimiter:
    """
    Fixed-window limiter shared by every request in the deployment.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], int] = _now_ms,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the limiter.

        Args:
            store: Shared key-value store holding window counters
            clock: Returns current time in epoch milliseconds
            sleep: Async sleep in seconds (injectable for tests)
        """
        self.store = store
        self._clock = clock
        self._sleep = sleep

    @staticmethod
    def window_start(now_ms: int, window_ms: int) -> int:
        return (now_ms // window_ms) * window_ms

    def _key(self, config: RateLimitConfig, now_ms: int) -> tuple[str, int]:
        start = self.window_start(now_ms, config.window_ms)
        return f"{config.key_prefix}:{start}", start

    async def _read(self, config: RateLimitConfig) -> tuple[bool, int, int, int]:
        """Return (allowed, remaining, reset_time, count); fails open."""
        now = self._clock()
        key, start = self._key(config, now)
        reset_time = start + config.window_ms
        try:
            raw = await self.store.get(key)
            count = int(raw) if raw else 0
        except Exception as e:
            logger.error(
                "Rate limit check failed; allowing request",
                extra={
                    "extra_fields": {
                        "key_prefix": config.key_prefix,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                },
            )
            return True, config.max_requests - 1, reset_time, 0
        allowed = count < config.max_requests
        return allowed, max(0, config.max_requests - count), reset_time, count

    async def check(self, config: RateLimitConfig) -> RateLimitResult:
        """
        Check whether a request is allowed in the current window.

        Does not increment the counter.
        """
        allowed, remaining, reset_time, count = await self._read(config)

        async def retry() -> bool:
            return await self._wait_for_slot(config, allowed, reset_time)

        return RateLimitResult(
            allowed=allowed,
            remaining=remaining,
            reset_time=reset_time,
            total_hits=count,
            _retry=retry,
        )

    async def _wait_for_slot(self, config: RateLimitConfig, allowed: bool, reset_time: int) -> bool:
        if allowed:
            return True

        for attempt in range(1, config.max_retries + 1):
            wait_ms = reset_time - self._clock()
            if wait_ms > 0:
                await self._sleep(wait_ms / 1000)

            allowed, _, reset_time, count = await self._read(config)
            if allowed:
                return True

            logger.info(
                "Rate limit still exhausted after wait",
                extra={
                    "extra_fields": {
                        "key_prefix": config.key_prefix,
                        "attempt": attempt,
                        "max_retries": config.max_retries,
                        "total_hits": count,
                    }
                },
            )

        return False

    async def record(self, config: RateLimitConfig) -> None:
        """
        Count one request against the current window.

        Increment and expiry are a single atomic store operation.
        """
        key, _ = self._key(config, self._clock())
        try:
            await self.store.incr_with_expiry(key, math.ceil(config.window_ms / 1000))
        except Exception as e:
            logger.error(
                "Rate limit recording failed",
                extra={
                    "extra_fields": {
                        "key_prefix": config.key_prefix,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                },
            )

    async def acquire(self, config: RateLimitConfig) -> bool:
        """
        Check, wait if needed, and record one request.

        Returns:
            True if the request was admitted and recorded, False otherwise
        """
        result = await self.check(config)
        if not result.allowed and not await result.retry():
            return False
        await self.record(config)
        return True
