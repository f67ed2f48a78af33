from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

from loguru import logger


class RateLimiter:
    """Fixed-window request counter, local to one backend instance.

    `acquire()` is awaited before each dispatch and suspends the caller when
    the window's budget is spent; `record()` is called once a dispatch has
    gone through.
    """

    def __init__(
        self,
        requests_per_minute: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if requests_per_minute < 1:
            raise ValueError("requests_per_minute must be >= 1")
        self.limit = int(requests_per_minute)
        self.window_seconds = float(window_seconds)
        self._clock = clock
        self._sleep = sleep
        self.count = 0
        self.window_start = clock()

    def _reset(self) -> None:
        self.count = 0
        self.window_start = self._clock()

    async def acquire(self) -> None:
        elapsed = self._clock() - self.window_start
        if elapsed >= self.window_seconds:
            self._reset()
            return
        if self.count >= self.limit:
            wait = self.window_seconds - elapsed
            logger.warning(f"rate_limit_wait | limit={self.limit} wait={wait:.1f}s")
            await self._sleep(wait)
            self._reset()

    def record(self) -> None:
        self.count += 1
