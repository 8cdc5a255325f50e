from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable


class Ticker:
    """Fixed-rate timer for an asyncio loop.

    Deadlines are anchored to the first ``wait()``; ticks missed while the
    caller was busy are skipped rather than delivered in a burst.
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if interval <= 0:
            raise ValueError("ticker interval must be positive")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._deadline: float | None = None

    async def wait(self) -> float:
        if self._deadline is None:
            self._deadline = self._clock() + self.interval
        await self._sleep(max(0.0, self._deadline - self._clock()))
        now = self._clock()
        while self._deadline <= now:
            self._deadline += self.interval
        return now
