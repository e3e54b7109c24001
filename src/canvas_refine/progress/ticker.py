"""
Fixed-interval periodic loop with an explicit stop condition.

Kept free of progress logic so the loop and the per-tick work can be tested
separately.
"""

import asyncio
from typing import Awaitable, Callable

SleepFunc = Callable[[float], Awaitable[None]]


class PeriodicTicker:
    """
    Calls an async tick function every `interval_s` seconds.

    The loop ends when the tick returns True, when stop() is called, or when
    the tick raises (the exception propagates out of run()). The first tick
    fires one interval after run() starts.
    """

    def __init__(
        self,
        interval_s: float,
        tick: Callable[[], Awaitable[bool]],
        sleep: SleepFunc = asyncio.sleep,
    ):
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self.interval_s = interval_s
        self._tick = tick
        self._sleep = sleep
        self._stopped = False
        self.ticks = 0

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        self._stopped = True

    async def run(self) -> int:
        """Run until stopped; return the number of ticks executed."""
        try:
            while not self._stopped:
                await self._sleep(self.interval_s)
                if self._stopped:
                    break
                self.ticks += 1
                if await self._tick():
                    break
        finally:
            self._stopped = True
        return self.ticks
