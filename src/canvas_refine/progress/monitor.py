"""
Time-based progress monitor.

The remote image edit reports no progress of its own, so the percentage shown
to the user is an estimate: elapsed time over a nominal duration, held at 99%
until completion is actually observed. Completion is learnt by polling a
predicate on a fixed tick, independently of how the generation task paces
its own retries and sleeps.
"""

import asyncio
import inspect
import math
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

import structlog

from canvas_refine.config import Settings
from canvas_refine.progress.ticker import PeriodicTicker, SleepFunc

logger = structlog.get_logger(__name__)

Predicate = Callable[[], Union[bool, Awaitable[bool]]]
CompleteCallback = Callable[[], Union[None, Awaitable[None]]]
ProgressCallback = Callable[[int], None]

MAX_ESTIMATED_PERCENT = 99


@dataclass(frozen=True)
class ProgressState:
    """Snapshot of the monitor after a tick."""

    elapsed_ms: int = 0
    percent: int = 0
    completion_observed: bool = False


def estimate_percent(elapsed_ms: float, estimated_total_ms: float) -> int:
    """floor(elapsed / total * 100), clamped to 0..99."""
    if estimated_total_ms <= 0:
        return MAX_ESTIMATED_PERCENT
    raw = math.floor(elapsed_ms / estimated_total_ms * 100)
    return max(0, min(MAX_ESTIMATED_PERCENT, raw))


async def _resolve(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class ProgressMonitor:
    """
    Polls a completion predicate on a fixed tick and estimates progress.

    Each tick:
    1. Estimate percent from elapsed time (never lower than the last value,
       never above 99 before completion)
    2. Call the predicate; an exception stops the monitor and propagates
    3. On True: percent becomes 100, on_complete runs exactly once, ticking stops
    4. Report the percent to on_progress

    The monitor never decides success or failure itself; it only observes.
    Clock and sleep are injectable so tests can drive a virtual clock.
    """

    def __init__(
        self,
        tick_interval_ms: int = 150,
        estimated_duration_ms: int = 90000,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFunc = asyncio.sleep,
    ):
        if tick_interval_ms <= 0:
            raise ValueError("tick_interval_ms must be > 0")
        self.tick_interval_ms = tick_interval_ms
        self.estimated_duration_ms = estimated_duration_ms
        self._clock = clock
        self._sleep = sleep
        self._started_at: Optional[float] = None
        self._state = ProgressState()
        self._ticker: Optional[PeriodicTicker] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFunc = asyncio.sleep,
    ) -> "ProgressMonitor":
        return cls(
            tick_interval_ms=settings.PROGRESS_TICK_MS,
            estimated_duration_ms=settings.ESTIMATED_DURATION_MS,
            clock=clock,
            sleep=sleep,
        )

    @property
    def state(self) -> ProgressState:
        return self._state

    def start(self) -> None:
        """Reset the estimate and start the elapsed-time clock."""
        self._started_at = self._clock()
        self._state = ProgressState()

    def stop(self) -> None:
        """Stop a running watch() after the current tick."""
        if self._ticker is not None:
            self._ticker.stop()

    async def tick(
        self,
        predicate: Predicate,
        on_complete: Optional[CompleteCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> bool:
        """
        Run one monitor tick.

        Returns:
            True when completion was observed (now or on an earlier tick)

        Raises:
            Whatever the predicate raises; the state is left at its last estimate.
        """
        if self._state.completion_observed:
            return True
        if self._started_at is None:
            self.start()

        elapsed_ms = int((self._clock() - self._started_at) * 1000)
        percent = max(
            self._state.percent,
            estimate_percent(elapsed_ms, self.estimated_duration_ms),
        )
        self._state = ProgressState(elapsed_ms=elapsed_ms, percent=percent)

        done = bool(await _resolve(predicate()))
        if done:
            self._state = ProgressState(
                elapsed_ms=elapsed_ms, percent=100, completion_observed=True
            )

        if on_progress is not None:
            on_progress(self._state.percent)

        if done:
            logger.debug("Completion observed", elapsed_ms=elapsed_ms)
            if on_complete is not None:
                await _resolve(on_complete())
        return done

    async def watch(
        self,
        predicate: Predicate,
        on_complete: CompleteCallback,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ProgressState:
        """
        Tick until the predicate reports completion or raises.

        Args:
            predicate: Completion query (sync or async)
            on_complete: Called once when completion is observed
            on_progress: Receives the percent after every tick

        Returns:
            Final ProgressState

        Raises:
            The predicate's exception; on_complete is not called in that case.
        """
        self.start()
        self._ticker = PeriodicTicker(
            self.tick_interval_ms / 1000.0,
            lambda: self.tick(predicate, on_complete, on_progress),
            sleep=self._sleep,
        )
        try:
            ticks = await self._ticker.run()
        except Exception as e:
            logger.warning(
                "Progress watch stopped by error",
                error_type=type(e).__name__,
                percent=self._state.percent,
                elapsed_ms=self._state.elapsed_ms,
            )
            raise
        logger.debug(
            "Progress watch finished",
            ticks=ticks,
            percent=self._state.percent,
            completion_observed=self._state.completion_observed,
        )
        return self._state
