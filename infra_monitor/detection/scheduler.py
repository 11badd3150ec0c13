"""
Periodic driver for monitoring cycles.

This module provides the MonitoringScheduler class, the single loop that
runs one monitoring cycle per tick.

Key Features:
    - Cycles never overlap; a slow cycle delays the next tick
    - A failing cycle is logged and the next tick is still scheduled
    - start() is idempotent; stop() lets the in-flight cycle finish

Example:
    >>> scheduler = MonitoringScheduler(engine.run_cycle, interval_seconds=60)
    >>> await scheduler.start()
    >>> ...
    >>> await scheduler.stop()
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


CycleFn = Callable[[], Awaitable[Any]]


class MonitoringScheduler:
    """
    Runs a cycle coroutine at a fixed interval.

    The wait between ticks is the interval minus the time the cycle took,
    floored at zero, so ticks stay aligned while cycles are fast and run
    back to back when they are slow.

    Attributes:
        interval_seconds: Tick interval.
        run_immediately: Whether the first cycle runs on start rather than
            after one interval.
    """

    def __init__(
        self,
        cycle: CycleFn,
        interval_seconds: float,
        run_immediately: bool = False,
    ) -> None:
        self._cycle = cycle
        self.interval_seconds = interval_seconds
        self.run_immediately = run_immediately
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self.cycles_run = 0

    @property
    def is_running(self) -> bool:
        """Check if the loop task is alive."""
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the loop. Logs a warning and returns if already running."""
        if self.is_running:
            logger.warning("scheduler_already_running")
            return

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())

        logger.info(
            "scheduler_started",
            interval_seconds=self.interval_seconds,
            run_immediately=self.run_immediately,
        )

    async def stop(self) -> None:
        """Signal the loop to stop and wait for the in-flight cycle."""
        if self._task is None:
            return

        self._stop_event.set()
        await self._task
        self._task = None

        logger.info("scheduler_stopped", cycles_run=self.cycles_run)

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()

        if not self.run_immediately and await self._wait(self.interval_seconds):
            return

        while not self._stop_event.is_set():
            started = loop.time()

            try:
                await self._cycle()
            except Exception as e:
                logger.error(
                    "monitoring_cycle_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
            self.cycles_run += 1

            elapsed = loop.time() - started
            if elapsed > self.interval_seconds:
                logger.warning(
                    "monitoring_cycle_overran",
                    elapsed_seconds=round(elapsed, 3),
                    interval_seconds=self.interval_seconds,
                )

            if await self._wait(max(0.0, self.interval_seconds - elapsed)):
                return

    async def _wait(self, timeout: float) -> bool:
        """Wait up to `timeout` seconds; True if stop was requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True
