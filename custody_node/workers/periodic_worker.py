"""
periodic_worker.py — Cooperative Periodic Loop
=================================================
Base class for workers that repeat a unit of work forever.

The loop sleeps for the current interval, runs `periodic_work`,
logs anything it raises and carries on. A stop request is honoured
at cycle boundaries only: a cycle that has started always runs to
completion before `after_work_loop` is called.
"""

import asyncio
import logging
from typing import Optional

from custody_node.core.models import EngineState

logger = logging.getLogger(__name__)


class PeriodicWorker:
    """Runs `periodic_work` every `interval` seconds until stopped."""

    def __init__(self, interval: float):
        self.state = EngineState(interval=interval)
        self._stop_requested: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def interval(self) -> float:
        return self.state.interval

    @property
    def running(self) -> bool:
        return self.state.running

    def current_interval(self) -> float:
        """Interval for the next sleep; read again before every cycle."""
        return self.state.interval

    async def before_work_loop(self) -> None:
        """Hook run once before the first cycle."""

    async def after_work_loop(self) -> None:
        """Hook run once after the last cycle."""

    async def periodic_work(self) -> None:
        raise NotImplementedError

    async def start(self) -> asyncio.Task:
        """
        Run the setup hook and launch the loop in the background.

        Calling `start` on a running worker does nothing.

        Returns:
            The task running the loop; it completes after `stop`.
        """
        if self.state.running:
            return self._task

        self.state.running = True
        self._stop_requested = asyncio.Event()
        try:
            await self.before_work_loop()
        except BaseException:
            self.state.running = False
            raise
        self._task = asyncio.create_task(self._work_loop())
        return self._task

    async def stop(self) -> None:
        """
        Request the loop to stop and wait until it has.

        The cycle in progress, if any, is allowed to finish, then
        `after_work_loop` runs before this coroutine returns.
        """
        if self._task is None:
            return
        self._stop_requested.set()
        await asyncio.shield(self._task)

    async def _sleep(self, seconds: float) -> bool:
        """Sleep for `seconds`; returns True if woken by a stop request."""
        try:
            await asyncio.wait_for(self._stop_requested.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _work_loop(self) -> None:
        try:
            while not self._stop_requested.is_set():
                if await self._sleep(self.current_interval()):
                    break
                try:
                    await self.periodic_work()
                except Exception:
                    logger.exception("Periodic work failed")
        finally:
            self.state.running = False
            try:
                await self.after_work_loop()
            except Exception:
                logger.exception("Worker teardown failed")
