"""
Fixed-interval background refresh.

Every `interval` seconds the refresh coroutine is launched as a task. If the
previous refresh has not finished yet the tick is skipped, so slow backends
never pile up overlapping requests.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class BackgroundRefresher:
    """Runs a refresh coroutine on a fixed interval."""

    def __init__(self, refresh: Callable[[], Awaitable[None]], interval: float = 30):
        self.refresh = refresh
        self.interval = interval

        self._running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._refresh_task: Optional[asyncio.Task] = None

        self.ticks = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def start(self) -> None:
        """Start the refresh loop."""
        if self._running:
            logger.warning("Refresher already started")
            return

        self._running = True
        self._loop_task = asyncio.create_task(self._loop())
        logger.info(f"Background refresh started, every {self.interval} seconds")

    async def stop(self) -> None:
        """Stop the loop and cancel any refresh still in flight."""
        self._running = False
        for task in (self._loop_task, self._refresh_task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._loop_task = None
        self._refresh_task = None
        logger.info("Background refresh stopped")

    def tick(self) -> bool:
        """Launch one refresh unless one is still running.

        Returns:
            True if a refresh was launched
        """
        self.ticks += 1
        if self.in_flight:
            self.skipped += 1
            logger.debug("Previous refresh still in flight, skipping tick")
            return False
        self._refresh_task = asyncio.create_task(self._run_refresh())
        return True

    async def _run_refresh(self) -> None:
        try:
            await self.refresh()
        except Exception as e:
            logger.error(f"Error in background refresh: {e}")

    async def _loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval)
            if self._running:
                self.tick()
