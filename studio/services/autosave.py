"""
Editor auto-save timers.

Two independent triggers call the same save coroutine: a debounce timer
restarted on every change, and a periodic interval. Both may save the same
chapter; the store keeps the last write.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

SaveCallback = Callable[[], Awaitable[None]]


class AutoSaver:
    """Debounced plus periodic save scheduling on the running event loop."""

    def __init__(
        self,
        save: SaveCallback,
        debounce: float = 3.0,
        interval: float = 30.0,
    ):
        self._save = save
        self.debounce = debounce
        self.interval = interval
        self._timer: Optional[asyncio.TimerHandle] = None
        self._interval_task: Optional[asyncio.Task] = None
        self._running: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """True while a debounced save is waiting to fire."""
        return self._timer is not None

    @property
    def interval_running(self) -> bool:
        return self._interval_task is not None and not self._interval_task.done()

    def schedule(self) -> None:
        """Restart the debounce timer; the save runs ``debounce`` seconds after the last call."""
        self.cancel_pending()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce, self._fire)

    def cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._run("debounce"))
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _run(self, trigger: str) -> None:
        try:
            await self._save()
        except Exception:
            logger.exception("Auto-save (%s) failed", trigger)

    def start_interval(self) -> None:
        if self.interval_running:
            return
        self._interval_task = asyncio.get_running_loop().create_task(self._tick())

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self._run("interval")

    def stop_interval(self) -> None:
        if self._interval_task is not None:
            self._interval_task.cancel()
            self._interval_task = None

    def stop(self) -> None:
        """Cancel both triggers. Saves already running are left to finish."""
        self.cancel_pending()
        self.stop_interval()

    async def wait_idle(self) -> None:
        """Wait for saves that have already started."""
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)
