"""
Automatic Week Closing

Polls the ledger on a fixed interval and lets it decide whether the
configured close moment has arrived. The ledger's own checks make a repeat
tick in the same hour a no-op, so the interval only bounds how late a close
can be, not how often it happens.
"""

import asyncio
import inspect
from typing import Any, Callable, Optional

import structlog

from weekly_ledger.audit import create_correlation_id
from weekly_ledger.ledger import WeekLedger


class AutoCloseScheduler:
    """
    Periodic driver for `WeekLedger.check_and_auto_close_week`.

    Args:
        ledger: Ledger to check
        interval_seconds: Pause between ticks
        on_close: Called (or awaited) after a tick that closed a week,
            so a UI can refresh
    """

    def __init__(
        self,
        ledger: WeekLedger,
        interval_seconds: float = 60.0,
        on_close: Optional[Callable[[], Any]] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._ledger = ledger
        self._interval = interval_seconds
        self._on_close = on_close
        self._ticking = False
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._logger = structlog.get_logger(__name__)

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> bool:
        """
        Run one check. Returns True if a week was closed.

        A tick that starts while another is still in progress does nothing.
        """
        if self._ticking:
            self._logger.debug("auto_close_tick_skipped")
            return False

        self._ticking = True
        try:
            closed = await self._ledger.check_and_auto_close_week(
                correlation_id=create_correlation_id()
            )
        finally:
            self._ticking = False

        if closed:
            self._logger.info("week_auto_closed")
            if self._on_close is not None:
                result = self._on_close()
                if inspect.isawaitable(result):
                    await result
        return closed

    async def run(self, stop_event: asyncio.Event) -> None:
        """Tick until stop_event is set. A failing tick is logged, not fatal."""
        while not stop_event.is_set():
            try:
                await self.tick()
            except Exception as e:
                self._logger.error("auto_close_tick_failed", error=str(e))
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass

    def start(self) -> asyncio.Task:
        """Start ticking in the background of the running event loop."""
        if self.is_running:
            return self._task
        self._stop_event = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self.run(self._stop_event)
        )
        return self._task

    async def stop(self) -> None:
        """Stop ticking and wait for the current tick to finish."""
        if self._task is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        self._stop_event = None
