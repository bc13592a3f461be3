"""Periodic refresh of the live elapsed-time display."""

import asyncio
import logging
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class ElapsedSource(Protocol):
    """Anything that reports whether a session runs and for how long."""

    @property
    def is_running(self) -> bool: ...

    def elapsed_so_far(self) -> int: ...


class ElapsedTicker:
    """Calls ``callback(elapsed_ms)`` on a fixed cadence while a session runs.

    The ticker only reads the source; it never commits time. The loop
    ends on its own once the source stops running, and ``cancel()``
    stops it immediately.

    Example:
        ticker = ElapsedTicker(tracker, lambda ms: print(format_duration(ms)))
        ticker.start()
        ...
        await ticker.cancel()
    """

    def __init__(
        self,
        source: ElapsedSource,
        callback: Callable[[int], None],
        interval: float = 1.0,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._source = source
        self._callback = callback
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking. Must be called from a running event loop."""
        if self.is_active:
            return
        self._task = asyncio.create_task(self._run_loop())

    def _tick(self) -> None:
        try:
            self._callback(self._source.elapsed_so_far())
        except Exception as e:
            logger.error(f"Elapsed display callback failed: {e}")

    async def _run_loop(self) -> None:
        while self._source.is_running:
            self._tick()
            await asyncio.sleep(self._interval)
        logger.debug("Ticker stopped: session no longer running")

    async def cancel(self) -> None:
        """Cancel the ticker and wait until it has stopped."""
        task = self._task
        self._task = None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
