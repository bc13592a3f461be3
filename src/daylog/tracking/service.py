"""Tracking service wiring the engine to persistence.

This module provides the TrackingService class that owns the duration
store, the session tracker and the live ticker, and that handles all
storage failures at one boundary.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Callable

from daylog.errors import StorageUnavailable
from daylog.tracking.backend import JsonFileBackend, StorageBackend
from daylog.tracking.daykey import TimeLike, day_key_of
from daylog.tracking.report import NO_TIME_LOGGED, build_report
from daylog.tracking.retention import DEFAULT_RETENTION_MONTHS
from daylog.tracking.session import Clock, SessionTracker
from daylog.tracking.store import DurationStore
from daylog.tracking.ticker import ElapsedTicker
from daylog.tracking.types import Report, SessionStatus

logger = logging.getLogger(__name__)


class TrackingService:
    """Service for tracking time and reporting on it.

    The TrackingService handles:
    - Loading and persisting the daily totals and the session state
    - Start/stop transitions of the single session
    - Retention cleanup on startup
    - Reports over a date range
    - The live elapsed ticker

    State-machine and validation errors propagate to the caller. Storage
    errors are logged and leave the in-memory state authoritative until
    a later persist succeeds.

    Example:
        service = TrackingService(MemoryBackend())
        await service.open()
        await service.run_cleanup()
        await service.start()
        ...
        elapsed = await service.stop()
    """

    def __init__(
        self,
        backend: StorageBackend,
        clock: Clock | None = None,
        retention_months: int = DEFAULT_RETENTION_MONTHS,
        no_time_text: str = NO_TIME_LOGGED,
    ) -> None:
        """Initialize the tracking service.

        Args:
            backend: Persistence backend for both blobs.
            clock: Returns the current time in epoch milliseconds.
            retention_months: Calendar months of totals to keep.
            no_time_text: Report text for days without logged time.
        """
        self._backend = backend
        self.store = DurationStore(backend, retention_months=retention_months)
        self.tracker = SessionTracker(self.store, backend, clock=clock)
        self._no_time_text = no_time_text
        self._ticker: ElapsedTicker | None = None

    @classmethod
    def from_settings(cls, settings, clock: Clock | None = None) -> "TrackingService":
        """Create a service backed by the configured JSON file."""
        backend = JsonFileBackend(
            settings.get_storage_path(),
            timeout=settings.storage_timeout_seconds,
            lock_timeout=settings.lock_timeout_seconds,
        )
        return cls(
            backend,
            clock=clock,
            retention_months=settings.retention_months,
            no_time_text=settings.no_time_logged_text,
        )

    @property
    def storage_path(self) -> Path | None:
        """Get the storage file path, if the backend is file based."""
        return getattr(self._backend, "path", None)

    @property
    def status(self) -> SessionStatus:
        return self.tracker.status

    @property
    def is_running(self) -> bool:
        return self.tracker.is_running

    @property
    def has_pending_writes(self) -> bool:
        """Whether some state has not reached the backend yet."""
        return self.store.dirty or self.tracker.dirty

    async def open(self) -> bool:
        """Load persisted state.

        Returns:
            True if both blobs were loaded
        """
        ok = True
        try:
            await self.tracker.load()
        except StorageUnavailable as e:
            logger.error(f"Could not load session state: {e}")
            ok = False
        try:
            await self.store.load()
        except StorageUnavailable as e:
            logger.error(f"Could not load time entries: {e}")
            ok = False
        return ok

    async def _reload_missing(self) -> None:
        """Retry loading blobs that failed to load and have no local changes."""
        if not self.tracker.loaded and not self.tracker.dirty:
            try:
                await self.tracker.load()
            except StorageUnavailable as e:
                logger.warning(f"Session state still unavailable: {e}")
        if not self.store.loaded and not self.store.dirty:
            try:
                await self.store.load()
            except StorageUnavailable as e:
                logger.warning(f"Time entries still unavailable: {e}")

    async def run_cleanup(self, now: TimeLike | None = None) -> bool:
        """Prune expired days and persist if anything changed.

        This is the startup/install hook. It never raises for storage
        failures.

        Args:
            now: Current time (defaults to the service clock)

        Returns:
            True if entries were pruned and persisted
        """
        if now is None:
            now = self.tracker.now()
        if not self.store.prune_expired(now):
            return False
        try:
            await self.store.persist()
        except StorageUnavailable as e:
            logger.error(f"Error cleaning up old data: {e}")
            return False
        return True

    async def flush(self) -> bool:
        """Persist whatever has not been persisted yet.

        Returns:
            True if nothing is pending afterwards
        """
        ok = True
        if self.tracker.dirty and not self.tracker.loaded:
            # Commits a stored session we never saw before entries are written
            try:
                await self.tracker.reconcile()
            except StorageUnavailable as e:
                logger.warning(f"Could not read session state, will retry: {e}")
                ok = False
        if self.store.dirty:
            try:
                await self.store.persist()
            except StorageUnavailable as e:
                logger.warning(f"Could not save time entries, will retry: {e}")
                ok = False
        if self.tracker.dirty and self.tracker.loaded:
            try:
                await self.tracker.save()
            except StorageUnavailable as e:
                logger.warning(f"Could not save session state, will retry: {e}")
                ok = False
        return ok

    async def start(self) -> int:
        """Start a session and persist the new state.

        Returns:
            The start timestamp in epoch milliseconds

        Raises:
            InvalidTransition: If a session is already running.
        """
        await self._reload_missing()
        started_at = self.tracker.start()
        await self.flush()
        return started_at

    async def stop(self) -> int:
        """Stop the running session, commit its time and persist.

        The live ticker, if any, is cancelled first.

        Returns:
            Elapsed milliseconds committed

        Raises:
            InvalidTransition: If no session is running.
        """
        await self._reload_missing()
        elapsed = self.tracker.stop()
        await self.unwatch()
        await self.flush()
        return elapsed

    async def toggle(self) -> SessionStatus:
        """Start when idle, stop when running.

        Returns:
            The status after toggling
        """
        await self._reload_missing()
        if self.tracker.is_running:
            await self.stop()
        else:
            await self.start()
        return self.tracker.status

    def elapsed_so_far(self) -> int:
        return self.tracker.elapsed_so_far()

    def day_total(self, day: TimeLike) -> int:
        """Stored total for a day."""
        return self.store.get(day_key_of(day))

    def today_total(self, now: TimeLike | None = None) -> int:
        """Today's stored total plus the running session's elapsed time."""
        if now is None:
            now = self.tracker.now()
        return self.day_total(now) + self.tracker.elapsed_so_far()

    def report(self, start: date, end: date) -> Report:
        """Build a report over an independent snapshot of the store.

        Raises:
            InvalidRange: If start is after end.
        """
        return build_report(self.store.snapshot(), start, end, no_time_text=self._no_time_text)

    async def watch(self, callback: Callable[[int], None], interval: float = 1.0) -> ElapsedTicker:
        """Start the live elapsed ticker, replacing any previous one."""
        await self.unwatch()
        self._ticker = ElapsedTicker(self.tracker, callback, interval)
        self._ticker.start()
        return self._ticker

    async def unwatch(self) -> None:
        """Stop the live elapsed ticker."""
        ticker, self._ticker = self._ticker, None
        if ticker is not None:
            await ticker.cancel()

    async def close(self) -> bool:
        """Stop the ticker and flush pending writes.

        A running session stays running; it resumes on the next open.
        """
        await self.unwatch()
        return await self.flush()
