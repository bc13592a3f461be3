"""Session state machine.

A single session is either idle or running. Stopping a running session
commits its elapsed time to the duration store under the day the
session started on. Sessions crossing midnight are not split.
"""

import logging
from typing import Callable

from pydantic import ValidationError

from daylog.errors import InvalidTransition
from daylog.tracking.backend import StorageBackend
from daylog.tracking.daykey import day_key_of, now_ms
from daylog.tracking.store import DurationStore
from daylog.tracking.types import STATE_KEY, SessionState, SessionStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


class SessionTracker:
    """Idle/running state machine with an injected clock.

    Example:
        tracker = SessionTracker(store, backend)
        await tracker.load()
        tracker.start()
        ...
        elapsed = tracker.stop()
        await tracker.save()
    """

    def __init__(
        self,
        store: DurationStore,
        backend: StorageBackend,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            store: Store that receives elapsed time on stop.
            backend: Backend holding the persisted session state.
            clock: Returns the current time in epoch milliseconds.
        """
        self._store = store
        self._backend = backend
        self._clock = clock or now_ms
        self._state = SessionState()
        self._dirty = False
        self._loaded = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def started_at(self) -> int | None:
        return self._state.started_at

    @property
    def loaded(self) -> bool:
        """Whether the stored state has been read."""
        return self._loaded

    @property
    def dirty(self) -> bool:
        """Whether the in-memory state has not been persisted yet."""
        return self._dirty

    def now(self) -> int:
        return self._clock()

    def start(self) -> int:
        """Start a session.

        Returns:
            The start timestamp in epoch milliseconds

        Raises:
            InvalidTransition: If a session is already running.
        """
        if self.is_running:
            raise InvalidTransition("start", self.status.value)

        started_at = self._clock()
        self._state = SessionState(status=SessionStatus.RUNNING, started_at=started_at)
        self._dirty = True
        logger.info(f"Session started on {day_key_of(started_at)}")
        return started_at

    def stop(self) -> int:
        """Stop the running session and commit its time.

        The whole elapsed time goes to the day containing the start
        timestamp. Expired days are pruned from the store afterwards.

        Returns:
            Elapsed milliseconds committed to the store

        Raises:
            InvalidTransition: If no session is running.
        """
        if not self.is_running:
            raise InvalidTransition("stop", self.status.value)

        now = self._clock()
        started_at = self._state.started_at
        elapsed = max(0, now - started_at)

        self._store.accumulate(day_key_of(started_at), elapsed)
        self._store.prune_expired(now)

        self._state = SessionState()
        self._dirty = True
        logger.info(f"Session stopped after {elapsed}ms")
        return elapsed

    def elapsed_so_far(self) -> int:
        """Milliseconds elapsed in the running session, 0 when idle."""
        if not self.is_running:
            return 0
        return max(0, self._clock() - self._state.started_at)

    async def load(self) -> SessionState:
        """Restore the persisted session state.

        A session left running by an earlier process resumes counting
        from its original start. Malformed state is logged and replaced
        by an idle state.

        Raises:
            StorageUnavailable: If the backend cannot be read.
        """
        stored = await self._read_stored()
        self._loaded = True
        if stored is None:
            self._state = SessionState()
            self._dirty = True
            return self._state

        self._state = stored
        self._dirty = False
        if self.is_running:
            logger.info(f"Resuming session started on {day_key_of(self.started_at)}")
        return self._state

    async def _read_stored(self) -> SessionState | None:
        """Read the stored state. None means it was malformed."""
        blob = await self._backend.get(STATE_KEY)
        if blob is None:
            return SessionState()
        try:
            return SessionState.model_validate(blob)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed session state {blob!r}: {e}")
            return None

    async def reconcile(self) -> None:
        """Read the stored state before it is first overwritten.

        Used when the state could not be loaded at startup. A stored
        running session that is not the in-memory one is stopped now and
        its time committed to the store, so it is never silently lost.

        Raises:
            StorageUnavailable: If the backend cannot be read.
        """
        stored = await self._read_stored()
        self._loaded = True
        if stored is None or not stored.is_running or stored == self._state:
            return

        now = self._clock()
        elapsed = max(0, now - stored.started_at)
        self._store.accumulate(day_key_of(stored.started_at), elapsed)
        self._dirty = True
        logger.warning(
            f"Stopped stored session from {day_key_of(stored.started_at)} "
            f"({elapsed}ms) that could not be loaded earlier"
        )

    async def save(self) -> None:
        """Persist the session state.

        If the stored state was never loaded it is reconciled first.

        Raises:
            StorageUnavailable: If the backend rejects the read or the write.
        """
        if not self._loaded:
            await self.reconcile()
        await self._backend.set(STATE_KEY, self._state.to_blob())
        self._dirty = False
        logger.debug(f"Persisted session state: {self.status.value}")
