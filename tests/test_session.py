"""Tests for the session state machine."""

import pytest

from daylog.errors import InvalidTransition
from daylog.tracking import DurationStore, MemoryBackend, SessionState, SessionStatus, SessionTracker
from daylog.tracking.types import STATE_KEY


@pytest.fixture
def store(backend) -> DurationStore:
    return DurationStore(backend)


@pytest.fixture
def tracker(store, backend, clock) -> SessionTracker:
    return SessionTracker(store, backend, clock=clock)


def _tracker(backend, clock) -> SessionTracker:
    return SessionTracker(DurationStore(backend), backend, clock=clock)


class TestTransitions:
    """Start/stop transitions."""

    def test_initially_idle(self, tracker):
        """A new tracker is idle with no start time."""
        assert tracker.status == SessionStatus.IDLE
        assert tracker.started_at is None

    def test_start_records_start_time(self, tracker, clock):
        """start() returns and records the clock's current time."""
        started = tracker.start()

        assert started == clock.now
        assert tracker.is_running
        assert tracker.started_at == clock.now

    def test_stop_commits_elapsed_to_start_day(self, tracker, store, clock):
        """start(); stop() after T ms commits exactly T to the start day."""
        tracker.start()
        clock.advance(5_400_000)

        assert tracker.stop() == 5_400_000
        assert store.get("2026-10-19") == 5_400_000
        assert tracker.status == SessionStatus.IDLE
        assert tracker.started_at is None

    def test_session_across_midnight_is_not_split(self, tracker, store, clock):
        """All time goes to the day the session started on."""
        clock.set(2026, 10, 19, 23, 30)
        tracker.start()
        clock.set(2026, 10, 20, 1, 0)

        elapsed = tracker.stop()

        assert elapsed == 90 * 60_000
        assert store.get("2026-10-19") == elapsed
        assert "2026-10-20" not in store

    def test_sessions_accumulate(self, tracker, store, clock):
        """Consecutive sessions on one day add up."""
        for _ in range(3):
            tracker.start()
            clock.advance(60_000)
            tracker.stop()
        assert store.get("2026-10-19") == 180_000

    def test_start_while_running_rejected(self, tracker, clock):
        """A second start keeps the original start time."""
        tracker.start()
        started = tracker.started_at
        clock.advance(1000)

        with pytest.raises(InvalidTransition):
            tracker.start()

        assert tracker.started_at == started

    def test_stop_while_idle_rejected(self, tracker, store):
        """Stopping an idle tracker raises and commits nothing."""
        with pytest.raises(InvalidTransition) as exc_info:
            tracker.stop()
        assert exc_info.value.action == "stop"
        assert len(store) == 0

    def test_clock_skew_clamped_to_zero(self, tracker, store, clock):
        """A clock that went backwards commits zero, not a negative value."""
        tracker.start()
        clock.advance(-10_000)

        assert tracker.stop() == 0
        assert store.get("2026-10-19") == 0

    def test_stop_prunes_expired_days(self, tracker, store, clock):
        """Stopping drops days outside the retention window."""
        store.accumulate("2026-01-01", 1000)
        tracker.start()
        clock.advance(1000)
        tracker.stop()
        assert "2026-01-01" not in store
        assert "2026-10-19" in store


class TestElapsedSoFar:
    """Tests for elapsed_so_far()."""

    def test_zero_when_idle(self, tracker):
        """Idle trackers report no elapsed time."""
        assert tracker.elapsed_so_far() == 0

    def test_tracks_clock_while_running(self, tracker, clock):
        """Elapsed time follows the clock."""
        tracker.start()
        clock.advance(2500)
        assert tracker.elapsed_so_far() == 2500
        clock.advance(500)
        assert tracker.elapsed_so_far() == 3000

    def test_has_no_side_effects(self, tracker, store, clock):
        """Reading elapsed time never commits anything."""
        tracker.start()
        clock.advance(1000)
        for _ in range(5):
            tracker.elapsed_so_far()
        assert len(store) == 0
        assert tracker.is_running

    def test_never_negative(self, tracker, clock):
        tracker.start()
        clock.advance(-1)
        assert tracker.elapsed_so_far() == 0


class TestSessionPersistence:
    """Tests for load() and save()."""

    @pytest.mark.asyncio
    async def test_running_session_resumes_after_restart(self, tracker, backend, clock):
        """A saved running session keeps counting from its original start."""
        tracker.start()
        started = tracker.started_at
        await tracker.save()

        clock.advance(60_000)
        restarted = _tracker(backend, clock)
        await restarted.load()

        assert restarted.is_running
        assert restarted.started_at == started
        assert restarted.elapsed_so_far() == 60_000

    @pytest.mark.asyncio
    async def test_blob_shape(self, tracker, backend, clock):
        """The stored blob is {status, startedAt} and omits startedAt when idle."""
        tracker.start()
        await tracker.save()
        assert backend.dump()[STATE_KEY] == {"status": "running", "startedAt": clock.now}

        tracker.stop()
        await tracker.save()
        assert backend.dump()[STATE_KEY] == {"status": "idle"}

    @pytest.mark.asyncio
    async def test_missing_state_is_idle(self, tracker):
        """No stored state loads as a clean idle state."""
        state = await tracker.load()
        assert state == SessionState()
        assert tracker.loaded
        assert not tracker.dirty

    @pytest.mark.asyncio
    async def test_legacy_state_shape(self, clock):
        """The older {isTracking, startTime} shape is still understood."""
        backend = MemoryBackend({STATE_KEY: {"isTracking": True, "startTime": 1234}})
        tracker = _tracker(backend, clock)
        await tracker.load()
        assert tracker.is_running
        assert tracker.started_at == 1234

    @pytest.mark.asyncio
    async def test_malformed_state_falls_back_to_idle(self, clock):
        """A running state without a start time is replaced by idle."""
        backend = MemoryBackend({STATE_KEY: {"status": "running"}})
        tracker = _tracker(backend, clock)
        await tracker.load()
        assert tracker.status == SessionStatus.IDLE
        assert tracker.dirty

    @pytest.mark.asyncio
    async def test_out_of_range_start_falls_back_to_idle(self, clock):
        """A start time no date can represent is treated as malformed."""
        backend = MemoryBackend({STATE_KEY: {"status": "running", "startedAt": 10**18}})
        tracker = _tracker(backend, clock)

        await tracker.load()

        assert tracker.status == SessionStatus.IDLE
        assert tracker.started_at is None
        assert tracker.dirty
        assert tracker.elapsed_so_far() == 0


class TestReconcile:
    """Saving a state that was never loaded."""

    @pytest.mark.asyncio
    async def test_save_commits_unseen_stored_session(self, store, clock):
        """A stored running session is stopped and committed before being overwritten."""
        stored_start = clock.now
        backend = MemoryBackend({STATE_KEY: {"status": "running", "startedAt": stored_start}})
        tracker = SessionTracker(store, backend, clock=clock)
        clock.advance(600_000)
        tracker.start()

        await tracker.save()

        assert tracker.loaded
        assert store.get("2026-10-19") == 600_000
        assert backend.dump()[STATE_KEY] == {"status": "running", "startedAt": clock.now}

    @pytest.mark.asyncio
    async def test_reconcile_ignores_idle_stored_state(self, tracker, store, backend, clock):
        """An idle stored state has nothing to commit."""
        await backend.set(STATE_KEY, {"status": "idle"})
        tracker.start()

        await tracker.reconcile()

        assert tracker.loaded
        assert len(store) == 0
        assert tracker.is_running

    @pytest.mark.asyncio
    async def test_reconcile_ignores_own_session(self, tracker, store, backend, clock):
        """The stored copy of the in-memory session is not committed twice."""
        tracker.start()
        await backend.set(STATE_KEY, tracker.state.to_blob())
        clock.advance(60_000)

        await tracker.reconcile()

        assert len(store) == 0
        assert tracker.elapsed_so_far() == 60_000


class TestSessionState:
    """Tests for the SessionState model."""

    def test_running_requires_started_at(self):
        """A running state must carry a start time."""
        with pytest.raises(ValueError):
            SessionState(status=SessionStatus.RUNNING)

    def test_idle_forbids_started_at(self):
        """An idle state must not carry a start time."""
        with pytest.raises(ValueError):
            SessionState(status=SessionStatus.IDLE, started_at=5)

    def test_accepts_alias(self):
        """startedAt is accepted as the field alias."""
        state = SessionState.model_validate({"status": "running", "startedAt": 10})
        assert state.started_at == 10

    def test_rejects_unrepresentable_start(self):
        """A start time outside the date range fails validation."""
        with pytest.raises(ValueError):
            SessionState.model_validate({"status": "running", "startedAt": 10**18})
