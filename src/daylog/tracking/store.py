"""Date-bucketed duration store.

Holds accumulated milliseconds per day key in memory and reads/writes
the whole mapping as one blob through a storage backend.
"""

import logging
import math
from typing import Any

from daylog.errors import InvalidDuration
from daylog.tracking.backend import StorageBackend
from daylog.tracking.daykey import TimeLike, date_from_day_key, is_canonical
from daylog.tracking.retention import DEFAULT_RETENTION_MONTHS, is_expired
from daylog.tracking.types import ENTRIES_KEY

logger = logging.getLogger(__name__)


class DurationStore:
    """Mapping of day key to accumulated milliseconds.

    Absent keys read as zero. Values only grow through ``accumulate`` and
    only shrink through ``prune_expired`` or ``reset``.

    Example:
        store = DurationStore(backend)
        await store.load()
        store.accumulate("2026-10-19", 90_000)
        await store.persist()
    """

    def __init__(
        self,
        backend: StorageBackend,
        retention_months: int = DEFAULT_RETENTION_MONTHS,
    ) -> None:
        self._backend = backend
        self._retention_months = retention_months
        self._entries: dict[str, int] = {}
        self._dirty = False
        self._loaded = False

    @property
    def loaded(self) -> bool:
        """Whether the stored entries have been read into memory."""
        return self._loaded

    @property
    def dirty(self) -> bool:
        """Whether in-memory entries have not been persisted yet."""
        return self._dirty

    @property
    def retention_months(self) -> int:
        return self._retention_months

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, day_key: object) -> bool:
        return day_key in self._entries

    def get(self, day_key: str) -> int:
        """Get the logged milliseconds for a day (0 if absent)."""
        return self._entries.get(day_key, 0)

    def accumulate(self, day_key: str, milliseconds: int | float) -> int:
        """Add milliseconds to a day, creating the entry if needed.

        Args:
            day_key: Day to add time to
            milliseconds: Non-negative, finite duration

        Returns:
            The new total for the day

        Raises:
            InvalidDuration: If the duration is negative, non-finite or not a number.
        """
        if isinstance(milliseconds, bool) or not isinstance(milliseconds, (int, float)):
            raise InvalidDuration(f"Duration must be a number, got {milliseconds!r}")
        if not math.isfinite(milliseconds) or milliseconds < 0:
            raise InvalidDuration(f"Duration must be finite and non-negative, got {milliseconds!r}")

        total = self._entries.get(day_key, 0) + int(milliseconds)
        self._entries[day_key] = total
        self._dirty = True
        logger.debug(f"Accumulated {int(milliseconds)}ms on {day_key} (total {total}ms)")
        return total

    def prune_expired(self, now: TimeLike) -> bool:
        """Remove entries older than the retention window.

        Args:
            now: Current time

        Returns:
            True if any entry was removed
        """
        expired = [
            key for key in self._entries
            if is_expired(key, now, self._retention_months)
        ]
        for key in expired:
            del self._entries[key]

        if expired:
            self._dirty = True
            logger.info(f"Pruned {len(expired)} expired day(s)")
        return bool(expired)

    def snapshot(self) -> dict[str, int]:
        """Return an independent copy of all entries."""
        return dict(self._entries)

    def reset(self, day_key: str | None = None) -> bool:
        """Clear one day, or every day when ``day_key`` is None.

        Returns:
            True if anything was removed
        """
        if day_key is None:
            removed = bool(self._entries)
            self._entries.clear()
        else:
            removed = self._entries.pop(day_key, None) is not None

        if removed:
            self._dirty = True
            logger.info(f"Reset {'all days' if day_key is None else day_key}")
        return removed

    def replace(self, blob: Any) -> None:
        """Replace in-memory entries with a stored blob.

        Legacy (``toDateString``) keys are converted to ISO keys and their
        values merged. Malformed values are dropped.
        """
        entries: dict[str, int] = {}
        migrated = False

        if blob is None:
            blob = {}
        if not isinstance(blob, dict):
            logger.warning(f"Ignoring malformed '{ENTRIES_KEY}' blob of type {type(blob).__name__}")
            blob = {}
            migrated = True

        for key, value in blob.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)) \
                    or not math.isfinite(value) or value < 0:
                logger.warning(f"Dropping malformed entry {key!r}: {value!r}")
                migrated = True
                continue

            if is_canonical(key):
                day_key = key
            else:
                try:
                    day_key = date_from_day_key(key).isoformat()
                except ValueError:
                    logger.warning(f"Dropping entry with unknown day key {key!r}")
                    migrated = True
                    continue
                migrated = True

            entries[day_key] = entries.get(day_key, 0) + int(value)

        self._entries = entries
        self._dirty = migrated
        if migrated:
            logger.info(f"Normalized stored entries ({len(entries)} days)")

    async def load(self) -> None:
        """Load entries from the backend.

        Raises:
            StorageUnavailable: If the backend cannot be read.
        """
        blob = await self._backend.get(ENTRIES_KEY)
        self.replace(blob)
        self._loaded = True
        logger.debug(f"Loaded {len(self._entries)} day(s)")

    async def persist(self) -> None:
        """Write all entries to the backend.

        If the stored entries were never loaded, they are read first and
        the in-memory totals are added on top, so history is never
        overwritten by a partial mapping.

        Raises:
            StorageUnavailable: If the backend rejects the read or the write.
        """
        if not self._loaded:
            await self._merge_stored()
        await self._backend.set(ENTRIES_KEY, self.snapshot())
        self._dirty = False
        logger.debug(f"Persisted {len(self._entries)} day(s)")

    async def _merge_stored(self) -> None:
        pending = self._entries
        blob = await self._backend.get(ENTRIES_KEY)
        self.replace(blob)
        self._loaded = True
        for day_key, milliseconds in pending.items():
            self._entries[day_key] = self._entries.get(day_key, 0) + milliseconds
        self._dirty = True
        logger.info(f"Merged {len(pending)} unsaved day(s) into stored entries")
