"""Persistence backends for tracking data.

The engine stores two named blobs (the daily totals and the session
state) through a small async key-value interface. ``JsonFileBackend``
keeps all blobs in one JSON file guarded by a file lock, so a CLI
invocation and a background cleanup never interleave their writes.
"""

import asyncio
import copy
import json
import logging
from pathlib import Path
from typing import Any, Protocol

from filelock import FileLock, Timeout

from daylog.errors import StorageUnavailable

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Async key-value store holding whole JSON-compatible blobs."""

    async def get(self, key: str) -> Any | None:
        """Return the blob stored under ``key``, or None if absent."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous blob."""
        ...


class MemoryBackend:
    """In-process backend. Values are deep-copied in and out."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def dump(self) -> dict[str, Any]:
        """Return a copy of everything stored."""
        return copy.deepcopy(self._data)


class JsonFileBackend:
    """JSON file backend with file locking.

    Example:
        backend = JsonFileBackend("~/.daylog/daylog.json")
        await backend.set("timeEntries", {"2026-10-19": 3600000})
        entries = await backend.get("timeEntries")
    """

    def __init__(
        self,
        path: str | Path,
        timeout: float = 5.0,
        lock_timeout: float = 5.0,
    ) -> None:
        """Initialize the backend.

        Args:
            path: Path to the JSON data file.
            timeout: Seconds a single get/set may take before failing.
            lock_timeout: Seconds to wait for the file lock.
        """
        self._path = Path(path).expanduser()
        self._lock = FileLock(str(self._path.with_suffix(".lock")), timeout=lock_timeout)
        self._timeout = timeout

    @property
    def path(self) -> Path:
        """Get the data file path."""
        return self._path

    def _read_all(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        content = self._path.read_text(encoding="utf-8")
        if not content.strip():
            return {}
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object in {self._path}")
        return data

    def _write_all(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self._path)

    def _get_sync(self, key: str) -> Any | None:
        with self._lock:
            return self._read_all().get(key)

    def _set_sync(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)
            logger.debug(f"Saved '{key}' to {self._path}")

    async def _run(self, func, *args) -> Any:
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), self._timeout)
        except Timeout as e:
            raise StorageUnavailable(f"Could not acquire lock for {self._path}") from e
        except asyncio.TimeoutError as e:
            raise StorageUnavailable(f"Storage operation timed out after {self._timeout}s") from e
        except (OSError, ValueError, TypeError) as e:
            # json.JSONDecodeError is a ValueError; TypeError covers unserializable values
            raise StorageUnavailable(f"Storage error for {self._path}: {e}") from e

    async def get(self, key: str) -> Any | None:
        return await self._run(self._get_sync, key)

    async def set(self, key: str, value: Any) -> None:
        await self._run(self._set_sync, key, value)
