"""Time-to-live cache of the last known full application set."""
from __future__ import annotations

import fcntl
import json
import os
import tempfile
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Protocol

from apptrack.log import get_logger
from apptrack.models import Application

log = get_logger(__name__)

CACHE_KEY = "job_tracker_cache"
CACHE_TIMESTAMP_KEY = "job_tracker_cache_timestamp"
DEFAULT_TTL_SECONDS = 5 * 60


class KeyValueStorage(Protocol):
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


class FileStorage:
    """One file per key inside *directory*, survives process restarts."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            _lock(f, exclusive=False)
            try:
                return f.read()
            finally:
                _unlock(f)

    def set(self, key: str, value: str) -> None:
        """Write a sibling temp file and rename it over the key; readers see old or new, never partial."""
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self.directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def _encode(app: Application) -> dict:
    """Wire form with ISO timestamps so datetimes round-trip exactly."""
    d = app.to_dict()
    d["timestamp"] = app.created_at.isoformat()
    if app.updated_at is not None:
        d["updatedAt"] = app.updated_at.isoformat()
    return d


@dataclass
class CacheStatus:
    valid: bool
    captured_at: float | None = None
    age_seconds: float | None = None
    data: list[Application] = field(default_factory=list)


class ApplicationCache:
    """Best-effort snapshot cache; the store stays the source of truth.

    Stale snapshots are kept on disk and visible through ``status()`` but are
    never returned by ``load()``. Storage errors are logged, never raised.
    """

    def __init__(
        self,
        storage: KeyValueStorage | None = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.storage = storage if storage is not None else MemoryStorage()
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()

    def save(self, applications: Iterable[Application]) -> None:
        apps = list(applications)
        try:
            payload = json.dumps([_encode(a) for a in apps])
            with self._lock:
                self.storage.set(CACHE_KEY, payload)
                self.storage.set(CACHE_TIMESTAMP_KEY, repr(self._clock()))
            log.debug("Cache saved: %d applications", len(apps))
        except Exception as exc:
            log.error("Cache save failed: %s", exc)

    def load(self) -> list[Application] | None:
        entry = self._read()
        if entry is None:
            log.debug("Cache empty")
            return None
        captured_at, data = entry
        age = self._clock() - captured_at
        if age >= self.ttl_seconds:
            log.debug("Cache expired (age %.0fs)", age)
            return None
        log.debug("Cache loaded: %d applications (age %.0fs)", len(data), age)
        return data

    def invalidate(self) -> None:
        try:
            with self._lock:
                self.storage.delete(CACHE_KEY)
                self.storage.delete(CACHE_TIMESTAMP_KEY)
            log.debug("Cache invalidated")
        except Exception as exc:
            log.error("Cache invalidate failed: %s", exc)

    def status(self) -> CacheStatus:
        entry = self._read()
        if entry is None:
            return CacheStatus(valid=False)
        captured_at, data = entry
        age = self._clock() - captured_at
        return CacheStatus(valid=age < self.ttl_seconds, captured_at=captured_at, age_seconds=age, data=data)

    def _read(self) -> tuple[float, list[Application]] | None:
        try:
            with self._lock:
                raw = self.storage.get(CACHE_KEY)
                stamp = self.storage.get(CACHE_TIMESTAMP_KEY)
            if raw is None or stamp is None:
                return None
            data = [Application.from_dict(d) for d in json.loads(raw)]
            return float(stamp), data
        except Exception as exc:
            log.error("Cache read failed: %s", exc)
            return None
