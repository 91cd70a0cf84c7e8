"""Sliding-window rate limiter for mutation operations."""
from __future__ import annotations

import threading
import time
from typing import Callable

from apptrack.log import get_logger

log = get_logger(__name__)


class RateLimiter:
    """Admit at most ``max_requests`` calls per key within ``window_seconds``.

    Each key keeps the timestamps of its admitted calls. Timestamps that have
    left the trailing window are dropped before counting, so a key becomes
    available again as soon as its oldest admission expires. Keys never share
    a budget.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        """Drop keys whose newest admission has left the window."""
        expired = [k for k, stamps in self._requests.items()
                   if not stamps or now - stamps[-1] >= self.window_seconds]
        for k in expired:
            del self._requests[k]

    def is_allowed(self, key: str = "default") -> bool:
        now = self._clock()
        with self._lock:
            self._prune(now)
            recent = [t for t in self._requests.get(key, []) if now - t < self.window_seconds]
            if len(recent) >= self.max_requests:
                self._requests[key] = recent
                log.debug("Rate limited: %s (%d in %.2fs)", key, len(recent), self.window_seconds)
                return False
            recent.append(now)
            self._requests[key] = recent
            return True

    def remaining(self, key: str = "default") -> int:
        now = self._clock()
        with self._lock:
            self._prune(now)
            recent = [t for t in self._requests.get(key, []) if now - t < self.window_seconds]
        return max(0, self.max_requests - len(recent))

    def tracked_keys(self) -> int:
        """Number of keys with admissions still inside the window."""
        now = self._clock()
        with self._lock:
            self._prune(now)
            return len(self._requests)

    def reset(self, key: str | None = None) -> None:
        """Forget one key's history, or every key's when *key* is None."""
        with self._lock:
            if key is None:
                self._requests.clear()
            else:
                self._requests.pop(key, None)
