"""
Best-effort, process-local request throttling for the admin surface.

Not a correctness mechanism: counters live in memory and vanish with the
process. Multiple instances each keep their own windows.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from sawtooth.core.exceptions import RateLimitExceeded

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    started_at: float
    count: int


class FixedWindowRateLimiter:
    """
    Fixed-window counter keyed by client identity.

    Safe to share across threads: sync dependencies run in the threadpool,
    so every read or write of the window table happens under ``_lock``.
    """

    def __init__(
        self,
        limit: int = 120,
        window_seconds: float = 60.0,
        max_keys: int = 5000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> int:
        """
        Count one request for ``key``.

        Returns the request count inside the current window.

        Raises:
            RateLimitExceeded: once the count passes ``limit``
        """
        key = key or "unknown"

        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or (now - window.started_at) > self.window_seconds:
                window = _Window(started_at=now, count=1)
                self._windows[key] = window
            else:
                window.count += 1
            count = window.count

            if len(self._windows) > self.max_keys:
                self._evict_locked(now)

        if count > self.limit:
            logger.warning("Rate limit exceeded for %s (%d requests)", key, count)
            raise RateLimitExceeded()
        return count

    def evict_expired(self, now: float = None) -> int:
        """Drop windows that started before the current window."""
        with self._lock:
            return self._evict_locked(self._clock() if now is None else now)

    def _evict_locked(self, now: float) -> int:
        cutoff = now - self.window_seconds
        expired = [k for k, w in self._windows.items() if w.started_at < cutoff]
        for k in expired:
            del self._windows[k]
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
