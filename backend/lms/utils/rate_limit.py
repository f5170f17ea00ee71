"""In-memory throttle for failed login attempts."""

from __future__ import annotations

import threading
import time
from collections import deque


class LoginAttemptLimiter:
    """Sliding-window counter of failed logins per key.

    A key is blocked once it collects `max_failures` failures inside
    `window_seconds`; a successful login clears it. Keys whose failures
    have all expired are dropped.
    """

    def __init__(self, max_failures: int, window_seconds: int):
        self.max_failures = max_failures
        self.window_seconds = window_seconds
        self._failures: dict[str, deque] = {}
        self._lock = threading.Lock()

    def _prune(self, key: str, now: float) -> deque | None:
        q = self._failures.get(key)
        if q is None:
            return None
        cutoff = now - self.window_seconds
        while q and q[0] < cutoff:
            q.popleft()
        if not q:
            del self._failures[key]
            return None
        return q

    def retry_after(self, key: str) -> int:
        """Seconds until `key` may try again, 0 if not blocked."""
        now = time.monotonic()
        with self._lock:
            q = self._prune(key, now)
            if q is None or len(q) < self.max_failures:
                return 0
            return max(1, int(self.window_seconds - (now - q[0])))

    def record_failure(self, key: str) -> None:
        now = time.monotonic()
        with self._lock:
            q = self._prune(key, now)
            if q is None:
                q = self._failures[key] = deque()
            q.append(now)

    def reset(self, key: str) -> None:
        with self._lock:
            self._failures.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._failures.clear()
