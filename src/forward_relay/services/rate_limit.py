"""Per-sender sliding-window rate limiting."""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from threading import Lock
from typing import Final

DEFAULT_WINDOW_SECONDS: Final[float] = 60.0
DEFAULT_MAX_REQUESTS: Final[int] = 5


class RateLimiter:
    """Bound admitted requests per sender over a trailing time window.

    State is in-process only and resets on restart. All reads and writes of
    the window map happen under one lock so a check-then-append cannot let
    more than ``max_requests`` through for the same sender.
    """

    def __init__(
        self,
        *,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window = float(window_seconds)
        self._max_requests = int(max_requests)
        self._clock = clock
        self._windows: dict[str, deque[float]] = {}
        self._lock = Lock()

    def admit(self, sender: str) -> bool:
        """Record an admission for ``sender`` and return True if under the limit."""
        key = sender.lower()
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                window = self._windows[key] = deque()
            self._prune(window, now)
            if len(window) >= self._max_requests:
                return False
            window.append(now)
            return True

    def sweep(self) -> int:
        """Prune stale timestamps for every sender; return windows dropped."""
        now = self._clock()
        dropped = 0
        with self._lock:
            for key in list(self._windows):
                window = self._windows[key]
                self._prune(window, now)
                if not window:
                    del self._windows[key]
                    dropped += 1
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _prune(self, window: deque[float], now: float) -> None:
        while window and now - window[0] >= self._window:
            window.popleft()
