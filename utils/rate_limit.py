from __future__ import annotations

import math
import threading
import time
from typing import Callable, Dict, NamedTuple, Tuple


class RateLimitResult(NamedTuple):
    allowed: bool
    remaining: int
    retry_after: int


class FixedWindowLimiter:
    """Thread-safe in-memory fixed-window counter.

    For a single process. Several workers each keep their own counts.
    Windows that have run out are dropped on the first hit after the
    oldest one expires, so the map only holds keys seen in the last window.
    """

    def __init__(self, window_seconds: float, now: Callable[[], float] = time.monotonic):
        self.window_seconds = float(window_seconds)
        self._now = now
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._next_sweep = float("inf")
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._windows)

    def hit(self, key: str, limit: int) -> RateLimitResult:
        now = self._now()
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            if count >= limit:
                retry_after = max(1, math.ceil(started + self.window_seconds - now))
                return RateLimitResult(False, 0, retry_after)
            count += 1
            self._windows[key] = (started, count)
            self._next_sweep = min(self._next_sweep, started + self.window_seconds)
            return RateLimitResult(True, limit - count, 0)

    def _sweep(self, now: float):
        # caller holds the lock
        self._windows = {
            key: (started, count)
            for key, (started, count) in self._windows.items()
            if now - started < self.window_seconds
        }
        if self._windows:
            self._next_sweep = min(started for started, _ in self._windows.values()) + self.window_seconds
        else:
            self._next_sweep = float("inf")
