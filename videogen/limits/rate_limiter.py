"""Per-key fixed-window rate limiter.

Windows are reset lazily the first time a key is seen after its window
has elapsed. Expired windows of keys that never come back are pruned by
admit(), at most once per window. In-memory only; a multi-process
deployment would need a shared store (e.g. Redis INCR with TTL).
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional


@dataclass
class RateWindow:
    started_at: float
    count: int = 0


class RateLimiter:
    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.name = name
        self._clock = clock
        self._windows: Dict[str, RateWindow] = {}
        self._lock = threading.Lock()
        self._last_prune = clock()

    def _current(self, key: str, now: float) -> RateWindow:
        window = self._windows.get(key)
        if window is None or now - window.started_at >= self.window_seconds:
            window = RateWindow(started_at=now)
            self._windows[key] = window
        return window

    def _prune(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now - w.started_at >= self.window_seconds]
        for k in expired:
            del self._windows[k]
        self._last_prune = now

    def admit(self, key: str) -> bool:
        """Count a request for key. Returns False once the window is exhausted."""
        with self._lock:
            now = self._clock()
            if now - self._last_prune >= self.window_seconds:
                self._prune(now)
            window = self._current(key, now)
            if window.count >= self.max_requests:
                return False
            window.count += 1
            return True

    def retry_after(self, key: str) -> int:
        """Whole seconds until key's current window resets."""
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                return 0
            remaining = self.window_seconds - (self._clock() - window.started_at)
        return max(0, math.ceil(remaining))

    def reset(self, key: Optional[str] = None) -> None:
        """Reset state for one key, or for all keys when key is None."""
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
