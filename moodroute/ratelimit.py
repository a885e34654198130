from __future__ import annotations

import time
from typing import Callable, Dict, Tuple


class RateLimiter:
    """Fixed-window request counter keyed by client address.

    Stale windows (older than two window lengths) are swept on each hit, so
    no background timer is needed. Pass ``clock`` to control time in tests.
    """

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep = clock()

    def hit(self, key: str) -> bool:
        """Count one request for ``key``; False once the window is exhausted."""
        now = self._clock()
        self._sweep(now)

        window = self._windows.get(key)
        if window is None or now - window[0] > self.window_seconds:
            self._windows[key] = (now, 1)
            return True

        started, count = window
        if count >= self.max_requests:
            return False
        self._windows[key] = (started, count + 1)
        return True

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        expiry = self.window_seconds * 2
        for key in [k for k, (started, _) in self._windows.items() if now - started > expiry]:
            del self._windows[key]

    def __len__(self) -> int:
        return len(self._windows)
