from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable


@dataclass
class _Window:
    count: int
    reset_at: float


class SlidingWindowLimiter:
    """In-process per-key throttle for chat actions."""

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        cleanup_every: int = 256,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.cleanup_every = cleanup_every
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._checks = 0

    def allow(self, key: str) -> bool:
        self._checks += 1
        if self._checks >= self.cleanup_every:
            self._checks = 0
            self.cleanup()
        now = self._clock()
        window = self._windows.get(key)
        if window is None or now > window.reset_at:
            self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
            return True
        if window.count >= self.max_requests:
            return False
        window.count += 1
        return True

    def cleanup(self) -> int:
        now = self._clock()
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)
