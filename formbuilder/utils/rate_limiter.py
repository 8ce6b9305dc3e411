import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int


class RateLimiter:
    """
    Fixed-window request counter keyed by client id.

    A window opens on the first request and lasts ``window_seconds``. The
    counter lives in process memory and every read-modify-write happens
    under one lock. Expired windows are swept at most once per window length.
    """

    def __init__(self, max_requests: int, window_seconds: int, clock: Callable[[], float] = time.time):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._lock = threading.Lock()
        self._windows: Dict[str, Dict[str, int]] = {}
        self._last_sweep = 0

    def hit(self, client_id: str) -> RateLimitResult:
        now = int(self.clock())

        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)

            stats = self._windows.get(client_id)

            if stats is None or now >= stats["window_start"] + self.window_seconds:
                stats = {"count": 1, "window_start": now}
                self._windows[client_id] = stats
                allowed = True
            elif stats["count"] >= self.max_requests:
                allowed = False
            else:
                stats["count"] += 1
                allowed = True

            return RateLimitResult(
                allowed=allowed,
                limit=self.max_requests,
                remaining=max(0, self.max_requests - stats["count"]),
                reset_at=stats["window_start"] + self.window_seconds,
            )

    def _sweep(self, now: int) -> None:
        expired = [
            key for key, stats in self._windows.items()
            if now >= stats["window_start"] + self.window_seconds
        ]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._windows)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
