# rate_limit.py — In-process sliding-window request limiter
#
# Per-process only: each uvicorn worker keeps its own counters.
import time
from collections import deque
from typing import Deque, Dict, Optional, Tuple


class SlidingWindowRateLimiter:
    def __init__(self, max_requests: int, window_seconds: float):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: Dict[str, Deque[float]] = {}
        self._last_prune: Optional[float] = None

    def hit(self, key: str, now: Optional[float] = None) -> Tuple[bool, int]:
        """Record one request for `key`. Returns (allowed, retry_after_seconds)."""
        now = time.monotonic() if now is None else now
        window_start = now - self.window_seconds

        # idle keys are swept at most once per window
        if self._last_prune is None or now - self._last_prune >= self.window_seconds:
            self.prune(now)

        hits = self._hits.setdefault(key, deque())
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= self.max_requests:
            retry_after = int(hits[0] + self.window_seconds - now) + 1 if hits else int(self.window_seconds)
            return False, max(retry_after, 1)

        hits.append(now)
        return True, 0

    def remaining(self, key: str) -> int:
        return max(self.max_requests - len(self._hits.get(key, ())), 0)

    def tracked_keys(self) -> int:
        return len(self._hits)

    def prune(self, now: Optional[float] = None) -> None:
        """Drop keys whose whole window has expired."""
        now = time.monotonic() if now is None else now
        window_start = now - self.window_seconds
        for key in [k for k, hits in self._hits.items() if not hits or hits[-1] <= window_start]:
            del self._hits[key]
        self._last_prune = now

    def reset(self) -> None:
        self._hits.clear()
        self._last_prune = None
