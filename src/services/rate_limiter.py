"""Sliding-window rate limiter keyed by an identifier (e.g. phone number)."""
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from src.utils.env import get_int_setting

DEFAULT_MAX_REQUESTS = 5
DEFAULT_WINDOW_SECONDS = 60.0


class SlidingWindowRateLimiter:
    """
    Allow at most ``max_requests`` per identifier within ``window_seconds``.

    Timestamps older than the window are dropped on every check, and
    identifiers with no recent requests are evicted entirely, so memory
    stays bounded by recent activity.
    """

    def __init__(self, max_requests: int = DEFAULT_MAX_REQUESTS,
                 window_seconds: float = DEFAULT_WINDOW_SECONDS,
                 clock: Optional[Callable[[], float]] = None):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic
        self._requests: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def allow(self, identifier: str) -> bool:
        """Record a request and report whether it is within the limit."""
        now = self._clock()
        with self._lock:
            self._evict(now)
            recent = self._requests.setdefault(identifier, deque())
            if len(recent) >= self.max_requests:
                return False
            recent.append(now)
            return True

    def remaining(self, identifier: str) -> int:
        now = self._clock()
        with self._lock:
            self._evict(now)
            return self.max_requests - len(self._requests.get(identifier, ()))

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()

    def _evict(self, now: float) -> None:
        cutoff = now - self.window_seconds
        for identifier in list(self._requests):
            recent = self._requests[identifier]
            while recent and recent[0] <= cutoff:
                recent.popleft()
            if not recent:
                del self._requests[identifier]

    def __len__(self) -> int:
        return len(self._requests)


def rate_limiter_from_env() -> SlidingWindowRateLimiter:
    """Build a limiter from TEAMUP_RATE_LIMIT / TEAMUP_RATE_WINDOW."""
    return SlidingWindowRateLimiter(
        max_requests=get_int_setting("TEAMUP_RATE_LIMIT", DEFAULT_MAX_REQUESTS),
        window_seconds=float(get_int_setting("TEAMUP_RATE_WINDOW", int(DEFAULT_WINDOW_SECONDS))),
    )
