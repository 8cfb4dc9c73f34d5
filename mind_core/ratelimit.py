"""
RATE_LIMIT
==========

Per-client request limiting for the HTTP and MCP surfaces.

Each client gets a sliding one-minute window of request timestamps.
A limiter built with ``requests_per_minute <= 0`` allows everything.

Usage:
    from mind_core.ratelimit import RateLimiter, client_key

    limiter = RateLimiter(requests_per_minute=120)

    key = client_key(token, request.client.host)
    if not limiter.acquire(key):
        raise RateLimitExceeded(retry_after=limiter.get_retry_after(key))
"""

import time
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .errors import RateLimitExceeded

ANONYMOUS_CLIENT = "anonymous"
WINDOW_SECONDS = 60.0


# ============================================================================
# RATE LIMITER
# ============================================================================

@dataclass
class RateLimitStats:
    """Counters since construction or the last reset()."""
    total_requests: int = 0
    requests_allowed: int = 0
    requests_denied: int = 0

    def to_dict(self) -> Dict:
        return {
            "total_requests": self.total_requests,
            "requests_allowed": self.requests_allowed,
            "requests_denied": self.requests_denied,
            "denial_rate": self.requests_denied / max(1, self.total_requests)
        }


class RateLimiter:
    """Sliding-window limiter keyed by client id."""

    def __init__(self, requests_per_minute: int = 120,
                 clock: Optional[Callable[[], float]] = None):
        """
        Args:
            requests_per_minute: Max requests per client per minute (<= 0 = unlimited)
            clock: Time source in seconds, for tests
        """
        self.requests_per_minute = requests_per_minute
        self._clock = clock or time.monotonic
        self._lock = threading.RLock()
        self._windows: Dict[str, deque] = {}
        self._last_sweep = self._clock()
        self.stats = RateLimitStats()

    @property
    def enabled(self) -> bool:
        return self.requests_per_minute > 0

    @property
    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._windows)

    def acquire(self, client_id: str = ANONYMOUS_CLIENT) -> bool:
        """
        Record a request for ``client_id``.

        Returns:
            True if the request is allowed, False if the client is over its limit
        """
        if not self.enabled:
            return True
        client_id = client_id or ANONYMOUS_CLIENT

        with self._lock:
            now = self._clock()
            self.stats.total_requests += 1
            self._sweep_locked(now)

            window = self._windows.setdefault(client_id, deque())
            self._trim(window, now)

            if len(window) >= self.requests_per_minute:
                self.stats.requests_denied += 1
                return False

            window.append(now)
            self.stats.requests_allowed += 1
            return True

    def check(self, client_id: str = ANONYMOUS_CLIENT) -> None:
        """Like ``acquire`` but raises RateLimitExceeded when denied."""
        if not self.acquire(client_id):
            raise RateLimitExceeded(
                f"rate limit exceeded for {client_id or ANONYMOUS_CLIENT}",
                retry_after=self.get_retry_after(client_id),
            )

    def get_retry_after(self, client_id: str = ANONYMOUS_CLIENT) -> float:
        """Seconds until ``client_id`` may send another request."""
        if not self.enabled:
            return 0.0
        client_id = client_id or ANONYMOUS_CLIENT

        with self._lock:
            window = self._windows.get(client_id)
            if window is None:
                return 0.0
            now = self._clock()
            self._trim(window, now)
            if not window:
                del self._windows[client_id]
                return 0.0
            if len(window) < self.requests_per_minute:
                return 0.0
            return max(0.0, WINDOW_SECONDS - (now - window[0]))

    def reset(self) -> None:
        """Forget every client window and zero the counters."""
        with self._lock:
            self._windows.clear()
            self._last_sweep = self._clock()
            self.stats = RateLimitStats()

    def _sweep_locked(self, now: float) -> None:
        """Drop clients with nothing left in their window, at most once per window."""
        if now - self._last_sweep < WINDOW_SECONDS:
            return
        self._last_sweep = now
        for client_id in list(self._windows):
            window = self._windows[client_id]
            self._trim(window, now)
            if not window:
                del self._windows[client_id]

    @staticmethod
    def _trim(window: deque, now: float) -> None:
        while window and now - window[0] >= WINDOW_SECONDS:
            window.popleft()


def client_key(token: Optional[str] = None, host: Optional[str] = None) -> str:
    """Rate-limit key: the bearer token if present, else the client host."""
    if token:
        return token
    host = (host or "").strip()
    return host or ANONYMOUS_CLIENT
