"""Per-client request rate limiting.

Two strategies share one interface:

- FixedWindowRateLimiter: counts requests in fixed windows starting at the
  client's first request. Cheap, but a client can burst up to twice the
  limit across a window boundary.
- SlidingWindowRateLimiter: keeps a log of request times and counts those
  inside the trailing window. Stricter, costs one timestamp per request.
"""

import logging
import math
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from note_analysis.config import settings

logger = logging.getLogger(__name__)

# Idle client state is purged at most this often
CLEANUP_INTERVAL_MS = 5 * 60 * 1000


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate-limit check.

    Attributes:
        allowed: Whether the request may proceed
        remaining: Requests left in the current window
        reset_in: Whole seconds until the window frees up
        limit: The limit that was applied
    """

    allowed: bool
    remaining: int
    reset_in: int
    limit: int


@dataclass
class _WindowState:
    window_start: float
    count: int
    window_ms: int


class FixedWindowRateLimiter:
    """Fixed-window counter per client id.

    Within a window ``count`` never exceeds ``limit``: a rejected request
    does not increment the counter. Once ``window_ms`` has elapsed since
    ``window_start`` the next request starts a fresh window.
    """

    def __init__(
        self,
        limit: int | None = None,
        window_ms: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Default requests per window. Defaults to settings.
            window_ms: Default window length in milliseconds. Defaults to settings.
            clock: Returns the current time in seconds.
        """
        self._limit = limit or settings.rate_limit_max_requests
        self._window_ms = window_ms or settings.rate_limit_window_ms
        self._clock = clock
        self._state: dict[str, _WindowState] = {}
        self._lock = threading.Lock()
        self._last_cleanup = self._now_ms()

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def check(
        self,
        client_id: str,
        limit: int | None = None,
        window_ms: int | None = None,
    ) -> RateLimitResult:
        """Count a request for ``client_id`` and decide whether it is allowed."""
        limit = limit or self._limit
        window_ms = window_ms or self._window_ms
        now = self._now_ms()

        with self._lock:
            self._maybe_cleanup(now)

            state = self._state.get(client_id)
            if state is None or now - state.window_start >= window_ms:
                state = _WindowState(window_start=now, count=0, window_ms=window_ms)
                self._state[client_id] = state

            reset_in = max(1, math.ceil((state.window_start + window_ms - now) / 1000))

            if state.count >= limit:
                logger.warning("Rate limit exceeded for %s (%d/%d)", client_id, state.count, limit)
                return RateLimitResult(allowed=False, remaining=0, reset_in=reset_in, limit=limit)

            state.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=limit - state.count,
                reset_in=reset_in,
                limit=limit,
            )

    def reset(self, client_id: str | None = None) -> None:
        """Forget one client's window, or every client's."""
        with self._lock:
            if client_id is None:
                self._state.clear()
            else:
                self._state.pop(client_id, None)

    def _maybe_cleanup(self, now: float) -> None:
        if now - self._last_cleanup < CLEANUP_INTERVAL_MS:
            return
        expired = [
            client_id
            for client_id, state in self._state.items()
            if now - state.window_start >= state.window_ms
        ]
        for client_id in expired:
            del self._state[client_id]
        self._last_cleanup = now

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "strategy": "fixed",
                "tracked_clients": len(self._state),
                "limit": self._limit,
                "window_ms": self._window_ms,
            }


class SlidingWindowRateLimiter:
    """Sliding-log limiter per client id.

    A request is allowed when fewer than ``limit`` requests were admitted
    during the trailing ``window_ms``.
    """

    def __init__(
        self,
        limit: int | None = None,
        window_ms: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limit = limit or settings.rate_limit_max_requests
        self._window_ms = window_ms or settings.rate_limit_window_ms
        self._clock = clock
        self._log: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._last_cleanup = self._now_ms()

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def check(
        self,
        client_id: str,
        limit: int | None = None,
        window_ms: int | None = None,
    ) -> RateLimitResult:
        """Count a request for ``client_id`` and decide whether it is allowed."""
        limit = limit or self._limit
        window_ms = window_ms or self._window_ms
        now = self._now_ms()

        with self._lock:
            self._maybe_cleanup(now, window_ms)

            timestamps = self._log.setdefault(client_id, deque())
            while timestamps and now - timestamps[0] >= window_ms:
                timestamps.popleft()

            if len(timestamps) >= limit:
                reset_in = max(1, math.ceil((timestamps[0] + window_ms - now) / 1000))
                logger.warning("Rate limit exceeded for %s (%d/%d)", client_id, len(timestamps), limit)
                return RateLimitResult(allowed=False, remaining=0, reset_in=reset_in, limit=limit)

            timestamps.append(now)
            reset_in = max(1, math.ceil((timestamps[0] + window_ms - now) / 1000))
            return RateLimitResult(
                allowed=True,
                remaining=limit - len(timestamps),
                reset_in=reset_in,
                limit=limit,
            )

    def reset(self, client_id: str | None = None) -> None:
        with self._lock:
            if client_id is None:
                self._log.clear()
            else:
                self._log.pop(client_id, None)

    def _maybe_cleanup(self, now: float, window_ms: int) -> None:
        if now - self._last_cleanup < CLEANUP_INTERVAL_MS:
            return
        idle = [
            client_id
            for client_id, timestamps in self._log.items()
            if not timestamps or now - timestamps[-1] >= window_ms
        ]
        for client_id in idle:
            del self._log[client_id]
        self._last_cleanup = now

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "strategy": "sliding",
                "tracked_clients": len(self._log),
                "limit": self._limit,
                "window_ms": self._window_ms,
            }


RateLimiter = FixedWindowRateLimiter | SlidingWindowRateLimiter


def create_rate_limiter(
    strategy: str | None = None,
    limit: int | None = None,
    window_ms: int | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> RateLimiter:
    """Build the limiter selected by ``strategy`` (``fixed`` or ``sliding``)."""
    strategy = strategy or settings.rate_limit_strategy
    if strategy == "sliding":
        return SlidingWindowRateLimiter(limit=limit, window_ms=window_ms, clock=clock)
    if strategy == "fixed":
        return FixedWindowRateLimiter(limit=limit, window_ms=window_ms, clock=clock)
    raise ValueError(f"Unknown rate limit strategy: {strategy}")
