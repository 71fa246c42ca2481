"""Fixed-window rate limiting for the generate endpoint.

Counts requests per client key (the client IP) in fixed windows. Only the
current and previous windows are retained. Admission control lives here,
in front of the generation service, never inside it.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Requests allowed per window.
        remaining: Requests left in the current window.
        reset_seconds: Seconds until the current window ends.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int

    def headers(self) -> dict[str, str]:
        """Standard RateLimit-* response headers."""
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_seconds),
        }


class FixedWindowRateLimiter:
    """In-memory fixed-window limiter keyed by client identifier.

    Attributes:
        limit: Requests allowed per window.
        window_seconds: Window length.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit <= 0:
            raise ValueError("limit must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self._limit = limit
        self._window = window_seconds
        self._clock = clock
        self._lock = Lock()
        self._counts: dict[tuple[str, int], int] = {}

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window

    def check(self, key: str) -> RateLimitDecision:
        """Record one request for ``key`` and decide whether to allow it."""
        now = self._clock()
        window_id = int(now // self._window)
        reset_seconds = max(1, math.ceil((window_id + 1) * self._window - now))

        with self._lock:
            stale = [item for item in self._counts if item[1] < window_id - 1]
            for item in stale:
                del self._counts[item]

            count = self._counts.get((key, window_id), 0) + 1
            self._counts[(key, window_id)] = count

        return RateLimitDecision(
            allowed=count <= self._limit,
            limit=self._limit,
            remaining=max(self._limit - count, 0),
            reset_seconds=reset_seconds,
        )

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
