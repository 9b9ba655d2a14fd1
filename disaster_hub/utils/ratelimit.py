"""In-memory per-client rate limiter (sliding window)."""

import math
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class RateLimitStatus:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds when the oldest counted request leaves the window
    retry_after: int = 0


class RateLimiter:
    """Counts requests per key over a sliding window.

    State is process-local; each worker limits independently.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 900,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._requests: dict[str, deque[float]] = {}

    def hit(self, key: str) -> RateLimitStatus:
        """Record a request for ``key`` unless it is over the limit."""
        now = self._clock()
        history = self._requests.setdefault(key, deque())

        cutoff = now - self._window
        while history and history[0] <= cutoff:
            history.popleft()

        allowed = len(history) < self._max_requests
        if allowed:
            history.append(now)

        reset_at = (history[0] if history else now) + self._window
        return RateLimitStatus(
            allowed=allowed,
            limit=self._max_requests,
            remaining=max(0, self._max_requests - len(history)),
            reset_at=reset_at,
            retry_after=0 if allowed else math.ceil(reset_at - now),
        )

    def reset(self) -> None:
        self._requests.clear()
