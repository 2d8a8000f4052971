"""In-memory sliding-window rate limiter for outgoing plugin messages."""

from __future__ import annotations

import time
from collections import deque
from typing import Callable, Protocol

MAX_REQUESTS_PER_MINUTE = 100
DEFAULT_WINDOW_SECONDS = 60.0


class RateLimiter(Protocol):
    """Admission policy consulted before every send attempt."""

    def admit(self) -> bool: ...


class SlidingWindowRateLimiter:
    """Counts send attempts in the trailing window; denies at the ceiling.

    admit() never suspends, so prune, check and append happen as one step
    with respect to other coroutines on the loop.
    """

    def __init__(
        self,
        *,
        max_requests: int = MAX_REQUESTS_PER_MINUTE,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._attempts: deque[float] = deque()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def _slide(self, now: float) -> None:
        cutoff = now - self._window_seconds
        while self._attempts and self._attempts[0] <= cutoff:
            self._attempts.popleft()

    def admit(self) -> bool:
        now = self._clock()
        self._slide(now)
        if len(self._attempts) >= self._max_requests:
            return False
        self._attempts.append(now)
        return True

    def remaining(self) -> int:
        self._slide(self._clock())
        return max(0, self._max_requests - len(self._attempts))

    def reset(self) -> None:
        self._attempts.clear()

    def __len__(self) -> int:
        return len(self._attempts)
