"""Sliding-window request limiter for outbound model calls."""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_REQUESTS_PER_MINUTE = 5
DEFAULT_MIN_DELAY_S = 0.5
WINDOW_S = 60.0
_BUFFER_S = 0.1

# GitHub Models free tier: gpt-4o has a third of the daily quota
_MODEL_RPM = {"gpt-4o": 2}


def requests_per_minute(model: str | None) -> int:
    return _MODEL_RPM.get(model or "", DEFAULT_REQUESTS_PER_MINUTE)


class RateLimiter:
    """At most `requests_per_minute` calls per 60 s, and `min_delay_s` between calls.

    `clock` and `sleep` are injectable so tests can run on virtual time.
    """

    def __init__(
        self,
        requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE,
        min_delay_s: float = DEFAULT_MIN_DELAY_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.requests_per_minute = requests_per_minute
        self.min_delay_s = min_delay_s
        self._clock = clock
        self._sleep = sleep
        self._requests: deque[float] = deque()
        self._last: float | None = None
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        while self._requests and self._requests[0] <= now - WINDOW_S:
            self._requests.popleft()

    def recent_count(self) -> int:
        self._prune(self._clock())
        return len(self._requests)

    async def wait(self) -> float:
        """Block until a request is allowed, then record it. Returns seconds waited."""
        async with self._lock:
            waited = 0.0
            while True:
                now = self._clock()
                self._prune(now)
                if len(self._requests) < self.requests_per_minute:
                    break
                delay = self._requests[0] + WINDOW_S - now + _BUFFER_S
                logger.warning("Rate limit: waiting %.1fs before next request", delay)
                await self._sleep(delay)
                waited += delay

            if self._last is not None:
                gap = self._clock() - self._last
                if gap < self.min_delay_s:
                    await self._sleep(self.min_delay_s - gap)
                    waited += self.min_delay_s - gap

            now = self._clock()
            self._requests.append(now)
            self._last = now
            return waited

    def reset(self) -> None:
        self._requests.clear()
        self._last = None
