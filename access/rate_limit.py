"""Fixed-window rate limiting per client IP, counted in Redis."""

import logging
import time
from dataclasses import dataclass
from typing import Callable

from redis.asyncio import Redis

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    count: int
    limit: int
    retry_after: int     # seconds until the current window resets


class RateLimiter:
    """
    Counts hits in `window`-second buckets.

    Each (scope, ip, window index) gets its own counter that expires with
    the window, so nothing needs cleaning up. Counters live in Redis, which
    makes the limit hold across several API processes.
    """

    def __init__(
        self,
        redis: Redis,
        scope: str,
        limit: int,
        window: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        if limit <= 0 or window <= 0:
            raise ValueError("limit and window must be positive")
        self._redis = redis
        self._scope = scope
        self._limit = limit
        self._window = window
        self._clock = clock

    async def hit(self, ip: str) -> RateLimitResult:
        now = self._clock()
        bucket = int(now // self._window)
        key = f"ratelimit:{self._scope}:{ip}:{bucket}"

        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, self._window)
            count, _ = await pipe.execute()

        retry_after = max(1, int((bucket + 1) * self._window - now))
        allowed = count <= self._limit
        if not allowed:
            logger.warning(f"Rate limit exceeded for {ip} on {self._scope} ({count}/{self._limit})")
        return RateLimitResult(allowed=allowed, count=count, limit=self._limit, retry_after=retry_after)
