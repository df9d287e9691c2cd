from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import lru_cache
from typing import Protocol

from redis import Redis
from redis.exceptions import RedisError

from ..errors import RateLimitExceeded
from ..redis_client import get_redis_client
from ..settings import settings

logger = logging.getLogger(__name__)

LOCAL_CALLER_KEY = "local"


def caller_key(headers: Mapping[str, str]) -> str:
    forwarded = headers.get("x-forwarded-for") or headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return LOCAL_CALLER_KEY


class RateLimiter(Protocol):
    def hit(self, key: str) -> None: ...


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter:
    """Per-process counter; each caller gets `max_requests` per window."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._next_sweep = clock() + window_seconds
        self._lock = threading.Lock()

    def hit(self, key: str) -> None:
        if self.max_requests <= 0:
            return
        now = self._clock()
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                window = _Window(count=1, reset_at=now + self.window_seconds)
                self._windows[key] = window
            else:
                window.count += 1
            count = window.count
        if count > self.max_requests:
            raise RateLimitExceeded("Rate limit exceeded")

    def _sweep(self, now: float) -> None:
        # Keys come from client headers; expired windows are dropped once per window.
        self._windows = {key: window for key, window in self._windows.items() if now <= window.reset_at}
        self._next_sweep = now + self.window_seconds


def _current_bucket(window_seconds: int) -> int:
    now = int(datetime.now(UTC).timestamp())
    return now // window_seconds


class RedisRateLimiter:
    """Fixed-window counter shared by every process that uses the same redis."""

    def __init__(
        self,
        redis_factory: Callable[[], Redis] = get_redis_client,
        max_requests: int = 100,
        window_seconds: int = 60,
        prefix: str = "rolodex:ratelimit",
    ) -> None:
        self._redis_factory = redis_factory
        self.max_requests = max_requests
        self.window_seconds = max(1, window_seconds)
        self.prefix = prefix

    def hit(self, key: str) -> None:
        if self.max_requests <= 0:
            return
        bucket = _current_bucket(self.window_seconds)
        redis_key = f"{self.prefix}:{key}:{bucket}"
        try:
            redis = self._redis_factory()
            current = redis.incr(redis_key)
            if int(current) == 1:
                redis.expire(redis_key, self.window_seconds)
        except RedisError:
            # Degrade open if Redis is unavailable.
            logger.warning("rate limit store unavailable, allowing request")
            return
        if int(current) > self.max_requests:
            raise RateLimitExceeded("Rate limit exceeded")


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    if settings.rate_limit_backend == "redis":
        return RedisRateLimiter(
            max_requests=settings.rate_limit_max,
            window_seconds=settings.rate_limit_window_seconds,
        )
    return InMemoryRateLimiter(
        max_requests=settings.rate_limit_max,
        window_seconds=settings.rate_limit_window_seconds,
    )
