"""Fixed-window attempt limiting for the authentication endpoint.

FIXED WINDOW
------------
Each client key owns one counter and the instant its window closes.
The first attempt opens a window; attempts inside it increment the
counter until the cap is reached, after which further attempts are
denied (and NOT counted) until the window closes.  The next attempt
after that opens a fresh window.

Login brute-force protection wants exactly this shape: "5 attempts per
15 minutes", with a predictable Retry-After.  The boundary-burst
weakness of fixed windows (cap at 11:59 and again at 12:00) is
acceptable for a cap this small.

BACKENDS
--------
  InMemoryRateLimiter — process-local dict; expired entries are removed
    by ``sweep()``, driven by RateLimitSweeper on an interval.
  RedisRateLimiter    — shared across instances; a Lua script makes the
    read-modify-write atomic and the key TTL does the sweeping.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """The outcome of a rate limit check.

    allowed:      True if the attempt may proceed.
    remaining:    Attempts left in the current window.
    limit:        The per-window cap.
    retry_after:  Seconds until the window closes (0 if allowed).
    """

    allowed: bool
    remaining: int
    limit: int
    retry_after: float


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """max_attempts per window_seconds."""

    max_attempts: int = 5
    window_seconds: float = 900


@runtime_checkable
class RateLimiter(Protocol):
    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult: ...
    async def reset(self, key: str) -> None: ...
    async def sweep(self) -> int: ...


class InMemoryRateLimiter:
    """Process-local fixed window.

    Multiple API instances each keep their own dict, so the effective
    cap multiplies by the instance count.  Set REDIS_URL for a shared
    limit.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # key -> (attempt_count, window_ends_at)
        self._windows: dict[str, tuple[int, float]] = {}

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        now = self._clock()
        entry = self._windows.get(key)

        if entry is None or now >= entry[1]:
            self._windows[key] = (1, now + config.window_seconds)
            return RateLimitResult(
                allowed=True,
                remaining=config.max_attempts - 1,
                limit=config.max_attempts,
                retry_after=0,
            )

        count, window_ends_at = entry
        if count >= config.max_attempts:
            return RateLimitResult(
                allowed=False,
                remaining=0,
                limit=config.max_attempts,
                retry_after=window_ends_at - now,
            )

        count += 1
        self._windows[key] = (count, window_ends_at)
        return RateLimitResult(
            allowed=True,
            remaining=config.max_attempts - count,
            limit=config.max_attempts,
            retry_after=0,
        )

    async def reset(self, key: str) -> None:
        self._windows.pop(key, None)

    async def sweep(self) -> int:
        """Drop every entry whose window has closed; return how many."""
        now = self._clock()
        expired = [key for key, (_, ends) in self._windows.items() if now >= ends]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)


class RedisRateLimiter:
    """Redis-backed fixed window, shared by every API instance.

    INCR-then-compare would count denied attempts, so the whole
    decision runs in one Lua script: Redis executes it atomically and
    two concurrent attempts can never both take the last slot.
    """

    # KEYS[1] = window key
    # ARGV[1] = max_attempts, ARGV[2] = window length in ms
    # Returns: {allowed (0/1), count, ttl_ms}
    _LUA_SCRIPT = """
    local key = KEYS[1]
    local max_attempts = tonumber(ARGV[1])
    local window_ms = tonumber(ARGV[2])

    local count = tonumber(redis.call('GET', key))
    if count == nil then
        redis.call('SET', key, 1, 'PX', window_ms)
        return {1, 1, window_ms}
    end

    local ttl = redis.call('PTTL', key)
    if count >= max_attempts then
        return {0, count, ttl}
    end

    count = redis.call('INCR', key)
    return {1, count, ttl}
    """

    def __init__(self, redis_client) -> None:
        self._redis = redis_client
        self._script = None

    async def _get_script(self):
        if self._script is None:
            self._script = self._redis.register_script(self._LUA_SCRIPT)
        return self._script

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        script = await self._get_script()
        allowed, count, ttl_ms = await script(
            keys=[f"ratelimit:{key}"],
            args=[config.max_attempts, math.ceil(config.window_seconds * 1000)],
        )
        if allowed:
            return RateLimitResult(
                allowed=True,
                remaining=max(config.max_attempts - int(count), 0),
                limit=config.max_attempts,
                retry_after=0,
            )
        return RateLimitResult(
            allowed=False,
            remaining=0,
            limit=config.max_attempts,
            retry_after=max(int(ttl_ms), 0) / 1000,
        )

    async def reset(self, key: str) -> None:
        await self._redis.delete(f"ratelimit:{key}")

    async def sweep(self) -> int:
        # PX expiry already removes closed windows.
        return 0


class RateLimitSweeper:
    """Background task that calls ``limiter.sweep()`` every ``interval`` seconds.

    Owned by the application lifespan: ``start()`` on startup,
    ``stop()`` on shutdown.
    """

    def __init__(self, limiter: RateLimiter, interval: float) -> None:
        self._limiter = limiter
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="rate-limit-sweeper")
        logger.info("Rate-limit sweeper started  interval=%ss", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Rate-limit sweeper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                removed = await self._limiter.sweep()
            except Exception:
                logger.exception("Rate-limit sweep failed")
                continue
            if removed:
                logger.debug("Rate-limit sweep removed %d expired windows", removed)
