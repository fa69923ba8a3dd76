"""Fixed-window rate limiters for conversational turns.

The Redis limiter uses INCR + EXPIRE and fails open if Redis is down; the
in-memory limiter serves single-process deployments and tests. Checks run
before the session store or any LLM work is touched.

Usage:
    from paintquote.security.rate_limiter import build_rate_limiter

    limiter = build_rate_limiter()
    await limiter.enforce("rate:7:abc123:chat", limit=20, window=60)
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from typing import NamedTuple

from paintquote.config import settings
from paintquote.db.engine import get_redis
from paintquote.errors import RateLimitExceeded

logger = logging.getLogger(__name__)


class RateDecision(NamedTuple):
    allowed: bool
    retry_after: int  # seconds until the window resets, 0 if allowed
    remaining: int


def chat_key(company_id: int, session_id: str, flow: str = "chat") -> str:
    return f"rate:{company_id}:{session_id}:{flow}"


class RateLimiter:
    """Fixed-window rate limiter backed by Redis INCR + EXPIRE."""

    def __init__(self, redis: object) -> None:
        self._redis = redis

    async def check(self, key: str, limit: int, window: int) -> RateDecision:
        """Check if a request is within the rate limit.

        Args:
            key: Redis key (e.g. "rate:{company_id}:{session_id}:chat").
            limit: Max requests allowed in the window.
            window: Window size in seconds.

        Returns:
            RateDecision(allowed, retry_after, remaining).
        """
        try:
            count = await self._redis.incr(key)
            if count == 1:
                await self._redis.expire(key, window)

            if count > limit:
                ttl = await self._redis.ttl(key)
                retry_after = max(ttl, 1)
                return RateDecision(False, retry_after, 0)

            return RateDecision(True, 0, limit - count)
        except Exception:
            logger.exception("Rate limiter Redis error for key %s", key)
            # Fail open — don't block users if Redis is down
            return RateDecision(True, 0, limit)

    async def enforce(self, key: str, limit: int, window: int) -> RateDecision:
        """Like check, but raises RateLimitExceeded when over the limit."""
        decision = await self.check(key, limit, window)
        if not decision.allowed:
            logger.info("Rate limit hit for %s, retry after %ds", key, decision.retry_after)
            raise RateLimitExceeded(decision.retry_after, decision.remaining)
        return decision


class InMemoryRateLimiter(RateLimiter):
    """Process-local fixed windows: key → (window start, window length, count).

    Closed windows are pruned on every check, like Redis expiring the key.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        super().__init__(redis=None)
        self._clock = clock
        self._windows: dict[str, tuple[float, int, int]] = {}

    def _prune(self, now: float) -> None:
        closed = [key for key, (started, length, _) in self._windows.items() if now - started >= length]
        for key in closed:
            del self._windows[key]

    async def check(self, key: str, limit: int, window: int) -> RateDecision:
        now = self._clock()
        self._prune(now)
        started, _, count = self._windows.get(key, (now, window, 0))
        count += 1
        self._windows[key] = (started, window, count)

        if count > limit:
            retry_after = max(math.ceil(started + window - now), 1)
            return RateDecision(False, retry_after, 0)
        return RateDecision(True, 0, limit - count)


def build_rate_limiter(backend: str | None = None) -> RateLimiter:
    """Limiter matching the configured session backend."""
    backend = backend or settings.sessions.session_backend
    if backend == "redis":
        return RateLimiter(get_redis())
    return InMemoryRateLimiter()
