"""Redis client and lifespan management.

Redis backs the session store, the rate limiter and the per-session turn
locks. The client is created lazily so the in-memory configuration never
needs a running server.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncGenerator

import redis.asyncio as aioredis

from paintquote.config import settings

# ── Redis client ─────────────────────────────────────────────────────

_redis_client: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    """Shared Redis client (decoded str responses)."""
    global _redis_client
    if _redis_client is None:
        _redis_client = aioredis.from_url(
            settings.redis.redis_url,
            decode_responses=True,
        )
    return _redis_client


# ── Lifespan helpers ─────────────────────────────────────────────────


async def close_redis() -> None:
    """Close the Redis connection pool if one was opened.

    Called during FastAPI lifespan shutdown.
    """
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


@contextlib.asynccontextmanager
async def redis_lifespan() -> AsyncGenerator[None, None]:
    """Context manager for the Redis lifecycle.

    Usage in FastAPI lifespan:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with redis_lifespan():
                yield
    """
    try:
        yield
    finally:
        await close_redis()
