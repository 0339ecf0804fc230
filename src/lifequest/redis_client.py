"""Redis connection pool, used for distributed locks and event broadcasts."""

import redis.asyncio as redis

_pool: redis.Redis | None = None


async def init_redis(url: str) -> redis.Redis:
    """Create the shared Redis client."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    return _pool


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None
