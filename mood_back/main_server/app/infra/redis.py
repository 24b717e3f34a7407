# main_server/app/infra/redis.py
from __future__ import annotations

from functools import lru_cache

from redis.asyncio import Redis

"""
    Process-wide redis client per url, created on first use.
"""


@lru_cache
def get_redis(url: str) -> Redis:
    return Redis.from_url(url, decode_responses=True)


async def close_redis(url: str) -> None:
    r = get_redis(url)
    await r.aclose()
    get_redis.cache_clear()
