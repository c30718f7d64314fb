"""Redis connection for rate-limit counters.

Learn: Redis is optional. With no HOLOCARD_REDIS_URL (or an unreachable
server) connect_redis() returns None and the rate limiter stands aside.
"""

from typing import Optional

import redis.asyncio as aioredis
import structlog

logger = structlog.get_logger()


async def connect_redis(url: str) -> Optional[aioredis.Redis]:
    """Open a Redis connection pool, or None if not configured/reachable."""
    if not url:
        return None
    client = aioredis.from_url(url, encoding="utf-8", decode_responses=True)
    try:
        await client.ping()
    except Exception as e:
        logger.warning("holocard.redis_unavailable", error=str(e))
        await client.aclose()
        return None
    logger.info("holocard.redis_connected", url=url)
    return client


async def close_redis(client: Optional[aioredis.Redis]) -> None:
    if client is not None:
        await client.aclose()
