from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .config import settings
from ..shared.utils.logger import get_logger

logger = get_logger(__name__)


class RedisManager:
    _instance = None

    @classmethod
    def get_client(cls) -> Redis:
        if cls._instance is None:
            cls._instance = Redis.from_url(settings.REDIS_URL, decode_responses=True)
        return cls._instance

    @classmethod
    async def close(cls):
        if cls._instance is not None:
            await cls._instance.aclose()
            cls._instance = None


async def check_connection() -> bool:
    try:
        client = RedisManager.get_client()
        await client.ping()
        return True
    except Exception:
        return False


@asynccontextmanager
async def tick_guard(name: str, ttl: int) -> AsyncIterator[bool]:
    """
    Best-effort single-runner guard (SET NX EX).

    Yields True when this caller owns the guard. If Redis is unreachable the
    guard is treated as acquired; callers must stay correct without it.
    """
    key = f"wallet:tick:{name}"
    client = RedisManager.get_client()
    try:
        acquired = bool(await client.set(key, "1", nx=True, ex=ttl))
    except RedisError as e:
        logger.warning(f"Tick guard unavailable for {name}, running unguarded: {e}")
        yield True
        return

    try:
        yield acquired
    finally:
        if acquired:
            try:
                await client.delete(key)
            except RedisError as e:
                logger.warning(f"Failed to release tick guard {name}: {e}")
