"""
Redis Cache Module

Best-effort caching for read-mostly aggregates (site stats, popular tags):
- Connection pooling
- Automatic JSON serialization
- TTL management
- Namespace invalidation

Redis is optional. When it is disabled or unreachable every cache call is a
miss and callers fall through to the database.
"""

import json
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional, Union

import structlog
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

# Global Redis connection
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


async def init_redis() -> Optional[Redis]:
    """
    Initialize the Redis connection pool.

    Returns None (cache disabled) when Redis is switched off or cannot be
    reached; the application keeps running without it.
    """
    global _redis_pool, _redis_client

    if _redis_client is not None:
        return _redis_client

    if not settings.redis.enabled:
        logger.info("Redis disabled, caching off")
        return None

    pool = ConnectionPool.from_url(
        settings.redis.get_url(),
        max_connections=settings.redis.max_connections,
        socket_timeout=settings.redis.socket_timeout,
        decode_responses=settings.redis.decode_responses,
    )
    client = Redis(connection_pool=pool)

    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning("Redis unavailable, caching off", error=str(e))
        await client.aclose()
        await pool.disconnect()
        return None

    _redis_pool, _redis_client = pool, client
    logger.info("Redis connection established")
    return _redis_client


async def close_redis() -> None:
    """Close Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None

    logger.info("Redis connection closed")


def get_redis() -> Optional[Redis]:
    """Redis client, or None when caching is off"""
    return _redis_client


async def cache_get(key: str) -> Optional[Any]:
    """
    Get value from cache.

    Returns:
        Cached value, or None on a miss or any Redis failure
    """
    client = get_redis()
    if client is None:
        return None

    try:
        value = await client.get(key)
    except RedisError as e:
        logger.debug("Cache read failed", key=key, error=str(e))
        return None

    if value is None:
        return None

    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


async def cache_set(
    key: str,
    value: Any,
    ttl: Optional[Union[int, timedelta]] = None,
) -> bool:
    """
    Set value in cache.

    Returns:
        True if the value was stored
    """
    client = get_redis()
    if client is None:
        return False

    try:
        serialized = json.dumps(value, default=str)
    except (TypeError, ValueError) as e:
        logger.warning("Failed to serialize value for cache", key=key, error=str(e))
        return False

    if isinstance(ttl, timedelta):
        ttl = int(ttl.total_seconds())

    try:
        if ttl:
            await client.setex(key, ttl, serialized)
        else:
            await client.set(key, serialized)
    except RedisError as e:
        logger.debug("Cache write failed", key=key, error=str(e))
        return False

    return True


async def cache_delete_pattern(pattern: str) -> int:
    """Delete all keys matching pattern"""
    client = get_redis()
    if client is None:
        return 0

    try:
        keys = [key async for key in client.scan_iter(match=pattern)]
        if not keys:
            return 0
        return await client.delete(*keys)
    except RedisError as e:
        logger.debug("Cache invalidation failed", pattern=pattern, error=str(e))
        return 0


class CacheManager:
    """
    Cache manager with namespace support and automatic key generation.

    Example:
        cache = CacheManager("stats")
        stats = await cache.get_or_set("site", compute_stats, ttl=60)
    """

    def __init__(self, namespace: str, default_ttl: int = 3600):
        self.namespace = namespace
        self.default_ttl = default_ttl

    def _key(self, key: str) -> str:
        """Generate namespaced key"""
        return f"{settings.app_name}:{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        return await cache_get(self._key(key))

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        return await cache_set(self._key(key), value, ttl or self.default_ttl)

    async def invalidate_all(self) -> int:
        """Invalidate all keys in namespace"""
        return await cache_delete_pattern(f"{settings.app_name}:{self.namespace}:*")

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Get from cache or compute and cache.

        Args:
            key: Cache key
            factory: Async function to compute value if not cached
            ttl: Time-to-live

        Returns:
            Cached or computed value
        """
        value = await self.get(key)

        if value is not None:
            return value

        value = await factory()
        await self.set(key, value, ttl)

        return value


# Pre-configured cache managers
stats_cache = CacheManager("stats", default_ttl=settings.reputation.stats_cache_ttl)
tags_cache = CacheManager("tags", default_ttl=settings.reputation.stats_cache_ttl)


async def invalidate_after_commit(session: AsyncSession, *caches: CacheManager) -> None:
    """Commit the request's session, then clear each cache namespace."""
    await session.commit()
    for cache in caches:
        await cache.invalidate_all()
