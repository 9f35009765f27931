"""
Redis cache client for advisory evaluation locks.

A short-lived key per account marks it as "being evaluated" so overlapping
batch runs skip it. Best effort only: when Redis is disabled or unreachable
the keys live in an in-process table with the same TTL semantics.
"""

import logging
import time
from typing import Optional, Dict

import redis.asyncio as redis

from riskmonitor.core.config import settings

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_pool: Optional[redis.Redis] = None


async def init_redis() -> Optional[redis.Redis]:
    """
    Initialize Redis connection pool.
    Called on application startup.
    """
    global _redis_pool

    if _redis_pool is not None:
        return _redis_pool

    if not settings.redis_enabled:
        logger.info("Redis disabled. Using in-memory evaluation locks.")
        return None

    try:
        _redis_pool = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        # Test connection
        await _redis_pool.ping()
        logger.info(f"Redis connected: {settings.redis_url}")
        return _redis_pool
    except Exception as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory fallback.")
        _redis_pool = None
        return None


async def close_redis() -> None:
    """Close Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.close()
        _redis_pool = None
        logger.info("Redis connection closed")


def get_redis() -> Optional[redis.Redis]:
    """Get the Redis connection pool."""
    return _redis_pool


def account_lock_key(account_id: int) -> str:
    return f"account_evaluation:{account_id}"


class EvaluationLockCache:
    """
    Key/value store with expiry used as an advisory lock table.

    Keys:
    - account_evaluation:{account_id} -> "1" (TTL = evaluation_lock_ttl_seconds)
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self._redis = redis_client
        # In-memory fallback: key -> monotonic expiry
        self._memory_locks: Dict[str, float] = {}

    @property
    def redis(self) -> Optional[redis.Redis]:
        return self._redis or _redis_pool

    def _memory_has(self, key: str) -> bool:
        expires_at = self._memory_locks.get(key)
        if expires_at is None:
            return False
        if expires_at <= time.monotonic():
            del self._memory_locks[key]
            return False
        return True

    def _memory_put(self, key: str, ttl: int) -> None:
        self._memory_locks[key] = time.monotonic() + ttl

    async def has(self, key: str) -> bool:
        """Whether ``key`` is currently held."""
        if self.redis:
            try:
                return bool(await self.redis.exists(key))
            except Exception as e:
                logger.debug(f"Redis exists failed: {e}")

        return self._memory_has(key)

    async def put(self, key: str, ttl: int) -> None:
        """Hold ``key`` for ``ttl`` seconds, overwriting any holder."""
        if self.redis:
            try:
                await self.redis.set(key, "1", ex=ttl)
                return
            except Exception as e:
                logger.debug(f"Redis set failed: {e}")

        self._memory_put(key, ttl)

    async def acquire(self, key: str, ttl: int) -> bool:
        """
        Hold ``key`` only if nobody holds it.
        Returns False when the key is already held.
        """
        if self.redis:
            try:
                return bool(await self.redis.set(key, "1", ex=ttl, nx=True))
            except Exception as e:
                logger.debug(f"Redis acquire failed: {e}")

        # No await between check and put: atomic within the event loop
        if self._memory_has(key):
            return False
        self._memory_put(key, ttl)
        return True

    async def forget(self, key: str) -> None:
        """Release ``key``."""
        if self.redis:
            try:
                await self.redis.delete(key)
                return
            except Exception as e:
                logger.debug(f"Redis delete failed: {e}")

        self._memory_locks.pop(key, None)


# Singleton instance
_lock_cache: Optional[EvaluationLockCache] = None


def get_lock_cache() -> EvaluationLockCache:
    """Get the evaluation lock cache singleton."""
    global _lock_cache
    if _lock_cache is None:
        _lock_cache = EvaluationLockCache()
    return _lock_cache
