"""
Redis Connection Manager
Connection pool for the RQ execution queue, plus the Redis health check used by /health.
"""

import logging
from functools import lru_cache
from typing import Optional

from redis import ConnectionPool, Redis
from redis.exceptions import ConnectionError, TimeoutError

from studio.core.config import settings

logger = logging.getLogger(__name__)


class RedisManager:
    """Lazily creates one pooled Redis client per process."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None

    def get_connection(self) -> Redis:
        if self._client is None:
            self._pool = ConnectionPool.from_url(
                self.url,
                max_connections=10,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                decode_responses=False  # RQ needs bytes
            )
            self._client = Redis(connection_pool=self._pool)
            logger.info(f"Created Redis connection pool for {mask_url(self.url)}")
        return self._client

    def health_check(self) -> dict:
        try:
            ok = self.get_connection().ping()
            return {"status": "healthy" if ok else "unhealthy", "connected": bool(ok)}
        except (ConnectionError, TimeoutError) as e:
            logger.error(f"Redis health check failed: {e}")
            return {"status": "unhealthy", "connected": False, "error": str(e)}

    def close(self):
        if self._pool:
            self._pool.disconnect()
            self._pool = None
            self._client = None
            logger.info("Redis connection pool closed")


def mask_url(url: str) -> str:
    """Hide credentials in a Redis URL: redis://:pw@host:port -> redis://***@host:port"""
    if "@" in url:
        return f"redis://***@{url.split('@')[-1]}"
    return url


@lru_cache()
def get_redis_manager() -> RedisManager:
    return RedisManager()


def get_redis() -> Redis:
    return get_redis_manager().get_connection()


def redis_health_check() -> dict:
    return get_redis_manager().health_check()


class Queues:
    """Queue names."""
    EXECUTION = "ai_jobs"


__all__ = [
    "RedisManager",
    "get_redis_manager",
    "get_redis",
    "redis_health_check",
    "mask_url",
    "Queues",
]
