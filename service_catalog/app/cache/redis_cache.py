"""
Redis cache store for the Catalog Service.
"""

import json
import re
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.logging import get_logger
from shared.errors import NotAvailableError

_GLOB_CHARS = re.compile(r"([*?\[\]\\])")


def escape_glob(value: str) -> str:
    """Escape Redis MATCH metacharacters so the value matches literally."""
    return _GLOB_CHARS.sub(r"\\\1", value)


class RedisCacheStore:
    """Redis-backed key/value store with per-entry TTL and prefix sweeps.

    The store is an explicitly constructed handle: call ``start()`` before
    use and ``stop()`` when done, or use it as an async context manager.
    Every operation raises ``NotAvailableError`` when Redis cannot be
    reached; callers decide whether that is fatal.
    """

    def __init__(self, redis_url: str, *, client: Optional[redis.Redis] = None, scan_batch_size: int = 500):
        self.redis_url = redis_url
        self.logger = get_logger("catalog.cache.redis")
        self.redis: Optional[redis.Redis] = client
        self.scan_batch_size = scan_batch_size
        self._owns_client = client is None

    async def __aenter__(self) -> "RedisCacheStore":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self):
        """Start the Redis cache."""
        try:
            if self.redis is None:
                self.redis = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    health_check_interval=30
                )

            await self.redis.ping()

            self.logger.info("Redis cache started")

        except (RedisError, OSError) as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise NotAvailableError("redis", str(e))

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis is not None and self._owns_client:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis cache stopped")

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise NotAvailableError("redis", "cache store not started")
        return self.redis

    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value stored under key, or None when absent."""
        try:
            cached_data = await self._client().get(key)
        except (RedisError, OSError) as e:
            self.logger.error("Cache get error", key=key, error=str(e))
            raise NotAvailableError("redis", str(e))

        if cached_data is None:
            return None
        try:
            return json.loads(cached_data)
        except ValueError as e:
            # Undecodable entries are treated as a miss and get overwritten
            self.logger.warning("Discarding undecodable cache entry", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store value under key, replacing any previous entry wholesale."""
        payload = json.dumps(value, default=str)
        try:
            await self._client().setex(key, ttl_seconds, payload)
        except (RedisError, OSError) as e:
            self.logger.error("Cache set error", key=key, error=str(e))
            raise NotAvailableError("redis", str(e))

        self.logger.debug("Cached value", key=key, ttl=ttl_seconds)

    async def delete(self, key: str) -> None:
        try:
            await self._client().delete(key)
        except (RedisError, OSError) as e:
            self.logger.error("Cache delete error", key=key, error=str(e))
            raise NotAvailableError("redis", str(e))

    async def delete_by_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix; returns the number removed."""
        client = self._client()
        pattern = f"{escape_glob(prefix)}*"
        removed = 0
        batch = []

        try:
            async for key in client.scan_iter(match=pattern, count=self.scan_batch_size):
                batch.append(key)
                if len(batch) >= self.scan_batch_size:
                    removed += await client.delete(*batch)
                    batch = []
            if batch:
                removed += await client.delete(*batch)
        except (RedisError, OSError) as e:
            self.logger.error("Cache prefix delete error", prefix=prefix, error=str(e))
            raise NotAvailableError("redis", str(e))

        if removed:
            self.logger.info("Invalidated cache prefix", prefix=prefix, count=removed)
        return removed

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self._client().ping()
            return True
        except (NotAvailableError, RedisError, OSError):
            return False
