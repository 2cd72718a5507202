"""
Redis-backed cache store.
"""

from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from shared.logging import get_logger
from shared.errors import StoreError
from .base import CacheItem, CacheStore


class RedisCacheStore(CacheStore):
    """Cache store talking to Redis.

    Values are stored as raw bytes. A plain ``SET`` drops any TTL the key
    had, which is what gives ``set`` its overwrite-and-clear semantics.
    Conditional updates use ``WATCH``/``MULTI``/``EXEC`` and compare the
    stored bytes against the value read earlier.
    """

    name = "redis"

    def __init__(
        self,
        redis_url: str,
        *,
        key_prefix: Optional[str] = None,
        socket_timeout: float = 5.0,
        client: Optional[redis.Redis] = None,
    ):
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.socket_timeout = socket_timeout
        self.logger = get_logger("cache.store.redis")
        self._redis: Optional[redis.Redis] = client

    @property
    def supports_cas(self) -> bool:
        return True

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
                health_check_interval=30,
            )
        return self._redis

    def _make_key(self, key: str) -> str:
        if self.key_prefix:
            return f"{self.key_prefix}:{key}"
        return key

    async def get(self, key: str) -> Optional[CacheItem]:
        try:
            client = await self._get_redis()
            value = await client.get(self._make_key(key))
        except RedisError as e:
            raise StoreError(self.name, str(e), {"operation": "get", "key": key}) from e

        if value is None:
            return None
        return CacheItem(key=key, value=value)

    async def set(self, item: CacheItem) -> None:
        try:
            client = await self._get_redis()
            await client.set(self._make_key(item.key), item.value, ex=item.expiration or None)
        except RedisError as e:
            raise StoreError(self.name, str(e), {"operation": "set", "key": item.key}) from e

    async def compare_and_set(self, item: CacheItem, expected: CacheItem) -> bool:
        name = self._make_key(item.key)
        try:
            client = await self._get_redis()
            async with client.pipeline(transaction=True) as pipe:
                await pipe.watch(name)
                current = await pipe.get(name)
                if current is None or current != expected.value:
                    await pipe.unwatch()
                    return False

                pipe.multi()
                pipe.set(name, item.value, ex=item.expiration or None)
                await pipe.execute()
                return True
        except WatchError:
            self.logger.debug("Watched key changed before EXEC", key=item.key)
            return False
        except RedisError as e:
            raise StoreError(self.name, str(e), {"operation": "compare_and_set", "key": item.key}) from e

    async def ping(self) -> bool:
        try:
            client = await self._get_redis()
            return bool(await client.ping())
        except RedisError as e:
            self.logger.warning("Redis ping failed", error=str(e))
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("Redis connection closed")
