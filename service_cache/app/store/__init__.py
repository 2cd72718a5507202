"""
Cache store package.

The gateway only sees the ``CacheStore`` interface; ``create_store`` picks
the backend named in configuration.
"""

from shared.config import BaseConfig
from .base import CacheItem, CacheStore
from .memory import MemoryCacheStore
from .redis_store import RedisCacheStore


def create_store(config: BaseConfig) -> CacheStore:
    """Build the store selected by ``config.store_backend``."""
    backend = config.store_backend.lower()
    if backend == "memory":
        return MemoryCacheStore()
    if backend == "redis":
        return RedisCacheStore(
            config.redis_url,
            key_prefix=config.redis_key_prefix,
            socket_timeout=config.redis_socket_timeout,
        )
    raise ValueError(f"Unknown store backend: {config.store_backend!r}")


__all__ = [
    "CacheItem",
    "CacheStore",
    "MemoryCacheStore",
    "RedisCacheStore",
    "create_store",
]
