"""
In-process cache store for local runs and tests.
"""

import asyncio
import itertools
import time
from collections import Counter
from dataclasses import replace
from typing import Callable, Dict, Optional, Tuple

from shared.logging import get_logger
from .base import CacheItem, CacheStore


class MemoryCacheStore(CacheStore):
    """Dictionary-backed store with lazy expiry and a periodic sweep.

    Every write bumps a version number which is returned as the item's
    ``cas_token``, so conditional updates detect any intervening write, even
    one that stored identical bytes.
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: int = 256):
        self.logger = get_logger("cache.store.memory")
        self._clock = clock
        # key -> (item, absolute deadline or None)
        self._items: Dict[str, Tuple[CacheItem, Optional[float]]] = {}
        self._versions = itertools.count(1)
        self._lock = asyncio.Lock()
        self.calls: Counter = Counter()
        # full expiry sweep every sweep_interval writes
        self.sweep_interval = max(1, sweep_interval)
        self._writes = 0

    @property
    def supports_cas(self) -> bool:
        return True

    def _expired(self, deadline: Optional[float], now: float) -> bool:
        return deadline is not None and deadline <= now

    def _lookup(self, key: str) -> Optional[CacheItem]:
        entry = self._items.get(key)
        if entry is None:
            return None

        item, deadline = entry
        if self._expired(deadline, self._clock()):
            del self._items[key]
            self.logger.debug("Expired item dropped", key=key)
            return None
        return item

    def _store(self, item: CacheItem) -> None:
        deadline = self._clock() + item.expiration if item.expires else None
        self._items[item.key] = (replace(item, cas_token=next(self._versions)), deadline)

        self._writes += 1
        if self._writes % self.sweep_interval == 0:
            self.purge_expired()

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        expired = [key for key, (_, deadline) in self._items.items() if self._expired(deadline, now)]
        for key in expired:
            del self._items[key]
        if expired:
            self.logger.debug("Purged expired items", count=len(expired))
        return len(expired)

    async def get(self, key: str) -> Optional[CacheItem]:
        self.calls["get"] += 1
        return self._lookup(key)

    async def set(self, item: CacheItem) -> None:
        self.calls["set"] += 1
        self._store(item)

    async def compare_and_set(self, item: CacheItem, expected: CacheItem) -> bool:
        self.calls["compare_and_set"] += 1
        async with self._lock:
            current = self._lookup(item.key)
            if current is None or current.cas_token != expected.cas_token:
                return False
            self._store(item)
            return True

    def ttl(self, key: str) -> Optional[float]:
        """Seconds left before ``key`` expires, None if it never does or is absent."""
        if self._lookup(key) is None:
            return None
        deadline = self._items[key][1]
        if deadline is None:
            return None
        return deadline - self._clock()

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for _, deadline in self._items.values() if not self._expired(deadline, now))
