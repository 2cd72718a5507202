"""
Store interface consumed by the cache gateway.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class CacheItem:
    """A single cached value.

    ``expiration`` is a duration in seconds; ``None`` or ``0`` means the item
    never expires. ``cas_token`` is set by stores on items they return and is
    handed back to ``compare_and_set``.
    """

    key: str
    value: bytes
    expiration: Optional[int] = None
    cas_token: Any = field(default=None, compare=False, repr=False)

    @property
    def expires(self) -> bool:
        return bool(self.expiration)


class CacheStore(ABC):
    """Abstract base class for the external key/value cache.

    Implementations hold no gateway state: every call is a round-trip to the
    backing store and failures surface as ``shared.errors.StoreError``.
    """

    name = "store"

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheItem]:
        """Retrieve an item.

        Returns:
            The stored item, or None on a cache miss.
        """

    @abstractmethod
    async def set(self, item: CacheItem) -> None:
        """Store an item, replacing any value and expiration held for its key."""

    @property
    def supports_cas(self) -> bool:
        """Whether ``compare_and_set`` is available."""
        return False

    async def compare_and_set(self, item: CacheItem, expected: CacheItem) -> bool:
        """Store ``item`` only if the key is unchanged since ``expected`` was read.

        Returns:
            True if the write happened, False on a conflicting update or when
            the key disappeared in the meantime.
        """
        raise NotImplementedError(f"{self.name} does not support conditional updates")

    async def ping(self) -> bool:
        """Check that the store is reachable."""
        return True

    async def close(self) -> None:
        """Release connections held by the store."""
