"""
Cache gateway core: get, set and expire on top of a CacheStore.

Every error is turned into an ``Outcome`` here; nothing raised by the store
escapes a ``handle_*`` call.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, TYPE_CHECKING

from shared.logging import get_logger
from shared.errors import NotFoundError, StoreError, ValidationError
from .models import ExpireRequest, GetRequest, SetRequest, validate_key
from .store import CacheItem, CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_CAS_ATTEMPTS = 3


class OutcomeStatus(str, Enum):
    """Result classes of a gateway operation."""
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class Outcome:
    """Gateway result before transport encoding."""
    status: OutcomeStatus
    body: bytes = b""
    detail: Optional[str] = None

    @classmethod
    def success(cls, body: bytes = b"") -> "Outcome":
        return cls(OutcomeStatus.SUCCESS, body)

    @classmethod
    def not_found(cls) -> "Outcome":
        return cls(OutcomeStatus.NOT_FOUND)

    @classmethod
    def client_error(cls, detail: str) -> "Outcome":
        return cls(OutcomeStatus.CLIENT_ERROR, detail=detail)

    @classmethod
    def server_error(cls, detail: str) -> "Outcome":
        return cls(OutcomeStatus.SERVER_ERROR, detail=detail)

    @classmethod
    def conflict(cls, detail: str) -> "Outcome":
        return cls(OutcomeStatus.CONFLICT, detail=detail)

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


class CacheGateway:
    """Request handling for the cache service.

    ``handle_expire`` is a read-modify-write. When the store offers
    ``compare_and_set`` and ``cas_attempts`` is positive the write is
    conditional and conflicts are retried from the read; otherwise a plain
    ``set`` is issued and a concurrent write to the same key between the
    read and the write can be lost.
    """

    def __init__(
        self,
        store: CacheStore,
        logger: Optional[Any] = None,
        *,
        metrics: Optional["MetricsCollector"] = None,
        cas_attempts: int = DEFAULT_CAS_ATTEMPTS,
    ):
        if cas_attempts < 0:
            raise ValueError("cas_attempts must be >= 0")
        self.store = store
        self.logger = logger if logger is not None else get_logger("cache.gateway")
        self.metrics = metrics
        self.cas_attempts = cas_attempts

    @property
    def uses_cas(self) -> bool:
        return self.cas_attempts > 0 and self.store.supports_cas

    async def handle_get(self, req: GetRequest) -> Outcome:
        """Return the value stored under ``req.key``."""
        try:
            key = validate_key(req.key)
            self.logger.info("Getting key", key=key)
            item = await self._load(key)
        except ValidationError as e:
            return self._finish("get", req.key, Outcome.client_error(e.message))
        except NotFoundError:
            return self._finish("get", req.key, Outcome.not_found())
        except StoreError as e:
            return self._finish("get", req.key, Outcome.server_error(e.message))

        self.logger.info("Got value", key=key, value=item.value)
        return self._finish("get", key, Outcome.success(item.value))

    async def handle_set(self, req: SetRequest) -> Outcome:
        """Overwrite ``req.key`` with ``req.value``, clearing any expiration."""
        try:
            key = validate_key(req.key)
            self.logger.info("Setting key", key=key)
            await self.store.set(CacheItem(key=key, value=req.value_bytes, expiration=None))
        except ValidationError as e:
            return self._finish("set", req.key, Outcome.client_error(e.message))
        except StoreError as e:
            return self._finish("set", req.key, Outcome.server_error(e.message))

        return self._finish("set", key, Outcome.success())

    async def handle_expire(self, req: ExpireRequest) -> Outcome:
        """Change the expiration of an existing key, keeping its value."""
        try:
            key = validate_key(req.key)
            expiration = req.validate_expiration()
        except ValidationError as e:
            return self._finish("expire", req.key, Outcome.client_error(e.message))

        self.logger.info("Changing expiry", key=key, expiration=expiration)
        attempts = self.cas_attempts if self.uses_cas else 1

        try:
            for attempt in range(1, attempts + 1):
                current = await self._load(key)
                item = CacheItem(key=current.key, value=current.value, expiration=expiration)

                if not self.uses_cas:
                    await self.store.set(item)
                    return self._finish("expire", key, Outcome.success())

                if await self.store.compare_and_set(item, expected=current):
                    return self._finish("expire", key, Outcome.success())

                self.logger.info("Conditional update conflict", key=key, attempt=attempt)
                if self.metrics:
                    self.metrics.increment_counter("cache_cas_conflicts_total")
        except NotFoundError:
            self.logger.info("Attempted to change expiry on missing key", key=key)
            return self._finish("expire", key, Outcome.not_found())
        except StoreError as e:
            return self._finish("expire", key, Outcome.server_error(e.message))

        return self._finish(
            "expire",
            key,
            Outcome.conflict(f"key changed concurrently on {attempts} attempts"),
        )

    async def _load(self, key: str) -> CacheItem:
        item = await self.store.get(key)
        if item is None:
            raise NotFoundError(key)
        return item

    def _finish(self, operation: str, key: str, outcome: Outcome) -> Outcome:
        if self.metrics:
            self.metrics.record_cache_operation(operation, outcome.status.value)

        if outcome.status is OutcomeStatus.SERVER_ERROR:
            self.logger.error("Cache operation failed", operation=operation, key=key, error=outcome.detail)
        elif outcome.status is OutcomeStatus.NOT_FOUND:
            self.logger.info("Cache miss", operation=operation, key=key)
        elif not outcome.ok:
            self.logger.warning("Cache operation rejected", operation=operation, key=key, reason=outcome.detail)
        return outcome
