"""
Cache gateway service: HTTP transport for get, set and expire.
"""

from typing import Dict, Optional

from fastapi import Request, Response

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import DecodeError

from .codec import decode
from .gateway import CacheGateway, Outcome, OutcomeStatus
from .models import ExpireRequest, GetRequest, SetRequest
from .store import CacheStore, create_store


STATUS_CODES = {
    OutcomeStatus.SUCCESS: 200,
    OutcomeStatus.NOT_FOUND: 404,
    OutcomeStatus.CLIENT_ERROR: 400,
    OutcomeStatus.SERVER_ERROR: 500,
    OutcomeStatus.CONFLICT: 409,
}


def to_response(outcome: Outcome) -> Response:
    """Translate a gateway outcome into an HTTP response.

    Only successful reads carry a body; error detail stays in the logs.
    """
    if outcome.ok and outcome.body:
        return Response(content=outcome.body, media_type="application/octet-stream")
    return Response(status_code=STATUS_CODES[outcome.status])


class CacheService(BaseService):
    """Cache gateway service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None, store: Optional[CacheStore] = None):
        super().__init__("cache", 8080, config=config)

        self.store = store if store is not None else create_store(self.config)
        self.gateway = CacheGateway(
            self.store,
            metrics=self.metrics,
            cas_attempts=self.config.expire_cas_attempts,
        )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.store.close()

        self._setup_cache_routes()

    def _setup_cache_routes(self):
        """Set up cache routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "cache",
                "message": "Key/value cache gateway",
                "version": "1.0.0",
                "store": self.store.name,
                "conditional_expire": self.gateway.uses_cas,
            }

        @self.app.post("/get")
        async def get_value(request: Request):
            """Return the raw bytes stored under Key."""
            req = decode(GetRequest, await request.body())
            return to_response(await self.gateway.handle_get(req))

        @self.app.post("/set")
        async def set_value(request: Request):
            """Store Value under Key."""
            req = decode(SetRequest, await request.body())
            return to_response(await self.gateway.handle_set(req))

        @self.app.post("/expire")
        async def expire_value(request: Request):
            """Change the expiration of Key to Expiration seconds."""
            req = decode(ExpireRequest, await request.body())
            return to_response(await self.gateway.handle_expire(req))

        @self.app.exception_handler(DecodeError)
        async def decode_error_handler(request: Request, exc: DecodeError):
            """Malformed bodies are rejected before the store is touched."""
            self.logger.info("Rejected malformed body", path=request.url.path, details=exc.details)
            self.metrics.record_error(exc.code)
            return Response(status_code=400)

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check the backing store."""
        return {self.store.name: "ok" if await self.store.ping() else "error"}


def create_app(config: Optional[ServiceConfig] = None, store: Optional[CacheStore] = None):
    """Create FastAPI application."""
    service = CacheService(config=config, store=store)
    return service.app


if __name__ == "__main__":
    service = CacheService()
    service.run()
