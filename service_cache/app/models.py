"""
Request models for the cache gateway.

Wire field names follow the public contract (``Key``, ``Value``,
``Expiration``); Python code uses the snake_case names.
"""

from typing import Annotated

from pydantic import BaseModel, Field, StrictInt, StrictStr

from shared.errors import ValidationError


CacheKeyField = Annotated[StrictStr, Field(alias="Key", description="Cache key")]


def validate_key(key: str) -> str:
    """Reject keys the store cannot address."""
    if not key:
        raise ValidationError("Key must not be empty")
    return key


class GetRequest(BaseModel):
    """Request model for reading a key."""

    key: CacheKeyField


class SetRequest(BaseModel):
    """Request model for writing a key."""

    key: CacheKeyField
    value: StrictStr = Field(..., alias="Value", description="Value to store")

    @property
    def value_bytes(self) -> bytes:
        return self.value.encode("utf-8")


class ExpireRequest(BaseModel):
    """Request model for changing the expiration of an existing key."""

    key: CacheKeyField
    expiration_seconds: StrictInt = Field(..., alias="Expiration", description="Seconds until expiry, 0 for none")

    def validate_expiration(self) -> int:
        if self.expiration_seconds < 0:
            raise ValidationError(
                "Expiration must not be negative",
                {"expiration": self.expiration_seconds},
            )
        return self.expiration_seconds
