"""
Request body decoding for the cache gateway.
"""

from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from shared.errors import DecodeError


RequestT = TypeVar("RequestT", bound=BaseModel)


def decode(model: Type[RequestT], body: bytes) -> RequestT:
    """Decode a raw JSON request body into ``model``.

    Raises:
        DecodeError: the body is empty, is not a JSON object, misses a
            required field or carries a field of the wrong JSON type.
    """
    if not body or not body.strip():
        raise DecodeError("Empty request body", {"request": model.__name__})

    try:
        return model.model_validate_json(body)
    except PydanticValidationError as e:
        raise DecodeError(
            "Malformed request body",
            {"request": model.__name__, "errors": [err["type"] for err in e.errors()]},
        ) from e
