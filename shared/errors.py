"""
Shared error handling for the cache gateway services.
"""

from typing import Dict, Any, Optional


class CacheServiceException(Exception):
    """Base exception for cache gateway services."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DecodeError(CacheServiceException):
    """Request body could not be decoded."""

    def __init__(self, message: str = "Malformed request body", details: Optional[Dict[str, Any]] = None):
        super().__init__("DECODE_ERROR", message, details)


class ValidationError(CacheServiceException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(CacheServiceException):
    """Requested key is absent from the store."""

    def __init__(self, key: str, message: str = "Key not found"):
        super().__init__("NOT_FOUND", message, {"key": key})


class StoreError(CacheServiceException):
    """External cache store errors."""

    def __init__(self, store: str, message: str = "Store error", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORE_ERROR", f"{store}: {message}", details)
