"""
Cache Domain Exceptions

Errors raised while preparing values and keys for the cache.
Store failures live in infrastructure.redis.exceptions.
"""

from typing import Optional, Any, Dict


class CacheException(Exception):
    """Base exception for cache domain errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class CacheSerializationException(CacheException):
    """Raised when a value cannot be encoded to JSON."""

    def __init__(self, key: str, original_error: Optional[Exception] = None):
        details: Dict[str, Any] = {"key": key}
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=f"Failed to serialize cache value for key: {key}",
            error_code="CACHE_SERIALIZATION_ERROR",
            details=details,
        )
        if original_error:
            self.__cause__ = original_error


class CacheDeserializationException(CacheException):
    """Raised when a stored payload does not match the requested shape."""

    def __init__(
        self,
        key: str,
        model: Optional[Any] = None,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {"key": key}
        if model is not None:
            details["model"] = getattr(model, "__name__", repr(model))
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=f"Failed to deserialize cache value for key: {key}",
            error_code="CACHE_DESERIALIZATION_ERROR",
            details=details,
        )
        if original_error:
            self.__cause__ = original_error


class InvalidCacheKeyException(CacheException):
    """Raised when a key or tag violates naming rules."""

    def __init__(self, value: str, reason: str):
        super().__init__(
            message=f"Invalid cache key or tag {value!r}: {reason}",
            error_code="CACHE_INVALID_KEY",
            details={"value": value, "reason": reason},
        )
