"""
Redis Infrastructure Exceptions

Domain-specific exceptions for Redis operations.
Repositories raise these; only the cache manager turns them into
safe defaults.
"""

from typing import Optional, Any, Dict


class RedisException(Exception):
    """Base exception for Redis-related errors.

    All Redis operations should raise this or its subclasses,
    chained to the original client error.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or "REDIS_ERROR"
        self.details = details or {}
        super().__init__(self.message)


class RedisConnectionException(RedisException):
    """Raised when Redis connection fails or is lost."""

    def __init__(
        self,
        message: str = "Redis connection failed",
        host: Optional[str] = None,
        port: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if host:
            details["host"] = host
        if port:
            details["port"] = port
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=message, error_code="REDIS_CONNECTION_ERROR", details=details
        )
        # Preserve exception context for debugging (exception chaining)
        if original_error:
            self.__cause__ = original_error


class RedisAuthenticationException(RedisException):
    """Raised when Redis authentication fails."""

    def __init__(
        self,
        message: str = "Redis authentication failed",
        username: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if username:
            details["username"] = username

        super().__init__(
            message=message, error_code="REDIS_AUTH_ERROR", details=details
        )
        if original_error:
            self.__cause__ = original_error


class RedisConfigurationException(RedisException):
    """Raised when Redis configuration is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if config_key:
            details["config_key"] = config_key
        if config_value is not None:
            details["config_value"] = str(config_value)
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=message, error_code="REDIS_CONFIGURATION_ERROR", details=details
        )
        if original_error:
            self.__cause__ = original_error


class RedisCircuitBreakerOpenException(RedisException):
    """Raised when Redis circuit breaker is open."""

    def __init__(
        self, message: str = "Redis circuit breaker is open - service unavailable"
    ):
        super().__init__(
            message=message,
            error_code="REDIS_CIRCUIT_BREAKER_OPEN",
            details={"service_status": "unavailable"},
        )


class RedisOperationException(RedisException):
    """Raised when a single Redis command or batch raises."""

    def __init__(
        self,
        operation: str,
        key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {"operation": operation}
        if key:
            details["key"] = key
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=f"Redis operation '{operation}' failed"
            + (f" for key: {key}" if key else ""),
            error_code="REDIS_OPERATION_ERROR",
            details=details,
        )
        if original_error:
            self.__cause__ = original_error


class RedisBatchException(RedisException):
    """Raised when a MULTI/EXEC batch reports per-command errors."""

    def __init__(self, operation: str, errors: Dict[int, str]):
        super().__init__(
            message=f"Redis batch '{operation}' reported {len(errors)} failed command(s)",
            error_code="REDIS_BATCH_ERROR",
            details={"operation": operation, "errors": errors},
        )
