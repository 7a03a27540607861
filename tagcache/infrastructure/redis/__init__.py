"""
Redis Infrastructure Module

Connection pooling, circuit breaker protection and exception
hierarchy for the Redis backing store.
"""

from .redis_service import RedisService, RedisServiceConfig
from .connection_factory import RedisConnectionFactory
from .circuit_breaker import (
    RedisCircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
    CircuitBreakerMetrics,
)
from .exceptions import (
    RedisException,
    RedisConnectionException,
    RedisAuthenticationException,
    RedisConfigurationException,
    RedisCircuitBreakerOpenException,
    RedisOperationException,
    RedisBatchException,
)

__all__ = [
    # Main service
    "RedisService",
    "RedisServiceConfig",
    # Connection management
    "RedisConnectionFactory",
    # Circuit breaker
    "RedisCircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "CircuitBreakerMetrics",
    # Exceptions
    "RedisException",
    "RedisConnectionException",
    "RedisAuthenticationException",
    "RedisConfigurationException",
    "RedisCircuitBreakerOpenException",
    "RedisOperationException",
    "RedisBatchException",
]
