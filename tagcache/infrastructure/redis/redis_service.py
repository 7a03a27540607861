"""
Redis Service - Connection Lifecycle and Health

Owns the connection factory and circuit breaker, exposes the pooled
client, and runs health checks with memory analysis.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from redis.asyncio import Redis

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ...core.config import Settings
from .circuit_breaker import CircuitBreakerConfig, RedisCircuitBreaker
from .connection_factory import RedisConnectionFactory

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")


@dataclass
class RedisServiceConfig:
    """Configuration for Redis service."""

    # Memory monitoring
    memory_warning_threshold: float = 0.8  # 80%
    memory_critical_threshold: float = 0.9  # 90%


class RedisService:
    """
    Redis service with connection pooling and health monitoring.

    Either builds its own pool from settings or wraps a client
    supplied by the caller (``client=``).
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[Redis] = None,
        config: Optional[RedisServiceConfig] = None,
        circuit_breaker: Optional[RedisCircuitBreaker] = None,
    ):
        self.settings = settings
        self.config = config or RedisServiceConfig()
        self._external_client = client
        self._factory = None if client is not None else RedisConnectionFactory(settings)

        if circuit_breaker is None and settings.CIRCUIT_BREAKER_ENABLED:
            circuit_breaker = RedisCircuitBreaker(
                CircuitBreakerConfig(
                    failure_threshold=settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
                    recovery_timeout=float(settings.CIRCUIT_BREAKER_RECOVERY_TIMEOUT),
                )
            )
        self.circuit_breaker = circuit_breaker

    async def initialize(self) -> None:
        """Initialize the connection pool (no-op for an injected client)."""
        if self._factory is not None:
            await self._factory.initialize()
            logger.info("Redis service initialized successfully")

    @property
    def client(self) -> Redis:
        if self._external_client is not None:
            return self._external_client
        return self._factory.client

    async def execute(self, func: Callable[[Redis], Awaitable[T]]) -> T:
        """Run ``func(client)`` through the circuit breaker, if enabled."""
        client = self.client
        if self.circuit_breaker is None:
            return await func(client)
        return await self.circuit_breaker.call(lambda: func(client))

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform comprehensive health check.

        Returns:
            Health status including ping latency, memory and circuit breaker
        """
        with tracer.start_as_current_span("redis.health_check") as span:
            try:
                start_time = time.time()
                await self.client.ping()
                ping_ms = round((time.time() - start_time) * 1000, 2)

                redis_info = await self._get_redis_info()
                memory_status = self._analyze_memory_usage(redis_info)

                health_status: Dict[str, Any] = {
                    "status": "healthy",
                    "timestamp": time.time(),
                    "service": "redis",
                    "response_times_ms": {"ping": ping_ms},
                    "memory": memory_status,
                    "redis_info": {
                        "version": redis_info.get("redis_version"),
                        "uptime_seconds": redis_info.get("uptime_in_seconds"),
                        "connected_clients": redis_info.get("connected_clients"),
                    },
                }
                if self.circuit_breaker is not None:
                    health_status["circuit_breaker"] = self.circuit_breaker.get_status()

                if memory_status["status"] in ("warning", "critical"):
                    health_status["status"] = memory_status["status"]
                elif (
                    self.circuit_breaker is not None
                    and self.circuit_breaker.state.value != "closed"
                ):
                    health_status["status"] = "degraded"

                span.set_status(Status(StatusCode.OK))
                return health_status

            except Exception as e:
                logger.error(f"Redis health check failed: {e}")
                span.set_status(Status(StatusCode.ERROR, str(e)))

                return {
                    "status": "unhealthy",
                    "timestamp": time.time(),
                    "service": "redis",
                    "error": str(e),
                }

    async def _get_redis_info(self) -> Dict[str, Any]:
        """Get Redis server information."""
        try:
            return await self.client.info()
        except Exception as e:
            logger.warning(f"Failed to get Redis info: {e}")
            return {}

    def _analyze_memory_usage(self, redis_info: Dict[str, Any]) -> Dict[str, Any]:
        """Analyze Redis memory usage."""
        memory_status: Dict[str, Any] = {
            "status": "healthy",
            "usage_bytes": 0,
            "max_memory_bytes": 0,
            "usage_percentage": 0.0,
        }

        used_memory = redis_info.get("used_memory", 0)
        max_memory = redis_info.get("maxmemory", 0)

        if used_memory and max_memory:
            usage_percentage = used_memory / max_memory
            memory_status.update(
                {
                    "usage_bytes": used_memory,
                    "max_memory_bytes": max_memory,
                    "usage_percentage": round(usage_percentage, 4),
                }
            )

            if usage_percentage >= self.config.memory_critical_threshold:
                memory_status["status"] = "critical"
            elif usage_percentage >= self.config.memory_warning_threshold:
                memory_status["status"] = "warning"

            if memory_status["status"] in ["warning", "critical"]:
                logger.warning(
                    f"Redis memory usage {memory_status['status']}: "
                    f"{usage_percentage:.1%} ({used_memory}/{max_memory} bytes)"
                )

        return memory_status

    def get_metrics(self) -> Dict[str, Any]:
        """Get Redis service metrics."""
        return {
            "external_client": self._external_client is not None,
            "connection_factory": self._factory.get_metrics() if self._factory else None,
            "circuit_breaker": self.circuit_breaker.get_status()
            if self.circuit_breaker
            else None,
        }

    async def close(self) -> None:
        """Close Redis service and cleanup resources."""
        if self._factory is not None:
            await self._factory.close()
        logger.info("Redis service closed")

    async def __aenter__(self):
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
