"""
Redis Connection Factory

Builds the connection pool and client from settings.
Instances are constructed explicitly and injected; there is no
process-wide connection handle.
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import (
    AuthenticationError as RedisAuthError,
    RedisError,
)

from ...core.config import Settings
from .exceptions import (
    RedisAuthenticationException,
    RedisConfigurationException,
    RedisConnectionException,
)

logger = logging.getLogger(__name__)


class RedisConnectionFactory:
    """
    Factory for creating and managing the Redis connection pool.

    Provides a single pooled ``redis.asyncio.Redis`` client with
    ``decode_responses=True`` so every reply is ``str``.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None
        self._initialized = False
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create the connection pool and verify it with PING."""
        if self._initialized:
            return

        async with self._lock:
            if self._initialized:
                return

            try:
                self._pool = ConnectionPool.from_url(
                    self.settings.REDIS_URL,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=self.settings.REDIS_CONNECTION_TIMEOUT,
                    socket_timeout=self.settings.REDIS_OPERATION_TIMEOUT,
                    health_check_interval=self.settings.REDIS_HEALTH_CHECK_INTERVAL,
                    max_connections=self.settings.REDIS_MAX_CONNECTIONS,
                )
            except ValueError as e:
                raise RedisConfigurationException(
                    message=f"Invalid Redis URL: {e}",
                    config_key="REDIS_URL",
                    original_error=e,
                ) from e

            self._client = Redis(connection_pool=self._pool)

            try:
                await self._test_connection(self._client)
            except Exception:
                await self._disconnect()
                raise

            self._initialized = True
            logger.info(
                "Redis connection factory initialized",
                extra=self._connection_info(),
            )

    async def _test_connection(self, client: Redis) -> None:
        """Test connection pool with PING."""
        info = self._connection_info()
        try:
            await client.ping()
            logger.debug("Redis connection test successful")
        except RedisAuthError as e:
            raise RedisAuthenticationException(
                message="Redis authentication failed during initialization",
                username=urlparse(self.settings.REDIS_URL).username,
                original_error=e,
            ) from e
        except (RedisError, OSError) as e:
            raise RedisConnectionException(
                message="Redis connection test failed",
                host=info["host"],
                port=info["port"],
                original_error=e,
            ) from e

    @property
    def client(self) -> Redis:
        """Return the pooled client. ``initialize()`` must have been awaited."""
        if self._client is None:
            raise RedisConfigurationException(
                message="Redis connection factory is not initialized"
            )
        return self._client

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _connection_info(self) -> Dict[str, Any]:
        parsed = urlparse(self.settings.REDIS_URL)
        return {
            "host": parsed.hostname or "localhost",
            "port": parsed.port or 6379,
            "max_connections": self.settings.REDIS_MAX_CONNECTIONS,
        }

    def get_metrics(self) -> Dict[str, Any]:
        """Connection pool metrics."""
        metrics: Dict[str, Any] = {"initialized": self._initialized}
        metrics.update(self._connection_info())
        if self._pool is not None:
            metrics["in_use_connections"] = len(
                getattr(self._pool, "_in_use_connections", ())
            )
            metrics["available_connections"] = len(
                getattr(self._pool, "_available_connections", ())
            )
        return metrics

    async def _disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
        if self._pool is not None:
            await self._pool.disconnect()
        self._client = None
        self._pool = None

    async def close(self) -> None:
        """Close all pooled connections."""
        async with self._lock:
            await self._disconnect()
            self._initialized = False
            logger.info("Redis connection factory closed")
