"""
Unit tests for RedisService and RedisConnectionFactory.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import (
    AuthenticationError,
    ConnectionError as RedisConnectionError,
)

from tagcache.core.config import Settings
from tagcache.infrastructure.redis.circuit_breaker import RedisCircuitBreaker
from tagcache.infrastructure.redis.connection_factory import RedisConnectionFactory
from tagcache.infrastructure.redis.exceptions import (
    RedisAuthenticationException,
    RedisConfigurationException,
    RedisConnectionException,
)
from tagcache.infrastructure.redis.redis_service import RedisService

pytestmark = pytest.mark.redis


class TestRedisService:
    """Test service wiring and health checks."""

    def test_breaker_follows_settings(self, settings):
        client = MagicMock()
        assert isinstance(
            RedisService(settings, client=client).circuit_breaker, RedisCircuitBreaker
        )

        disabled = Settings(_env_file=None, CIRCUIT_BREAKER_ENABLED=False)
        assert RedisService(disabled, client=client).circuit_breaker is None

    @pytest.mark.asyncio
    async def test_execute_uses_injected_client(self, settings, fake_redis):
        service = RedisService(settings, client=fake_redis)
        await fake_redis.set("k", "v")

        assert await service.execute(lambda c: c.get("k")) == "v"
        assert service.circuit_breaker.metrics.successful_calls == 1

    @pytest.mark.asyncio
    async def test_health_check_healthy(self, settings, fake_redis):
        service = RedisService(settings, client=fake_redis)

        health = await service.health_check()

        assert health["status"] == "healthy"
        assert "ping" in health["response_times_ms"]
        assert health["circuit_breaker"]["state"] == "closed"

    @pytest.mark.asyncio
    async def test_health_check_memory_warning(self, settings):
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)
        client.info = AsyncMock(
            return_value={"used_memory": 85, "maxmemory": 100, "redis_version": "7.2"}
        )
        service = RedisService(settings, client=client)

        health = await service.health_check()

        assert health["status"] == "warning"
        assert health["memory"]["usage_percentage"] == 0.85

    @pytest.mark.asyncio
    async def test_health_check_unhealthy(self, settings):
        client = MagicMock()
        client.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
        service = RedisService(settings, client=client)

        health = await service.health_check()

        assert health["status"] == "unhealthy"
        assert "refused" in health["error"]

    @pytest.mark.asyncio
    async def test_injected_client_lifecycle_is_noop(self, settings, fake_redis):
        async with RedisService(settings, client=fake_redis) as service:
            assert service.client is fake_redis
            assert service.get_metrics()["external_client"] is True
            assert service.get_metrics()["connection_factory"] is None
        # The caller still owns the client
        assert await fake_redis.ping()


class TestRedisConnectionFactory:
    """Test pool construction and error translation."""

    def test_client_before_initialize(self, settings):
        factory = RedisConnectionFactory(settings)
        with pytest.raises(RedisConfigurationException):
            factory.client

    @pytest.mark.asyncio
    async def test_initialize_connection_refused(self, settings):
        factory = RedisConnectionFactory(settings)
        with patch(
            "tagcache.infrastructure.redis.connection_factory.Redis.ping",
            new=AsyncMock(side_effect=RedisConnectionError("refused")),
        ):
            with pytest.raises(RedisConnectionException) as exc_info:
                await factory.initialize()

        assert exc_info.value.details["port"] == 6379
        assert not factory.is_initialized

    @pytest.mark.asyncio
    async def test_initialize_auth_failure(self, settings):
        factory = RedisConnectionFactory(settings)
        with patch(
            "tagcache.infrastructure.redis.connection_factory.Redis.ping",
            new=AsyncMock(side_effect=AuthenticationError("bad password")),
        ):
            with pytest.raises(RedisAuthenticationException):
                await factory.initialize()

    @pytest.mark.asyncio
    async def test_initialize_success(self, settings):
        factory = RedisConnectionFactory(settings)
        with patch(
            "tagcache.infrastructure.redis.connection_factory.Redis.ping",
            new=AsyncMock(return_value=True),
        ):
            await factory.initialize()

        assert factory.is_initialized
        assert factory.get_metrics()["max_connections"] == settings.REDIS_MAX_CONNECTIONS
        await factory.close()
        assert not factory.is_initialized
