"""
Unit tests for the Redis circuit breaker.
"""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    ResponseError,
)

from tagcache.infrastructure.redis.circuit_breaker import (
    CircuitBreakerConfig,
    CircuitState,
    RedisCircuitBreaker,
)
from tagcache.infrastructure.redis.exceptions import RedisCircuitBreakerOpenException


@pytest.fixture
def breaker():
    return RedisCircuitBreaker(
        CircuitBreakerConfig(failure_threshold=2, recovery_timeout=60.0)
    )


class TestCircuitBreaker:
    """Test circuit state transitions."""

    @pytest.mark.asyncio
    async def test_success_passes_result_through(self, breaker):
        assert await breaker.call(AsyncMock(return_value="ok")) == "ok"
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self, breaker):
        failing = AsyncMock(side_effect=RedisConnectionError("down"))

        for _ in range(2):
            with pytest.raises(RedisConnectionError):
                await breaker.call(failing)

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(RedisCircuitBreakerOpenException):
            await breaker.call(failing)
        # Rejected without invoking the store
        assert failing.await_count == 2
        assert breaker.metrics.rejected_calls == 1

    @pytest.mark.asyncio
    async def test_command_errors_do_not_count(self, breaker):
        failing = AsyncMock(side_effect=ResponseError("WRONGTYPE"))

        for _ in range(3):
            with pytest.raises(ResponseError):
                await breaker.call(failing)

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_half_open_recovers(self, breaker):
        breaker.config.recovery_timeout = 0.0
        failing = AsyncMock(side_effect=RedisConnectionError("down"))
        for _ in range(2):
            with pytest.raises(RedisConnectionError):
                await breaker.call(failing)
        assert breaker.state == CircuitState.OPEN

        assert await breaker.call(AsyncMock(return_value=1)) == 1
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self, breaker):
        breaker.config.recovery_timeout = 0.0
        failing = AsyncMock(side_effect=RedisConnectionError("down"))
        for _ in range(2):
            with pytest.raises(RedisConnectionError):
                await breaker.call(failing)

        with pytest.raises(RedisConnectionError):
            await breaker.call(failing)
        assert breaker.state == CircuitState.OPEN
        assert breaker.metrics.circuit_opens == 2

    @pytest.mark.asyncio
    async def test_reset(self, breaker):
        failing = AsyncMock(side_effect=RedisConnectionError("down"))
        for _ in range(2):
            with pytest.raises(RedisConnectionError):
                await breaker.call(failing)

        await breaker.reset()

        status = breaker.get_status()
        assert status["state"] == "closed"
        assert status["failure_count"] == 0
        assert status["metrics"]["failed_calls"] == 2
