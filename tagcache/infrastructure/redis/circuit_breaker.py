"""
Redis Circuit Breaker Implementation

Implements circuit breaker pattern for Redis operations
to prevent cascading failures and provide graceful degradation.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError,
)

from .exceptions import RedisCircuitBreakerOpenException

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject calls
    HALF_OPEN = "half_open"  # Testing if service recovered


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    # Failure threshold - number of failures before opening
    failure_threshold: int = 5

    # Recovery timeout - seconds to wait before trying again
    recovery_timeout: float = 60.0

    # Success threshold - number of successes needed to close circuit
    success_threshold: int = 1

    # Only these count as store unavailability; command errors do not
    failure_exceptions: tuple = (
        RedisConnectionError,
        RedisTimeoutError,
        ConnectionError,
        TimeoutError,
        OSError,
    )


@dataclass
class CircuitBreakerMetrics:
    """Metrics for circuit breaker monitoring."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    circuit_opens: int = 0
    last_failure_time: Optional[float] = None
    last_success_time: Optional[float] = None

    @property
    def failure_rate(self) -> float:
        """Calculate failure rate."""
        if self.total_calls == 0:
            return 0.0
        return self.failed_calls / self.total_calls


class RedisCircuitBreaker:
    """
    Circuit breaker for Redis operations.

    Stops calling Redis once the failure threshold is reached and the
    recovery timeout has not elapsed. Calls are never retried and no
    timeout is added; the client's socket timeouts apply.
    """

    def __init__(self, config: Optional[CircuitBreakerConfig] = None):
        self.config = config or CircuitBreakerConfig()
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: Optional[float] = None
        self.last_state_change_time = time.time()
        self.metrics = CircuitBreakerMetrics()
        self._lock = asyncio.Lock()

    async def call(self, func: Callable[[], Awaitable[T]]) -> T:
        """
        Execute an async callable with circuit breaker protection.

        Raises:
            RedisCircuitBreakerOpenException: If circuit is open
            Exception: Original exception from the call
        """
        async with self._lock:
            self.metrics.total_calls += 1
            if self.state == CircuitState.OPEN:
                if self._should_attempt_reset():
                    self._transition(CircuitState.HALF_OPEN)
                    logger.info(
                        "Circuit breaker transitioning to HALF_OPEN",
                        extra={"failure_count": self.failure_count},
                    )
                else:
                    self.metrics.rejected_calls += 1
                    raise RedisCircuitBreakerOpenException()

        try:
            result = await func()
        except self.config.failure_exceptions as e:
            await self._record_failure(type(e).__name__)
            raise

        await self._record_success()
        return result

    async def _record_success(self) -> None:
        """Record successful operation."""
        async with self._lock:
            self.metrics.successful_calls += 1
            self.metrics.last_success_time = time.time()

            if self.state == CircuitState.HALF_OPEN:
                self.success_count += 1
                if self.success_count >= self.config.success_threshold:
                    self._transition(CircuitState.CLOSED)
                    self.failure_count = 0
                    self.success_count = 0
                    logger.info("Circuit breaker: circuit closed after recovery")
            elif self.failure_count > 0:
                self.failure_count = 0

    async def _record_failure(self, failure_type: str) -> None:
        """Record failed operation."""
        async with self._lock:
            self.metrics.failed_calls += 1
            self.metrics.last_failure_time = time.time()
            self.last_failure_time = self.metrics.last_failure_time

            if self.state == CircuitState.HALF_OPEN:
                # Immediate opening on failure in half-open state
                self._open()
                logger.warning(
                    "Circuit breaker: circuit opened again after failure in half-open state",
                    extra={"failure_type": failure_type},
                )
                return

            self.failure_count += 1
            if (
                self.state == CircuitState.CLOSED
                and self.failure_count >= self.config.failure_threshold
            ):
                self._open()
                logger.warning(
                    "Circuit breaker: circuit opened due to failure threshold",
                    extra={
                        "failure_count": self.failure_count,
                        "threshold": self.config.failure_threshold,
                        "failure_type": failure_type,
                    },
                )

    def _open(self) -> None:
        self._transition(CircuitState.OPEN)
        self.success_count = 0
        self.metrics.circuit_opens += 1

    def _transition(self, state: CircuitState) -> None:
        self.state = state
        self.last_state_change_time = time.time()

    def _should_attempt_reset(self) -> bool:
        """Check if enough time has passed to attempt circuit reset."""
        if self.last_failure_time is None:
            return True
        return time.time() - self.last_failure_time >= self.config.recovery_timeout

    def get_status(self) -> dict:
        """Get current circuit breaker status for monitoring."""
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "last_failure_time": self.last_failure_time,
            "last_state_change_time": self.last_state_change_time,
            "metrics": {
                "total_calls": self.metrics.total_calls,
                "successful_calls": self.metrics.successful_calls,
                "failed_calls": self.metrics.failed_calls,
                "rejected_calls": self.metrics.rejected_calls,
                "failure_rate": self.metrics.failure_rate,
                "circuit_opens": self.metrics.circuit_opens,
            },
            "config": {
                "failure_threshold": self.config.failure_threshold,
                "recovery_timeout": self.config.recovery_timeout,
                "success_threshold": self.config.success_threshold,
            },
        }

    async def reset(self) -> None:
        """Manually reset circuit breaker to closed state."""
        async with self._lock:
            self._transition(CircuitState.CLOSED)
            self.failure_count = 0
            self.success_count = 0
            self.last_failure_time = None

            logger.info("Circuit breaker manually reset to CLOSED state")
