"""
Main pytest configuration for tagcache tests.

Behavioural tests run against fakeredis, an in-process Redis that
implements MULTI/EXEC, sets, PX expiry and SCAN.
"""

import os

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis

# Set test environment variables before importing package modules
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"

from tagcache.core.config import Settings
from tagcache.monitoring.cache_metrics import CacheMetricsCollector
from tagcache.services.cache.cache_manager import CacheManager


@pytest.fixture
def settings():
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, ENVIRONMENT="test")


@pytest_asyncio.fixture
async def fake_redis():
    """Fresh in-process Redis with str replies."""
    client = FakeAsyncRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushall()
        await client.aclose()


@pytest.fixture
def metrics():
    return CacheMetricsCollector()


@pytest.fixture
def cache_manager(fake_redis, settings, metrics):
    """CacheManager wired to fakeredis."""
    return CacheManager.from_redis(fake_redis, settings=settings, metrics=metrics)


@pytest.fixture
def repository(cache_manager):
    return cache_manager.repository


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "redis: marks tests as Redis-related")
