"""
Unit tests for create_cache_manager wiring.
"""

import pytest

from tagcache import create_cache_manager
from tagcache.core.config import Settings
from tagcache.infrastructure.redis.redis_service import RedisService


@pytest.mark.asyncio
async def test_yields_working_manager(fake_redis):
    settings = Settings(_env_file=None, CACHE_DEFAULT_EXPIRY_MINUTES=5)
    service = RedisService(settings, client=fake_redis)

    async with create_cache_manager(settings, redis_service=service) as cache:
        await cache.set("category:5", {"id": 5}, tags=["category"])
        assert await cache.get("category:5") == {"id": 5}
        assert cache.metrics is not None
        assert cache.default_ttl.seconds == 300

    assert await fake_redis.exists("category:5") == 1


@pytest.mark.asyncio
async def test_pruner_lifecycle(fake_redis):
    settings = Settings(
        _env_file=None, TAG_PRUNE_ENABLED=True, METRICS_ENABLED=False
    )
    service = RedisService(settings, client=fake_redis)

    async with create_cache_manager(settings, redis_service=service) as cache:
        assert cache.metrics is None
        await cache.set("k", 1, tags=["t"])
        assert await cache.prune_tags() == 0
