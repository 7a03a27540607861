"""
Cache wiring.

Builds the Redis service, repository, metrics and manager from
settings, and tears them down on exit.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog

from .core.config import Settings, get_settings
from .domain.cache.value_objects import TTL
from .infrastructure.redis.redis_service import RedisService
from .infrastructure.repositories.cache_repository import RedisTaggedCacheRepository
from .monitoring.cache_metrics import CacheMetricsCollector
from .services.cache.cache_manager import CacheManager
from .services.cache.tag_pruner import TagIndexPruner

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def create_cache_manager(
    settings: Optional[Settings] = None,
    redis_service: Optional[RedisService] = None,
) -> AsyncIterator[CacheManager]:
    """
    Yield a ready CacheManager and close its resources afterwards.

    Usage:
        async with create_cache_manager() as cache:
            await cache.set("category:5", dto, tags=["category"])
    """
    settings = settings or get_settings()
    redis_service = redis_service or RedisService(settings)
    await redis_service.initialize()

    repository = RedisTaggedCacheRepository(
        redis_service,
        tag_prefix=settings.CACHE_TAG_PREFIX,
        key_tags_prefix=settings.CACHE_KEY_TAGS_PREFIX,
        scan_count=settings.TAG_PRUNE_SCAN_COUNT,
    )
    cache_manager = CacheManager(
        repository,
        default_expiry=TTL.minutes(settings.CACHE_DEFAULT_EXPIRY_MINUTES),
        metrics=CacheMetricsCollector() if settings.METRICS_ENABLED else None,
        redis_service=redis_service,
    )

    pruner: Optional[TagIndexPruner] = None
    if settings.TAG_PRUNE_ENABLED:
        pruner = TagIndexPruner(cache_manager, settings.TAG_PRUNE_INTERVAL_SECONDS)
        pruner.start()

    logger.info(
        "Cache manager ready",
        environment=settings.ENVIRONMENT,
        tag_pruning=settings.TAG_PRUNE_ENABLED,
        metrics=settings.METRICS_ENABLED,
    )
    try:
        yield cache_manager
    finally:
        if pruner is not None:
            await pruner.stop()
        await redis_service.close()
