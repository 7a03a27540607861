"""
Cache Manager Service

Caller-facing cache API. Orchestrates the tagged cache repository,
the JSON serializer, tracing and metrics.

Failure policy: every public operation catches every error, logs it
and returns a safe default. The cache is best-effort acceleration,
never a source of truth, so no exception crosses this boundary.
"""

import inspect
import time
from datetime import timedelta
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Set,
    Type,
    TypeVar,
    Union,
)

import structlog
from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode
from redis.asyncio import Redis

from ...core.config import Settings, get_settings
from ...domain.cache.exceptions import InvalidCacheKeyException
from ...domain.cache.repository_interfaces import TaggedCacheRepository
from ...domain.cache.value_objects import TTL, CacheKey, CacheLookup, CacheTag
from ...infrastructure.redis.redis_service import RedisService
from ...infrastructure.repositories.cache_repository import (
    RedisTaggedCacheRepository,
)
from ...monitoring.cache_metrics import CacheMetricsCollector
from .serializer import JsonCacheSerializer

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")

Expiry = Union[TTL, timedelta, int, float]
Tags = Union[str, Iterable[str]]


class CacheManager:
    """
    Tag-indexed cache with expiry and cascading invalidation.

    Example:
        await cache.set("category:5", dto, tags=["category"])
        dto = await cache.get("category:5", CategoryDto)
        await cache.remove_by_tag("category")
    """

    def __init__(
        self,
        repository: TaggedCacheRepository,
        *,
        default_expiry: Optional[Expiry] = None,
        serializer: Optional[JsonCacheSerializer] = None,
        metrics: Optional[CacheMetricsCollector] = None,
        redis_service: Optional[RedisService] = None,
    ):
        self.repository = repository
        self.default_ttl = (
            TTL.coerce(default_expiry)
            if default_expiry is not None
            else TTL.minutes(get_settings().CACHE_DEFAULT_EXPIRY_MINUTES)
        )
        self.serializer = serializer or JsonCacheSerializer()
        self.metrics = metrics
        self.redis_service = redis_service

    @classmethod
    def from_redis(
        cls,
        client: Redis,
        settings: Optional[Settings] = None,
        metrics: Optional[CacheMetricsCollector] = None,
    ) -> "CacheManager":
        """Build a manager around an already constructed Redis client."""
        settings = settings or get_settings()
        redis_service = RedisService(settings, client=client)
        repository = RedisTaggedCacheRepository(
            redis_service,
            tag_prefix=settings.CACHE_TAG_PREFIX,
            key_tags_prefix=settings.CACHE_KEY_TAGS_PREFIX,
            scan_count=settings.TAG_PRUNE_SCAN_COUNT,
        )
        return cls(
            repository,
            default_expiry=TTL.minutes(settings.CACHE_DEFAULT_EXPIRY_MINUTES),
            metrics=metrics,
            redis_service=redis_service,
        )

    # Validation

    def _key(self, key: str) -> str:
        try:
            value = CacheKey(key).value
        except ValueError as e:
            raise InvalidCacheKeyException(str(key), str(e)) from e
        if value.startswith(self.repository.reserved_prefixes):
            raise InvalidCacheKeyException(value, "key uses a reserved index prefix")
        return value

    @staticmethod
    def _tag(tag: str) -> str:
        try:
            return CacheTag(tag).value
        except ValueError as e:
            raise InvalidCacheKeyException(str(tag), str(e)) from e

    def _tags(self, tags: Optional[Tags]) -> List[str]:
        if tags is None:
            return []
        if isinstance(tags, str):
            tags = [tags]
        return list(dict.fromkeys(self._tag(tag) for tag in tags))

    # Bookkeeping

    def _record(self, operation: str, outcome: str, started: float) -> None:
        if self.metrics is not None:
            self.metrics.record(operation, outcome, time.perf_counter() - started)

    def _fail(
        self,
        span: Span,
        operation: str,
        started: float,
        error: Exception,
        **context: Any,
    ) -> None:
        logger.error(
            f"Cache {operation} failed",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            exc_info=error,
            **context,
        )
        span.set_status(Status(StatusCode.ERROR, str(error)))
        span.record_exception(error)
        self._record(operation, "error", started)

    # Reads

    async def lookup(self, key: str, model: Optional[Type[T]] = None) -> CacheLookup[T]:
        """
        Get a cached value, distinguishing hit, miss and error.

        Args:
            key: Cache key
            model: Expected shape (pydantic model, dataclass, ``List[X]``...);
                None returns plain decoded JSON

        Returns:
            CacheLookup with status HIT, MISS or ERROR
        """
        with tracer.start_as_current_span("cache_manager.get") as span:
            span.set_attribute("cache.key", str(key))
            started = time.perf_counter()
            try:
                cache_key = self._key(key)
                payload = await self.repository.get(cache_key)

                if payload is None:
                    span.set_attribute("cache.hit", False)
                    logger.debug("Cache miss", key=cache_key)
                    self._record("get", "miss", started)
                    return CacheLookup.miss()

                value = self.serializer.deserialize(cache_key, payload, model)
                span.set_attribute("cache.hit", True)
                logger.info("Cache hit", key=cache_key)
                self._record("get", "hit", started)
                return CacheLookup.hit(value)

            except Exception as e:
                self._fail(span, "get", started, e, key=str(key))
                return CacheLookup.failed(e)

    async def get(self, key: str, model: Optional[Type[T]] = None) -> Optional[T]:
        """
        Get a cached value.

        Returns None on a miss, an expired key, a store error or a
        payload that does not fit ``model``. Use ``lookup`` to tell
        these apart.
        """
        return (await self.lookup(key, model)).value

    async def exists(self, key: str) -> bool:
        """Check whether a key exists; False on error."""
        with tracer.start_as_current_span("cache_manager.exists") as span:
            span.set_attribute("cache.key", str(key))
            started = time.perf_counter()
            try:
                found = await self.repository.exists(self._key(key))
                self._record("exists", "hit" if found else "miss", started)
                return found
            except Exception as e:
                self._fail(span, "exists", started, e, key=str(key))
                return False

    async def get_time_to_live(self, key: str) -> Optional[timedelta]:
        """Remaining lifetime; None if absent, persistent or on error."""
        with tracer.start_as_current_span("cache_manager.get_time_to_live") as span:
            span.set_attribute("cache.key", str(key))
            started = time.perf_counter()
            try:
                remaining = await self.repository.get_ttl(self._key(key))
                self._record("ttl", "ok" if remaining is not None else "miss", started)
                return remaining
            except Exception as e:
                self._fail(span, "ttl", started, e, key=str(key))
                return None

    async def get_tags(self, key: str) -> Set[str]:
        """Tags recorded for a key; empty set on error."""
        with tracer.start_as_current_span("cache_manager.get_tags") as span:
            span.set_attribute("cache.key", str(key))
            started = time.perf_counter()
            try:
                tags = await self.repository.get_tags(self._key(key))
                self._record("get_tags", "ok", started)
                return tags
            except Exception as e:
                self._fail(span, "get_tags", started, e, key=str(key))
                return set()

    # Writes

    async def set(
        self,
        key: str,
        value: Any,
        expiry: Optional[Expiry] = None,
        tags: Optional[Tags] = None,
    ) -> None:
        """
        Cache a value.

        Args:
            key: Cache key
            value: Any JSON-encodable value, pydantic model or dataclass
            expiry: timedelta, seconds or TTL (default 30 minutes)
            tags: Tags for group invalidation
        """
        with tracer.start_as_current_span("cache_manager.set") as span:
            span.set_attribute("cache.key", str(key))
            started = time.perf_counter()
            try:
                cache_key = self._key(key)
                tag_values = self._tags(tags)
                ttl = TTL.coerce(expiry) if expiry is not None else self.default_ttl
                payload = self.serializer.serialize(cache_key, value)
                span.set_attribute("cache.tag_count", len(tag_values))

                if await self.repository.set(cache_key, payload, ttl, tag_values):
                    logger.info(
                        "Cache set",
                        key=cache_key,
                        tags=tag_values,
                        expiry_seconds=ttl.seconds,
                    )
                    self._record("set", "ok", started)
                else:
                    logger.warning("Failed to set cache", key=cache_key)
                    self._record("set", "error", started)

            except Exception as e:
                self._fail(span, "set", started, e, key=str(key))

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Union[T, Awaitable[T]]],
        model: Optional[Type[T]] = None,
        expiry: Optional[Expiry] = None,
        tags: Optional[Tags] = None,
    ) -> T:
        """
        Read-through helper: return the cached value or build and cache it.

        Errors raised by ``factory`` propagate; cache errors do not.
        A None result from ``factory`` is returned but not cached.
        """
        found = await self.lookup(key, model)
        if found.is_hit and found.value is not None:
            return found.value

        value = factory()
        if inspect.isawaitable(value):
            value = await value

        if value is not None:
            await self.set(key, value, expiry=expiry, tags=tags)
        return value

    # Invalidation

    async def remove(self, key: str) -> None:
        """Remove a key and excise it from every tag it carried."""
        with tracer.start_as_current_span("cache_manager.remove") as span:
            span.set_attribute("cache.key", str(key))
            started = time.perf_counter()
            try:
                cache_key = self._key(key)
                if await self.repository.remove(cache_key):
                    logger.info("Cache removed", key=cache_key)
                    self._record("remove", "ok", started)
                else:
                    self._record("remove", "error", started)
            except Exception as e:
                self._fail(span, "remove", started, e, key=str(key))

    async def remove_by_tag(self, tag: str) -> None:
        """Remove every key carrying ``tag``; logged no-op when none do."""
        with tracer.start_as_current_span("cache_manager.remove_by_tag") as span:
            span.set_attribute("cache.tag", str(tag))
            started = time.perf_counter()
            try:
                tag_value = self._tag(tag)
                removed = await self.repository.remove_by_tag(tag_value)
                span.set_attribute("cache.removed", removed)

                if removed:
                    logger.info(
                        f"Removed {removed} cache entries for tag: {tag_value}",
                        tag=tag_value,
                        removed=removed,
                    )
                    self._record("remove_by_tag", "ok", started)
                    if self.metrics is not None:
                        self.metrics.record_invalidated("remove_by_tag", removed)
                else:
                    logger.warning("No cache entries found for tag", tag=tag_value)
                    self._record("remove_by_tag", "noop", started)

            except Exception as e:
                self._fail(span, "remove_by_tag", started, e, tag=str(tag))

    async def remove_by_tags(self, tags: Tags) -> None:
        """Remove every key carrying any of ``tags``, each key once."""
        with tracer.start_as_current_span("cache_manager.remove_by_tags") as span:
            started = time.perf_counter()
            try:
                tag_values = self._tags(tags)
                span.set_attribute("cache.tag_count", len(tag_values))
                removed = (
                    await self.repository.remove_by_tags(tag_values) if tag_values else 0
                )
                span.set_attribute("cache.removed", removed)

                if removed:
                    logger.info(
                        f"Removed {removed} cache entries for tags: {', '.join(tag_values)}",
                        tags=tag_values,
                        removed=removed,
                    )
                    self._record("remove_by_tags", "ok", started)
                    if self.metrics is not None:
                        self.metrics.record_invalidated("remove_by_tags", removed)
                else:
                    logger.warning("No cache entries found for tags", tags=tag_values)
                    self._record("remove_by_tags", "noop", started)

            except Exception as e:
                self._fail(span, "remove_by_tags", started, e, tags=str(tags))

    # Maintenance

    async def prune_tag(self, tag: str) -> int:
        """Drop references to vanished keys from one tag; 0 on error."""
        with tracer.start_as_current_span("cache_manager.prune_tag") as span:
            span.set_attribute("cache.tag", str(tag))
            started = time.perf_counter()
            try:
                pruned = await self.repository.prune_tag(self._tag(tag))
                self._record("prune", "ok" if pruned else "noop", started)
                if self.metrics is not None:
                    self.metrics.record_pruned(pruned)
                return pruned
            except Exception as e:
                self._fail(span, "prune", started, e, tag=str(tag))
                return 0

    async def prune_tags(self) -> int:
        """
        Prune every tag member-set in the store.

        Returns the number of stale references removed before any
        error stopped the pass.
        """
        with tracer.start_as_current_span("cache_manager.prune_tags") as span:
            started = time.perf_counter()
            total = 0
            scanned = 0
            try:
                async for tag in self.repository.iter_tags():
                    scanned += 1
                    total += await self.prune_tag(tag)
                span.set_attribute("cache.tags_scanned", scanned)
                logger.info(
                    "Tag index pruning finished", tags_scanned=scanned, pruned=total
                )
                self._record("prune_all", "ok", started)
            except Exception as e:
                self._fail(
                    span, "prune_all", started, e, tags_scanned=scanned, pruned=total
                )
            return total

    async def health_check(self) -> Dict[str, Any]:
        """Store health plus cache metrics."""
        try:
            if self.redis_service is not None:
                status = await self.redis_service.health_check()
            else:
                status = {"status": "unknown", "service": "redis"}
            if self.metrics is not None:
                status["cache_metrics"] = {
                    "totals": self.metrics.snapshot(),
                    "hit_ratio": round(self.metrics.hit_ratio, 4),
                }
            return status
        except Exception as e:
            logger.error("Cache manager health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}
