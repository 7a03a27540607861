"""Redis-backed repository implementations."""

from .cache_repository import RedisTaggedCacheRepository

__all__ = ["RedisTaggedCacheRepository"]
