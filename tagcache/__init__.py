"""
tagcache - Tag-Indexed Redis Cache

Response cache with expiry and tag-based cascading invalidation.
"""

from .constants import APP_NAME, APP_VERSION
from .services.cache.cache_manager import CacheManager
from .domain.cache.value_objects import CacheKey, CacheTag, TTL, CacheLookup, LookupStatus
from .bootstrap import create_cache_manager

__version__ = APP_VERSION

__all__ = [
    "APP_NAME",
    "CacheManager",
    "CacheKey",
    "CacheTag",
    "TTL",
    "CacheLookup",
    "LookupStatus",
    "create_cache_manager",
]
