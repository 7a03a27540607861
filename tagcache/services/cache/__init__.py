"""Cache services: manager, serializer and tag index pruner."""

from .cache_manager import CacheManager
from .serializer import JsonCacheSerializer
from .tag_pruner import TagIndexPruner

__all__ = ["CacheManager", "JsonCacheSerializer", "TagIndexPruner"]
