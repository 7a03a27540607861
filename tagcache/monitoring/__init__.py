"""Cache operation metrics."""

from .cache_metrics import CacheMetricsCollector

__all__ = ["CacheMetricsCollector"]
