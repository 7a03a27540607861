"""
Cache Metrics Collector

Prometheus counters and histograms for cache operations.
Each collector owns its registry so several managers (and tests)
can coexist in one process.
"""

from typing import Dict, Iterator, Optional, Tuple

import structlog
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

logger = structlog.get_logger(__name__)


class CacheMetricsCollector:
    """Records outcome and latency of every cache manager operation."""

    OUTCOMES = ("hit", "miss", "ok", "noop", "error")

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        namespace: str = "tagcache",
    ):
        self.registry = registry or CollectorRegistry()
        self.namespace = namespace

        self.prom_operations_total = Counter(
            f"{namespace}_operations_total",
            "Total number of cache operations by outcome",
            ["operation", "outcome"],
            registry=self.registry,
        )
        self.prom_operation_duration_seconds = Histogram(
            f"{namespace}_operation_duration_seconds",
            "Cache operation latency in seconds",
            ["operation"],
            buckets=[0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
            registry=self.registry,
        )
        self.prom_keys_invalidated_total = Counter(
            f"{namespace}_keys_invalidated_total",
            "Total number of keys removed by invalidation",
            ["operation"],
            registry=self.registry,
        )
        self.prom_tag_references_pruned_total = Counter(
            f"{namespace}_tag_references_pruned_total",
            "Total number of stale key references pruned from tag member-sets",
            registry=self.registry,
        )

    def record(self, operation: str, outcome: str, duration_seconds: float) -> None:
        """Record one finished operation."""
        if outcome not in self.OUTCOMES:
            logger.warning("Unknown cache outcome", operation=operation, outcome=outcome)
        self.prom_operations_total.labels(operation=operation, outcome=outcome).inc()
        self.prom_operation_duration_seconds.labels(operation=operation).observe(
            max(0.0, duration_seconds)
        )

    def record_invalidated(self, operation: str, count: int) -> None:
        if count > 0:
            self.prom_keys_invalidated_total.labels(operation=operation).inc(count)

    def record_pruned(self, count: int) -> None:
        if count > 0:
            self.prom_tag_references_pruned_total.inc(count)

    @staticmethod
    def _counter_values(counter: Counter) -> Iterator[Tuple[Dict[str, str], float]]:
        for metric in counter.collect():
            for sample in metric.samples:
                if sample.name.endswith("_total") and sample.value:
                    yield sample.labels, sample.value

    def snapshot(self) -> Dict[str, int]:
        """Non-zero counter totals keyed ``"<operation>.<outcome>"``."""
        totals: Dict[str, int] = {}
        for labels, value in self._counter_values(self.prom_operations_total):
            totals[f"{labels['operation']}.{labels['outcome']}"] = int(value)
        for labels, value in self._counter_values(self.prom_keys_invalidated_total):
            totals[f"{labels['operation']}.keys"] = int(value)
        for _, value in self._counter_values(self.prom_tag_references_pruned_total):
            totals["prune.references"] = int(value)
        return totals

    def _operation_count(self, operation: str, outcome: str) -> float:
        value = self.registry.get_sample_value(
            f"{self.namespace}_operations_total",
            {"operation": operation, "outcome": outcome},
        )
        return value or 0.0

    @property
    def hit_ratio(self) -> float:
        hits = self._operation_count("get", "hit")
        misses = self._operation_count("get", "miss")
        if hits + misses == 0:
            return 0.0
        return hits / (hits + misses)

    def render(self) -> bytes:
        """Prometheus exposition format."""
        return generate_latest(self.registry)
