# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Unified metrics collector supporting both dict-based and Prometheus metrics.

Features:
    1. Thread-safe counter/gauge/histogram operations
    2. Automatic Prometheus metric registration when available
    3. Dict-based snapshots for JSON export and ``get_stats()`` payloads
    4. Label cardinality protection (max 1000 unique combinations per metric)
    5. Optional HTTP server for Prometheus scraping

Usage:
    >>> from resilient_data_access.observability import UnifiedMetricsCollector
    >>> collector = UnifiedMetricsCollector(enable_prometheus=False)
    >>> collector.inc_counter('rda_storage_reads_total', labels={'store': 'profiles'})
    >>> metrics = collector.get_metrics()

Prometheus Integration:
    When prometheus_client is installed (``pip install resilient-data-access[prometheus]``),
    metrics are registered with the default registry or the registry passed in.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar

from .constants import (
    CACHE_EVICTIONS_TOTAL,
    CACHE_HITS_TOTAL,
    CACHE_INVALIDATIONS_TOTAL,
    CACHE_MISSES_TOTAL,
    CACHE_PRUNED_TOTAL,
    DEDUP_EXECUTIONS_TOTAL,
    DEDUP_PIGGYBACKS_TOTAL,
    IN_FLIGHT_REQUESTS,
    LATENCY_BUCKETS,
    REQUEST_LATENCY_SECONDS,
    REQUESTS_CACHED_TOTAL,
    REQUESTS_FAILED_TOTAL,
    REQUESTS_NETWORK_TOTAL,
    REQUESTS_SUPERSEDED_TOTAL,
    REQUESTS_THROTTLED_TOTAL,
    REQUESTS_TOTAL,
    STORAGE_BACKEND_FALLBACKS_TOTAL,
    STORAGE_CORRUPTED_TOTAL,
    STORAGE_ERRORS_TOTAL,
    STORAGE_READS_TOTAL,
    STORAGE_REPAIRED_TOTAL,
    STORAGE_WRITES_TOTAL,
)

logger = logging.getLogger(__name__)

try:
    from prometheus_client import (
        REGISTRY as _REGISTRY,
        Counter as _Counter,
        Gauge as _Gauge,
        Histogram as _Histogram,
        start_http_server as _start_http_server,
    )

    PROMETHEUS_AVAILABLE = True
except ImportError:
    _REGISTRY = None
    _Counter = None
    _Gauge = None
    _Histogram = None
    _start_http_server = None
    PROMETHEUS_AVAILABLE = False


@dataclass
class MetricDefinition:
    """Schema for a metric: type, description, labels and histogram buckets."""

    name: str
    metric_type: str  # 'counter', 'gauge', 'histogram'
    description: str
    label_names: tuple[str, ...] = ()
    buckets: list[float] | None = None


METRIC_DEFINITIONS: dict[str, MetricDefinition] = {
    # === Request Cache ===
    CACHE_HITS_TOTAL: MetricDefinition(
        CACHE_HITS_TOTAL, "counter", "Total request cache hits"
    ),
    CACHE_MISSES_TOTAL: MetricDefinition(
        CACHE_MISSES_TOTAL, "counter", "Total request cache misses"
    ),
    CACHE_EVICTIONS_TOTAL: MetricDefinition(
        CACHE_EVICTIONS_TOTAL, "counter", "Total LRU evictions"
    ),
    CACHE_PRUNED_TOTAL: MetricDefinition(
        CACHE_PRUNED_TOTAL, "counter", "Total entries removed by pruning"
    ),
    CACHE_INVALIDATIONS_TOTAL: MetricDefinition(
        CACHE_INVALIDATIONS_TOTAL, "counter", "Total entries invalidated"
    ),
    # === Deduplication ===
    DEDUP_EXECUTIONS_TOTAL: MetricDefinition(
        DEDUP_EXECUTIONS_TOTAL, "counter", "Total unique executions"
    ),
    DEDUP_PIGGYBACKS_TOTAL: MetricDefinition(
        DEDUP_PIGGYBACKS_TOTAL, "counter", "Total deduplicated calls"
    ),
    IN_FLIGHT_REQUESTS: MetricDefinition(
        IN_FLIGHT_REQUESTS, "gauge", "Executions currently in flight"
    ),
    # === Manager ===
    REQUESTS_TOTAL: MetricDefinition(REQUESTS_TOTAL, "counter", "Total requests"),
    REQUESTS_CACHED_TOTAL: MetricDefinition(
        REQUESTS_CACHED_TOTAL, "counter", "Total requests served from cache"
    ),
    REQUESTS_NETWORK_TOTAL: MetricDefinition(
        REQUESTS_NETWORK_TOTAL, "counter", "Total requests served by the network"
    ),
    REQUESTS_FAILED_TOTAL: MetricDefinition(
        REQUESTS_FAILED_TOTAL, "counter", "Total failed requests"
    ),
    REQUESTS_THROTTLED_TOTAL: MetricDefinition(
        REQUESTS_THROTTLED_TOTAL, "counter", "Total throttled requests skipped"
    ),
    REQUESTS_SUPERSEDED_TOTAL: MetricDefinition(
        REQUESTS_SUPERSEDED_TOTAL, "counter", "Total debounced requests superseded"
    ),
    REQUEST_LATENCY_SECONDS: MetricDefinition(
        REQUEST_LATENCY_SECONDS,
        "histogram",
        "Latency of executed request functions",
        buckets=LATENCY_BUCKETS,
    ),
    # === Storage ===
    STORAGE_READS_TOTAL: MetricDefinition(
        STORAGE_READS_TOTAL, "counter", "Total storage reads", ("store",)
    ),
    STORAGE_WRITES_TOTAL: MetricDefinition(
        STORAGE_WRITES_TOTAL, "counter", "Total storage writes", ("store",)
    ),
    STORAGE_ERRORS_TOTAL: MetricDefinition(
        STORAGE_ERRORS_TOTAL,
        "counter",
        "Total storage errors",
        ("store", "operation"),
    ),
    STORAGE_CORRUPTED_TOTAL: MetricDefinition(
        STORAGE_CORRUPTED_TOTAL, "counter", "Total corrupted records", ("store",)
    ),
    STORAGE_REPAIRED_TOTAL: MetricDefinition(
        STORAGE_REPAIRED_TOTAL, "counter", "Total repaired records", ("store",)
    ),
    STORAGE_BACKEND_FALLBACKS_TOTAL: MetricDefinition(
        STORAGE_BACKEND_FALLBACKS_TOTAL,
        "counter",
        "Total backend tiers skipped during initialization",
        ("storage_type",),
    ),
}


class UnifiedMetricsCollector:
    """
    Unified metrics collector supporting both dict-based and Prometheus metrics.

    Thread Safety:
        All operations use RLock for thread-safe access.

    Cardinality Protection:
        At most MAX_LABEL_COMBINATIONS unique label combinations are tracked
        per metric; further combinations are dropped with a warning.
    """

    MAX_LABEL_COMBINATIONS: ClassVar[int] = 1000

    def __init__(
        self,
        enable_prometheus: bool = True,
        registry: Any | None = None,
    ) -> None:
        """
        Initialize the metrics collector.

        Args:
            enable_prometheus: Whether to enable Prometheus metrics (if available)
            registry: Optional Prometheus CollectorRegistry for testing
        """
        self._enable_prometheus = enable_prometheus and PROMETHEUS_AVAILABLE
        self._registry = registry if registry is not None else _REGISTRY

        self._counters: dict[str, dict[str, int]] = defaultdict(
            lambda: defaultdict(int)
        )
        self._gauges: dict[str, dict[str, float]] = defaultdict(
            lambda: defaultdict(float)
        )
        self._histograms: dict[str, dict[str, list[float]]] = defaultdict(
            lambda: defaultdict(list)
        )

        self._lock = threading.RLock()

        # Prometheus metric instances, keyed by metric name
        self._prom_metrics: dict[str, Any] = {}

        self._label_combinations: dict[str, set[str]] = defaultdict(set)
        self._server_running = False

        logger.debug(
            f"UnifiedMetricsCollector initialized "
            f"(prometheus={'enabled' if self._enable_prometheus else 'disabled'})"
        )

    def _labels_to_key(self, labels: dict[str, str] | None) -> str:
        """Convert labels dict to a stable string key."""
        if not labels:
            return ""
        return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))

    def _check_cardinality(self, name: str, label_key: str) -> bool:
        """Return False if this label combination would exceed the limit."""
        if label_key in self._label_combinations[name]:
            return True
        if len(self._label_combinations[name]) >= self.MAX_LABEL_COMBINATIONS:
            logger.warning(
                f"Cardinality limit ({self.MAX_LABEL_COMBINATIONS}) reached "
                f"for metric {name}. Dropping label combination: {label_key}"
            )
            return False
        self._label_combinations[name].add(label_key)
        return True

    def _get_or_create_prom_metric(
        self, name: str, metric_type: str, labels: dict[str, str] | None
    ) -> Any | None:
        """Get or lazily register the Prometheus metric backing ``name``."""
        if not self._enable_prometheus:
            return None

        if name not in self._prom_metrics:
            defn = METRIC_DEFINITIONS.get(name)
            if defn is None or defn.metric_type != metric_type:
                defn = MetricDefinition(
                    name,
                    metric_type,
                    f"Dynamic {metric_type}: {name}",
                    tuple(sorted(labels)) if labels else (),
                )

            factories: dict[str, Callable[..., Any] | None] = {
                "counter": _Counter,
                "gauge": _Gauge,
                "histogram": _Histogram,
            }
            factory = factories[metric_type]
            if factory is None:
                return None

            kwargs: dict[str, Any] = {"registry": self._registry}
            if metric_type == "histogram":
                kwargs["buckets"] = defn.buckets or LATENCY_BUCKETS
            try:
                self._prom_metrics[name] = factory(
                    name, defn.description, list(defn.label_names), **kwargs
                )
            except Exception as e:
                logger.warning(f"Failed to create Prometheus {metric_type} {name}: {e}")
                return None

        return self._prom_metrics.get(name)

    def _update_prom(
        self,
        name: str,
        metric_type: str,
        method: str,
        value: float,
        labels: dict[str, str] | None,
    ) -> None:
        metric = self._get_or_create_prom_metric(name, metric_type, labels)
        if metric is None:
            return
        try:
            target = metric.labels(**labels) if labels else metric
            getattr(target, method)(value)
        except Exception as e:
            logger.debug(f"Prometheus {metric_type} update failed for {name}: {e}")

    # === Counter Operations ===

    def inc_counter(
        self,
        name: str,
        value: int = 1,
        labels: dict[str, str] | None = None,
    ) -> None:
        """
        Increment a counter metric.

        Raises:
            ValueError: If value is negative
        """
        if value < 0:
            raise ValueError("Counter increment must be non-negative")

        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._check_cardinality(name, label_key):
                return
            self._counters[name][label_key] += value

        self._update_prom(name, "counter", "inc", value, labels)

    # === Gauge Operations ===

    def set_gauge(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge metric to a specific value."""
        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._check_cardinality(name, label_key):
                return
            self._gauges[name][label_key] = value

        self._update_prom(name, "gauge", "set", value, labels)

    # === Histogram Operations ===

    def observe_histogram(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        """Record an observation in a histogram."""
        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._check_cardinality(name, label_key):
                return
            observations = self._histograms[name][label_key]
            observations.append(value)
            # Keep only recent observations to bound memory
            if len(observations) > 10000:
                self._histograms[name][label_key] = observations[-5000:]

        self._update_prom(name, "histogram", "observe", value, labels)

    # === Snapshot Operations ===

    def get_metrics(self) -> dict[str, Any]:
        """Get a JSON-serializable snapshot of all metrics."""
        with self._lock:
            counters = {
                name: dict(label_values)
                for name, label_values in self._counters.items()
            }
            gauges = {
                name: dict(label_values) for name, label_values in self._gauges.items()
            }

            histograms: dict[str, dict[str, dict[str, Any]]] = {}
            for name, label_values in self._histograms.items():
                histograms[name] = {}
                for label_key, observations in label_values.items():
                    if observations:
                        histograms[name][label_key] = {
                            "count": len(observations),
                            "sum": sum(observations),
                            "avg": sum(observations) / len(observations),
                            "min": min(observations),
                            "max": max(observations),
                        }

        return {
            "counters": counters,
            "gauges": gauges,
            "histograms": histograms,
        }

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        """Get the current value of a single counter (0 if never incremented)."""
        with self._lock:
            return self._counters.get(name, {}).get(self._labels_to_key(labels), 0)

    # === Lifecycle ===

    def reset(self) -> None:
        """Reset all dict-based metrics to zero."""
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()
            self._label_combinations.clear()

        logger.debug("Metrics collector reset")

    def start_http_server(self, host: str = "127.0.0.1", port: int = 9090) -> bool:
        """
        Start the Prometheus HTTP server for metrics scraping.

        Returns:
            True if the server is running after the call, False otherwise
        """
        if _start_http_server is None:
            logger.warning(
                "Cannot start Prometheus server: prometheus_client not installed"
            )
            return False

        if self._server_running:
            logger.warning("Prometheus server already running")
            return True

        try:
            if self._registry is not None:
                _start_http_server(port, addr=host, registry=self._registry)
            else:
                _start_http_server(port, addr=host)
            self._server_running = True
            logger.info(f"Prometheus metrics server started on {host}:{port}")
            return True
        except Exception as e:
            logger.error(f"Failed to start Prometheus server: {e}")
            return False

    @property
    def prometheus_enabled(self) -> bool:
        """Check if Prometheus metrics are enabled."""
        return self._enable_prometheus

    @property
    def server_running(self) -> bool:
        """Check if the Prometheus HTTP server is running."""
        return self._server_running


__all__ = [
    "METRIC_DEFINITIONS",
    "PROMETHEUS_AVAILABLE",
    "MetricDefinition",
    "UnifiedMetricsCollector",
]
