# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Observability for the resilient data access layer.

Classes:
    UnifiedMetricsCollector: Metrics collector supporting dict and Prometheus.

Protocols:
    MetricsCollectorProtocol: Protocol for metrics collection backends.

Constants:
    PROMETHEUS_AVAILABLE: Whether prometheus_client is available.
    All metric name constants from the constants module.
"""

from .collector import (
    METRIC_DEFINITIONS,
    PROMETHEUS_AVAILABLE,
    MetricDefinition,
    UnifiedMetricsCollector,
)
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
    METRIC_PREFIX,
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
from .protocols import MetricsCollectorProtocol

__all__ = [
    "CACHE_EVICTIONS_TOTAL",
    "CACHE_HITS_TOTAL",
    "CACHE_INVALIDATIONS_TOTAL",
    "CACHE_MISSES_TOTAL",
    "CACHE_PRUNED_TOTAL",
    "DEDUP_EXECUTIONS_TOTAL",
    "DEDUP_PIGGYBACKS_TOTAL",
    "IN_FLIGHT_REQUESTS",
    "LATENCY_BUCKETS",
    "METRIC_DEFINITIONS",
    "METRIC_PREFIX",
    "PROMETHEUS_AVAILABLE",
    "REQUESTS_CACHED_TOTAL",
    "REQUESTS_FAILED_TOTAL",
    "REQUESTS_NETWORK_TOTAL",
    "REQUESTS_SUPERSEDED_TOTAL",
    "REQUESTS_THROTTLED_TOTAL",
    "REQUESTS_TOTAL",
    "REQUEST_LATENCY_SECONDS",
    "STORAGE_BACKEND_FALLBACKS_TOTAL",
    "STORAGE_CORRUPTED_TOTAL",
    "STORAGE_ERRORS_TOTAL",
    "STORAGE_READS_TOTAL",
    "STORAGE_REPAIRED_TOTAL",
    "STORAGE_WRITES_TOTAL",
    "MetricDefinition",
    "MetricsCollectorProtocol",
    "UnifiedMetricsCollector",
]
