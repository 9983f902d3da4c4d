# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metric name constants following Prometheus naming conventions.

All metric names use the `rda_` prefix.

Naming Conventions:
    - Counter metrics end with `_total`
    - Histogram metrics for time end with `_seconds`
    - Gauges use present-tense descriptive names

Label Best Practices:
    Use only categorical labels:
    - `store` - Logical storage store (profiles, evaluations, ...)
    - `storage_type` - Active backend tier (structured, flat, memory)
    - `operation` - Storage operation name

    NEVER use cache keys, record keys or URLs as label values.

Usage:
    >>> from resilient_data_access.observability.constants import CACHE_HITS_TOTAL
    >>> print(CACHE_HITS_TOTAL)
    'rda_cache_hits_total'
"""


# =============================================================================
# Global Prefix
# =============================================================================

METRIC_PREFIX = "rda"
"""Prefix for all Prometheus metrics in this library."""


# =============================================================================
# Request Cache Metrics (network/cache.py)
# =============================================================================

CACHE_HITS_TOTAL = f"{METRIC_PREFIX}_cache_hits_total"
"""Total request cache hits."""

CACHE_MISSES_TOTAL = f"{METRIC_PREFIX}_cache_misses_total"
"""Total request cache misses (absent or expired)."""

CACHE_EVICTIONS_TOTAL = f"{METRIC_PREFIX}_cache_evictions_total"
"""Total LRU evictions."""

CACHE_PRUNED_TOTAL = f"{METRIC_PREFIX}_cache_pruned_total"
"""Total entries removed by periodic pruning."""

CACHE_INVALIDATIONS_TOTAL = f"{METRIC_PREFIX}_cache_invalidations_total"
"""Total entries removed by pattern invalidation."""


# =============================================================================
# Deduplication Metrics (network/deduplicator.py)
# =============================================================================

DEDUP_EXECUTIONS_TOTAL = f"{METRIC_PREFIX}_dedup_executions_total"
"""Total unique executions started by the deduplicator."""

DEDUP_PIGGYBACKS_TOTAL = f"{METRIC_PREFIX}_dedup_piggybacks_total"
"""Total calls served by an execution already in flight."""

IN_FLIGHT_REQUESTS = f"{METRIC_PREFIX}_in_flight_requests"
"""Number of executions currently in flight."""


# =============================================================================
# Manager Metrics (network/manager.py)
# =============================================================================

REQUESTS_TOTAL = f"{METRIC_PREFIX}_requests_total"
"""Total calls to NetworkEfficiencyManager.request()."""

REQUESTS_CACHED_TOTAL = f"{METRIC_PREFIX}_requests_cached_total"
"""Total requests answered from cache."""

REQUESTS_NETWORK_TOTAL = f"{METRIC_PREFIX}_requests_network_total"
"""Total requests answered by the request function."""

REQUESTS_FAILED_TOTAL = f"{METRIC_PREFIX}_requests_failed_total"
"""Total requests whose request function raised."""

REQUESTS_THROTTLED_TOTAL = f"{METRIC_PREFIX}_requests_throttled_total"
"""Total throttled requests that were skipped."""

REQUESTS_SUPERSEDED_TOTAL = f"{METRIC_PREFIX}_requests_superseded_total"
"""Total debounced requests replaced by a newer call."""

REQUEST_LATENCY_SECONDS = f"{METRIC_PREFIX}_request_latency_seconds"
"""Latency of request functions that were actually executed."""


# =============================================================================
# Storage Metrics (storage/manager.py)
# =============================================================================

STORAGE_READS_TOTAL = f"{METRIC_PREFIX}_storage_reads_total"
"""Total storage reads."""

STORAGE_WRITES_TOTAL = f"{METRIC_PREFIX}_storage_writes_total"
"""Total storage writes."""

STORAGE_ERRORS_TOTAL = f"{METRIC_PREFIX}_storage_errors_total"
"""Total storage operation errors."""

STORAGE_CORRUPTED_TOTAL = f"{METRIC_PREFIX}_storage_corrupted_total"
"""Total records that failed integrity validation."""

STORAGE_REPAIRED_TOTAL = f"{METRIC_PREFIX}_storage_repaired_total"
"""Total corrupted records repaired and re-persisted."""

STORAGE_BACKEND_FALLBACKS_TOTAL = f"{METRIC_PREFIX}_storage_backend_fallbacks_total"
"""Total backend tiers skipped during initialization."""


# =============================================================================
# Histogram Buckets
# =============================================================================

LATENCY_BUCKETS = [0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
"""Default latency buckets for request functions."""


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
    "METRIC_PREFIX",
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
]
