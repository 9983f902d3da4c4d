# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Network efficiency: caching, deduplication, debouncing and throttling.

- RequestCache: TTL + LRU cache for request results
- RequestDeduplicator: collapses concurrent identical in-flight calls
- Debouncer / Throttler: time-based call-rate primitives
- NetworkEfficiencyManager: facade composing all of the above
"""

from .cache import CacheEntry, CacheStats, RequestCache, canonical_json
from .config import NetworkConfig
from .deduplicator import DeduplicationStats, RequestDeduplicator
from .manager import NetworkEfficiencyManager, RequestFn, RequestMetrics
from .timing import SKIPPED, Debouncer, Skipped, Throttler

__all__ = [
    "SKIPPED",
    "CacheEntry",
    "CacheStats",
    "Debouncer",
    "DeduplicationStats",
    "NetworkConfig",
    "NetworkEfficiencyManager",
    "RequestCache",
    "RequestDeduplicator",
    "RequestFn",
    "RequestMetrics",
    "Skipped",
    "Throttler",
    "canonical_json",
]
