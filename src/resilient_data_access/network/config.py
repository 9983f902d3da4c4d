# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Network Efficiency Configuration

Configuration for the request cache, pruning task and the default
debounce/throttle windows used by NetworkEfficiencyManager.
"""

from dataclasses import dataclass


@dataclass
class NetworkConfig:
    """
    Configuration for NetworkEfficiencyManager.

    All durations are in seconds.
    """

    # === Request Cache ===

    cache_max_size: int = 200
    """Maximum number of cached responses before LRU eviction."""

    cache_ttl: float = 300.0
    """Default time-to-live for cached responses."""

    prune_interval: float = 60.0
    """Interval between background prunes of expired cache entries."""

    # === Call-Rate Primitives ===

    default_debounce_delay: float = 0.3
    """Quiet window used by debounced_request() when no delay is given."""

    default_throttle_limit: float = 1.0
    """Minimum spacing used by throttled_request() when no limit is given."""

    # === Metrics ===

    metrics_enabled: bool = True
    """Report to the metrics collector when one is supplied."""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.cache_max_size < 1:
            raise ValueError("cache_max_size must be at least 1")
        if self.cache_ttl <= 0:
            raise ValueError("cache_ttl must be positive")
        if self.prune_interval <= 0:
            raise ValueError("prune_interval must be positive")
        if self.default_debounce_delay < 0:
            raise ValueError("default_debounce_delay must be non-negative")
        if self.default_throttle_limit < 0:
            raise ValueError("default_throttle_limit must be non-negative")


__all__ = ["NetworkConfig"]
