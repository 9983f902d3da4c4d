# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Request cache with TTL expiry and LRU eviction.

Lookups and writes are synchronous and never suspend, so every mutation is
atomic with respect to the event loop. Expired entries are removed lazily on
read and by a periodic prune task owned by the cache's lifecycle.
"""

import asyncio
import contextlib
import json
import logging
import re
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

from ..exceptions import ConfigurationError
from ..observability.constants import (
    CACHE_EVICTIONS_TOTAL,
    CACHE_HITS_TOTAL,
    CACHE_INVALIDATIONS_TOTAL,
    CACHE_MISSES_TOTAL,
    CACHE_PRUNED_TOTAL,
)
from ..observability.protocols import MetricsCollectorProtocol

logger = logging.getLogger(__name__)


def canonical_json(value: Any) -> str:
    """Serialize ``value`` so that equal structures give equal strings."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


@dataclass
class CacheEntry:
    """A cached response and its freshness window (epoch seconds)."""

    key: str
    response: Any
    cached_at: float
    expires_at: float

    @property
    def is_expired(self) -> bool:
        return time.time() > self.expires_at


@dataclass
class CacheStats:
    """Request cache counters."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class RequestCache:
    """
    TTL + LRU cache for request results.

    The OrderedDict doubles as the access order: the head is the
    least-recently-used key and the tail the most-recently-used one, so a
    key is present in the map exactly when it is present in the order.

    Example:
        >>> cache = RequestCache(max_size=2, default_ttl=60.0)
        >>> key = cache.generate_key("GET", "/users/1")
        >>> cache.set(key, {"id": 1})
        >>> cache.get(key)
        {'id': 1}
    """

    def __init__(
        self,
        max_size: int = 100,
        default_ttl: float = 300.0,
        cleanup_interval: float = 60.0,
        metrics_collector: MetricsCollectorProtocol | None = None,
    ) -> None:
        if max_size < 1:
            raise ConfigurationError("max_size must be at least 1")
        if default_ttl <= 0:
            raise ConfigurationError("default_ttl must be positive")

        self.max_size = max_size
        self.default_ttl = default_ttl
        self.cleanup_interval = cleanup_interval

        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self.stats = CacheStats()
        self._metrics_collector = metrics_collector

        self._cleanup_task: asyncio.Task[None] | None = None
        self._running = False

    # === Keys ===

    @staticmethod
    def generate_key(method: str, url: str, body: Any = None) -> str:
        """
        Build a deterministic composite key from request parameters.

        The body is serialized canonically (sorted keys, compact separators),
        so dict bodies that differ only in key order share a key.
        """
        parts = [method.upper(), url]
        if body is not None:
            parts.append(canonical_json(body))
        return "::".join(parts)

    # === Lookup / Insert ===

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss or expiry."""
        entry = self._entries.get(key)

        if entry is None:
            self._record_miss()
            return None

        if entry.is_expired:
            del self._entries[key]
            self._record_miss()
            logger.debug(f"Cache entry expired on read: {key}")
            return None

        self._entries.move_to_end(key)
        self.stats.hits += 1
        if self._metrics_collector:
            self._metrics_collector.inc_counter(CACHE_HITS_TOTAL)
        return entry.response

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Cache ``value`` under ``key`` for ``ttl`` seconds (default TTL if None)."""
        now = time.time()
        expires_at = now + (ttl if ttl is not None else self.default_ttl)

        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self.max_size:
            self._evict_oldest()

        self._entries[key] = CacheEntry(
            key=key, response=value, cached_at=now, expires_at=expires_at
        )

    def _evict_oldest(self) -> None:
        """Evict the least-recently-used entry."""
        if not self._entries:
            return
        oldest_key, _ = self._entries.popitem(last=False)
        self.stats.evictions += 1
        if self._metrics_collector:
            self._metrics_collector.inc_counter(CACHE_EVICTIONS_TOTAL)
        logger.debug(f"Evicted least-recently-used cache entry: {oldest_key}")

    def _record_miss(self) -> None:
        self.stats.misses += 1
        if self._metrics_collector:
            self._metrics_collector.inc_counter(CACHE_MISSES_TOTAL)

    # === Removal ===

    def invalidate(self, pattern: "str | re.Pattern[str]") -> int:
        """
        Remove every entry whose key matches ``pattern`` (``re.search``).

        Returns:
            Number of entries removed
        """
        regex = re.compile(pattern)
        matched = [key for key in self._entries if regex.search(key)]
        for key in matched:
            del self._entries[key]

        if matched:
            logger.debug(f"Invalidated {len(matched)} cache entries for {regex.pattern!r}")
            if self._metrics_collector:
                self._metrics_collector.inc_counter(
                    CACHE_INVALIDATIONS_TOTAL, len(matched)
                )
        return len(matched)

    def prune(self) -> int:
        """
        Remove all expired entries, whether or not they are ever read again.

        Returns:
            Number of entries removed
        """
        now = time.time()
        expired = [key for key, entry in self._entries.items() if entry.expires_at < now]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.debug(f"Pruned {len(expired)} expired cache entries")
            if self._metrics_collector:
                self._metrics_collector.inc_counter(CACHE_PRUNED_TOTAL, len(expired))
        return len(expired)

    def clear(self) -> None:
        """Remove all entries. Counters are kept."""
        self._entries.clear()

    def keys(self) -> list[str]:
        """Keys from least- to most-recently-used."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self.stats.hits,
            "misses": self.stats.misses,
            "evictions": self.stats.evictions,
            "hit_rate": self.stats.hit_rate,
        }

    # === Lifecycle ===

    async def start(self) -> None:
        """Start the background prune task."""
        if self._running:
            return

        self._running = True
        self._cleanup_task = asyncio.create_task(
            self._cleanup_loop(), name=f"request_cache_prune_{id(self)}"
        )
        logger.debug("RequestCache prune task started")

    async def stop(self) -> None:
        """Stop the background prune task."""
        if not self._running:
            return

        self._running = False
        if self._cleanup_task:
            self._cleanup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._cleanup_task
            self._cleanup_task = None
        logger.debug("RequestCache prune task stopped")

    @property
    def running(self) -> bool:
        return self._running

    async def __aenter__(self) -> "RequestCache":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.stop()

    async def _cleanup_loop(self) -> None:
        """Prune expired entries every ``cleanup_interval`` seconds."""
        while self._running:
            await asyncio.sleep(self.cleanup_interval)
            try:
                self.prune()
            except Exception as e:
                logger.error(f"Error during cache prune: {e}", exc_info=True)


__all__ = ["CacheEntry", "CacheStats", "RequestCache", "canonical_json"]
