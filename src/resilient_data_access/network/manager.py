# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Network Efficiency Manager

Single orchestration point combining the request cache, in-flight
deduplication, debouncing and throttling behind one async facade.

Failure semantics:
    Errors raised by a request function propagate to the caller unchanged.
    Failures are counted but never cached, and no retry is attempted.
"""

import asyncio
import copy
import logging
import re
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any, TypeVar

from typing_extensions import Self

from ..exceptions import DebounceSupersededError
from ..observability.constants import (
    REQUEST_LATENCY_SECONDS,
    REQUESTS_CACHED_TOTAL,
    REQUESTS_FAILED_TOTAL,
    REQUESTS_NETWORK_TOTAL,
    REQUESTS_SUPERSEDED_TOTAL,
    REQUESTS_THROTTLED_TOTAL,
    REQUESTS_TOTAL,
)
from ..observability.protocols import MetricsCollectorProtocol
from .cache import RequestCache
from .config import NetworkConfig
from .deduplicator import RequestDeduplicator
from .timing import SKIPPED, Debouncer, Skipped, Throttler

logger = logging.getLogger(__name__)

T = TypeVar("T")

RequestFn = Callable[[], Awaitable[T]]


@dataclass
class RequestMetrics:
    """Manager-level request counters."""

    total_requests: int = 0
    cached_requests: int = 0
    network_requests: int = 0
    failed_requests: int = 0
    throttled_requests: int = 0
    superseded_requests: int = 0


class NetworkEfficiencyManager:
    """
    Cached, deduplicated, debounced and throttled access to remote resources.

    Construct one instance at application start and pass it to consumers.

    Example:
        >>> async with NetworkEfficiencyManager() as network:
        ...     user = await network.request(
        ...         "GET", "/users/1", lambda: client.get_user(1), ttl=60.0
        ...     )
        ...     network.invalidate_cache(r"/users/1$")
    """

    def __init__(
        self,
        config: NetworkConfig | None = None,
        metrics_collector: MetricsCollectorProtocol | None = None,
    ) -> None:
        self.config = config or NetworkConfig()
        collector = metrics_collector if self.config.metrics_enabled else None
        self._metrics_collector = collector

        self.cache = RequestCache(
            max_size=self.config.cache_max_size,
            default_ttl=self.config.cache_ttl,
            cleanup_interval=self.config.prune_interval,
            metrics_collector=collector,
        )
        self.deduplicator = RequestDeduplicator(metrics_collector=collector)
        self.debouncer = Debouncer()
        self.throttler = Throttler()

        self.metrics = RequestMetrics()

        # Completion handed to the caller of the pending debounced call, per key
        self._debounce_waiters: dict[str, asyncio.Future[Any]] = {}

    # === Lifecycle ===

    async def start(self) -> None:
        """Start periodic pruning of expired cache entries."""
        await self.cache.start()

    async def close(self) -> None:
        """Cancel pending work, stop pruning and drop cached data."""
        self.debouncer.cancel_all()
        for key, waiter in list(self._debounce_waiters.items()):
            if not waiter.done():
                waiter.set_exception(DebounceSupersededError(key))
        self._debounce_waiters.clear()
        self.throttler.reset_all()
        self.cache.clear()
        await self.cache.stop()
        logger.info("NetworkEfficiencyManager closed")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.close()

    # === Requests ===

    async def request(
        self,
        method: str,
        url: str,
        request_fn: RequestFn[T],
        *,
        body: Any = None,
        ttl: float | None = None,
        cache: bool = True,
        deduplicate: bool = True,
    ) -> T:
        """
        Execute a request through the cache and the deduplicator.

        Args:
            method: Request method, part of the cache key
            url: Request URL, part of the cache key
            request_fn: Zero-argument callable returning an awaitable result
            body: Optional request body, serialized canonically into the key
            ttl: Cache TTL in seconds (cache default if None)
            cache: Serve from and store into the cache
            deduplicate: Share one execution among concurrent identical calls

        Returns:
            The response; the cache stores and serves deep copies, so
            mutating a result never changes what later calls receive

        Raises:
            Whatever ``request_fn`` raises, unchanged
        """
        self.metrics.total_requests += 1
        self._inc(REQUESTS_TOTAL)

        cache_key = self.cache.generate_key(method, url, body)

        if cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                self.metrics.cached_requests += 1
                self._inc(REQUESTS_CACHED_TOTAL)
                return copy.deepcopy(cached)

        started = time.perf_counter()
        try:
            if deduplicate:
                response = await self.deduplicator.execute(cache_key, request_fn)
            else:
                response = await request_fn()
        except Exception as e:
            self.metrics.failed_requests += 1
            self._inc(REQUESTS_FAILED_TOTAL)
            logger.debug(f"Request failed for {cache_key}: {e}")
            raise

        self.metrics.network_requests += 1
        self._inc(REQUESTS_NETWORK_TOTAL)
        if self._metrics_collector:
            self._metrics_collector.observe_histogram(
                REQUEST_LATENCY_SECONDS, time.perf_counter() - started
            )

        # The cache keeps its own copy; the caller owns the returned object
        if cache and response is not None:
            self.cache.set(cache_key, copy.deepcopy(response), ttl)

        return response

    async def debounced_request(
        self,
        key: str,
        request_fn: RequestFn[T],
        delay: float | None = None,
    ) -> T:
        """
        Run ``request_fn`` once calls for ``key`` stop for ``delay`` seconds.

        Only the last call in a burst performs the request and receives its
        result or exception. Each earlier call in the same window is released
        with DebounceSupersededError as soon as it is replaced.

        Raises:
            DebounceSupersededError: If a newer call for ``key`` replaced this one
        """
        if delay is None:
            delay = self.config.default_debounce_delay

        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[T] = loop.create_future()

        previous = self._debounce_waiters.get(key)
        if previous is not None and not previous.done():
            previous.set_exception(DebounceSupersededError(key))
            self.metrics.superseded_requests += 1
            self._inc(REQUESTS_SUPERSEDED_TOTAL)
        self._debounce_waiters[key] = waiter

        async def fire() -> None:
            if self._debounce_waiters.get(key) is waiter:
                del self._debounce_waiters[key]
            try:
                result = await request_fn()
            except asyncio.CancelledError:
                waiter.cancel()
                raise
            except Exception as e:
                if not waiter.done():
                    waiter.set_exception(e)
            else:
                if not waiter.done():
                    waiter.set_result(result)

        self.debouncer.debounce(key, fire, delay)
        return await waiter

    async def throttled_request(
        self,
        key: str,
        request_fn: RequestFn[T],
        limit: float | None = None,
    ) -> "T | Skipped":
        """
        Run ``request_fn`` unless ``key`` already ran within ``limit`` seconds.

        Returns:
            The result, or SKIPPED when the call was throttled away
        """
        if limit is None:
            limit = self.config.default_throttle_limit

        if not self.throttler.try_acquire(key, limit):
            self.metrics.throttled_requests += 1
            self._inc(REQUESTS_THROTTLED_TOTAL)
            logger.debug(f"Throttled request skipped: {key}")
            return SKIPPED

        return await request_fn()

    # === Cache Management ===

    def invalidate_cache(self, pattern: "str | re.Pattern[str]") -> int:
        """Evict cached responses whose key matches ``pattern``."""
        return self.cache.invalidate(pattern)

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_stats(self) -> dict[str, Any]:
        """Aggregate manager, cache and deduplication statistics."""
        return {
            "metrics": asdict(self.metrics),
            "cache": self.cache.get_stats(),
            "deduplication": self.deduplicator.get_stats(),
        }

    def _inc(self, name: str) -> None:
        if self._metrics_collector:
            self._metrics_collector.inc_counter(name)


__all__ = ["NetworkEfficiencyManager", "RequestFn", "RequestMetrics"]
