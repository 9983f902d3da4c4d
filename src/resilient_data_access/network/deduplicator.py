# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""In-flight request deduplication (request coalescing)."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from ..observability.constants import (
    DEDUP_EXECUTIONS_TOTAL,
    DEDUP_PIGGYBACKS_TOTAL,
    IN_FLIGHT_REQUESTS,
)
from ..observability.protocols import MetricsCollectorProtocol

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DeduplicationStats:
    """Unique executions vs. calls that piggy-backed on one in flight."""

    unique: int = 0
    deduplicated: int = 0

    @property
    def deduplication_rate(self) -> float:
        total = self.unique + self.deduplicated
        return self.deduplicated / total if total > 0 else 0.0


class RequestDeduplicator:
    """
    Collapses concurrent calls for the same key into one execution.

    The first caller for a key starts ``fn()`` as a task and registers it.
    Callers arriving while it runs await the same task instead of calling
    ``fn`` again, so all of them observe the same result or the same
    exception instance. The registry entry is removed by the task's first
    done callback, which runs before any waiter resumes; a call made after
    settlement therefore starts a fresh execution.

    Waiters await through ``asyncio.shield``: cancelling one caller does not
    cancel the shared execution the others are waiting on.
    """

    def __init__(self, metrics_collector: MetricsCollectorProtocol | None = None):
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self.stats = DeduplicationStats()
        self._metrics_collector = metrics_collector

    async def execute(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``fn`` for ``key`` unless an execution for ``key`` is in flight.

        Args:
            key: Identity of the operation (usually a request cache key)
            fn: Zero-argument callable returning an awaitable

        Returns:
            The result of the single shared execution
        """
        task = self._in_flight.get(key)
        if task is not None:
            self.stats.deduplicated += 1
            if self._metrics_collector:
                self._metrics_collector.inc_counter(DEDUP_PIGGYBACKS_TOTAL)
            logger.debug(f"Joining in-flight request: {key}")
            return await asyncio.shield(task)

        self.stats.unique += 1
        task = asyncio.create_task(self._run(fn), name=f"dedup:{key}")
        self._in_flight[key] = task
        task.add_done_callback(lambda t: self._on_settled(key, t))

        if self._metrics_collector:
            self._metrics_collector.inc_counter(DEDUP_EXECUTIONS_TOTAL)
            self._metrics_collector.set_gauge(IN_FLIGHT_REQUESTS, len(self._in_flight))

        return await asyncio.shield(task)

    @staticmethod
    async def _run(fn: Callable[[], Awaitable[T]]) -> T:
        return await fn()

    def _on_settled(self, key: str, task: "asyncio.Task[Any]") -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled():
            # Mark the exception retrieved; every waiter still receives it
            task.exception()
        if self._metrics_collector:
            self._metrics_collector.set_gauge(IN_FLIGHT_REQUESTS, len(self._in_flight))

    def in_flight(self, key: str) -> bool:
        """Check whether an execution for ``key`` is currently running."""
        return key in self._in_flight

    def __len__(self) -> int:
        return len(self._in_flight)

    def get_stats(self) -> dict[str, Any]:
        """Get deduplication statistics."""
        return {
            "in_flight": len(self._in_flight),
            "unique": self.stats.unique,
            "deduplicated": self.stats.deduplicated,
            "deduplication_rate": self.stats.deduplication_rate,
        }


__all__ = ["DeduplicationStats", "RequestDeduplicator"]
