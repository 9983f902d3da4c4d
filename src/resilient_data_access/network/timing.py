# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Time-based call-rate primitives.

- Debouncer: last-call-wins per key within a quiet window
- Throttler: at most one execution per key per window, first caller wins

Neither primitive aborts work that already started: a superseded or
throttled call simply never invokes its function. Both accept plain
callables and coroutine functions; coroutines are run as tasks and
tracked until done, so they must be used from within a running loop.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class Skipped(Enum):
    """Sentinel type returned by throttled requests that did not run."""

    SKIPPED = "skipped"

    def __repr__(self) -> str:
        return "SKIPPED"

    def __bool__(self) -> bool:
        return False


SKIPPED = Skipped.SKIPPED
"""Result of a throttled request that was dropped inside its window."""


class _TaskTracker:
    """Runs the awaitable results of timed calls as tasks and logs their failures."""

    _kind = "Timed"

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def _run(self, key: str, fn: Callable[[], Any]) -> None:
        try:
            result = fn()
        except Exception as e:
            logger.error(f"{self._kind} call for {key!r} failed: {e}", exc_info=True)
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(lambda t: self._on_task_done(key, t))

    def _on_task_done(self, key: str, task: "asyncio.Task[Any]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"{self._kind} call for {key!r} failed: {exc}", exc_info=exc)

    @property
    def running_count(self) -> int:
        """Number of coroutines that started and are still running."""
        return len(self._tasks)


class Debouncer(_TaskTracker):
    """
    Delays execution until no new call for the same key arrives for ``delay``.

    Scheduling a call for a key cancels the pending one, so only the most
    recently scheduled function runs.
    """

    _kind = "Debounced"

    def __init__(self) -> None:
        super().__init__()
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def debounce(self, key: str, fn: Callable[[], Any], delay: float = 0.3) -> None:
        """Schedule ``fn`` to run ``delay`` seconds after the last call for ``key``."""
        if delay < 0:
            raise ValueError("delay must be non-negative")

        self.cancel(key)
        loop = asyncio.get_running_loop()
        self._timers[key] = loop.call_later(delay, self._fire, key, fn)

    def _fire(self, key: str, fn: Callable[[], Any]) -> None:
        self._timers.pop(key, None)
        self._run(key, fn)

    def cancel(self, key: str) -> bool:
        """Cancel the pending call for ``key`` without running it."""
        handle = self._timers.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every pending call. Returns the number cancelled."""
        count = len(self._timers)
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        return count

    def pending(self, key: str) -> bool:
        """Check whether a call for ``key`` is scheduled and has not fired."""
        return key in self._timers

    @property
    def pending_count(self) -> int:
        return len(self._timers)


class Throttler(_TaskTracker):
    """
    Limits execution to once per ``limit`` seconds per key.

    The first call in a window runs and opens the window; later calls in the
    same window are dropped. A key that has never run is always allowed.
    """

    _kind = "Throttled"

    def __init__(self) -> None:
        super().__init__()
        self._last_execution: dict[str, float] = {}

    def try_acquire(self, key: str, limit: float = 1.0) -> bool:
        """Record an execution for ``key`` if its window has elapsed."""
        now = time.time()
        last = self._last_execution.get(key)
        if last is not None and now - last < limit:
            return False
        self._last_execution[key] = now
        return True

    def throttle(self, key: str, fn: Callable[[], Any], limit: float = 1.0) -> bool:
        """
        Run ``fn`` now unless ``key`` ran less than ``limit`` seconds ago.

        A coroutine function is started as a task rather than awaited.

        Returns:
            True if ``fn`` was executed, False if it was throttled
        """
        if not self.try_acquire(key, limit):
            logger.debug(f"Throttled call for {key!r}")
            return False
        self._run(key, fn)
        return True

    def last_execution(self, key: str) -> float | None:
        return self._last_execution.get(key)

    def reset(self, key: str) -> None:
        """Forget the throttle history of ``key``."""
        self._last_execution.pop(key, None)

    def reset_all(self) -> None:
        self._last_execution.clear()


__all__ = ["SKIPPED", "Debouncer", "Skipped", "Throttler"]
