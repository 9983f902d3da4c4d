# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Protocol for record wrapping and integrity validation."""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..storage.integrity import RepairResult, UnwrapResult


@runtime_checkable
class IntegrityProtocol(Protocol):
    """
    Interface the storage manager uses to wrap, verify and repair records.

    ``DataIntegrityManager`` is the default implementation. Any object with
    these three methods can be injected into ``UnifiedStorageManager``.
    """

    def wrap(
        self,
        data: Any,
        *,
        type: str = "unknown",
        source: str = "app",
        version: int = 1,
    ) -> dict[str, Any]:
        """Wrap ``data`` with version, timestamp, metadata and checksum."""
        ...

    def unwrap(
        self,
        wrapped: Any,
        *,
        validator: Callable[[Any], Any] | None = None,
        max_version: int | None = None,
    ) -> "UnwrapResult":
        """Verify a wrapped record and extract its payload."""
        ...

    def repair(
        self,
        data: Any,
        *,
        remove_nulls: bool = False,
        defaults: dict[str, Any] | None = None,
    ) -> "RepairResult":
        """Attempt to recover a usable payload from corrupted data."""
        ...
