# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
MemoryStorageBackend

Process-local, non-durable last tier. Records are deep-copied in and out so
that callers mutating a value they stored or read cannot change what is
"persisted", matching the behaviour of the durable tiers.
"""

import copy
import logging
from typing import Any, ClassVar

from ...exceptions import NotInitializedError
from ..schema import StorageSchema
from .base import HealthCheckResult, StorageBackend, StorageType

logger = logging.getLogger(__name__)


class MemoryStorageBackend(StorageBackend):
    """In-memory backend used when no persistent tier can be opened."""

    storage_type: ClassVar[StorageType] = StorageType.MEMORY
    durable: ClassVar[bool] = False

    def __init__(self, schema: StorageSchema, namespace: str = "resilient-data-access"):
        super().__init__(schema, namespace)
        self._stores: dict[str, dict[str, dict[str, Any]]] = {}
        self._open = False

    async def open(self) -> None:
        self._open = True
        logger.debug(f"MemoryStorageBackend opened for {self.namespace}")

    async def close(self) -> None:
        self._open = False

    def _ensure_open(self) -> None:
        if not self._open:
            raise NotInitializedError("MemoryStorageBackend is not open")

    async def get(self, store_name: str, key: str) -> dict[str, Any] | None:
        self._ensure_open()
        record = self._stores.get(store_name, {}).get(key)
        return copy.deepcopy(record) if record is not None else None

    async def put(self, store_name: str, key: str, record: dict[str, Any]) -> None:
        self._ensure_open()
        self._stores.setdefault(store_name, {})[key] = copy.deepcopy(record)

    async def delete(self, store_name: str, key: str) -> None:
        self._ensure_open()
        self._stores.get(store_name, {}).pop(key, None)

    async def get_all(self, store_name: str) -> list[dict[str, Any]]:
        self._ensure_open()
        return [copy.deepcopy(r) for r in self._stores.get(store_name, {}).values()]

    async def clear(self, store_name: str) -> None:
        self._ensure_open()
        self._stores.pop(store_name, None)

    async def health_check(self) -> HealthCheckResult:
        return HealthCheckResult(
            healthy=self._open,
            storage_type=self.storage_type,
            namespace=self.namespace,
            error=None if self._open else "not open",
            metadata={
                "stores": len(self._stores),
                "records": sum(len(s) for s in self._stores.values()),
            },
        )


__all__ = ["MemoryStorageBackend"]
