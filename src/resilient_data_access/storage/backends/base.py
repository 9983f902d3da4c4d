# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Base Storage Backend

This module provides the StorageBackend abstract class that defines the
common interface for every persistence tier behind UnifiedStorageManager.

Backends store opaque JSON-compatible records (a wrapped payload plus the
key and index fields the manager merges in) addressed by store name and
key. They know nothing about checksums or repair.
"""

import abc
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from typing_extensions import Self

from ..schema import StorageSchema

logger = logging.getLogger(__name__)


class StorageType(Enum):
    """Persistence tier a backend provides, in order of preference."""

    STRUCTURED = "structured"
    FLAT = "flat"
    MEMORY = "memory"


@dataclass
class HealthCheckResult:
    """
    Structured health check result for backend monitoring.

    Attributes:
        healthy: Whether the backend is operational
        storage_type: Tier of the backend
        namespace: Backend namespace
        error: Error message if unhealthy
        metadata: Additional backend-specific information
    """

    healthy: bool
    storage_type: StorageType
    namespace: str
    error: str | None = None
    metadata: dict[str, Any] | None = None


class StorageBackend(abc.ABC):
    """
    Abstract base class for storage tiers.

    ``open()`` raises BackendConnectionError when the tier is unusable, which
    is what lets UnifiedStorageManager fall through to the next tier. Every
    other method may raise; the manager decides whether an error is absorbed
    or propagated.
    """

    storage_type: ClassVar[StorageType]
    """Tier reported in storage statistics."""

    durable: ClassVar[bool] = True
    """Whether records survive process restarts."""

    supports_native_index: ClassVar[bool] = False
    """Whether ``query_by_index`` uses a real secondary index."""

    def __init__(self, schema: StorageSchema, namespace: str = "resilient-data-access"):
        """
        Initialize the backend.

        Args:
            schema: Store declarations (key fields and indexes)
            namespace: Namespace isolating this database's records
        """
        self.schema = schema
        self.namespace = namespace

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    @abc.abstractmethod
    async def open(self) -> None:
        """
        Connect to the underlying store.

        Raises:
            BackendConnectionError: If the tier cannot be used
        """
        pass

    @abc.abstractmethod
    async def close(self) -> None:
        """Release connections. Safe to call more than once."""
        pass

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.close()

    # ==========================================================================
    # Records
    # ==========================================================================

    @abc.abstractmethod
    async def get(self, store_name: str, key: str) -> dict[str, Any] | None:
        """
        Get the record stored under ``key``.

        Returns:
            The record if it exists, None otherwise
        """
        pass

    @abc.abstractmethod
    async def put(self, store_name: str, key: str, record: dict[str, Any]) -> None:
        """Insert or replace the record stored under ``key``."""
        pass

    @abc.abstractmethod
    async def delete(self, store_name: str, key: str) -> None:
        """Delete the record stored under ``key``. Missing keys are not an error."""
        pass

    @abc.abstractmethod
    async def get_all(self, store_name: str) -> list[dict[str, Any]]:
        """Get every record in ``store_name``."""
        pass

    @abc.abstractmethod
    async def clear(self, store_name: str) -> None:
        """Delete every record in ``store_name``."""
        pass

    async def query_by_index(
        self, store_name: str, index_name: str, value: Any
    ) -> list[dict[str, Any]]:
        """
        Get the records whose indexed field equals ``value``.

        Only backends with ``supports_native_index`` implement this.
        """
        raise NotImplementedError(
            f"{type(self).__name__} has no native secondary indexes"
        )

    # ==========================================================================
    # Monitoring
    # ==========================================================================

    @abc.abstractmethod
    async def health_check(self) -> HealthCheckResult:
        """Check whether the backend is currently usable."""
        pass

    def index_values(self, store_name: str, record: dict[str, Any]) -> dict[str, Any]:
        """Values of the declared indexes present (and non-null) in ``record``."""
        definition = self.schema.store(store_name)
        values = {}
        for index_name, index in definition.indexes.items():
            value = record.get(index.key_path)
            if value is not None:
                values[index_name] = value
        return values


__all__ = ["HealthCheckResult", "StorageBackend", "StorageType"]
