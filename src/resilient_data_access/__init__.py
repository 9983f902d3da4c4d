# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Resilient Data Access - Efficient remote reads and durable local state.

This library sits between application logic and two unreliable resources:
a rate-limited remote API and best-effort local persistence.

Key Features:
    - Request caching with TTL expiry and LRU eviction
    - Deduplication of concurrent identical requests
    - Debouncing and throttling of user-triggered calls
    - Tiered storage (SQL, Redis, memory) with automatic fallback
    - Checksummed records with corruption detection and repair

Quick Start:
    >>> from resilient_data_access import NetworkEfficiencyManager, UnifiedStorageManager
    >>>
    >>> async with NetworkEfficiencyManager() as network:
    ...     user = await network.request("GET", "/users/1", fetch_user, ttl=60.0)
    >>>
    >>> async with UnifiedStorageManager() as storage:
    ...     await storage.set_item("profiles", "p-1", {"name": "Ada"})
    ...     profile = await storage.get_item("profiles", "p-1")

Main Exports:
    - NetworkEfficiencyManager, NetworkConfig: Network efficiency layer
    - UnifiedStorageManager, StorageConfig: Storage layer
    - DataIntegrityManager: Record wrapping and verification
    - CachedRemoteService: Caching facade over a remote service
    - SQLStorageBackend, RedisStorageBackend, MemoryStorageBackend: Storage tiers

Note: SQLStorageBackend requires the 'sql' extra and RedisStorageBackend the
'redis' extra. Install with:
    pip install resilient-data-access[full]

Version: 1.0.0
"""

__version__ = "1.0.0"

from typing import TYPE_CHECKING

from .exceptions import (
    BackendConnectionError,
    BackendOperationError,
    ConfigurationError,
    DataAccessError,
    DebounceSupersededError,
    NotInitializedError,
    StorageWriteError,
    StoreNotFoundError,
)
from .network import (
    SKIPPED,
    Debouncer,
    NetworkConfig,
    NetworkEfficiencyManager,
    RequestCache,
    RequestDeduplicator,
    Throttler,
)
from .observability import MetricsCollectorProtocol, UnifiedMetricsCollector
from .protocols import IntegrityProtocol, RemoteServiceProtocol
from .services import CachedRemoteService, DebouncePolicy, TTLPolicy
from .storage import (
    DataIntegrityManager,
    MemoryStorageBackend,
    StorageBackend,
    StorageConfig,
    StorageSchema,
    StorageType,
    UnifiedStorageManager,
    default_schema,
)

# Lazy import for optional backends
if TYPE_CHECKING:
    from .storage.backends import RedisStorageBackend, SQLStorageBackend

__all__ = [
    "SKIPPED",
    "BackendConnectionError",
    "BackendOperationError",
    # Services
    "CachedRemoteService",
    "ConfigurationError",
    # Exceptions
    "DataAccessError",
    "DataIntegrityManager",
    "DebouncePolicy",
    "DebounceSupersededError",
    "Debouncer",
    # Protocols
    "IntegrityProtocol",
    "MemoryStorageBackend",
    "MetricsCollectorProtocol",
    "NetworkConfig",
    # Network
    "NetworkEfficiencyManager",
    "NotInitializedError",
    "RedisStorageBackend",  # Lazy loaded - requires redis extra
    "RemoteServiceProtocol",
    "RequestCache",
    "RequestDeduplicator",
    "SQLStorageBackend",  # Lazy loaded - requires sql extra
    "StorageBackend",
    "StorageConfig",
    "StorageSchema",
    "StorageType",
    "StorageWriteError",
    "StoreNotFoundError",
    "TTLPolicy",
    "Throttler",
    # Observability
    "UnifiedMetricsCollector",
    # Storage
    "UnifiedStorageManager",
    "default_schema",
]


def __getattr__(name: str) -> type:
    """Lazy import for optional storage backends."""
    if name in ("RedisStorageBackend", "SQLStorageBackend"):
        from .storage import backends

        return getattr(backends, name)  # type: ignore[no-any-return]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
