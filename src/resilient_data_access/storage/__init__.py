# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Durable local storage with tier fallback and integrity checks.

- UnifiedStorageManager: single interface over the active backend tier
- DataIntegrityManager: wraps, verifies and repairs persisted payloads
- StorageSchema: store declarations, indexes and migrations
- StorageConfig: tier selection and connection settings
"""

from .backends import HealthCheckResult, MemoryStorageBackend, StorageBackend, StorageType
from .config import StorageConfig
from .integrity import (
    DataIntegrityManager,
    RepairResult,
    UnwrapResult,
    ValidationResult,
)
from .manager import StorageStats, UnifiedStorageManager
from .schema import (
    IndexDefinition,
    Migration,
    StorageSchema,
    StoreDefinition,
    default_schema,
)

__all__ = [
    "DataIntegrityManager",
    "HealthCheckResult",
    "IndexDefinition",
    "MemoryStorageBackend",
    "Migration",
    "RepairResult",
    "StorageBackend",
    "StorageConfig",
    "StorageSchema",
    "StorageStats",
    "StorageType",
    "StoreDefinition",
    "UnifiedStorageManager",
    "UnwrapResult",
    "ValidationResult",
    "default_schema",
]
