# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Storage backends, one per persistence tier.

Available backends:
- StorageBackend: Abstract base class defining the backend interface
- SQLStorageBackend: Structured tier over SQLAlchemy async (requires sql extra)
- RedisStorageBackend: Flat key/value tier over Redis (requires redis extra)
- MemoryStorageBackend: Non-durable in-process tier

Supporting types:
- StorageType: Tier reported by each backend
- HealthCheckResult: Structured result from backend health checks

Note: SQLStorageBackend and RedisStorageBackend are lazily imported to avoid
requiring their drivers when only the memory tier is used.
"""

import importlib
from typing import TYPE_CHECKING, cast

from resilient_data_access.storage.backends.base import (
    HealthCheckResult,
    StorageBackend,
    StorageType,
)
from resilient_data_access.storage.backends.memory import MemoryStorageBackend

# Lazy imports for optional backends
if TYPE_CHECKING:
    from resilient_data_access.storage.backends.redis import RedisStorageBackend
    from resilient_data_access.storage.backends.sql import SQLStorageBackend

__all__ = [
    "HealthCheckResult",
    "MemoryStorageBackend",
    # Redis backend (lazy loaded)
    "RedisStorageBackend",
    # SQL backend (lazy loaded)
    "SQLStorageBackend",
    "StorageBackend",
    "StorageType",
]

_LAZY_BACKENDS = {
    "RedisStorageBackend": ("redis", "redis"),
    "SQLStorageBackend": ("sql", "sql"),
}


def __getattr__(name: str) -> type:
    """Lazy import for optional backend components."""
    if name in _LAZY_BACKENDS:
        module_name, extra = _LAZY_BACKENDS[name]
        try:
            module = importlib.import_module(f"{__name__}.{module_name}")
            return cast(type, getattr(module, name))
        except ImportError as e:
            raise ImportError(
                f"'{name}' requires the '{extra}' extra. "
                f"Install with: pip install resilient-data-access[{extra}]"
            ) from e
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
