# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Storage Configuration

Configuration for UnifiedStorageManager: which persistence tiers to try,
where they live, and the schema they are opened with.
"""

from dataclasses import dataclass, field

from .schema import StorageSchema, default_schema


@dataclass
class StorageConfig:
    """
    Configuration for UnifiedStorageManager.

    Tiers are tried in order: structured (SQL), flat (Redis), memory.
    """

    db_name: str = "resilient-data-access"
    """Logical database name; namespaces flat-store keys and names the default SQLite file."""

    version: int = 2
    """Schema version the structured store is migrated to on open."""

    # === Structured Tier ===

    enable_structured: bool = True
    """Try the SQL backend first."""

    database_url: str | None = None
    """SQLAlchemy async URL. Defaults to ``sqlite+aiosqlite:///<db_name>.db``."""

    # === Flat Tier ===

    enable_flat: bool = True
    """Try the Redis backend when the structured tier is unavailable."""

    redis_url: str | None = None
    """Redis URL. The flat tier is skipped when unset."""

    # === Shared ===

    schema: StorageSchema = field(default_factory=default_schema)
    """Store declarations and migrations."""

    open_timeout: float = 5.0
    """Seconds allowed for opening a single backend tier."""

    def __post_init__(self) -> None:
        """Validate configuration and derive defaults."""
        if not self.db_name:
            raise ValueError("db_name must not be empty")
        if self.version < 1:
            raise ValueError("version must be at least 1")
        if self.open_timeout <= 0:
            raise ValueError("open_timeout must be positive")
        if self.database_url is None:
            self.database_url = f"sqlite+aiosqlite:///{self.db_name}.db"


__all__ = ["StorageConfig"]
