# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Storage schema models.

Declares the logical stores, the field that holds each record's primary
key, the secondary indexes the structured backend maintains, and the
migrations run when the persisted schema version is older than the
configured one.
"""

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..exceptions import StoreNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_KEY_PATH = "key"


class IndexDefinition(BaseModel):
    """A secondary index over one top-level record field."""

    key_path: str
    unique: bool = False


class StoreDefinition(BaseModel):
    """A logical store: its primary-key field and its secondary indexes."""

    key_path: str = DEFAULT_KEY_PATH
    indexes: dict[str, IndexDefinition] = Field(default_factory=dict)

    @field_validator("key_path")
    @classmethod
    def _validate_key_path(cls, value: str) -> str:
        if not value:
            raise ValueError("key_path must not be empty")
        return value


class Migration(BaseModel):
    """
    A schema upgrade step.

    ``upgrade`` is called with the open backend connection and the version
    found on disk. It may be a plain function or a coroutine function.
    """

    version: int
    upgrade: Callable[[Any, int], Any]

    def applies(self, old_version: int, new_version: int) -> bool:
        return old_version < self.version <= new_version


class StorageSchema(BaseModel):
    """
    Store declarations plus ordered migrations.

    Stores not declared here use ``key`` as their key field and have no
    indexes, unless ``strict`` is set, in which case looking them up raises
    StoreNotFoundError.
    """

    stores: dict[str, StoreDefinition] = Field(default_factory=dict)
    migrations: list[Migration] = Field(default_factory=list)
    strict: bool = False

    @field_validator("migrations")
    @classmethod
    def _sort_migrations(cls, value: list[Migration]) -> list[Migration]:
        versions = [m.version for m in value]
        if len(versions) != len(set(versions)):
            raise ValueError("migration versions must be unique")
        return sorted(value, key=lambda m: m.version)

    def store(self, name: str) -> StoreDefinition:
        """Definition of store ``name`` (a default one if undeclared)."""
        definition = self.stores.get(name)
        if definition is None:
            if self.strict:
                raise StoreNotFoundError(name)
            return StoreDefinition()
        return definition

    def key_path(self, name: str) -> str:
        return self.store(name).key_path

    def pending_migrations(self, old_version: int, new_version: int) -> list[Migration]:
        """Migrations with ``old_version < version <= new_version``, in order."""
        return [m for m in self.migrations if m.applies(old_version, new_version)]


def _log_evaluation_index_upgrade(connection: Any, old_version: int) -> None:
    # Index rows are rebuilt from the store declarations on write
    logger.info(f"Migration v2: evaluation indexes updated (from v{old_version})")


def default_schema() -> StorageSchema:
    """Stores used by the application's profile and evaluation data."""
    return StorageSchema(
        stores={
            "profiles": StoreDefinition(
                key_path="profileKey",
                indexes={
                    "email": IndexDefinition(key_path="email"),
                    "updatedAt": IndexDefinition(key_path="updatedAt"),
                },
            ),
            "evaluations": StoreDefinition(
                key_path="key",
                indexes={
                    "email": IndexDefinition(key_path="email"),
                    "syncStatus": IndexDefinition(key_path="syncStatus"),
                    "createdAt": IndexDefinition(key_path="createdAt"),
                },
            ),
            "evaluationIndexes": StoreDefinition(
                key_path="email",
                indexes={"updatedAt": IndexDefinition(key_path="updatedAt")},
            ),
            "sessions": StoreDefinition(
                key_path="sessionKey",
                indexes={"expiresAt": IndexDefinition(key_path="expiresAt")},
            ),
            "preferences": StoreDefinition(key_path="key"),
        },
        migrations=[Migration(version=2, upgrade=_log_evaluation_index_upgrade)],
    )


__all__ = [
    "DEFAULT_KEY_PATH",
    "IndexDefinition",
    "Migration",
    "StorageSchema",
    "StoreDefinition",
    "default_schema",
]
