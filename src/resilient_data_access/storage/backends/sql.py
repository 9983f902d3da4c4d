# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
SQLStorageBackend

Structured tier on a SQLAlchemy async engine (SQLite through aiosqlite by
default). Opening the backend creates the tables, reads the persisted
schema version and runs every migration newer than it, then records the
configured version. Declared secondary indexes are maintained on write and
queried natively.
"""

import asyncio
import inspect
import json
import logging
import time
from typing import Any, ClassVar

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ...exceptions import BackendConnectionError, BackendOperationError, NotInitializedError
from ...network.cache import canonical_json
from ..schema import StorageSchema
from .base import HealthCheckResult, StorageBackend, StorageType
from .models import Base, RecordIndexDB, SchemaMetaDB, StoredRecordDB

logger = logging.getLogger(__name__)


class SQLStorageBackend(StorageBackend):
    """
    SQL-backed structured storage tier with schema versioning.

    Args:
        schema: Store declarations and migrations
        database_url: SQLAlchemy async URL, e.g. ``sqlite+aiosqlite:///data.db``
        namespace: Name the schema version is recorded under
        version: Schema version to migrate to on open
        open_timeout: Seconds allowed for connecting and migrating
        echo: Log emitted SQL
    """

    storage_type: ClassVar[StorageType] = StorageType.STRUCTURED
    supports_native_index: ClassVar[bool] = True

    def __init__(
        self,
        schema: StorageSchema,
        database_url: str,
        namespace: str = "resilient-data-access",
        version: int = 1,
        open_timeout: float = 5.0,
        echo: bool = False,
    ):
        super().__init__(schema, namespace)
        self.database_url = database_url
        self.version = version
        self.open_timeout = open_timeout
        self.echo = echo

        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    # === Lifecycle ===

    async def open(self) -> None:
        """
        Connect, create tables and migrate.

        Raises:
            BackendConnectionError: On a missing driver, bad URL, I/O error,
                timeout, or a persisted version newer than ``version``
        """
        try:
            self._engine = create_async_engine(
                self.database_url, echo=self.echo, future=True
            )
            self._session_factory = async_sessionmaker(
                bind=self._engine, class_=AsyncSession, expire_on_commit=False
            )
            await asyncio.wait_for(self._prepare(), timeout=self.open_timeout)
        except Exception as e:
            await self.close()
            if isinstance(e, BackendConnectionError):
                raise
            raise BackendConnectionError(
                f"Structured store unavailable at {self.database_url}: {e}",
                backend_type=self.storage_type.value,
            ) from e

        logger.info(
            f"SQLStorageBackend opened {self.database_url} at schema v{self.version}"
        )

    async def _prepare(self) -> None:
        assert self._engine is not None
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

            result = await conn.execute(
                select(SchemaMetaDB.version).where(SchemaMetaDB.name == self.namespace)
            )
            stored = result.scalar_one_or_none()
            old_version = stored or 0

            if old_version > self.version:
                raise BackendConnectionError(
                    f"Stored schema v{old_version} is newer than supported v{self.version}",
                    backend_type=self.storage_type.value,
                )
            if old_version == self.version:
                return

            logger.info(f"Structured store upgrade: v{old_version} -> v{self.version}")
            await self._migrate(conn, old_version)

            if stored is None:
                await conn.execute(
                    insert(SchemaMetaDB).values(name=self.namespace, version=self.version)
                )
            else:
                await conn.execute(
                    update(SchemaMetaDB)
                    .where(SchemaMetaDB.name == self.namespace)
                    .values(version=self.version)
                )

    async def _migrate(self, conn: AsyncConnection, old_version: int) -> None:
        for migration in self.schema.pending_migrations(old_version, self.version):
            logger.info(f"Running migration to version {migration.version}")
            result = migration.upgrade(conn, old_version)
            if inspect.isawaitable(result):
                await result

    async def close(self) -> None:
        engine, self._engine = self._engine, None
        self._session_factory = None
        if engine is not None:
            await engine.dispose()

    def _sessions(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise NotInitializedError("SQLStorageBackend is not open")
        return self._session_factory

    async def schema_version(self) -> int:
        """Schema version currently recorded in the database (0 if none)."""
        async with self._sessions()() as session:
            result = await session.execute(
                select(SchemaMetaDB.version).where(SchemaMetaDB.name == self.namespace)
            )
            return result.scalar_one_or_none() or 0

    # === Records ===

    async def get(self, store_name: str, key: str) -> dict[str, Any] | None:
        try:
            async with self._sessions()() as session:
                row = await session.get(StoredRecordDB, (store_name, key))
        except SQLAlchemyError as e:
            raise BackendOperationError(f"SQL read failed for {store_name}/{key}") from e
        return json.loads(row.payload) if row is not None else None

    async def put(self, store_name: str, key: str, record: dict[str, Any]) -> None:
        payload = json.dumps(record)
        index_rows = [
            RecordIndexDB(
                store_name=store_name,
                index_name=index_name,
                index_value=canonical_json(value),
                record_key=key,
            )
            for index_name, value in self.index_values(store_name, record).items()
        ]
        try:
            async with self._sessions()() as session, session.begin():
                await session.merge(
                    StoredRecordDB(
                        store_name=store_name,
                        record_key=key,
                        payload=payload,
                        updated_at=time.time(),
                    )
                )
                await session.execute(
                    delete(RecordIndexDB).where(
                        RecordIndexDB.store_name == store_name,
                        RecordIndexDB.record_key == key,
                    )
                )
                session.add_all(index_rows)
        except SQLAlchemyError as e:
            raise BackendOperationError(f"SQL write failed for {store_name}/{key}") from e

    async def delete(self, store_name: str, key: str) -> None:
        try:
            async with self._sessions()() as session, session.begin():
                await session.execute(
                    delete(RecordIndexDB).where(
                        RecordIndexDB.store_name == store_name,
                        RecordIndexDB.record_key == key,
                    )
                )
                await session.execute(
                    delete(StoredRecordDB).where(
                        StoredRecordDB.store_name == store_name,
                        StoredRecordDB.record_key == key,
                    )
                )
        except SQLAlchemyError as e:
            raise BackendOperationError(f"SQL delete failed for {store_name}/{key}") from e

    async def get_all(self, store_name: str) -> list[dict[str, Any]]:
        try:
            async with self._sessions()() as session:
                result = await session.execute(
                    select(StoredRecordDB.payload)
                    .where(StoredRecordDB.store_name == store_name)
                    .order_by(StoredRecordDB.record_key)
                )
                payloads = result.scalars().all()
        except SQLAlchemyError as e:
            raise BackendOperationError(f"SQL scan failed for {store_name}") from e
        return [json.loads(p) for p in payloads]

    async def clear(self, store_name: str) -> None:
        try:
            async with self._sessions()() as session, session.begin():
                await session.execute(
                    delete(RecordIndexDB).where(RecordIndexDB.store_name == store_name)
                )
                await session.execute(
                    delete(StoredRecordDB).where(StoredRecordDB.store_name == store_name)
                )
        except SQLAlchemyError as e:
            raise BackendOperationError(f"SQL clear failed for {store_name}") from e

    async def query_by_index(
        self, store_name: str, index_name: str, value: Any
    ) -> list[dict[str, Any]]:
        """
        Records of ``store_name`` whose ``index_name`` field equals ``value``.

        Raises:
            BackendOperationError: If the index is not declared for the store
        """
        if index_name not in self.schema.store(store_name).indexes:
            raise BackendOperationError(
                f"Index {index_name!r} is not declared for store {store_name!r}"
            )

        matching = select(RecordIndexDB.record_key).where(
            RecordIndexDB.store_name == store_name,
            RecordIndexDB.index_name == index_name,
            RecordIndexDB.index_value == canonical_json(value),
        )
        try:
            async with self._sessions()() as session:
                result = await session.execute(
                    select(StoredRecordDB.payload)
                    .where(
                        StoredRecordDB.store_name == store_name,
                        StoredRecordDB.record_key.in_(matching),
                    )
                    .order_by(StoredRecordDB.record_key)
                )
                payloads = result.scalars().all()
        except SQLAlchemyError as e:
            raise BackendOperationError(
                f"SQL index query failed for {store_name}.{index_name}"
            ) from e
        return [json.loads(p) for p in payloads]

    # === Monitoring ===

    async def health_check(self) -> HealthCheckResult:
        try:
            version = await self.schema_version()
            return HealthCheckResult(
                healthy=True,
                storage_type=self.storage_type,
                namespace=self.namespace,
                metadata={"database_url": self.database_url, "schema_version": version},
            )
        except (NotInitializedError, SQLAlchemyError) as e:
            return HealthCheckResult(
                healthy=False,
                storage_type=self.storage_type,
                namespace=self.namespace,
                error=str(e),
            )


__all__ = ["SQLStorageBackend"]
