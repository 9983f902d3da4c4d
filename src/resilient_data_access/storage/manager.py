# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Unified Storage Manager

Single async interface for durable local state with:
- Automatic selection of the best available tier (SQL -> Redis -> memory)
- Integrity wrapping and checksum verification of every record
- Repair of recoverable corruption, re-persisted transparently
- Native secondary-index queries where the tier supports them

Error taxonomy:
    Reads (get_item, get_all_items, query_by_index) absorb backend errors,
    count them and return an empty result. remove_item and clear_store
    report failure as False. set_item propagates StorageWriteError.
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import asdict, dataclass
from typing import Any

from typing_extensions import Self

from ..exceptions import (
    BackendConnectionError,
    ConfigurationError,
    NotInitializedError,
    StorageWriteError,
)
from ..observability.constants import (
    STORAGE_BACKEND_FALLBACKS_TOTAL,
    STORAGE_CORRUPTED_TOTAL,
    STORAGE_ERRORS_TOTAL,
    STORAGE_READS_TOTAL,
    STORAGE_REPAIRED_TOTAL,
    STORAGE_WRITES_TOTAL,
)
from ..observability.protocols import MetricsCollectorProtocol
from ..protocols.integrity import IntegrityProtocol
from .backends.base import StorageBackend, StorageType
from .backends.memory import MemoryStorageBackend
from .config import StorageConfig
from .integrity import DataIntegrityManager, UnwrapResult

logger = logging.getLogger(__name__)

BackendFactory = Callable[[], StorageBackend]


@dataclass
class StorageStats:
    """Storage operation counters."""

    reads: int = 0
    writes: int = 0
    errors: int = 0
    corrupted: int = 0
    repaired: int = 0


def _rate(numerator: int, denominator: int) -> float:
    return min(1.0, numerator / denominator) if denominator > 0 else 0.0


class UnifiedStorageManager:
    """
    Tiered, integrity-checked key/value storage.

    Exactly one backend is chosen on first use and kept for the manager's
    lifetime. Every operation awaits ``initialize()`` first, so callers
    never need to call it explicitly.

    Args:
        config: Storage configuration (defaults to StorageConfig())
        integrity: Record wrapper/validator (defaults to DataIntegrityManager)
        backends: Explicit backend chain, tried in order instead of the
            configured tiers; the memory tier remains the last resort
        metrics_collector: Optional collector for storage metrics

    Example:
        >>> async with UnifiedStorageManager(StorageConfig(db_name="app")) as storage:
        ...     await storage.set_item("profiles", "p-1", {"name": "Ada"}, email="ada@example.com")
        ...     profile = await storage.get_item("profiles", "p-1")
    """

    def __init__(
        self,
        config: StorageConfig | None = None,
        *,
        integrity: IntegrityProtocol | None = None,
        backends: Sequence[StorageBackend] | None = None,
        metrics_collector: MetricsCollectorProtocol | None = None,
    ) -> None:
        if backends is not None and not backends:
            raise ConfigurationError("backends must contain at least one backend")

        self.config = config or StorageConfig()
        self.schema = self.config.schema
        self.integrity: IntegrityProtocol = integrity or DataIntegrityManager()
        self._injected = list(backends) if backends is not None else None
        self._metrics_collector = metrics_collector

        self.backend: StorageBackend | None = None
        self.storage_type: StorageType | None = None
        self.stats = StorageStats()

        self._init_lock = asyncio.Lock()
        self._init_task: asyncio.Task[bool] | None = None
        self._closed = False

    # === Initialization ===

    async def initialize(self) -> bool:
        """
        Select and open a backend, once.

        Concurrent callers share the same initialization. Later calls return
        the memoized outcome without touching any backend.

        Returns:
            True when a durable tier is active, False in memory mode

        Raises:
            NotInitializedError: If the manager has been closed
        """
        async with self._init_lock:
            if self._closed:
                raise NotInitializedError("UnifiedStorageManager is closed")
            if self._init_task is None:
                self._init_task = asyncio.create_task(
                    self._select_backend(), name=f"storage_init_{self.config.db_name}"
                )
            task = self._init_task
        return await asyncio.shield(task)

    def _candidates(self) -> list[tuple[StorageType | None, BackendFactory]]:
        if self._injected is not None:
            return [(b.storage_type, lambda b=b: b) for b in self._injected]

        chain: list[tuple[StorageType | None, BackendFactory]] = []
        if self.config.enable_structured and self.config.database_url:
            chain.append((StorageType.STRUCTURED, self._make_sql_backend))
        if self.config.enable_flat and self.config.redis_url:
            chain.append((StorageType.FLAT, self._make_redis_backend))
        return chain

    def _make_sql_backend(self) -> StorageBackend:
        from .backends.sql import SQLStorageBackend

        return SQLStorageBackend(
            self.schema,
            database_url=self.config.database_url or "",
            namespace=self.config.db_name,
            version=self.config.version,
            open_timeout=self.config.open_timeout,
        )

    def _make_redis_backend(self) -> StorageBackend:
        from .backends.redis import RedisStorageBackend

        return RedisStorageBackend(
            self.schema,
            namespace=self.config.db_name,
            redis_url=self.config.redis_url,
            open_timeout=self.config.open_timeout,
        )

    async def _select_backend(self) -> bool:
        for storage_type, factory in self._candidates():
            candidate: StorageBackend | None = None
            try:
                candidate = factory()
                await candidate.open()
            except Exception as e:
                tier = storage_type.value if storage_type else "unknown"
                if isinstance(e, (BackendConnectionError, ImportError)):
                    logger.warning(f"Storage tier {tier} unavailable: {e}")
                else:
                    logger.warning(
                        f"Storage tier {tier} failed to open: {e}", exc_info=True
                    )
                await self._discard(candidate)
                if self._metrics_collector:
                    self._metrics_collector.inc_counter(
                        STORAGE_BACKEND_FALLBACKS_TOTAL, labels={"storage_type": tier}
                    )
                continue

            backend = candidate

            self._activate(backend)
            if backend.durable:
                logger.info(f"Storage using {backend.storage_type.value} backend")
            else:
                logger.warning(
                    f"Storage using non-durable {backend.storage_type.value} backend"
                )
            return backend.durable

        backend = MemoryStorageBackend(self.schema, namespace=self.config.db_name)
        await backend.open()
        self._activate(backend)
        logger.warning("No persistent storage available, using memory")
        return False

    @staticmethod
    async def _discard(backend: StorageBackend | None) -> None:
        if backend is None:
            return
        try:
            await backend.close()
        except Exception as e:
            logger.debug(f"Closing failed {backend.storage_type.value} backend: {e}")

    def _activate(self, backend: StorageBackend) -> None:
        self.backend = backend
        self.storage_type = backend.storage_type

    def _active_backend(self) -> StorageBackend:
        if self.backend is None:
            raise NotInitializedError("Storage backend is closed")
        return self.backend

    @property
    def structured_available(self) -> bool:
        return self.storage_type is StorageType.STRUCTURED

    # === Lifecycle ===

    async def close(self) -> None:
        """
        Release the backend. Idempotent.

        A closed manager stays closed: later operations raise
        NotInitializedError. Build a new instance to select a tier again.
        """
        async with self._init_lock:
            self._closed = True
            task, self._init_task = self._init_task, None
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            backend, self.backend = self.backend, None
            self.storage_type = None

        if backend is not None:
            await backend.close()
            logger.info("UnifiedStorageManager closed")

    async def __aenter__(self) -> Self:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.close()

    # === Writes ===

    def _build_record(
        self,
        store_name: str,
        key: str,
        value: Any,
        *,
        type: str | None,
        source: str,
        version: int,
        email: str | None,
        sync_status: str | None,
        created_at: float | None,
    ) -> dict[str, Any]:
        wrapped = self.integrity.wrap(
            value, type=type or store_name, source=source, version=version
        )
        record = {
            **wrapped,
            "email": email,
            "syncStatus": sync_status,
            "createdAt": created_at if created_at is not None else wrapped["timestamp"],
            "updatedAt": time.time(),
        }
        # Key field last: it may share a name with an index field
        record[self.schema.key_path(store_name)] = key
        return record

    async def set_item(
        self,
        store_name: str,
        key: str,
        value: Any,
        *,
        type: str | None = None,
        source: str = "app",
        version: int = 1,
        email: str | None = None,
        sync_status: str | None = None,
        created_at: float | None = None,
    ) -> bool:
        """
        Wrap ``value`` and persist it under ``key``.

        Args:
            store_name: Logical store
            key: Record key, stored in the store's key field
            value: JSON-compatible payload
            type: Payload type recorded in metadata (defaults to store_name)
            source: Producer recorded in metadata
            version: Payload version
            email: Value for the ``email`` index field
            sync_status: Value for the ``syncStatus`` index field
            created_at: Value for ``createdAt`` (defaults to the wrap time)

        Returns:
            True once the record is persisted

        Raises:
            StorageWriteError: If the record could not be persisted
        """
        await self.initialize()
        self.stats.writes += 1
        self._inc(STORAGE_WRITES_TOTAL, store_name)

        try:
            record = self._build_record(
                store_name,
                key,
                value,
                type=type,
                source=source,
                version=version,
                email=email,
                sync_status=sync_status,
                created_at=created_at,
            )
            await self._active_backend().put(store_name, key, record)
        except Exception as e:
            self._record_error(store_name, "set_item")
            logger.error(f"set_item failed for {store_name}/{key}: {e}", exc_info=True)
            raise StorageWriteError(store_name, key) from e

        return True

    # === Reads ===

    async def get_item(
        self,
        store_name: str,
        key: str,
        *,
        validator: Callable[[Any], Any] | None = None,
        max_version: int | None = None,
        attempt_repair: bool = True,
        repair_options: dict[str, Any] | None = None,
        return_corrupted: bool = False,
        **write_options: Any,
    ) -> Any:
        """
        Read and verify the record stored under ``key``.

        A record that fails verification is counted as corrupted. When
        ``attempt_repair`` is set, the payload is repaired with
        ``repair_options`` and, on success, re-persisted. The stored
        record's index fields and metadata carry over unless overridden by
        ``write_options`` (the keyword arguments of ``set_item``).

        Returns:
            The verified or repaired payload; the corrupted payload when
            ``return_corrupted`` is set; otherwise None (including when the
            key is absent or the backend fails)
        """
        await self.initialize()
        self.stats.reads += 1
        self._inc(STORAGE_READS_TOTAL, store_name)

        try:
            wrapped = await self._active_backend().get(store_name, key)
        except Exception as e:
            self._record_error(store_name, "get_item")
            logger.error(f"get_item failed for {store_name}/{key}: {e}", exc_info=True)
            return None

        if wrapped is None:
            return None

        result = self.integrity.unwrap(
            wrapped, validator=validator, max_version=max_version
        )
        if result.valid:
            return result.data

        self.stats.corrupted += 1
        self._inc(STORAGE_CORRUPTED_TOTAL, store_name)
        logger.warning(f"Data corruption detected for {store_name}/{key}: {result.error}")

        if attempt_repair:
            repaired = self.integrity.repair(result.data, **(repair_options or {}))
            if repaired.success:
                self.stats.repaired += 1
                self._inc(STORAGE_REPAIRED_TOTAL, store_name)
                logger.info(f"Data repaired for {store_name}/{key}: {repaired.repairs}")
                options = {**self._carried_write_options(wrapped), **write_options}
                try:
                    await self.set_item(store_name, key, repaired.data, **options)
                except StorageWriteError as e:
                    logger.warning(f"Repaired data for {store_name}/{key} not re-saved: {e}")
                return repaired.data

        return result.data if return_corrupted else None

    @staticmethod
    def _carried_write_options(record: Any) -> dict[str, Any]:
        """set_item keywords that keep a re-saved record's index fields and metadata."""
        if not isinstance(record, Mapping):
            return {}
        options: dict[str, Any] = {}
        for field, option in (
            ("email", "email"),
            ("syncStatus", "sync_status"),
            ("createdAt", "created_at"),
        ):
            if record.get(field) is not None:
                options[option] = record[field]
        metadata = record.get("metadata")
        if isinstance(metadata, Mapping):
            for field in ("type", "source"):
                if isinstance(metadata.get(field), str):
                    options[field] = metadata[field]
        return options

    async def get_all_items(
        self,
        store_name: str,
        *,
        include_invalid: bool = False,
        validator: Callable[[Any], Any] | None = None,
        max_version: int | None = None,
    ) -> list[Any]:
        """
        Verified payloads of every record in ``store_name``.

        Invalid records are dropped unless ``include_invalid`` is set, in
        which case they appear flagged with ``__corrupted`` and ``__error``.
        """
        await self.initialize()

        try:
            records = await self._active_backend().get_all(store_name)
        except Exception as e:
            self._record_error(store_name, "get_all_items")
            logger.error(f"get_all_items failed for {store_name}: {e}", exc_info=True)
            return []

        items = []
        for wrapped in records:
            result = self.integrity.unwrap(
                wrapped, validator=validator, max_version=max_version
            )
            if result.valid:
                items.append(result.data)
            elif include_invalid:
                items.append(self._flag_corrupted(result))
        return items

    @staticmethod
    def _flag_corrupted(result: UnwrapResult) -> dict[str, Any]:
        flagged: dict[str, Any] = {"__corrupted": True, "__error": result.error}
        if isinstance(result.data, Mapping):
            flagged.update(result.data)
        else:
            flagged["data"] = result.data
        return flagged

    async def query_by_index(
        self,
        store_name: str,
        index_name: str,
        value: Any,
        *,
        validator: Callable[[Any], Any] | None = None,
        max_version: int | None = None,
    ) -> list[Any]:
        """
        Verified payloads of the records whose index field equals ``value``.

        Uses the backend's native index when it has one. Otherwise every
        record is scanned and matched on its persisted index field, or on
        the payload's ``index_name`` field when the record has none.
        """
        await self.initialize()

        try:
            backend = self._active_backend()
            if backend.supports_native_index:
                records = await backend.query_by_index(store_name, index_name, value)
            else:
                records = [
                    r
                    for r in await backend.get_all(store_name)
                    if self._matches_index(store_name, r, index_name, value)
                ]
        except Exception as e:
            self._record_error(store_name, "query_by_index")
            logger.error(
                f"query_by_index failed for {store_name}.{index_name}: {e}",
                exc_info=True,
            )
            return []

        items = []
        for wrapped in records:
            result = self.integrity.unwrap(
                wrapped, validator=validator, max_version=max_version
            )
            if result.valid:
                items.append(result.data)
        return items

    def _matches_index(
        self, store_name: str, record: Mapping[str, Any], index_name: str, value: Any
    ) -> bool:
        index = self.schema.store(store_name).indexes.get(index_name)
        field = index.key_path if index else index_name
        if record.get(field) is not None:
            return bool(record[field] == value)
        data = record.get("data")
        return isinstance(data, Mapping) and data.get(index_name) == value

    # === Removal ===

    async def remove_item(self, store_name: str, key: str) -> bool:
        """Delete the record under ``key``. Returns False if the backend failed."""
        await self.initialize()
        try:
            await self._active_backend().delete(store_name, key)
        except Exception as e:
            self._record_error(store_name, "remove_item")
            logger.error(f"remove_item failed for {store_name}/{key}: {e}", exc_info=True)
            return False
        return True

    async def clear_store(self, store_name: str) -> bool:
        """Delete every record in ``store_name``. Returns False if the backend failed."""
        await self.initialize()
        try:
            await self._active_backend().clear(store_name)
        except Exception as e:
            self._record_error(store_name, "clear_store")
            logger.error(f"clear_store failed for {store_name}: {e}", exc_info=True)
            return False
        return True

    # === Statistics ===

    def get_stats(self) -> dict[str, Any]:
        """
        Get storage statistics.

        Rates are fractions in [0, 1]: errors per read+write, corrupted
        records per read, repaired records per corrupted record.
        """
        s = self.stats
        return {
            "storage_type": self.storage_type.value if self.storage_type else None,
            "structured_available": self.structured_available,
            "stats": asdict(s),
            "error_rate": _rate(s.errors, s.reads + s.writes),
            "corruption_rate": _rate(s.corrupted, s.reads),
            "repair_rate": _rate(s.repaired, s.corrupted),
        }

    def _record_error(self, store_name: str, operation: str) -> None:
        self.stats.errors += 1
        if self._metrics_collector:
            self._metrics_collector.inc_counter(
                STORAGE_ERRORS_TOTAL,
                labels={"store": store_name, "operation": operation},
            )

    def _inc(self, name: str, store_name: str) -> None:
        if self._metrics_collector:
            self._metrics_collector.inc_counter(name, labels={"store": store_name})


__all__ = ["BackendFactory", "StorageStats", "UnifiedStorageManager"]
