"""
Integration tests for UnifiedStorageManager over real storage drivers.

The same behaviour is checked on every durable tier: records written by
one manager are visible to the next one opened on the same store, index
queries agree, and tampered records are detected and repaired.
"""

import pytest

from resilient_data_access.storage import StorageConfig, StorageType, UnifiedStorageManager
from resilient_data_access.storage.backends.redis import RedisStorageBackend
from resilient_data_access.storage.backends.sql import SQLStorageBackend


@pytest.fixture(params=["structured", "flat"])
def make_manager(request, sqlite_url, namespace, redis_client):
    """Factory for managers sharing one persistent store."""
    if request.param == "structured":

        def factory():
            return UnifiedStorageManager(
                StorageConfig(db_name=namespace, database_url=sqlite_url)
            )

        factory.expected = StorageType.STRUCTURED
        return factory

    def factory():
        config = StorageConfig(db_name=namespace, enable_structured=False)
        backend = RedisStorageBackend(
            config.schema, namespace=namespace, redis_client=redis_client
        )
        return UnifiedStorageManager(config, backends=[backend])

    factory.expected = StorageType.FLAT
    return factory


async def test_records_survive_manager_restart(make_manager):
    async with make_manager() as storage:
        assert storage.storage_type is make_manager.expected
        await storage.set_item("profiles", "p-1", {"name": "Ada"}, email="ada@x.io")
        await storage.set_item("preferences", "theme", "dark")

    async with make_manager() as storage:
        assert await storage.get_item("profiles", "p-1") == {"name": "Ada"}
        assert await storage.get_item("preferences", "theme") == "dark"
        await storage.clear_store("profiles")
        await storage.clear_store("preferences")


async def test_index_queries_agree_across_tiers(make_manager):
    async with make_manager() as storage:
        await storage.set_item("evaluations", "e-1", {"n": 1}, email="ada@x.io")
        await storage.set_item("evaluations", "e-2", {"n": 2}, email="bob@x.io")
        await storage.set_item(
            "evaluations", "e-3", {"n": 3}, email="ada@x.io", sync_status="pending"
        )

        by_email = await storage.query_by_index("evaluations", "email", "ada@x.io")
        pending = await storage.query_by_index("evaluations", "syncStatus", "pending")

        assert sorted(item["n"] for item in by_email) == [1, 3]
        assert pending == [{"n": 3}]

        await storage.clear_store("evaluations")


async def test_tampered_record_repaired_in_place(make_manager):
    async with make_manager() as storage:
        await storage.set_item("profiles", "p-1", {"name": "Ada"})

        record = await storage.backend.get("profiles", "p-1")
        record["data"] = '{"name": "Ada", "role": "admin"}'
        await storage.backend.put("profiles", "p-1", record)

        assert await storage.get_item("profiles", "p-1") == {"name": "Ada", "role": "admin"}
        assert storage.stats.corrupted == 1

    async with make_manager() as storage:
        assert await storage.get_item("profiles", "p-1") == {"name": "Ada", "role": "admin"}
        assert storage.stats.corrupted == 0
        await storage.clear_store("profiles")


async def test_sql_schema_upgrade_keeps_records(sqlite_url):
    config = StorageConfig(database_url=sqlite_url, version=1)
    async with UnifiedStorageManager(config) as storage:
        await storage.set_item("profiles", "p-1", {"name": "Ada"})

    config = StorageConfig(database_url=sqlite_url, version=2)
    async with UnifiedStorageManager(config) as storage:
        assert isinstance(storage.backend, SQLStorageBackend)
        assert await storage.backend.schema_version() == 2
        assert await storage.get_item("profiles", "p-1") == {"name": "Ada"}


async def test_unopenable_database_falls_back_to_memory(tmp_path):
    config = StorageConfig(
        database_url=f"sqlite+aiosqlite:///{tmp_path}/missing-dir/sub/db.sqlite"
    )
    async with UnifiedStorageManager(config) as storage:
        assert storage.storage_type is StorageType.MEMORY
        assert await storage.set_item("profiles", "p-1", {}) is True
