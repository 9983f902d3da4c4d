"""Unit tests for MemoryStorageBackend."""

import pytest

from resilient_data_access.exceptions import NotInitializedError
from resilient_data_access.storage.backends import MemoryStorageBackend, StorageType


@pytest.fixture
def backend(schema):
    return MemoryStorageBackend(schema)


class TestMemoryStorageBackend:
    def test_tier_flags(self, backend):
        assert backend.storage_type is StorageType.MEMORY
        assert backend.durable is False
        assert backend.supports_native_index is False

    @pytest.mark.asyncio
    async def test_requires_open(self, backend):
        with pytest.raises(NotInitializedError):
            await backend.get("profiles", "k")

    @pytest.mark.asyncio
    async def test_put_get_delete(self, backend):
        await backend.open()
        await backend.put("profiles", "k", {"data": 1})
        assert await backend.get("profiles", "k") == {"data": 1}

        await backend.delete("profiles", "k")
        assert await backend.get("profiles", "k") is None
        await backend.delete("profiles", "k")

    @pytest.mark.asyncio
    async def test_records_are_isolated_copies(self, backend):
        await backend.open()
        record = {"data": {"tags": []}}
        await backend.put("s", "k", record)
        record["data"]["tags"].append("x")

        stored = await backend.get("s", "k")
        stored["data"]["tags"].append("y")

        assert await backend.get("s", "k") == {"data": {"tags": []}}

    @pytest.mark.asyncio
    async def test_stores_are_separate(self, backend):
        await backend.open()
        await backend.put("a", "k", {"v": 1})
        await backend.put("b", "k", {"v": 2})

        await backend.clear("a")

        assert await backend.get_all("a") == []
        assert await backend.get_all("b") == [{"v": 2}]

    @pytest.mark.asyncio
    async def test_query_by_index_not_supported(self, backend):
        await backend.open()
        with pytest.raises(NotImplementedError):
            await backend.query_by_index("profiles", "email", "x")

    @pytest.mark.asyncio
    async def test_health_check(self, backend):
        assert (await backend.health_check()).healthy is False
        async with backend:
            await backend.put("s", "k", {})
            health = await backend.health_check()
        assert health.healthy is True
        assert health.metadata == {"stores": 1, "records": 1}

    def test_index_values_skip_nulls(self, backend):
        record = {"email": "a@b.c", "updatedAt": None, "other": 1}
        assert backend.index_values("profiles", record) == {"email": "a@b.c"}
