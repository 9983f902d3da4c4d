"""Unit tests for RedisStorageBackend against an in-memory Redis double."""

import json
from unittest.mock import patch

import pytest

from resilient_data_access.exceptions import (
    BackendConnectionError,
    BackendOperationError,
    NotInitializedError,
)
from resilient_data_access.storage.backends.base import StorageType
from resilient_data_access.storage.backends.redis import RedisStorageBackend, escape_glob



@pytest.fixture
def backend(schema, fake_redis):
    return RedisStorageBackend(schema, namespace="app", redis_client=fake_redis)


class TestRedisStorageBackendInit:
    def test_requires_url_or_client(self, schema):
        with pytest.raises(ValueError):
            RedisStorageBackend(schema)

    def test_tier(self, backend):
        assert backend.storage_type is StorageType.FLAT
        assert backend.durable is True


class TestRedisStorageBackendOpen:
    @pytest.mark.asyncio
    async def test_open_pings(self, backend):
        await backend.open()
        assert (await backend.health_check()).healthy is True

    @pytest.mark.asyncio
    async def test_open_from_url(self, schema, fake_redis):
        with patch(
            "resilient_data_access.storage.backends.redis.Redis.from_url",
            return_value=fake_redis,
        ) as from_url:
            backend = RedisStorageBackend(schema, redis_url="redis://localhost:6379/0")
            await backend.open()

        from_url.assert_called_once()
        await backend.close()
        assert fake_redis.closed is True

    @pytest.mark.asyncio
    async def test_failed_ping_raises_connection_error(self, schema, make_fake_redis):
        backend = RedisStorageBackend(schema, redis_client=make_fake_redis(fail_ping=True))
        with pytest.raises(BackendConnectionError) as exc_info:
            await backend.open()
        assert exc_info.value.backend_type == "flat"

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self, backend, fake_redis):
        await backend.open()
        await backend.close()
        assert fake_redis.closed is False

    @pytest.mark.asyncio
    async def test_use_after_close(self, backend):
        await backend.open()
        await backend.close()
        with pytest.raises(NotInitializedError):
            await backend.get("s", "k")


class TestRedisStorageBackendRecords:
    @pytest.mark.asyncio
    async def test_key_layout_and_json_payload(self, backend, fake_redis):
        await backend.open()
        await backend.put("profiles", "p-1", {"data": {"name": "Ada"}})

        assert json.loads(fake_redis.data["app:profiles:p-1"]) == {"data": {"name": "Ada"}}
        assert await backend.get("profiles", "p-1") == {"data": {"name": "Ada"}}

    @pytest.mark.asyncio
    async def test_missing_key(self, backend):
        await backend.open()
        assert await backend.get("profiles", "nope") is None

    @pytest.mark.asyncio
    async def test_get_all_and_clear_are_scoped_to_store(self, backend, fake_redis):
        await backend.open()
        await backend.put("a", "1", {"v": 1})
        await backend.put("a", "2", {"v": 2})
        await backend.put("b", "1", {"v": 3})
        fake_redis.data["other:a:1"] = json.dumps({"v": 4})

        assert sorted(r["v"] for r in await backend.get_all("a")) == [1, 2]

        await backend.clear("a")

        assert await backend.get_all("a") == []
        assert await backend.get_all("b") == [{"v": 3}]
        assert "other:a:1" in fake_redis.data

    @pytest.mark.asyncio
    async def test_delete(self, backend):
        await backend.open()
        await backend.put("a", "1", {"v": 1})
        await backend.delete("a", "1")
        assert await backend.get("a", "1") is None

    @pytest.mark.asyncio
    async def test_redis_errors_become_operation_errors(self, schema, make_fake_redis):
        client = make_fake_redis()
        backend = RedisStorageBackend(schema, redis_client=client)
        await backend.open()
        client.fail_ops = True

        with pytest.raises(BackendOperationError):
            await backend.put("a", "1", {})
        with pytest.raises(BackendOperationError):
            await backend.get("a", "1")
        with pytest.raises(BackendOperationError):
            await backend.get_all("a")


class TestEscapeGlob:
    def test_escapes_metacharacters(self):
        assert escape_glob("a*b?[c]") == r"a\*b\?\[c\]"

    def test_plain_text_unchanged(self):
        assert escape_glob("resilient-data-access") == "resilient-data-access"
