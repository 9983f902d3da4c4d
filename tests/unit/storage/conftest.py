"""Shared fixtures for storage tests."""

import fnmatch

import pytest
from redis.exceptions import ConnectionError

from resilient_data_access.storage.schema import default_schema


class FakeRedis:
    """In-memory stand-in for the subset of ``redis.asyncio.Redis`` the flat tier uses."""

    def __init__(self, fail_ping: bool = False, fail_ops: bool = False):
        self.data: dict[str, str] = {}
        self.fail_ping = fail_ping
        self.fail_ops = fail_ops
        self.closed = False

    def _check(self) -> None:
        if self.fail_ops:
            raise ConnectionError("connection lost")

    async def ping(self) -> bool:
        if self.fail_ping:
            raise ConnectionError("connection refused")
        return True

    async def get(self, key: str) -> str | None:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self._check()
        self.data[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def scan_iter(self, match: str | None = None, count: int | None = None):
        self._check()
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def schema():
    return default_schema()


@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path}/storage.db"


@pytest.fixture
def make_fake_redis():
    return FakeRedis
