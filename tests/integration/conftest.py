"""
Integration test fixtures.

Storage tiers run against real drivers: SQLite through aiosqlite for the
structured tier, and either fakeredis or a live server for the flat tier.

Set REDIS_URL (e.g. ``redis://localhost:6379/15``) to run the flat-tier
tests against a real Redis server instead of fakeredis. Each test writes
under its own namespace and clears the stores it used.
"""

from __future__ import annotations

import os
import uuid

import pytest

try:
    import fakeredis.aioredis as fakeredis
except ImportError:
    fakeredis = None

REDIS_URL_ENV = "REDIS_URL"


@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path}/integration.db"


@pytest.fixture
def namespace():
    """Unique key namespace so concurrent runs against one server never collide."""
    return f"rda-test-{uuid.uuid4().hex[:8]}"


@pytest.fixture
async def redis_client():
    """
    A ``redis.asyncio`` compatible client: a live server when REDIS_URL is
    set, fakeredis otherwise.

    Skips if:
        - REDIS_URL is set but the server is unreachable
        - REDIS_URL is not set and fakeredis is not installed
    """
    redis_url = os.getenv(REDIS_URL_ENV)
    if not redis_url:
        if fakeredis is None:
            pytest.skip("fakeredis not installed")
        client = fakeredis.FakeRedis(decode_responses=True)
    else:
        from redis.asyncio import Redis

        client = Redis.from_url(redis_url, decode_responses=True)
        try:
            await client.ping()
        except Exception as e:
            await client.aclose()
            pytest.skip(f"Could not connect to Redis: {e}")

    yield client

    await client.aclose()
