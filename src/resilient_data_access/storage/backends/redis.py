# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
RedisStorageBackend

Flat key/value tier. Each record is stored as a JSON string under
``{namespace}:{store_name}:{key}``; listing and clearing a store walk its
key prefix with SCAN so large keyspaces never block the server.
"""

import asyncio
import json
import logging
import re
from collections.abc import Awaitable
from typing import Any, ClassVar, cast

from redis.asyncio import Redis
from redis.exceptions import ConnectionError, RedisError, ResponseError, TimeoutError

from ...exceptions import BackendConnectionError, BackendOperationError, NotInitializedError
from ..schema import StorageSchema
from .base import HealthCheckResult, StorageBackend, StorageType

logger = logging.getLogger(__name__)

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")

_REDIS_ERRORS = (ConnectionError, TimeoutError, ResponseError, RedisError)


def escape_glob(value: str) -> str:
    """Escape Redis MATCH glob metacharacters in ``value``."""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


class RedisStorageBackend(StorageBackend):
    """
    Redis-backed flat storage tier.

    Args:
        schema: Store declarations
        namespace: Key prefix, normally the configured database name
        redis_url: Connection URL (ignored when ``redis_client`` is given)
        redis_client: Pre-built ``redis.asyncio`` client to use instead of
            connecting from ``redis_url``; it is not closed by ``close()``
        open_timeout: Seconds allowed for the opening ping
    """

    storage_type: ClassVar[StorageType] = StorageType.FLAT

    def __init__(
        self,
        schema: StorageSchema,
        namespace: str = "resilient-data-access",
        redis_url: str | None = None,
        redis_client: Any | None = None,
        open_timeout: float = 5.0,
    ):
        super().__init__(schema, namespace)
        if redis_url is None and redis_client is None:
            raise ValueError("Either redis_url or redis_client must be provided")

        self.redis_url = redis_url
        self.open_timeout = open_timeout
        self._redis: Any | None = redis_client
        self._owns_client = redis_client is None

    def _key(self, store_name: str, key: str) -> str:
        return f"{self.namespace}:{store_name}:{key}"

    def _store_pattern(self, store_name: str) -> str:
        return f"{escape_glob(self.namespace)}:{escape_glob(store_name)}:*"

    def _client(self) -> Any:
        if self._redis is None:
            raise NotInitializedError("RedisStorageBackend is not open")
        return self._redis

    # === Lifecycle ===

    async def open(self) -> None:
        """Connect and ping; any failure is reported as BackendConnectionError."""
        try:
            if self._redis is None:
                self._redis = Redis.from_url(
                    cast(str, self.redis_url),
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=self.open_timeout,
                    socket_timeout=self.open_timeout,
                )
            await asyncio.wait_for(
                cast(Awaitable[bool], self._redis.ping()), timeout=self.open_timeout
            )
        except (asyncio.TimeoutError, OSError, ValueError, *_REDIS_ERRORS) as e:
            await self.close()
            raise BackendConnectionError(
                f"Redis unavailable at {self.redis_url}: {e}",
                backend_type=self.storage_type.value,
            ) from e

        logger.info(f"RedisStorageBackend connected (namespace={self.namespace})")

    async def close(self) -> None:
        client, self._redis = self._redis, None
        if client is None or not self._owns_client:
            return
        try:
            await client.aclose()
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")

    # === Records ===

    async def get(self, store_name: str, key: str) -> dict[str, Any] | None:
        client = self._client()
        try:
            raw = await client.get(self._key(store_name, key))
        except _REDIS_ERRORS as e:
            raise BackendOperationError(f"Redis GET failed for {store_name}/{key}") from e
        return json.loads(raw) if raw is not None else None

    async def put(self, store_name: str, key: str, record: dict[str, Any]) -> None:
        client = self._client()
        payload = json.dumps(record)
        try:
            await client.set(self._key(store_name, key), payload)
        except _REDIS_ERRORS as e:
            raise BackendOperationError(f"Redis SET failed for {store_name}/{key}") from e

    async def delete(self, store_name: str, key: str) -> None:
        client = self._client()
        try:
            await client.delete(self._key(store_name, key))
        except _REDIS_ERRORS as e:
            raise BackendOperationError(f"Redis DEL failed for {store_name}/{key}") from e

    async def get_all(self, store_name: str) -> list[dict[str, Any]]:
        client = self._client()
        records = []
        try:
            async for redis_key in client.scan_iter(
                match=self._store_pattern(store_name), count=100
            ):
                raw = await client.get(redis_key)
                if raw is not None:
                    records.append(json.loads(raw))
        except _REDIS_ERRORS as e:
            raise BackendOperationError(f"Redis SCAN failed for {store_name}") from e
        return records

    async def clear(self, store_name: str) -> None:
        client = self._client()
        try:
            batch = []
            async for redis_key in client.scan_iter(
                match=self._store_pattern(store_name), count=100
            ):
                batch.append(redis_key)
                if len(batch) >= 100:
                    await client.delete(*batch)
                    batch = []
            if batch:
                await client.delete(*batch)
        except _REDIS_ERRORS as e:
            raise BackendOperationError(f"Redis clear failed for {store_name}") from e

    # === Monitoring ===

    async def health_check(self) -> HealthCheckResult:
        """Ping the server."""
        try:
            healthy = bool(await self._client().ping())
            return HealthCheckResult(
                healthy=healthy,
                storage_type=self.storage_type,
                namespace=self.namespace,
                metadata={"redis_url": self.redis_url},
            )
        except (NotInitializedError, *_REDIS_ERRORS) as e:
            return HealthCheckResult(
                healthy=False,
                storage_type=self.storage_type,
                namespace=self.namespace,
                error=str(e),
            )


__all__ = ["RedisStorageBackend", "escape_glob"]
