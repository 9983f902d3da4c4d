# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Cached Remote Service

Wraps a RemoteServiceProtocol implementation with request caching,
in-flight deduplication and debounced saves, so repeated reads of the same
resource cost one remote call per TTL window and bursts of saves collapse
into one.

Cache keys are built from ``remote://`` URLs, one URL family per operation.
Writes invalidate every cached read they can make stale before calling the
service.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from ..network.manager import NetworkEfficiencyManager
from ..protocols.service import RemoteServiceProtocol
from .policies import DebouncePolicy, TTLPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

URL_SCHEME = "remote://"


def _exact(url: str) -> str:
    """Pattern matching the cache key of a GET for exactly ``url``."""
    return f"::{re.escape(url)}$"


def _prefix(url: str) -> str:
    """Pattern matching the cache keys of GETs for every URL under ``url``."""
    return f"::{re.escape(url)}"


class CachedRemoteService:
    """
    Caching facade over a remote data service.

    Args:
        service: The wrapped service
        network: Shared NetworkEfficiencyManager
        ttl: Cache lifetimes per operation
        debounce: Debounce windows per operation

    Example:
        >>> cached = CachedRemoteService(service, network)
        >>> await cached.load_user_data("ada@example.com")  # remote call
        >>> await cached.load_user_data("ada@example.com")  # served from cache
    """

    def __init__(
        self,
        service: RemoteServiceProtocol,
        network: NetworkEfficiencyManager,
        ttl: TTLPolicy | None = None,
        debounce: DebouncePolicy | None = None,
    ) -> None:
        self.service = service
        self.network = network
        self.ttl = ttl or TTLPolicy()
        self.debounce = debounce or DebouncePolicy()

    # === URLs ===

    @staticmethod
    def url(*parts: str) -> str:
        """``remote://`` URL for the given path segments."""
        return URL_SCHEME + "/".join(parts)

    async def _get(self, url: str, fn: Callable[[], Awaitable[T]], ttl: float) -> T:
        return await self.network.request("GET", url, fn, ttl=ttl)

    # === Reads ===

    async def get_token(self) -> str | None:
        return await self._get(self.url("token"), self.service.get_token, self.ttl.token)

    async def verify_connection(self) -> bool:
        return await self._get(
            self.url("verify-connection"),
            self.service.verify_connection,
            self.ttl.connection,
        )

    async def load_user_data(self, email: str) -> dict[str, Any] | None:
        return await self._get(
            self.url("user-data", email),
            lambda: self.service.load_user_data(email),
            self.ttl.user_data,
        )

    async def load_user_evaluations(self, email: str) -> list[dict[str, Any]]:
        return await self._get(
            self.url("evaluations", email),
            lambda: self.service.load_user_evaluations(email),
            self.ttl.user_evaluations,
        )

    async def load_evaluation_index(self, email: str) -> list[dict[str, Any]]:
        return await self._get(
            self.url("evaluation-index", email),
            lambda: self.service.load_evaluation_index(email),
            self.ttl.user_evaluations,
        )

    async def get_evaluation_detail(
        self, email: str, evaluation_id: str
    ) -> dict[str, Any] | None:
        return await self._get(
            self.url("evaluation", email, evaluation_id),
            lambda: self.service.get_evaluation_detail(email, evaluation_id),
            self.ttl.evaluation_detail,
        )

    async def get_file_sha(self, path: str) -> str | None:
        return await self._get(
            self.url("file-sha", path),
            lambda: self.service.get_file_sha(path),
            self.ttl.file_sha,
        )

    async def get_file_content(self, path: str) -> Any:
        return await self._get(
            self.url("file-content", path),
            lambda: self.service.get_file_content(path),
            self.ttl.file_content,
        )

    async def list_directory(self, path: str) -> list[dict[str, Any]]:
        return await self._get(
            self.url("list", path),
            lambda: self.service.list_directory(path),
            self.ttl.file_content,
        )

    # === Writes ===

    async def save_user_data(self, user_data: dict[str, Any], debounce: bool = True) -> Any:
        """
        Save a user's profile record, invalidating the user's cached reads.

        With ``debounce``, saves for the same user within the save window
        collapse into the last one; earlier callers receive
        DebounceSupersededError.
        """
        email = user_data["email"]
        self.invalidate_user_cache(email)

        async def save() -> Any:
            return await self.service.save_user_data(user_data)

        if debounce:
            return await self.network.debounced_request(
                f"save-user-{email}", save, self.debounce.save
            )
        return await save()

    async def save_evaluation(
        self, evaluation: dict[str, Any], email: str, debounce: bool = True
    ) -> Any:
        """Save one evaluation, invalidating the user's and the evaluation's cached reads."""
        evaluation_id = evaluation.get("id")
        self.invalidate_user_cache(email)
        if evaluation_id:
            self.invalidate_evaluation_cache(email, str(evaluation_id))

        async def save() -> Any:
            return await self.service.save_evaluation(evaluation, email)

        if debounce:
            return await self.network.debounced_request(
                f"save-eval-{email}-{evaluation_id}", save, self.debounce.save
            )
        return await save()

    async def save_evaluation_index(
        self, email: str, entries: list[dict[str, Any]]
    ) -> Any:
        self.network.invalidate_cache(_exact(self.url("evaluation-index", email)))
        self.network.invalidate_cache(_exact(self.url("evaluations", email)))
        return await self.service.save_evaluation_index(email, entries)

    async def create_or_update_file(
        self, path: str, content: Any, message: str, sha: str | None = None
    ) -> Any:
        self._invalidate_file(path)
        return await self.service.create_or_update_file(path, content, message, sha)

    async def delete_file(self, path: str, message: str) -> Any:
        self._invalidate_file(path)
        return await self.service.delete_file(path, message)

    # === Invalidation ===

    def _invalidate_file(self, path: str) -> None:
        self.network.invalidate_cache(_exact(self.url("file-sha", path)))
        self.network.invalidate_cache(_exact(self.url("file-content", path)))

    def invalidate_user_cache(self, email: str) -> int:
        """Drop every cached read belonging to ``email``. Returns entries removed."""
        return (
            self.network.invalidate_cache(_exact(self.url("user-data", email)))
            + self.network.invalidate_cache(_exact(self.url("evaluations", email)))
            + self.network.invalidate_cache(_exact(self.url("evaluation-index", email)))
            + self.network.invalidate_cache(_prefix(self.url("evaluation", email, "")))
        )

    def invalidate_evaluation_cache(self, email: str, evaluation_id: str) -> int:
        return self.network.invalidate_cache(
            _exact(self.url("evaluation", email, evaluation_id))
        )

    def invalidate_all_caches(self) -> None:
        self.network.clear_cache()

    # === Convenience ===

    async def force_refresh_user_evaluations(self, email: str) -> list[dict[str, Any]]:
        """Invalidate the user's cached reads and reload the evaluation list."""
        self.invalidate_user_cache(email)
        return await self.load_user_evaluations(email)

    async def prefetch_user_data(self, email: str) -> None:
        """Warm the cache for a user. Individual failures are logged and ignored."""
        results = await asyncio.gather(
            self.load_user_data(email),
            self.load_user_evaluations(email),
            self.load_evaluation_index(email),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.debug(f"Prefetch for {email} failed: {result}")

    def get_cache_stats(self) -> dict[str, Any]:
        return self.network.get_stats()


__all__ = ["URL_SCHEME", "CachedRemoteService"]
