# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Protocol for the remote data service wrapped by CachedRemoteService."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RemoteServiceProtocol(Protocol):
    """
    Minimal protocol for a rate-limited remote data service.

    The caching layer never inspects transport details. It only needs the
    read operations it caches and the write operations after which it
    invalidates cached reads. Every method is a coroutine; errors raised by
    the service propagate unchanged through the caching layer.
    """

    async def get_token(self) -> str | None:
        """Access token from the environment, if any."""
        ...

    async def verify_connection(self) -> bool:
        """Check that the remote service is reachable with current credentials."""
        ...

    async def load_user_data(self, email: str) -> dict[str, Any] | None:
        """Load a user's profile record."""
        ...

    async def load_user_evaluations(self, email: str) -> list[dict[str, Any]]:
        """List a user's evaluations."""
        ...

    async def load_evaluation_index(self, email: str) -> list[dict[str, Any]]:
        """Load a user's evaluation index (summary entries)."""
        ...

    async def get_evaluation_detail(
        self, email: str, evaluation_id: str
    ) -> dict[str, Any] | None:
        """Load one evaluation in full."""
        ...

    async def get_file_sha(self, path: str) -> str | None:
        """Content hash of a remote file, used for optimistic writes."""
        ...

    async def get_file_content(self, path: str) -> Any:
        """Decoded content of a remote file."""
        ...

    async def list_directory(self, path: str) -> list[dict[str, Any]]:
        """Entries of a remote directory."""
        ...

    async def save_user_data(self, user_data: dict[str, Any]) -> Any:
        """Persist a user's profile record."""
        ...

    async def save_evaluation(self, evaluation: dict[str, Any], email: str) -> Any:
        """Persist one evaluation for a user."""
        ...

    async def save_evaluation_index(
        self, email: str, entries: list[dict[str, Any]]
    ) -> Any:
        """Replace a user's evaluation index."""
        ...

    async def create_or_update_file(
        self, path: str, content: Any, message: str, sha: str | None = None
    ) -> Any:
        """Write a remote file."""
        ...

    async def delete_file(self, path: str, message: str) -> Any:
        """Delete a remote file."""
        ...
