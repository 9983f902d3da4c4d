# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Exception classes for the resilient data access library.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from DataAccessError, making it easy to catch
all library-related exceptions with a single except clause.

Cache misses, evictions and deduplicated requests are not errors and never
raise. Read failures in the storage layer are absorbed and reported through
statistics; write failures propagate as StorageWriteError.
"""


class DataAccessError(Exception):
    """Base exception for all resilient data access errors.

    Example:
        try:
            await storage.set_item("profiles", "user-1", profile)
        except DataAccessError as e:
            logger.error(f"Data access error: {e}")
    """

    pass


class ConfigurationError(DataAccessError):
    """Raised when a component is constructed with invalid arguments.

    Common causes include:
    - Non-positive cache sizes or TTLs
    - A backend chain with no entries
    - Negative debounce delays or throttle limits
    """

    pass


class BackendConnectionError(DataAccessError):
    """Raised when a storage backend cannot be opened.

    During ``UnifiedStorageManager.initialize()`` this error is caught and
    the next backend tier is tried. It only reaches callers that open a
    backend directly.

    Attributes:
        backend_type: The storage type that failed to open, if known.

    Example:
        try:
            await SQLStorageBackend(url, schema).open()
        except BackendConnectionError:
            logger.warning("Structured store unavailable, using memory")
            backend = MemoryStorageBackend(schema)
    """

    def __init__(self, message: str, backend_type: str | None = None):
        super().__init__(message)
        self.backend_type = backend_type


class BackendOperationError(DataAccessError):
    """Raised when an operation on an opened backend fails.

    This could be due to a dropped connection, serialization issues, or
    backend-specific errors surfaced by the driver.
    """

    pass


class NotInitializedError(BackendOperationError):
    """Raised when a backend is used before ``open()`` or after ``close()``."""

    pass


class StorageWriteError(DataAccessError):
    """Raised when ``set_item`` fails to persist a record.

    Writes are never silently dropped: the underlying error is chained
    as ``__cause__``.

    Attributes:
        store_name: The logical store being written.
        key: The record key being written.
    """

    def __init__(self, store_name: str, key: str, message: str | None = None):
        super().__init__(message or f"Failed to write {store_name}/{key}")
        self.store_name = store_name
        self.key = key


class StoreNotFoundError(DataAccessError):
    """Raised when a store is not declared by a strict storage schema.

    Attributes:
        store_name: The name of the store that was not found.
    """

    def __init__(self, store_name: str):
        super().__init__(f"Store not declared in schema: {store_name}")
        self.store_name = store_name


class DebounceSupersededError(DataAccessError):
    """Raised to callers of a debounced request replaced by a newer call.

    Only the last call scheduled for a key within the quiet window runs.
    Earlier callers are released with this error instead of waiting forever.

    Attributes:
        key: The debounce key whose call was superseded.

    Example:
        try:
            await network.debounced_request("save-user", save, delay=1.0)
        except DebounceSupersededError:
            pass  # a newer save for the same key is pending
    """

    def __init__(self, key: str):
        super().__init__(f"Debounced call superseded for key: {key}")
        self.key = key
