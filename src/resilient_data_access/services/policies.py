# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Caching policies for CachedRemoteService.

Per-operation cache lifetimes and debounce windows, in seconds.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TTLPolicy:
    """How long each kind of remote read stays cached."""

    token: float = 30 * 60
    """Access token; rarely changes."""

    connection: float = 2 * 60
    """Connection verification result."""

    user_evaluations: float = 5 * 60
    """A user's evaluation list and evaluation index."""

    evaluation_detail: float = 10 * 60
    """A single evaluation."""

    user_data: float = 5 * 60
    """A user's profile record."""

    file_sha: float = 1 * 60
    """Remote file content hashes."""

    file_content: float = 5 * 60
    """Remote file contents and directory listings."""

    def __post_init__(self) -> None:
        for name, value in vars(self).items():
            if value <= 0:
                raise ValueError(f"{name} TTL must be positive")


@dataclass(frozen=True)
class DebouncePolicy:
    """Quiet windows for user-triggered operations."""

    save: float = 1.0
    """Save operations."""

    search: float = 0.3
    """Search and filter operations."""

    validation: float = 0.5
    """Validation checks."""

    def __post_init__(self) -> None:
        for name, value in vars(self).items():
            if value < 0:
                raise ValueError(f"{name} debounce delay must be non-negative")


__all__ = ["DebouncePolicy", "TTLPolicy"]
