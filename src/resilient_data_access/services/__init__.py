# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Consumers of the network layer for specific remote services."""

from .cached import URL_SCHEME, CachedRemoteService
from .policies import DebouncePolicy, TTLPolicy

__all__ = ["URL_SCHEME", "CachedRemoteService", "DebouncePolicy", "TTLPolicy"]
