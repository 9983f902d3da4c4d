# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Protocol definitions for pluggable collaborators.

Available protocols:
- RemoteServiceProtocol: Interface of the remote service wrapped by the cache layer
- IntegrityProtocol: Interface for wrapping and validating persisted records
"""

from .integrity import IntegrityProtocol
from .service import RemoteServiceProtocol

__all__ = [
    "IntegrityProtocol",
    "RemoteServiceProtocol",
]
