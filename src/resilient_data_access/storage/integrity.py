# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Data Integrity Manager

Wraps persisted payloads with a version, timestamp, metadata and checksum,
and verifies them on the way back out. Corrupted payloads can be repaired
where the damage is recoverable (a JSON string instead of an object, null
fields, missing defaulted fields).

Wrapped record layout::

    {
        "version": 1,
        "timestamp": 1760000000.0,
        "data": {...},
        "metadata": {"type": "profiles", "source": "app", "compressed": False},
        "checksum": "3f2a9c0d1e4b5a67",
    }
"""

import hashlib
import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..network.cache import canonical_json

logger = logging.getLogger(__name__)

CHECKSUM_LENGTH = 16


@dataclass
class ValidationResult:
    """Outcome of a structural validation."""

    valid: bool
    error: str | None = None


@dataclass
class UnwrapResult:
    """
    Outcome of unwrapping a stored record.

    Attributes:
        valid: Whether the record passed every check
        data: The payload; also populated for most invalid records so that
            repair can be attempted
        error: Why the record is invalid
        metadata: The wrapper metadata (valid records only)
        timestamp: Wrap time in epoch seconds (valid records only)
        version: Payload version (valid records only)
    """

    valid: bool
    data: Any = None
    error: str | None = None
    metadata: dict[str, Any] | None = None
    timestamp: float | None = None
    version: int | None = None


@dataclass
class RepairResult:
    """Outcome of a repair attempt, with a log of what was changed."""

    success: bool
    data: Any = None
    repairs: list[str] = field(default_factory=list)
    error: str | None = None


def json_type_name(value: Any) -> str:
    """Name of the JSON type ``value`` serializes to."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _as_validation(outcome: Any) -> ValidationResult:
    # Validators may return a ValidationResult, a {"valid", "error"} mapping or a bool
    if isinstance(outcome, ValidationResult):
        return outcome
    if isinstance(outcome, Mapping):
        return ValidationResult(bool(outcome.get("valid")), outcome.get("error"))
    return ValidationResult(bool(outcome))


class DataIntegrityManager:
    """
    Default implementation of ``IntegrityProtocol``.

    Stateless; one instance can be shared by any number of storage managers.

    Example:
        >>> integrity = DataIntegrityManager()
        >>> wrapped = integrity.wrap({"name": "Ada"}, type="profiles")
        >>> integrity.unwrap(wrapped).data
        {'name': 'Ada'}
    """

    @staticmethod
    def calculate_checksum(data: Any) -> str:
        """SHA-256 of the canonical JSON form of ``data``, truncated to 16 hex chars."""
        digest = hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()
        return digest[:CHECKSUM_LENGTH]

    def wrap(
        self,
        data: Any,
        *,
        type: str = "unknown",
        source: str = "app",
        version: int = 1,
    ) -> dict[str, Any]:
        return {
            "version": version,
            "timestamp": time.time(),
            "data": data,
            "metadata": {"type": type, "source": source, "compressed": False},
            "checksum": self.calculate_checksum(data),
        }

    def unwrap(
        self,
        wrapped: Any,
        *,
        validator: Callable[[Any], Any] | None = None,
        max_version: int | None = None,
    ) -> UnwrapResult:
        """
        Verify ``wrapped`` and extract its payload.

        Checks run in order: shape, checksum, version, then the optional
        validator. A validator may return a bool, a ValidationResult or a
        ``{"valid": ..., "error": ...}`` mapping; if it raises, the record
        is reported invalid rather than propagating the error.
        """
        if not isinstance(wrapped, Mapping):
            return UnwrapResult(valid=False, error="Invalid wrapped data format")

        if "data" not in wrapped or "checksum" not in wrapped:
            return UnwrapResult(valid=False, error="Missing required fields")

        data = wrapped["data"]
        actual = self.calculate_checksum(data)
        if wrapped["checksum"] != actual:
            return UnwrapResult(
                valid=False,
                data=data,
                error="Checksum mismatch - data may be corrupted",
            )

        version = wrapped.get("version", 1)
        if max_version is not None and version > max_version:
            return UnwrapResult(
                valid=False,
                data=data,
                error=f"Version {version} is newer than supported {max_version}",
            )

        if validator is not None:
            try:
                outcome = _as_validation(validator(data))
            except Exception as e:
                return UnwrapResult(
                    valid=False, data=data, error=f"Validation error: {e}"
                )
            if not outcome.valid:
                return UnwrapResult(
                    valid=False,
                    data=data,
                    error=f"Validation failed: {outcome.error}",
                )

        return UnwrapResult(
            valid=True,
            data=data,
            metadata=wrapped.get("metadata"),
            timestamp=wrapped.get("timestamp"),
            version=version,
        )

    @staticmethod
    def validate_schema(data: Any, schema: Mapping[str, Any] | None) -> ValidationResult:
        """
        Validate ``data`` against a lightweight structural schema.

        Supported keys: ``required`` (list of field names), ``type`` (JSON
        type name of ``data``) and ``fields`` (field name to JSON type name,
        checked only for fields that are present). No schema means valid.
        """
        if not schema:
            return ValidationResult(valid=True)

        for name in schema.get("required") or []:
            if not isinstance(data, Mapping) or name not in data:
                return ValidationResult(False, f"Missing required field: {name}")

        expected_type = schema.get("type")
        if expected_type:
            actual_type = json_type_name(data)
            if actual_type != expected_type:
                return ValidationResult(
                    False, f"Expected type {expected_type}, got {actual_type}"
                )

        fields = schema.get("fields")
        if fields and isinstance(data, Mapping):
            for name, expected in fields.items():
                if name in data:
                    actual = json_type_name(data[name])
                    if actual != expected:
                        return ValidationResult(
                            False, f"Field {name}: expected {expected}, got {actual}"
                        )

        return ValidationResult(valid=True)

    def repair(
        self,
        data: Any,
        *,
        remove_nulls: bool = False,
        defaults: dict[str, Any] | None = None,
    ) -> RepairResult:
        """
        Try to turn ``data`` back into a usable object.

        JSON strings are parsed; anything that is still not an object fails.
        Null fields are dropped when ``remove_nulls`` is set, and missing
        keys from ``defaults`` are filled in.
        """
        repairs: list[str] = []

        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError:
                return RepairResult(success=False, error="Cannot parse JSON")
            repairs.append("Parsed JSON string")

        if not isinstance(data, Mapping):
            return RepairResult(success=False, error="Data is not an object")

        data = dict(data)

        if remove_nulls:
            data = {k: v for k, v in data.items() if v is not None}
            repairs.append("Removed null fields")

        for name, default in (defaults or {}).items():
            if name not in data:
                data[name] = default
                repairs.append(f"Added default for {name}")

        return RepairResult(success=True, data=data, repairs=repairs)


__all__ = [
    "CHECKSUM_LENGTH",
    "DataIntegrityManager",
    "RepairResult",
    "UnwrapResult",
    "ValidationResult",
    "json_type_name",
]
