"""Unit tests for DataIntegrityManager."""

import json
from unittest.mock import patch

import pytest

from resilient_data_access.storage.integrity import (
    DataIntegrityManager,
    ValidationResult,
    json_type_name,
)


@pytest.fixture
def integrity():
    return DataIntegrityManager()


class TestChecksum:
    def test_is_sixteen_hex_chars(self, integrity):
        checksum = integrity.calculate_checksum({"a": 1})
        assert len(checksum) == 16
        int(checksum, 16)

    def test_ignores_key_order(self, integrity):
        assert integrity.calculate_checksum({"a": 1, "b": 2}) == integrity.calculate_checksum(
            {"b": 2, "a": 1}
        )

    def test_detects_changes(self, integrity):
        assert integrity.calculate_checksum({"a": 1}) != integrity.calculate_checksum({"a": 2})


class TestWrap:
    def test_wrapped_layout(self, integrity):
        with patch("time.time", return_value=1234.5):
            wrapped = integrity.wrap({"x": 1}, type="profiles", source="sync", version=3)

        assert wrapped == {
            "version": 3,
            "timestamp": 1234.5,
            "data": {"x": 1},
            "metadata": {"type": "profiles", "source": "sync", "compressed": False},
            "checksum": integrity.calculate_checksum({"x": 1}),
        }

    def test_defaults(self, integrity):
        wrapped = integrity.wrap([1, 2])
        assert wrapped["version"] == 1
        assert wrapped["metadata"]["type"] == "unknown"
        assert wrapped["metadata"]["source"] == "app"

    def test_survives_json_round_trip(self, integrity):
        wrapped = json.loads(json.dumps(integrity.wrap({"b": [1, 2], "a": None})))
        assert integrity.unwrap(wrapped).valid is True


class TestUnwrap:
    def test_valid_record(self, integrity):
        result = integrity.unwrap(integrity.wrap({"x": 1}, version=2))
        assert result.valid is True
        assert result.data == {"x": 1}
        assert result.version == 2
        assert result.metadata["compressed"] is False
        assert result.timestamp is not None

    def test_non_mapping_is_invalid(self, integrity):
        result = integrity.unwrap("not a record")
        assert result.valid is False
        assert result.data is None
        assert result.error == "Invalid wrapped data format"

    def test_missing_fields(self, integrity):
        result = integrity.unwrap({"data": {"x": 1}})
        assert result.valid is False
        assert result.error == "Missing required fields"

    def test_checksum_mismatch_still_returns_data(self, integrity):
        wrapped = integrity.wrap({"x": 1})
        wrapped["data"] = {"x": 2}

        result = integrity.unwrap(wrapped)

        assert result.valid is False
        assert result.data == {"x": 2}
        assert "Checksum mismatch" in result.error

    def test_newer_version_rejected(self, integrity):
        result = integrity.unwrap(integrity.wrap({"x": 1}, version=3), max_version=2)
        assert result.valid is False
        assert result.error == "Version 3 is newer than supported 2"
        assert result.data == {"x": 1}

    def test_same_version_accepted(self, integrity):
        assert integrity.unwrap(integrity.wrap(1, version=2), max_version=2).valid

    def test_validator_returning_false(self, integrity):
        result = integrity.unwrap(integrity.wrap({"x": 1}), validator=lambda d: False)
        assert result.valid is False
        assert result.error.startswith("Validation failed")

    def test_validator_returning_result(self, integrity):
        result = integrity.unwrap(
            integrity.wrap({"x": 1}),
            validator=lambda d: ValidationResult(False, "no name"),
        )
        assert result.error == "Validation failed: no name"

    def test_validator_returning_mapping(self, integrity):
        result = integrity.unwrap(
            integrity.wrap({"x": 1}), validator=lambda d: {"valid": True}
        )
        assert result.valid is True

    def test_validator_raising(self, integrity):
        def explode(data):
            raise KeyError("name")

        result = integrity.unwrap(integrity.wrap({"x": 1}), validator=explode)
        assert result.valid is False
        assert result.error.startswith("Validation error")
        assert result.data == {"x": 1}


class TestValidateSchema:
    def test_no_schema_is_valid(self, integrity):
        assert integrity.validate_schema({"x": 1}, None).valid is True

    def test_required_fields(self, integrity):
        result = integrity.validate_schema({"a": 1}, {"required": ["a", "b"]})
        assert result.valid is False
        assert result.error == "Missing required field: b"

    def test_type_check(self, integrity):
        result = integrity.validate_schema([1], {"type": "object"})
        assert result.error == "Expected type object, got array"

    def test_field_types(self, integrity):
        schema = {"fields": {"name": "string", "age": "number"}}
        assert integrity.validate_schema({"name": "Ada", "age": 36}, schema).valid
        result = integrity.validate_schema({"name": "Ada", "age": "36"}, schema)
        assert result.error == "Field age: expected number, got string"

    def test_absent_fields_are_not_type_checked(self, integrity):
        assert integrity.validate_schema({}, {"fields": {"name": "string"}}).valid


class TestRepair:
    def test_parses_json_string(self, integrity):
        result = integrity.repair('{"a": 1}')
        assert result.success is True
        assert result.data == {"a": 1}
        assert result.repairs == ["Parsed JSON string"]

    def test_unparseable_string_fails(self, integrity):
        result = integrity.repair("{broken")
        assert result.success is False
        assert result.error == "Cannot parse JSON"

    def test_non_object_fails(self, integrity):
        result = integrity.repair([1, 2])
        assert result.success is False
        assert result.error == "Data is not an object"

    def test_remove_nulls(self, integrity):
        result = integrity.repair({"a": 1, "b": None}, remove_nulls=True)
        assert result.data == {"a": 1}

    def test_defaults_fill_missing_keys(self, integrity):
        result = integrity.repair({"a": 1}, defaults={"a": 0, "b": 2})
        assert result.data == {"a": 1, "b": 2}
        assert result.repairs == ["Added default for b"]

    def test_does_not_mutate_input(self, integrity):
        original = {"a": None}
        integrity.repair(original, remove_nulls=True, defaults={"b": 1})
        assert original == {"a": None}


class TestJsonTypeName:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, "null"),
            (True, "boolean"),
            (1, "number"),
            (1.5, "number"),
            ("s", "string"),
            ([1], "array"),
            ({}, "object"),
        ],
    )
    def test_names(self, value, expected):
        assert json_type_name(value) == expected
