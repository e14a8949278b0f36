"""Tests for input validation."""

from datetime import datetime, timezone

import pytest

from sqlkv.sql import binary, literal
from sqlkv.utils.validation import (
    MAX_KEY_LENGTH,
    InvalidIdentifierError,
    InvalidInputError,
    KeyLengthError,
    ValueLengthError,
    validate_amount,
    validate_expires,
    validate_identifier,
    validate_key,
    validate_key_array,
    validate_key_value_mapping,
    validate_touch,
    validate_value,
)


class TestIdentifierValidation:
    """Test table name validation."""

    @pytest.mark.parametrize("name", ["key_values", "KV", "_private", "cache2"])
    def test_valid_names(self, name):
        validate_identifier(name)

    def test_empty_name(self):
        with pytest.raises(InvalidIdentifierError) as exc_info:
            validate_identifier("")
        assert "cannot be empty" in str(exc_info.value)

    @pytest.mark.parametrize(
        "name", ["2cache", "key-values", "key values", "kv;DROP TABLE x", 'kv"']
    )
    def test_invalid_characters(self, name):
        with pytest.raises(InvalidIdentifierError):
            validate_identifier(name)

    def test_too_long(self):
        validate_identifier("a" * 64)
        with pytest.raises(InvalidIdentifierError) as exc_info:
            validate_identifier("a" * 65)
        assert "64 characters" in str(exc_info.value)

    def test_reserved_prefix(self):
        with pytest.raises(InvalidIdentifierError) as exc_info:
            validate_identifier("sqlite_master")
        assert "reserved" in str(exc_info.value)


class TestKeyValueValidation:
    """Test key, value and argument validation."""

    def test_keys(self):
        validate_key("")
        validate_key("k" * MAX_KEY_LENGTH)

        with pytest.raises(KeyLengthError):
            validate_key("k" * (MAX_KEY_LENGTH + 1))

        with pytest.raises(InvalidInputError):
            validate_key(b"bytes")

    def test_key_length_error_includes_key(self):
        with pytest.raises(KeyLengthError) as exc_info:
            validate_key("k" * 300)
        assert "exceeds maximum key length of 255" in str(exc_info.value)

    def test_values(self):
        validate_value("text")
        validate_value(literal("NULL"))
        validate_value(binary(b"\x00"))

        with pytest.raises(InvalidInputError):
            validate_value(b"raw bytes")

        with pytest.raises(ValueLengthError):
            validate_value("v" * 70000)

    def test_key_arrays(self):
        validate_key_array([])
        validate_key_array(("a", "b"))

        with pytest.raises(InvalidInputError):
            validate_key_array({"a", "b"})

        with pytest.raises(InvalidInputError):
            validate_key_array(["a", None])

    def test_key_value_mappings(self):
        validate_key_value_mapping({})
        validate_key_value_mapping({"a": "1", "b": binary(b"2")})

        with pytest.raises(InvalidInputError):
            validate_key_value_mapping({1: "a"})

        with pytest.raises(InvalidInputError):
            validate_key_value_mapping({"a": 1})

    def test_expires(self):
        validate_expires(datetime.now(timezone.utc))

        with pytest.raises(InvalidInputError):
            validate_expires(1700000000)

    def test_amount(self):
        validate_amount(1)
        validate_amount(-100)

        validate_amount(2**63 - 1)
        validate_amount(-(2**63) + 1)

        for amount in (0, True, 1.0, "1", 2**63, -(2**63)):
            with pytest.raises(InvalidInputError):
                validate_amount(amount)

    def test_touch(self):
        validate_touch(False, None)
        validate_touch(True, datetime.now(timezone.utc))

        with pytest.raises(InvalidInputError):
            validate_touch(True, None)
