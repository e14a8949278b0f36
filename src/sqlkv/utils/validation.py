"""Input validation for table names and key-value store arguments.

All checks run before any I/O so bad input never reaches the database.
"""

import re
from datetime import datetime
from typing import Any, Mapping

from sqlkv.sql.literal import Literal

MAX_KEY_LENGTH = 255
MAX_VALUE_LENGTH = 65535

# SQLite integers are signed 64-bit; amounts stay within a symmetric range
MAX_INTEGER = 2**63 - 1
MIN_INTEGER = -MAX_INTEGER

# Table names are interpolated into SQL, so keep them to plain identifiers
VALID_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

RESERVED_PREFIX = "sqlite_"


class InvalidIdentifierError(ValueError):
    """Raised when a table name isn't a safe SQL identifier."""

    pass


class InvalidInputError(TypeError, ValueError):
    """Raised when a key, value, amount or expiration has the wrong type or shape."""

    pass


class KeyLengthError(InvalidInputError):
    """Raised when a key exceeds MAX_KEY_LENGTH bytes."""

    pass


class ValueLengthError(InvalidInputError):
    """Raised when a value exceeds MAX_VALUE_LENGTH bytes."""

    pass


def validate_identifier(name: str, entity_type: str = "table") -> None:
    """Validate that a name can be used unquoted as a SQL identifier.

    Valid names must:
    - Contain only letters, digits and underscores
    - Not start with a digit
    - Not exceed 64 characters
    - Not use SQLite's reserved ``sqlite_`` prefix

    Raises:
        InvalidIdentifierError: If the name is invalid
    """
    if not isinstance(name, str) or not name:
        raise InvalidIdentifierError(f"{entity_type.capitalize()} name cannot be empty")

    if len(name) > 64:
        raise InvalidIdentifierError(
            f"{entity_type.capitalize()} name cannot exceed 64 characters"
        )

    if not VALID_IDENTIFIER_PATTERN.match(name):
        raise InvalidIdentifierError(
            f"Invalid {entity_type} name '{name}'. "
            f"Names must contain only letters, digits and underscores, "
            f"and must not start with a digit."
        )

    if name.lower().startswith(RESERVED_PREFIX):
        raise InvalidIdentifierError(
            f"{entity_type.capitalize()} name '{name}' uses the reserved '{RESERVED_PREFIX}' prefix"
        )


def _bytesize(value: Any) -> int:
    if isinstance(value, Literal):
        return value.bytesize
    return len(value.encode("utf-8"))


def validate_key_length(key: str) -> None:
    size = _bytesize(key)
    if size > MAX_KEY_LENGTH:
        raise KeyLengthError(
            f"key of length {size} exceeds maximum key length of {MAX_KEY_LENGTH}\n\nkey: {key!r}"
        )


def validate_value_length(value: Any) -> None:
    size = _bytesize(value)
    if size > MAX_VALUE_LENGTH:
        raise ValueLengthError(
            f"value of length {size} exceeds maximum value length of {MAX_VALUE_LENGTH}"
        )


def validate_key(key: Any) -> None:
    """Keys must be strings of at most MAX_KEY_LENGTH bytes."""
    if not isinstance(key, str):
        raise InvalidInputError(f"key must be a str, but was {type(key).__name__}")
    validate_key_length(key)


def validate_value(value: Any) -> None:
    """Values must be strings or SQL literals of at most MAX_VALUE_LENGTH bytes."""
    if not isinstance(value, (str, Literal)):
        raise InvalidInputError(
            f"value must be a str or Literal, but was {type(value).__name__}"
        )
    validate_value_length(value)


def validate_key_array(keys: Any) -> None:
    if not isinstance(keys, (list, tuple)):
        raise InvalidInputError(f"keys must be a list of str, but was {type(keys).__name__}")

    for key in keys:
        if not isinstance(key, str):
            raise InvalidInputError(
                f"keys must be a list of str, but also saw at least one {type(key).__name__}"
            )
        validate_key_length(key)


def validate_key_value_mapping(kvs: Any) -> None:
    if not isinstance(kvs, Mapping):
        raise InvalidInputError(f"kvs must be a dict of str to str, but was {type(kvs).__name__}")

    for key, value in kvs.items():
        if not isinstance(key, str):
            raise InvalidInputError(
                f"kvs must be a dict of str to str, but also saw at least one key of type {type(key).__name__}"
            )
        if not isinstance(value, (str, Literal)):
            raise InvalidInputError(
                f"kvs must be a dict of str to str, but also saw at least one value of type {type(value).__name__}"
            )
        validate_key_length(key)
        validate_value_length(value)


def validate_expires(expires: Any) -> None:
    if not isinstance(expires, datetime):
        raise InvalidInputError(
            f"expires must be a datetime, but was {type(expires).__name__}"
        )


def validate_amount(amount: Any) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidInputError("amount must be an int")
    if amount == 0:
        raise InvalidInputError("amount must not be zero")
    if not MIN_INTEGER <= amount <= MAX_INTEGER:
        raise InvalidInputError("amount must fit in a signed 64-bit integer")


def validate_touch(touch_on_insert: bool, expires: Any) -> None:
    if touch_on_insert and expires is None:
        raise InvalidInputError("touch_on_insert requires expires")
