"""Utility modules for sqlkv."""

from sqlkv.utils.validation import (
    InvalidIdentifierError,
    InvalidInputError,
    KeyLengthError,
    ValueLengthError,
    validate_identifier,
)

__all__ = [
    "InvalidIdentifierError",
    "InvalidInputError",
    "KeyLengthError",
    "ValueLengthError",
    "validate_identifier",
]
