"""sqlkv managers."""

from sqlkv.managers.kv import (
    InvalidValueError,
    KVStore,
    UnavailableError,
)

__all__ = ["KVStore", "InvalidValueError", "UnavailableError"]
