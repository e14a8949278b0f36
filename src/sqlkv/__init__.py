"""sqlkv - A key-value store and SQL builder over SQLite."""

from sqlkv.config import KVConfig
from sqlkv.core.connection import DatabaseConnection
from sqlkv.core.schema import create_kv_table, drop_kv_table
from sqlkv.managers.kv import InvalidValueError, KVStore, UnavailableError
from sqlkv.result import Result
from sqlkv.sql import NOW, NULL, SQL, binary, literal, rows
from sqlkv.utils.validation import InvalidInputError, KeyLengthError, ValueLengthError

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("sqlkv")
except PackageNotFoundError:
    # Package metadata is not available when running from a source tree
    __version__ = "0.1.0"

__all__ = [
    "KVStore",
    "KVConfig",
    "Result",
    "SQL",
    "DatabaseConnection",
    "create_kv_table",
    "drop_kv_table",
    "NULL",
    "NOW",
    "literal",
    "binary",
    "rows",
    "InvalidInputError",
    "KeyLengthError",
    "ValueLengthError",
    "InvalidValueError",
    "UnavailableError",
]
