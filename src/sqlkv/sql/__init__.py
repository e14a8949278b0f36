"""Type-safe SQL query construction."""

from sqlkv.sql.errors import (
    MissingConnectionError,
    SQLError,
    StatementFrozenError,
    UnresolvedBind,
    UnsanitizableValue,
)
from sqlkv.sql.literal import (
    NOW,
    NULL,
    Binary,
    Literal,
    Rows,
    binary,
    binary_literal,
    literal,
    rows,
)
from sqlkv.sql.sanitize import enforce_timezone, sanitize
from sqlkv.sql.statement import SQL

__all__ = [
    "SQL",
    "Literal",
    "Binary",
    "Rows",
    "NULL",
    "NOW",
    "literal",
    "binary",
    "binary_literal",
    "rows",
    "sanitize",
    "enforce_timezone",
    "SQLError",
    "UnresolvedBind",
    "UnsanitizableValue",
    "StatementFrozenError",
    "MissingConnectionError",
]
