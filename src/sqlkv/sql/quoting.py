"""SQLite quoting rules for scalar values."""

import math
from decimal import Decimal
from typing import Any

from sqlkv.sql.literal import binary_literal

QUOTED_TRUE = "TRUE"
QUOTED_FALSE = "FALSE"


def quote_string(value: str) -> str:
    """Quote text as a SQLite string literal.

    SQLite string literals can't carry NUL, so such text is sent as a blob
    and cast back to TEXT.
    """
    if "\x00" in value:
        return f"CAST({binary_literal(value.encode('utf-8'))} AS TEXT)"
    return "'" + value.replace("'", "''") + "'"


def quote(value: Any) -> str:
    """Render a scalar as a SQLite literal.

    Raises:
        TypeError: If the value isn't a quotable scalar
        ValueError: If a number has no SQL representation (NaN, infinity)
    """
    if isinstance(value, bool):
        return QUOTED_TRUE if value else QUOTED_FALSE
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"{value!r} has no SQL representation")
        return repr(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"{value!r} has no SQL representation")
        return str(value)
    if isinstance(value, str):
        return quote_string(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return binary_literal(bytes(value))
    raise TypeError(f"can't quote a {type(value).__name__}")
