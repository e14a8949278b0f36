"""Render typed Python values as SQL literals."""

from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Optional

from sqlkv.sql import quoting
from sqlkv.sql.errors import UnsanitizableValue
from sqlkv.sql.literal import Literal, Rows

UTC = "utc"
LOCAL = "local"
TIMEZONES = (UTC, LOCAL)

DB_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DB_DATE_FORMAT = "%Y-%m-%d"

_default_timezone: ContextVar[str] = ContextVar("sqlkv_default_timezone", default=UTC)


def get_default_timezone() -> str:
    """Zone timestamps are rendered in and read back as, ``"utc"`` or ``"local"``."""
    return _default_timezone.get()


def set_default_timezone(zone: str) -> None:
    """Set the rendering zone for the current context."""
    if zone not in TIMEZONES:
        raise ValueError(f"timezone must be one of {TIMEZONES}, got {zone!r}")
    _default_timezone.set(zone)


@contextmanager
def enforce_timezone(zone: Optional[str] = None) -> Iterator[None]:
    """Override the default timezone for the duration of the block.

    The previous zone is restored even if the block raises. ``None`` leaves
    the current zone alone.
    """
    if zone is None:
        yield
        return

    if zone not in TIMEZONES:
        raise ValueError(f"timezone must be one of {TIMEZONES}, got {zone!r}")

    token = _default_timezone.set(zone)
    try:
        yield
    finally:
        _default_timezone.reset(token)


def format_datetime(value: datetime) -> str:
    """Format a datetime the way it's stored, in the current default zone.

    Aware values are converted; naive values are assumed to already be in the
    default zone.
    """
    if value.tzinfo is not None:
        if get_default_timezone() == UTC:
            value = value.astimezone(timezone.utc)
        else:
            value = value.astimezone()
        value = value.replace(tzinfo=None)
    return value.strftime(DB_DATETIME_FORMAT)


def parse_datetime(text: str) -> datetime:
    """Parse a stored timestamp into an aware datetime in the default zone."""
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        return parsed
    if get_default_timezone() == UTC:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone()


def sanitize(value: Any, connection=None) -> str:
    """Make ``value`` database-safe.

    Args:
        value: The bind value to render
        connection: Optional connection whose ``quote`` is used for scalars

    Returns:
        The SQL text for the literal

    Raises:
        UnsanitizableValue: If the value's type or shape isn't supported
    """
    quote = connection.quote if connection is not None else quoting.quote

    # bool before int, datetime before date: both are subclasses
    if isinstance(value, bool):
        return quote(value)

    if isinstance(value, int):
        return str(value)

    if isinstance(value, (float, Decimal, str, bytes, bytearray)):
        try:
            return quote(value)
        except ValueError as e:
            raise UnsanitizableValue(value, str(e)) from e

    if isinstance(value, Literal):
        return value.value

    if isinstance(value, Rows):
        if not len(value):
            raise UnsanitizableValue(value, "empty rows")
        return ", ".join(sanitize(list(row), connection) for row in value.values)

    if isinstance(value, (list, tuple)):
        if not value:
            raise UnsanitizableValue(value, "an empty list")
        if any(isinstance(v, (list, tuple, Rows)) for v in value):
            raise UnsanitizableValue(value, "a nested list")
        return "(" + ", ".join(sanitize(v, connection) for v in value) + ")"

    if isinstance(value, datetime):
        return quote(format_datetime(value))

    if isinstance(value, date):
        return quote(value.strftime(DB_DATE_FORMAT))

    if isinstance(value, Enum):
        return quote(value.name)

    if isinstance(value, type):
        return quote(value.__name__)

    raise UnsanitizableValue(value)
