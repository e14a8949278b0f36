"""Literal SQL values and bulk-insert rows."""

from typing import Any, Iterable, List, Sequence, Tuple


class Literal:
    """A SQL fragment inserted into a query without being escaped.

    WARNING: the text is spliced into SQL verbatim, callers are fully
    responsible for its safety.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Any):
        self._value = str(value)

    @property
    def value(self) -> str:
        return self._value

    @property
    def bytesize(self) -> int:
        return len(self._value.encode("utf-8"))

    def __eq__(self, other):
        return type(other) is type(self) and other.value == self.value

    def __hash__(self):
        return hash((type(self), self._value))

    def __repr__(self):
        return f"<{type(self).__name__} {self._value}>"


class Binary(Literal):
    """A binary literal that remembers the raw bytes it encodes."""

    __slots__ = ("_data",)

    def __init__(self, data: bytes):
        self._data = bytes(data)
        super().__init__(binary_literal(self._data))

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def bytesize(self) -> int:
        return len(self._data)


class Rows:
    """A list of rows for a multi-row ``INSERT ... VALUES :rows``."""

    __slots__ = ("_values",)

    def __init__(self, values: Iterable[Sequence[Any]]):
        values = list(values)
        if not all(isinstance(v, (list, tuple)) for v in values):
            raise ValueError("cannot instantiate SQL rows with anything but lists")
        self._values: Tuple[Tuple[Any, ...], ...] = tuple(tuple(v) for v in values)

    @property
    def values(self) -> Tuple[Tuple[Any, ...], ...]:
        return self._values

    def __len__(self):
        return len(self._values)

    def __repr__(self):
        return f"<{type(self).__name__} {list(self._values)!r}>"


def binary_literal(data: bytes) -> str:
    """Escape raw bytes as a SQL hex blob literal, e.g. ``X'626172'``."""
    return f"X'{bytes(data).hex()}'"


def literal(value: Any) -> Literal:
    """Wrap ``value`` so it's inserted into SQL unescaped."""
    return Literal(value)


def binary(data: bytes) -> Binary:
    """Wrap raw bytes so they round-trip exactly through the engine."""
    return Binary(data)


def rows(values: List[Sequence[Any]]) -> Rows:
    """Wrap a list of lists for bulk insertion."""
    return Rows(values)


NULL = Literal("NULL")
NOW = Literal("CURRENT_TIMESTAMP")
