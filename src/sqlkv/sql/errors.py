"""Errors raised while building or executing SQL statements."""


class SQLError(RuntimeError):
    """Base class for query builder errors."""

    pass


class UnresolvedBind(SQLError):
    """Raised when a ``:keyword`` token has no usable bind value."""

    def __init__(self, keyword: str):
        self.keyword = keyword
        super().__init__(f"There's no bind value for {keyword!r}")


class UnsanitizableValue(SQLError):
    """Raised when a bound value can't be rendered as a SQL literal."""

    def __init__(self, value, description=None):
        self.value = value
        description = description or f"a {type(value).__name__}"
        super().__init__(f"Can't sanitize {description}: {value!r}")


class StatementFrozenError(SQLError):
    """Raised when modifying a statement that has already been executed."""

    pass


class MissingConnectionError(SQLError):
    """Raised when a statement or store has no connection to run against."""

    pass
