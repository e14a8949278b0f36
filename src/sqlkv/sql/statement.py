"""Build and execute a SQL query with safely interpolated bind values.

Example::

    sql = SQL('''
        SELECT * FROM repositories
        WHERE source_id = :network_id AND parent_id IN :parent_ids
    ''', {"parent_ids": parent_ids, "network_id": network_id}, connection=conn)
    sql.results()       # list of tuples, one per row
    sql.hash_results()  # list of dicts instead

Things to be aware of:

* ``None`` is always an error, never a usable value. Bind ``NULL`` for a SQL
  NULL.
* Lists are rendered as ``(item, item, item)``. To insert several rows at
  once, bind ``rows([[...], [...]])``.
* Placeholders are resolved when a fragment is added, not when the query
  runs. Binds added later don't affect fragments already added.
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from sqlkv.sql.errors import (
    MissingConnectionError,
    SQLError,
    StatementFrozenError,
    UnresolvedBind,
)
from sqlkv.sql.sanitize import enforce_timezone, sanitize

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

BIND_PATTERN = re.compile(r":[a-z][a-z0-9_]*")
KEYWORD_PATTERN = re.compile(r"\s*([A-Za-z]+)")
FOUND_ROWS_PATTERN = re.compile(r"\A\s*SELECT\s+SQL_CALC_FOUND_ROWS\s+", re.IGNORECASE)
TRAILING_LIMIT_PATTERN = re.compile(
    r"\s+LIMIT\s+\S+(\s*(,|\bOFFSET\b)\s*\S+)?\s*;?\s*\Z", re.IGNORECASE
)


class SQL:
    """A SQL statement assembled from fragments and named bind values.

    A statement is single-use: the first call that needs results executes it,
    memoizes what came back, and freezes it.
    """

    def __init__(
        self,
        query: Optional[Any] = None,
        binds: Optional[Mapping[str, Any]] = None,
        *,
        connection=None,
        force_timezone: Optional[str] = None,
    ):
        """Initialize a new statement.

        Args:
            query: Initial SQL fragment. A mapping here is taken as ``binds``.
            binds: Bind values keyed by name, available to every ``add``
            connection: The connection to execute against
            force_timezone: ``"utc"`` or ``"local"``; overrides the default zone
                while rendering timestamps and executing
        """
        if isinstance(query, Mapping):
            binds, query = query, None

        self.query = ""
        self.binds: Dict[str, Any] = dict(binds) if binds else {}
        self.force_timezone = force_timezone
        self._connection = connection

        self._frozen = False
        self._results: Optional[List[Tuple[Any, ...]]] = None
        self._hash_results: Optional[List[Dict[str, Any]]] = None
        self._affected_rows: Optional[int] = None
        self._last_insert_id: Optional[int] = None
        self._found_rows: Optional[int] = None

        self.add(query)

    # Class-level conveniences

    @classmethod
    def run_query(cls, query: str, binds: Optional[Mapping[str, Any]] = None, **options) -> "SQL":
        """Create and execute a statement, ignoring its results."""
        return cls(query, binds, **options).run()

    @classmethod
    def fetch_results(cls, query: str, binds: Optional[Mapping[str, Any]] = None, **options):
        """Create and execute a statement, returning its rows as tuples."""
        return cls(query, binds, **options).results()

    @classmethod
    def fetch_hash_results(cls, query: str, binds: Optional[Mapping[str, Any]] = None, **options):
        """Create and execute a statement, returning its rows as dicts."""
        return cls(query, binds, **options).hash_results()

    @classmethod
    def fetch_value(cls, query: str, binds: Optional[Mapping[str, Any]] = None, **options):
        """Create and execute a statement, returning the first column of the first row."""
        return cls(query, binds, **options).value()

    @classmethod
    def fetch_values(cls, query: str, binds: Optional[Mapping[str, Any]] = None, **options):
        """Create and execute a statement, returning the first column of every row."""
        return cls(query, binds, **options).values()

    @classmethod
    def in_transaction(cls, connection):
        """Run a ``with`` block inside a transaction on ``connection``."""
        if connection is None:
            raise MissingConnectionError("a connection is required to open a transaction")
        return connection.transaction()

    # Building

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def connection(self):
        """The connection this statement executes against."""
        if self._connection is None:
            raise MissingConnectionError(f"{type(self).__name__} has no connection to execute against")
        return self._connection

    def add(self, sql: Optional[str], extras: Optional[Mapping[str, Any]] = None) -> "SQL":
        """Add a chunk of SQL to the query.

        Any ``:keyword`` tokens are replaced with database-safe values from
        ``extras`` or the statement's binds. ``extras`` only apply to this
        fragment.

        Raises:
            UnresolvedBind: For tokens with no value
            UnsanitizableValue: For values that can't be rendered
        """
        if not sql:
            return self
        self._ensure_mutable()

        fragment = self._interpolate(sql.strip(), extras)
        if not fragment:
            return self

        if self.query:
            self.query += " "
        self.query += fragment
        return self

    def add_unless_empty(self, sql: Optional[str], extras: Optional[Mapping[str, Any]] = None) -> "SQL":
        """Add a chunk of SQL, unless the query built so far is empty.

        Useful for optional clauses such as ``UNION`` between generated SELECTs.
        """
        if not self.query:
            return self
        return self.add(sql, extras)

    def bind(self, binds: Mapping[str, Any]) -> "SQL":
        """Add bind values for fragments added from now on."""
        self._ensure_mutable()
        self.binds.update(binds)
        return self

    def sanitize(self, value: Any) -> str:
        """Render ``value`` as a literal, honouring this statement's timezone."""
        with enforce_timezone(self.force_timezone):
            return sanitize(value, self._connection)

    def _interpolate(self, sql: str, extras: Optional[Mapping[str, Any]]) -> str:
        def replace(match):
            raw = match.group(0)
            name = raw[1:]

            value = None
            if extras is not None and name in extras:
                value = extras[name]
            elif name in self.binds:
                value = self.binds[name]

            if value is None:
                raise UnresolvedBind(raw)

            return sanitize(value, self._connection)

        with enforce_timezone(self.force_timezone):
            return BIND_PATTERN.sub(replace, sql)

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise StatementFrozenError(f"{type(self).__name__} has already been executed")

    # Execution

    def run(self, sql: Optional[str] = None, extras: Optional[Mapping[str, Any]] = None) -> "SQL":
        """Add an optional fragment, then execute, ignoring results."""
        if sql is not None:
            self.add(sql, extras)
        self.results()
        return self

    def results(self) -> List[Tuple[Any, ...]]:
        """Execute, memoize, and return the rows of this query."""
        if self._frozen:
            return self._results or []

        connection = self.connection
        counting = FOUND_ROWS_PATTERN.match(self.query)
        query = FOUND_ROWS_PATTERN.sub("SELECT ", self.query, count=1) if counting else self.query

        match = KEYWORD_PATTERN.match(query)
        keyword = match.group(1).upper() if match else ""

        with enforce_timezone(self.force_timezone):
            logger.debug(f"{type(self).__name__} {keyword.title() or 'Execute'}: {query}")
            cursor = connection.execute(query)

            if cursor.description:
                columns = [column[0] for column in cursor.description]
                rows = [tuple(row) for row in cursor.fetchall()]
            else:
                columns, rows = [], []

            if keyword in ("DELETE", "UPDATE"):
                self._affected_rows = cursor.rowcount
            elif keyword in ("INSERT", "REPLACE"):
                self._affected_rows = cursor.rowcount
                self._last_insert_id = cursor.lastrowid

            if counting:
                counted = TRAILING_LIMIT_PATTERN.sub("", query)
                self._found_rows = connection.execute(
                    f"SELECT COUNT(*) FROM ({counted})"
                ).fetchone()[0]

        self._results = rows
        self._hash_results = [dict(zip(columns, row)) for row in rows]
        self._frozen = True

        return self._results

    def hash_results(self) -> List[Dict[str, Any]]:
        """Rows as dicts keyed by column name.

        Identical column names collapse into one key; alias them to keep both.
        """
        self.results()
        return self._hash_results or []

    def models(self, model: Type[T]) -> List[T]:
        """Validate each row into an instance of a pydantic model.

        Raises:
            ValueError: If a row fails validation
        """
        instances = []
        for i, row in enumerate(self.hash_results()):
            try:
                instances.append(model(**row))
            except ValidationError as e:
                raise ValueError(
                    f"Row {i} failed validation for {model.__name__}: {str(e)}"
                ) from e
        return instances

    def row(self) -> Optional[Tuple[Any, ...]]:
        """First row of results."""
        results = self.results()
        return results[0] if results else None

    def value(self) -> Any:
        """First column of the first row of results."""
        row = self.row()
        return row[0] if row else None

    def has_value(self) -> bool:
        return self.value() is not None

    def values(self) -> List[Any]:
        """First column of every row of results."""
        return [row[0] for row in self.results()]

    @property
    def affected_rows(self) -> int:
        """Rows affected by this statement."""
        self.results()
        if self._affected_rows is not None and self._affected_rows >= 0:
            return self._affected_rows
        return self.connection.affected_rows

    @property
    def last_insert_id(self) -> int:
        """Rowid generated by this statement, or the connection's last one."""
        self.results()
        if self._last_insert_id is not None:
            return self._last_insert_id
        return self.connection.last_insert_id

    @property
    def found_rows(self) -> int:
        """Rows matched by a ``SELECT SQL_CALC_FOUND_ROWS`` query, ignoring LIMIT.

        Raises:
            SQLError: If the query had no ``SQL_CALC_FOUND_ROWS`` clause
        """
        self.results()
        if self._found_rows is None:
            raise SQLError("no SQL_CALC_FOUND_ROWS clause present")
        return self._found_rows

    def transaction(self):
        """Run a ``with`` block inside a transaction on this statement's connection."""
        return self.connection.transaction()

    def __repr__(self):
        return f"<{type(self).__name__} {self.query!r}>"
