"""SQLite connection management for sqlkv."""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from sqlkv.sql import quoting
from sqlkv.sql.sanitize import format_datetime, parse_datetime


# Custom datetime adapter and converter for SQLite
def adapt_datetime(dt):
    """Convert datetime to the stored timestamp format."""
    return format_datetime(dt)


def convert_datetime(val):
    """Convert a stored timestamp to an aware datetime."""
    return parse_datetime(val.decode())


# Register the adapter and converter
sqlite3.register_adapter(datetime, adapt_datetime)
sqlite3.register_converter("TIMESTAMP", convert_datetime)
sqlite3.register_converter("DATETIME", convert_datetime)


MEMORY = ":memory:"


class DatabaseConnection:
    """Manages a SQLite database connection with WAL mode.

    The connection runs in autocommit mode; use :meth:`transaction` to group
    statements.
    """

    quoted_true = quoting.QUOTED_TRUE
    quoted_false = quoting.QUOTED_FALSE

    def __init__(self, path: Union[str, Path], timeout: float = 5.0):
        """Initialize database connection.

        Args:
            path: Path to SQLite database file, or ``":memory:"``
            timeout: Seconds to wait on a locked database
        """
        self.path = path if path == MEMORY else Path(path)
        self.timeout = timeout
        self._conn: Optional[sqlite3.Connection] = None
        self._depth = 0
        self._connect()

    def _connect(self) -> None:
        """Establish database connection and configure WAL mode."""
        if self.path != MEMORY:
            self.path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(
            str(self.path),
            timeout=self.timeout,
            isolation_level=None,
            detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
        )

        try:
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute("PRAGMA synchronous = NORMAL")
            self._conn.row_factory = sqlite3.Row
        except sqlite3.OperationalError:
            self._conn.close()
            self._conn = None
            raise

    def execute(self, sql: str, params: Optional[tuple] = None) -> sqlite3.Cursor:
        """Execute a SQL statement.

        Args:
            sql: SQL statement to execute
            params: Optional parameters for parameterized queries

        Returns:
            Cursor with results
        """
        if not self._conn:
            raise RuntimeError("Connection is closed")

        if params:
            return self._conn.execute(sql, params)
        return self._conn.execute(sql)

    def quote(self, value: Any) -> str:
        """Quote a scalar per SQLite's literal rules."""
        return quoting.quote(value)

    @property
    def affected_rows(self) -> int:
        """Rows changed by the most recent write on this connection."""
        return self.execute("SELECT changes()").fetchone()[0]

    @property
    def last_insert_id(self) -> int:
        """Rowid of the most recent successful insert on this connection."""
        return self.execute("SELECT last_insert_rowid()").fetchone()[0]

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self):
        """Context manager for database transactions.

        Automatically commits on success or rolls back on exception. Nested
        blocks use savepoints so an inner failure only undoes the inner work.
        """
        if not self._conn:
            raise RuntimeError("Connection is closed")

        savepoint = f"sqlkv_{self._depth}" if self._depth else None
        self._conn.execute(f"SAVEPOINT {savepoint}" if savepoint else "BEGIN IMMEDIATE")
        self._depth += 1
        try:
            yield self
        except Exception:
            if savepoint:
                self._conn.execute(f"ROLLBACK TO SAVEPOINT {savepoint}")
                self._conn.execute(f"RELEASE SAVEPOINT {savepoint}")
            else:
                self._conn.execute("ROLLBACK")
            raise
        else:
            if savepoint:
                self._conn.execute(f"RELEASE SAVEPOINT {savepoint}")
            else:
                self._conn.execute("COMMIT")
        finally:
            self._depth -= 1

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager."""
        self.close()
        return False
