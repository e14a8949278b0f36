"""Key-value store backed by a single SQLite table.

The backing table should be regarded as an implementation detail.

Usage tips:

* Order the components of key names by cardinality, lowest first: static
  components at the front, the ones with the most distinct values at the end,
  e.g. ``"user.theme.<user_id>"`` rather than ``"<user_id>.user.theme"``. This
  keeps the keyspace scannable by prefix.

* Every reader method returns a :class:`~sqlkv.result.Result`. If the
  database is unreachable the read doesn't raise, it returns a failed
  Result. Callers should handle that case (fall back to a default, show a
  partial page) rather than assume reads always succeed.

* Writers raise. A write that silently did nothing is worse than an error.
"""

import logging
import string
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from sqlkv.config import KVConfig
from sqlkv.core.connection import DatabaseConnection
from sqlkv.result import Result
from sqlkv.sql import NOW, NULL, SQL, Literal, MissingConnectionError, Rows
from sqlkv.sql.sanitize import UTC
from sqlkv.utils.validation import (
    MAX_KEY_LENGTH,
    MAX_VALUE_LENGTH,
    InvalidInputError,
    KeyLengthError,
    ValueLengthError,
    validate_amount,
    validate_expires,
    validate_key,
    validate_key_array,
    validate_key_value_mapping,
    validate_touch,
    validate_value,
)

logger = logging.getLogger(__name__)

ASCII_FOLD = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)

__all__ = [
    "KVStore",
    "MAX_KEY_LENGTH",
    "MAX_VALUE_LENGTH",
    "InvalidInputError",
    "KeyLengthError",
    "ValueLengthError",
    "UnavailableError",
    "InvalidValueError",
]


class UnavailableError(RuntimeError):
    """Raised by writes when the database is unreachable."""

    pass


class InvalidValueError(ValueError):
    """Raised when incrementing a key whose value isn't an integer."""

    pass


class KVStore:
    """Atomic get/set/exists/delete/increment/expire over one table.

    Args:
        connection: Zero-argument callable returning the connection to use
            for each operation. The store borrows it and never closes it.
        config: Table name, error translation, clock and case policy
    """

    MAX_KEY_LENGTH = MAX_KEY_LENGTH
    MAX_VALUE_LENGTH = MAX_VALUE_LENGTH

    def __init__(
        self,
        connection: Optional[Callable[[], DatabaseConnection]] = None,
        config: Optional[KVConfig] = None,
    ):
        self._connection_provider = connection
        self.config = config or KVConfig()
        self.table_name = self.config.table_name

    @property
    def connection(self) -> DatabaseConnection:
        conn = self._connection_provider() if self._connection_provider else None
        if conn is None:
            raise MissingConnectionError(
                "KVStore must be initialized with a callable that returns a connection"
            )
        return conn

    # Readers

    def get(self, key: str) -> Result[Optional[Union[str, bytes]]]:
        """Get the value of a key.

        Returns:
            Result holding the value, or None if the key is missing or expired
        """
        validate_key(key)

        return self.mget([key]).map(lambda values: values[0])

    def mget(self, keys: Sequence[str]) -> Result[List[Optional[Union[str, bytes]]]]:
        """Get the values of several keys, in the order requested.

        Returns:
            Result holding one value per requested key, None where missing
        """
        validate_key_array(keys)

        def fetch():
            if not keys:
                return []

            kvs = self._index(SQL.fetch_results(f"""
                SELECT "key", value FROM {self.table_name}
                WHERE {self._key_column} IN :keys
                AND (expires_at IS NULL OR expires_at > :now)
            """, {"keys": list(keys), "now": self._now()}, **self._statement_options()))

            return [kvs.get(self._normalize(key)) for key in keys]

        return Result.capture(fetch)

    def exists(self, key: str) -> Result[bool]:
        """Check whether a key is set and not expired."""
        validate_key(key)

        return self.mexists([key]).map(lambda values: values[0])

    def mexists(self, keys: Sequence[str]) -> Result[List[bool]]:
        """Check several keys for existence, in the order requested."""
        validate_key_array(keys)

        def fetch():
            if not keys:
                return []

            existing = {self._normalize(k) for k in SQL.fetch_values(f"""
                SELECT "key" FROM {self.table_name}
                WHERE {self._key_column} IN :keys
                AND (expires_at IS NULL OR expires_at > :now)
            """, {"keys": list(keys), "now": self._now()}, **self._statement_options())}

            return [self._normalize(key) in existing for key in keys]

        return Result.capture(fetch)

    def ttl(self, key: str) -> Result[Optional[datetime]]:
        """Get the expiration time of a key.

        Returns:
            Result holding the expiry, or None if the key never expires or is
            missing or expired
        """
        validate_key(key)

        return self.mttl([key]).map(lambda values: values[0])

    def mttl(self, keys: Sequence[str]) -> Result[List[Optional[datetime]]]:
        """Get the expiration times of several keys, in the order requested."""
        validate_key_array(keys)

        def fetch():
            if not keys:
                return []

            expirations = self._index(SQL.fetch_results(f"""
                SELECT "key", expires_at FROM {self.table_name}
                WHERE {self._key_column} IN :keys
                AND (expires_at IS NULL OR expires_at > :now)
            """, {"keys": list(keys), "now": self._now()}, **self._statement_options()))

            return [expirations.get(self._normalize(key)) for key in keys]

        return Result.capture(fetch)

    # Writers

    def set(self, key: str, value: Union[str, Literal], expires: Optional[datetime] = None) -> None:
        """Set a key, replacing any previous value and expiry.

        Expiry is stored to the second; fractional seconds are dropped, so an
        ``expires`` less than a second away may already count as expired.

        Raises:
            UnavailableError: If the database is unreachable
        """
        validate_key(key)
        validate_value(value)

        self.mset({key: value}, expires=expires)

    def mset(self, kvs: Mapping[str, Union[str, Literal]], expires: Optional[datetime] = None) -> None:
        """Set several keys in one statement, all expiring at ``expires``.

        A write without ``expires`` clears any expiry the keys had. Like
        :meth:`set`, expiry has one-second resolution.

        Raises:
            UnavailableError: If the database is unreachable
        """
        validate_key_value_mapping(kvs)
        if expires is not None:
            validate_expires(expires)

        if not kvs:
            return None

        now = self._now()
        rows = Rows(
            [key, value, now, now, expires if expires is not None else NULL]
            for key, value in kvs.items()
        )

        with self._encapsulate_errors():
            SQL.run_query(f"""
                INSERT INTO {self.table_name} ("key", value, created_at, updated_at, expires_at)
                VALUES :rows
                ON CONFLICT("key") DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at,
                    expires_at = excluded.expires_at
            """, {"rows": rows}, **self._statement_options())

        return None

    def setnx(self, key: str, value: Union[str, Literal], expires: Optional[datetime] = None) -> bool:
        """Set a key only if it isn't already set.

        Returns:
            True if the key was set, False if a live value was already there

        Raises:
            UnavailableError: If the database is unreachable
        """
        validate_key(key)
        validate_value(value)
        if expires is not None:
            validate_expires(expires)

        now = self._now()

        with self._encapsulate_errors():
            options = self._statement_options()

            # An expired row still holds the unique key, so reclaim it first.
            # Folding this into an upsert would make affected rows meaningless.
            SQL.run_query(f"""
                DELETE FROM {self.table_name}
                WHERE {self._key_column} = :key AND expires_at <= :now
            """, {"key": key, "now": now}, **options)

            sql = SQL.run_query(f"""
                INSERT OR IGNORE INTO {self.table_name} ("key", value, created_at, updated_at, expires_at)
                VALUES (:key, :value, :now, :now, :expires)
            """, {
                "key": key,
                "value": value,
                "now": now,
                "expires": expires if expires is not None else NULL,
            }, **options)

            return sql.affected_rows > 0

    def increment(
        self,
        key: str,
        amount: int = 1,
        expires: Optional[datetime] = None,
        touch_on_insert: bool = False,
    ) -> int:
        """Atomically add ``amount`` to an integer value.

        A missing or expired key starts from zero.

        Args:
            key: Key to increment
            amount: Non-zero integer to add, may be negative
            expires: New expiry for the key, truncated to the second
            touch_on_insert: Only apply ``expires`` when the key is created
                or its previous value had expired, leaving a live key's expiry
                alone

        Returns:
            The value after incrementing

        Raises:
            InvalidValueError: If the current value isn't an integer; it is left unchanged
            UnavailableError: If the database is unreachable
        """
        validate_key(key)
        validate_amount(amount)
        if expires is not None:
            validate_expires(expires)
        validate_touch(touch_on_insert, expires)

        table = self.table_name
        dead = f"({table}.expires_at IS NOT NULL AND {table}.expires_at <= :now)"
        numeric = f"CAST(CAST({table}.value AS INTEGER) AS TEXT) = CAST({table}.value AS TEXT)"
        # SQLite turns an overflowing integer sum into a REAL
        in_range = f"typeof(CAST({table}.value AS INTEGER) + :amount) = 'integer'"

        if expires is not None and not touch_on_insert:
            expires_at = "excluded.expires_at"
        else:
            expires_at = f"CASE WHEN {dead} THEN excluded.expires_at ELSE {table}.expires_at END"

        # The WHERE guard leaves a live non-numeric row, or one whose sum would
        # overflow, untouched. RETURNING then yields nothing.
        with self._encapsulate_errors():
            value = SQL.fetch_value(f"""
                INSERT INTO {table} ("key", value, created_at, updated_at, expires_at)
                VALUES (:key, :seed, :now, :now, :expires)
                ON CONFLICT("key") DO UPDATE SET
                    value = CASE
                        WHEN {dead} THEN excluded.value
                        ELSE CAST(CAST({table}.value AS INTEGER) + :amount AS TEXT)
                    END,
                    expires_at = {expires_at},
                    updated_at = excluded.updated_at
                WHERE {dead} OR ({numeric} AND {in_range})
                RETURNING value
            """, {
                "key": key,
                "seed": str(amount),
                "amount": amount,
                "now": self._now(),
                "expires": expires if expires is not None else NULL,
            }, **self._statement_options())

        if value is None:
            raise InvalidValueError(
                f"Value at key {key!r} is not an integer or would overflow by {amount}"
            )

        return int(value)

    def delete(self, key: str) -> None:
        """Delete a key. Deleting a missing key is not an error.

        Raises:
            UnavailableError: If the database is unreachable
        """
        validate_key(key)

        self.mdelete([key])

    def mdelete(self, keys: Sequence[str]) -> None:
        """Delete several keys.

        Raises:
            UnavailableError: If the database is unreachable
        """
        validate_key_array(keys)

        if not keys:
            return None

        with self._encapsulate_errors():
            SQL.run_query(f"""
                DELETE FROM {self.table_name} WHERE {self._key_column} IN :keys
            """, {"keys": list(keys)}, **self._statement_options())

        return None

    def prune_expired(self) -> int:
        """Delete rows whose expiry has passed.

        Returns:
            Number of rows removed

        Raises:
            UnavailableError: If the database is unreachable
        """
        with self._encapsulate_errors():
            sql = SQL.run_query(f"""
                DELETE FROM {self.table_name} WHERE expires_at <= :now
            """, {"now": self._now()}, **self._statement_options())
            removed = sql.affected_rows

        if removed:
            logger.info(f"Pruned {removed} expired keys from {self.table_name}")
        return removed

    # Internals

    def _statement_options(self) -> Dict[str, Any]:
        # Timestamps are always written and compared as UTC, matching CURRENT_TIMESTAMP
        return {"connection": self.connection, "force_timezone": UTC}

    @property
    def _key_column(self) -> str:
        if self.config.case_sensitive:
            return '"key"'
        return '"key" COLLATE NOCASE'

    def _normalize(self, key: str) -> str:
        # NOCASE only folds ASCII letters
        return key if self.config.case_sensitive else key.translate(ASCII_FOLD)

    def _index(self, rows) -> Dict[str, Any]:
        return {self._normalize(key): value for key, value in rows}

    def _now(self) -> Union[datetime, Literal]:
        """Reference time for expiry checks and timestamps."""
        if self.config.use_local_time:
            return self.config.clock()
        return NOW

    @contextmanager
    def _encapsulate_errors(self):
        try:
            yield
        except self.config.encapsulated_errors as error:
            logger.warning(f"{self.table_name} unavailable: {type(error).__name__}: {error}")
            raise UnavailableError(f"{type(error).__name__}: {error}") from error
