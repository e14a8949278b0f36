"""Tests for the SQL statement builder."""

import logging
from datetime import datetime, timezone
from typing import Optional
from unittest.mock import patch

import pytest
from pydantic import BaseModel

from sqlkv.sql import (
    NULL,
    SQL,
    MissingConnectionError,
    SQLError,
    StatementFrozenError,
    UnresolvedBind,
    UnsanitizableValue,
    rows,
)


class Person(BaseModel):
    id: int
    name: str
    age: Optional[int] = None


class TestSQLBuilding:
    """Query text assembly, without executing."""

    def test_binds_are_interpolated(self):
        sql = SQL("SELECT * FROM people WHERE name = :name AND id IN :ids", {
            "name": "O'Brien",
            "ids": [1, 2, 3],
        })
        assert sql.query == "SELECT * FROM people WHERE name = 'O''Brien' AND id IN (1, 2, 3)"

    def test_mapping_as_first_argument(self):
        sql = SQL({"id": 1})
        sql.add("SELECT * FROM people WHERE id = :id")
        assert sql.query == "SELECT * FROM people WHERE id = 1"

    def test_fragments_joined_with_space(self):
        sql = SQL("SELECT *")
        sql.add("  FROM people  ").add(None).add("")
        assert sql.query == "SELECT * FROM people"

    def test_extras_override_binds(self):
        sql = SQL("SELECT :a,", {"a": 1, "b": 2})
        sql.add(":a, :b", {"a": 10})
        assert sql.query == "SELECT 1, 10, 2"

    def test_binds_resolved_when_added(self):
        sql = SQL("SELECT :a,", {"a": 1})
        sql.bind({"a": 2})
        sql.add(":a")
        assert sql.query == "SELECT 1, 2"

    def test_unresolved_bind(self):
        with pytest.raises(UnresolvedBind) as exc_info:
            SQL("SELECT * FROM people WHERE id = :id")
        assert exc_info.value.keyword == ":id"
        assert "There's no bind value for ':id'" in str(exc_info.value)

    def test_none_is_never_a_value(self):
        with pytest.raises(UnresolvedBind):
            SQL("SELECT :value", {"value": None})

        assert SQL("SELECT :value", {"value": NULL}).query == "SELECT NULL"

    def test_unsanitizable_bind(self):
        with pytest.raises(UnsanitizableValue):
            SQL("SELECT :value", {"value": {"a": 1}})

    def test_tokens_that_are_not_binds(self):
        sql = SQL("SELECT '12:30', :Upper")
        assert sql.query == "SELECT '12:30', :Upper"

    def test_add_unless_empty(self):
        sql = SQL()
        sql.add_unless_empty("UNION")
        assert sql.query == ""

        sql.add("SELECT 1").add_unless_empty("UNION").add("SELECT 2")
        assert sql.query == "SELECT 1 UNION SELECT 2"

    def test_rows(self):
        sql = SQL("INSERT INTO people (id, name) VALUES :rows", {
            "rows": rows([[1, "a"], [2, "b"]]),
        })
        assert sql.query == "INSERT INTO people (id, name) VALUES (1, 'a'), (2, 'b')"

    def test_force_timezone(self):
        value = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
        expected = value.astimezone().strftime("'%Y-%m-%d %H:%M:%S'")

        assert SQL("SELECT :t", {"t": value}).query == "SELECT '2024-06-01 12:00:00'"
        assert SQL("SELECT :t", {"t": value}, force_timezone="local").query == f"SELECT {expected}"

    def test_sanitize(self):
        value = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert SQL().sanitize(value) == "'2024-06-01 12:00:00'"
        assert SQL(force_timezone="local").sanitize(value) == value.astimezone().strftime("'%Y-%m-%d %H:%M:%S'")

    def test_missing_connection(self):
        sql = SQL("SELECT 1")
        with pytest.raises(MissingConnectionError):
            sql.results()

    def test_repr(self):
        assert repr(SQL("SELECT 1")) == "<SQL 'SELECT 1'>"


class TestSQLExecution:
    """Executing statements against SQLite."""

    @pytest.fixture
    def people(self, conn):
        conn.execute("CREATE TABLE people (id INTEGER PRIMARY KEY, name TEXT NOT NULL, age INTEGER)")
        SQL.run_query("INSERT INTO people (name, age) VALUES :rows", {
            "rows": rows([["alice", 30], ["bob", 25], ["carol", NULL], ["dave", 41], ["erin", 19]]),
        }, connection=conn)
        return conn

    def test_results(self, people):
        results = SQL.fetch_results(
            "SELECT name, age FROM people WHERE age > :age ORDER BY name",
            {"age": 26},
            connection=people,
        )
        assert results == [("alice", 30), ("dave", 41)]

    def test_hash_results(self, people):
        results = SQL.fetch_hash_results(
            "SELECT name, age FROM people WHERE name IN :names ORDER BY id",
            {"names": ["bob", "carol"]},
            connection=people,
        )
        assert results == [{"name": "bob", "age": 25}, {"name": "carol", "age": None}]

    def test_row_value_values(self, people):
        sql = SQL("SELECT name, age FROM people ORDER BY id", connection=people)
        assert sql.row() == ("alice", 30)
        assert sql.value() == "alice"
        assert sql.has_value() is True
        assert sql.values() == ["alice", "bob", "carol", "dave", "erin"]

    def test_empty_results(self, people):
        sql = SQL("SELECT name FROM people WHERE id = :id", {"id": 999}, connection=people)
        assert sql.results() == []
        assert sql.row() is None
        assert sql.value() is None
        assert sql.has_value() is False
        assert SQL.fetch_values("SELECT name FROM people WHERE 0", connection=people) == []

    def test_models(self, people):
        models = SQL("SELECT id, name, age FROM people ORDER BY id LIMIT 2", connection=people).models(Person)
        assert models == [Person(id=1, name="alice", age=30), Person(id=2, name="bob", age=25)]

    def test_models_validation_error(self, people):
        sql = SQL("SELECT name FROM people", connection=people)
        with pytest.raises(ValueError) as exc_info:
            sql.models(Person)
        assert "Row 0 failed validation for Person" in str(exc_info.value)

    def test_executes_once(self, people):
        sql = SQL("SELECT name FROM people ORDER BY id", connection=people)
        with patch.object(people, "execute", wraps=people.execute) as execute:
            first = sql.results()
            second = sql.hash_results()
            sql.values()

        assert execute.call_count == 1
        assert first[0] == ("alice",)
        assert second[0] == {"name": "alice"}

    def test_frozen_after_execution(self, people):
        sql = SQL("SELECT 1", connection=people)
        assert sql.frozen is False
        sql.run()
        assert sql.frozen is True

        with pytest.raises(StatementFrozenError):
            sql.add("UNION SELECT 2")

        with pytest.raises(StatementFrozenError):
            sql.bind({"a": 1})

    def test_run_with_fragment(self, people):
        sql = SQL("DELETE FROM people", connection=people)
        sql.run("WHERE age < :age", {"age": 26})
        assert sql.affected_rows == 2

    def test_affected_rows(self, people):
        sql = SQL.run_query("UPDATE people SET age = age + 1 WHERE age IS NOT NULL", connection=people)
        assert sql.affected_rows == 4

        sql = SQL.run_query("DELETE FROM people WHERE name = :name", {"name": "nobody"}, connection=people)
        assert sql.affected_rows == 0

    def test_last_insert_id(self, people):
        sql = SQL.run_query("INSERT INTO people (name) VALUES (:name)", {"name": "frank"}, connection=people)
        assert sql.affected_rows == 1
        assert sql.last_insert_id == 6

    def test_returning(self, people):
        sql = SQL(
            "UPDATE people SET age = :age WHERE name = :name RETURNING id, age",
            {"age": 50, "name": "carol"},
            connection=people,
        )
        assert sql.results() == [(3, 50)]

    def test_found_rows(self, people):
        sql = SQL(
            "SELECT SQL_CALC_FOUND_ROWS name FROM people ORDER BY id LIMIT :limit",
            {"limit": 2},
            connection=people,
        )
        assert sql.values() == ["alice", "bob"]
        assert sql.found_rows == 5

    def test_found_rows_with_offset(self, people):
        sql = SQL(
            "SELECT SQL_CALC_FOUND_ROWS name FROM people WHERE age IS NOT NULL ORDER BY id LIMIT 1 OFFSET 1",
            connection=people,
        )
        assert sql.values() == ["bob"]
        assert sql.found_rows == 4

    def test_found_rows_requires_marker(self, people):
        sql = SQL("SELECT name FROM people", connection=people)
        with pytest.raises(SQLError):
            sql.found_rows

    def test_transaction(self, people):
        sql = SQL("SELECT COUNT(*) FROM people", connection=people)

        with pytest.raises(RuntimeError):
            with sql.transaction():
                SQL.run_query("DELETE FROM people", connection=people)
                raise RuntimeError("boom")

        assert sql.value() == 5

    def test_in_transaction(self, people):
        with SQL.in_transaction(people):
            assert people.in_transaction
            SQL.run_query("DELETE FROM people WHERE id = 1", connection=people)

        assert not people.in_transaction
        assert SQL.fetch_value("SELECT COUNT(*) FROM people", connection=people) == 4

        with pytest.raises(MissingConnectionError):
            SQL.in_transaction(None)

    def test_datetime_columns_round_trip(self, conn):
        conn.execute("CREATE TABLE events (id INTEGER PRIMARY KEY, at DATETIME)")
        at = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        SQL.run_query("INSERT INTO events (at) VALUES (:at)", {"at": at}, connection=conn)

        assert SQL.fetch_value("SELECT at FROM events", connection=conn) == at

    def test_debug_logging(self, people, caplog):
        with caplog.at_level(logging.DEBUG, logger="sqlkv.sql.statement"):
            SQL.run_query("DELETE FROM people WHERE id = :id", {"id": 1}, connection=people)

        assert "SQL Delete: DELETE FROM people WHERE id = 1" in caplog.text
