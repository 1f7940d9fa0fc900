"""
Unit tests for the snapshot fetcher.
"""

import pytest
from prometheus_client import CollectorRegistry

from dbcomparer.comparison.fetcher import SnapshotFetcher
from dbcomparer.comparison.types import ColumnValue
from dbcomparer.exceptions import QueryError
from dbcomparer.monitoring.metrics import ComparisonMetrics

INT4 = 23
TEXT = 25


class TestSnapshotFetcher:
    """Test fetching typed rows."""

    @pytest.fixture
    def database(self, fake_db):
        fake_db.add_table("employee", [("id", INT4), ("name", TEXT)], [(1, "Alice"), (2, "Bob")])
        fake_db.add_table("department", [("code", TEXT)], [])
        return fake_db

    def test_rows_carry_values_and_type_codes(self, database):
        """Test that every column value is paired with its type OID."""
        fetcher = SnapshotFetcher(database.connect("dsn"))

        snapshot = fetcher.fetch({"employee": "SELECT * FROM employee"})

        assert snapshot["employee"] == [
            {"id": ColumnValue(1, INT4), "name": ColumnValue("Alice", TEXT)},
            {"id": ColumnValue(2, INT4), "name": ColumnValue("Bob", TEXT)},
        ]

    def test_empty_table(self, database):
        """Test that a table without rows yields an empty list."""
        fetcher = SnapshotFetcher(database.connect("dsn"))

        assert fetcher.fetch({"department": "SELECT * FROM department"}) == {"department": []}

    def test_tables_are_queried_in_order(self, database):
        """Test that queries run one by one in the given order."""
        fetcher = SnapshotFetcher(database.connect("dsn"))

        snapshot = fetcher.fetch({
            "department": "SELECT * FROM department",
            "employee": "SELECT * FROM employee ORDER BY id",
        })

        assert list(snapshot) == ["department", "employee"]
        assert database.executed == [
            "SELECT * FROM department",
            "SELECT * FROM employee ORDER BY id",
        ]

    def test_cursors_are_closed(self, database):
        """Test that each query's cursor is closed."""
        connection = database.connect("dsn")

        SnapshotFetcher(connection).fetch({
            "employee": "SELECT * FROM employee",
            "department": "SELECT * FROM department",
        })

        assert len(connection.cursors) == 2
        assert all(cursor.closed for cursor in connection.cursors)

    def test_failed_query_raises_query_error(self, database):
        """Test that a driver error names the failing table."""
        database.fail_table("department")
        connection = database.connect("dsn")

        with pytest.raises(QueryError, match="department") as exc_info:
            SnapshotFetcher(connection).fetch({
                "employee": "SELECT * FROM employee",
                "department": "SELECT * FROM department",
            })

        assert exc_info.value.table == "department"
        assert connection.cursors[-1].closed is True

    def test_driver_error_class_of_connection_is_wrapped(self, database):
        """Test that errors of a non-psycopg2 DB-API driver become QueryError."""

        class DriverError(Exception):
            pass

        class FailingCursor:
            def execute(self, query):
                raise DriverError("no such table: department")

            def __enter__(self):
                return self

            def __exit__(self, exc_type, exc_val, exc_tb):
                return False

        class DriverConnection:
            Error = DriverError

            def cursor(self):
                return FailingCursor()

        with pytest.raises(QueryError, match="no such table") as exc_info:
            SnapshotFetcher(DriverConnection()).fetch({"department": "SELECT * FROM department"})

        assert isinstance(exc_info.value.__cause__, DriverError)

    def test_rows_fetched_are_recorded(self, database):
        """Test that fetched row counts reach the metrics."""
        registry = CollectorRegistry()
        fetcher = SnapshotFetcher(database.connect("dsn"), metrics=ComparisonMetrics(registry=registry))

        fetcher.fetch({"employee": "SELECT * FROM employee"})

        assert registry.get_sample_value("dbcomparer_rows_fetched_total", {"table": "employee"}) == 2.0
