"""
Pytest configuration and shared fixtures.

Provides an in-memory stand-in for a psycopg2 connection so the fetcher and
comparer can be tested without a database.
"""

import pytest
import psycopg2

# PostgreSQL type OIDs used by the fixtures
INT4 = 23
TEXT = 25
TIMESTAMPTZ = 1184


class FakeCursor:
    """DB-API cursor over FakeDatabase tables."""

    def __init__(self, database):
        self.database = database
        self.description = None
        self.closed = False
        self._rows = []

    def execute(self, query):
        self.database.executed.append(query)
        table = query.split()[3]

        if table in self.database.failing:
            raise psycopg2.ProgrammingError(f'relation "{table}" does not exist')

        columns, rows = self.database.tables[table]
        self.description = [(name, type_code, None, None, None, None, None) for name, type_code in columns]
        self._rows = list(rows)

    def __iter__(self):
        return iter(self._rows)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class FakeConnection:
    def __init__(self, database):
        self.database = database
        self.closed = False
        self.cursors = []

    def cursor(self):
        cursor = FakeCursor(self.database)
        self.cursors.append(cursor)
        return cursor

    def close(self):
        self.closed = True


class FakeDatabase:
    """
    Tables keyed by name, each a (columns, rows) pair where columns is a
    list of (name, type OID) and rows a list of tuples.
    """

    def __init__(self):
        self.tables = {}
        self.failing = set()
        self.executed = []
        self.connections = []
        self.dsns = []

    def add_table(self, name, columns, rows=()):
        self.tables[name] = (list(columns), list(rows))

    def fail_table(self, name):
        self.failing.add(name)

    def connect(self, dsn):
        self.dsns.append(dsn)
        connection = FakeConnection(self)
        self.connections.append(connection)
        return connection


@pytest.fixture
def fake_db():
    """Empty in-memory database."""
    return FakeDatabase()


@pytest.fixture
def employee_db(fake_db):
    """Database with the single employee row used by most comparer tests."""
    from datetime import datetime, timezone

    fake_db.add_table(
        "employee",
        [("id", INT4), ("name", TEXT), ("created_at", TIMESTAMPTZ)],
        [(1, "Alice", datetime(2023, 1, 2, 10, 0, 0, tzinfo=timezone.utc))]
    )
    return fake_db
