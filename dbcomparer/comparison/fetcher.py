"""
Snapshot Fetcher

Runs the per-table retrieval statements on a live connection and captures
each row as column -> (value, type OID).
"""

import logging
from collections import OrderedDict
from typing import List, Mapping

import psycopg2

from dbcomparer.comparison.types import ActualRow, ColumnValue, Snapshot
from dbcomparer.exceptions import QueryError

logger = logging.getLogger(__name__)


class SnapshotFetcher:
    """
    Fetches typed row snapshots over one DB-API connection.

    Tables are queried one after another; each query gets its own cursor,
    closed before the next table is queried.
    """

    def __init__(self, connection, metrics=None):
        """
        Initialize the fetcher.

        Args:
            connection: DB-API connection; psycopg2 errors and the
                connection's own ``Error`` class are wrapped as QueryError
            metrics: Optional ComparisonMetrics to record fetched rows
        """
        self.connection = connection
        self.metrics = metrics

    def fetch(self, queries: Mapping[str, str]) -> Snapshot:
        """
        Execute every query and collect the rows.

        Args:
            queries: Table name -> SQL statement, in comparison order

        Returns:
            Table name -> list of rows

        Raises:
            QueryError: If any statement fails; no partial snapshot is returned
        """
        snapshot: Snapshot = OrderedDict()
        for table, query in queries.items():
            snapshot[table] = self.fetch_table(table, query)
        return snapshot

    def fetch_table(self, table: str, query: str) -> List[ActualRow]:
        """Execute one table's statement and stream its rows."""
        logger.debug(f"Executing query for {table}: {query}")
        driver_error = getattr(self.connection, "Error", psycopg2.Error)

        try:
            with self.connection.cursor() as cursor:
                cursor.execute(query)
                fields = [(column[0], column[1]) for column in cursor.description or ()]

                rows = []
                for record in cursor:
                    rows.append(OrderedDict(
                        (name, ColumnValue(value, type_code))
                        for (name, type_code), value in zip(fields, record)
                    ))
        except (psycopg2.Error, driver_error) as e:
            logger.error(f"Query for table {table} failed: {e}")
            raise QueryError(table, str(e).strip()) from e

        logger.info(f"Fetched {len(rows)} rows from {table}")
        if self.metrics is not None:
            self.metrics.record_rows_fetched(table, len(rows))
        return rows
