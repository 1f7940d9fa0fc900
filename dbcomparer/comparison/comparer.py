"""
Dataset Comparer

Checks that a PostgreSQL database holds exactly the rows an expected
dataset declares, table by table, row by row, column by column.

Row count and value differences are reported as a non-matching
CompareResult. Unreadable datasets, connection and query failures, missing
columns and undecodable expected values raise DBComparerError subclasses.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence, Set, Union

from dbcomparer.comparison.aligner import AlignedRow, align_rows
from dbcomparer.comparison.fetcher import SnapshotFetcher
from dbcomparer.comparison.normalizer import ValueNormalizer
from dbcomparer.comparison.query_builder import build_queries
from dbcomparer.comparison.types import CompareResult, Mismatch, MismatchKind, Snapshot
from dbcomparer.connection import ConnectionFactory
from dbcomparer.dataset import ExpectedDataset, load_dataset
from dbcomparer.exceptions import ColumnMissingError, DBComparerError, DBConnectionError, TypeDecodeError
from dbcomparer.monitoring.metrics import OUTCOME_ERROR, OUTCOME_MATCHED, OUTCOME_MISMATCHED
from dbcomparer.utils.correlation import CorrelationContext

logger = logging.getLogger(__name__)

ColumnsByTable = Mapping[str, Sequence[str]]


class DBComparer:
    """
    Compares expected datasets with live database contents.

    Holds no state between calls; one instance can serve concurrent
    comparisons if its connection factory can.
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        dsn: str,
        metrics=None,
        normalizer: Optional[ValueNormalizer] = None
    ):
        """
        Initialize the comparer.

        Args:
            connection_factory: Callable returning a DB-API connection for a
                DSN, e.g. psycopg2.connect or a PooledConnectionFactory
            dsn: Connection string passed to the factory
            metrics: Optional ComparisonMetrics
            normalizer: Value normalizer (a default one if not provided)

        Raises:
            ValueError: If the factory is None or the DSN is blank
        """
        if connection_factory is None:
            raise ValueError("connection factory cannot be None")
        if not dsn or not dsn.strip():
            raise ValueError("connection string cannot be empty")

        self.connection_factory = connection_factory
        self.dsn = dsn
        self.metrics = metrics
        self.normalizer = normalizer or ValueNormalizer()

    def compare(
        self,
        dataset_file: Union[str, Path],
        order_by: Optional[ColumnsByTable] = None,
        ignore_columns: Optional[ColumnsByTable] = None
    ) -> CompareResult:
        """
        Compare the database with a YAML dataset file.

        Args:
            dataset_file: Path of the expected dataset
            order_by: Table -> ordering columns for retrieval and alignment
            ignore_columns: Table -> columns never compared

        Returns:
            CompareResult, carrying the first mismatch when not matched

        Raises:
            LoadError: Dataset file unreadable or malformed
            DBConnectionError: Connection could not be acquired
            QueryError: A table's retrieval statement failed
            ColumnMissingError: A compared column is not in the table
            TypeDecodeError: An expected JSON/UUID value cannot be decoded
        """
        return self._run(lambda: load_dataset(dataset_file), order_by, ignore_columns)

    def compare_dataset(
        self,
        dataset: ExpectedDataset,
        order_by: Optional[ColumnsByTable] = None,
        ignore_columns: Optional[ColumnsByTable] = None
    ) -> CompareResult:
        """Compare the database with an already loaded dataset (see compare)."""
        return self._run(lambda: dataset, order_by, ignore_columns)

    def _run(
        self,
        get_dataset: Callable[[], ExpectedDataset],
        order_by: Optional[ColumnsByTable],
        ignore_columns: Optional[ColumnsByTable]
    ) -> CompareResult:
        with CorrelationContext():
            started = time.monotonic()
            outcome = OUTCOME_ERROR
            try:
                dataset = get_dataset()
                snapshot = self.fetch_snapshot(dataset, order_by)
                result = self._compare(dataset, snapshot, ignore_columns or {})
                outcome = OUTCOME_MATCHED if result.matched else OUTCOME_MISMATCHED
                return result
            finally:
                duration = time.monotonic() - started
                if self.metrics is not None:
                    self.metrics.record_compare(outcome, duration)
                logger.info(
                    f"Comparison finished: {outcome} in {duration:.3f}s",
                    extra={"outcome": outcome, "duration": duration}
                )

    def fetch_snapshot(
        self,
        dataset: ExpectedDataset,
        order_by: Optional[ColumnsByTable] = None
    ) -> Snapshot:
        """
        Fetch the rows of every dataset table over one connection.

        The connection is closed before returning, whether fetching
        succeeded or not.
        """
        queries = build_queries(dataset.keys(), order_by)

        try:
            connection = self.connection_factory(self.dsn)
        except DBComparerError:
            raise
        except Exception as e:
            logger.error(f"Failed to acquire database connection: {e}")
            raise DBConnectionError(f"cannot acquire database connection: {e}") from e

        try:
            return SnapshotFetcher(connection, metrics=self.metrics).fetch(queries)
        finally:
            connection.close()

    def _compare(
        self,
        dataset: ExpectedDataset,
        snapshot: Snapshot,
        ignore_columns: ColumnsByTable
    ) -> CompareResult:
        for table, expected_rows in dataset.items():
            aligned = align_rows(table, expected_rows, snapshot.get(table, []))
            if isinstance(aligned, Mismatch):
                return self._report(aligned)

            ignored = set(ignore_columns.get(table, ()))
            for row in aligned:
                mismatch = self._compare_row(table, row, ignored)
                if mismatch is not None:
                    return self._report(mismatch)

        logger.info(f"Dataset matched across {len(dataset)} tables")
        return CompareResult.success()

    def _compare_row(self, table: str, row: AlignedRow, ignored: Set[str]) -> Optional[Mismatch]:
        for column, expected in row.expected.items():
            if column in ignored:
                continue

            if column not in row.actual:
                logger.error(f"Column {column} not found in table {table} (row {row.index})")
                raise ColumnMissingError(table, row.index, column)

            try:
                comparison = self.normalizer.compare(expected, row.actual[column])
            except TypeDecodeError as e:
                e.locate(table, row.index, column)
                logger.error(str(e))
                raise

            if not comparison.equal:
                return Mismatch(
                    table=table,
                    kind=MismatchKind.VALUE,
                    expected=comparison.expected,
                    actual=comparison.actual,
                    row_index=row.index,
                    column=column
                )
        return None

    def _report(self, mismatch: Mismatch) -> CompareResult:
        logger.info(
            f"Dataset mismatch: {mismatch}",
            extra={"table": mismatch.table, "row_index": mismatch.row_index, "column": mismatch.column}
        )
        if self.metrics is not None:
            self.metrics.record_mismatch(mismatch.table, mismatch.kind.value)
        return CompareResult.failure(mismatch)
