"""
Error taxonomy for dataset comparison.

Every infrastructure failure raised by the comparer derives from
DBComparerError. Row count and value mismatches are not errors: they are
reported through CompareResult.
"""

from typing import Any, Optional


class DBComparerError(Exception):
    """Base class for comparison infrastructure failures."""
    pass


class LoadError(DBComparerError):
    """Raised when the expected dataset cannot be read or decoded."""
    pass


class DBConnectionError(DBComparerError):
    """Raised when a database connection cannot be acquired."""
    pass


class QueryError(DBComparerError):
    """Raised when the retrieval statement for a table fails."""

    def __init__(self, table: str, message: str):
        self.table = table
        super().__init__(f"query for table {table} failed: {message}")


class ColumnMissingError(DBComparerError):
    """Raised when a compared column is absent from the fetched row."""

    def __init__(self, table: str, row_index: int, column: str):
        self.table = table
        self.row_index = row_index
        self.column = column
        super().__init__(
            f"column {column} not found in table {table} (row {row_index})"
        )


class TypeDecodeError(DBComparerError):
    """Raised when an expected value cannot be decoded for its column type."""

    def __init__(
        self,
        value: Any,
        reason: str,
        table: Optional[str] = None,
        row_index: Optional[int] = None,
        column: Optional[str] = None
    ):
        self.value = value
        self.reason = reason
        self.table = table
        self.row_index = row_index
        self.column = column
        super().__init__(self._message())

    def _message(self) -> str:
        location = ""
        if self.table is not None:
            location = f" for column {self.column} in table {self.table} (row {self.row_index})"
        return f"cannot decode expected value {self.value!r}{location}: {self.reason}"

    def locate(self, table: str, row_index: int, column: str) -> "TypeDecodeError":
        """Attach the table/row/column the failing value belongs to."""
        self.table = table
        self.row_index = row_index
        self.column = column
        self.args = (self._message(),)
        return self
