"""
Shared types for snapshots and comparison outcomes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional


class ColumnValue(NamedTuple):
    """A fetched value paired with its PostgreSQL type OID."""
    value: Any
    type_code: int


ActualRow = Dict[str, ColumnValue]
Snapshot = Dict[str, List[ActualRow]]


class MismatchKind(Enum):
    """Why a comparison failed."""
    ROW_COUNT = "row_count"
    VALUE = "value"


@dataclass(frozen=True)
class Mismatch:
    """
    Diagnostic for the first difference found.

    Attributes:
        table: Table the difference was found in
        kind: Classification of the difference
        expected: Canonical expected value (row count for ROW_COUNT)
        actual: Canonical actual value (row count for ROW_COUNT)
        row_index: Zero-based row position, None for row count mismatches
        column: Column name, None for row count mismatches
    """

    table: str
    kind: MismatchKind
    expected: str
    actual: str
    row_index: Optional[int] = None
    column: Optional[str] = None

    def __str__(self) -> str:
        if self.kind is MismatchKind.ROW_COUNT:
            return f"table {self.table}: expected {self.expected} rows, actual {self.actual}"
        return (
            f"table {self.table}, row {self.row_index}, column {self.column}: "
            f"expected {self.expected}, actual {self.actual}"
        )


@dataclass(frozen=True)
class CompareResult:
    """
    Outcome of a dataset comparison.

    Can be used as a boolean: truthy only when everything matched.
    """

    matched: bool
    mismatch: Optional[Mismatch] = None

    def __bool__(self) -> bool:
        return self.matched

    @classmethod
    def success(cls) -> "CompareResult":
        return cls(matched=True)

    @classmethod
    def failure(cls, mismatch: Mismatch) -> "CompareResult":
        return cls(matched=False, mismatch=mismatch)
