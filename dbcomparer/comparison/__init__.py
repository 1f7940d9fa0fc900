"""
Comparison engine.

Main components:
- query_builder: per-table retrieval statements
- fetcher: typed row snapshots from a live connection
- normalizer: type-aware value equivalence
- aligner: positional row pairing
- comparer: DBComparer, which drives the above
"""

from dbcomparer.comparison.aligner import AlignedRow, align_rows
from dbcomparer.comparison.comparer import DBComparer
from dbcomparer.comparison.fetcher import SnapshotFetcher
from dbcomparer.comparison.normalizer import TypeClass, ValueComparison, ValueNormalizer, classify
from dbcomparer.comparison.query_builder import build_queries, build_query
from dbcomparer.comparison.types import ColumnValue, CompareResult, Mismatch, MismatchKind

__all__ = [
    "AlignedRow",
    "ColumnValue",
    "CompareResult",
    "DBComparer",
    "Mismatch",
    "MismatchKind",
    "SnapshotFetcher",
    "TypeClass",
    "ValueComparison",
    "ValueNormalizer",
    "align_rows",
    "build_queries",
    "build_query",
    "classify",
]
