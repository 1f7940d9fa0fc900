"""
Row Aligner

Pairs expected and actual rows of a table by position once their counts
agree. Row order has to match already, either through ordering columns or
a deterministic natural order.
"""

from typing import List, NamedTuple, Sequence, Union

from dbcomparer.comparison.types import ActualRow, Mismatch, MismatchKind
from dbcomparer.dataset import ExpectedRow


class AlignedRow(NamedTuple):
    index: int
    expected: ExpectedRow
    actual: ActualRow


def align_rows(
    table: str,
    expected_rows: Sequence[ExpectedRow],
    actual_rows: Sequence[ActualRow]
) -> Union[Mismatch, List[AlignedRow]]:
    """
    Pair row i of the dataset with row i of the snapshot.

    Args:
        table: Table the rows belong to
        expected_rows: Rows declared in the dataset
        actual_rows: Rows fetched from the database

    Returns:
        A ROW_COUNT Mismatch when the counts differ, otherwise the
        positional pairs
    """
    if len(expected_rows) != len(actual_rows):
        return Mismatch(
            table=table,
            kind=MismatchKind.ROW_COUNT,
            expected=str(len(expected_rows)),
            actual=str(len(actual_rows))
        )

    return [
        AlignedRow(index, expected, actual)
        for index, (expected, actual) in enumerate(zip(expected_rows, actual_rows))
    ]
