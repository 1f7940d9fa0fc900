"""
Retrieval statements for expected tables.

Table and column names are used verbatim. They come from the dataset file
and the comparison options, both trusted; callers passing untrusted names
must sanitize them first.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)


def build_query(table: str, order_by: Optional[Sequence[str]] = None) -> str:
    """
    Build the select-all statement for one table.

    Args:
        table: Table name, optionally schema qualified
        order_by: Columns for the ORDER BY clause, in order

    Returns:
        SQL statement
    """
    query = f"SELECT * FROM {table}"
    if order_by:
        query += " ORDER BY " + ", ".join(order_by)
    return query


def build_queries(
    tables: Iterable[str],
    order_by: Optional[Mapping[str, Sequence[str]]] = None
) -> Dict[str, str]:
    """Build one statement per table, keeping the tables' order."""
    order_by = order_by or {}
    queries = OrderedDict()
    for table in tables:
        queries[table] = build_query(table, order_by.get(table))
        logger.debug(f"Query for {table}: {queries[table]}")
    return queries
