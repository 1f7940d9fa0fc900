"""
Unit tests for the query builder.
"""

from dbcomparer.comparison.query_builder import build_queries, build_query


class TestBuildQuery:
    """Test single-table statements."""

    def test_select_all_without_ordering(self):
        """Test that no ordering columns produce a plain select."""
        assert build_query("employee") == "SELECT * FROM employee"

    def test_empty_ordering_is_ignored(self):
        """Test that an empty ordering list adds no ORDER BY clause."""
        assert build_query("employee", []) == "SELECT * FROM employee"

    def test_ordering_columns_keep_their_order(self):
        """Test that ordering columns are listed in the given order."""
        query = build_query("employee", ["last_name", "id"])

        assert query == "SELECT * FROM employee ORDER BY last_name, id"

    def test_schema_qualified_table_is_used_verbatim(self):
        """Test that identifiers are not quoted or escaped."""
        assert build_query("hr.employee", ["id"]) == "SELECT * FROM hr.employee ORDER BY id"


class TestBuildQueries:
    """Test statements for a whole dataset."""

    def test_one_query_per_table_in_order(self):
        """Test that tables keep the dataset's order."""
        queries = build_queries(["employee", "department"], {"department": ["code"]})

        assert list(queries) == ["employee", "department"]
        assert queries["employee"] == "SELECT * FROM employee"
        assert queries["department"] == "SELECT * FROM department ORDER BY code"

    def test_ordering_for_unknown_tables_is_ignored(self):
        """Test that ordering entries for tables outside the dataset add nothing."""
        queries = build_queries(["employee"], {"audit_log": ["id"]})

        assert queries == {"employee": "SELECT * FROM employee"}

    def test_no_ordering_mapping(self):
        """Test that order_by may be omitted."""
        assert build_queries(["employee"]) == {"employee": "SELECT * FROM employee"}
