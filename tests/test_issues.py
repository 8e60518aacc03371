"""
Tests for bounded issue collection.
"""
from dqcheck.issues import IssueCollector, count_invalid_rows, truncate_issues


def fill(collector, issue_type, count, first_row=1):
    for row_number in range(first_row, first_row + count):
        collector.add(row_number, "v", "x", issue_type, "error", "bad value")


class TestIssueCollector:
    """Test suite for per-type caps and merging."""

    def test_counts_everything_but_keeps_up_to_cap(self):
        collector = IssueCollector(max_per_type=3)

        fill(collector, "type-mismatch", 5)

        assert len(collector.issues) == 3
        assert collector.counts == {"type-mismatch": 5}
        assert collector.dropped == 2
        assert collector.column_counts == {"type-mismatch": {"v": 5}}

    def test_merge_applies_cap_across_collectors(self):
        first = IssueCollector(max_per_type=4)
        second = IssueCollector(max_per_type=4)
        fill(first, "enum", 3)
        fill(second, "enum", 3, first_row=10)
        fill(second, "pattern", 2, first_row=10)

        first.merge(second)

        assert [issue.issue_type for issue in first.issues].count("enum") == 4
        assert [issue.issue_type for issue in first.issues].count("pattern") == 2
        assert first.counts == {"enum": 6, "pattern": 2}
        assert first.column_counts["enum"] == {"v": 6}

    def test_merge_keeps_warnings(self):
        first = IssueCollector()
        second = IssueCollector()
        second.warnings.append("Invalid regex pattern")

        first.merge(second)

        assert first.warnings == ["Invalid regex pattern"]


class TestIssueHelpers:
    """Test suite for global truncation and invalid row counting."""

    def test_truncate_issues(self):
        collector = IssueCollector()
        fill(collector, "null", 6)

        kept, warning = truncate_issues(collector.issues, 4)

        assert len(kept) == 4
        assert warning == "Issues truncated from 6 to 4"
        assert truncate_issues(kept, 10) == (kept, None)

    def test_invalid_rows_are_distinct(self):
        collector = IssueCollector()
        collector.add(1, "a", "x", "null", "warning", "empty")
        collector.add(1, "b", "x", "null", "warning", "empty")
        collector.add(2, "a", "x", "null", "warning", "empty")

        assert count_invalid_rows(collector.issues) == 2
