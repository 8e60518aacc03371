"""
Tests for cleaning actions and missing value imputation.
"""
import pytest

from dqcheck.remediation import (
    DataCleaner,
    analyze_missing_values,
    apply_cleaning_actions,
    column_kind,
    impute_column,
    impute_missing_values,
    most_frequent,
)


@pytest.fixture
def messy_rows():
    return [
        {"name": "  Alice ", "city": "Delft"},
        {"name": "Bob", "city": "delft"},
        {"name": "", "city": None},
        {"name": "  Alice ", "city": "Delft"},
    ]


class TestCleaningActions:
    """Test suite for the ordered cleaning actions."""

    def test_actions_run_in_order(self, messy_rows):
        cleaned = apply_cleaning_actions(messy_rows, ["name", "city"],
                                         ["trim", "lowercase", "remove_empty", "remove_duplicates"])

        assert cleaned == [
            {"name": "alice", "city": "delft"},
            {"name": "bob", "city": "delft"},
        ]

    def test_input_rows_are_untouched(self, messy_rows):
        apply_cleaning_actions(messy_rows, ["name", "city"], ["trim", "uppercase"])

        assert messy_rows[0]["name"] == "  Alice "

    def test_duplicates_compare_after_earlier_actions(self):
        rows = [{"v": "a "}, {"v": "a"}]

        assert len(apply_cleaning_actions(rows, ["v"], ["remove_duplicates"])) == 2
        assert len(apply_cleaning_actions(rows, ["v"], ["trim", "remove_duplicates"])) == 1

    def test_unknown_action_is_skipped(self, messy_rows):
        cleaned = apply_cleaning_actions(messy_rows, ["name", "city"], ["shout"])

        assert cleaned == messy_rows


class TestImputation:
    """Test suite for per-column imputation strategies."""

    def setup_method(self):
        self.rows = [{"n": "1"}, {"n": None}, {"n": "3"}, {"n": " "}, {"n": "8"}]

    def test_column_kind(self):
        assert column_kind(self.rows, "n") == "numeric"
        assert column_kind([{"c": "x"}, {"c": "1"}], "c") == "categorical"
        assert column_kind([{"c": None}], "c") == "categorical"

    def test_auto_uses_median_for_numbers(self):
        rows, stats = impute_column(self.rows, "n")

        assert [row["n"] for row in rows] == ["1", 3.0, "3", 3.0, "8"]
        assert stats.strategy == "median"
        assert stats.missing_count == 2
        assert stats.imputed_count == 2
        assert stats.impute_value == 3.0

    def test_mean(self):
        _, stats = impute_column(self.rows, "n", "mean")

        assert stats.impute_value == 4.0

    def test_mean_falls_back_to_mode_for_text(self):
        rows = [{"c": "x"}, {"c": "y"}, {"c": "y"}, {"c": ""}]

        imputed, stats = impute_column(rows, "c", "mean")

        assert stats.strategy == "mode"
        assert imputed[3]["c"] == "y"

    def test_forward_and_backward_fill(self):
        forward, stats = impute_column(self.rows, "n", "forward_fill")
        backward, _ = impute_column(self.rows, "n", "backward_fill")

        assert [row["n"] for row in forward] == ["1", "1", "3", "3", "8"]
        assert [row["n"] for row in backward] == ["1", "3", "3", "8", "8"]
        assert stats.imputed_count == 2

    def test_forward_fill_leaves_leading_gaps(self):
        rows, stats = impute_column([{"n": None}, {"n": "2"}], "n", "forward_fill")

        assert rows[0]["n"] is None
        assert stats.imputed_count == 0

    def test_constant_defaults_by_kind(self):
        numbers, _ = impute_column(self.rows, "n", "constant")
        text, _ = impute_column([{"c": "a"}, {"c": None}], "c", "constant")
        given, _ = impute_column(self.rows, "n", "constant", constant=-1)

        assert numbers[1]["n"] == 0
        assert text[1]["c"] == ""
        assert given[1]["n"] == -1

    def test_remove_drops_rows(self):
        rows, stats = impute_column(self.rows, "n", "remove")

        assert len(rows) == 3
        assert stats.rows_removed == 2
        assert stats.imputed_count == 0

    def test_complete_column_is_left_alone(self):
        rows, stats = impute_column([{"n": 1}, {"n": 2}], "n", "mean")

        assert stats.strategy == "none"
        assert rows == [{"n": 1}, {"n": 2}]

    def test_unknown_strategy_raises(self):
        with pytest.raises(ValueError):
            impute_column(self.rows, "n", "guess")

    def test_most_frequent_prefers_earliest_on_tie(self):
        assert most_frequent(["b", "a", "a", "b", None]) == "b"
        assert most_frequent([None, ""]) is None

    def test_stats_only_for_columns_with_gaps(self):
        rows = [{"a": 1, "b": None}, {"a": 2, "b": "x"}]

        imputed, stats = impute_missing_values(rows, ["a", "b"])

        assert [s.column for s in stats] == ["b"]
        assert imputed[0]["b"] == "x"


class TestMissingValueAnalysis:
    """Test suite for the missing value summary."""

    def test_summary(self, messy_rows):
        analysis = analyze_missing_values(messy_rows, ["name", "city"])

        assert analysis["total_rows"] == 4
        assert analysis["rows_with_missing"] == 1
        assert analysis["rows_with_missing_percent"] == 25.0
        assert analysis["total_missing_values"] == 2
        assert analysis["columns"]["city"] == {"count": 1, "percent": 25.0}
        assert [item["column"] for item in analysis["most_missing"]] == ["name", "city"]

    def test_empty(self):
        assert analyze_missing_values([], ["a"])["total_rows"] == 0


class TestDataCleaner:
    """Test suite for DataCleaner."""

    def test_actions_then_imputation(self, messy_rows):
        cleaner = DataCleaner(["trim", "remove_duplicates"], imputation_strategy="mode")

        result = cleaner.clean(messy_rows, ["name", "city"])

        assert result.original_row_count == 4
        assert len(result.rows) == 3
        assert result.rows_removed == 1
        assert result.actions_applied == ["trim", "remove_duplicates", "impute:mode"]
        assert result.rows[2] == {"name": "Alice", "city": "Delft"}
        assert {s.column for s in result.imputation} == {"name", "city"}

    def test_no_actions_copies_rows(self, messy_rows):
        result = DataCleaner().clean(messy_rows, ["name", "city"])

        assert result.rows == messy_rows
        assert result.rows[0] is not messy_rows[0]
        assert result.actions_applied == []
