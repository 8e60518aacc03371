"""
Tests for per-column profiling.
"""
from dqcheck.models import ColumnTypeDefinition
from dqcheck.profiler import (
    ColumnProfiler,
    analyze_cardinality,
    numeric_histogram,
    numeric_stats,
)


class TestColumnProfiler:
    """Test suite for ColumnProfiler."""

    def setup_method(self):
        self.profiler = ColumnProfiler()

    def test_numeric_column_profile(self):
        profile = self.profiler.profile_column("age", ["10", "20", "30", None, ""])

        assert profile.total_count == 5
        assert profile.null_count == 2
        assert profile.null_percent == 40.0
        assert profile.completeness == 60.0
        assert profile.unique_count == 3
        assert profile.unique_percent == 100.0
        assert profile.detected_type == "number"
        assert profile.numeric_stats.min == 10
        assert profile.numeric_stats.max == 30
        assert profile.numeric_stats.mean == 20
        assert profile.numeric_stats.median == 20
        assert profile.string_stats is None
        assert profile.histogram is not None

    def test_string_column_profile(self):
        profile = self.profiler.profile_column("code", ["a", "bb", "ccc", "bb"])

        assert profile.numeric_stats is None
        assert profile.string_stats.min_length == 1
        assert profile.string_stats.max_length == 3
        assert profile.string_stats.avg_length == 2.0
        assert profile.most_common_values[0].value == "bb"
        assert profile.most_common_values[0].count == 2
        assert profile.most_common_values[0].percent == 50.0

    def test_declared_type_is_reported(self):
        rows = [{"id": str(i)} for i in range(5)]
        column_types = {"id": ColumnTypeDefinition(name="id", type="integer")}

        result = self.profiler.profile(rows, ["id"], column_types)

        assert result.total_rows == 5
        assert result.total_columns == 1
        assert result.columns["id"].detected_type == "integer"

    def test_empty_column(self):
        profile = self.profiler.profile_column("empty", [None, None])

        assert profile.null_percent == 100.0
        assert profile.unique_count == 0
        assert profile.cardinality.classification == "empty"

    def test_long_column_profiles_without_error(self):
        values = list(range(200_000))

        profile = self.profiler.profile_column("big", values)

        assert profile.numeric_stats.min == 0
        assert profile.numeric_stats.max == 199_999


class TestProfilingHelpers:
    """Test suite for statistics, histograms and cardinality."""

    def test_numeric_stats_quartiles(self):
        stats = numeric_stats([1.0, 2.0, 3.0, 4.0, 5.0, 100.0])

        assert stats.q1 == 2.0
        assert stats.q3 == 5.0
        assert stats.median == 3.5
        assert stats.sum == 115.0

    def test_histogram_counts_every_value(self):
        values = [float(i) for i in range(100)]

        histogram = numeric_histogram(values)

        assert len(histogram.bins) == 10
        assert sum(b.count for b in histogram.bins) == 100
        assert histogram.bins[-1].count == 10

    def test_constant_histogram_has_single_bin(self):
        histogram = numeric_histogram([5.0, 5.0, 5.0])

        assert len(histogram.bins) == 1
        assert histogram.bins[0].count == 3
        assert histogram.bins[0].percent == 100.0

    def test_cardinality_classes(self):
        assert analyze_cardinality(0, 0).classification == "empty"
        assert analyze_cardinality(1, 200).classification == "very_low"
        assert analyze_cardinality(5, 100).classification == "low"
        assert analyze_cardinality(30, 100).classification == "medium"
        assert analyze_cardinality(80, 100).classification == "high"
        assert analyze_cardinality(100, 100).classification == "unique"
