"""
Tests for suspicious value pattern detection.
"""
from dqcheck.models import ColumnTypeDefinition
from dqcheck.pattern_detector import (
    PatternDetector,
    detect_frequency_anomaly,
    detect_monotonic_trend,
    detect_repeating_sequence,
    detect_sudden_shifts,
)


class TestPatternHeuristics:
    """Test suite for the individual heuristics."""

    def test_repeating_sequence(self):
        finding = detect_repeating_sequence("c", ["a", "b", "c"] * 4)

        assert finding.pattern_type == "repeating-sequence"
        assert finding.details == {"sequence_length": 3, "repetitions": 3}

    def test_no_repeating_sequence_in_unique_values(self):
        assert detect_repeating_sequence("c", [str(i) for i in range(20)]) is None

    def test_monotonic_trend(self):
        finding = detect_monotonic_trend("v", [float(i) for i in range(20)])

        assert finding.details["direction"] == "increasing"
        assert finding.message == "Column shows strong increasing trend (100% of values increase)"

    def test_decreasing_trend(self):
        finding = detect_monotonic_trend("v", [float(20 - i) for i in range(20)])

        assert finding.details["direction"] == "decreasing"

    def test_sudden_shift(self):
        finding = detect_sudden_shifts("v", [10.0] * 30 + [100.0] * 30)

        assert finding.kind == "anomaly"
        assert len(finding.details["positions"]) == 1

    def test_uniform_distribution(self):
        finding = detect_frequency_anomaly("c", [str(i % 6) for i in range(60)])

        assert finding.pattern_type == "uniform-distribution"

    def test_unique_ids_are_not_uniform_anomalies(self):
        assert detect_frequency_anomaly("id", [str(i) for i in range(60)]) is None

    def test_concentrated_distribution(self):
        finding = detect_frequency_anomaly("c", ["a"] * 95 + ["b"] * 5)

        assert finding.pattern_type == "concentrated-distribution"
        assert finding.details["dominant_value"] == "a"


class TestPatternDetector:
    """Test suite for PatternDetector over whole datasets."""

    def test_detect_across_columns(self):
        rows = [{"id": str(i), "cat": "x" if i % 2 else "y", "few": None} for i in range(30)]
        rows[0]["few"] = "1"
        column_types = {"id": ColumnTypeDefinition(name="id", type="integer")}

        analysis = PatternDetector().detect(rows, ["id", "cat", "few"], column_types)

        assert analysis.columns_analyzed == 2
        found = {(finding.column, finding.pattern_type) for finding in analysis.patterns}
        assert found == {("id", "monotonic-trend"), ("cat", "repeating-sequence")}
        assert analysis.anomalies == []
