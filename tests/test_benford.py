"""
Tests for Benford's law conformance analysis.
"""
from dqcheck.benford import BENFORD_DISTRIBUTION, BenfordAnalyzer, analyze_digits, first_significant_digit
from dqcheck.models import ColumnTypeDefinition

# First-digit counts per 1000 values that follow Benford's law exactly
BENFORD_COUNTS = {1: 301, 2: 176, 3: 125, 4: 97, 5: 79, 6: 67, 7: 58, 8: 51, 9: 46}


def benford_values():
    values = []
    for digit, count in BENFORD_COUNTS.items():
        values.extend(float(digit * 10 + offset % 10) for offset in range(count))
    return values


def uniform_values(per_digit=56):
    return [float(digit) for digit in range(1, 10) for _ in range(per_digit)]


class TestBenfordDigits:
    """Test suite for first-digit analysis."""

    def test_first_significant_digit(self):
        assert first_significant_digit(1234.0) == 1
        assert first_significant_digit(0.0042) == 4
        assert first_significant_digit(9.99) == 9
        assert first_significant_digit(0.0) is None
        assert first_significant_digit(-5.0) is None

    def test_leading_nines_are_not_rounded_up(self):
        assert first_significant_digit(9.9999999) == 9
        assert first_significant_digit(0.99999995) == 9
        assert first_significant_digit(99999.9999999) == 9
        assert first_significant_digit(1000.0) == 1
        assert first_significant_digit(1e-05) == 1
        assert first_significant_digit(float("inf")) is None

    def test_expected_distribution_sums_to_one(self):
        assert abs(sum(BENFORD_DISTRIBUTION.values()) - 1.0) < 1e-9

    def test_conforming_data_is_compliant(self):
        result = analyze_digits(benford_values())

        assert result["sample_size"] == 1000
        assert result["chi_square"] < 0.01
        assert result["is_compliant"] is True

    def test_uniform_digits_are_not_compliant(self):
        result = analyze_digits(uniform_values())

        assert result["is_compliant"] is False
        assert result["chi_square"] > 150
        assert 25 < result["deviation_percent"] < 30

    def test_small_samples_are_skipped(self):
        assert analyze_digits([float(i) for i in range(1, 100)]) is None


class TestBenfordAnalyzer:
    """Test suite for BenfordAnalyzer over numeric columns."""

    def setup_method(self):
        self.analyzer = BenfordAnalyzer()
        self.column_types = {
            "amount": ColumnTypeDefinition(name="amount", type="number"),
            "uniform": ColumnTypeDefinition(name="uniform", type="number"),
            "label": ColumnTypeDefinition(name="label", type="string"),
        }

    def test_reports_violation_for_uniform_column(self):
        amounts = benford_values()
        uniform = uniform_values(per_digit=112)
        rows = [
            {"amount": amount, "uniform": value, "label": "x"}
            for amount, value in zip(amounts, uniform)
        ]

        analysis = self.analyzer.analyze(rows, self.column_types)

        assert analysis.columns_analyzed == 2
        assert analysis.details["uniform"].is_compliant is False
        assert [violation.column for violation in analysis.violations] == ["uniform"]
        assert analysis.violations[0].severity == "medium"

    def test_non_positive_values_are_ignored(self):
        rows = [{"amount": value} for value in [0, -1, -2] * 50]

        analysis = self.analyzer.analyze(rows, {"amount": self.column_types["amount"]})

        assert analysis.columns_analyzed == 0
        assert analysis.violations == []
