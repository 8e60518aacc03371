"""
Tests for column type inference and per-value type validation.
"""
import pytest

from dqcheck.models import ColumnTypeDefinition, ValidationConfig
from dqcheck.type_validator import (
    TypeValidator,
    detect_column_types,
    infer_column_type,
    validate_value,
)


class TestTypeInference:
    """Test suite for inferring column types from sampled values."""

    @pytest.mark.parametrize("values, expected", [
        (["alice@example.com", "bob@example.org"], "email"),
        (["https://example.com", "http://example.org/page"], "url"),
        (["123e4567-e89b-12d3-a456-426614174000", "c9bf9e57-1685-4c89-bafb-ff5af830be8a"], "uuid"),
        (["true", "false", "yes", "no"], "boolean"),
        (["10", "20", "30"], "integer"),
        (["1.5", "2.25", "3"], "number"),
        (["2024-01-01", "2024-02-03", "12/31/2023"], "date"),
        (["hello", "world"], "string"),
    ])
    def test_infers_most_specific_type(self, values, expected):
        assert infer_column_type(values) == expected

    def test_empty_column_is_string(self):
        assert infer_column_type([None, "", None]) == "string"

    def test_nulls_are_ignored_when_inferring(self):
        assert infer_column_type(["10", None, "", "20"]) == "integer"

    def test_ninety_percent_threshold(self):
        # 9 of 10 integers is enough, 8 of 10 is not
        assert infer_column_type([str(i) for i in range(9)] + ["abc"]) == "integer"
        assert infer_column_type([str(i) for i in range(8)] + ["abc", "def"]) == "string"

    def test_detect_column_types_uses_sample(self):
        rows = [{"n": str(i)} for i in range(5)] + [{"n": "text"} for _ in range(50)]

        column_types = detect_column_types(rows, ["n"], sample_size=5)

        assert column_types["n"].type == "integer"
        assert column_types["n"].name == "n"


class TestValueValidation:
    """Test suite for single-value type checks."""

    def test_numbers_are_parsed_strictly(self):
        assert validate_value("1e5", "number") is True
        assert validate_value(" 42 ", "number") is True
        assert validate_value("12abc", "number") is False
        assert validate_value(True, "number") is False

    def test_integer_rejects_fractions(self):
        assert validate_value("7", "integer") is True
        assert validate_value(7.0, "integer") is True
        assert validate_value("7.5", "integer") is False

    def test_ip_addresses(self):
        assert validate_value("192.168.0.1", "ip") is True
        assert validate_value("::1", "ip") is True
        assert validate_value("2001:db8::1", "ip") is True
        assert validate_value("256.1.1.1", "ip") is False

    def test_url_needs_scheme_and_host(self):
        assert validate_value("https://example.com", "url") is True
        assert validate_value("example.com", "url") is False

    def test_json_values(self):
        assert validate_value('{"a": 1}', "json") is True
        assert validate_value([1, 2], "json") is True
        assert validate_value("{bad", "json") is False

    def test_phone_and_boolean(self):
        assert validate_value("+1-555-123-4567", "phone") is True
        assert validate_value("12", "phone") is False
        assert validate_value(False, "boolean") is True
        assert validate_value("maybe", "boolean") is False

    def test_numbers_are_never_dates(self):
        assert validate_value(20240101, "date") is False
        assert validate_value("2024-02-30", "date") is False
        assert validate_value("31.12.2023", "date") is True


class TestTypeValidator:
    """Test suite for validating every value of typed columns."""

    def setup_method(self):
        self.validator = TypeValidator(ValidationConfig())
        self.column_types = {
            "age": ColumnTypeDefinition(name="age", type="integer", required=True),
            "note": ColumnTypeDefinition(name="note", type="string"),
        }

    def test_reports_mismatch_missing_and_null(self):
        rows = [
            {"age": "30", "note": "ok"},
            {"age": "abc", "note": "ok"},
            {"age": None, "note": ""},
        ]

        collector = self.validator.validate(rows, self.column_types)

        assert collector.count("type-mismatch") == 1
        assert collector.count("missing") == 1
        assert collector.count("null") == 1

        mismatch = next(issue for issue in collector.issues if issue.issue_type == "type-mismatch")
        assert mismatch.row_number == 2
        assert mismatch.column == "age"
        assert mismatch.severity == "error"
        assert mismatch.message == "Value 'abc' is not a valid integer"
        assert mismatch.suggestion

        missing = next(issue for issue in collector.issues if issue.issue_type == "missing")
        assert missing.message == "Required field 'age' is missing"
        assert missing.row_number == 3

        null = next(issue for issue in collector.issues if issue.issue_type == "null")
        assert null.severity == "warning"

    def test_missing_value_checks_can_be_disabled(self):
        validator = TypeValidator(ValidationConfig(check_missing_values=False))

        collector = validator.validate([{"age": None, "note": None}], self.column_types)

        assert collector.issues == []

    def test_issues_are_capped_but_counted(self):
        validator = TypeValidator(ValidationConfig(max_issues_per_type=10, chunk_size=7))
        rows = [{"age": "x", "note": "n"} for _ in range(150)]

        collector = validator.validate(rows, self.column_types)

        assert len(collector.issues) == 10
        assert collector.count("type-mismatch") == 150
        assert collector.dropped == 140

    def test_row_numbers_continue_across_chunks(self):
        validator = TypeValidator(ValidationConfig(chunk_size=2))
        rows = [{"age": "1"}, {"age": "2"}, {"age": "3"}, {"age": "bad"}]

        collector = validator.validate(rows, {"age": self.column_types["age"]})

        assert [issue.row_number for issue in collector.issues] == [4]
