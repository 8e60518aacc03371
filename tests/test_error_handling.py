"""
Tests for stage isolation, fatal input handling and the error handler.
"""
from unittest.mock import patch

import pytest

from dqcheck.duplicate_detector import DuplicateDetector
from dqcheck.error_handler import DataQualityError, ErrorCategory, ValidationErrorHandler
from dqcheck.models import ValidationConfig
from dqcheck.orchestrator import QualityCheckOrchestrator
from dqcheck.outlier_detector import OutlierDetector
from dqcheck.quality import QualityScorer
from dqcheck.type_validator import TypeValidator


class TestStageIsolation:
    """Test suite for failures inside individual pipeline stages."""

    def setup_method(self):
        """Set up test fixtures."""
        self.orchestrator = QualityCheckOrchestrator(ValidationConfig())

    def test_failed_stage_becomes_warning(self, customer_rows, customer_headers, customer_schema):
        with patch.object(DuplicateDetector, "detect", side_effect=RuntimeError("boom")):
            result = self.orchestrator.validate_data(customer_rows, customer_headers, customer_schema)

        assert "Duplicate detection failed: boom" in result.warnings
        # The remaining stages still report their issues
        assert result.issue_breakdown.type_errors == 2
        assert result.issue_breakdown.constraint_violations == 2

    def test_failed_stage_contributes_no_issues(self, customer_rows, customer_headers, customer_schema):
        with patch.object(TypeValidator, "validate", side_effect=ValueError("bad value")):
            result = self.orchestrator.validate_data(customer_rows, customer_headers, customer_schema)

        assert "Type validation partially failed: bad value" in result.warnings
        assert result.issue_breakdown.type_errors == 0
        assert result.issue_breakdown.missing_values == 0
        assert result.issue_breakdown.constraint_violations == 2

    def test_several_failures_are_all_reported(self, numeric_rows):
        with patch.object(DuplicateDetector, "detect", side_effect=RuntimeError("one")), \
                patch.object(OutlierDetector, "detect", side_effect=RuntimeError("two")):
            result = self.orchestrator.validate_data(numeric_rows, ["x", "y", "z"])

        assert "Duplicate detection failed: one" in result.warnings
        assert "Outlier detection failed: two" in result.warnings
        assert self.orchestrator.context.error_handler.get_error_statistics() == {"stage_failure": 2}

    def test_failed_scoring_keeps_run_successful(self, customer_rows, customer_headers):
        with patch.object(QualityScorer, "calculate", side_effect=ValueError("no score")):
            result = self.orchestrator.run(customer_rows, customer_headers)

        assert result.success is True
        assert result.quality_score is None
        assert result.recommendations == []
        assert "Quality scoring failed: no score" in result.warnings
        assert result.validation is not None
        assert result.profile is not None

    def test_warnings_do_not_leak_between_runs(self, customer_rows, customer_headers):
        with patch.object(DuplicateDetector, "detect", side_effect=RuntimeError("boom")):
            self.orchestrator.run(customer_rows, customer_headers)

        result = self.orchestrator.run(customer_rows, customer_headers)

        assert not any("Duplicate detection failed" in warning for warning in result.warnings)


class TestFatalErrors:
    """Test suite for errors that stop a run."""

    def test_invalid_rows_fail_the_run(self):
        result = QualityCheckOrchestrator(ValidationConfig()).run("not rows", ["a"])

        assert result.success is False
        assert result.errors_encountered[0] == "Rows must be a list of records"
        assert result.validation is None
        assert result.quality_score is None

    def test_memory_error_fails_the_run(self, customer_rows, customer_headers):
        orchestrator = QualityCheckOrchestrator(ValidationConfig())
        with patch.object(TypeValidator, "validate", side_effect=MemoryError("out of memory")):
            result = orchestrator.run(customer_rows, customer_headers)

        assert result.success is False
        assert result.errors_encountered[0].startswith("Memory error")
        assert orchestrator.context.error_handler.has_critical_errors() is True

    def test_invalid_configuration_raises(self):
        with pytest.raises(ValueError):
            ValidationConfig(detect_outliers="median")
        with pytest.raises(ValueError):
            ValidationConfig(zscore_threshold=0.5)
        with pytest.raises(ValueError):
            ValidationConfig(fuzzy_similarity_threshold=1.5)
        with pytest.raises(ValueError):
            ValidationConfig(max_issues_per_type=0)
        with pytest.raises(ValueError):
            ValidationConfig(pii_types=["passport"])
        with pytest.raises(ValueError):
            ValidationConfig(cleaning_actions=["shout"])
        with pytest.raises(ValueError):
            ValidationConfig(imputation_strategy="guess")

    def test_config_from_mapping_accepts_camel_case(self):
        config = ValidationConfig.from_mapping({
            "detectOutliers": "zscore",
            "maxIssuesPerType": 5,
            "notAnOption": True,
        })

        assert config.detect_outliers == "zscore"
        assert config.max_issues_per_type == 5


class TestValidationErrorHandler:
    """Test suite for ValidationErrorHandler."""

    def setup_method(self):
        """Set up test fixtures."""
        self.handler = ValidationErrorHandler()

    def test_stage_failure(self):
        warning = self.handler.handle_stage_failure("outliers", RuntimeError("x"), "Outlier detection failed")

        assert warning == "Outlier detection failed: x"
        assert self.handler.warnings == [warning]
        assert self.handler.errors[0].stage == "outliers"
        assert self.handler.has_critical_errors() is False

    def test_input_error_is_critical(self):
        error = DataQualityError("bad input", ErrorCategory.INPUT)

        assert self.handler.handle_input_error(error) is False
        assert self.handler.has_critical_errors() is True
        assert error.code == "INPUT_ERROR"
        assert error.to_dict()["suggestion"]

    def test_error_summary(self):
        assert self.handler.create_error_summary() == "No errors or warnings encountered during processing."

        self.handler.handle_stage_failure("profiling", RuntimeError("p"), "Column profiling failed")
        self.handler.handle_unexpected_error(RuntimeError("u"), "scoring")

        summary = self.handler.create_error_summary()
        assert "## Processing Summary" in summary
        assert "Stage Failure" in summary
        assert "Unexpected error during scoring: u" in summary
        assert self.handler.get_error_statistics() == {"stage_failure": 1, "unexpected_error": 1}

    def test_clear_errors(self):
        self.handler.handle_memory_error("validation", MemoryError("m"))
        self.handler.add_warning("w")

        self.handler.clear_errors()

        assert self.handler.errors == []
        assert self.handler.warnings == []
        assert self.handler.get_error_statistics() == {}
