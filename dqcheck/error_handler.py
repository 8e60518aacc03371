"""
Error handling and logging integration for the data-quality engine.

This module provides the error taxonomy, the exception raised for fatal
input problems, and a centralized handler that turns stage failures into
run warnings while keeping a summary of everything that went wrong.
"""

import logging
import os
import traceback
from datetime import datetime
from typing import Any, Dict, List, Optional

from .models import ProcessingError


class ErrorCategory:
    """Categories used to classify engine errors."""
    INPUT = "input"
    PARSING = "parsing"
    VALIDATION = "validation"
    MEMORY = "memory"
    INTERNAL = "internal"
    CONFIGURATION = "configuration"


DEFAULT_SUGGESTIONS = {
    ErrorCategory.INPUT: "Check that the input is a list of row records with a list of headers",
    ErrorCategory.PARSING: "Verify the file format and encoding",
    ErrorCategory.VALIDATION: "Review the schema definition and constraint values",
    ErrorCategory.MEMORY: "Use sample_size or process the data in smaller chunks",
    ErrorCategory.INTERNAL: "Re-run with verbose logging and report the traceback",
    ErrorCategory.CONFIGURATION: "Review the configuration options and their allowed ranges",
}


class DataQualityError(Exception):
    """Error raised for problems the engine cannot recover from."""

    def __init__(self, message: str, category: str = ErrorCategory.INTERNAL,
                 code: Optional[str] = None, suggestion: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None, recoverable: bool = False):
        super().__init__(message)
        self.message = message
        self.category = category
        self.code = code or f"{category.upper()}_ERROR"
        self.suggestion = suggestion or DEFAULT_SUGGESTIONS.get(category)
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "category": self.category,
            "code": self.code,
            "suggestion": self.suggestion,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class ValidationErrorHandler:
    """
    Centralized error handler for a pipeline run.

    Stage failures are logged, recorded as ProcessingError entries and turned
    into warning text, so a run can finish with whatever stages succeeded.
    """

    def __init__(self, logger_name: str = __name__):
        """
        Initialize the error handler.

        Args:
            logger_name: Name for the logger instance
        """
        self.logger = logging.getLogger(logger_name)
        self.errors: List[ProcessingError] = []
        self.warnings: List[str] = []

        # Error type counters for summary reporting
        self.error_counts: Dict[str, int] = {}

    def handle_stage_failure(self, stage: str, error: Exception, warning: str) -> str:
        """
        Record a failed pipeline stage and produce its run warning.

        Args:
            stage: Name of the stage that failed
            error: The exception raised by the stage
            warning: Human-readable prefix for the warning, e.g. "Duplicate detection failed"

        Returns:
            The warning text that was recorded
        """
        message = f"{warning}: {error}"
        self.logger.warning(message)
        self.logger.debug(f"Traceback for stage '{stage}':\n{traceback.format_exc()}")

        self._add_error("stage_failure", stage, message, error)
        self.warnings.append(message)
        return message

    def handle_input_error(self, error: DataQualityError) -> bool:
        """
        Handle a structural input error.

        Returns:
            False as malformed input stops the run
        """
        self.logger.error(f"Invalid input: {error.message}")
        if error.suggestion:
            self.logger.info(error.suggestion)
        self._add_error("input_error", None, error.message, error)
        return False

    def handle_configuration_error(self, error: Exception) -> bool:
        """
        Handle an invalid configuration value.

        Returns:
            False as the run cannot start with an invalid configuration
        """
        message = f"Invalid configuration: {error}"
        self.logger.error(message)
        self._add_error("configuration_error", None, message, error)
        return False

    def handle_parsing_error(self, source: str, error: Exception) -> bool:
        """
        Handle a failure to decode an input file.

        Returns:
            False as there is no data to validate
        """
        message = f"Failed to read {source}: {error}"
        if hasattr(error, "lineno") and hasattr(error, "colno"):
            self.logger.error(f"Syntax error in {source} at line {error.lineno}, "
                              f"column {error.colno}: {error}")
        else:
            self.logger.error(message)
        self._add_error("parsing_error", None, message, error)
        return False

    def handle_memory_error(self, stage: Optional[str], error: MemoryError) -> bool:
        """
        Handle memory errors during processing.

        Returns:
            False as memory errors are typically critical
        """
        error_msg = "Memory error"
        if stage:
            error_msg += f" during {stage}"
        error_msg += f": {error}"

        self.logger.critical(error_msg)
        self.logger.info(DEFAULT_SUGGESTIONS[ErrorCategory.MEMORY])

        self._add_error("memory_error", stage, error_msg, error)
        return False

    def handle_unexpected_error(self, error: Exception, context: str = "") -> bool:
        """
        Handle unexpected errors with full logging.

        Returns:
            False as unexpected errors are typically critical
        """
        context_str = f" during {context}" if context else ""
        error_msg = f"Unexpected error{context_str}: {error}"

        self.logger.exception(error_msg)
        self._add_error("unexpected_error", context or None, error_msg, error)
        return False

    def add_warning(self, warning: str) -> None:
        self.logger.debug(warning)
        self.warnings.append(warning)

    def create_error_summary(self) -> str:
        """
        Create a summary of errors and warnings for the final output.

        Returns:
            Markdown-formatted summary string
        """
        if not self.errors and not self.warnings:
            return "No errors or warnings encountered during processing."

        summary_lines = ["## Processing Summary"]

        if self.errors:
            summary_lines.extend([
                "",
                f"### Errors Encountered ({len(self.errors)} total)",
                "",
            ])

            error_by_type: Dict[str, List[ProcessingError]] = {}
            for error in self.errors:
                error_by_type.setdefault(error.error_type, []).append(error)

            for error_type, error_list in error_by_type.items():
                summary_lines.append(f"**{error_type.replace('_', ' ').title()}** ({len(error_list)} errors):")

                for error in error_list[:5]:
                    stage_info = f" ({error.stage})" if error.stage else ""
                    summary_lines.append(f"  - {error.message}{stage_info}")

                if len(error_list) > 5:
                    summary_lines.append(f"  - ... and {len(error_list) - 5} more")

                summary_lines.append("")

        if self.warnings:
            summary_lines.extend([
                f"### Warnings ({len(self.warnings)} total)",
                "",
            ])

            for warning in self.warnings[:10]:
                summary_lines.append(f"  - {warning}")

            if len(self.warnings) > 10:
                summary_lines.append(f"  - ... and {len(self.warnings) - 10} more warnings")

        return "\n".join(summary_lines)

    def get_error_statistics(self) -> Dict[str, int]:
        return dict(self.error_counts)

    def has_critical_errors(self) -> bool:
        """
        Check if any critical errors were encountered.

        Returns:
            True if critical errors exist
        """
        critical_error_types = {
            "input_error", "configuration_error", "parsing_error",
            "memory_error", "unexpected_error",
        }
        return any(error.error_type in critical_error_types for error in self.errors)

    def clear_errors(self) -> None:
        """Clear all recorded errors and warnings."""
        self.errors.clear()
        self.warnings.clear()
        self.error_counts.clear()

    def _add_error(self, error_type: str, stage: Optional[str],
                   message: str, exception: Optional[Exception]) -> None:
        error = ProcessingError(
            error_type=error_type,
            stage=stage,
            message=message,
            exception=exception,
            timestamp=datetime.now(),
        )

        self.errors.append(error)
        self.error_counts[error_type] = self.error_counts.get(error_type, 0) + 1


def setup_error_logging(verbose: bool = False) -> ValidationErrorHandler:
    """
    Configure logging through logging_setup and return a fresh error handler.

    Args:
        verbose: Enable verbose logging
    """
    from logging_setup import configure_logging

    configure_logging(verbose=verbose)
    return ValidationErrorHandler()


def log_system_info() -> None:
    """Log system information for debugging purposes."""
    import platform
    import sys

    logger = logging.getLogger(__name__)
    logger.debug(f"Python version: {sys.version}")
    logger.debug(f"Platform: {platform.platform()}")
    logger.debug(f"Working directory: {os.getcwd()}")
