"""
Data Quality Check Package

Validation, profiling, quality scoring and statistical analysis of tabular
datasets supplied as row records with column headers.
"""

__version__ = "1.0.0"
__author__ = "Data Quality Check"

from .models import (
    ColumnConstraints,
    ColumnTypeDefinition,
    Issue,
    IssueBreakdown,
    ValidationResult,
    ProfileResult,
    QualityScore,
    Recommendation,
    ValidationConfig,
    QualityCheckResult,
)
from .error_handler import DataQualityError, ErrorCategory, ValidationErrorHandler, setup_error_logging
from .history import InMemoryHistoryStore, JsonFileHistoryStore
from .orchestrator import QualityCheckOrchestrator, run_quality_check, validate_data
from .sources import read_data_file, normalize_records

__all__ = [
    "ColumnConstraints",
    "ColumnTypeDefinition",
    "Issue",
    "IssueBreakdown",
    "ValidationResult",
    "ProfileResult",
    "QualityScore",
    "Recommendation",
    "ValidationConfig",
    "QualityCheckResult",
    "DataQualityError",
    "ErrorCategory",
    "ValidationErrorHandler",
    "setup_error_logging",
    "InMemoryHistoryStore",
    "JsonFileHistoryStore",
    "QualityCheckOrchestrator",
    "run_quality_check",
    "validate_data",
    "read_data_file",
    "normalize_records",
]
