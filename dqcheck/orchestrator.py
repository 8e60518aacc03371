"""
Orchestration module for the data-quality engine.

This module contains the QualityCheckOrchestrator class that sequences the
validation, profiling, scoring and analysis stages of a run, isolating
stage failures and reporting progress on a Rich console.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar, Union

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.text import Text

from .benford import BenfordAnalyzer
from .constraint_validator import ConstraintValidator, PatternCache
from .correlation import CorrelationAnalyzer
from .duplicate_detector import DuplicateDetector
from .error_handler import DataQualityError, ErrorCategory, ValidationErrorHandler
from .history import HistoricalAnalyzer, HistoryStore, JsonFileHistoryStore, extract_metrics, generate_data_source_id
from .issues import IssueCollector, count_invalid_rows, truncate_issues
from .models import (
    ColumnTypeDefinition,
    IssueBreakdown,
    ProfileResult,
    QualityCheckResult,
    QualityScore,
    ValidationConfig,
    ValidationResult,
)
from .outlier_detector import OutlierDetector
from .pattern_detector import PatternDetector
from .pii_detector import PIIDetector
from .profiler import ColumnProfiler
from .quality import QualityScorer, RecommendationEngine
from .remediation import DataCleaner
from .seasonal import SeasonalAnalyzer
from .sources import apply_ignored_columns, derive_headers, estimate_memory_usage, limit_rows
from .type_validator import TypeValidator, detect_column_types

logger = logging.getLogger(__name__)

T = TypeVar("T")

TYPE_ISSUES = ("type-mismatch",)
MISSING_ISSUES = ("missing", "null")
CONSTRAINT_ISSUES = ("range-min", "range-max", "length-min", "length-max",
                     "pattern", "enum", "unique-violation")
DUPLICATE_ISSUES = ("duplicate", "fuzzy-duplicate")
OUTLIER_ISSUES = ("outlier",)

SchemaDefinition = Sequence[Union[ColumnTypeDefinition, Dict[str, Any]]]


@dataclass
class RunContext:
    """Mutable state of a single run; reset before every run."""
    error_handler: ValidationErrorHandler = field(default_factory=ValidationErrorHandler)
    warnings: List[str] = field(default_factory=list)
    stage_timings: Dict[str, float] = field(default_factory=dict)
    start_time: Optional[float] = None

    def reset(self) -> None:
        self.error_handler.clear_errors()
        self.warnings.clear()
        self.stage_timings.clear()
        self.start_time = time.time()

    def all_warnings(self) -> List[str]:
        return self.warnings + [w for w in self.error_handler.warnings if w not in self.warnings]


def breakdown_from_counts(counts: Dict[str, int]) -> IssueBreakdown:
    def total(issue_types):
        return sum(counts.get(issue_type, 0) for issue_type in issue_types)

    return IssueBreakdown(
        type_errors=total(TYPE_ISSUES),
        missing_values=total(MISSING_ISSUES),
        constraint_violations=total(CONSTRAINT_ISSUES),
        duplicates=total(DUPLICATE_ISSUES),
        outliers=total(OUTLIER_ISSUES),
    )


class QualityCheckOrchestrator:
    """
    Orchestrates a complete data-quality run.

    Workflow:
    1. Input checks, ignored columns, sampling and memory estimate
    2. Column type resolution (schema or inference)
    3. Type, constraint, duplicate, outlier and unique-column validation
    4. Column profiling, quality scoring and recommendations
    5. Optional Benford, correlation, seasonal, pattern and PII analysis
    6. Optional comparison against the stored run history
    7. Optional cleaned copy of the rows

    Every stage runs in isolation: a failing stage is recorded as a warning
    and contributes nothing, and the run continues with the remaining
    stages. Only malformed input and memory exhaustion stop a run.

    Attributes:
        config (ValidationConfig): Options of the run
        console (Console): Rich console for progress and summaries
        context (RunContext): Error handler, warnings and timings of the current run
        pattern_cache (PatternCache): Compiled constraint patterns shared across runs

    Example:
        >>> orchestrator = QualityCheckOrchestrator(ValidationConfig(enable_benfords_law=True))
        >>> result = orchestrator.run(rows, headers)
        >>> if result.success:
        ...     print(f"Quality score: {result.quality_score.overall} ({result.quality_score.grade})")
    """

    def __init__(self, config: Optional[ValidationConfig] = None, console: Optional[Console] = None,
                 history_store: Optional[HistoryStore] = None):
        """
        Initialize the orchestrator with configuration and components.

        Args:
            config: Run configuration; defaults apply when omitted
            console: Optional Rich console for progress reporting
            history_store: Store for run histories; a JSON file store under
                ``config.history_directory`` by default
        """
        self.config = config or ValidationConfig()
        self.console = console or Console(quiet=not self.config.enable_progress_reporting)
        self.context = RunContext()
        self.pattern_cache = PatternCache(self.config.regex_cache_size)
        self.history_store = history_store

        self.type_validator = TypeValidator(self.config)
        self.constraint_validator = ConstraintValidator(self.config, self.pattern_cache)
        self.duplicate_detector = DuplicateDetector(self.config)
        self.outlier_detector = OutlierDetector(self.config)
        self.profiler = ColumnProfiler()
        self.scorer = QualityScorer()
        self.recommendation_engine = RecommendationEngine()

    # Input preparation

    def prepare_input(self, rows: Any, headers: Any) -> Tuple[List[Dict[str, Any]], List[str]]:
        """
        Check the input structure and apply ignored columns and sampling.

        Raises:
            DataQualityError: If rows or headers are not lists, or a row is not a mapping
        """
        if not isinstance(rows, list):
            raise DataQualityError("Rows must be a list of records", ErrorCategory.INPUT,
                                   code="INVALID_ROWS", details={"type": type(rows).__name__})
        if headers is None:
            headers = []
        if not isinstance(headers, (list, tuple)):
            raise DataQualityError("Headers must be a list of column names", ErrorCategory.INPUT,
                                   code="INVALID_HEADERS", details={"type": type(headers).__name__})
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                raise DataQualityError(f"Row {index + 1} is not a record", ErrorCategory.INPUT,
                                       code="INVALID_ROW", details={"row": index + 1})

        headers = [str(header) for header in headers]
        if not headers and rows:
            headers = derive_headers(rows)
            self._warn(f"No headers provided; derived {len(headers)} columns from the rows")

        rows, headers = apply_ignored_columns(rows, headers, self.config.ignored_columns)

        if self.config.sample_size and len(rows) > self.config.sample_size:
            self._warn(f"Validating a sample of {self.config.sample_size} of {len(rows)} rows")
            rows = limit_rows(rows, self.config.sample_size)

        estimated_mb = estimate_memory_usage(rows) / (1024 * 1024)
        if estimated_mb > self.config.memory_warning_mb:
            self._warn(f"Dataset uses about {estimated_mb:.0f}MB of memory; "
                       f"consider the sample_size option")

        return rows, headers

    # Validation

    def validate_data(self, rows: Any, headers: Any,
                      schema_definition: Optional[SchemaDefinition] = None) -> ValidationResult:
        """
        Run every validation stage and return the combined result.

        Raises:
            DataQualityError: If the input structure is invalid
        """
        self.context.reset()
        prepared_rows, prepared_headers = self.prepare_input(rows, headers)
        return self._validate(prepared_rows, prepared_headers, schema_definition)

    def _validate(self, rows: List[Dict[str, Any]], headers: List[str],
                  schema_definition: Optional[SchemaDefinition]) -> ValidationResult:
        column_types = self.resolve_column_types(rows, headers, schema_definition)

        if not rows:
            self._warn("No data rows to validate")
            return ValidationResult(issues=[], issue_breakdown=IssueBreakdown(), invalid_row_count=0,
                                    column_types=column_types, warnings=self.context.all_warnings(),
                                    total_rows=0)

        combined = IssueCollector(self.config.max_issues_per_type)
        stages: List[Tuple[str, str, Callable[[], IssueCollector]]] = [
            ("type_validation", "Type validation partially failed",
             lambda: self.type_validator.validate(rows, column_types)),
            ("constraint_validation", "Constraint validation partially failed",
             lambda: self.constraint_validator.validate(rows, column_types)),
        ]
        if self.config.check_duplicates:
            stages.append(("duplicate_detection", "Duplicate detection failed",
                           lambda: self.duplicate_detector.detect(rows, headers)))
        if self.config.detect_outliers != "none":
            stages.append(("outlier_detection", "Outlier detection failed",
                           lambda: self.outlier_detector.detect(rows, column_types)))

        unique_columns = self._unique_columns(headers, column_types)
        if unique_columns:
            stages.append(("unique_validation", "Unique column validation failed",
                           lambda: self.constraint_validator.check_unique_columns(rows, unique_columns)))

        for stage, warning, runner in stages:
            collector = self._run_stage(stage, warning, runner)
            if collector is not None:
                combined.merge(collector)

        for warning in combined.warnings:
            self._warn(warning)

        issues, truncation_warning = truncate_issues(combined.issues, self.config.global_issue_limit)
        if truncation_warning:
            self._warn(truncation_warning)

        return ValidationResult(
            issues=issues,
            issue_breakdown=breakdown_from_counts(combined.counts),
            invalid_row_count=count_invalid_rows(issues),
            column_types=column_types,
            warnings=self.context.all_warnings(),
            total_rows=len(rows),
            issue_counts=dict(combined.counts),
            outliers_by_column=dict(combined.column_counts.get("outlier", {})),
        )

    def resolve_column_types(self, rows: List[Dict[str, Any]], headers: List[str],
                             schema_definition: Optional[SchemaDefinition]) -> Dict[str, ColumnTypeDefinition]:
        """Column definitions from the schema when given, otherwise inferred from the rows."""
        if schema_definition:
            return self._schema_column_types(headers, schema_definition)

        if not self.config.auto_detect_types:
            return {}

        column_types = self._run_stage(
            "type_detection", "Type detection failed",
            lambda: detect_column_types(rows, headers, self.config.type_inference_sample_size),
        )
        return column_types or {}

    def _schema_column_types(self, headers: List[str],
                             schema_definition: SchemaDefinition) -> Dict[str, ColumnTypeDefinition]:
        header_set = set(headers)
        column_types: Dict[str, ColumnTypeDefinition] = {}
        for index, entry in enumerate(schema_definition):
            if isinstance(entry, dict):
                if not entry.get("name"):
                    self._warn(f"Schema column at index {index} missing 'name' property, skipped")
                    continue
                try:
                    definition = ColumnTypeDefinition.from_mapping(entry)
                except (TypeError, ValueError) as e:
                    self._warn(f"Schema column '{entry.get('name')}' is invalid, skipped: {e}")
                    continue
            else:
                definition = entry

            if definition.name not in header_set:
                self._warn(f"Schema column '{definition.name}' not found in data headers")
                continue
            column_types[definition.name] = definition
        return column_types

    def _unique_columns(self, headers: List[str], column_types: Dict[str, ColumnTypeDefinition]) -> List[str]:
        header_set = set(headers)
        columns = [name for name, definition in column_types.items() if definition.unique]
        for name in self.config.unique_columns:
            if name not in header_set:
                self._warn(f"Unique column '{name}' not found in data headers")
            elif name not in columns:
                columns.append(name)
        return columns

    # Full run

    def run(self, rows: Any, headers: Any, schema_definition: Optional[SchemaDefinition] = None,
            source_url: Optional[str] = None) -> QualityCheckResult:
        """
        Execute the complete workflow with per-stage error isolation.

        Args:
            rows: Row records, each a mapping of column name to value
            headers: Column names
            schema_definition: Optional column definitions; types are inferred without one
            source_url: Where the data came from, used to identify its history

        Returns:
            QualityCheckResult with success status, stage results and warnings
        """
        self.context.reset()
        timestamp = datetime.now()
        self._display_startup_banner(rows, headers)

        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=self.console,
                transient=False,
                disable=not self.config.enable_progress_reporting,
            ) as progress:
                task = progress.add_task("Validating data...", total=6)

                try:
                    prepared_rows, prepared_headers = self.prepare_input(rows, headers)
                except DataQualityError as e:
                    self.context.error_handler.handle_input_error(e)
                    self._display_error_message(e.message)
                    return self._create_failure_result(e.message, timestamp)

                validation = self._timed("validation", lambda: self._validate(
                    prepared_rows, prepared_headers, schema_definition))
                progress.update(task, advance=1, description="Profiling columns...")

                profile = self._run_stage(
                    "profiling", "Column profiling failed",
                    lambda: self.profiler.profile(prepared_rows, prepared_headers, validation.column_types),
                )
                progress.update(task, advance=1, description="Scoring quality...")

                score = self._run_stage(
                    "scoring", "Quality scoring failed",
                    lambda: self.scorer.calculate(validation, len(prepared_rows),
                                                  len(prepared_headers), self.config, profile),
                )
                recommendations = []
                if score is not None:
                    recommendations = self._run_stage(
                        "recommendations", "Recommendation generation failed",
                        lambda: self.recommendation_engine.generate(validation, profile, score),
                    ) or []
                progress.update(task, advance=1, description="Running statistical analyzers...")

                analyses = self._run_analyzers(prepared_rows, prepared_headers, validation)
                progress.update(task, advance=1, description="Comparing with history...")

                historical = None
                if self.config.enable_historical_analysis and score is not None:
                    historical = self._run_stage(
                        "historical_analysis", "Historical analysis failed",
                        lambda: self._analyze_history(prepared_rows, validation, score, source_url),
                    )
                progress.update(task, advance=1, description="Generating cleaned data...")

                cleaned = None
                if self.config.generate_clean_data:
                    cleaned = self._run_stage(
                        "data_cleaning", "Clean data generation failed",
                        lambda: DataCleaner(self.config.cleaning_actions, self.config.imputation_strategy,
                                            self.config.imputation_constant).clean(
                            prepared_rows, prepared_headers),
                    )
                progress.update(task, advance=1, description="Done")

        except MemoryError as e:
            self.context.error_handler.handle_memory_error("quality check", e)
            self._display_error_message(f"Memory error: {e}")
            return self._create_failure_result(f"Memory error: {e}", timestamp)

        except Exception as e:
            self.context.error_handler.handle_unexpected_error(e, "quality check")
            self._display_error_message(f"Unexpected error: {e}")
            return self._create_failure_result(str(e), timestamp)

        execution_time = time.time() - self.context.start_time
        result = QualityCheckResult(
            success=True,
            validation=validation,
            profile=profile,
            quality_score=score,
            recommendations=recommendations,
            errors_encountered=[error.message for error in self.context.error_handler.errors],
            warnings=self.context.all_warnings(),
            execution_time=execution_time,
            timestamp=timestamp,
            historical=historical,
            cleaned=cleaned,
            stage_timings=dict(self.context.stage_timings),
            **analyses,
        )
        self._display_success_summary(result)
        return result

    def _run_analyzers(self, rows: List[Dict[str, Any]], headers: List[str],
                       validation: ValidationResult) -> Dict[str, Any]:
        column_types = validation.column_types
        analyses: Dict[str, Any] = {}
        if not rows:
            return analyses

        if self.config.enable_benfords_law:
            analyses["benford"] = self._run_stage(
                "benford_analysis", "Benford analysis failed",
                lambda: BenfordAnalyzer().analyze(rows, column_types))
        if self.config.enable_correlation_analysis:
            analyses["correlation"] = self._run_stage(
                "correlation_analysis", "Correlation analysis failed",
                lambda: CorrelationAnalyzer().analyze(rows, column_types))
        if self.config.enable_seasonal_analysis:
            analyses["seasonal"] = self._run_stage(
                "seasonal_analysis", "Seasonal analysis failed",
                lambda: SeasonalAnalyzer(self.config.include_hourly_patterns).analyze(
                    rows, headers, column_types))
        if self.config.enable_pattern_detection:
            analyses["patterns"] = self._run_stage(
                "pattern_detection", "Pattern detection failed",
                lambda: PatternDetector().detect(rows, headers, column_types))
        if self.config.detect_pii:
            analyses["pii"] = self._run_stage(
                "pii_detection", "PII detection failed",
                lambda: PIIDetector(self.config.pii_types, self.config.max_issues_per_type).detect(
                    rows, headers))
        return analyses

    def _analyze_history(self, rows: List[Dict[str, Any]], validation: ValidationResult,
                         score: QualityScore, source_url: Optional[str]):
        content = None
        if not self.config.data_source_identifier and not source_url:
            content = json.dumps(rows[:50], default=str, sort_keys=True)
        source_id = generate_data_source_id(self.config.data_source_identifier, source_url, content)

        store = self.history_store or JsonFileHistoryStore(Path(self.config.history_directory))
        analyzer = HistoricalAnalyzer(store, self.config.history_limit)
        return analyzer.analyze(source_id, extract_metrics(validation, score))

    # Stage helpers

    def _run_stage(self, stage: str, warning: str, runner: Callable[[], T]) -> Optional[T]:
        """Run one stage; on failure record a warning and return None."""
        try:
            return self._timed(stage, runner)
        except MemoryError:
            raise
        except Exception as e:
            self.context.error_handler.handle_stage_failure(stage, e, warning)
            return None

    def _timed(self, stage: str, runner: Callable[[], T]) -> T:
        started = time.time()
        try:
            return runner()
        finally:
            self.context.stage_timings[stage] = round(time.time() - started, 4)
            logger.debug(f"Stage '{stage}' took {self.context.stage_timings[stage]:.3f}s")

    def _warn(self, warning: str) -> None:
        logger.debug(warning)
        self.context.warnings.append(warning)

    # Console output

    def _display_startup_banner(self, rows: Any, headers: Any) -> None:
        if not self.config.enable_progress_reporting:
            return

        banner_text = Text()
        banner_text.append("Data Quality Check\n", style="bold blue")
        if isinstance(rows, list):
            banner_text.append(f"Rows: {len(rows)}\n", style="dim")
        if isinstance(headers, (list, tuple)):
            banner_text.append(f"Columns: {len(headers)}\n", style="dim")
        banner_text.append(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}", style="dim")

        self.console.print(Panel(banner_text, title="Starting Quality Check",
                                 border_style="blue", padding=(1, 2)))
        self.console.print()

    def _display_success_summary(self, result: QualityCheckResult) -> None:
        if not self.config.enable_progress_reporting:
            return

        summary = result.summary()
        summary_text = Text()
        summary_text.append("Quality check completed\n\n", style="bold green")
        summary_text.append(f"Rows validated: {summary['total_rows']}\n")
        summary_text.append(f"Invalid rows: {summary['invalid_rows']}\n")
        summary_text.append(f"Issues found: {summary['total_issues']}\n")
        if result.quality_score is not None:
            summary_text.append(f"Quality score: {result.quality_score.overall}/100 "
                                f"(grade {result.quality_score.grade})\n", style="bold")
        summary_text.append(f"Execution time: {result.execution_time:.2f} seconds\n")

        error_stats = self.context.error_handler.get_error_statistics()
        if error_stats:
            summary_text.append(f"Errors encountered: {len(result.errors_encountered)}\n", style="yellow")
            for error_type, count in error_stats.items():
                summary_text.append(f"   - {error_type.replace('_', ' ').title()}: {count}\n", style="dim")

        if result.warnings:
            summary_text.append(f"Warnings: {len(result.warnings)}\n", style="yellow")

        self.console.print(Panel(summary_text, title="Quality Check Complete",
                                 border_style="green", padding=(1, 2)))

    def _display_error_message(self, error_msg: str) -> None:
        if not self.config.enable_progress_reporting:
            return

        error_text = Text()
        error_text.append("Quality check failed\n\n", style="bold red")
        error_text.append(f"Error: {error_msg}\n")
        self.console.print(Panel(error_text, title="Error", border_style="red", padding=(1, 2)))

    def _create_failure_result(self, error_msg: str, timestamp: datetime) -> QualityCheckResult:
        start = self.context.start_time
        execution_time = time.time() - start if start else 0.0
        errors = [error_msg] + [error.message for error in self.context.error_handler.errors
                                if error.message != error_msg]
        return QualityCheckResult(
            success=False,
            validation=None,
            profile=None,
            quality_score=None,
            recommendations=[],
            errors_encountered=errors,
            warnings=self.context.all_warnings(),
            execution_time=execution_time,
            timestamp=timestamp,
            stage_timings=dict(self.context.stage_timings),
        )


def run_quality_check(rows: Any, headers: Any, schema_definition: Optional[SchemaDefinition] = None,
                      config: Optional[ValidationConfig] = None, **kwargs) -> QualityCheckResult:
    """Run the full pipeline with a fresh orchestrator."""
    return QualityCheckOrchestrator(config, **kwargs).run(rows, headers, schema_definition)


def validate_data(rows: Any, headers: Any, schema_definition: Optional[SchemaDefinition] = None,
                  config: Optional[ValidationConfig] = None) -> ValidationResult:
    """Run only the validation stages."""
    return QualityCheckOrchestrator(config).validate_data(rows, headers, schema_definition)
