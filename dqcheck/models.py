"""
Core data models for the data-quality engine.

This module contains every data structure passed between pipeline stages,
from column type definitions and issues through profiles, scores, the
statistical analyzer results and the persisted historical metrics.
"""

import logging
import re
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

COLUMN_TYPES = (
    "string", "number", "integer", "date", "email", "phone",
    "url", "boolean", "uuid", "ip", "json", "any",
)
NUMERIC_TYPES = ("number", "integer")

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"
SEVERITY_INFO = "info"

OUTLIER_METHODS = ("iqr", "zscore", "none")

PII_TYPES = ("email", "phone", "ssn", "credit_card", "ip_address")
DEFAULT_PII_TYPES = ("email", "phone", "ssn", "credit_card")
CLEANING_ACTIONS = ("trim", "lowercase", "uppercase", "remove_empty", "remove_duplicates")
IMPUTATION_STRATEGIES = ("auto", "mean", "median", "mode", "forward_fill",
                         "backward_fill", "constant", "remove")

# Option names that the camelCase conversion would split letter by letter
OPTION_ALIASES = {"detectPII": "detect_pii"}


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


@dataclass
class ColumnConstraints:
    """Optional value constraints attached to a column definition."""
    min: Optional[float] = None
    max: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    allowed_values: Optional[List[Any]] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "ColumnConstraints":
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = _snake_case(key)
            if name in known:
                values[name] = value
            else:
                logger.debug(f"Ignoring unknown constraint '{key}'")
        return cls(**values)


@dataclass
class ColumnTypeDefinition:
    """Declared or inferred definition of a single column."""
    name: str
    type: str = "string"
    required: bool = False
    unique: bool = False
    constraints: Optional[ColumnConstraints] = None

    def __post_init__(self):
        """Validate the column type."""
        if self.type not in COLUMN_TYPES:
            raise ValueError(f"Unknown column type '{self.type}' for column '{self.name}'")

    @property
    def is_numeric(self) -> bool:
        return self.type in NUMERIC_TYPES

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "ColumnTypeDefinition":
        """Build a definition from a schema entry such as ``{"name": "age", "type": "integer"}``."""
        constraints = data.get("constraints")
        return cls(
            name=data["name"],
            type=data.get("type") or "string",
            required=bool(data.get("required", False)),
            unique=bool(data.get("unique", False)),
            constraints=ColumnConstraints.from_mapping(constraints) if constraints else None,
        )


@dataclass
class Issue:
    """A single data-quality finding tied to a row and column."""
    row_number: int
    column: str
    value: Optional[str]
    issue_type: str
    severity: str
    message: str
    suggestion: Optional[str] = None


@dataclass
class IssueBreakdown:
    """Issue totals per category, computed from uncapped counts."""
    type_errors: int = 0
    missing_values: int = 0
    constraint_violations: int = 0
    duplicates: int = 0
    outliers: int = 0

    @property
    def total(self) -> int:
        return (self.type_errors + self.missing_values + self.constraint_violations
                + self.duplicates + self.outliers)


@dataclass
class ValidationResult:
    """Outcome of the validation stages for one run."""
    issues: List[Issue]
    issue_breakdown: IssueBreakdown
    invalid_row_count: int
    column_types: Dict[str, ColumnTypeDefinition]
    warnings: List[str]
    total_rows: int = 0
    issue_counts: Dict[str, int] = field(default_factory=dict)
    outliers_by_column: Dict[str, int] = field(default_factory=dict)

    @property
    def valid_row_count(self) -> int:
        return max(0, self.total_rows - self.invalid_row_count)


@dataclass
class NumericStats:
    min: float
    max: float
    mean: float
    median: float
    std_dev: float
    q1: float
    q3: float
    sum: float


@dataclass
class StringStats:
    min_length: int
    max_length: int
    avg_length: float


@dataclass
class ValueFrequency:
    value: str
    count: int
    percent: float


@dataclass
class HistogramBin:
    start: float
    end: float
    count: int
    percent: float


@dataclass
class Histogram:
    bins: List[HistogramBin]
    min: float
    max: float
    bin_width: float


@dataclass
class CardinalityInfo:
    """Distinct-value ratio of a column and what it suggests."""
    unique_count: int
    total_count: int
    ratio: float
    classification: str
    recommendation: str


@dataclass
class ColumnProfile:
    """Descriptive statistics for one column."""
    name: str
    total_count: int
    null_count: int
    null_percent: float
    unique_count: int
    unique_percent: float
    completeness: float
    most_common_values: List[ValueFrequency]
    detected_type: str
    numeric_stats: Optional[NumericStats] = None
    string_stats: Optional[StringStats] = None
    histogram: Optional[Histogram] = None
    cardinality: Optional[CardinalityInfo] = None


@dataclass
class ProfileResult:
    columns: Dict[str, ColumnProfile]
    total_rows: int

    @property
    def total_columns(self) -> int:
        return len(self.columns)


@dataclass
class QualityScore:
    """Composite quality score; every component lies in [0, 100]."""
    overall: int
    completeness: float
    validity: float
    uniqueness: float
    consistency: float
    grade: str


@dataclass
class Recommendation:
    priority: str  # 'high', 'medium', 'low'
    category: str
    title: str
    description: str
    action: str
    impact: str = ""


@dataclass
class BenfordColumnResult:
    column: str
    sample_size: int
    observed: Dict[int, float]
    expected: Dict[int, float]
    chi_square: float
    is_compliant: bool
    deviation_percent: float


@dataclass
class BenfordViolation:
    column: str
    severity: str  # 'medium', 'high'
    deviation_percent: float
    chi_square: float
    message: str
    suggestion: str


@dataclass
class BenfordAnalysis:
    columns_analyzed: int
    details: Dict[str, BenfordColumnResult]
    violations: List[BenfordViolation]


@dataclass
class CorrelationPair:
    column1: str
    column2: str
    correlation: float
    strength: str  # 'perfect', 'very strong', 'strong'
    direction: str  # 'positive', 'negative'
    message: str
    suggestion: Optional[str] = None


@dataclass
class CorrelationAnalysis:
    columns: List[str]
    matrix: Dict[str, Dict[str, Optional[float]]]
    strong_correlations: List[CorrelationPair]
    perfect_correlations: List[CorrelationPair]


@dataclass
class BucketStats:
    """Statistics for one calendar bucket (a weekday, a month or an hour)."""
    label: str
    count: int
    mean: float
    std_dev: float
    min: float
    max: float
    deviation_percent: float = 0.0
    z_score: float = 0.0
    is_anomalous: bool = False


@dataclass
class TrendResult:
    direction: str  # 'increasing', 'decreasing', 'stable'
    slope: float
    intercept: float
    r_squared: float
    percent_change: float
    has_trend: bool
    data_points: int


@dataclass
class SeasonalPattern:
    """Calendar patterns of one value column along one date column."""
    date_column: str
    value_column: str
    observations: int
    day_of_week: List[BucketStats]
    monthly: List[BucketStats]
    hourly: Optional[List[BucketStats]] = None
    trend: Optional[TrendResult] = None

    @property
    def anomalous_days(self) -> List[str]:
        return [bucket.label for bucket in self.day_of_week if bucket.is_anomalous]

    @property
    def anomalous_months(self) -> List[str]:
        return [bucket.label for bucket in self.monthly if bucket.is_anomalous]

    @property
    def has_seasonality(self) -> bool:
        hourly = any(bucket.is_anomalous for bucket in self.hourly or [])
        return bool(self.anomalous_days or self.anomalous_months or hourly)


@dataclass
class SeasonalAnalysis:
    date_columns: List[str]
    patterns: List[SeasonalPattern]
    summary: List[str]


@dataclass
class PatternFinding:
    column: str
    pattern_type: str
    kind: str  # 'pattern' or 'anomaly'
    confidence: float
    message: str
    suggestion: str
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PatternAnalysis:
    columns_analyzed: int
    patterns: List[PatternFinding]
    anomalies: List[PatternFinding]


@dataclass
class HistoricalMetric:
    """Metrics of one run, persisted per data source."""
    timestamp: str
    quality_score: float
    grade: str
    total_rows: int
    total_issues: int
    issue_breakdown: Dict[str, int] = field(default_factory=dict)
    data_quality: Dict[str, float] = field(default_factory=dict)
    run_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoricalMetric":
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass
class MetricStats:
    mean: float
    std_dev: float
    min: float
    max: float
    median: float


@dataclass
class MetricTrend:
    metric: str
    direction: str  # 'improving', 'declining', 'stable'
    change_percent: float
    slope: float
    confidence: float
    stats: MetricStats
    moving_average: List[float] = field(default_factory=list)


@dataclass
class MetricAnomaly:
    metric: str
    value: float
    expected: float
    z_score: float
    severity: str  # 'critical', 'high', 'medium'
    impact: str  # 'positive', 'negative', 'neutral'
    message: str


@dataclass
class Prediction:
    quality_score: float
    confidence: float
    based_on_runs: int
    trend: str


@dataclass
class HistoricalAnalysis:
    data_source_id: str
    history_size: int
    trends: Dict[str, MetricTrend]
    anomalies: List[MetricAnomaly]
    prediction: Optional[Prediction]
    recommendations: List[str]
    has_enough_history: bool = False


@dataclass
class PIIFinding:
    """A value that looks like personal data; only its masked form is kept."""
    row_number: int
    column: str
    pii_type: str
    pii_name: str
    risk: str  # 'critical', 'high', 'medium', 'low'
    masked_value: str
    message: str


@dataclass
class PIIAnalysis:
    findings: List[PIIFinding]
    summary: Dict[str, int]
    total_findings: int
    has_high_risk_pii: bool = False


@dataclass
class ImputationStats:
    column: str
    strategy: str
    column_type: str  # 'numeric' or 'categorical'
    missing_count: int
    imputed_count: int
    rows_removed: int = 0
    impute_value: Any = None


@dataclass
class CleaningResult:
    """Cleaned copy of the rows and what was done to produce it."""
    rows: List[Dict[str, Any]]
    headers: List[str]
    original_row_count: int
    actions_applied: List[str]
    imputation: List[ImputationStats] = field(default_factory=list)

    @property
    def rows_removed(self) -> int:
        return self.original_row_count - len(self.rows)


@dataclass
class ValidationConfig:
    """Run configuration for the data-quality pipeline."""
    auto_detect_types: bool = True
    check_duplicates: bool = True
    check_missing_values: bool = True
    detect_outliers: str = "iqr"
    zscore_threshold: float = 3.0
    fuzzy_duplicates: bool = False
    fuzzy_similarity_threshold: float = 0.85
    duplicate_columns: List[str] = field(default_factory=list)
    unique_columns: List[str] = field(default_factory=list)
    ignored_columns: List[str] = field(default_factory=list)
    max_issues_per_type: int = 100
    issue_limit_multiplier: int = 10
    sample_size: int = 0
    type_inference_sample_size: int = 100
    enable_benfords_law: bool = False
    enable_correlation_analysis: bool = False
    enable_pattern_detection: bool = False
    enable_seasonal_analysis: bool = False
    include_hourly_patterns: bool = False
    enable_historical_analysis: bool = False
    history_limit: int = 30
    history_directory: str = ".dq_history"
    data_source_identifier: Optional[str] = None
    chunk_size: int = 10_000
    regex_cache_size: int = 100
    fuzzy_max_rows: int = 10_000
    fuzzy_pair_limit: int = 1_000
    approximate_duplicate_threshold: int = 1_000_000
    memory_warning_mb: int = 500
    enable_progress_reporting: bool = False
    detect_pii: bool = False
    pii_types: List[str] = field(default_factory=lambda: list(DEFAULT_PII_TYPES))
    generate_clean_data: bool = False
    cleaning_actions: List[str] = field(default_factory=list)
    imputation_strategy: Optional[str] = None
    imputation_constant: Any = None

    def __post_init__(self):
        """Validate configuration values."""
        if self.detect_outliers is False or self.detect_outliers is None:
            self.detect_outliers = "none"
        elif self.detect_outliers is True:
            self.detect_outliers = "iqr"

        if self.detect_outliers not in OUTLIER_METHODS:
            raise ValueError(f"detect_outliers must be one of {', '.join(OUTLIER_METHODS)}")

        if not 1 <= self.zscore_threshold <= 10:
            raise ValueError("zscore_threshold must be between 1 and 10")

        if not 0 <= self.fuzzy_similarity_threshold <= 1:
            raise ValueError("fuzzy_similarity_threshold must be between 0 and 1")

        for name in ("max_issues_per_type", "chunk_size", "regex_cache_size",
                     "type_inference_sample_size", "history_limit", "fuzzy_pair_limit"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

        if self.sample_size < 0:
            raise ValueError("sample_size must not be negative")

        self.pii_types = [_snake_case(name) for name in self.pii_types]
        self.cleaning_actions = [_snake_case(name) for name in self.cleaning_actions]
        if self.imputation_strategy is not None:
            self.imputation_strategy = _snake_case(self.imputation_strategy)

        unknown = [name for name in self.pii_types if name not in PII_TYPES]
        if unknown:
            raise ValueError(f"Unknown PII types: {', '.join(unknown)}")

        unknown = [name for name in self.cleaning_actions if name not in CLEANING_ACTIONS]
        if unknown:
            raise ValueError(f"Unknown cleaning actions: {', '.join(unknown)}")

        if self.imputation_strategy is not None and self.imputation_strategy not in IMPUTATION_STRATEGIES:
            raise ValueError(f"imputation_strategy must be one of {', '.join(IMPUTATION_STRATEGIES)}")

        # A multiplier below one still allows one full type worth of issues
        self.issue_limit_multiplier = max(1, int(self.issue_limit_multiplier or 10))

    @property
    def global_issue_limit(self) -> int:
        return self.max_issues_per_type * self.issue_limit_multiplier

    @classmethod
    def from_mapping(cls, options: Optional[Dict[str, Any]]) -> "ValidationConfig":
        """Build a config from snake_case or camelCase option names."""
        if not options:
            return cls()
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in options.items():
            name = OPTION_ALIASES.get(key) or _snake_case(key)
            if name in known:
                values[name] = value
            else:
                logger.warning(f"Ignoring unknown configuration option '{key}'")
        return cls(**values)


@dataclass
class ProcessingError:
    """Represents an error that occurred during a pipeline stage."""
    error_type: str
    stage: Optional[str]
    message: str
    exception: Optional[Exception]
    timestamp: Optional[datetime] = None


@dataclass
class QualityCheckResult:
    """Result of a complete pipeline run."""
    success: bool
    validation: Optional[ValidationResult]
    profile: Optional[ProfileResult]
    quality_score: Optional[QualityScore]
    recommendations: List[Recommendation]
    errors_encountered: List[str]
    warnings: List[str]
    execution_time: float
    timestamp: datetime
    benford: Optional[BenfordAnalysis] = None
    correlation: Optional[CorrelationAnalysis] = None
    seasonal: Optional[SeasonalAnalysis] = None
    patterns: Optional[PatternAnalysis] = None
    historical: Optional[HistoricalAnalysis] = None
    pii: Optional[PIIAnalysis] = None
    cleaned: Optional[CleaningResult] = None
    stage_timings: Dict[str, float] = field(default_factory=dict)

    def summary(self) -> Dict[str, Any]:
        """Headline numbers of the run."""
        validation = self.validation
        total_rows = validation.total_rows if validation else 0
        invalid_rows = validation.invalid_row_count if validation else 0
        breakdown = validation.issue_breakdown if validation else IssueBreakdown()
        return {
            "total_rows": total_rows,
            "valid_rows": max(0, total_rows - invalid_rows),
            "invalid_rows": invalid_rows,
            "total_issues": breakdown.total,
            "quality_score": self.quality_score.overall if self.quality_score else None,
            "grade": self.quality_score.grade if self.quality_score else None,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Plain, JSON-serializable representation of the result."""
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        data["summary"] = self.summary()
        return data
