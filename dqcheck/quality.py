"""
Quality scoring and recommendation generation.

This module turns validation and profiling results into a composite 0-100
quality score with a letter grade, and derives prioritized, actionable
recommendations from the same inputs.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .models import (
    ColumnTypeDefinition,
    IssueBreakdown,
    ProfileResult,
    QualityScore,
    Recommendation,
    ValidationConfig,
    ValidationResult,
)

logger = logging.getLogger(__name__)

GRADE_THRESHOLDS = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))
MAX_OUTLIER_PENALTY = 30.0
PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


@dataclass
class ScoreWeights:
    """Weights of the score components; they sum to one."""
    completeness: float = 0.30
    validity: float = 0.35
    uniqueness: float = 0.15
    consistency: float = 0.20

    def __post_init__(self):
        total = self.completeness + self.validity + self.uniqueness + self.consistency
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Score weights must sum to 1.0, got {total}")


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def grade_for(score: float) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


class QualityScorer:
    """
    Computes the composite quality score of a validated dataset.

    Components:
    - Completeness: share of profiled cells that are not null
    - Validity: share of cells without type errors or constraint violations
    - Uniqueness: share of rows that are not duplicates; 100 unless a
      unique column is declared
    - Consistency: mean per-column score, where a numeric column loses
      points proportional to its own outlier ratio (at most 30)

    Each component is clamped to [0, 100] before weighting, and the overall
    score is rounded and clamped as well, so pathological inputs can never
    leave the range.

    Example:
        >>> scorer = QualityScorer()
        >>> score = scorer.calculate(validation, total_rows=1000, total_columns=8)
        >>> print(f"{score.overall}/100 ({score.grade})")
    """

    def __init__(self, weights: Optional[ScoreWeights] = None):
        self.weights = weights or ScoreWeights()

    def calculate(self, validation: ValidationResult, total_rows: int, total_columns: int,
                  config: Optional[ValidationConfig] = None,
                  profile: Optional[ProfileResult] = None) -> QualityScore:
        """
        Score a validated dataset.

        Completeness counts the nulls of every profiled column; without a
        profile it falls back to the missing-value issues of the validation.
        """
        breakdown = validation.issue_breakdown
        total_cells = total_rows * total_columns

        if total_rows == 0 or total_cells == 0:
            logger.debug("No cells to score; returning a perfect score")
            return QualityScore(overall=100, completeness=100.0, validity=100.0,
                                uniqueness=100.0, consistency=100.0, grade="A")

        completeness = self._completeness(breakdown, total_cells, profile)
        validity = _clamp(
            (1 - (breakdown.type_errors + breakdown.constraint_violations) / total_cells) * 100
        )
        uniqueness = self._uniqueness(breakdown, total_rows, validation.column_types, config)
        consistency = self._consistency(validation, total_rows)

        weighted = (
            self.weights.completeness * completeness
            + self.weights.validity * validity
            + self.weights.uniqueness * uniqueness
            + self.weights.consistency * consistency
        )
        overall = int(_clamp(round(weighted)))

        return QualityScore(
            overall=overall,
            completeness=round(completeness, 2),
            validity=round(validity, 2),
            uniqueness=round(uniqueness, 2),
            consistency=round(consistency, 2),
            grade=grade_for(overall),
        )

    def _completeness(self, breakdown: IssueBreakdown, total_cells: int,
                      profile: Optional[ProfileResult]) -> float:
        if profile is not None and profile.columns:
            null_count = sum(column.null_count for column in profile.columns.values())
            cell_count = sum(column.total_count for column in profile.columns.values())
            if cell_count == 0:
                return 100.0
            return _clamp((1 - null_count / cell_count) * 100)
        return _clamp((1 - breakdown.missing_values / total_cells) * 100)

    def _uniqueness(self, breakdown: IssueBreakdown, total_rows: int,
                    column_types: Dict[str, ColumnTypeDefinition],
                    config: Optional[ValidationConfig]) -> float:
        has_unique = any(definition.unique for definition in column_types.values())
        if config is not None and config.unique_columns:
            has_unique = True
        if not has_unique:
            return 100.0
        return _clamp((1 - breakdown.duplicates / total_rows) * 100)

    def _consistency(self, validation: ValidationResult, total_rows: int) -> float:
        column_types = validation.column_types
        if not column_types:
            return 100.0

        scores = []
        for name, definition in column_types.items():
            if not definition.is_numeric:
                scores.append(100.0)
                continue
            outliers = validation.outliers_by_column.get(name, 0)
            penalty = min(outliers / total_rows * 100, MAX_OUTLIER_PENALTY)
            scores.append(100.0 - penalty)

        return _clamp(sum(scores) / len(scores))


class RecommendationEngine:
    """Derives prioritized recommendations from a run's results."""

    def __init__(self, large_dataset_rows: int = 100_000):
        self.large_dataset_rows = large_dataset_rows

    def generate(self, validation: ValidationResult, profile: Optional[ProfileResult],
                 score: QualityScore) -> List[Recommendation]:
        """
        Generate recommendations, highest priority first.

        Args:
            validation: Validation result of the run
            profile: Column profiles, if profiling succeeded
            score: The run's quality score

        Returns:
            List of recommendations sorted by priority
        """
        breakdown = validation.issue_breakdown
        recommendations: List[Recommendation] = []

        if profile is not None and score.completeness < 90:
            sparse = [
                f"{name} ({column.null_percent}% null)"
                for name, column in profile.columns.items()
                if column.null_percent > 10
            ]
            if sparse:
                recommendations.append(Recommendation(
                    priority="high",
                    category="completeness",
                    title="Address Missing Values",
                    description=(f"{len(sparse)} column(s) have >10% missing values: "
                                 f"{', '.join(sparse[:3])}{'...' if len(sparse) > 3 else ''}"),
                    action="Improve data collection or impute missing values (mean, median, mode)",
                    impact=f"Could improve completeness score from {score.completeness}% to ~95%",
                ))

        if breakdown.type_errors > 0:
            recommendations.append(Recommendation(
                priority="high",
                category="validity",
                title="Fix Type Mismatches",
                description=f"Found {breakdown.type_errors} type validation errors",
                action="Clean or transform values to match expected column types",
                impact=f"Could raise the validity score from {score.validity}%",
            ))

        if breakdown.constraint_violations > 0:
            recommendations.append(Recommendation(
                priority="high",
                category="validity",
                title="Resolve Constraint Violations",
                description=f"Found {breakdown.constraint_violations} constraint violations",
                action="Correct out-of-range or malformed values, or revisit the constraints",
                impact="Ensures values respect the declared business rules",
            ))

        if breakdown.duplicates > 0:
            recommendations.append(Recommendation(
                priority="medium",
                category="uniqueness",
                title="Review Duplicate Records",
                description=f"Detected {breakdown.duplicates} duplicate or near-duplicate rows",
                action="Investigate duplicates - merge, remove, or mark as intentional",
                impact="Removing duplicates reduces dataset size and improves data quality",
            ))

        if breakdown.outliers > 0:
            recommendations.append(Recommendation(
                priority="medium",
                category="accuracy",
                title="Investigate Outliers",
                description=f"Found {breakdown.outliers} statistical outliers",
                action="Review outliers - they may be errors, edge cases, or valid extreme values",
                impact="Addressing outliers improves statistical analysis reliability",
            ))

        if profile is not None:
            low_cardinality = [
                name for name, column in profile.columns.items()
                if column.total_count
                and column.unique_count / column.total_count < 0.05
                and 1 < column.unique_count <= 20
            ]
            if low_cardinality:
                recommendations.append(Recommendation(
                    priority="low",
                    category="schema",
                    title="Consider Enum Constraints",
                    description=f"Columns with low cardinality detected: {', '.join(low_cardinality[:3])}",
                    action="Add allowed_values constraints to enforce valid values",
                    impact="Prevents invalid categorical data from entering the dataset",
                ))

        if validation.total_rows > self.large_dataset_rows:
            recommendations.append(Recommendation(
                priority="low",
                category="performance",
                title="Enable Sampling for Large Datasets",
                description=f"Dataset has {validation.total_rows:,} rows",
                action="Use the sample_size option for faster validation on subsequent runs",
                impact="Reduces processing time while maintaining statistical validity",
            ))

        recommendations.sort(key=lambda item: PRIORITY_ORDER[item.priority])
        logger.debug(f"Generated {len(recommendations)} recommendations")
        return recommendations
