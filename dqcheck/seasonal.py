"""
Seasonality and trend detection along date columns.

For each (date column, value column) pair, values are grouped by weekday,
month and optionally hour of day. A bucket is anomalous when its mean
differs from the overall mean by more than two standard errors. A
least-squares line over the chronologically ordered values describes the
trend.
"""

import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .models import BucketStats, ColumnTypeDefinition, SeasonalAnalysis, SeasonalPattern, TrendResult
from .values import has_time_component, is_null, linear_fit, parse_date, to_number

logger = logging.getLogger(__name__)

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

MIN_ROWS = 10
SAMPLE_SIZE = 100
DATE_COLUMN_SHARE = 0.8
VALUE_COLUMN_SHARE = 0.5
MAX_VALUE_COLUMNS = 5
MIN_BUCKET_COUNT = 3
ANOMALY_Z_SCORE = 2.0
MIN_TREND_POINTS = 5
TREND_PERCENT = 5.0
TREND_R_SQUARED = 0.3


def _sunday_first_weekday(moment: datetime) -> int:
    return (moment.weekday() + 1) % 7


def bucket_statistics(observations: Sequence[Tuple[datetime, float]], labels: Sequence[str],
                      key: Callable[[datetime], int], overall_mean: float, overall_std: float,
                      min_deviation_percent: float = 0.0) -> List[BucketStats]:
    """
    Per-bucket statistics, with anomalies flagged against the overall series.

    A bucket is anomalous when it holds at least three observations and its
    mean lies more than two standard errors from the overall mean. A
    positive ``min_deviation_percent`` additionally requires the bucket mean
    to differ from the overall mean by at least that share.
    """
    grouped: List[List[float]] = [[] for _ in labels]
    for moment, value in observations:
        grouped[key(moment)].append(value)

    buckets = []
    for label, values in zip(labels, grouped):
        if not values:
            buckets.append(BucketStats(label=label, count=0, mean=0.0, std_dev=0.0, min=0.0, max=0.0))
            continue

        array = np.asarray(values, dtype=float)
        bucket_mean = float(array.mean())
        deviation_percent = ((bucket_mean - overall_mean) / abs(overall_mean) * 100
                             if overall_mean else 0.0)
        z_score = 0.0
        if overall_std > 0:
            z_score = (bucket_mean - overall_mean) / (overall_std / math.sqrt(array.size))

        is_anomalous = (
            array.size >= MIN_BUCKET_COUNT
            and overall_std > 0
            and abs(z_score) > ANOMALY_Z_SCORE
            and abs(deviation_percent) >= min_deviation_percent
        )
        buckets.append(BucketStats(
            label=label,
            count=int(array.size),
            mean=round(bucket_mean, 4),
            std_dev=round(float(array.std()), 4),
            min=float(array.min()),
            max=float(array.max()),
            deviation_percent=round(deviation_percent, 2),
            z_score=round(z_score, 4),
            is_anomalous=is_anomalous,
        ))
    return buckets


def detect_trend(values: Sequence[float]) -> Optional[TrendResult]:
    """Linear trend of an ordered series; None below five points."""
    n = len(values)
    if n < MIN_TREND_POINTS:
        return None

    slope, intercept, r_squared = linear_fit(values)
    average = float(np.mean(values))
    percent_change = slope * n / abs(average) * 100 if average else 0.0

    if percent_change > TREND_PERCENT:
        direction = "increasing"
    elif percent_change < -TREND_PERCENT:
        direction = "decreasing"
    else:
        direction = "stable"

    return TrendResult(
        direction=direction,
        slope=round(slope, 6),
        intercept=round(intercept, 4),
        r_squared=round(r_squared, 4),
        percent_change=round(percent_change, 2),
        has_trend=abs(percent_change) >= TREND_PERCENT and r_squared > TREND_R_SQUARED,
        data_points=n,
    )


class SeasonalAnalyzer:
    """
    Finds weekly, monthly and hourly patterns and trends.

    Date columns are those whose sampled non-null values mostly parse as
    dates; value columns are numeric columns, at most five per date
    column. Inputs with fewer than ten rows are not analyzed.

    Example:
        >>> analysis = SeasonalAnalyzer().analyze(rows, headers, column_types)
        >>> for pattern in analysis.patterns:
        ...     print(pattern.value_column, pattern.anomalous_days)
    """

    def __init__(self, include_hourly: bool = False, max_value_columns: int = MAX_VALUE_COLUMNS,
                 min_deviation_percent: float = 0.0):
        self.include_hourly = include_hourly
        self.max_value_columns = max_value_columns
        self.min_deviation_percent = min_deviation_percent

    def detect_date_columns(self, rows: Sequence[Dict[str, Any]], headers: Sequence[str],
                            column_types: Optional[Dict[str, ColumnTypeDefinition]] = None) -> List[str]:
        column_types = column_types or {}
        sample = rows[:SAMPLE_SIZE]
        date_columns = []
        for header in headers:
            definition = column_types.get(header)
            if definition is not None and definition.type == "date":
                date_columns.append(header)
                continue
            if definition is not None and definition.is_numeric:
                continue
            present = [row.get(header) for row in sample if not is_null(row.get(header))]
            if not present:
                continue
            parsed = sum(1 for value in present if parse_date(value) is not None)
            if parsed / len(present) >= DATE_COLUMN_SHARE:
                date_columns.append(header)
        return date_columns

    def detect_value_columns(self, rows: Sequence[Dict[str, Any]], headers: Sequence[str],
                             date_columns: Sequence[str],
                             column_types: Optional[Dict[str, ColumnTypeDefinition]] = None) -> List[str]:
        column_types = column_types or {}
        sample = rows[:SAMPLE_SIZE]
        value_columns = []
        for header in headers:
            if header in date_columns:
                continue
            definition = column_types.get(header)
            if definition is not None:
                if definition.is_numeric:
                    value_columns.append(header)
                continue
            present = [row.get(header) for row in sample if not is_null(row.get(header))]
            if not present:
                continue
            numeric = sum(1 for value in present if to_number(value) is not None)
            if numeric / len(present) > VALUE_COLUMN_SHARE:
                value_columns.append(header)
        return value_columns[:self.max_value_columns]

    def analyze(self, rows: Sequence[Dict[str, Any]], headers: Sequence[str],
                column_types: Optional[Dict[str, ColumnTypeDefinition]] = None) -> Optional[SeasonalAnalysis]:
        if len(rows) < MIN_ROWS:
            logger.debug(f"Seasonal analysis needs at least {MIN_ROWS} rows")
            return None

        date_columns = self.detect_date_columns(rows, headers, column_types)
        if not date_columns:
            logger.debug("No date columns found for seasonal analysis")
            return None

        value_columns = self.detect_value_columns(rows, headers, date_columns, column_types)
        patterns = []
        for date_column in date_columns:
            for value_column in value_columns:
                pattern = self.analyze_pair(rows, date_column, value_column)
                if pattern is not None:
                    patterns.append(pattern)

        return SeasonalAnalysis(
            date_columns=date_columns,
            patterns=patterns,
            summary=self._summarize(patterns),
        )

    def analyze_pair(self, rows: Sequence[Dict[str, Any]], date_column: str,
                     value_column: str) -> Optional[SeasonalPattern]:
        observations: List[Tuple[datetime, float]] = []
        timed = False
        for row in rows:
            raw_date = row.get(date_column)
            moment = parse_date(raw_date)
            value = to_number(row.get(value_column))
            if moment is None or value is None:
                continue
            observations.append((moment, value))
            timed = timed or has_time_component(raw_date)

        if len(observations) < MIN_ROWS:
            return None

        values = np.fromiter((value for _, value in observations), dtype=float,
                             count=len(observations))
        overall_mean = float(values.mean())
        overall_std = float(values.std()) if np.ptp(values) else 0.0

        def buckets(labels, key):
            return bucket_statistics(observations, labels, key, overall_mean, overall_std,
                                     self.min_deviation_percent)

        day_of_week = buckets(DAY_NAMES, _sunday_first_weekday)
        monthly = buckets(MONTH_NAMES, lambda moment: moment.month - 1)
        hourly = None
        if self.include_hourly or timed:
            hourly = buckets([f"{hour:02d}:00" for hour in range(24)], lambda moment: moment.hour)

        ordered = [value for _, value in sorted(observations, key=lambda item: item[0])]
        return SeasonalPattern(
            date_column=date_column,
            value_column=value_column,
            observations=len(observations),
            day_of_week=day_of_week,
            monthly=monthly,
            hourly=hourly,
            trend=detect_trend(ordered),
        )

    def _summarize(self, patterns: List[SeasonalPattern]) -> List[str]:
        summary = []
        for pattern in patterns:
            label = f"'{pattern.value_column}' by '{pattern.date_column}'"
            if pattern.anomalous_days:
                summary.append(f"{label}: unusual values on {', '.join(pattern.anomalous_days)}")
            if pattern.anomalous_months:
                summary.append(f"{label}: unusual values in {', '.join(pattern.anomalous_months)}")
            hours = [bucket.label for bucket in pattern.hourly or [] if bucket.is_anomalous]
            if hours:
                summary.append(f"{label}: unusual values at {', '.join(hours)}")
            if pattern.trend is not None and pattern.trend.has_trend:
                summary.append(f"{label}: {pattern.trend.direction} trend "
                               f"({pattern.trend.percent_change:+.1f}%)")
        return summary
