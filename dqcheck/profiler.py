"""
Per-column descriptive profiling.

Numeric and length reductions run as numpy array operations, so profiling
stays safe on columns of any length.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .models import (
    CardinalityInfo,
    ColumnProfile,
    ColumnTypeDefinition,
    Histogram,
    HistogramBin,
    NumericStats,
    ProfileResult,
    StringStats,
    ValueFrequency,
)
from .values import is_null, stringify, to_number

logger = logging.getLogger(__name__)

TOP_VALUES = 10
TOP_VALUE_LENGTH = 50
NUMERIC_SHARE = 0.9
HISTOGRAM_BINS = 10

CARDINALITY_RECOMMENDATIONS = {
    "empty": "Column is empty - consider removing or investigating data source",
    "very_low": "Very low cardinality - ideal for enum/categorical constraints",
    "low": "Low cardinality - suitable for indexing and categorical analysis",
    "medium": "Medium cardinality - may contain meaningful categories",
    "high": "High cardinality - typical for descriptive text fields",
    "unique": "Near-unique values - likely an ID or key field",
}


def _percent(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def numeric_stats(numbers: Sequence[float]) -> NumericStats:
    """Summary statistics of a non-empty list of numbers.

    Quartiles are taken by floor index into the sorted values, matching
    the IQR fences of the outlier detector.
    """
    ordered = np.sort(np.asarray(numbers, dtype=float))
    n = ordered.size
    return NumericStats(
        min=round(float(ordered[0]), 4),
        max=round(float(ordered[-1]), 4),
        mean=round(float(ordered.mean()), 4),
        median=round(float(np.median(ordered)), 4),
        std_dev=round(float(ordered.std()), 4),
        q1=round(float(ordered[int(n * 0.25)]), 4),
        q3=round(float(ordered[int(n * 0.75)]), 4),
        sum=round(float(ordered.sum()), 4),
    )


def string_stats(texts: Sequence[str]) -> Optional[StringStats]:
    if not texts:
        return None
    lengths = np.fromiter((len(text) for text in texts), dtype=int, count=len(texts))
    return StringStats(
        min_length=int(lengths.min()),
        max_length=int(lengths.max()),
        avg_length=round(float(lengths.mean()), 2),
    )


def numeric_histogram(numbers: Sequence[float], bins: int = HISTOGRAM_BINS) -> Optional[Histogram]:
    """Equal-width histogram; a constant column yields a single bin."""
    if len(numbers) == 0:
        return None

    array = np.asarray(numbers, dtype=float)
    low = float(array.min())
    high = float(array.max())
    total = array.size
    if low == high:
        return Histogram(bins=[HistogramBin(low, high, total, 100.0)], min=low, max=high, bin_width=0.0)

    counts, edges = np.histogram(array, bins=bins, range=(low, high))
    return Histogram(
        bins=[
            HistogramBin(float(edges[i]), float(edges[i + 1]), int(count), _percent(int(count), total))
            for i, count in enumerate(counts)
        ],
        min=low,
        max=high,
        bin_width=round((high - low) / bins, 4),
    )


def analyze_cardinality(unique_count: int, total_count: int) -> CardinalityInfo:
    ratio = unique_count / total_count if total_count else 0.0
    if ratio == 0:
        classification = "empty"
    elif ratio < 0.01:
        classification = "very_low"
    elif ratio < 0.1:
        classification = "low"
    elif ratio < 0.5:
        classification = "medium"
    elif ratio < 0.95:
        classification = "high"
    else:
        classification = "unique"
    return CardinalityInfo(
        unique_count=unique_count,
        total_count=total_count,
        ratio=round(ratio, 4),
        classification=classification,
        recommendation=CARDINALITY_RECOMMENDATIONS[classification],
    )


class ColumnProfiler:
    """
    Builds a ColumnProfile for every header.

    A column is profiled numerically when more than 90% of its non-null
    values parse as finite numbers; otherwise string length statistics
    are computed.
    """

    def profile(self, rows: Sequence[Dict[str, Any]], headers: Sequence[str],
                column_types: Optional[Dict[str, ColumnTypeDefinition]] = None) -> ProfileResult:
        column_types = column_types or {}
        columns = {}
        for header in headers:
            definition = column_types.get(header)
            columns[header] = self.profile_column(
                header, [row.get(header) for row in rows],
                definition.type if definition else None,
            )
        logger.debug(f"Profiled {len(columns)} columns over {len(rows)} rows")
        return ProfileResult(columns=columns, total_rows=len(rows))

    def profile_column(self, name: str, values: List[Any],
                       declared_type: Optional[str] = None) -> ColumnProfile:
        total = len(values)
        present = [value for value in values if not is_null(value)]
        texts = [stringify(value) for value in present]
        null_count = total - len(present)

        frequencies = Counter(texts)
        unique_count = len(frequencies)
        most_common = [
            ValueFrequency(value=value[:TOP_VALUE_LENGTH], count=count,
                           percent=_percent(count, total))
            for value, count in frequencies.most_common(TOP_VALUES)
        ]

        numbers = []
        for value in present:
            number = to_number(value)
            if number is not None:
                numbers.append(number)

        profile = ColumnProfile(
            name=name,
            total_count=total,
            null_count=null_count,
            null_percent=_percent(null_count, total),
            unique_count=unique_count,
            unique_percent=_percent(unique_count, len(present)),
            completeness=round(100 - _percent(null_count, total), 2) if total else 0.0,
            most_common_values=most_common,
            detected_type=declared_type or "string",
            cardinality=analyze_cardinality(unique_count, len(present)),
        )

        if numbers and len(numbers) > NUMERIC_SHARE * len(present):
            profile.numeric_stats = numeric_stats(numbers)
            profile.histogram = numeric_histogram(numbers)
            if declared_type is None:
                profile.detected_type = "number"
        else:
            profile.string_stats = string_stats(texts)

        return profile
