"""
Numeric outlier detection with the IQR or Z-score method.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .issues import IssueCollector
from .models import SEVERITY_WARNING, ColumnTypeDefinition, ValidationConfig
from .values import stringify, to_number

logger = logging.getLogger(__name__)

MIN_VALUES = 10
IQR_MULTIPLIER = 1.5


def iqr_bounds(values: Sequence[float]) -> Optional[Tuple[float, float]]:
    """Lower and upper fences ``Q1 - 1.5*IQR`` and ``Q3 + 1.5*IQR``.

    Quartiles are taken by floor index into the sorted values.
    """
    if len(values) == 0:
        return None
    ordered = np.sort(np.asarray(values, dtype=float))
    n = ordered.size
    q1 = float(ordered[int(n * 0.25)])
    q3 = float(ordered[int(n * 0.75)])
    iqr = q3 - q1
    return q1 - IQR_MULTIPLIER * iqr, q3 + IQR_MULTIPLIER * iqr


def iqr_mask(values: Sequence[float]) -> np.ndarray:
    """Boolean mask of the values outside the IQR fences."""
    bounds = iqr_bounds(values)
    if bounds is None:
        return np.zeros(0, dtype=bool)
    lower, upper = bounds
    array = np.asarray(values, dtype=float)
    return (array < lower) | (array > upper)


def zscore_mask(values: Sequence[float], threshold: float = 3.0) -> np.ndarray:
    """Boolean mask of the values whose absolute Z-score exceeds ``threshold``."""
    array = np.asarray(values, dtype=float)
    if array.size == 0 or np.ptp(array) == 0:
        return np.zeros(array.size, dtype=bool)
    z_scores = np.abs(array - array.mean()) / array.std()
    return z_scores > threshold


def find_iqr_outliers(values: Sequence[float]) -> List[float]:
    mask = iqr_mask(values)
    return [float(value) for value, flagged in zip(values, mask) if flagged]


def find_zscore_outliers(values: Sequence[float], threshold: float = 3.0) -> List[float]:
    mask = zscore_mask(values, threshold)
    return [float(value) for value, flagged in zip(values, mask) if flagged]


class OutlierDetector:
    """
    Flags statistical outliers in number and integer columns.

    Columns need at least ten finite values. Each flagged value raises an
    ``outlier`` warning, and per-column counts stay available on the
    returned collector for consistency scoring.
    """

    def __init__(self, config: Optional[ValidationConfig] = None):
        self.config = config or ValidationConfig()

    def detect(self, rows: Sequence[Dict[str, Any]],
               column_types: Dict[str, ColumnTypeDefinition]) -> IssueCollector:
        collector = IssueCollector(self.config.max_issues_per_type)
        method = self.config.detect_outliers
        if method == "none":
            return collector

        for definition in column_types.values():
            if not definition.is_numeric:
                continue

            entries: List[Tuple[int, float, Any]] = []
            for index, row in enumerate(rows):
                raw = row.get(definition.name)
                number = to_number(raw)
                if number is not None:
                    entries.append((index + 1, number, raw))

            if len(entries) < MIN_VALUES:
                continue

            numbers = [number for _, number, _ in entries]
            if method == "zscore":
                flagged = zscore_mask(numbers, self.config.zscore_threshold)
                label = "Z-score method"
            else:
                flagged = iqr_mask(numbers)
                label = "IQR method"

            for (row_number, _, raw), is_outlier in zip(entries, flagged):
                if is_outlier:
                    text = stringify(raw)
                    collector.add(row_number, definition.name, text, "outlier", SEVERITY_WARNING,
                                  f"Value {text} is a statistical outlier ({label})",
                                  "Verify this value is correct or consider capping/removing it")

        return collector
