"""
Pairwise Pearson correlation between numeric columns.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .models import ColumnTypeDefinition, CorrelationAnalysis, CorrelationPair
from .values import to_number

logger = logging.getLogger(__name__)

MIN_PAIRS = 10
PERFECT_THRESHOLD = 0.99
VERY_STRONG_THRESHOLD = 0.9
STRONG_THRESHOLD = 0.7


def pearson_correlation(xs: Sequence[float], ys: Sequence[float]) -> Optional[float]:
    """
    Pearson correlation coefficient of two equally long series.

    Returns None for fewer than three points and 0.0 when either series
    has no variance.
    """
    if len(xs) != len(ys) or len(xs) < 3:
        return None

    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        return 0.0
    return float(np.clip(np.corrcoef(x, y)[0, 1], -1.0, 1.0))


class CorrelationAnalyzer:
    """
    Builds a symmetric correlation matrix over numeric columns.

    Each unordered pair is computed once, over the rows where both values
    are numeric, and written to both cells. Pairs with fewer than ten
    shared observations are left as None.
    """

    def analyze(self, rows: Sequence[Dict[str, Any]],
                column_types: Dict[str, ColumnTypeDefinition]) -> Optional[CorrelationAnalysis]:
        numeric_columns = [name for name, definition in column_types.items() if definition.is_numeric]
        if len(numeric_columns) < 2:
            logger.debug("Correlation analysis needs at least two numeric columns")
            return None

        parsed = {
            name: [to_number(row.get(name)) for row in rows]
            for name in numeric_columns
        }

        matrix: Dict[str, Dict[str, Optional[float]]] = {
            name: {other: None for other in numeric_columns} for name in numeric_columns
        }
        strong: List[CorrelationPair] = []
        perfect: List[CorrelationPair] = []

        for i, first in enumerate(numeric_columns):
            matrix[first][first] = 1.0
            for second in numeric_columns[i + 1:]:
                xs = []
                ys = []
                for x, y in zip(parsed[first], parsed[second]):
                    if x is not None and y is not None:
                        xs.append(x)
                        ys.append(y)

                if len(xs) < MIN_PAIRS:
                    continue

                r = pearson_correlation(xs, ys)
                if r is None:
                    continue
                r = round(r, 4)
                matrix[first][second] = r
                matrix[second][first] = r

                pair = self._classify(first, second, r)
                if pair is None:
                    continue
                if pair.strength == "perfect":
                    perfect.append(pair)
                else:
                    strong.append(pair)

        strong.sort(key=lambda pair: abs(pair.correlation), reverse=True)
        return CorrelationAnalysis(
            columns=numeric_columns,
            matrix=matrix,
            strong_correlations=strong,
            perfect_correlations=perfect,
        )

    def _classify(self, first: str, second: str, r: float) -> Optional[CorrelationPair]:
        direction = "positive" if r > 0 else "negative"
        magnitude = abs(r)

        if magnitude > PERFECT_THRESHOLD:
            return CorrelationPair(
                column1=first, column2=second, correlation=r,
                strength="perfect", direction=direction,
                message=f"Perfect {direction} correlation detected",
                suggestion="One column may be redundant or derived from the other",
            )
        if magnitude > STRONG_THRESHOLD:
            strength = "very strong" if magnitude > VERY_STRONG_THRESHOLD else "strong"
            return CorrelationPair(
                column1=first, column2=second, correlation=r,
                strength=strength, direction=direction,
                message=f"{strength.capitalize()} {direction} correlation ({r:.2f}) "
                        f"between '{first}' and '{second}'",
            )
        return None
