"""
Heuristic detection of suspicious value patterns.

Looks for repeating sequences, sudden level shifts, monotonic runs and
implausible frequency distributions, all of which often point to
synthetic, copy-pasted or otherwise non-natural data.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .models import ColumnTypeDefinition, PatternAnalysis, PatternFinding
from .values import is_null, numeric_values, stringify

logger = logging.getLogger(__name__)

MIN_VALUES = 10
MIN_SHIFT_VALUES = 20
SHIFT_PERCENT = 50.0
MAX_SHIFTS = 5
MONOTONIC_SHARE = 0.9
DOMINANT_SHARE = 0.9


def detect_repeating_sequence(column: str, values: Sequence[str]) -> Optional[PatternFinding]:
    """Find a leading block of 2-10 values that repeats at least three times."""
    window_limit = min(10, len(values) // 4)
    for size in range(2, window_limit + 1):
        block = list(values[:size])
        repeats = 0
        for start in range(size, len(values) - size + 1, size):
            if list(values[start:start + size]) == block:
                repeats += 1
        if repeats >= 3:
            return PatternFinding(
                column=column,
                pattern_type="repeating-sequence",
                kind="pattern",
                confidence=min(0.95, 0.5 + repeats / 10),
                message=f"Repeating pattern of {size} values detected ({repeats} repetitions)",
                suggestion="This may indicate synthetic data or copy-paste errors",
                details={"sequence_length": size, "repetitions": repeats},
            )
    return None


def detect_sudden_shifts(column: str, numbers: Sequence[float]) -> Optional[PatternFinding]:
    """Flag jumps of more than 50% between consecutive rolling means."""
    if len(numbers) < MIN_SHIFT_VALUES:
        return None

    window = max(5, len(numbers) // 10)
    means = sliding_window_view(np.asarray(numbers, dtype=float), window).mean(axis=1)
    change = np.abs(np.diff(means))
    average = (np.abs(means[1:]) + np.abs(means[:-1])) / 2
    relative = np.divide(change, average, out=np.zeros_like(change), where=average > 0) * 100
    positions = [int(index) + 1 + window for index in np.flatnonzero(relative > SHIFT_PERCENT)]

    if not positions or len(positions) > MAX_SHIFTS:
        return None
    return PatternFinding(
        column=column,
        pattern_type="sudden-shift",
        kind="anomaly",
        confidence=0.7,
        message=f"Detected {len(positions)} sudden shift(s) in values",
        suggestion="Review these positions for data quality issues or legitimate changes",
        details={"positions": positions},
    )


def detect_monotonic_trend(column: str, numbers: Sequence[float]) -> Optional[PatternFinding]:
    if len(numbers) < MIN_VALUES:
        return None

    steps = np.diff(np.asarray(numbers, dtype=float))
    increasing = int(np.count_nonzero(steps > 0))
    decreasing = int(np.count_nonzero(steps < 0))

    for count, direction, verb, suggestion in (
        (increasing, "increasing", "increase",
         "This may be a sequence ID, timestamp, or accumulating value"),
        (decreasing, "decreasing", "decrease",
         "This may indicate countdown, depreciation, or declining metric"),
    ):
        share = count / steps.size
        if share > MONOTONIC_SHARE:
            return PatternFinding(
                column=column,
                pattern_type="monotonic-trend",
                kind="pattern",
                confidence=round(share, 4),
                message=f"Column shows strong {direction} trend ({share * 100:.0f}% of values {verb})",
                suggestion=suggestion,
                details={"direction": direction},
            )
    return None


def detect_frequency_anomaly(column: str, values: Sequence[str]) -> Optional[PatternFinding]:
    """Flag perfectly uniform or single-value-dominated distributions."""
    counts = Counter(values)
    frequencies = list(counts.values())
    unique_count = len(frequencies)

    # Every value repeated the same number of times (IDs, seen once each, are fine)
    if (unique_count > 5 and len(values) > 50 and frequencies[0] > 1
            and all(frequency == frequencies[0] for frequency in frequencies)):
        return PatternFinding(
            column=column,
            pattern_type="uniform-distribution",
            kind="anomaly",
            confidence=0.8,
            message=("Perfectly uniform distribution detected (each value appears exactly "
                     "the same number of times)"),
            suggestion="This is statistically unlikely and may indicate synthetic data",
            details={"unique_values": unique_count, "frequency": frequencies[0]},
        )

    top = max(frequencies)
    share = top / len(values)
    if share > DOMINANT_SHARE and unique_count > 1:
        return PatternFinding(
            column=column,
            pattern_type="concentrated-distribution",
            kind="anomaly",
            confidence=round(share, 4),
            message=f"One value accounts for {share * 100:.0f}% of all values",
            suggestion="Consider if this column provides meaningful variance",
            details={"dominant_value": counts.most_common(1)[0][0][:50]},
        )
    return None


class PatternDetector:
    """Runs every pattern heuristic over each column with enough values."""

    def detect(self, rows: Sequence[Dict[str, Any]], headers: Sequence[str],
               column_types: Optional[Dict[str, ColumnTypeDefinition]] = None) -> PatternAnalysis:
        column_types = column_types or {}
        patterns: List[PatternFinding] = []
        anomalies: List[PatternFinding] = []
        analyzed = 0

        for header in headers:
            present = [row.get(header) for row in rows if not is_null(row.get(header))]
            if len(present) < MIN_VALUES:
                continue
            analyzed += 1
            texts = [stringify(value) for value in present]

            findings = [
                detect_repeating_sequence(header, texts),
                detect_frequency_anomaly(header, texts),
            ]

            definition = column_types.get(header)
            if definition is not None and definition.is_numeric:
                numbers = numeric_values(present)
                findings.append(detect_sudden_shifts(header, numbers))
                findings.append(detect_monotonic_trend(header, numbers))

            for finding in findings:
                if finding is None:
                    continue
                if finding.kind == "anomaly":
                    anomalies.append(finding)
                else:
                    patterns.append(finding)

        logger.debug(f"Pattern detection: {len(patterns)} patterns, {len(anomalies)} anomalies "
                     f"across {analyzed} columns")
        return PatternAnalysis(columns_analyzed=analyzed, patterns=patterns, anomalies=anomalies)
