"""
Cleaned copies of a dataset.

Cleaning actions (whitespace trimming, case folding, empty and duplicate
row removal) run in the configured order, followed by optional missing
value imputation. The input rows are never modified; the cleaned rows are
returned to the caller, who decides where they go.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .duplicate_detector import build_signature
from .models import CleaningResult, ImputationStats
from .values import is_null, stringify, to_number

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

NUMERIC_SHARE = 0.8


def is_missing(value: Any) -> bool:
    """Null, NaN or a string of only whitespace."""
    return is_null(value) or (isinstance(value, str) and not value.strip())


# Cleaning actions

def trim_values(rows: Sequence[Row], headers: Sequence[str]) -> List[Row]:
    return [_map_strings(row, headers, str.strip) for row in rows]


def change_case(rows: Sequence[Row], headers: Sequence[str], upper: bool = False) -> List[Row]:
    convert = str.upper if upper else str.lower
    return [_map_strings(row, headers, convert) for row in rows]


def remove_empty_rows(rows: Sequence[Row], headers: Sequence[str]) -> List[Row]:
    return [row for row in rows if any(not is_null(row.get(column)) for column in headers)]


def remove_duplicate_rows(rows: Sequence[Row], headers: Sequence[str]) -> List[Row]:
    """Keep the first of every group of rows with identical values."""
    seen = set()
    kept = []
    for row in rows:
        signature = build_signature(row, headers)
        if signature not in seen:
            seen.add(signature)
            kept.append(row)
    return kept


def _map_strings(row: Row, headers: Sequence[str], convert) -> Row:
    cleaned = dict(row)
    for column in headers:
        if isinstance(cleaned.get(column), str):
            cleaned[column] = convert(cleaned[column])
    return cleaned


CLEANING_FUNCTIONS = {
    "trim": trim_values,
    "lowercase": change_case,
    "uppercase": lambda rows, headers: change_case(rows, headers, upper=True),
    "remove_empty": remove_empty_rows,
    "remove_duplicates": remove_duplicate_rows,
}


def apply_cleaning_actions(rows: Sequence[Row], headers: Sequence[str],
                           actions: Sequence[str]) -> List[Row]:
    """Apply the named actions in order; unknown names are skipped with a warning."""
    cleaned = [dict(row) for row in rows]
    for action in actions:
        function = CLEANING_FUNCTIONS.get(action)
        if function is None:
            logger.warning(f"Unknown cleaning action '{action}' skipped")
            continue
        cleaned = function(cleaned, headers)
    return cleaned


# Imputation

def column_kind(rows: Sequence[Row], column: str) -> str:
    """'numeric' when more than 80% of the present values are numbers."""
    present = [row.get(column) for row in rows if not is_missing(row.get(column))]
    if not present:
        return "categorical"
    numbers = sum(1 for value in present if to_number(value) is not None)
    return "numeric" if numbers / len(present) > NUMERIC_SHARE else "categorical"


def most_frequent(values: Sequence[Any]) -> Any:
    """Most common present value; the earliest one wins a tie."""
    present = [value for value in values if not is_missing(value)]
    if not present:
        return None
    first_seen: Dict[str, Any] = {}
    for value in present:
        first_seen.setdefault(stringify(value), value)
    key, _ = Counter(stringify(value) for value in present).most_common(1)[0]
    return first_seen[key]


def _fill(rows: Sequence[Row], column: str, value: Any) -> Tuple[List[Row], int]:
    filled = 0
    result = []
    for row in rows:
        if is_missing(row.get(column)):
            row = dict(row, **{column: value})
            filled += 1
        result.append(row)
    return result, filled


def _carry(rows: Sequence[Row], column: str, backward: bool = False) -> Tuple[List[Row], int]:
    ordered = list(reversed(rows)) if backward else list(rows)
    last = None
    filled = 0
    result = []
    for row in ordered:
        if not is_missing(row.get(column)):
            last = row.get(column)
        elif last is not None:
            row = dict(row, **{column: last})
            filled += 1
        result.append(row)
    if backward:
        result.reverse()
    return result, filled


def impute_column(rows: Sequence[Row], column: str, strategy: str = "auto",
                  constant: Any = None) -> Tuple[List[Row], ImputationStats]:
    """
    Fill the missing values of one column.

    ``auto`` uses the median for numeric columns and the most frequent value
    otherwise; ``mean`` and ``median`` fall back to the most frequent value
    for categorical columns. ``remove`` drops the rows instead.
    """
    kind = column_kind(rows, column)
    missing = sum(1 for row in rows if is_missing(row.get(column)))
    if missing == 0:
        return list(rows), ImputationStats(column, "none", kind, 0, 0)

    if strategy == "auto":
        strategy = "median" if kind == "numeric" else "mode"
    if strategy in ("mean", "median") and kind != "numeric":
        strategy = "mode"

    impute_value = None
    if strategy in ("mean", "median"):
        numbers = np.array([number for number in (to_number(row.get(column)) for row in rows)
                            if number is not None])
        average = numbers.mean() if strategy == "mean" else np.median(numbers)
        impute_value = round(float(average), 4)
        result, filled = _fill(rows, column, impute_value)
    elif strategy == "mode":
        impute_value = most_frequent([row.get(column) for row in rows])
        result, filled = _fill(rows, column, impute_value) if impute_value is not None else (list(rows), 0)
    elif strategy == "constant":
        impute_value = constant if constant is not None else (0 if kind == "numeric" else "")
        result, filled = _fill(rows, column, impute_value)
    elif strategy in ("forward_fill", "backward_fill"):
        result, filled = _carry(rows, column, backward=strategy == "backward_fill")
    elif strategy == "remove":
        result = [row for row in rows if not is_missing(row.get(column))]
        return result, ImputationStats(column, strategy, kind, missing, 0,
                                       rows_removed=len(rows) - len(result))
    else:
        raise ValueError(f"Unknown imputation strategy '{strategy}'")

    return result, ImputationStats(column, strategy, kind, missing, filled, impute_value=impute_value)


def impute_missing_values(rows: Sequence[Row], headers: Sequence[str], strategy: str = "auto",
                          constant: Any = None) -> Tuple[List[Row], List[ImputationStats]]:
    """Impute every column in turn; stats are returned for columns that had gaps."""
    current = list(rows)
    stats = []
    for column in headers:
        current, column_stats = impute_column(current, column, strategy, constant)
        if column_stats.missing_count:
            stats.append(column_stats)
    return current, stats


def analyze_missing_values(rows: Sequence[Row], headers: Sequence[str]) -> Dict[str, Any]:
    """Missing value counts per column and the share of rows with any gap."""
    if not rows:
        return {"total_rows": 0, "rows_with_missing": 0, "rows_with_missing_percent": 0.0,
                "total_missing_values": 0, "columns": {}, "most_missing": []}

    mask = np.array([[is_missing(row.get(column)) for column in headers] for row in rows],
                    dtype=bool).reshape(len(rows), len(headers))
    per_column = mask.sum(axis=0)
    rows_with_missing = int(mask.any(axis=1).sum())

    columns = {
        column: {"count": int(count), "percent": round(float(count) / len(rows) * 100, 2)}
        for column, count in zip(headers, per_column)
    }
    ranked = sorted((item for item in columns.items() if item[1]["count"]), key=lambda item: -item[1]["count"])
    return {
        "total_rows": len(rows),
        "rows_with_missing": rows_with_missing,
        "rows_with_missing_percent": round(rows_with_missing / len(rows) * 100, 2),
        "total_missing_values": int(per_column.sum()),
        "columns": columns,
        "most_missing": [dict(column=column, **info) for column, info in ranked[:5]],
    }


class DataCleaner:
    """Produces a cleaned copy of the rows from the configured actions and imputation."""

    def __init__(self, actions: Optional[Sequence[str]] = None, imputation_strategy: Optional[str] = None,
                 imputation_constant: Any = None):
        self.actions = list(actions or [])
        self.imputation_strategy = imputation_strategy
        self.imputation_constant = imputation_constant

    def clean(self, rows: Sequence[Row], headers: Sequence[str]) -> CleaningResult:
        cleaned = apply_cleaning_actions(rows, headers, self.actions)
        applied = [action for action in self.actions if action in CLEANING_FUNCTIONS]

        imputation: List[ImputationStats] = []
        if self.imputation_strategy:
            cleaned, imputation = impute_missing_values(
                cleaned, headers, self.imputation_strategy, self.imputation_constant)
            applied.append(f"impute:{self.imputation_strategy}")

        logger.info(f"Cleaned {len(rows)} -> {len(cleaned)} rows")
        return CleaningResult(
            rows=cleaned,
            headers=list(headers),
            original_row_count=len(rows),
            actions_applied=applied,
            imputation=imputation,
        )
