"""
Scalar helpers shared by the validators, profiler and analyzers.

Null detection, strict numeric parsing, date parsing and the canonical
string form of a cell all live here so every stage agrees on them.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple

import numpy as np

NUMBER_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

ISO_DATE_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})(?:[T ](\d{2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$"
)
SLASH_DATE_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:\s+(\d{1,2}):(\d{2})(?::(\d{2}))?)?$")
DASH_DATE_PATTERN = re.compile(r"^(\d{1,2})[-.](\d{1,2})[-.](\d{4})(?:\s+(\d{1,2}):(\d{2})(?::(\d{2}))?)?$")

MIN_YEAR = 1900
MAX_YEAR = 2100


def is_null(value: Any) -> bool:
    """True for None, the empty string and float NaN."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float):
        return math.isnan(value)
    return False


def to_number(value: Any) -> Optional[float]:
    """Parse a finite number, or return None.

    Booleans are not numbers here, and strings must be entirely numeric
    (surrounding whitespace allowed): ``"12abc"`` is rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not NUMBER_PATTERN.match(text):
            return None
        number = float(text)
    else:
        return None
    return number if math.isfinite(number) else None


def numeric_values(values: Iterable[Any]) -> List[float]:
    """All finite numbers among ``values``, in order."""
    result = []
    for value in values:
        number = to_number(value)
        if number is not None:
            result.append(number)
    return result


def stringify(value: Any) -> str:
    """Canonical text form of a cell used for signatures and counting."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit]


def _build_date(year: int, month: int, day: int, hour: int = 0,
                minute: int = 0, second: int = 0) -> Optional[datetime]:
    if not MIN_YEAR <= year <= MAX_YEAR:
        return None
    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None


def _group_int(match: "re.Match", index: int) -> int:
    group = match.group(index)
    return int(group) if group else 0


def parse_date(value: Any) -> Optional[datetime]:
    """Parse a calendar date, or return None.

    Accepts ``date``/``datetime`` objects and the text forms ISO
    ``YYYY-MM-DD[THH:MM[:SS]]``, US ``MM/DD/YYYY`` and European
    ``DD-MM-YYYY`` / ``DD.MM.YYYY``. Plain numbers are never dates.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    text = value.strip()
    match = ISO_DATE_PATTERN.match(text)
    if match:
        return _build_date(int(match.group(1)), int(match.group(2)), int(match.group(3)),
                           _group_int(match, 4), _group_int(match, 5), _group_int(match, 6))

    match = SLASH_DATE_PATTERN.match(text)
    if match:
        return _build_date(int(match.group(3)), int(match.group(1)), int(match.group(2)),
                           _group_int(match, 4), _group_int(match, 5), _group_int(match, 6))

    match = DASH_DATE_PATTERN.match(text)
    if match:
        return _build_date(int(match.group(3)), int(match.group(2)), int(match.group(1)),
                           _group_int(match, 4), _group_int(match, 5), _group_int(match, 6))

    return None


def has_time_component(value: Any) -> bool:
    if isinstance(value, datetime):
        return True
    if isinstance(value, str):
        text = value.strip()
        return bool(re.search(r"\d{1,2}:\d{2}", text))
    return False


def linear_fit(ys: Sequence[float]) -> Tuple[float, float, float]:
    """Least-squares line of ``ys`` over their index.

    Returns ``(slope, intercept, r_squared)``; a flat or single-point
    series yields a zero slope and zero R².
    """
    y = np.asarray(ys, dtype=float)
    if y.size < 2 or np.ptp(y) == 0:
        return 0.0, (float(y[0]) if y.size else 0.0), 0.0

    x = np.arange(y.size, dtype=float)
    slope, intercept = np.polyfit(x, y, 1)
    fitted = slope * x + intercept
    ss_res = float(np.sum((y - fitted) ** 2))
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    return float(slope), float(intercept), 1 - ss_res / ss_tot
