"""
Constraint and unique-column validation.

Checks numeric ranges, string lengths, regex patterns and allowed values
declared on column definitions, and reports repeated values in unique
columns. Compiled patterns are shared through a bounded cache.
"""

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Pattern, Sequence, Union

from .issues import IssueCollector
from .models import (
    SEVERITY_ERROR,
    ColumnConstraints,
    ColumnTypeDefinition,
    ValidationConfig,
)
from .sources import iter_chunks
from .values import is_null, stringify, to_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledPattern:
    pattern: str
    regex: Pattern

    def matches(self, text: str) -> bool:
        return self.regex.search(text) is not None


@dataclass(frozen=True)
class InvalidPattern:
    pattern: str
    error: str


CachedPattern = Union[CompiledPattern, InvalidPattern]


class PatternCache:
    """
    Bounded cache of compiled regular expressions keyed by pattern text.

    Entries are evicted oldest-first once ``max_size`` is reached. A pattern
    that fails to compile is cached as an InvalidPattern, so the failure is
    logged once and never retried.
    """

    def __init__(self, max_size: int = 100):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._entries: "OrderedDict[str, CachedPattern]" = OrderedDict()

    def get(self, pattern: str) -> CachedPattern:
        entry = self._entries.get(pattern)
        if entry is not None:
            return entry

        try:
            entry = CompiledPattern(pattern, re.compile(pattern))
        except re.error as e:
            logger.warning(f"Invalid regex pattern '{pattern}': {e}")
            entry = InvalidPattern(pattern, str(e))

        if len(self._entries) >= self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted pattern '{evicted}' from cache")
        self._entries[pattern] = entry
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, pattern: str) -> bool:
        return pattern in self._entries

    def clear(self) -> None:
        self._entries.clear()


def _format_allowed(allowed_values: List[Any]) -> str:
    shown = ", ".join(stringify(value) for value in allowed_values[:5])
    return shown + ("..." if len(allowed_values) > 5 else "")


class ConstraintValidator:
    """
    Validates column constraints and unique columns.

    Every violated constraint raises its own issue, so one value can
    produce several. Issue types are ``range-min``, ``range-max``,
    ``length-min``, ``length-max``, ``pattern``, ``enum`` and
    ``unique-violation``.

    Example:
        >>> validator = ConstraintValidator(ValidationConfig(max_issues_per_type=50))
        >>> collector = validator.validate(rows, column_types)
        >>> collector.count("range-min", "range-max")
    """

    def __init__(self, config: Optional[ValidationConfig] = None,
                 pattern_cache: Optional[PatternCache] = None):
        self.config = config or ValidationConfig()
        self.pattern_cache = pattern_cache or PatternCache(self.config.regex_cache_size)

    def validate(self, rows: Sequence[Dict[str, Any]],
                 column_types: Dict[str, ColumnTypeDefinition]) -> IssueCollector:
        collector = IssueCollector(self.config.max_issues_per_type)
        constrained = [
            definition for definition in column_types.values()
            if definition.constraints is not None and not definition.constraints.is_empty()
        ]
        if not constrained:
            return collector

        reported_patterns = set()
        for definition in constrained:
            pattern = definition.constraints.pattern
            if pattern is None or pattern in reported_patterns:
                continue
            entry = self.pattern_cache.get(pattern)
            if isinstance(entry, InvalidPattern):
                reported_patterns.add(pattern)
                collector.warnings.append(
                    f"Invalid regex pattern for column '{definition.name}' skipped: {entry.error}"
                )

        for offset, chunk in iter_chunks(rows, self.config.chunk_size):
            for index, row in enumerate(chunk):
                row_number = offset + index + 1
                for definition in constrained:
                    value = row.get(definition.name)
                    if is_null(value):
                        continue
                    self._check_constraints(collector, row_number, definition.name,
                                            value, definition.constraints)

        logger.debug(f"Constraint validation found {sum(collector.counts.values())} violations")
        return collector

    def _check_constraints(self, collector: IssueCollector, row_number: int, column: str,
                           value: Any, constraints: ColumnConstraints) -> None:
        text = stringify(value)

        if constraints.min is not None or constraints.max is not None:
            number = to_number(value)
            if number is not None:
                if constraints.min is not None and number < constraints.min:
                    collector.add(row_number, column, text, "range-min", SEVERITY_ERROR,
                                  f"Value {text} is below minimum {constraints.min}",
                                  f"Value must be at least {constraints.min}")
                if constraints.max is not None and number > constraints.max:
                    collector.add(row_number, column, text, "range-max", SEVERITY_ERROR,
                                  f"Value {text} exceeds maximum {constraints.max}",
                                  f"Value must be at most {constraints.max}")

        if constraints.min_length is not None and len(text) < constraints.min_length:
            collector.add(row_number, column, text, "length-min", SEVERITY_ERROR,
                          f"Length {len(text)} is below minimum length {constraints.min_length}",
                          f"Value must have at least {constraints.min_length} characters")
        if constraints.max_length is not None and len(text) > constraints.max_length:
            collector.add(row_number, column, text, "length-max", SEVERITY_ERROR,
                          f"Length {len(text)} exceeds maximum length {constraints.max_length}",
                          f"Value must have at most {constraints.max_length} characters")

        if constraints.pattern is not None:
            entry = self.pattern_cache.get(constraints.pattern)
            if isinstance(entry, CompiledPattern) and not entry.matches(text):
                collector.add(row_number, column, text, "pattern", SEVERITY_ERROR,
                              f"Value does not match required pattern: {constraints.pattern}",
                              "Reformat the value to match the expected pattern")

        if constraints.allowed_values is not None:
            allowed = {stringify(item) for item in constraints.allowed_values}
            if text not in allowed:
                collector.add(row_number, column, text, "enum", SEVERITY_ERROR,
                              f"Value '{text[:50]}' is not in allowed values: "
                              f"{_format_allowed(constraints.allowed_values)}",
                              "Use one of the allowed values")

    def check_unique_columns(self, rows: Sequence[Dict[str, Any]],
                             columns: Iterable[str]) -> IssueCollector:
        """Report every repeat of a non-null value in the given columns."""
        collector = IssueCollector(self.config.max_issues_per_type)
        for column in columns:
            first_seen: Dict[str, int] = {}
            for offset, chunk in iter_chunks(rows, self.config.chunk_size):
                for index, row in enumerate(chunk):
                    value = row.get(column)
                    if is_null(value):
                        continue
                    row_number = offset + index + 1
                    key = stringify(value)
                    original = first_seen.get(key)
                    if original is None:
                        first_seen[key] = row_number
                        continue
                    collector.add(row_number, column, key, "unique-violation", SEVERITY_ERROR,
                                  f"Duplicate value in unique column. First occurrence at row {original}",
                                  "Values in this column must be unique")
        return collector
