"""
Column type inference and per-value type validation.

Types are inferred from a bounded sample of each column, trying the most
specific candidates first, and every value of every typed column is then
re-checked against its declared type.
"""

import ipaddress
import json
import logging
import re
from typing import Any, Callable, Dict, Optional, Sequence
from urllib.parse import urlparse

from .issues import IssueCollector
from .models import (
    SEVERITY_ERROR,
    SEVERITY_WARNING,
    ColumnTypeDefinition,
    ValidationConfig,
)
from .sources import iter_chunks
from .values import is_null, parse_date, stringify, to_number

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]{7,}$")
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
BOOLEAN_VALUES = {"true", "false", "yes", "no", "0", "1"}

INFERENCE_THRESHOLD = 0.9


def _is_number(value: Any) -> bool:
    return to_number(value) is not None


def _is_integer(value: Any) -> bool:
    number = to_number(value)
    return number is not None and number.is_integer()


def _is_email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_PATTERN.match(value.strip()))


def _is_phone(value: Any) -> bool:
    return bool(PHONE_PATTERN.match(stringify(value).strip()))


def _is_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def _is_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    return stringify(value).strip().lower() in BOOLEAN_VALUES


def _is_uuid(value: Any) -> bool:
    return isinstance(value, str) and bool(UUID_PATTERN.match(value.strip()))


def _is_ip(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        ipaddress.ip_address(value.strip())
    except ValueError:
        return False
    return True


def _is_json(value: Any) -> bool:
    if isinstance(value, (dict, list)):
        return True
    if not isinstance(value, str):
        return False
    try:
        json.loads(value)
    except ValueError:
        return False
    return True


def _is_date(value: Any) -> bool:
    return parse_date(value) is not None


TYPE_VALIDATORS: Dict[str, Callable[[Any], bool]] = {
    "string": lambda value: True,
    "any": lambda value: True,
    "number": _is_number,
    "integer": _is_integer,
    "date": _is_date,
    "email": _is_email,
    "phone": _is_phone,
    "url": _is_url,
    "boolean": _is_boolean,
    "uuid": _is_uuid,
    "ip": _is_ip,
    "json": _is_json,
}

TYPE_SUGGESTIONS = {
    "number": "Ensure the value contains only numeric characters",
    "integer": "Ensure the value is a whole number without decimals",
    "date": "Use a standard date format like YYYY-MM-DD or MM/DD/YYYY",
    "email": "Format should be example@domain.com",
    "phone": "Include country code, e.g., +1-555-123-4567",
    "url": "Include protocol, e.g., https://example.com",
    "boolean": "Use true/false, yes/no, or 1/0",
    "uuid": "Use the 8-4-4-4-12 hexadecimal format",
    "ip": "Use a valid IPv4 (e.g., 192.168.0.1) or IPv6 address",
    "json": "Ensure the value is valid JSON",
}
DEFAULT_SUGGESTION = "Check the value format"


# Candidate checks during inference, most specific first. The extra guard
# keeps loose validators from claiming columns that only look alike.
INFERENCE_ORDER = (
    ("email", lambda value: "@" in stringify(value)),
    ("url", lambda value: stringify(value).lower().startswith("http")),
    ("uuid", lambda value: len(stringify(value).strip()) == 36),
    ("boolean", lambda value: True),
    ("integer", lambda value: "." not in stringify(value)),
    ("number", lambda value: True),
    ("date", lambda value: True),
)


def validate_value(value: Any, type_name: str) -> bool:
    """Check a non-null value against a column type."""
    validator = TYPE_VALIDATORS.get(type_name)
    if validator is None:
        return True
    return validator(value)


def infer_column_type(values: Sequence[Any]) -> str:
    """
    Infer the type of a column from sampled values.

    A candidate is accepted when at least 90% of the non-null values match
    it; a column with no non-null values is a string column.
    """
    present = [value for value in values if not is_null(value)]
    if not present:
        return "string"

    required = INFERENCE_THRESHOLD * len(present)
    for type_name, guard in INFERENCE_ORDER:
        validator = TYPE_VALIDATORS[type_name]
        matches = sum(1 for value in present if guard(value) and validator(value))
        if matches >= required:
            return type_name

    return "string"


def detect_column_types(rows: Sequence[Dict[str, Any]], headers: Sequence[str],
                        sample_size: int = 100) -> Dict[str, ColumnTypeDefinition]:
    """Infer a type definition for every header from the first ``sample_size`` rows."""
    sample = rows[:sample_size]
    column_types = {}
    for header in headers:
        type_name = infer_column_type([row.get(header) for row in sample])
        column_types[header] = ColumnTypeDefinition(name=header, type=type_name)
        logger.debug(f"Inferred type '{type_name}' for column '{header}'")
    return column_types


class TypeValidator:
    """
    Validates every value of every typed column.

    Null values raise ``missing`` issues in required columns and ``null``
    issues elsewhere; non-null values that fail their column type raise
    ``type-mismatch`` issues with a type-specific suggestion.
    """

    def __init__(self, config: Optional[ValidationConfig] = None):
        self.config = config or ValidationConfig()

    def validate(self, rows: Sequence[Dict[str, Any]],
                 column_types: Dict[str, ColumnTypeDefinition]) -> IssueCollector:
        collector = IssueCollector(self.config.max_issues_per_type)
        definitions = list(column_types.values())

        for offset, chunk in iter_chunks(rows, self.config.chunk_size):
            for index, row in enumerate(chunk):
                row_number = offset + index + 1
                for definition in definitions:
                    self._check_value(collector, row_number, definition, row.get(definition.name))

        logger.debug(f"Type validation found {sum(collector.counts.values())} issues")
        return collector

    def _check_value(self, collector: IssueCollector, row_number: int,
                     definition: ColumnTypeDefinition, value: Any) -> None:
        if is_null(value):
            if not self.config.check_missing_values:
                return
            if definition.required:
                collector.add(row_number, definition.name, value, "missing", SEVERITY_ERROR,
                              f"Required field '{definition.name}' is missing",
                              "Provide a value for this required field")
            else:
                collector.add(row_number, definition.name, value, "null", SEVERITY_WARNING,
                              f"Field '{definition.name}' is empty",
                              "Fill in the value or confirm it is intentionally blank")
            return

        if validate_value(value, definition.type):
            return

        text = stringify(value)
        collector.add(
            row_number, definition.name, text, "type-mismatch", SEVERITY_ERROR,
            f"Value '{text[:50]}' is not a valid {definition.type}",
            TYPE_SUGGESTIONS.get(definition.type, DEFAULT_SUGGESTION),
        )
