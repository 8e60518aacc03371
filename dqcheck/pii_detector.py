"""
Detection of personal data in column values.

Each value is matched in full against a pattern per PII type. Every match
is counted, but only the first ``max_per_type`` findings of a type are kept,
and a finding never carries the raw value, only a masked form of it.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .models import DEFAULT_PII_TYPES, PIIAnalysis, PIIFinding
from .values import is_null, stringify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PIIPattern:
    pattern: "re.Pattern"
    name: str
    risk: str


PII_PATTERNS: Dict[str, PIIPattern] = {
    "email": PIIPattern(re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$"), "Email Address", "high"),
    "phone": PIIPattern(re.compile(r"^\+?[\d\s\-()]{10,}$"), "Phone Number", "medium"),
    "ssn": PIIPattern(re.compile(r"^\d{3}-?\d{2}-?\d{4}$"), "Social Security Number", "critical"),
    "credit_card": PIIPattern(
        re.compile(r"^(?:4\d{12}(?:\d{3})?|5[1-5]\d{14}|3[47]\d{13}|6(?:011|5\d{2})\d{12})$"),
        "Credit Card Number", "critical"),
    "ip_address": PIIPattern(
        re.compile(r"^(?:(?:25[0-5]|2[0-4]\d|[01]?\d\d?)\.){3}(?:25[0-5]|2[0-4]\d|[01]?\d\d?)$"),
        "IP Address", "low"),
}

HIGH_RISK_LEVELS = ("critical", "high")


def mask_value(value: str, pii_type: str) -> str:
    """Masked display form of a detected value."""
    if pii_type == "email":
        local, _, domain = value.partition("@")
        return f"{local[:1]}***@{domain}"
    if pii_type == "phone":
        return f"{value[:3]}***{value[-2:]}"
    if pii_type == "ssn":
        return f"***-**-{value[-4:]}"
    if pii_type == "credit_card":
        return f"****-****-****-{value[-4:]}"
    if pii_type == "ip_address":
        return ".".join(value.split(".")[:2]) + ".xxx.xxx"
    return f"{value[:3]}***"


class PIIDetector:
    """Scans every column for values that look like personal data."""

    def __init__(self, pii_types: Optional[Sequence[str]] = None, max_per_type: int = 100):
        if pii_types is None:
            pii_types = DEFAULT_PII_TYPES
        self.pii_types = [name for name in pii_types if name in PII_PATTERNS]
        self.max_per_type = max_per_type

    def detect(self, rows: Sequence[Dict[str, Any]], headers: Sequence[str]) -> PIIAnalysis:
        counts = {pii_type: 0 for pii_type in self.pii_types}
        findings: List[PIIFinding] = []

        for column in headers:
            values = [(index + 1, stringify(row.get(column)).strip())
                      for index, row in enumerate(rows) if not is_null(row.get(column))]
            for pii_type in self.pii_types:
                pattern = PII_PATTERNS[pii_type]
                for row_number, text in values:
                    if not pattern.pattern.match(text):
                        continue
                    counts[pii_type] += 1
                    if counts[pii_type] <= self.max_per_type:
                        findings.append(PIIFinding(
                            row_number=row_number,
                            column=column,
                            pii_type=pii_type,
                            pii_name=pattern.name,
                            risk=pattern.risk,
                            masked_value=mask_value(text, pii_type),
                            message=f"Potential {pattern.name} detected",
                        ))

        total = sum(counts.values())
        if total:
            logger.info(f"Found {total} potential PII values")
        return PIIAnalysis(
            findings=findings,
            summary=counts,
            total_findings=total,
            has_high_risk_pii=any(finding.risk in HIGH_RISK_LEVELS for finding in findings),
        )
