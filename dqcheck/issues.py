"""
Bounded issue collection.

Every validation stage reports through an IssueCollector: each issue is
counted, but only the first ``max_per_type`` issues of each type are kept.
"""

import logging
from collections import Counter
from typing import Dict, List, Optional, Set, Tuple

from .models import Issue
from .values import truncate

logger = logging.getLogger(__name__)

ISSUE_VALUE_LIMIT = 100


class IssueCollector:
    """Collects issues for one stage, capped per issue type."""

    def __init__(self, max_per_type: int = 100):
        self.max_per_type = max_per_type
        self.issues: List[Issue] = []
        self.counts: Dict[str, int] = {}
        self.column_counts: Dict[str, Dict[str, int]] = {}
        self.warnings: List[str] = []

    def add(self, row_number: int, column: str, value, issue_type: str, severity: str,
            message: str, suggestion: Optional[str] = None) -> bool:
        """Count an issue and materialize it while its type is under the cap.

        Returns:
            True if the issue was kept, False if it was only counted
        """
        count = self.counts.get(issue_type, 0) + 1
        self.counts[issue_type] = count

        per_column = self.column_counts.setdefault(issue_type, {})
        per_column[column] = per_column.get(column, 0) + 1

        if count > self.max_per_type:
            return False

        text = None if value is None else truncate(str(value), ISSUE_VALUE_LIMIT)
        self.issues.append(Issue(
            row_number=row_number,
            column=column,
            value=text,
            issue_type=issue_type,
            severity=severity,
            message=message,
            suggestion=suggestion,
        ))
        return True

    def count(self, *issue_types: str) -> int:
        return sum(self.counts.get(issue_type, 0) for issue_type in issue_types)

    @property
    def dropped(self) -> int:
        return sum(self.counts.values()) - len(self.issues)

    def merge(self, other: "IssueCollector") -> None:
        """Fold another stage's issues, counts and warnings into this one.

        The per-type cap of this collector applies to the merged issues;
        counts always add up in full.
        """
        kept = Counter(issue.issue_type for issue in self.issues)
        for issue in other.issues:
            if kept[issue.issue_type] < self.max_per_type:
                kept[issue.issue_type] += 1
                self.issues.append(issue)
        for issue_type, count in other.counts.items():
            self.counts[issue_type] = self.counts.get(issue_type, 0) + count
        for issue_type, columns in other.column_counts.items():
            target = self.column_counts.setdefault(issue_type, {})
            for column, count in columns.items():
                target[column] = target.get(column, 0) + count
        self.warnings.extend(other.warnings)


def truncate_issues(issues: List[Issue], limit: int) -> Tuple[List[Issue], Optional[str]]:
    """Apply the global issue limit, returning the kept issues and a warning if any were cut."""
    if len(issues) <= limit:
        return issues, None
    warning = f"Issues truncated from {len(issues)} to {limit}"
    logger.info(warning)
    return issues[:limit], warning


def count_invalid_rows(issues: List[Issue]) -> int:
    rows: Set[int] = {issue.row_number for issue in issues}
    return len(rows)
