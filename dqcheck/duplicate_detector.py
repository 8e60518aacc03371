"""
Exact and fuzzy duplicate row detection.

Rows are reduced to a signature of their key-column values. Exact
duplicates share a signature; fuzzy duplicates are pairs whose signatures
are within a Levenshtein similarity threshold. Very large inputs switch to
a hash-bucketed signature index that stores compact digests instead of the
signatures themselves.
"""

import hashlib
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from .issues import IssueCollector
from .models import SEVERITY_INFO, SEVERITY_WARNING, ValidationConfig
from .sources import iter_chunks
from .values import stringify

logger = logging.getLogger(__name__)

ROWS_PER_BUCKET = 1000


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance between two strings, using two rolling rows."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Iterate over the longer string so the rows stay short
    if len(a) < len(b):
        a, b = b, a

    len_b = len(b)
    prev_row: List[int] = list(range(len_b + 1))
    curr_row: List[int] = [0] * (len_b + 1)

    for i in range(1, len(a) + 1):
        curr_row[0] = i
        char_a = a[i - 1]
        for j in range(1, len_b + 1):
            cost = 0 if char_a == b[j - 1] else 1
            curr_row[j] = min(
                prev_row[j] + 1,
                curr_row[j - 1] + 1,
                prev_row[j - 1] + cost,
            )
        prev_row, curr_row = curr_row, prev_row

    return prev_row[len_b]


def string_similarity(a: str, b: str) -> float:
    """Similarity in [0, 1]: one minus edit distance over the longer length."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / max_len


def build_signature(row: Dict[str, Any], columns: Sequence[str]) -> str:
    return "|".join(stringify(row.get(column)) for column in columns)


def stable_hash(text: str) -> int:
    """Process-independent 64-bit hash of ``text``."""
    digest = hashlib.blake2b(text.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big")


class SignatureIndex:
    """
    Maps row signatures to the row where each was first seen.

    In exact mode keys are the signatures. In bucketed mode signatures are
    reduced to 64-bit digests and spread over ``bucket_count`` buckets,
    which bounds memory at the cost of a negligible collision chance.
    """

    def __init__(self, bucket_count: int = 0):
        self.bucket_count = bucket_count
        if bucket_count > 0:
            self._buckets: List[Dict[Any, int]] = [{} for _ in range(bucket_count)]
        else:
            self._buckets = [{}]

    @classmethod
    def for_row_count(cls, row_count: int, threshold: int) -> "SignatureIndex":
        if row_count <= threshold:
            return cls()
        bucket_count = math.ceil(row_count / ROWS_PER_BUCKET)
        logger.info(f"Using hash-bucketed duplicate index with {bucket_count} buckets")
        return cls(bucket_count)

    @property
    def is_bucketed(self) -> bool:
        return self.bucket_count > 0

    def register(self, signature: str, row_number: int) -> Optional[int]:
        """
        Record a signature.

        Returns:
            The row number of the earlier occurrence, or None for a new signature
        """
        if self.is_bucketed:
            key: Any = stable_hash(signature)
            bucket = self._buckets[key % self.bucket_count]
        else:
            key = signature
            bucket = self._buckets[0]

        original = bucket.get(key)
        if original is None:
            bucket[key] = row_number
        return original

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._buckets)


class DuplicateDetector:
    """
    Detects exact and, optionally, fuzzy duplicate rows.

    The first occurrence of a signature is the original; each later
    occurrence raises a ``duplicate`` warning that references it. Fuzzy
    matching is quadratic and therefore bounded: it only runs on inputs of
    at most ``fuzzy_max_rows`` rows and compares only the first
    ``fuzzy_pair_limit`` of them.
    """

    def __init__(self, config: Optional[ValidationConfig] = None):
        self.config = config or ValidationConfig()

    def resolve_key_columns(self, headers: Sequence[str], collector: IssueCollector) -> List[str]:
        requested = list(self.config.duplicate_columns or [])
        if not requested:
            return list(headers)

        header_set = set(headers)
        missing = [column for column in requested if column not in header_set]
        if missing:
            collector.warnings.append(
                f"Duplicate check columns not found in data: {', '.join(missing)}"
            )
        present = [column for column in requested if column in header_set]
        return present or list(headers)

    def detect(self, rows: Sequence[Dict[str, Any]], headers: Sequence[str]) -> IssueCollector:
        collector = IssueCollector(self.config.max_issues_per_type)
        key_columns = self.resolve_key_columns(headers, collector)
        column_label = ", ".join(key_columns)

        signatures = [build_signature(row, key_columns) for row in rows]
        index = SignatureIndex.for_row_count(len(rows), self.config.approximate_duplicate_threshold)

        for offset, chunk in iter_chunks(signatures, self.config.chunk_size):
            for position, signature in enumerate(chunk):
                row_number = offset + position + 1
                original = index.register(signature, row_number)
                if original is not None:
                    collector.add(row_number, column_label, signature, "duplicate", SEVERITY_WARNING,
                                  f"Exact duplicate of row {original}",
                                  "Remove the duplicate row or mark it as intentional")

        if self.config.fuzzy_duplicates:
            if len(rows) <= self.config.fuzzy_max_rows:
                self._detect_fuzzy(signatures, column_label, collector)
            else:
                collector.warnings.append(
                    f"Fuzzy duplicate detection skipped: {len(rows)} rows exceeds "
                    f"the limit of {self.config.fuzzy_max_rows}"
                )

        logger.debug(f"Duplicate detection found {collector.count('duplicate')} exact and "
                     f"{collector.count('fuzzy-duplicate')} fuzzy duplicates")
        return collector

    def _detect_fuzzy(self, signatures: List[str], column_label: str,
                      collector: IssueCollector) -> None:
        threshold = self.config.fuzzy_similarity_threshold
        candidates = signatures[:self.config.fuzzy_pair_limit]

        for i, first in enumerate(candidates):
            for j in range(i + 1, len(candidates)):
                second = candidates[j]
                if first == second:
                    continue
                # Length difference alone bounds the best achievable similarity
                longest = max(len(first), len(second))
                if longest and 1 - abs(len(first) - len(second)) / longest < threshold:
                    continue
                similarity = string_similarity(first, second)
                if similarity >= threshold:
                    percent = similarity * 100
                    collector.add(j + 1, column_label, f"Similarity: {percent:.1f}%",
                                  "fuzzy-duplicate", SEVERITY_INFO,
                                  f"Similar to row {i + 1} ({percent:.1f}% match)",
                                  "Check whether these rows describe the same record")
