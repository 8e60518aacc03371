"""
Tests for exact and fuzzy duplicate detection.
"""
from dqcheck.duplicate_detector import (
    DuplicateDetector,
    SignatureIndex,
    levenshtein_distance,
    stable_hash,
    string_similarity,
)
from dqcheck.models import ValidationConfig


class TestLevenshtein:
    """Test suite for edit distance and similarity."""

    def test_known_distances(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("flaw", "lawn") == 2
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_distance_is_symmetric(self):
        assert levenshtein_distance("abcdef", "azced") == levenshtein_distance("azced", "abcdef")

    def test_similarity_bounds(self):
        assert string_similarity("", "") == 1.0
        assert string_similarity("abc", "xyz") == 0.0
        assert string_similarity("abcd", "abce") == 0.75


class TestSignatureIndex:
    """Test suite for the exact and hash-bucketed signature index."""

    def test_exact_index_returns_first_occurrence(self):
        index = SignatureIndex()

        assert index.register("a|1", 1) is None
        assert index.register("b|2", 2) is None
        assert index.register("a|1", 3) == 1
        assert index.register("a|1", 4) == 1
        assert len(index) == 2

    def test_bucketed_index_matches_exact_behaviour(self):
        index = SignatureIndex(bucket_count=8)

        assert index.is_bucketed
        assert index.register("a|1", 1) is None
        assert index.register("a|1", 2) == 1
        assert index.register("b|2", 3) is None

    def test_index_switches_to_buckets_above_threshold(self):
        assert not SignatureIndex.for_row_count(100, threshold=1000).is_bucketed
        assert SignatureIndex.for_row_count(2500, threshold=1000).bucket_count == 3

    def test_stable_hash_is_deterministic(self):
        assert stable_hash("row") == stable_hash("row")
        assert stable_hash("row") != stable_hash("row2")


class TestDuplicateDetector:
    """Test suite for duplicate row detection."""

    def test_exact_duplicate_references_original_row(self):
        detector = DuplicateDetector(ValidationConfig())
        rows = [{"id": 1}, {"id": 2}, {"id": 1}]

        collector = detector.detect(rows, ["id"])

        assert collector.count("duplicate") == 1
        issue = collector.issues[0]
        assert issue.row_number == 3
        assert issue.message == "Exact duplicate of row 1"
        assert issue.severity == "warning"

    def test_duplicate_columns_restrict_the_signature(self):
        detector = DuplicateDetector(ValidationConfig(duplicate_columns=["email", "missing_col"]))
        rows = [
            {"id": 1, "email": "a@example.com"},
            {"id": 2, "email": "a@example.com"},
        ]

        collector = detector.detect(rows, ["id", "email"])

        assert collector.count("duplicate") == 1
        assert collector.warnings == ["Duplicate check columns not found in data: missing_col"]

    def test_bucketed_detection_finds_same_duplicates(self):
        detector = DuplicateDetector(ValidationConfig(approximate_duplicate_threshold=2))
        rows = [{"id": i % 3} for i in range(9)]

        collector = detector.detect(rows, ["id"])

        assert collector.count("duplicate") == 6
        assert collector.issues[0].message == "Exact duplicate of row 1"

    def test_fuzzy_duplicates(self):
        detector = DuplicateDetector(ValidationConfig(fuzzy_duplicates=True,
                                                      fuzzy_similarity_threshold=0.8))
        rows = [
            {"name": "Jonathan Smith"},
            {"name": "Jonathon Smith"},
            {"name": "Completely different"},
        ]

        collector = detector.detect(rows, ["name"])

        assert collector.count("duplicate") == 0
        assert collector.count("fuzzy-duplicate") == 1
        issue = collector.issues[0]
        assert issue.row_number == 2
        assert issue.severity == "info"
        assert issue.message == "Similar to row 1 (92.9% match)"
        assert issue.value == "Similarity: 92.9%"

    def test_fuzzy_detection_skipped_for_large_inputs(self):
        detector = DuplicateDetector(ValidationConfig(fuzzy_duplicates=True, fuzzy_max_rows=2))
        rows = [{"v": "aaaa"}, {"v": "aaab"}, {"v": "aabb"}]

        collector = detector.detect(rows, ["v"])

        assert collector.count("fuzzy-duplicate") == 0
        assert any("Fuzzy duplicate detection skipped" in warning for warning in collector.warnings)
