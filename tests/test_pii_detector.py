"""
Tests for personal data detection.
"""
import pytest

from dqcheck.pii_detector import PII_PATTERNS, PIIDetector, mask_value


class TestPatterns:
    """Test suite for the per-type value patterns."""

    @pytest.mark.parametrize("pii_type, value", [
        ("email", "first.last@company.org"),
        ("phone", "+1-555-555-5555"),
        ("phone", "(555) 555-5555"),
        ("ssn", "123-45-6789"),
        ("ssn", "123456789"),
        ("credit_card", "4111111111111111"),
        ("credit_card", "5500000000000004"),
        ("ip_address", "192.168.1.20"),
    ])
    def test_matches(self, pii_type, value):
        assert PII_PATTERNS[pii_type].pattern.match(value)

    @pytest.mark.parametrize("pii_type, value", [
        ("email", "not-an-email"),
        ("phone", "555-1234"),
        ("ssn", "12-345-6789"),
        ("credit_card", "1234567890"),
        ("ip_address", "256.1.1.1"),
    ])
    def test_rejects(self, pii_type, value):
        assert not PII_PATTERNS[pii_type].pattern.match(value)

    def test_masking(self):
        assert mask_value("alice@example.com", "email") == "a***@example.com"
        assert mask_value("+1-555-555-5555", "phone") == "+1-***55"
        assert mask_value("123-45-6789", "ssn") == "***-**-6789"
        assert mask_value("4111111111111111", "credit_card") == "****-****-****-1111"
        assert mask_value("192.168.1.20", "ip_address") == "192.168.xxx.xxx"


class TestPIIDetector:
    """Test suite for PIIDetector."""

    def setup_method(self):
        self.detector = PIIDetector()

    def test_finds_masked_values(self, customer_rows, customer_headers):
        analysis = self.detector.detect(customer_rows, customer_headers)

        assert analysis.summary == {"email": 4, "phone": 0, "ssn": 0, "credit_card": 0}
        assert analysis.total_findings == 4
        assert analysis.has_high_risk_pii is True
        first = analysis.findings[0]
        assert (first.row_number, first.column, first.pii_type) == (1, "email", "email")
        assert first.masked_value == "a***@example.com"
        assert first.message == "Potential Email Address detected"
        assert all("alice" not in finding.masked_value for finding in analysis.findings)

    def test_findings_are_capped_but_counted(self):
        rows = [{"ssn": f"123-45-{i:04d}"} for i in range(10)]

        analysis = PIIDetector(["ssn"], max_per_type=3).detect(rows, ["ssn"])

        assert len(analysis.findings) == 3
        assert analysis.summary == {"ssn": 10}
        assert analysis.total_findings == 10

    def test_low_risk_only(self):
        rows = [{"host": "10.0.0.1"}, {"host": ""}, {"host": None}]

        analysis = PIIDetector(["ip_address"]).detect(rows, ["host"])

        assert analysis.total_findings == 1
        assert analysis.findings[0].risk == "low"
        assert analysis.has_high_risk_pii is False

    def test_nothing_to_find(self, numeric_rows):
        analysis = PIIDetector(["email", "ssn"]).detect(numeric_rows, ["x", "y"])

        assert analysis.findings == []
        assert analysis.total_findings == 0
