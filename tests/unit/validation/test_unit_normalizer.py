# tests/unit/validation/test_unit_normalizer.py — v1
"""Tests for validation/normalizer.py — canonical Issue construction."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from codeauditor.core.errors import IssueValidationError
from codeauditor.core.models import CATEGORIES, SEVERITIES
from codeauditor.validation.normalizer import (
    IssueNormalizer,
    detect_category,
    detect_severity,
    detect_type,
    flatten_text,
    normalize_category,
    normalize_severity,
)


class TestSeverity:
    @pytest.mark.parametrize("value,expected", [
        ("critical", "critical"),
        ("high", "high"),
        ("medium", "medium"),
        ("low", "low"),
        ("info", "low"),
        ("warning", "medium"),
        ("warn", "medium"),
        ("error", "high"),
        ("  HIGH ", "high"),
        ("", "medium"),
        ("???", "medium"),
        (None, "medium"),
        (3, "medium"),
    ])
    def test_mapping(self, value, expected):
        assert normalize_severity(value) == expected

    @pytest.mark.parametrize("value", ["critical", "high", "medium", "low", "info", "warning", "error", "", "???"])
    def test_total(self, value):
        assert normalize_severity(value) in SEVERITIES

    def test_detect_from_text(self):
        assert detect_severity("Critical flaw") == "critical"
        assert detect_severity("this is a bug") == "high"
        assert detect_severity("minor naming nit") == "low"
        assert detect_severity("something") == "medium"


class TestCategory:
    def test_missing_index_is_performance(self):
        assert detect_category("Missing index on user_id") == "performance"

    def test_precedence_performance_over_security(self):
        assert detect_category("password column missing index") == "performance"

    def test_security_keywords(self):
        assert detect_category("Possible SQL injection") == "security"

    def test_no_keywords(self):
        assert detect_category("lorem ipsum") is None

    def test_performance_overrides_claimed_security(self):
        assert normalize_category("security", "Missing index on frequently queried column") == "performance"

    def test_claimed_security_kept_against_other_detection(self):
        assert normalize_category("security", "Column naming is inconsistent") == "security"

    def test_detected_security_does_not_override_claim(self):
        assert normalize_category("quality", "Password stored in plain text") == "quality"

    def test_non_security_claim_replaced(self):
        assert normalize_category("quality", "Missing foreign key relationship") == "bug"

    def test_synonym(self):
        assert normalize_category("code_quality", "lorem") == "quality"

    def test_invalid_claim_uses_detection(self):
        assert normalize_category("style", "Slow query in loop") == "performance"

    def test_invalid_claim_without_detection(self):
        assert normalize_category(None, "lorem") == "quality"

    @pytest.mark.parametrize("claimed", [None, "", "style", "security", "BUG", "best-practices"])
    def test_always_canonical(self, claimed):
        assert normalize_category(claimed, "some text") in CATEGORIES


class TestHelpers:
    def test_flatten_nested_lists(self):
        assert flatten_text(["a", ["b", ["c"]], None]) == "a\nb\nc"

    def test_flatten_scalars(self):
        assert flatten_text(3) == "3"
        assert flatten_text(None) is None

    def test_detect_type(self):
        assert detect_type("security hole") == "security"
        assert detect_type("slow performance") == "performance"
        assert detect_type("an error path") == "bug"
        assert detect_type("other") == "general"


class TestIssueNormalizer:
    def test_aliases(self):
        raw = {
            "description": "Injection via id",
            "issue_type": "security_vulnerability",
            "codeSnippet": "$q = $id;",
            "severity": "warning",
            "line": "11",
        }
        issue = IssueNormalizer().normalize(raw, "a.php")
        assert issue.message == "Injection via id"
        assert issue.type == "security_vulnerability"
        assert issue.code_snippet == "$q = $id;"
        assert issue.severity == "medium"
        assert issue.line == 11

    def test_missing_description_and_type_dropped(self):
        assert IssueNormalizer().normalize({"severity": "high"}, "a.php") is None

    def test_type_only_gets_serialized_message(self):
        issue = IssueNormalizer().normalize({"type": "bug"}, "a.php")
        assert '"type": "bug"' in issue.message

    def test_severity_detected_when_absent(self):
        issue = IssueNormalizer().normalize({"message": "Critical vulnerability"}, "a.php")
        assert issue.severity == "critical"

    def test_list_message_flattened(self):
        issue = IssueNormalizer().normalize({"message": ["first", ["second"]]}, "a.php")
        assert issue.message == "first\nsecond"

    def test_database_fields_kept(self):
        raw = {
            "title": "Missing index",
            "description": "No index on status",
            "category": "security",
            "location": {"column": "status"},
            "suggestion": "Add index",
        }
        issue = IssueNormalizer().normalize(raw, "orders")
        assert issue.title == "Missing index"
        assert issue.message == "No index on status"
        assert issue.category == "performance"
        assert issue.location == {"column": "status"}
        assert issue.suggestion == "Add index"

    def test_resolver_applied(self):
        resolver = MagicMock()
        resolver.resolve.return_value = 42
        issue = IssueNormalizer(resolver).normalize({"message": "x", "line": 10, "code": "42| a"}, "a.php")
        assert issue.line == 42
        resolver.resolve.assert_called_once_with("a.php", 10, "42| a")

    def test_unverifiable_dropped(self):
        resolver = MagicMock()
        resolver.resolve.side_effect = IssueValidationError("nope")
        assert IssueNormalizer(resolver).normalize({"message": "x", "line": 10}, "a.php") is None

    def test_normalize_all_uses_subject(self):
        raws = [{"message": "a", "subject": "b.php"}, {"message": "b"}, {"severity": "low"}]
        issues = IssueNormalizer().normalize_all(raws, "a.php")
        assert [i.subject for i in issues] == ["b.php", "a.php"]
