# tests/unit/analyzer/test_unit_classifier.py — v2
"""Tests for analyzer/classifier.py — backend error classification."""

from __future__ import annotations

import pytest

from codeauditor.analyzer.classifier import classify
from codeauditor.analyzer.models import ErrorCode


class TestExplicitCode:
    @pytest.mark.parametrize("code,expected", [
        ("RATE_LIMIT_EXCEEDED", ErrorCode.RATE_LIMIT),
        ("rate_limit_exceeded", ErrorCode.RATE_LIMIT),
        ("QUOTA_EXCEEDED", ErrorCode.QUOTA),
        ("PAYLOAD_TOO_LARGE", ErrorCode.TOO_LARGE),
        ("413", ErrorCode.TOO_LARGE),
        ("429", ErrorCode.RATE_LIMIT),
    ])
    def test_known_codes(self, code, expected):
        assert classify(code, "whatever") is expected

    def test_code_wins_over_text(self):
        assert classify("QUOTA_EXCEEDED", "rate limit reached") is ErrorCode.QUOTA

    def test_unknown_code_falls_back_to_text(self):
        assert classify("E_WEIRD", "Too Many Requests") is ErrorCode.RATE_LIMIT

    def test_numeric_rate_limit_code_with_plain_text(self):
        assert classify("429", "upstream refused the request") is ErrorCode.RATE_LIMIT


class TestTextPhrases:
    @pytest.mark.parametrize("text,expected", [
        ("Rate limit reached for requests", ErrorCode.RATE_LIMIT),
        ("HTTP 429 from upstream", ErrorCode.RATE_LIMIT),
        ("too many requests", ErrorCode.RATE_LIMIT),
        ("You exceeded your current quota: Quota exceeded", ErrorCode.QUOTA),
        ("Request too large for gpt-4o on tokens per min (TPM)", ErrorCode.TOO_LARGE),
        ("413 Payload Too Large", ErrorCode.TOO_LARGE),
        ("connection reset by peer", ErrorCode.OTHER),
        ("", ErrorCode.OTHER),
    ])
    def test_phrases(self, text, expected):
        assert classify(None, text) is expected

    def test_quota_checked_before_rate_limit(self):
        assert classify(None, "quota exceeded (429)") is ErrorCode.QUOTA

    def test_none_text(self):
        assert classify(None, None) is ErrorCode.OTHER


class TestErrorCode:
    def test_fatal_codes(self):
        assert ErrorCode.RATE_LIMIT.is_fatal
        assert ErrorCode.QUOTA.is_fatal
        assert not ErrorCode.TOO_LARGE.is_fatal
        assert not ErrorCode.OTHER.is_fatal
