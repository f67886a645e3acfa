# tests/unit/api/test_unit_models.py — v2
"""Tests for api/models.py."""

from __future__ import annotations

from codeauditor.api.models import ScanOptions, ScanReport
from codeauditor.core.models import ScanState


class TestScanOptions:
    def test_defaults(self):
        options = ScanOptions()
        assert options.scan_id is None
        assert options.mode == "full"
        assert options.selection == []

    def test_selective(self):
        options = ScanOptions(mode="selective", selection=["Models/User.php"])
        assert options.selection == ["Models/User.php"]


class TestScanReport:
    def test_succeeded(self):
        state = ScanState(scan_id="s1", status="completed")
        assert ScanReport(scan_id="s1", state=state).succeeded is True

    def test_failed(self):
        state = ScanState(scan_id="s1", status="failed", error="x")
        report = ScanReport(scan_id="s1", state=state)
        assert report.succeeded is False
        assert report.results is None
