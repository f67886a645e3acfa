# tests/unit/validation/test_unit_line_resolver.py — v1
"""Tests for validation/line_resolver.py — line/excerpt reconciliation."""

from __future__ import annotations

from pathlib import Path

import pytest

from codeauditor.core.errors import IssueValidationError
from codeauditor.validation.line_resolver import (
    LineResolver,
    clean_snippet,
    find_line,
    prefixed_line,
)
from codeauditor.validation.source_reader import LocalSourceReader


def _source() -> str:
    lines = [f"// filler {i}" for i in range(1, 61)]
    lines[41] = "$x = 1;"  # line 42
    lines[9] = "$total = $a + $b;"  # line 10
    return "\n".join(lines)


@pytest.fixture
def resolver(tmp_path: Path) -> LineResolver:
    (tmp_path / "a.php").write_text(_source())
    return LineResolver(LocalSourceReader(tmp_path))


class TestHelpers:
    def test_prefixed_line(self):
        assert prefixed_line("42| $x = 1;") == 42
        assert prefixed_line("  7|foo") == 7
        assert prefixed_line("$x = 1;") is None
        assert prefixed_line("0| x") is None
        assert prefixed_line(None) is None

    def test_clean_snippet_multiline(self):
        assert clean_snippet("3| a\n4| b") == "a\nb"

    def test_find_line_prefers_window(self):
        lines = ["dup", "x", "x", "x", "x", "x", "x", "x", "dup"]
        assert find_line(lines, "dup", hint=8) == 9

    def test_find_line_whole_file(self):
        lines = ["a"] * 20 + ["needle"]
        assert find_line(lines, "needle", hint=2) == 21

    def test_find_line_empty_snippet(self):
        assert find_line(["a"], "1| ") is None


class TestResolve:
    def test_prefix_wins_over_reported_line(self, resolver):
        assert resolver.resolve("a.php", 10, "42| $x = 1;") == 42

    def test_exact_match_kept(self, resolver):
        assert resolver.resolve("a.php", 10, "$total = $a + $b;") == 10

    def test_relocated_near_hint(self, resolver):
        assert resolver.resolve("a.php", 40, "$x = 1;") == 42

    def test_relocated_far_from_hint(self, resolver):
        assert resolver.resolve("a.php", 3, "$x = 1;") == 42

    def test_located_without_hint(self, resolver):
        assert resolver.resolve("a.php", None, "$x = 1;") == 42

    def test_out_of_bounds_relocated(self, resolver):
        assert resolver.resolve("a.php", 500, "$x = 1;") == 42

    def test_out_of_bounds_without_snippet_rejected(self, resolver):
        with pytest.raises(IssueValidationError, match="out of bounds"):
            resolver.resolve("a.php", 500, None)

    def test_unmatched_excerpt_rejected(self, resolver):
        with pytest.raises(IssueValidationError):
            resolver.resolve("a.php", 10, "eval($input);")

    def test_line_without_snippet_kept(self, resolver):
        assert resolver.resolve("a.php", 5, None) == 5

    def test_no_line_no_snippet(self, resolver):
        assert resolver.resolve("a.php", None, None) is None

    def test_unreadable_source_keeps_line(self, resolver):
        assert resolver.resolve("missing.php", 10, "whatever") == 10

    def test_lines_cached_until_clear(self, resolver, tmp_path):
        resolver.lines_of("a.php")
        (tmp_path / "a.php").write_text("changed")
        assert len(resolver.lines_of("a.php")) == 60
        resolver.clear()
        assert resolver.lines_of("a.php") == ["changed"]
