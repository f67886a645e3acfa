# src/validation/line_resolver.py — v1
"""Reconcile reported line numbers and code excerpts with the real source.

Backends are unreliable about line numbers but usually quote the literal
code, so the excerpt is the stronger anchor:
    - a ``"<N>| code"`` prefix (echoed from the numbered payload) wins;
    - otherwise the excerpt is searched within ±5 lines of the hint, then
      across the whole file;
    - a reported line is kept only while it is inside the file.
An excerpt that cannot be matched to the resolved line or relocated makes
the issue unverifiable.
"""

from __future__ import annotations

import logging
import re

from codeauditor.core.errors import IssueValidationError
from codeauditor.validation.source_reader import BaseSourceReader

logger = logging.getLogger(__name__)

_PREFIX_RE = re.compile(r"^(\d+)\|\s*")
_PREFIX_MULTILINE_RE = re.compile(r"^\d+\|\s*", re.MULTILINE)

HINT_RADIUS = 5
CONTEXT_RADIUS = 2


def prefixed_line(snippet: str | None) -> int | None:
    """Line number carried by a ``"<N>| "`` excerpt prefix, if any."""
    if not snippet:
        return None
    match = _PREFIX_RE.match(snippet.strip())
    if match:
        number = int(match.group(1))
        return number if number > 0 else None
    return None


def clean_snippet(snippet: str) -> str:
    """Strip line-number prefixes from every excerpt line."""
    return _PREFIX_MULTILINE_RE.sub("", snippet).strip()


def _matches(line: str, snippet: str) -> bool:
    content = line.strip()
    if content == snippet:
        return True
    if snippet and snippet in content:
        return True
    return bool(content) and content in snippet


def find_line(lines: list[str], snippet: str, hint: int | None = None) -> int | None:
    """1-based line where ``snippet`` appears, searching near ``hint`` first."""
    needle = clean_snippet(snippet)
    if not needle:
        return None
    total = len(lines)
    if hint is not None and 0 < hint <= total:
        start = max(0, hint - HINT_RADIUS - 1)
        end = min(total - 1, hint + HINT_RADIUS - 1)
        for i in range(start, end + 1):
            if _matches(lines[i], needle):
                return i + 1
    for i, line in enumerate(lines):
        if _matches(line, needle):
            return i + 1
    return None


class LineResolver:
    """Resolve and validate issue lines against files from a source reader."""

    def __init__(self, reader: BaseSourceReader) -> None:
        self._reader = reader
        self._cache: dict[str, list[str] | None] = {}

    def lines_of(self, subject: str) -> list[str] | None:
        if subject not in self._cache:
            try:
                self._cache[subject] = self._reader.read_text(subject).split("\n")
            except OSError as e:
                logger.warning("Cannot validate issues for %s: %s", subject, e)
                self._cache[subject] = None
        return self._cache[subject]

    def clear(self) -> None:
        self._cache.clear()

    def resolve(self, subject: str, line: int | None, snippet: str | None) -> int | None:
        """Return the trusted line for an issue.

        Raises:
            IssueValidationError: If the line/excerpt cannot be reconciled.
        """
        from_prefix = prefixed_line(snippet)
        if from_prefix is not None:
            line = from_prefix

        lines = self.lines_of(subject)
        if lines is None:
            # Unreadable source: keep the issue unvalidated
            return line

        if snippet and clean_snippet(snippet) and from_prefix is None:
            found = find_line(lines, snippet, hint=line)
            if found is not None:
                line = found

        if line is None:
            return None

        total = len(lines)
        if line < 1 or line > total:
            if snippet:
                found = find_line(lines, snippet)
                if found is not None:
                    return found
            raise IssueValidationError(
                f"{subject}: line {line} out of bounds (1..{total}) and excerpt not found"
            )

        if snippet and clean_snippet(snippet):
            return self._validate_excerpt(subject, lines, line, snippet)
        return line

    def _validate_excerpt(self, subject: str, lines: list[str], line: int, snippet: str) -> int:
        needle = clean_snippet(snippet)
        if _matches(lines[line - 1], needle):
            return line

        start = max(0, line - CONTEXT_RADIUS - 1)
        end = min(len(lines) - 1, line + CONTEXT_RADIUS - 1)
        if needle in "\n".join(lines[start:end + 1]):
            return line

        found = find_line(lines, snippet, hint=line)
        if found is not None:
            return found
        raise IssueValidationError(
            f"{subject}: excerpt does not match line {line} and cannot be found in file"
        )
