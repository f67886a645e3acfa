# src/parsing/json_extractor.py — v2
"""Extract a credible JSON document from free-form backend text.

Strategies, first hit wins:
    1. fenced code blocks (```json or bare ```) holding an array/object;
    2. balanced-bracket scan from each ``[`` then each ``{``, aware of
       string literals and escapes;
    3. the whole trimmed text, when it starts and ends like JSON.

Every candidate must decode and must not look like an echoed schema dump.
With ``reject_code_tokens`` (database scans) it must also not carry
code-like tokens outside of code-excerpt fields. Nothing here raises:
``None`` means no credible JSON.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator

logger = logging.getLogger(__name__)

MAX_TEXT_BYTES = 100 * 1024
MAX_CANDIDATE_BYTES = 50_000
# Bound on opening brackets tried per bracket kind in the balanced scan.
MAX_SCAN_STARTS = 64

_FENCE_RE = re.compile(r"```([A-Za-z0-9_+-]*)[ \t]*\r?\n?(.*?)```", re.DOTALL)
_CODE_TOKEN_RE = re.compile(
    r"use\s+[A-Z][\w\\]*\\[\w\\]+;"  # PHP use statement
    r"|<\?php"
    r"|\$[A-Za-z_]\w*\s*=(?!=)"  # variable assignment
    r"|\bfunction\s+\w+\s*\("
    r"|\bclass\s+[A-Z]\w*\s*(?:extends\b|implements\b|\{)"
)

SCHEMA_KEYS = frozenset({"columns", "indexes"})
ISSUE_KEYS = frozenset({
    "message", "description", "title", "type", "issue_type", "issuetype",
    "severity", "category", "line", "table", "problems", "issues",
})
EXCERPT_KEYS = frozenset({"code_snippet", "codesnippet", "codeSnippet", "code"})
_CLOSERS = {"[": "]", "{": "}"}


def extract_json(raw_text: str | None, *, reject_code_tokens: bool = False) -> str | None:
    """Return the first credible JSON document found in ``raw_text``."""
    if not raw_text or not raw_text.strip():
        return None

    text = raw_text
    if len(text) > MAX_TEXT_BYTES:
        logger.debug("Truncating analysis text from %d to %d chars", len(text), MAX_TEXT_BYTES)
        text = text[:MAX_TEXT_BYTES]

    # 1. Fenced code blocks
    for lang, body in _iter_fences(text):
        if lang not in ("", "json"):
            continue
        candidate = body.strip()
        if candidate[:1] in _CLOSERS and _is_credible(candidate, reject_code_tokens):
            return candidate

    # Non-JSON fences and schema dumps must not feed the bracket scan.
    scrubbed = _FENCE_RE.sub(_scrub_fence, text)

    # 2. Balanced-bracket scan
    for opener in ("[", "{"):
        for candidate in _balanced_spans(scrubbed, opener):
            if _is_credible(candidate, reject_code_tokens):
                return candidate

    # 3. Whole text
    trimmed = text.strip()
    if trimmed[:1] in _CLOSERS and trimmed.endswith(_CLOSERS[trimmed[0]]):
        if _is_credible(trimmed, reject_code_tokens):
            return trimmed

    return None


def decode(candidate: str) -> Any:
    """Decode an extracted candidate (never raises; None on failure)."""
    try:
        return json.loads(candidate)
    except (ValueError, TypeError):
        return None


def looks_like_schema_dump(decoded: Any) -> bool:
    """True when the first element reads as table metadata, not a finding."""
    first = decoded[0] if isinstance(decoded, list) and decoded else decoded
    if not isinstance(first, dict):
        return False
    keys = set(first)
    if keys & SCHEMA_KEYS:
        return True
    return "name" in keys and not (keys & ISSUE_KEYS)


def contains_code_tokens(decoded: Any) -> bool:
    """True when strings outside code-excerpt fields look like source code."""
    return any(_CODE_TOKEN_RE.search(s) for s in _strings_outside_excerpts(decoded))


# --- Internal helpers ---


def _iter_fences(text: str) -> Iterator[tuple[str, str]]:
    for match in _FENCE_RE.finditer(text):
        yield match.group(1).lower(), match.group(2)


def _scrub_fence(match: re.Match[str]) -> str:
    lang = match.group(1).lower()
    if lang not in ("", "json"):
        return ""
    decoded = decode(match.group(2).strip())
    if decoded is not None and looks_like_schema_dump(decoded):
        return ""
    return match.group(0)


def _is_credible(candidate: str, reject_code_tokens: bool) -> bool:
    if len(candidate.encode("utf-8")) > MAX_CANDIDATE_BYTES:
        logger.debug("Ignoring oversized JSON candidate (%d chars)", len(candidate))
        return False
    decoded = decode(candidate)
    if not isinstance(decoded, (list, dict)):
        return False
    if looks_like_schema_dump(decoded):
        logger.debug("Rejecting JSON candidate that looks like a schema dump")
        return False
    if not _looks_like_findings(decoded):
        return False
    if reject_code_tokens and contains_code_tokens(decoded):
        logger.debug("Rejecting JSON candidate containing code-like tokens")
        return False
    return True


def _looks_like_findings(decoded: list[Any] | dict[str, Any]) -> bool:
    if isinstance(decoded, list):
        if not decoded:
            return True
        first = decoded[0]
        return isinstance(first, dict) and bool(set(first) & ISSUE_KEYS)
    return bool(set(decoded) & ISSUE_KEYS)


def _strings_outside_excerpts(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, list):
        for v in value:
            yield from _strings_outside_excerpts(v)
    elif isinstance(value, dict):
        for k, v in value.items():
            if k in EXCERPT_KEYS:
                continue
            yield str(k)
            yield from _strings_outside_excerpts(v)


def _balanced_spans(text: str, opener: str) -> Iterator[str]:
    """Yield balanced spans starting at successive ``opener`` positions."""
    closer = _CLOSERS[opener]
    start = text.find(opener)
    attempts = 0
    while start != -1 and attempts < MAX_SCAN_STARTS:
        attempts += 1
        end = _match_close(text, start, opener, closer)
        if end is not None:
            yield text[start:end + 1]
        start = text.find(opener, start + 1)


def _match_close(text: str, start: int, opener: str, closer: str) -> int | None:
    depth = 0
    in_string = False
    escaped = False
    limit = min(len(text), start + MAX_CANDIDATE_BYTES * 2)
    for i in range(start, limit):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i
    return None
