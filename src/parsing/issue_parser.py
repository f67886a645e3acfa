# src/parsing/issue_parser.py — v2
"""Turn backend analysis text into raw issue dicts.

Structured JSON is preferred. When none can be found the text is either
discarded (error markers, markdown preambles, echoed code) by raising
``ParseError``, or mined with a prose fallback: line-oriented for code
scans, a single short "Analysis Result" for database scans.

Each returned dict carries a ``subject`` key naming the file or table it
belongs to; field canonicalization happens later in the normalizer.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Sequence

from codeauditor.core.errors import ParseError
from codeauditor.parsing.json_extractor import decode, extract_json

logger = logging.getLogger(__name__)

ERROR_PREFIXES = ("ai analysis failed:", "ai analysis error:", "failed to analyze:")
_ISSUE_MARKERS = ("message", "description", "type", "title")
_SUBJECT_KEYS = ("file_path", "file", "path", "table")

_MARKDOWN_PREAMBLE_RE = re.compile(
    r"^(Based on|Here are|The following|Analysis Result|Missing Indexes|Potential"
    r"|To address|Here is|The provided)",
    re.IGNORECASE,
)
_MARKDOWN_PHRASES = (
    "based on the provided database schema",
    "the provided database schema(s)",
    "here is the analysis",
    "here is an updated version",
    "the following issues have been identified",
    "missing indexes:",
    "potential data integrity issues:",
    "the analysis identified",
    "do not contain any critical issues",
    "however, there are some suggestions",
    "consider adding",
)
_CODE_ECHO_RE = re.compile(
    r"```(?:php|javascript|js|json|sql|code)?\s*[\s\S]*?```"
    r"|<\?(?:php)?[\s\S]*?\?>"
    r"|use\s+[A-Z][\w\\]+;"
    r"|\$[a-zA-Z_][a-zA-Z0-9_]*\s*="
    r"|function\s+\w+\s*\("
    r"|foreach\s*\("
    r"|DB::(?:table|select|insert|update|delete)"
)
_STARTS_WITH_CODE_RE = re.compile(
    r"^(use\s+|<\?php|function\s+|class\s+|namespace\s+|return\s+|if\s*\(|foreach\s*\(|DB::)",
    re.IGNORECASE,
)
_LONG_MARKDOWN_RE = re.compile(r"Add (?:a|an) (?:unique index|foreign key|index)|Consider adding", re.IGNORECASE)
_LINE_REF_RE = re.compile(r"line\s+(\d+)", re.IGNORECASE)
_PROSE_MARKERS = ("bug", "error", "security", "issue", "problem")


def parse_issues(
    analysis: str,
    subjects: Sequence[str],
    scan_type: str = "code",
) -> list[dict[str, Any]]:
    """Parse one batch's analysis text into raw issues.

    Args:
        analysis: Backend response text.
        subjects: Ids of the batch items, in batch order. Issues that do not
            name one of them are attributed to the first.
        scan_type: "code", "schema" or "data".

    Raises:
        ParseError: When the text is discarded without yielding issues.
    """
    if not subjects:
        return []
    text = analysis or ""
    if not text.strip():
        raise ParseError("Empty analysis text")

    candidate = extract_json(text, reject_code_tokens=scan_type != "code")
    if candidate is not None:
        return _from_structured(decode(candidate), subjects, scan_type)

    if is_error_marker(text):
        raise ParseError(f"Analysis is an error message: {text[:100]!r}")

    if scan_type == "code":
        return _code_prose_fallback(text, subjects[0])
    return _database_prose_fallback(text, subjects[0], scan_type)


def is_error_marker(text: str) -> bool:
    lowered = text.strip().lower()
    return lowered.startswith(ERROR_PREFIXES) or "unknown error" in lowered


def looks_like_issue(item: Any) -> bool:
    return isinstance(item, dict) and any(k in item for k in _ISSUE_MARKERS)


# --- Structured shapes ---


def _from_structured(
    decoded: Any, subjects: Sequence[str], scan_type: str
) -> list[dict[str, Any]]:
    if isinstance(decoded, dict):
        wrapped = decoded.get("issues")
        if isinstance(wrapped, list):
            decoded = wrapped
        elif looks_like_issue(decoded):
            decoded = [decoded]
        else:
            logger.warning("JSON object does not look like an issue (keys=%s)", sorted(decoded))
            return []

    if not isinstance(decoded, list):
        return []

    if decoded and _is_grouped(decoded[0]):
        decoded = _flatten_groups(decoded)

    issues: list[dict[str, Any]] = []
    for item in decoded:
        if not looks_like_issue(item):
            continue
        raw = dict(item)
        raw["subject"] = _attribute(raw, subjects, scan_type)
        issues.append(raw)
    return issues


def _is_grouped(first: Any) -> bool:
    return isinstance(first, dict) and "name" in first and isinstance(first.get("problems"), list)


def _flatten_groups(groups: list[Any]) -> list[dict[str, Any]]:
    """``[{"name": t, "problems": [...]}]`` -> flat issues tagged with their table."""
    flat: list[dict[str, Any]] = []
    for group in groups:
        if not isinstance(group, dict):
            continue
        for problem in group.get("problems") or []:
            if not isinstance(problem, dict):
                continue
            problem = dict(problem)
            if "name" in group:
                problem["table"] = group["name"]
            if "issuetype" in problem:
                problem["issue_type"] = problem.pop("issuetype")
            flat.append(problem)
    return flat


def _attribute(raw: dict[str, Any], subjects: Sequence[str], scan_type: str) -> str:
    for key in _SUBJECT_KEYS:
        value = raw.get(key)
        if not isinstance(value, str) or not value:
            continue
        normalized = value.replace("\\", "/")
        for subject in subjects:
            if normalized == subject or normalized.endswith("/" + subject) or subject.endswith("/" + normalized):
                return subject
        if scan_type != "code" and key == "table":
            return value
    return subjects[0]


# --- Prose fallbacks ---


def _code_prose_fallback(text: str, subject: str) -> list[dict[str, Any]]:
    trimmed = text.strip()
    if trimmed.startswith(("[", "{")):
        raise ParseError("Analysis looks like JSON but could not be decoded")

    issues: list[dict[str, Any]] = []
    current: dict[str, Any] | None = None
    for line in (raw_line.strip() for raw_line in text.split("\n")):
        match = _LINE_REF_RE.search(line)
        if match:
            if current:
                issues.append(current)
            current = {"subject": subject, "line": int(match.group(1)), "message": line}
        elif current:
            current["message"] += "\n" + line
        elif line and any(m in line.lower() for m in _PROSE_MARKERS):
            current = {"subject": subject, "line": None, "message": line}
    if current:
        issues.append(current)

    for issue in issues:
        issue["message"] = issue["message"].rstrip()

    if not issues:
        issues.append({
            "subject": subject,
            "line": None,
            "message": trimmed,
            "severity": "medium",
            "type": "analysis",
        })
    logger.info("Parsed %d issues from prose analysis of %s", len(issues), subject)
    return issues


def _database_prose_fallback(text: str, subject: str, scan_type: str) -> list[dict[str, Any]]:
    trimmed = text.strip()
    lowered = text.lower()
    if _MARKDOWN_PREAMBLE_RE.match(trimmed) or any(p in lowered for p in _MARKDOWN_PHRASES):
        raise ParseError("Analysis is markdown prose without JSON")
    if _CODE_ECHO_RE.search(text) or _STARTS_WITH_CODE_RE.match(trimmed):
        raise ParseError("Analysis echoes code instead of findings")
    if len(text) > 500 and (text.count("\n") > 10 or _LONG_MARKDOWN_RE.search(text)):
        raise ParseError("Analysis is long markdown without JSON")
    return [{
        "subject": subject,
        "table": subject,
        "issue_type": scan_type,
        "severity": "medium",
        "title": "Analysis Result",
        "description": trimmed,
        "location": {},
        "suggestion": "",
    }]
