# src/validation/normalizer.py — v1
"""Canonicalize raw backend issues into validated Issue models.

Independent steps: field aliasing, severity mapping, category mapping with
keyword re-derivation, type detection and, for source files, line
reconciliation through a LineResolver.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

from codeauditor.core.errors import IssueValidationError
from codeauditor.core.models import CATEGORIES, Issue
from codeauditor.validation.line_resolver import LineResolver

logger = logging.getLogger(__name__)

EXCERPT_ALIASES = ("code_snippet", "codesnippet", "codeSnippet", "code")
DESCRIPTION_ALIASES = ("message", "description", "title")
TYPE_ALIASES = ("type", "issue_type", "issuetype")

SEVERITY_MAP: dict[str, str] = {
    "critical": "critical",
    "severe": "critical",
    "urgent": "critical",
    "blocker": "critical",
    "high": "high",
    "error": "high",
    "major": "high",
    "important": "high",
    "medium": "medium",
    "warning": "medium",
    "warn": "medium",
    "moderate": "medium",
    "normal": "medium",
    "low": "low",
    "info": "low",
    "minor": "low",
    "notice": "low",
}

CATEGORY_SYNONYMS: dict[str, str] = {
    "code_quality": "quality",
    "best_practice": "best_practices",
    "best-practices": "best_practices",
    "bugs": "bug",
}

# Precedence order matters: the first category with a matching keyword wins.
CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("performance", (
        "missing index", "index on", "indexes on", "frequently queried",
        "query performance", "slow query", "bottleneck", "optimization", "optimize",
        "performance", "query speed", "execution time", "full table scan",
        "sequential scan", "add index", "create index", "index missing", "no index",
        "without index", "unindexed", "indexed column", "n+1",
    )),
    ("security", (
        "sql injection", "injection", "xss", "cross-site scripting", "csrf",
        "cross-site request forgery", "authentication", "authorization", "password",
        "encryption", "sensitive data", "pii", "personal information", "data breach",
        "unauthorized access", "privilege escalation", "vulnerability", "security risk",
        "exposed", "unencrypted", "plain text password", "weak password",
        "password hash", "credential", "api key", "secret",
    )),
    ("bug", (
        "orphaned", "broken", "missing foreign key", "invalid reference", "incorrect",
        "wrong", "invalid", "data corruption", "integrity", "broken relationship",
        "dangling", "null reference", "broken link", "bug",
    )),
    ("best_practices", (
        "foreign key", "relationship", "normalization", "denormalization",
        "convention", "naming convention", "standard", "best practice", "recommended",
        "should have", "good practice", "follow convention", "psr",
    )),
    ("quality", (
        "data type", "constraint", "validation", "nullability", "nullable", "not null",
        "default value", "data quality", "inconsistent", "naming", "column name",
        "table name", "maintainability", "complexity", "readability", "duplicate code",
    )),
)


def flatten_text(value: Any) -> str | None:
    """Flatten nested lists into newline-joined text; scalars become strings."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        parts: list[str] = []
        stack: list[Any] = [value]
        while stack:
            current = stack.pop()
            if isinstance(current, (list, tuple)):
                stack.extend(reversed(current))
            elif current is not None:
                parts.append(str(current))
        return "\n".join(parts)
    if isinstance(value, dict):
        return json.dumps(value, default=str)
    return str(value)


def first_alias(raw: dict[str, Any], aliases: Iterable[str]) -> Any:
    for key in aliases:
        if raw.get(key) not in (None, "", []):
            return raw[key]
    return None


def normalize_severity(value: Any) -> str:
    """Map any input to one of the four canonical severities (never raises)."""
    if not isinstance(value, str):
        return "medium"
    return SEVERITY_MAP.get(value.strip().lower(), "medium")


def detect_severity(text: str) -> str:
    lowered = text.lower()
    if any(w in lowered for w in ("critical", "security", "vulnerability")):
        return "critical"
    if any(w in lowered for w in ("high", "error", "bug")):
        return "high"
    if any(w in lowered for w in ("low", "minor", "suggestion")):
        return "low"
    return "medium"


def detect_category(text: str) -> str | None:
    """Keyword-based category, honoring the fixed precedence order."""
    lowered = text.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(k in lowered for k in keywords):
            return category
    return None


def normalize_category(claimed: Any, text: str) -> str:
    """Resolve the final category from the claimed label and the issue text.

    A detected ``performance`` overrides a claimed ``security``; otherwise a
    claim is replaced only when neither side is ``security``.
    """
    category = claimed.strip().lower() if isinstance(claimed, str) else None
    if category:
        category = CATEGORY_SYNONYMS.get(category, category)

    detected = detect_category(text)
    if category not in CATEGORIES:
        return detected or "quality"
    if detected is None or detected == category:
        return category
    if detected == "performance" and category == "security":
        return detected
    if category != "security" and detected != "security":
        return detected
    return category


def detect_type(text: str) -> str:
    lowered = text.lower()
    if "security" in lowered or "vulnerability" in lowered:
        return "security"
    if "performance" in lowered:
        return "performance"
    if "bug" in lowered or "error" in lowered:
        return "bug"
    if "quality" in lowered or "best practice" in lowered:
        return "quality"
    return "general"


def _coerce_line(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lstrip("-").isdigit():
            return int(stripped)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


class IssueNormalizer:
    """Build Issue models from raw dicts.

    Args:
        resolver: Line resolver for source-file subjects; ``None`` disables
            line validation (database scans).
    """

    def __init__(self, resolver: LineResolver | None = None) -> None:
        self._resolver = resolver

    def normalize(self, raw: dict[str, Any], subject: str) -> Issue | None:
        """Return a validated Issue, or None when the issue must be dropped."""
        if not isinstance(raw, dict):
            return None

        message = flatten_text(first_alias(raw, DESCRIPTION_ALIASES))
        raw_type = first_alias(raw, TYPE_ALIASES)
        if message is None and raw_type is None:
            logger.debug("Dropping issue for %s without description or type", subject)
            return None
        if message is None:
            message = json.dumps(raw, default=str)

        snippet = flatten_text(first_alias(raw, EXCERPT_ALIASES))
        title = flatten_text(raw.get("title"))
        suggestion = flatten_text(raw.get("suggestion")) or ""
        description = flatten_text(raw.get("description")) or ""

        if raw.get("severity") is not None:
            severity = normalize_severity(raw.get("severity"))
        else:
            severity = detect_severity(message)

        category_text = " ".join(
            t for t in (title or "", message, description, suggestion) if t
        )
        category = normalize_category(raw.get("category"), category_text)
        issue_type = str(raw_type).strip() if raw_type is not None else detect_type(message)

        line = _coerce_line(raw.get("line"))
        if self._resolver is not None:
            try:
                line = self._resolver.resolve(subject, line, snippet)
            except IssueValidationError as e:
                logger.warning("Dropping unverifiable issue: %s", e)
                return None

        location = raw.get("location") if isinstance(raw.get("location"), dict) else {}

        return Issue(
            subject=subject,
            line=line,
            severity=severity,  # type: ignore[arg-type]
            category=category,  # type: ignore[arg-type]
            type=issue_type or "general",
            message=message,
            code_snippet=snippet,
            location=location,
            title=title,
            suggestion=suggestion,
        )

    def normalize_all(self, raws: Iterable[dict[str, Any]], default_subject: str) -> list[Issue]:
        issues: list[Issue] = []
        for raw in raws:
            subject = raw.get("subject") or default_subject
            issue = self.normalize(raw, subject)
            if issue is not None:
                issues.append(issue)
        return issues

