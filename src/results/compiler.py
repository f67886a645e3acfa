# src/results/compiler.py — v1
"""Merge batch outcomes into one de-duplicated result set with a summary.

Split-and-retry can reprocess overlapping content, so the same finding may
arrive more than once. The first occurrence of each key wins.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Iterable

from codeauditor.core.models import BatchOutcome, CompiledResults, Issue, ScanSummary

logger = logging.getLogger(__name__)


def issue_key(issue: Issue) -> str:
    """Stable dedup key over (subject, title-or-type, description, location)."""
    label = issue.title or issue.type
    location = json.dumps(issue.location, sort_keys=True, default=str)
    raw = f"{issue.subject}|{label}|{issue.message}|{location}"
    return hashlib.md5(raw.encode("utf-8")).hexdigest()  # noqa: S324


def compile_results(outcomes: Iterable[BatchOutcome]) -> CompiledResults:
    """De-duplicate issues across batch outcomes and tally the summary.

    Failed outcomes contribute their subjects to the subject total but no
    issues.
    """
    seen: set[str] = set()
    subjects: list[str] = []
    known_subjects: set[str] = set()
    issues: list[Issue] = []
    duplicates = 0

    for outcome in outcomes:
        for subject in outcome.subjects:
            if subject not in known_subjects:
                known_subjects.add(subject)
                subjects.append(subject)
        if outcome.failed:
            logger.debug("Skipping failed outcome for %s: %s", outcome.subjects, outcome.error)
            continue
        for issue in outcome.issues:
            key = issue_key(issue)
            if key in seen:
                duplicates += 1
                continue
            seen.add(key)
            issues.append(issue)
            if issue.subject not in known_subjects:
                known_subjects.add(issue.subject)
                subjects.append(issue.subject)

    summary = ScanSummary(
        total_subjects=len(subjects),
        subjects_with_issues=len({i.subject for i in issues}),
        total_issues=len(issues),
        duplicates_removed=duplicates,
    )
    for issue in issues:
        summary.by_severity[issue.severity] += 1
        summary.by_category[issue.category] += 1

    logger.info(
        "Compiled %d issues over %d subjects (%d duplicates removed)",
        summary.total_issues, summary.total_subjects, duplicates,
    )
    return CompiledResults(issues=issues, summary=summary)
