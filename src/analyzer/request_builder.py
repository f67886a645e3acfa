# src/analyzer/request_builder.py — v1
"""Build analysis requests (instructions + structured payload) per scan type.

Code scans ship each file twice: raw, and with ``"<N>| "`` line prefixes so
the backend can quote exact line numbers back.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from codeauditor.analyzer.models import AnalysisRequest
from codeauditor.core.models import Batch

CODE_SCAN_MESSAGE = (
    "Analyze the following PHP source file(s) for security vulnerabilities, "
    "bugs, performance problems, code quality and best-practice issues. "
    "Return a JSON array of issues."
)

CODE_REQUIREMENTS: dict[str, Any] = {
    "output_format": "json",
    "fields": {
        "line": "Line number where the issue is found (must match line number format in code)",
        "file_path": "The file path where the issue was found",
        "type": "Issue type: security_vulnerability, bug, code_quality, performance, best_practice",
        "severity": "Issue severity: critical, high, medium, low",
        "category": "Category: security, quality, performance, best_practices, bug",
        "message": "Detailed description of the issue (supports markdown)",
        "code_snippet": "The actual code at the problematic line(s) exactly as it appears in the file",
    },
    "categories": {
        "security": "Security vulnerabilities, injection risks, authentication issues",
        "quality": "Code quality issues, maintainability, complexity",
        "performance": "Performance bottlenecks, inefficient code",
        "best_practices": "PSR standards, framework conventions, best practices",
        "bug": "Actual bugs, errors, incorrect logic",
    },
    "accuracy_requirements": {
        "line_numbers_must_be_accurate": True,
        "code_snippets_must_match_actual_code": True,
        "only_report_real_actionable_issues": True,
        "verify_code_exists_at_line_number": True,
    },
}

CATEGORY_GUIDELINES = """**CATEGORY SELECTION GUIDELINES (CRITICAL):**
You must correctly categorize each issue:

**performance** - Use for:
- Missing indexes on frequently queried columns (ALWAYS use "performance" for missing indexes, NOT "security")
- Query performance issues, slow queries, bottlenecks
- Optimization opportunities, full table scans
Example: "Missing index on frequently queried user_id" -> category: "performance"

**security** - Use for:
- SQL injection vulnerabilities, authentication/authorization issues
- Exposed sensitive data (passwords, API keys, PII), encryption issues
- Access control problems, data breach risks
Example: "Password stored in plain text" -> category: "security"

**quality** - Use for:
- Data type mismatches, missing constraints, validation issues
- Nullability concerns, naming convention issues
Example: "Column should not allow NULL values" -> category: "quality"

**best_practices** - Use for:
- Missing foreign key relationships, normalization/denormalization issues
- Convention violations, recommended patterns
Example: "Missing foreign key constraint on user_id" -> category: "best_practices"

**bug** - Use for:
- Orphaned records, broken relationships, data integrity issues
- Invalid references
Example: "Orphaned records in orders table" -> category: "bug"

**IMPORTANT:** Missing indexes are ALWAYS "performance" issues, NOT "security" issues."""

DATA_RETURN_FORMAT = """Return format (JSON array):
[
{
  "table": "table_name",
  "issue_type": "data",
  "severity": "low|medium|high|critical",
  "category": "security|quality|performance|best_practices|bug",
  "title": "Brief title",
  "description": "Detailed description with markdown formatting",
  "location": {"column": "column_name", "row_id": "id"},
  "suggestion": "How to fix this issue"
  }
]

Each issue must have: table, issue_type, severity, category, title, description, location (object), suggestion.
- issue_type must be "data"
- severity must be one of: "low", "medium", "high", "critical"
- category must be one of: "security", "quality", "performance", "best_practices", "bug"
Return an empty array [] if no issues are found."""


def number_lines(content: str) -> str:
    """Prefix every line with its 1-based number: ``"<N>| <line>"``."""
    return "\n".join(f"{i}| {line}" for i, line in enumerate(content.split("\n"), start=1))


def build_code_request(batch: Batch, contents: Mapping[str, str]) -> AnalysisRequest:
    """Request for a batch of source files.

    Args:
        batch: Batch of file work items.
        contents: Item id -> file text; items missing here are left out.
    """
    files = [
        {
            "path": item.id,
            "content": contents[item.id],
            "content_with_line_numbers": number_lines(contents[item.id]),
        }
        for item in batch.items
        if item.id in contents
    ]
    return AnalysisRequest(
        message=CODE_SCAN_MESSAGE,
        context_type="codebase_scan",
        payload={"files": files, "requirements": CODE_REQUIREMENTS},
        batch=batch,
    )


def build_schema_request(batch: Batch) -> AnalysisRequest:
    schemas = [item.payload for item in batch.items]
    schemas_json = json.dumps(schemas, indent=4, default=str)
    return AnalysisRequest(
        message=f"Analyze the following database schema(s) for issues:\n\n{schemas_json}",
        context_type="database_scan",
        payload={"schemas": schemas},
        batch=batch,
    )


def build_data_request(batch: Batch) -> AnalysisRequest:
    samples = [item.payload for item in batch.items]
    data_json = json.dumps(samples, indent=4, default=str)
    message = (
        "Analyze the following database data sample(s) for inconsistencies and issues. "
        "Look for:\n"
        "- Null values where they shouldn't be\n"
        "- Data format/validation issues\n"
        "- Duplicate records\n"
        "- Referential integrity issues (orphaned records)\n"
        "- Any other data-related issues\n\n"
        f"Database Data Sample(s):\n{data_json}\n\n"
        "**IMPORTANT: Return ONLY a JSON array of issues. Do NOT include markdown "
        "code blocks, explanatory text, or any other content.**\n\n"
        f"{CATEGORY_GUIDELINES}\n\n{DATA_RETURN_FORMAT}"
    )
    return AnalysisRequest(
        message=message,
        context_type="database_scan",
        payload={"data_samples": samples},
        batch=batch,
    )
