# src/validation/schema_validator.py — v1
"""Drop database findings that the real schema contradicts.

Two known false-positive families:
    - "missing index" on a column that is indexed, part of an index or a
      foreign key;
    - complaints that a JSON column type itself is wrong.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable

from codeauditor.introspection.base_introspector import BaseIntrospector

logger = logging.getLogger(__name__)

_MISSING_INDEX_TITLE = ("missing index", "no index")
_MISSING_INDEX_DESCRIPTION = (
    "missing index", "no index", "does not have an index", "lacks an index",
)
_MISSING_INDEX_SUGGESTION = ("create index", "add index")
_JSON_TOPIC_DESCRIPTION = ("json column", "json type", "json data type")
_JSON_TYPE_COMPLAINTS = (
    "should not be json", "json column type", "use a dedicated json", "separate table for json",
)
_WORD_RE = re.compile(r"\b[A-Za-z_][A-Za-z0-9_]*\b")


def _text(issue: dict[str, Any], key: str) -> str:
    value = issue.get(key)
    return value.lower() if isinstance(value, str) else ""


class SchemaValidator:
    """False-positive filter backed by a schema introspector (cached per table)."""

    def __init__(self, introspector: BaseIntrospector) -> None:
        self._introspector = introspector
        self._schema_cache: dict[str, dict[str, Any]] = {}

    def schema_for(self, table: str) -> dict[str, Any]:
        if table not in self._schema_cache:
            try:
                self._schema_cache[table] = self._introspector.get_schema(table) or {}
            except Exception as e:
                logger.warning("Cannot load schema for %s, not filtering: %s", table, e)
                self._schema_cache[table] = {}
        return self._schema_cache[table]

    def is_false_positive_missing_index(self, issue: dict[str, Any], table: str) -> bool:
        title = _text(issue, "title")
        description = _text(issue, "description") or _text(issue, "message")
        suggestion = _text(issue, "suggestion")
        about_index = (
            any(p in title for p in _MISSING_INDEX_TITLE)
            or any(p in description for p in _MISSING_INDEX_DESCRIPTION)
            or any(p in suggestion for p in _MISSING_INDEX_SUGGESTION)
        )
        if not about_index:
            return False

        schema = self.schema_for(table)
        if not schema:
            return False
        column = self._column_of(issue, schema, f"{title} {description}")
        if not column:
            return False

        if column in (schema.get("indexed_columns") or []):
            return True
        if any(column in (idx.get("columns") or []) for idx in schema.get("indexes") or []):
            return True
        if any(fk.get("column") == column for fk in schema.get("foreign_keys") or []):
            return True
        col_meta = (schema.get("columns") or {}).get(column) or {}
        return col_meta.get("has_index") is True

    @staticmethod
    def is_false_positive_json_column(issue: dict[str, Any]) -> bool:
        title = _text(issue, "title")
        description = _text(issue, "description") or _text(issue, "message")
        if "json" not in title and not any(p in description for p in _JSON_TOPIC_DESCRIPTION):
            return False
        return any(p in description for p in _JSON_TYPE_COMPLAINTS)

    def filter_false_positives(
        self, issues: Iterable[dict[str, Any]], default_table: str
    ) -> list[dict[str, Any]]:
        """Return the issues the schema does not contradict."""
        kept: list[dict[str, Any]] = []
        dropped = 0
        for issue in issues:
            table = next(
                (issue[k] for k in ("table", "subject") if isinstance(issue.get(k), str) and issue[k]),
                default_table,
            )
            if self.is_false_positive_missing_index(issue, table) or self.is_false_positive_json_column(issue):
                dropped += 1
                continue
            kept.append(issue)
        if dropped:
            logger.info("Filtered %d false-positive schema issues", dropped)
        return kept

    @staticmethod
    def _column_of(issue: dict[str, Any], schema: dict[str, Any], text: str) -> str | None:
        location = issue.get("location")
        if isinstance(location, dict) and isinstance(location.get("column"), str):
            return location["column"]
        columns = schema.get("columns") or {}
        words = _WORD_RE.findall(text)
        for word in words:
            if word.endswith("_id") and word in columns:
                return word
        for word in words:
            if word in columns:
                return word
        return None
