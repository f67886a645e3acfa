# src/config/settings.py — v3
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


@dataclass(frozen=True)
class BatchLimits:
    """Resolved (count, bytes, tokens) budget for one scan type."""

    max_count: int
    max_bytes: int
    max_tokens: int


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === ANALYSIS BACKEND ===
    backend_provider: str = "anthropic"
    backend_model: str = "claude-sonnet-4-20250514"
    backend_temperature: float = 0.2
    backend_max_tokens: int = 4096
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    openai_base_url: str = ""

    # === Discovery ===
    project_root: Path = Path(".")
    scan_root: str = "app"
    scan_extensions: str = ".php"
    scan_exclude_segments: str = "vendor,cache,tests"
    scan_exclude_suffixes: str = "Test.php"
    max_item_bytes: int = 50_000

    # === Batching: code scans ===
    code_batch_max_count: int = 1
    code_batch_max_bytes: int = 30_000
    code_batch_max_tokens: int = 10_000

    # === Batching: database scans ===
    db_batch_max_count: int = 5
    db_batch_max_bytes: int = 50_000
    db_batch_max_tokens: int = 10_000

    # === Retry policy ===
    retry_max_attempts: int = 3
    retry_base_delay_s: float = 2.0
    retry_backoff_factor: float = 1.0
    inter_batch_delay_s: float = 0.5

    # === Database ===
    database_path: Path = Path("database/database.sqlite")
    data_sample_size: int = 100

    # === Tracking ===
    progress_backend: Literal["memory", "json", "redis"] = "json"
    progress_key_prefix: str = "codeauditor:scan"
    progress_ttl_s: int = 7200
    results_ttl_s: int = 3600
    progress_root: Path = Path("~/.codeauditor/progress")
    progress_redis_url: str = ""
    history_root: Path = Path("~/.codeauditor/history")
    issues_path: Path = Path("~/.codeauditor/issues.jsonl")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator(
        "code_batch_max_count",
        "code_batch_max_bytes",
        "code_batch_max_tokens",
        "db_batch_max_count",
        "db_batch_max_bytes",
        "db_batch_max_tokens",
        "max_item_bytes",
        "data_sample_size",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("batch and size limits must be >= 1")
        return v

    @field_validator("retry_max_attempts")
    @classmethod
    def validate_retries(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("retry_max_attempts must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.progress_backend == "redis" and not self.progress_redis_url:
            errors.append("PROGRESS_BACKEND=redis requires PROGRESS_REDIS_URL")

        if self.backend_provider and not self.backend_model:
            errors.append("BACKEND_PROVIDER is set but BACKEND_MODEL is empty")

        if self.results_ttl_s <= 0 or self.progress_ttl_s <= 0:
            errors.append("PROGRESS_TTL_S and RESULTS_TTL_S must be positive")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def scan_extensions_list(self) -> list[str]:
        """Parse comma-separated extensions (leading dot enforced)."""
        exts = [e.strip().lower() for e in self.scan_extensions.split(",") if e.strip()]
        return [e if e.startswith(".") else f".{e}" for e in exts]

    @property
    def scan_exclude_segments_list(self) -> list[str]:
        return [s.strip() for s in self.scan_exclude_segments.split(",") if s.strip()]

    @property
    def scan_exclude_suffixes_list(self) -> list[str]:
        return [s.strip() for s in self.scan_exclude_suffixes.split(",") if s.strip()]

    def batch_limits(self, scan_type: str) -> BatchLimits:
        """Return the batch budget for a scan type (code, schema, data)."""
        if scan_type == "code":
            return BatchLimits(
                self.code_batch_max_count,
                self.code_batch_max_bytes,
                self.code_batch_max_tokens,
            )
        return BatchLimits(
            self.db_batch_max_count,
            self.db_batch_max_bytes,
            self.db_batch_max_tokens,
        )


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-scan config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
