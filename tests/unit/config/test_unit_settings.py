# tests/unit/config/test_unit_settings.py — v3
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from codeauditor.config.settings import (
    BatchLimits,
    ConfigurationError,
    Settings,
    load_settings,
)


class TestSettingsDefaults:
    def test_default_backend(self):
        s = Settings(_env_file=None)
        assert s.backend_provider == "anthropic"
        assert s.backend_model

    def test_default_discovery(self):
        s = Settings(_env_file=None)
        assert s.scan_root == "app"
        assert s.max_item_bytes == 50_000
        assert s.scan_extensions_list == [".php"]
        assert s.scan_exclude_segments_list == ["vendor", "cache", "tests"]
        assert s.scan_exclude_suffixes_list == ["Test.php"]

    def test_default_retry(self):
        s = Settings(_env_file=None)
        assert s.retry_max_attempts == 3
        assert s.retry_base_delay_s == 2.0

    def test_default_tracking(self):
        s = Settings(_env_file=None)
        assert s.progress_backend == "json"
        assert s.progress_ttl_s == 7200
        assert s.results_ttl_s == 3600


class TestBatchLimits:
    def test_code_limits(self):
        s = Settings(_env_file=None)
        assert s.batch_limits("code") == BatchLimits(1, 30_000, 10_000)

    @pytest.mark.parametrize("scan_type", ["schema", "data"])
    def test_database_limits(self, scan_type):
        s = Settings(_env_file=None)
        assert s.batch_limits(scan_type) == BatchLimits(5, 50_000, 10_000)


class TestSettingsValidation:
    def test_redis_without_url(self):
        with pytest.raises(ConfigurationError, match="PROGRESS_REDIS_URL"):
            Settings(_env_file=None, progress_backend="redis")

    def test_redis_with_url(self):
        s = Settings(
            _env_file=None, progress_backend="redis", progress_redis_url="redis://localhost:6379/0",
        )
        assert s.progress_backend == "redis"

    def test_provider_without_model(self):
        with pytest.raises(ConfigurationError, match="BACKEND_MODEL"):
            Settings(_env_file=None, backend_model="")

    @pytest.mark.parametrize("field", ["code_batch_max_count", "db_batch_max_bytes", "max_item_bytes"])
    def test_non_positive_limits_rejected(self, field):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: 0})

    def test_negative_retries_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, retry_max_attempts=-1)


class TestListParsing:
    def test_extensions_get_leading_dot(self):
        s = Settings(_env_file=None, scan_extensions="php, .INC")
        assert s.scan_extensions_list == [".php", ".inc"]

    def test_empty_segments_dropped(self):
        s = Settings(_env_file=None, scan_exclude_segments="vendor,, storage ")
        assert s.scan_exclude_segments_list == ["vendor", "storage"]


class TestEnvironment:
    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CODE_BATCH_MAX_COUNT", "4")
        s = Settings(_env_file=None)
        assert s.code_batch_max_count == 4

    def test_load_settings_overrides(self):
        s = load_settings(_env_file=None, data_sample_size=10)
        assert s.data_sample_size == 10
