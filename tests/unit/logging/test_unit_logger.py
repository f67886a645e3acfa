# tests/unit/logging/test_unit_logger.py — v1
"""Tests for logging/logger.py — formatters and setup."""

from __future__ import annotations

import io
import json
import logging
import sys

import pytest

from codeauditor.logging.context import batch_context, clear_context, set_scan_context
from codeauditor.logging.logger import JsonFormatter, TextFormatter, get_logger, setup_logging


@pytest.fixture(autouse=True)
def _reset():
    clear_context()
    yield
    clear_context()
    root = logging.getLogger("codeauditor")
    for handler in list(root.handlers):
        handler.close()
    root.handlers.clear()


def _record(msg: str = "hello %s", args=("world",), level=logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("codeauditor.test", level, __file__, 1, msg, args, None)


class TestJsonFormatter:
    def test_basic_fields(self):
        entry = json.loads(JsonFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "codeauditor.test"
        assert entry["message"] == "hello world"
        assert "context" not in entry

    def test_includes_context(self):
        set_scan_context("code_1", "code")
        with batch_context("1/3"):
            entry = json.loads(JsonFormatter().format(_record()))
        assert entry["context"] == {"scan_id": "code_1", "scan_type": "code", "batch": "1/3"}

    def test_extra_data(self):
        record = _record()
        record.data = {"calls": 2}
        assert json.loads(JsonFormatter().format(record))["data"] == {"calls": 2}

    def test_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord(
                "codeauditor.test", logging.ERROR, __file__, 1, "oops", (), sys.exc_info()
            )
        entry = json.loads(JsonFormatter().format(record))
        assert "ValueError: bad" in entry["exception"]


class TestTextFormatter:
    def test_includes_scan_and_batch(self):
        set_scan_context("code_1", "code")
        with batch_context("2/4"):
            line = TextFormatter().format(_record())
        assert "[INFO    ]" in line
        assert "[code_1]" in line
        assert "(batch 2/4)" in line
        assert line.endswith("- hello world")


class TestSetupLogging:
    def test_text_to_stream(self):
        stream = io.StringIO()
        setup_logging(level="DEBUG", log_format="text", stream=stream)
        get_logger("pipeline").debug("visible")
        assert "visible" in stream.getvalue()

    def test_level_filters(self):
        stream = io.StringIO()
        setup_logging(level="WARNING", stream=stream)
        get_logger("pipeline").info("hidden")
        assert stream.getvalue() == ""

    def test_reinit_does_not_duplicate(self):
        stream = io.StringIO()
        setup_logging(stream=stream)
        root = setup_logging(stream=stream)
        assert len(root.handlers) == 1

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "scan.log"
        setup_logging(log_format="json", log_file=log_file, stream=io.StringIO())
        get_logger("pipeline").warning("to file")
        for handler in logging.getLogger("codeauditor").handlers:
            handler.flush()
        assert json.loads(log_file.read_text().strip())["message"] == "to file"
