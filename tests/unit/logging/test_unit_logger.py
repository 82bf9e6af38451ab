# tests/unit/logging/test_unit_logger.py — v1
"""Tests for logging/logger.py and logging/context.py."""

from __future__ import annotations

import json
import logging

import pytest

from protoscope.logging.context import (
    clear_context,
    get_context,
    set_phase_context,
    set_run_context,
    set_step_context,
)
from protoscope.logging.logger import (
    ROOT_LOGGER_NAME,
    JsonFormatter,
    TextFormatter,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _reset_context():
    clear_context()
    yield
    clear_context()


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("protoscope.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    def test_empty_by_default(self):
        assert get_context().as_dict() == {}

    def test_run_step_phase(self):
        set_run_context("run_001")
        set_step_context("NB4")
        set_phase_context("patterns")
        assert get_context().as_dict() == {"run_id": "run_001", "step": "NB4", "phase": "patterns"}

    def test_clear(self):
        set_run_context("run_001")
        clear_context()
        assert get_context().run_id is None


class TestJsonFormatter:
    def test_basic_fields(self):
        entry = json.loads(JsonFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["message"] == "hello"
        assert "context" not in entry

    def test_context_injected(self):
        set_run_context("run_042")
        set_step_context("NB7")
        entry = json.loads(JsonFormatter().format(_record()))
        assert entry["context"] == {"run_id": "run_042", "step": "NB7"}

    def test_extra_data(self):
        entry = json.loads(JsonFormatter().format(_record(data={"placeholders": 2})))
        assert entry["data"] == {"placeholders": 2}


class TestTextFormatter:
    def test_includes_context(self):
        set_run_context("run_9")
        set_phase_context("voice")
        line = TextFormatter().format(_record("done"))
        assert "<run run_9>" in line
        assert "(voice)" in line
        assert line.endswith("done")


class TestSetupLogging:
    def test_handlers_not_duplicated(self):
        setup_logging(level="DEBUG", log_format="text")
        setup_logging(level="DEBUG", log_format="text")
        root = logging.getLogger(ROOT_LOGGER_NAME)
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        root.handlers.clear()

    def test_file_handler(self, tmp_path):
        setup_logging(log_file=str(tmp_path / "logs" / "run.log"))
        root = logging.getLogger(ROOT_LOGGER_NAME)
        assert len(root.handlers) == 2
        for handler in root.handlers:
            handler.close()
        root.handlers.clear()

    def test_get_logger_namespaced(self):
        assert get_logger("protocol").name == "protoscope.protocol"
