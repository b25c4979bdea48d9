"""Tests for commit_ledger.logging_config."""

import json
import logging

import pytest

from commit_ledger.config import LoggingSettings
from commit_ledger.logging_config import JsonFormatter, build_formatter, configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(message: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("commit_ledger.test", level, __file__, 1, message, None, None)


@pytest.mark.unit
def test_json_formatter_emits_one_object_per_record():
    line = JsonFormatter().format(_record("Admitted post commit"))
    payload = json.loads(line)

    assert payload["level"] == "INFO"
    assert payload["logger"] == "commit_ledger.test"
    assert payload["message"] == "Admitted post commit"
    assert "timestamp" in payload


@pytest.mark.unit
def test_build_formatter_falls_back_to_detailed():
    assert isinstance(build_formatter("json"), JsonFormatter)
    assert build_formatter("simple").format(_record("hi")) == "INFO: hi"
    assert "[commit_ledger.test]" in build_formatter("unknown").format(_record("hi"))


@pytest.mark.unit
def test_configure_logging_replaces_previous_handler(restore_root_logger):
    root = restore_root_logger

    first = configure_logging(LoggingSettings(level="DEBUG", format="simple"))
    second = configure_logging(LoggingSettings(level="warning", format="json"))

    assert first not in root.handlers
    assert second in root.handlers
    assert root.level == logging.WARNING
    assert isinstance(second.formatter, JsonFormatter)
