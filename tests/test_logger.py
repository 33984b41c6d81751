# pylint: disable=unused-import, protected-access, missing-module-docstring
"""
Tests for the logging formatter, the sample adapter and the Logger class.
"""

import json
import logging
import pytest

from aquascore.core.logger import Logger, sample_logger


@pytest.fixture(autouse=True)
def reset_logger(monkeypatch):
    """
    Reset Logger configuration and environment variables before each test.
    """
    Logger._configured = False
    for name in ("AQUASCORE_LOG_FMT", "AQUASCORE_LOG_LEVEL", "AQUASCORE_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()


def test_text_logging_default(capsys):
    """
    By default, logs should be in text format on stderr.
    """
    Logger.setup()
    logger = Logger.get_logger("test")
    logger.info("hello world")
    captured = capsys.readouterr()
    assert "INFO" in captured.err
    assert "test" in captured.err
    assert "hello world" in captured.err


def test_json_logging_env(capsys, monkeypatch):
    """
    When AQUASCORE_LOG_FMT=json and AQUASCORE_LOG_LEVEL=DEBUG, output must be JSON.
    """
    monkeypatch.setenv("AQUASCORE_LOG_FMT", "json")
    monkeypatch.setenv("AQUASCORE_LOG_LEVEL", "DEBUG")

    Logger.setup()
    logger = Logger.get_logger("testjson")
    logger.debug("debug message")
    captured = capsys.readouterr()
    record = json.loads(captured.err.strip())
    assert record["level"] == "DEBUG"
    assert record["name"] == "testjson"
    assert record["message"] == "debug message"
    assert "timestamp" in record
    assert "sample_id" not in record


def test_level_filters_messages(capsys, monkeypatch):
    monkeypatch.setenv("AQUASCORE_LOG_LEVEL", "WARNING")
    logger = Logger.get_logger("quiet")
    logger.info("hidden")
    logger.warning("shown")
    err = capsys.readouterr().err
    assert "hidden" not in err
    assert "shown" in err


def test_no_duplicate_handlers():
    """
    Calling setup() twice should not add duplicate handlers.
    """
    Logger.setup()
    Logger.setup()
    handlers = [
        h for h in logging.getLogger().handlers if isinstance(h, logging.StreamHandler)
    ]
    assert len(handlers) == 1


def test_log_file_from_env(tmp_path, monkeypatch):
    log_file = tmp_path / "aquascore.log"
    monkeypatch.setenv("AQUASCORE_LOG_FILE", str(log_file))
    Logger.get_logger("filed").warning("written to disk")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "written to disk" in log_file.read_text(encoding="utf-8")


def test_sample_logger_tags_records(capsys):
    Logger.setup(fmt="json")
    log = sample_logger(Logger.get_logger("samples"), "GW-001")
    log.warning("Not imported: %s", "duplicate")
    record = json.loads(capsys.readouterr().err.strip())
    assert record["sample_id"] == "GW-001"
    assert record["message"] == "[GW-001] Not imported: duplicate"


def test_json_includes_exception(capsys):
    Logger.setup(fmt="json")
    logger = Logger.get_logger("errors")
    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception("failed")
    record = json.loads(capsys.readouterr().err.strip())
    assert record["message"] == "failed"
    assert "ValueError: boom" in record["exc_info"]
