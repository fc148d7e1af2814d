"""Tests for the logging setup."""

import logging

from pa_saturation.utils.logging_config import LOG_FILE_NAME, SimulationLogger, get_logger


def test_get_logger_is_cached():
    assert get_logger("pa_saturation.test") is get_logger("pa_saturation.test")


def test_setup_logging_writes_file(tmp_path):
    SimulationLogger.setup_logging(log_level="DEBUG", log_dir=str(tmp_path))
    get_logger("pa_saturation.test").info("hello from the test")

    for handler in logging.getLogger("pa_saturation").handlers:
        handler.flush()
    text = (tmp_path / LOG_FILE_NAME).read_text()
    assert "hello from the test" in text
    assert "| INFO" in text


def test_setup_is_idempotent_until_reset(tmp_path):
    SimulationLogger.setup_logging()
    SimulationLogger.setup_logging()
    assert len(logging.getLogger("pa_saturation").handlers) == 1

    SimulationLogger.reset()
    assert logging.getLogger("pa_saturation").handlers == []


def test_setup_quiets_scipy_logger():
    SimulationLogger.setup_logging(log_level="DEBUG")
    assert logging.getLogger("scipy").level == logging.WARNING
    assert logging.getLogger("pa_saturation").level == logging.DEBUG
