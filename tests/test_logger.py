"""Tests for the shared logger factory."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from heartping.utils import logger as logger_module
from heartping.utils.logger import configure, setup_logger


@pytest.fixture
def isolated_registry(monkeypatch):
    """Fresh logger registry and no runner-wide overrides."""
    monkeypatch.setattr(logger_module, "_configured_loggers", {})
    monkeypatch.setattr(logger_module, "_level_override", None)
    monkeypatch.setattr(logger_module, "_log_file_override", None)
    yield
    for name in ("TestLoggerA", "TestLoggerB", "TestLoggerFile"):
        log = logging.getLogger(name)
        for handler in log.handlers[:]:
            handler.close()
            log.removeHandler(handler)


class TestSetupLogger:

    def test_same_instance_for_same_name(self, isolated_registry) -> None:
        first = setup_logger("TestLoggerA", "DEBUG")
        second = setup_logger("TestLoggerA", "ERROR")

        assert first is second
        assert first.level == logging.DEBUG
        assert len(first.handlers) == 1
        assert first.propagate is False

    def test_unknown_level(self, isolated_registry) -> None:
        with pytest.raises(ValueError):
            setup_logger("TestLoggerA", "LOUD")

    def test_file_handler(self, isolated_registry, tmp_path) -> None:
        log_file = tmp_path / "logs" / "heartping.log"

        log = setup_logger("TestLoggerFile", "INFO", str(log_file))
        log.info("beat")

        assert any(isinstance(h, RotatingFileHandler) for h in log.handlers)
        assert log_file.exists()


class TestConfigure:

    def test_applies_to_existing_and_new_loggers(self, isolated_registry, tmp_path) -> None:
        existing = setup_logger("TestLoggerA", "INFO")
        log_file = str(tmp_path / "all.log")

        configure("WARNING", log_file)
        created_later = setup_logger("TestLoggerB", "INFO")

        for log in (existing, created_later):
            assert log.level == logging.WARNING
            assert any(isinstance(h, RotatingFileHandler) for h in log.handlers)
