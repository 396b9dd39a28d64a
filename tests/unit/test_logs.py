#!/usr/bin/env python3
"""
Tests for core/logs.py: log file setup and PIN masking.
"""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from bitlockerpin.core.limits import Limits
from bitlockerpin.core.logs import create_exception_hook, mask_pin, setup_logging


class TestMaskPin:
    """The mask never depends on the PIN."""

    @pytest.mark.parametrize("pin", ["1234", "13579246", "Ab3!5678901234567890", "", None])
    def test_fixed_length(self, pin):
        assert mask_pin(pin) == "*" * Limits.PIN_MASK_LENGTH

    def test_does_not_contain_pin(self):
        assert "1357" not in mask_pin("13579246")


class TestSetupLogging:
    """setup_logging() handlers and format."""

    def test_writes_timestamped_lines(self, tmp_path):
        log_file = tmp_path / "logs" / "setup.log"
        logger = setup_logging(log_file, stderr=False)

        logging.getLogger("BitLockerPin.setup").info("hello")
        for handler in logger.handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip()
        assert line.endswith(" - INFO - BitLockerPin.setup - hello")
        assert line[:4].isdigit()

    def test_rotating_handler(self, tmp_path):
        logger = setup_logging(tmp_path / "x.log", stderr=False)
        handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(handlers) == 1
        assert handlers[0].maxBytes == Limits.MAX_LOG_FILE_SIZE
        assert handlers[0].backupCount == Limits.LOG_BACKUP_COUNT

    def test_second_call_replaces_handlers(self, tmp_path):
        setup_logging(tmp_path / "a.log")
        logger = setup_logging(tmp_path / "b.log")
        assert len(logger.handlers) == 2

    def test_stderr_handler_optional(self, tmp_path):
        logger = setup_logging(tmp_path / "a.log", stderr=False)
        assert len(logger.handlers) == 1


class TestExceptionHook:
    """Unhandled exceptions are logged."""

    def test_logs_critical(self, tmp_path, capsys):
        log_file = tmp_path / "hook.log"
        logger = setup_logging(log_file, stderr=False)
        hook = create_exception_hook(logger)

        try:
            raise ValueError("kaputt")
        except ValueError as e:
            hook(type(e), e, e.__traceback__)

        for handler in logger.handlers:
            handler.flush()
        content = log_file.read_text(encoding="utf-8")
        assert "CRITICAL" in content
        assert "kaputt" in content
        assert "FATAL ERROR" in capsys.readouterr().err


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
