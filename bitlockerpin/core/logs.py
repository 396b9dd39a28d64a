# core/logs.py - Log file setup and PIN masking
"""
Logging setup shared by all entry points.

Every tool writes a timestamped, line-oriented log to a rotating file under
Paths.logs_dir(). Modules log through child loggers of
Branding.LOGGER_NAME ("BitLockerPin.<area>").

PIN material MUST NEVER reach a log record. Use mask_pin() when a log line
needs to show that a PIN was entered.
"""

import logging
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from bitlockerpin.core.constants import Branding
from bitlockerpin.core.limits import Limits

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_file: Path, stderr: bool = True, level: int = logging.DEBUG) -> logging.Logger:
    """
    Set up the rotating log file for a tool.

    Handlers installed by a previous call are closed and replaced, so a
    process (or test session) calling this twice does not write every line
    twice.

    Args:
        log_file: Target log file; parent directories are created
        stderr: Also log to stderr. Never stdout: the check and detect
            scripts use stdout as their result channel.
        level: Logger level

    Returns:
        The configured BitLockerPin root logger
    """
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(Branding.LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    handler = RotatingFileHandler(
        str(log_file),
        maxBytes=Limits.MAX_LOG_FILE_SIZE,
        backupCount=Limits.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(handler)

    if stderr:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        logger.addHandler(stderr_handler)

    logger.setLevel(level)
    return logger


def create_exception_hook(logger: logging.Logger):
    """
    Create a global exception hook that logs unhandled exceptions.

    Args:
        logger: Logger instance for writing exceptions

    Returns:
        Exception hook function for sys.excepthook
    """

    def exception_hook(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logger.critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_traceback))
        tb_text = "".join(traceback.format_exception(exc_type, exc_value, exc_traceback))
        print(f"FATAL ERROR:\n{tb_text}", file=sys.stderr)

    return exception_hook


def mask_pin(pin: Optional[str]) -> str:
    """
    Fixed-length stand-in for a PIN in log output.

    The mask length does not depend on the PIN, so the log does not even
    reveal how long the PIN is.
    """
    return "*" * Limits.PIN_MASK_LENGTH
