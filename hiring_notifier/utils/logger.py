"""Hiring Notifier — Logging Setup.

Provides a centralized logging configuration with colored console output
and rotating file handler. All modules should use get_logger() to obtain
a named logger instance.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# ── Constants ─────────────────────────────────────────────
LOG_DIR = Path(__file__).resolve().parent.parent.parent / "logs"
LOG_FILE = LOG_DIR / "hiring_notifier.log"
MAX_BYTES = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

# ── ANSI Color Codes ─────────────────────────────────────
COLORS = {
    "DEBUG": "\033[35m",     # Purple
    "INFO": "\033[36m",      # Cyan
    "WARNING": "\033[33m",   # Yellow
    "ERROR": "\033[31m",     # Red
    "CRITICAL": "\033[41m",  # Red background
}
RESET = "\033[0m"

# Track whether logging has been initialized
_initialized = False
_console_handler: Optional[logging.Handler] = None


class ColoredFormatter(logging.Formatter):
    """Custom formatter that adds ANSI colors to the console level name."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with a colored, padded level name.

        Works on a copy of the record so the file handler, which sees
        the same record, never gets the escape codes.

        Args:
            record: The log record to format.

        Returns:
            Formatted log string with ANSI color codes.
        """
        record = logging.makeLogRecord(record.__dict__)
        color = COLORS.get(record.levelname, "")
        record.levelname = f"{color}{record.levelname:<8}{RESET}"
        return super().format(record)


def _setup_logging() -> None:
    """Initialize the global logging configuration.

    Sets up two handlers on the root logger:
    - Console handler: INFO level with colored level names.
    - Rotating file handler: DEBUG level, 10MB max, 5 backups.

    This function is idempotent: calling it multiple times has no effect
    after the first initialization.
    """
    global _initialized, _console_handler
    if _initialized:
        return

    LOG_DIR.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # ── Console Handler (INFO) ───────────────────────────
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(ColoredFormatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root_logger.addHandler(console_handler)
    _console_handler = console_handler

    # ── Rotating File Handler (DEBUG) ────────────────────
    file_handler = RotatingFileHandler(
        filename=str(LOG_FILE),
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s [%(levelname)-8s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root_logger.addHandler(file_handler)

    # httpx logs every request at INFO, several per second here
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    _initialized = True


def set_log_level(level: str) -> None:
    """Apply the configured level to the console handler.

    Args:
        level: Level name such as "DEBUG" or "INFO".

    Raises:
        ValueError: If the level name is unknown.
    """
    _setup_logging()
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")
    if _console_handler is not None:
        _console_handler.setLevel(numeric)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger instance with the global configuration applied.

    Ensures logging is initialized before returning the logger.
    All application modules should use this function instead of
    calling logging.getLogger() directly.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Returns:
        A configured logging.Logger instance.
    """
    _setup_logging()
    return logging.getLogger(name)
