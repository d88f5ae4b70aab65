"""
Configure logging for the application.

This module provides a consistent logging configuration across the entire
application, ensuring log messages are formatted correctly and directed
to the appropriate outputs (console, file, etc.).
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from wabridge.config.constants import LOGGER_NAME

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


def configure_logging(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Configure a named logger with console and rotating file handlers.

    Level and outputs come from LOG_LEVEL, LOG_DIR, LOG_FILENAME,
    LOG_CONSOLE_OUTPUT and LOG_FILE_OUTPUT. File rotation follows LOG_MAX_SIZE
    (bytes) and LOG_BACKUP_COUNT.

    Returns:
        logging.Logger: The configured logger instance
    """
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    log_file = log_dir / os.getenv("LOG_FILENAME", "wabridge.log")
    console_output = os.getenv("LOG_CONSOLE_OUTPUT", "true").lower() == "true"
    file_output = os.getenv("LOG_FILE_OUTPUT", "true").lower() == "true"

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    # Remove existing handlers if any
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter(os.getenv("LOG_FORMAT", LOG_FORMAT))

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if file_output:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=_env_int("LOG_MAX_SIZE", MAX_LOG_SIZE),
                backupCount=_env_int("LOG_BACKUP_COUNT", BACKUP_COUNT),
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"Could not set up file logging: {e}")

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    # Prevent log propagation to root logger
    logger.propagate = False

    return logger
