"""
Centralized logging configuration for the maintenance tools.

This module provides a consistent logging setup that can be used across all
maintenance scripts. It handles both file and console output with proper
formatting and rotation.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from config.settings import Config


# Minimal fallback values only if config unavailable
class _FallbackConfig:
    LOG_LEVEL = "INFO"
    LOG_MAX_BYTES = 5 * 1024 * 1024
    LOG_BACKUP_COUNT = 3
    CLEAR_LOG_FILE = "logs/clear_database.log"
    MIGRATION_LOG_FILE = "logs/run_migration.log"
    BACKFILL_LOG_FILE = "logs/backfill_column.log"
    CHECK_LOG_FILE = "logs/check_database.log"


# Type annotation tells mypy this can be either Config or _FallbackConfig
config: Config | _FallbackConfig = _FallbackConfig()

# An invalid environment must not prevent logging from being configured;
# the CLI reports the configuration error itself once logging is up.
try:
    from config.settings import config as imported_config

    config = imported_config
except ValueError:
    pass  # Keep using fallback


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    logger_name: str | None = None,
    max_bytes: int | None = None,
    backup_count: int | None = None,
) -> logging.Logger:
    """
    Configure a maintenance tool logger writing to stdout and a rotating log file.

    Existing handlers on the logger are replaced, so calling this again from the
    same process does not duplicate output. If the log
    directory cannot be created the logger falls back to console output only.

    Args:
        log_level (str, optional): Logging level (e.g., 'INFO', 'DEBUG', 'WARNING').
                                 If None, uses config.LOG_LEVEL
        log_file (str, optional): Path to log file. If None, uses logs/<logger_name>.log
        logger_name (str, optional): Name for the logger. If None, uses root logger
        max_bytes (int, optional): Maximum bytes before log rotation. If None, uses config.LOG_MAX_BYTES
        backup_count (int, optional): Number of backup files to keep. If None, uses config.LOG_BACKUP_COUNT

    Returns:
        logging.Logger: Configured logger instance
    """
    # Set defaults from config
    if log_level is None:
        log_level = config.LOG_LEVEL
    if max_bytes is None:
        max_bytes = config.LOG_MAX_BYTES
    if backup_count is None:
        backup_count = config.LOG_BACKUP_COUNT

    if log_file is None:
        log_file = f"logs/{logger_name or 'default'}.log"

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Get logger (root logger if no name specified)
    if logger_name:
        logger = logging.getLogger(logger_name)
    else:
        logger = logging.getLogger()

    logger.setLevel(getattr(logging, log_level.upper()))

    # Clear existing handlers to prevent duplicates
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler with rotation
    try:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        logger.debug(f"Logging configured - Level: {log_level}, File: {log_file}")
    except OSError as e:
        logger.warning(f"Failed to setup file logging to {log_file}: {e}")
        logger.info("Continuing with console logging only")

    return logger


def setup_clear_database_logging(log_level: str | None = None) -> logging.Logger:
    """
    Convenience function to set up logging for clear_database.py

    Args:
        log_level (str, optional): Logging level. If None, uses config default

    Returns:
        logging.Logger: Configured logger for the clear-database tool
    """
    return setup_logging(
        log_level=log_level, log_file=config.CLEAR_LOG_FILE, logger_name="clear_database"
    )


def setup_migration_logging(log_level: str | None = None) -> logging.Logger:
    """Set up logging for run_migration.py."""
    return setup_logging(
        log_level=log_level,
        log_file=config.MIGRATION_LOG_FILE,
        logger_name="run_migration",
    )


def setup_backfill_logging(log_level: str | None = None) -> logging.Logger:
    """Set up logging for backfill_column.py."""
    return setup_logging(
        log_level=log_level,
        log_file=config.BACKFILL_LOG_FILE,
        logger_name="backfill_column",
    )


def setup_check_database_logging(log_level: str | None = None) -> logging.Logger:
    """Set up logging for check_database.py."""
    return setup_logging(
        log_level=log_level, log_file=config.CHECK_LOG_FILE, logger_name="check_database"
    )
