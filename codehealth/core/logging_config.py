"""
Logging configuration for code health events.

This module provides structured JSON logging of health checks and file
watcher activity: baseline runs, settled change batches, score transitions
and applied fixes.
"""

import json
import logging
from logging.handlers import TimedRotatingFileHandler
from typing import Any

EVENT_LOGGER_NAME = "codehealth.events"


class HealthEventFormatter(logging.Formatter):
    """Custom formatter for health event logs."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log records with structured data."""
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "event"):
            log_entry["event"] = record.event

        # Score fields
        for field in ["score", "previous_score", "trend", "issue_count"]:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        # Watcher batch fields
        for field in ["files", "introduced", "resolved", "checks_performed"]:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        # Per-file and fix fields
        for field in ["file", "fixes_applied", "dry_run", "duration_ms"]:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if hasattr(record, "error"):
            log_entry["error"] = record.error

        return json.dumps(log_entry)


def configure_health_logging(
    log_file: str | None = None,
    log_level: str = "INFO",
    enable_console: bool = True,
) -> None:
    """
    Configure logging for health events.

    Args:
        log_file: Path to log file for health events (optional)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_console: Whether to also log to console
    """
    logger = logging.getLogger(EVENT_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.propagate = False

    logger.handlers.clear()

    formatter = HealthEventFormatter()

    if log_file:
        # Daily rotation, one week of history
        file_handler = TimedRotatingFileHandler(
            log_file,
            when="D",
            interval=1,
            backupCount=7,
            encoding="utf-8",
            utc=False,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)


def get_event_logger() -> logging.Logger:
    """Get the configured health events logger."""
    return logging.getLogger(EVENT_LOGGER_NAME)
