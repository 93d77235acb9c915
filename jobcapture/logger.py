"""
Structured logging for job capture.

Console and file output with JSON context appended to each message, plus
counters for capture outcomes and scrape health.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StructuredLogger:
    """
    Centralized logger with console and file outputs.
    Tracks capture and scrape metrics for the running process.
    """

    def __init__(
        self,
        name: str = "jobcapture",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()
        self.logger.propagate = False

        self.metrics = {
            "captures_attempted": 0,
            "captures_by_entry_point": {},
            "jobs_created": 0,
            "duplicates_found": 0,
            "duplicates_by_reason": {},
            "scrapes_attempted": 0,
            "scrapes_failed": 0,
            "errors_by_type": {},
        }

        # stdout is reserved for CLI results
        if enable_console:
            self._add_handler(logging.StreamHandler(sys.stderr), getattr(logging, level.upper()), CONSOLE_FORMAT)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"jobcapture_{datetime.now().strftime('%Y%m%d')}.log"
            self._add_handler(logging.FileHandler(log_file, encoding="utf-8"), logging.DEBUG, FILE_FORMAT)

    def _add_handler(self, handler: logging.Handler, level: int, fmt: str):
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=DATE_FORMAT))
        self.logger.addHandler(handler)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking

    def record_capture(self, entry_point: str):
        """Count a capture request for an entry point (url, extension, email, import)."""
        self.metrics["captures_attempted"] += 1
        by_entry = self.metrics["captures_by_entry_point"]
        by_entry[entry_point] = by_entry.get(entry_point, 0) + 1

    def record_created(self):
        self.metrics["jobs_created"] += 1

    def record_duplicate(self, reason: str):
        self.metrics["duplicates_found"] += 1
        by_reason = self.metrics["duplicates_by_reason"]
        by_reason[reason] = by_reason.get(reason, 0) + 1

    def record_scrape_attempt(self):
        self.metrics["scrapes_attempted"] += 1

    def record_scrape_failure(self, error_type: str):
        self.metrics["scrapes_failed"] += 1
        self.record_error(error_type)

    def record_error(self, error_type: str):
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return a copy of the current metrics with derived rates."""
        metrics_copy = json.loads(json.dumps(self.metrics))
        attempted = metrics_copy["captures_attempted"]
        metrics_copy["duplicate_rate"] = (
            round(metrics_copy["duplicates_found"] / attempted, 3) if attempted else 0.0
        )
        scrapes = metrics_copy["scrapes_attempted"]
        metrics_copy["scrape_success_rate"] = (
            round((scrapes - metrics_copy["scrapes_failed"]) / scrapes, 3) if scrapes else 0.0
        )
        return metrics_copy

    def log_metrics_summary(self):
        metrics = self.get_metrics()

        self.info("=== Capture Session Metrics ===")
        self.info(
            f"Captures: {metrics['captures_attempted']} "
            f"(created={metrics['jobs_created']} duplicates={metrics['duplicates_found']})"
        )
        for entry_point, count in metrics["captures_by_entry_point"].items():
            self.info(f"  {entry_point}: {count}")
        if metrics["scrapes_attempted"]:
            rate = metrics["scrape_success_rate"] * 100
            self.info(f"Scrapes: {metrics['scrapes_attempted']} ({rate:.1f}% success)")
        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(name: str = "jobcapture", **kwargs) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Level, log directory and file output default to the environment settings.

    Args:
        name: Logger name
        **kwargs: Overrides passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        from .config import get_settings

        settings = get_settings()
        kwargs.setdefault("level", settings.log_level)
        kwargs.setdefault("log_dir", settings.log_dir)
        kwargs.setdefault("enable_file", settings.log_to_file)
        _global_logger = StructuredLogger(name=name, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
