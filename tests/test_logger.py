"""
Tests for logger functionality.
"""

import logging
import sys

import pytest
from pathlib import Path
from jobcapture.logger import StructuredLogger, get_logger, reset_logger


class TestStructuredLogger:
    """Test structured logging functionality."""

    def test_logger_creation(self, tmp_path):
        """Logger should be created with default settings."""
        logger = StructuredLogger(
            name="test",
            level="INFO",
            log_dir=tmp_path,
            enable_console=False,
        )

        assert logger.logger.name == "test"
        assert logger.metrics["captures_attempted"] == 0

    def test_handlers(self, tmp_path):
        """Console goes to stderr at the logger level, file captures everything."""
        logger = StructuredLogger(name="test-handlers", level="WARNING", log_dir=tmp_path)

        console, file_handler = logger.logger.handlers

        assert console.stream is sys.stderr
        assert console.level == logging.WARNING
        assert file_handler.level == logging.DEBUG
        assert file_handler.formatter._fmt.endswith("%(name)s:%(lineno)d | %(message)s")
        file_handler.close()

    def test_log_methods(self, tmp_path):
        """All log level methods should work."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        # Should not raise exceptions
        logger.debug("Debug message")
        logger.info("Info message")
        logger.warning("Warning message")
        logger.error("Error message")
        logger.critical("Critical message")

    def test_log_with_context(self, tmp_path):
        """Context is appended as JSON, including values json cannot encode natively."""
        logger = StructuredLogger(
            name="test-context",
            log_dir=tmp_path,
            enable_console=False,
        )

        logger.info("Captured", url="https://example.com", path=Path("/tmp/x"))

        content = next(tmp_path.glob("*.log")).read_text()
        assert 'Captured | Context: {"url": "https://example.com", "path": "/tmp/x"}' in content

    def test_capture_metrics(self, tmp_path):
        """Capture outcomes should be counted per entry point and reason."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_file=False,
            enable_console=False,
        )

        logger.record_capture("url")
        logger.record_capture("email")
        logger.record_capture("email")
        logger.record_created()
        logger.record_duplicate("url")
        logger.record_duplicate("title")

        metrics = logger.get_metrics()

        assert metrics["captures_attempted"] == 3
        assert metrics["captures_by_entry_point"] == {"url": 1, "email": 2}
        assert metrics["jobs_created"] == 1
        assert metrics["duplicates_by_reason"] == {"url": 1, "title": 1}
        assert metrics["duplicate_rate"] == pytest.approx(0.667, rel=0.01)

    def test_scrape_metrics(self, tmp_path):
        """Scrape failures should count toward errors by type."""
        logger = StructuredLogger(
            name="test",
            enable_file=False,
            enable_console=False,
        )

        for _ in range(4):
            logger.record_scrape_attempt()
        logger.record_scrape_failure("Timeout")

        metrics = logger.get_metrics()

        assert metrics["scrapes_failed"] == 1
        assert metrics["scrape_success_rate"] == 0.75
        assert metrics["errors_by_type"] == {"Timeout": 1}

    def test_rates_without_activity(self):
        logger = StructuredLogger(name="test", enable_file=False, enable_console=False)
        metrics = logger.get_metrics()
        assert metrics["duplicate_rate"] == 0.0
        assert metrics["scrape_success_rate"] == 0.0

    def test_get_metrics_returns_copy(self):
        logger = StructuredLogger(name="test", enable_file=False, enable_console=False)
        logger.get_metrics()["captures_by_entry_point"]["url"] = 99
        assert logger.metrics["captures_by_entry_point"] == {}

    def test_log_file_creation(self, tmp_path):
        """Log file should be created in specified directory."""
        logger = StructuredLogger(
            name="test-file",
            log_dir=tmp_path,
            enable_console=False,
        )

        logger.info("Test message")

        log_files = list(tmp_path.glob("*.log"))
        assert len(log_files) == 1
        assert log_files[0].name.startswith("jobcapture_")
        assert "Test message" in log_files[0].read_text()

    def test_metrics_summary(self, tmp_path):
        logger = StructuredLogger(name="test-summary", log_dir=tmp_path, enable_console=False)
        logger.record_capture("extension")
        logger.record_scrape_attempt()

        logger.log_metrics_summary()

        content = next(tmp_path.glob("*.log")).read_text()
        assert "Capture Session Metrics" in content
        assert "extension: 1" in content


class TestGlobalLogger:
    """Test global logger singleton."""

    def test_get_logger_singleton(self, tmp_path):
        """get_logger should return same instance."""
        reset_logger()

        logger1 = get_logger(log_dir=tmp_path, enable_console=False)
        logger2 = get_logger()

        assert logger1 is logger2

    def test_reset_logger(self, tmp_path):
        """reset_logger should create new instance."""
        reset_logger()

        logger1 = get_logger(log_dir=tmp_path, enable_console=False)
        logger1.record_created()

        reset_logger()

        logger2 = get_logger(log_dir=tmp_path, enable_console=False)

        assert logger2 is not logger1
        assert logger2.metrics["jobs_created"] == 0

    def test_defaults_from_environment(self, monkeypatch):
        monkeypatch.setenv("JOBCAPTURE_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("JOBCAPTURE_LOG_TO_FILE", "0")
        reset_logger()

        logger = get_logger(enable_console=False)

        assert logger.logger.level == 30
        assert logger.logger.handlers == []
