"""
Tests for logger functionality.
"""

import pytest
from pathlib import Path
from fieldinit.logger import StructuredLogger, get_logger, reset_logger


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
        assert logger.metrics["records_updated"] == 0

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
        """Logging with context should include extra data."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_file=True,
            enable_console=False,
        )

        logger.info("Message with context", group="group_abc", records=5)

        log_content = next(tmp_path.glob("*.log")).read_text()
        assert '"group": "group_abc"' in log_content
        assert '"records": 5' in log_content

    def test_metrics_tracking(self, tmp_path):
        """Metrics should be tracked correctly."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        logger.record_group_processed()
        logger.record_field_processed()
        logger.record_field_processed()
        logger.record_write("post_type", 3)
        logger.record_write("options_page")
        logger.record_failure("OperationalError")

        metrics = logger.get_metrics()

        assert metrics["groups_processed"] == 1
        assert metrics["fields_processed"] == 2
        assert metrics["records_updated"] == 4
        assert metrics["strategy_writes"] == {"post_type": 3, "options_page": 1}
        assert metrics["errors_by_type"]["OperationalError"] == 1

    def test_get_metrics_returns_copy(self, tmp_path):
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_console=False)
        logger.record_write("post_type")

        metrics = logger.get_metrics()
        metrics["strategy_writes"]["post_type"] = 100

        assert logger.metrics["strategy_writes"]["post_type"] == 1

    def test_log_file_creation(self, tmp_path):
        """Log file should be created in specified directory."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_file=True,
            enable_console=False,
        )

        logger.info("Test message")

        # Check that a log file was created
        log_files = list(tmp_path.glob("*.log"))
        assert len(log_files) == 1
        assert log_files[0].name.startswith("fieldinit_")

        # Check that message was written
        log_content = log_files[0].read_text()
        assert "Test message" in log_content

    def test_file_output_disabled(self, tmp_path):
        StructuredLogger(name="test", log_dir=tmp_path, enable_file=False, enable_console=False)
        assert list(tmp_path.glob("*.log")) == []


class TestGlobalLogger:
    """Test global logger singleton."""

    def test_get_logger_singleton(self, tmp_path):
        """get_logger should return same instance."""
        reset_logger()  # Start fresh

        logger1 = get_logger(log_dir=tmp_path, enable_console=False)
        logger2 = get_logger()

        assert logger1 is logger2

    def test_reset_logger(self, tmp_path):
        """reset_logger should create new instance."""
        reset_logger()

        logger1 = get_logger(log_dir=tmp_path, enable_console=False)
        logger1.record_write("post_type")

        reset_logger()

        logger2 = get_logger(log_dir=tmp_path, enable_console=False)

        # Should be different instance with fresh metrics
        assert logger2.metrics["records_updated"] == 0

    def test_get_logger_reads_env_file(self, env_workdir):
        """Log settings in .env apply to the first shared instance."""
        (env_workdir / ".env").write_text("FIELDINIT_LOG_TO_FILE=0\n")
        reset_logger()

        logger = get_logger(enable_console=False)

        assert logger.logger.handlers == []
        assert not (env_workdir / "logs").exists()


class TestConfigure:
    """Test rebuilding handlers on a live logger."""

    def test_configure_switches_file_output(self, tmp_path):
        logger = StructuredLogger(name="test", enable_file=False, enable_console=False)
        logger.record_write("post_type", 2)

        logger.configure(log_dir=tmp_path / "later", enable_file=True, enable_console=False)
        logger.info("After configure")

        log_files = list((tmp_path / "later").glob("fieldinit_*.log"))
        assert len(log_files) == 1
        assert "After configure" in log_files[0].read_text()
        assert logger.metrics["records_updated"] == 2

        logger.configure(enable_file=False, enable_console=False)
        assert logger.logger.handlers == []

    def test_configure_level(self):
        logger = StructuredLogger(name="test", enable_file=False)
        logger.configure(level="WARNING", enable_file=False)
        assert logger.logger.level == 30
        assert all(h.level == 30 for h in logger.logger.handlers)
