"""
Structured logging system for fieldinit.

Provides centralized logging with console and file outputs, log levels,
and metrics tracking for monitoring backfill passes.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json

from .env import env_flag, load_env


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring backfill passes.
    """

    def __init__(
        self,
        name: str = "fieldinit",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: Optional[bool] = None,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: FIELDINIT_LOG_DIR or logs/)
            enable_file: Write logs to file (default: FIELDINIT_LOG_TO_FILE)
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)

        # Metrics tracking
        self.metrics = {
            "groups_processed": 0,
            "fields_processed": 0,
            "records_updated": 0,
            "errors_by_type": {},
            "strategy_writes": {},
        }

        self.configure(level=level, log_dir=log_dir, enable_file=enable_file, enable_console=enable_console)

    def configure(
        self,
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: Optional[bool] = None,
        enable_console: bool = True,
    ):
        """
        Rebuild the handlers in place, keeping metrics and the instance
        that other modules already hold.
        """
        self.logger.setLevel(getattr(logging, level.upper()))
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        if enable_file is None:
            enable_file = env_flag("FIELDINIT_LOG_TO_FILE")

        # Console handler
        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        # File handler
        if enable_file:
            if log_dir is None:
                log_dir = Path(os.getenv("FIELDINIT_LOG_DIR", "logs"))
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"fieldinit_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        """Internal logging method with context."""
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_group_processed(self):
        """Increment processed field group counter."""
        self.metrics["groups_processed"] += 1

    def record_field_processed(self):
        """Increment processed (eligible) field counter."""
        self.metrics["fields_processed"] += 1

    def record_write(self, strategy: str, count: int = 1):
        """Record default values written by a backfill strategy."""
        self.metrics["records_updated"] += count
        writes = self.metrics["strategy_writes"]
        writes[strategy] = writes.get(strategy, 0) + count

    def record_failure(self, error_type: str):
        """Record a failed backfill pass."""
        if error_type not in self.metrics["errors_by_type"]:
            self.metrics["errors_by_type"][error_type] = 0
        self.metrics["errors_by_type"][error_type] += 1

    def get_metrics(self) -> dict:
        """Return a copy of the current metrics."""
        metrics_copy = self.metrics.copy()
        metrics_copy["errors_by_type"] = dict(self.metrics["errors_by_type"])
        metrics_copy["strategy_writes"] = dict(self.metrics["strategy_writes"])
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Backfill Session Metrics ===")
        self.info(f"Field groups: {metrics['groups_processed']}")
        self.info(f"Eligible fields: {metrics['fields_processed']}")
        self.info(f"Records updated: {metrics['records_updated']}")

        if metrics["strategy_writes"]:
            self.info("Writes by target:")
            for strategy, count in metrics["strategy_writes"].items():
                self.info(f"  {strategy}: {count}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "fieldinit",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        # Log settings may come from .env
        load_env()
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
