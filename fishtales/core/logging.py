"""
Logging System for the FishTales crawler

Provides logging with file rotation, console output, and a crawl summary
report used at the end of a job.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Dict, Any, List


ROOT_LOGGER_NAME = 'fishtales'


class LoggingManager:
    """
    Centralized logging manager with file rotation
    """

    def __init__(self):
        self.logger: Optional[logging.Logger] = None
        self.file_handler: Optional[logging.handlers.RotatingFileHandler] = None
        self.console_handler: Optional[logging.StreamHandler] = None
        self._setup_complete = False

    def setup_logging(self, level: str = "INFO", log_file: Optional[str] = "./logs/fishtales.log",
                      max_size: str = "10MB", backup_count: int = 5) -> None:
        """
        Set up logging system with file rotation and console output

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Path to log file, or None to log to the console only
            max_size: Maximum size before rotation (e.g., "10MB")
            backup_count: Number of backup files to keep
        """
        self.logger = logging.getLogger(ROOT_LOGGER_NAME)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

        self.close()
        self.logger.handlers.clear()

        detailed_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            self.file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=self._parse_size(max_size), backupCount=backup_count, encoding='utf-8'
            )
            self.file_handler.setLevel(logging.DEBUG)
            self.file_handler.setFormatter(detailed_formatter)
            self.logger.addHandler(self.file_handler)

        self.console_handler = logging.StreamHandler(sys.stdout)
        self.console_handler.setLevel(getattr(logging, level.upper()))
        self.console_handler.setFormatter(console_formatter)
        self.logger.addHandler(self.console_handler)

        self._setup_complete = True
        self.logger.info("Logging system initialized")

    def _parse_size(self, size_str: str) -> int:
        """Parse size string like '10MB' to bytes"""
        size_str = size_str.upper().strip()

        if size_str.endswith('KB'):
            return int(size_str[:-2]) * 1024
        elif size_str.endswith('MB'):
            return int(size_str[:-2]) * 1024 * 1024
        elif size_str.endswith('GB'):
            return int(size_str[:-2]) * 1024 * 1024 * 1024
        else:
            return int(size_str)

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        """
        Get the package logger or one of its children.

        Works before setup_logging() has run; records then go through the
        standard logging defaults.
        """
        if name:
            return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
        return logging.getLogger(ROOT_LOGGER_NAME)

    def is_setup(self) -> bool:
        return self._setup_complete

    def generate_summary_report(self, stats: Dict[str, Any]) -> str:
        """Generate and log a crawl summary report"""
        report_lines = [
            "=" * 60,
            "CRAWL SESSION SUMMARY",
            "=" * 60,
            f"Sites: {stats.get('sites', 0)}",
            f"Reports Found: {stats.get('reports_found', 0)}",
            f"Reports Kept: {stats.get('reports_kept', 0)}",
            f"Chunks Summarized: {stats.get('chunks', 0)}",
        ]

        errors: List[str] = stats.get('errors', [])
        if errors:
            report_lines.extend([
                "",
                "FAILURES:",
            ])
            for error in errors[:10]:
                report_lines.append(f"  - {error}")

            if len(errors) > 10:
                report_lines.append(f"  ... and {len(errors) - 10} more failures")

        report_lines.append("=" * 60)

        report = "\n".join(report_lines)
        self.get_logger().info(f"Session Summary:\n{report}")

        return report

    def close(self) -> None:
        """Close logging handlers"""
        if self.file_handler:
            self.file_handler.close()
            self.file_handler = None
        if self.console_handler:
            self.console_handler.close()
            self.console_handler = None


# Global logging manager instance
logging_manager = LoggingManager()


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get the package logger, or a named child of it"""
    return logging_manager.get_logger(name)


def setup_logging(level: str = "INFO", log_file: Optional[str] = "./logs/fishtales.log",
                  max_size: str = "10MB", backup_count: int = 5) -> None:
    """Set up global logging system"""
    logging_manager.setup_logging(level, log_file, max_size, backup_count)
