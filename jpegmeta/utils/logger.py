"""Logging utilities for jpegmeta."""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional


# Global logger instance
_logger: Optional[logging.Logger] = None

DEFAULT_LOG_FILE = 'jpegmeta.log'


def setup_logger(verbose: bool = False, log_file: Optional[str] = DEFAULT_LOG_FILE) -> logging.Logger:
    """Set up and configure the application logger.

    Args:
        verbose: Enable verbose (DEBUG) logging on the console
        log_file: Path to log file, or None to log to the console only

    Returns:
        Configured logger instance
    """
    global _logger

    # Create logger
    logger = logging.getLogger('jpegmeta')
    logger.setLevel(logging.DEBUG)

    # Release handlers left over from an earlier setup
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # Create formatters
    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    simple_formatter = logging.Formatter(
        '%(levelname)s: %(message)s'
    )

    # File handler - always detailed
    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_path, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(detailed_formatter)
            logger.addHandler(file_handler)

        except OSError as e:
            # If file logging fails, continue without it
            sys.stderr.write(f"Warning: cannot write log file {log_file}: {e}\n")

    # Console handler - only for errors and warnings unless verbose
    console_handler = logging.StreamHandler(sys.stderr)

    if verbose:
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(detailed_formatter)
    else:
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(simple_formatter)

    logger.addHandler(console_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Get the application logger instance.

    Returns:
        Logger instance (creates a console-only one if none exists)
    """
    global _logger

    if _logger is None:
        _logger = setup_logger(log_file=None)

    return _logger


class ProgressLogger:
    """Logger for progress tracking."""

    def __init__(self, total: int, description: str = "Processing"):
        """Initialize progress logger.

        Args:
            total: Total number of items to process
            description: Description of the operation
        """
        self.total = total
        self.current = 0
        self.description = description
        self.logger = get_logger()

        self.logger.info(f"Starting {description}: {total} items")

    def update(self, current: int, total: Optional[int] = None) -> None:
        """Record progress; usable directly as a progress callback."""
        self.current = current
        total = total or self.total

        if total and (current % max(1, total // 10) == 0 or current == total):
            percent = (current / total) * 100
            self.logger.info(f"{self.description}: {current}/{total} ({percent:.1f}%)")

    def complete(self) -> None:
        """Mark progress as complete."""
        self.logger.info(f"{self.description} completed: {self.current}/{self.total} items")


class ErrorCollector:
    """Collect and manage errors during batch operations."""

    def __init__(self):
        """Initialize error collector."""
        self.errors = []
        self.logger = get_logger()

    def add_error(self, item: str, error: Exception) -> None:
        """Add an error to the collection.

        Args:
            item: Item that caused the error
            error: The exception that occurred
        """
        error_info = {
            'item': item,
            'error': str(error),
            'reason': getattr(error, 'reason', str(error)),
            'type': type(error).__name__,
            'exception': error,
        }

        self.errors.append(error_info)
        self.logger.info(f"Error processing {item}: {error}")

    def has_errors(self) -> bool:
        """Check if any errors were collected."""
        return len(self.errors) > 0

    def get_error_count(self) -> int:
        """Get the number of errors collected."""
        return len(self.errors)

    def get_errors(self) -> list:
        """Get all collected errors.

        Returns:
            List of error dictionaries
        """
        return self.errors.copy()

    def group_by_type(self) -> Dict[str, List[dict]]:
        """Group collected errors by exception class name, keeping order."""
        error_types: Dict[str, List[dict]] = {}
        for error in self.errors:
            error_types.setdefault(error['type'], []).append(error)
        return error_types

    def log_summary(self) -> None:
        """Log a summary of all errors to the log file."""
        if not self.errors:
            return

        self.logger.info(f"Total errors encountered: {len(self.errors)}")

        for error_type, errors in self.group_by_type().items():
            self.logger.info(f"  {error_type}: {len(errors)} occurrences")

            # Log first few examples
            for i, error in enumerate(errors[:3]):
                self.logger.info(f"    Example {i+1}: {error['item']} - {error['error']}")

            if len(errors) > 3:
                self.logger.info(f"    ... and {len(errors) - 3} more")

    def clear(self) -> None:
        """Clear all collected errors."""
        self.errors.clear()
