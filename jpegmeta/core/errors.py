"""Exception hierarchy and error categorization for metadata extraction."""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union


class ErrorSeverity(Enum):
    """Severity levels for extraction errors."""
    LOW = "low"          # Partial record, decoding continued
    MEDIUM = "medium"    # Transient I/O problem
    HIGH = "high"        # File could not be processed
    CRITICAL = "critical"


class ExtractionError(Exception):
    """Base exception for metadata extraction errors.

    The path is optional because the segment scanner works on streams and
    does not know which file it is reading; the extractor fills it in.
    """

    category = 'unknown'
    severity = ErrorSeverity.MEDIUM

    def __init__(self, reason: str, file_path: Optional[Union[str, Path]] = None):
        super().__init__(reason)
        self.reason = reason
        self.file_path = file_path

    def __str__(self) -> str:
        if self.file_path is not None:
            return f"{self.reason}: {self.file_path}"
        return self.reason


class FileAccessError(ExtractionError):
    """Exception raised when file cannot be accessed."""
    category = 'file_access'
    severity = ErrorSeverity.HIGH


class UnsupportedFileTypeError(ExtractionError):
    """Exception raised when file type is not supported."""
    category = 'unsupported_type'
    severity = ErrorSeverity.HIGH


class NotJpegError(UnsupportedFileTypeError):
    """Exception raised when a file does not start with the JPEG SOI marker."""
    category = 'not_jpeg'


class CorruptedFileError(ExtractionError):
    """Exception raised when file appears to be corrupted or truncated."""
    category = 'corrupted_file'
    severity = ErrorSeverity.HIGH


def categorize_error(error: Exception) -> Dict[str, Any]:
    """Describe an error as a JSON-ready dictionary.

    Args:
        error: The exception raised while extracting

    Returns:
        Dictionary with error type, message, category and severity
    """
    error_info = {
        'error_type': type(error).__name__,
        'error_message': str(error),
        'category': 'unknown',
        'severity': ErrorSeverity.MEDIUM.value,
    }

    if isinstance(error, ExtractionError):
        error_info.update({
            'category': error.category,
            'severity': error.severity.value,
        })
    elif isinstance(error, (FileNotFoundError, PermissionError)):
        error_info.update({
            'category': 'file_access',
            'severity': ErrorSeverity.HIGH.value,
        })
    elif isinstance(error, OSError):
        error_info['category'] = 'io_error'
    elif isinstance(error, MemoryError):
        error_info.update({
            'category': 'memory_error',
            'severity': ErrorSeverity.CRITICAL.value,
        })

    return error_info
