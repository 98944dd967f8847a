"""JPEG parsing and metadata extraction."""

from .errors import (
    CorruptedFileError,
    ExtractionError,
    FileAccessError,
    NotJpegError,
    UnsupportedFileTypeError,
)
from .extractor import MetadataExtractor
from .scanner import DirectoryScanner
from .segments import Segment, SegmentScanner, is_jpeg, read_segments

__all__ = [
    'CorruptedFileError',
    'DirectoryScanner',
    'ExtractionError',
    'FileAccessError',
    'MetadataExtractor',
    'NotJpegError',
    'Segment',
    'SegmentScanner',
    'UnsupportedFileTypeError',
    'is_jpeg',
    'read_segments',
]
