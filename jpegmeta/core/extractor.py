"""Metadata extraction for JPEG files."""

import logging
import mimetypes
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .errors import (
    CorruptedFileError,
    ExtractionError,
    FileAccessError,
    NotJpegError,
    UnsupportedFileTypeError,
    categorize_error,
)
from .exif import decode_exif
from .segments import (
    APP0,
    COM,
    FRAME_TYPES,
    Segment,
    SegmentScanner,
    decode_comment,
    is_exif_segment,
    is_icc_segment,
    is_xmp_segment,
    parse_frame_header,
    parse_jfif,
)

# Configure logger for metadata extraction
logger = logging.getLogger(__name__)

__all__ = [
    'CorruptedFileError',
    'ExtractionError',
    'FileAccessError',
    'MetadataExtractor',
    'NotJpegError',
    'UnsupportedFileTypeError',
]


class MetadataExtractor:
    """Extract metadata from JPEG files in a single pass over the header."""

    JPEG_EXTENSIONS = frozenset(['.jpg', '.jpeg', '.jpe', '.jfif'])

    def __init__(self, include_segments: bool = True):
        """Initialize the metadata extractor.

        Args:
            include_segments: Whether records list the header segments seen
        """
        self.include_segments = include_segments

    def is_supported(self, file_path: Path) -> bool:
        """Check whether a path has a JPEG file extension."""
        return file_path.suffix.lower() in self.JPEG_EXTENSIONS

    def validate_path(self, file_path: Union[str, Path]) -> Path:
        """Check that a path names a readable regular file.

        Raises:
            FileAccessError: If the file is missing, not a file or unreadable
        """
        if isinstance(file_path, str):
            file_path = Path(file_path)

        if not file_path.exists():
            raise FileAccessError('File not found', file_path)
        if not file_path.is_file():
            raise FileAccessError('Path is not a file', file_path)
        if not os.access(file_path, os.R_OK):
            raise FileAccessError('Permission denied', file_path)

        return file_path

    def extract_basic_metadata(self, file_path: Path, stat: os.stat_result) -> Dict[str, Any]:
        """Build the file system section of a record."""
        return {
            'filename': file_path.name,
            'filepath': str(file_path.absolute()),
            'size': stat.st_size,
            'size_human': self._format_size(stat.st_size),
            'modified': datetime.fromtimestamp(stat.st_mtime).isoformat(),
            'extension': file_path.suffix.lower(),
            'mime_type': mimetypes.guess_type(str(file_path))[0] or 'image/jpeg',
        }

    def read_header_segments(self, file_path: Path) -> Tuple[List[Segment], os.stat_result]:
        """Open the file once and read every segment before the first scan."""
        try:
            with open(file_path, 'rb') as stream:
                stat = os.fstat(stream.fileno())
                segments = list(SegmentScanner(stream).iter_segments(stop_at_scan=True))
        except PermissionError as e:
            raise FileAccessError('Permission denied', file_path) from e
        except FileNotFoundError as e:
            raise FileAccessError('File not found', file_path) from e
        except ExtractionError as e:
            if e.file_path is None:
                e.file_path = file_path
            raise
        except OSError as e:
            raise FileAccessError(f'Cannot read file ({e.strerror or e})', file_path) from e

        logger.debug(f"Read {len(segments)} header segments from {file_path}")
        return segments, stat

    def decode_segments(self, segments: List[Segment]) -> Dict[str, Any]:
        """Turn header segments into the JPEG sections of a record.

        Raises:
            CorruptedFileError: If no frame header precedes the scan
        """
        metadata: Dict[str, Any] = {}
        warnings: List[str] = []
        comments: List[str] = []
        has_icc = False
        has_xmp = False
        exif_seen = False

        for segment in segments:
            if segment.marker in FRAME_TYPES and 'image' not in metadata:
                metadata['image'] = self._image_section(segment)
            elif is_exif_segment(segment) and not exif_seen:
                exif_seen = True
                try:
                    exif = decode_exif(segment.data)
                except CorruptedFileError as e:
                    logger.warning(f"Skipping EXIF block at offset {segment.offset}: {e}")
                    warnings.append(f"EXIF block at offset {segment.offset}: {e.reason}")
                    continue
                for message in exif.warnings:
                    logger.warning(f"Damaged EXIF block at offset {segment.offset}: {message}")
                    warnings.append(f"EXIF block at offset {segment.offset}: {message}")
                if exif.tags:
                    metadata['exif'] = exif.tags
                if exif.gps:
                    metadata['gps'] = exif.gps
            elif segment.marker == APP0 and 'jfif' not in metadata:
                jfif = parse_jfif(segment)
                if jfif is not None:
                    metadata['jfif'] = jfif
            elif segment.marker == COM:
                comments.append(decode_comment(segment))
            elif is_icc_segment(segment):
                has_icc = True
            elif is_xmp_segment(segment):
                has_xmp = True

        if 'image' not in metadata:
            raise CorruptedFileError('No frame header (SOF) before start of scan')

        if comments:
            metadata['comments'] = comments
        metadata['has_icc_profile'] = has_icc
        metadata['has_xmp'] = has_xmp
        if self.include_segments:
            metadata['segments'] = [segment.to_dict() for segment in segments]
        if warnings:
            metadata['warnings'] = warnings

        return metadata

    def _image_section(self, segment: Segment) -> Dict[str, Any]:
        frame = parse_frame_header(segment)
        width, height = frame.width, frame.height
        return {
            'width': width,
            'height': height,
            'precision': frame.precision,
            'components': len(frame.components),
            'color_space': frame.color_space,
            'frame_type': frame.frame_type,
            'progressive': frame.progressive,
            'megapixels': round((width * height) / 1000000, 2),
            'aspect_ratio': round(width / height, 2) if height > 0 else 0,
        }

    def extract(self, file_path: Union[str, Path]) -> Dict[str, Any]:
        """Extract the metadata record of one JPEG file.

        Args:
            file_path: Path of the file to read

        Returns:
            JSON-ready metadata dictionary

        Raises:
            FileAccessError: If the file cannot be opened or read
            NotJpegError: If the file is not a JPEG
            CorruptedFileError: If the JPEG structure is truncated or invalid
        """
        path = self.validate_path(file_path)
        segments, stat = self.read_header_segments(path)

        try:
            jpeg_metadata = self.decode_segments(segments)
        except ExtractionError as e:
            if e.file_path is None:
                e.file_path = path
            raise

        metadata = {'basic': self.extract_basic_metadata(path, stat)}
        metadata.update(jpeg_metadata)
        return metadata

    def extract_metadata(self, file_path: Union[str, Path]) -> Dict[str, Any]:
        """Extract metadata, reporting failures inside the returned dictionary."""
        try:
            metadata = self.extract(file_path)
        except ExtractionError as e:
            logger.warning(f"Extraction failed: {e}")
            return {
                'error': str(e),
                'filepath': str(file_path),
                'status': 'extraction_failed',
                'error_details': categorize_error(e),
            }

        metadata['basic']['status'] = 'partial_success' if 'warnings' in metadata else 'success'
        return metadata

    def extract_batch(
        self,
        file_paths: Iterable[Union[str, Path]],
        progress_callback: Optional[callable] = None,
    ) -> Tuple[List[Tuple[str, Dict[str, Any]]], List[Tuple[str, ExtractionError]]]:
        """Extract metadata from several files, one after the other.

        Args:
            file_paths: Paths to process, in output order
            progress_callback: Optional callback taking (completed, total)

        Returns:
            Tuple of (successful (path, record) pairs, failed (path, error) pairs)
        """
        file_paths = list(file_paths)
        records = []
        failures = []

        for completed, file_path in enumerate(file_paths, start=1):
            logger.info(f"Extracting metadata from: {file_path}")
            try:
                records.append((str(file_path), self.extract(file_path)))
            except ExtractionError as e:
                failures.append((str(file_path), e))

            if progress_callback:
                progress_callback(completed, len(file_paths))

        return records, failures

    @staticmethod
    def _format_size(size_bytes: int) -> str:
        """Format file size in human readable format."""
        for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
            if size_bytes < 1024.0:
                return f"{size_bytes:.1f} {unit}"
            size_bytes /= 1024.0
        return f"{size_bytes:.1f} PB"
