"""Segments command implementation."""

from pathlib import Path

from ..core.errors import ExtractionError
from ..core.extractor import MetadataExtractor
from ..core.segments import read_segments
from ..utils.formatter import OutputFormatter
from ..utils.logger import ErrorCollector, get_logger
from .view import report_failures


def execute(args) -> int:
    """Execute the segments command."""
    logger = get_logger()
    file_path = Path(args.file)
    collector = ErrorCollector()

    try:
        MetadataExtractor().validate_path(file_path)
        segments = read_segments(file_path, stop_at_scan=not args.all)
    except ExtractionError as e:
        if e.file_path is None:
            e.file_path = file_path
        collector.add_error(str(file_path), e)
        return report_failures(collector)

    formatter = OutputFormatter(args.format, indent=None if args.compact else 2)
    formatter.print_data([segment.to_dict() for segment in segments])

    logger.info(f"Listed {len(segments)} segments of {file_path}")
    return 0
