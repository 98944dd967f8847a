"""View command implementation."""

import sys
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List

from ..core.errors import CorruptedFileError, FileAccessError, NotJpegError
from ..core.extractor import MetadataExtractor
from ..utils.formatter import OutputFormatter, get_color_formatter, lookup_field
from ..utils.logger import ErrorCollector, get_logger

# Failure report headings, most specific class first
FAILURE_HEADINGS = OrderedDict([
    (NotJpegError.__name__, 'The following files are not valid JPEG images:'),
    (FileAccessError.__name__, 'The following files could not be read:'),
    (CorruptedFileError.__name__, 'The following files are corrupted or truncated:'),
])
DEFAULT_HEADING = 'The following files could not be processed:'


def execute(args) -> int:
    """Execute the view command."""
    logger = get_logger()
    extractor = MetadataExtractor(include_segments=not getattr(args, 'no_segments', False))

    records, collector = extract_files(extractor, args.files)

    if records:
        if args.fields:
            records = [
                {'file': record['file'], 'metadata': filter_fields(record['metadata'], args.fields)}
                for record in records
            ]
        emit_records(records, args)

    logger.info(f"Displayed metadata for {len(records)} files")
    return report_failures(collector)


def extract_files(extractor: MetadataExtractor, file_paths: List[Any]):
    """Extract every file in order, collecting failures instead of stopping.

    Returns:
        Tuple of (list of {'file', 'metadata'} records, ErrorCollector)
    """
    collector = ErrorCollector()
    successes, failures = extractor.extract_batch(Path(p) for p in file_paths)

    for file_path, error in failures:
        collector.add_error(file_path, error)

    records = [{'file': file_path, 'metadata': metadata} for file_path, metadata in successes]
    return records, collector


def filter_fields(metadata: Dict[str, Any], fields: List[str]) -> Dict[str, Any]:
    """Keep only the requested (possibly dotted) fields of a record."""
    filtered = {}
    for field in fields:
        try:
            filtered[field] = lookup_field(metadata, field)
        except KeyError:
            pass  # Field not found
    return filtered


def emit_records(records: List[Dict[str, Any]], args, single_as_object: bool = True) -> None:
    """Write records to stdout or the requested output file.

    A single record is written as the bare metadata object; several are
    written as a list of {'file', 'metadata'} entries.
    """
    formatter = OutputFormatter(
        getattr(args, 'format', 'json') or 'json',
        indent=None if getattr(args, 'compact', False) else 2,
    )

    if single_as_object and len(records) == 1 and formatter.format_type != 'table':
        data = records[0]['metadata']
    else:
        data = records

    output = getattr(args, 'output', None)
    if output:
        formatter.save_data(data, output)
        get_logger().info(f"Results saved to: {output}")
    else:
        formatter.print_data(data)


def report_failures(collector: ErrorCollector, stream=None) -> int:
    """Print collected failures grouped by kind.

    Returns:
        Exit code: 0 without failures, 1 otherwise
    """
    if not collector.has_errors():
        return 0

    stream = stream or sys.stderr
    color = get_color_formatter()
    groups = collector.group_by_type()

    ordered: List[str] = [name for name in FAILURE_HEADINGS if name in groups]
    ordered += [name for name in groups if name not in FAILURE_HEADINGS]

    for error_type in ordered:
        heading = FAILURE_HEADINGS.get(error_type, DEFAULT_HEADING)
        print(color.error(f"\n{heading}"), file=stream)
        for error in groups[error_type]:
            print(f"  - {error['item']} ({error['reason']})", file=stream)

    collector.log_summary()
    return 1
