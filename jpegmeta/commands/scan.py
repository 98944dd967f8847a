"""Scan command implementation."""

from pathlib import Path

from ..core.extractor import MetadataExtractor
from ..core.scanner import DirectoryScanner
from ..utils.logger import ErrorCollector, ProgressLogger, get_logger
from .view import emit_records, report_failures


def execute(args) -> int:
    """Execute the scan command."""
    logger = get_logger()

    # Validate input path
    scan_path = Path(args.path)
    if not scan_path.exists():
        logger.error(f"Path does not exist: {scan_path}")
        return 1

    extractor = MetadataExtractor(include_segments=not args.no_segments)
    scanner = DirectoryScanner(extractor)

    logger.info(f"Starting scan of: {scan_path}")
    files = scanner.find_files_list(scan_path, recursive=args.recursive, include_hidden=args.include_hidden)

    if not files:
        logger.warning(f"No JPEG files found in {scan_path}")
        return 0

    progress = ProgressLogger(len(files), description="Extracting")
    successes, failures = extractor.extract_batch(files, progress_callback=progress.update)
    progress.complete()

    collector = ErrorCollector()
    for file_path, error in failures:
        collector.add_error(file_path, error)

    records = [{'file': file_path, 'metadata': metadata} for file_path, metadata in successes]
    if records:
        emit_records(records, args, single_as_object=False)

    logger.info(f"Scan completed: {len(records)} of {len(files)} files processed")
    return report_failures(collector)
