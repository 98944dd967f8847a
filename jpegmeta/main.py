#!/usr/bin/env python3
"""Main entry point for the jpegmeta application."""

import argparse
import sys

from jpegmeta import __version__
from jpegmeta.commands import scan, segments, view
from jpegmeta.utils.formatter import get_color_formatter
from jpegmeta.utils.logger import DEFAULT_LOG_FILE, setup_logger


def create_parser():
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog='jpegmeta',
        description='Extract metadata from JPEG images and print it as JSON',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        default=DEFAULT_LOG_FILE,
        help=f'Log file path (default: {DEFAULT_LOG_FILE}, empty string disables it)'
    )

    parser.add_argument(
        '--no-color',
        action='store_true',
        help='Disable colored error messages'
    )

    subparsers = parser.add_subparsers(
        dest='command',
        help='Available commands',
        metavar='COMMAND'
    )

    # View command
    view_parser = subparsers.add_parser(
        'view',
        help='Extract and print the metadata of JPEG files'
    )
    view_parser.add_argument(
        'files',
        nargs='+',
        help='JPEG files to process'
    )
    view_parser.add_argument(
        '--fields',
        nargs='+',
        help='Specific metadata fields to display (dotted paths such as exif.Make)'
    )
    _add_output_arguments(view_parser)

    # Scan command
    scan_parser = subparsers.add_parser(
        'scan',
        help='Find JPEG files under a directory and extract their metadata'
    )
    scan_parser.add_argument(
        'path',
        type=str,
        help='Directory or file path to scan'
    )
    scan_parser.add_argument(
        '--recursive', '-r',
        action='store_true',
        help='Scan directories recursively'
    )
    scan_parser.add_argument(
        '--include-hidden',
        action='store_true',
        help='Include hidden files and directories'
    )
    _add_output_arguments(scan_parser)

    # Segments command
    segments_parser = subparsers.add_parser(
        'segments',
        help='List the marker segments of a JPEG file'
    )
    segments_parser.add_argument(
        'file',
        type=str,
        help='JPEG file to inspect'
    )
    segments_parser.add_argument(
        '--all',
        action='store_true',
        help='Continue past the first scan up to the end-of-image marker'
    )
    segments_parser.add_argument(
        '--format',
        choices=['json', 'yaml'],
        default='json',
        help='Output format (default: json)'
    )
    segments_parser.add_argument(
        '--compact',
        action='store_true',
        help='Print JSON on a single line'
    )

    return parser


def _add_output_arguments(command_parser) -> None:
    command_parser.add_argument(
        '--format',
        choices=['json', 'yaml', 'table'],
        default='json',
        help='Output format (default: json)'
    )
    command_parser.add_argument(
        '--compact',
        action='store_true',
        help='Print JSON on a single line'
    )
    command_parser.add_argument(
        '--no-segments',
        action='store_true',
        help='Leave the segment list out of the records'
    )
    command_parser.add_argument(
        '--output', '-o',
        type=str,
        help='Write the output to a file instead of stdout'
    )


def main(argv=None):
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging
    logger = setup_logger(verbose=args.verbose, log_file=args.log_file or None)

    # Configure color formatter
    color_formatter = get_color_formatter()
    if args.no_color:
        color_formatter.enabled = False

    if not args.command:
        parser.print_help()
        return 1

    try:
        # Execute the appropriate command
        if args.command == 'view':
            return view.execute(args)
        elif args.command == 'scan':
            return scan.execute(args)
        elif args.command == 'segments':
            return segments.execute(args)
        else:
            logger.error(f"Unknown command: {args.command}")
            return 1

    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        print(color_formatter.warning("\nOperation cancelled by user"), file=sys.stderr)
        return 130
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        print(color_formatter.error(f"Error: {e}"), file=sys.stderr)
        if args.verbose:
            logger.exception("Full traceback:")
        return 1


if __name__ == '__main__':
    sys.exit(main())
