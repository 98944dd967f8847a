"""Directory scanning for JPEG file discovery."""

import logging
from pathlib import Path
from typing import Generator, List, Optional, Set

from .extractor import MetadataExtractor

# Configure logger
logger = logging.getLogger(__name__)


class DirectoryScanner:
    """Scanner for discovering JPEG files in directories."""

    # Default directories to exclude from scanning
    DEFAULT_EXCLUDED_DIRS = {
        '.venv', 'venv', '.env', 'env',  # Virtual environments
        '__pycache__', '.pytest_cache',  # Python cache
        '.git', '.svn', '.hg',  # Version control
        'node_modules', '.npm',  # Node.js
        '.idea', '.vscode',  # IDEs
        '.tox',  # Testing
    }

    def __init__(self, extractor: Optional[MetadataExtractor] = None, excluded_dirs: Optional[Set[str]] = None):
        """Initialize the directory scanner."""
        self.extractor = extractor or MetadataExtractor()
        self.excluded_dirs = excluded_dirs or self.DEFAULT_EXCLUDED_DIRS.copy()

    def find_files(self,
                   path: Path,
                   recursive: bool = True,
                   include_hidden: bool = False) -> Generator[Path, None, None]:
        """Find JPEG files in the given path.

        Files are matched by extension only; content is checked when the
        metadata is extracted.

        Args:
            path: Directory or file path to scan
            recursive: Whether to scan subdirectories
            include_hidden: Whether to include hidden files and directories

        Yields:
            Path objects for matching files, in sorted order per directory
        """
        # If path is a file, yield it directly if it matches criteria
        if path.is_file():
            if self._should_include_file(path, include_hidden):
                yield path
            return

        if not path.is_dir():
            return

        for item in self._walk_directory(path, recursive, include_hidden):
            if self._should_include_file(item, include_hidden):
                yield item

    def find_files_list(self,
                        path: Path,
                        recursive: bool = True,
                        include_hidden: bool = False) -> List[Path]:
        """Find files and return as a list."""
        return list(self.find_files(path, recursive, include_hidden))

    def _walk_directory(self, path: Path, recursive: bool, include_hidden: bool) -> Generator[Path, None, None]:
        """Walk a directory while respecting excluded directories."""
        try:
            items = sorted(path.iterdir())
        except OSError as e:
            # Skip directories we don't have permission to read
            logger.warning(f"Cannot read directory {path}: {e}")
            return

        for item in items:
            # Skip hidden items if not included
            if not include_hidden and item.name.startswith('.'):
                continue

            if item.is_dir():
                if recursive and item.name not in self.excluded_dirs:
                    yield from self._walk_directory(item, recursive, include_hidden)
            elif item.is_file():
                yield item

    def _should_include_file(self, file_path: Path, include_hidden: bool = False) -> bool:
        """Check if a file should be included based on filtering criteria."""
        if not include_hidden and file_path.name.startswith('.'):
            return False
        return self.extractor.is_supported(file_path)
