"""Output formatting utilities for jpegmeta."""

import json
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from tabulate import tabulate


class OutputFormatter:
    """Handles formatting and display of output data."""

    SUPPORTED_FORMATS = ['json', 'yaml', 'table']

    def __init__(self, format_type: str = 'json', indent: Optional[int] = 2):
        """Initialize output formatter.

        Args:
            format_type: Output format (json, yaml, table)
            indent: Indentation level for structured formats, None for compact JSON
        """
        if format_type not in self.SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported format: {format_type}. Supported: {self.SUPPORTED_FORMATS}")

        self.format_type = format_type
        self.indent = indent

    def format_data(self, data: Any, **kwargs) -> str:
        """Format data according to the specified format.

        Args:
            data: Data to format
            **kwargs: Additional formatting options

        Returns:
            Formatted string
        """
        if self.format_type == 'yaml':
            return self._format_yaml(data, **kwargs)
        elif self.format_type == 'table':
            return self._format_table(data, **kwargs)
        return self._format_json(data, **kwargs)

    def _format_json(self, data: Any, **kwargs) -> str:
        """Format data as JSON."""
        return json.dumps(
            data,
            indent=self.indent,
            ensure_ascii=False,
            default=self._json_serializer,
            **kwargs
        )

    def _format_yaml(self, data: Any, **kwargs) -> str:
        """Format data as YAML."""
        return yaml.safe_dump(
            data,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            indent=self.indent or 2,
            **kwargs
        )

    def _format_table(self, data: Any, **kwargs) -> str:
        """Format data as one field/value table per file."""
        tablefmt = kwargs.get('tablefmt', 'grid')

        if isinstance(data, list):
            sections = []
            for item in data:
                table = tabulate(self._table_rows(item.get('metadata', item)),
                                 headers=['Field', 'Value'], tablefmt=tablefmt)
                sections.append(f"File: {item.get('file', '')}\n{table}")
            return '\n\n'.join(sections)

        return tabulate(self._table_rows(data), headers=['Field', 'Value'], tablefmt=tablefmt)

    def _table_rows(self, data: Any) -> List[List[Any]]:
        if isinstance(data, dict):
            return [[key, self._cell(value)] for key, value in flatten_dict(data).items()]
        return [['value', self._cell(data)]]

    @staticmethod
    def _cell(value: Any) -> str:
        if isinstance(value, list):
            return ', '.join(str(v) for v in value)
        return truncate_text(str(value), 100)

    def _json_serializer(self, obj: Any) -> Any:
        """Custom JSON serializer for non-standard types."""
        if isinstance(obj, datetime):
            return obj.isoformat()
        elif isinstance(obj, Path):
            return str(obj)
        return str(obj)

    def print_data(self, data: Any, file=None, **kwargs) -> None:
        """Print formatted data to file or stdout.

        Args:
            data: Data to print
            file: File object to write to (default: stdout)
            **kwargs: Additional formatting options
        """
        formatted = self.format_data(data, **kwargs)
        print(formatted, file=file or sys.stdout)

    def save_data(self, data: Any, filepath: Union[str, Path], **kwargs) -> None:
        """Save formatted data to file.

        Args:
            data: Data to save
            filepath: Path to output file
            **kwargs: Additional formatting options
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        formatted = self.format_data(data, **kwargs)

        with open(filepath, 'w', encoding='utf-8') as f:
            f.write(formatted)
            f.write('\n')


class ColorFormatter:
    """Add color formatting to text output."""

    # ANSI color codes
    COLORS = {
        'reset': '\033[0m',
        'bold': '\033[1m',
        'red': '\033[31m',
        'yellow': '\033[33m',
        'bright_red': '\033[91m',
        'bright_green': '\033[92m',
        'bright_yellow': '\033[93m',
    }

    def __init__(self, enabled: bool = True, stream=None):
        """Initialize color formatter.

        Args:
            enabled: Whether to enable color output
            stream: Stream the colored text is written to (default: stderr)
        """
        self.stream = stream or sys.stderr
        self.enabled = enabled and self._supports_color()

    def _supports_color(self) -> bool:
        """Check if the terminal supports color output."""
        return (
            hasattr(self.stream, 'isatty') and self.stream.isatty() and
            os.environ.get('TERM') != 'dumb' and 'NO_COLOR' not in os.environ
        )

    def colorize(self, text: str, color: str) -> str:
        """Apply color to text.

        Args:
            text: Text to colorize
            color: Color name

        Returns:
            Colorized text
        """
        if not self.enabled or color not in self.COLORS:
            return text

        return f"{self.COLORS[color]}{text}{self.COLORS['reset']}"

    def success(self, text: str) -> str:
        """Format text as success (green)."""
        return self.colorize(text, 'bright_green')

    def error(self, text: str) -> str:
        """Format text as error (red)."""
        return self.colorize(text, 'bright_red')

    def warning(self, text: str) -> str:
        """Format text as warning (yellow)."""
        return self.colorize(text, 'bright_yellow')

    def bold(self, text: str) -> str:
        """Format text as bold."""
        return self.colorize(text, 'bold')


# Global formatter instance
_color_formatter = ColorFormatter()


def get_color_formatter() -> ColorFormatter:
    """Get global color formatter instance."""
    return _color_formatter


def flatten_dict(data: Dict[str, Any], parent_key: str = '', separator: str = '.') -> Dict[str, Any]:
    """Flatten nested dictionaries into dotted keys.

    Lists of dictionaries are flattened with their index as a key part.
    """
    items: Dict[str, Any] = {}
    for key, value in data.items():
        new_key = f"{parent_key}{separator}{key}" if parent_key else str(key)
        if isinstance(value, dict):
            items.update(flatten_dict(value, new_key, separator))
        elif isinstance(value, list) and value and all(isinstance(v, dict) for v in value):
            for index, entry in enumerate(value):
                items.update(flatten_dict(entry, f"{new_key}{separator}{index}", separator))
        else:
            items[new_key] = value
    return items


def lookup_field(data: Dict[str, Any], field: str) -> Any:
    """Resolve a dotted field path such as ``exif.Make``.

    Raises:
        KeyError: If any part of the path is missing
    """
    if field in data:
        return data[field]

    current: Any = data
    for part in field.split('.'):
        if isinstance(current, dict):
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            raise KeyError(field)
    return current


def truncate_text(text: str, max_length: int = 50, suffix: str = "...") -> str:
    """Truncate text to specified length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add when truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text

    return text[:max_length - len(suffix)] + suffix
