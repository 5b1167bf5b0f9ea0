"""Utility modules for typefuzz."""

from .logger import get_logger, Logger

format_result = Logger.format_result

from .file_utils import (
    ensure_parent_directory,
    read_file,
    write_file
)

__all__ = [
    'get_logger',
    'Logger',
    'format_result',

    'ensure_parent_directory',
    'read_file',
    'write_file',
]
