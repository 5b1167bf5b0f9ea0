"""File utility functions."""

from pathlib import Path
from typing import Union


def ensure_parent_directory(path: Union[str, Path]) -> Path:
    """Create the parent directory of a file path if needed.

    Args:
        path: File path

    Returns:
        The path as a Path object
    """
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    return file_path


def write_file(path: Union[str, Path], content: str) -> Path:
    """Write text content to a file, creating parent directories.

    Args:
        path: File path
        content: Text to write

    Returns:
        Path of the written file
    """
    file_path = ensure_parent_directory(path)
    with open(file_path, 'w', encoding='utf-8') as f:
        f.write(content)
    return file_path


def read_file(path: Union[str, Path]) -> str:
    """Read text content of a file.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    with open(file_path, 'r', encoding='utf-8') as f:
        return f.read()
