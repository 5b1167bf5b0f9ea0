"""Constants for the command-line front end."""

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class DisplayConstants:
    """Display and formatting constants."""
    SEPARATOR_LENGTH: int = 60
    MAX_FAILURES_SHOWN: int = 10


@dataclass(frozen=True)
class ApplicationDefaults:
    """Default configuration values."""
    CONFIG_FILE: str = "config/typefuzz.yaml"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"


@dataclass(frozen=True)
class ApplicationMetadata:
    """Application metadata and system constants."""
    VERSION: str = "typefuzz 1.0.0"
    EXIT_SUCCESS: int = 0
    EXIT_FAILURE: int = 1
    EXIT_CONFIG_ERROR: int = 2

    @property
    def log_levels(self) -> List[str]:
        """Get accepted log level names."""
        return ['DEBUG', 'INFO', 'WARNING', 'ERROR']


# Singleton instances for easy access
DISPLAY = DisplayConstants()
DEFAULTS = ApplicationDefaults()
APP = ApplicationMetadata()
