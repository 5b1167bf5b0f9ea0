"""Logging utility for typefuzz."""

import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Any, Optional

ROOT_LOGGER_NAME = "typefuzz"


class Logger:
    """Centralized logging utility."""

    _root: Optional[logging.Logger] = None

    @classmethod
    def configure(cls,
                  level: str = "INFO",
                  log_to_file: bool = False,
                  log_dir: str = "logs") -> logging.Logger:
        """Configure the package root logger.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_to_file: Whether to log to file
            log_dir: Directory for log files

        Returns:
            Configured root logger
        """
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.setLevel(getattr(logging, level.upper()))

        # Clear existing handlers
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, level.upper()))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if log_to_file:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file = log_path / f"typefuzz_{timestamp}.log"

            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

            logger.info(f"Logging to file: {log_file}")

        cls._root = logger
        return logger

    @classmethod
    def get_logger(cls, name: str = ROOT_LOGGER_NAME) -> logging.Logger:
        """Get a logger below the package root logger.

        Args:
            name: Component or module name

        Returns:
            Logger instance
        """
        if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
            return logging.getLogger(name)
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")

    @classmethod
    def reset(cls):
        """Reset the configured root logger."""
        if cls._root is not None:
            for handler in list(cls._root.handlers):
                cls._root.removeHandler(handler)
                handler.close()
        cls._root = None

    @classmethod
    def format_result(cls, result: Any, max_length: int = 80) -> str:
        """Format a fuzz test result for logging."""
        if result is None:
            return "<none>"
        inputs = ", ".join(
            f"{e.name}={e.value!r}" for e in getattr(result, "input", [])
        )
        if len(inputs) > max_length:
            inputs = inputs[:max_length] + "..."

        parts = [f"({inputs})"]
        category = getattr(result, "category", None)
        if category is not None:
            parts.append(f"category={getattr(category, 'value', category)}")
        if getattr(result, "timeout", False):
            parts.append("timeout")
        if getattr(result, "exception", False):
            parts.append(f"exception={getattr(result, 'exception_message', '')}")
        elapsed = getattr(result, "elapsed_time", None)
        if elapsed is not None:
            parts.append(f"{elapsed:.2f}ms")

        return " | ".join(parts)


def get_logger(name: str = ROOT_LOGGER_NAME, **kwargs) -> logging.Logger:
    """Convenience function to get logger.

    Args:
        name: Logger name
        **kwargs: Passed to Logger.configure() when given

    Returns:
        Logger instance
    """
    if kwargs:
        Logger.configure(**kwargs)
    return Logger.get_logger(name)
