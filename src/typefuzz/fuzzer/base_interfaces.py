"""Base interfaces and exceptions for typefuzz components."""

from abc import ABC, abstractmethod
from typing import Any, List


class BaseValueGenerator(ABC):
    """Abstract base class for argument value generators."""

    @abstractmethod
    def generate(self) -> Any:
        """Generate one concrete value.

        Returns:
            A value honoring the argument's constraints
        """
        pass


class BaseExecutor(ABC):
    """Abstract base class for timeout-bounded executors."""

    @abstractmethod
    def call(self, args: List[Any]) -> Any:
        """Invoke the wrapped callable with positional arguments.

        Args:
            args: Argument values, already copied by the caller

        Returns:
            An execution outcome
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release any execution resources."""
        pass


class FuzzerError(Exception):
    """Base exception for fuzzer errors."""
    pass


class ConfigurationError(FuzzerError):
    """Error in configuration or argument constraints."""
    pass


class SandboxError(ConfigurationError):
    """The sandbox cannot host the requested callable."""
    pass


class TargetResolutionError(FuzzerError):
    """The function under test could not be found or is not callable."""
    pass


class PersistenceError(FuzzerError):
    """Error while writing fuzzing results."""
    pass
