"""Data models for the typefuzz engine."""

import json
import math
import string
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

T = TypeVar("T", int, float, bool, str)

# Sentinel handed to validators when the function under test produced no output
NO_OUTPUT_SENTINEL = "timeout or exception"

DEFAULT_CHARSET = string.ascii_letters + string.digits + string.punctuation + " "


class ArgType(Enum):
    """Type tags for function arguments."""
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    OBJECT = "object"


class FuzzResultCategory(str, Enum):
    """Final category of a single fuzz test."""
    OK = "ok"
    BAD_VALUE = "badValue"
    EXCEPTION = "exception"
    TIMEOUT = "timeout"
    DISAGREE = "disagree"
    FAILURE = "failure"


class FuzzStopReason(str, Enum):
    """Reason a fuzzing run stopped."""
    CRASH = "crash"
    MAXTESTS = "maxTests"
    MAXFAILURES = "maxFailures"
    MAXTIME = "maxTime"
    MAXDUPES = "maxDupes"


# Constants for validation
class ValidationConstants:
    """Constants used in validation."""
    MIN_RATE = 0.0
    MAX_RATE = 1.0


@dataclass
class ValidationResult:
    """Result of validation with errors and warnings."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, error: str) -> None:
        """Add an error to the validation result."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning to the validation result."""
        self.warnings.append(warning)

    def merge(self, other: 'ValidationResult', prefix: str = "") -> None:
        """Merge another validation result into this one."""
        prefix_str = f"{prefix}: " if prefix else ""
        self.errors.extend([f"{prefix_str}{error}" for error in other.errors])
        self.warnings.extend([f"{prefix_str}{warning}" for warning in other.warnings])
        if not other.is_valid:
            self.is_valid = False


class ValidationMixin:
    """Mixin class providing common validation utilities."""

    @staticmethod
    def _validate_non_negative(value: float, field_name: str) -> List[str]:
        """Validate that a numeric value is zero or greater."""
        errors = []
        if value is None or value < 0:
            errors.append(f"{field_name} cannot be negative")
        return errors

    @staticmethod
    def _validate_positive(value: float, field_name: str) -> List[str]:
        """Validate that a numeric value is positive."""
        errors = []
        if value is None or value <= 0:
            errors.append(f"{field_name} must be positive")
        return errors

    @staticmethod
    def _validate_range(value: float, min_val: float, max_val: float, field_name: str) -> List[str]:
        """Validate that a numeric value is within range."""
        errors = []
        if not (min_val <= value <= max_val):
            errors.append(f"{field_name} must be between {min_val} and {max_val}")
        return errors


@dataclass
class Interval(Generic[T]):
    """Closed interval over numbers, booleans or strings."""
    min: T
    max: T

    def sorted(self) -> 'Interval[T]':
        """Return a copy with the bounds in ascending order."""
        if self.max < self.min:
            return Interval(self.max, self.min)
        return Interval(self.min, self.max)

    def to_dict(self) -> Dict[str, Any]:
        return {"min": self.min, "max": self.max}

    @classmethod
    def from_value(cls, value: Union['Interval', Dict[str, Any], List[Any]]) -> 'Interval':
        """Build an interval from an Interval, a {min, max} mapping or a pair."""
        if isinstance(value, Interval):
            return Interval(value.min, value.max)
        if isinstance(value, dict):
            return Interval(value["min"], value["max"])
        low, high = value
        return Interval(low, high)


@dataclass
class ArgOptions:
    """Type-specific generation tuning for one argument."""
    num_integer: bool = True
    str_length: Interval = field(default_factory=lambda: Interval(0, 10))
    str_charset: str = DEFAULT_CHARSET
    dim_length: List[Interval] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "num_integer": self.num_integer,
            "str_length": self.str_length.to_dict(),
            "str_charset": self.str_charset,
            "dim_length": [e.to_dict() for e in self.dim_length],
        }


@dataclass
class ArgDefaults(ValidationMixin):
    """Defaults applied to arguments that carry no explicit constraint."""
    num_integer: bool = True
    num_min: float = -1000
    num_max: float = 1000
    str_min_len: int = 0
    str_max_len: int = 10
    str_charset: str = DEFAULT_CHARSET
    dim_min_len: int = 0
    dim_max_len: int = 4
    optional_none_rate: float = 0.1

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ArgDefaults':
        """Create ArgDefaults from dictionary."""
        return cls(**{k: v for k, v in config_dict.items()
                      if k in cls.__dataclass_fields__})

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def validate(self) -> ValidationResult:
        """Validate argument defaults."""
        result = ValidationResult(is_valid=True)

        for name in ("str_min_len", "str_max_len", "dim_min_len", "dim_max_len"):
            for error in self._validate_non_negative(getattr(self, name), name):
                result.add_error(error)

        for error in self._validate_range(
            self.optional_none_rate,
            ValidationConstants.MIN_RATE,
            ValidationConstants.MAX_RATE,
            "optional_none_rate"
        ):
            result.add_error(error)

        if not self.str_charset:
            result.add_error("str_charset cannot be empty")

        finite = True
        for name in ("num_min", "num_max"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                finite = False
                result.add_error(f"{name} must be a finite number")

        if finite and self.num_integer:
            low, high = sorted((self.num_min, self.num_max))
            if math.ceil(low) > math.floor(high):
                result.add_error(f"No integer lies within [{low}, {high}]")

        if self.str_max_len < self.str_min_len:
            result.add_warning("str_max_len is below str_min_len; str_min_len will be used")

        return result


@dataclass
class FuzzOptions(ValidationMixin):
    """Options for one fuzzing run."""

    # Limits
    max_tests: int = 1000
    max_dupe_inputs: int = 1000
    max_failures: int = 0  # 0 = unlimited
    suite_timeout: float = 3000  # ms
    fn_timeout: float = 100  # ms per call

    # Oracles
    use_implicit: bool = True
    use_human: bool = True
    use_property: bool = True

    # Output
    only_failures: bool = False
    output_file: Optional[str] = None

    # Reproducibility
    seed: Optional[Union[int, str]] = None

    arg_defaults: ArgDefaults = field(default_factory=ArgDefaults)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'FuzzOptions':
        """Create FuzzOptions from dictionary."""
        values = {k: v for k, v in config_dict.items()
                  if k in cls.__dataclass_fields__}
        if isinstance(values.get("arg_defaults"), dict):
            values["arg_defaults"] = ArgDefaults.from_dict(values["arg_defaults"])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["arg_defaults"] = self.arg_defaults.to_dict()
        return data

    def any_oracle_enabled(self) -> bool:
        return self.use_implicit or self.use_human or self.use_property

    def validate(self) -> ValidationResult:
        """Validate fuzzer options."""
        result = ValidationResult(is_valid=True)

        for name in ("max_tests", "max_dupe_inputs", "max_failures"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                result.add_error(f"{name} must be an integer")
                continue
            for error in self._validate_non_negative(value, name):
                result.add_error(error)

        for error in self._validate_positive(self.suite_timeout, "suite_timeout"):
            result.add_error(error)

        for error in self._validate_positive(self.fn_timeout, "fn_timeout"):
            result.add_error(error)

        if not self.any_oracle_enabled():
            result.add_warning("No oracle enabled; every test will be reported as ok")

        result.merge(self.arg_defaults.validate(), "arg_defaults")
        return result


@dataclass
class IoElement:
    """One named input or output slot of a test."""
    name: str
    offset: int
    value: Any = None
    is_timeout: bool = False
    is_exception: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {"name": self.name, "offset": self.offset, "value": to_plain(self.value)}
        if self.is_timeout:
            data["is_timeout"] = True
        if self.is_exception:
            data["is_exception"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IoElement':
        return cls(
            name=str(data["name"]),
            offset=int(data.get("offset", 0)),
            value=data.get("value"),
            is_timeout=bool(data.get("is_timeout", False)),
            is_exception=bool(data.get("is_exception", False)),
        )


@dataclass
class FuzzPinnedTest:
    """A previously saved input replayed at the start of every run."""
    input: List[IoElement]
    output: List[IoElement] = field(default_factory=list)
    pinned: bool = True
    expected_output: Optional[List[IoElement]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FuzzPinnedTest':
        expected = data.get("expected_output")
        return cls(
            input=[IoElement.from_dict(e) for e in data.get("input", [])],
            output=[IoElement.from_dict(e) for e in data.get("output", [])],
            pinned=bool(data.get("pinned", True)),
            expected_output=[IoElement.from_dict(e) for e in expected] if expected else None,
        )


@dataclass
class ValidatorInput:
    """Simplified view of a test handed to property validators."""
    inputs: List[Any]
    output: Any
    exception: bool
    timeout: bool


@dataclass
class FuzzTestResult:
    """Result of one fuzz test."""
    input: List[IoElement] = field(default_factory=list)
    output: List[IoElement] = field(default_factory=list)
    pinned: bool = False
    exception: bool = False
    exception_message: Optional[str] = None
    exception_stack: Optional[str] = None
    timeout: bool = False
    validator_exception: bool = False
    validator_exception_message: Optional[str] = None
    validator_exception_function: Optional[str] = None
    passed_implicit: bool = True
    passed_human: Optional[bool] = None
    passed_validator: Optional[bool] = None
    passed_validators: Optional[List[Optional[bool]]] = None
    expected_output: Optional[List[IoElement]] = None
    elapsed_time: float = 0.0  # ms
    category: FuzzResultCategory = FuzzResultCategory.OK

    def input_values(self) -> List[Any]:
        return [e.value for e in self.input]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "input": [e.to_dict() for e in self.input],
            "output": [e.to_dict() for e in self.output],
            "pinned": self.pinned,
            "exception": self.exception,
            "timeout": self.timeout,
            "validator_exception": self.validator_exception,
            "passed_implicit": self.passed_implicit,
            "elapsed_time": self.elapsed_time,
            "category": self.category.value,
        }
        optional_fields = (
            "exception_message", "exception_stack", "validator_exception_message",
            "validator_exception_function", "passed_human", "passed_validator",
            "passed_validators",
        )
        for name in optional_fields:
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        if self.expected_output is not None:
            data["expected_output"] = [e.to_dict() for e in self.expected_output]
        return data


@dataclass
class FuzzTestResults:
    """Aggregate results of one fuzzing run."""
    function_name: str = ""
    seed: Optional[Union[int, str]] = None
    stop_reason: FuzzStopReason = FuzzStopReason.CRASH  # updated when the loop exits
    elapsed_time: float = 0.0  # ms
    inputs_generated: int = 0
    dupes_generated: int = 0
    inputs_saved: int = 0
    results: List[FuzzTestResult] = field(default_factory=list)
    persist_error: Optional[str] = None

    def failures(self) -> List[FuzzTestResult]:
        """Get stored results whose category is not ok."""
        return [r for r in self.results if r.category != FuzzResultCategory.OK]

    def get_results_by_category(self, category: FuzzResultCategory) -> List[FuzzTestResult]:
        return [r for r in self.results if r.category == category]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "function_name": self.function_name,
            "seed": self.seed,
            "stop_reason": self.stop_reason.value,
            "elapsed_time": self.elapsed_time,
            "inputs_generated": self.inputs_generated,
            "dupes_generated": self.dupes_generated,
            "inputs_saved": self.inputs_saved,
            "results": [r.to_dict() for r in self.results],
        }


def to_plain(value: Any) -> Any:
    """Convert a value into JSON/YAML friendly builtins.

    Args:
        value: Any value produced by or passed to a function under test

    Returns:
        The value built only from dicts, lists, str, numbers, bools and None
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(e) for e in value]
    if isinstance(value, (set, frozenset)):
        return sorted((to_plain(e) for e in value), key=repr)
    return repr(value)


def canonical_key(value: Any) -> str:
    """Canonical serialization used for duplicate input detection."""
    return json.dumps(to_plain(value), sort_keys=True)
