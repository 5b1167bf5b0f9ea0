"""Argument model: type, shape and generation constraints of one argument."""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from typefuzz.fuzzer.base_interfaces import ConfigurationError
from typefuzz.fuzzer.data_models import (
    ArgDefaults,
    ArgOptions,
    ArgType,
    Interval,
    ValidationMixin,
    ValidationResult,
)


@dataclass
class ArgumentDef(ValidationMixin):
    """Describes one function argument.

    Instances are built once by the signature reader (or an external
    analyzer through ``from_dict``), mutated by override application during
    setup, and treated as read-only while values are generated.
    """
    name: str
    offset: int
    type: ArgType
    dimension: int = 0
    optional: bool = False
    children: List['ArgumentDef'] = field(default_factory=list)
    intervals: List[Interval] = field(default_factory=list)
    options: ArgOptions = field(default_factory=ArgOptions)

    def __str__(self) -> str:
        dims = "[]" * self.dimension
        opt = "?" if self.optional else ""
        return f"{self.name}{opt}: {self.type.value}{dims}"

    @classmethod
    def create(
        cls,
        name: str,
        offset: int,
        arg_type: ArgType,
        defaults: Optional[ArgDefaults] = None,
        dimension: int = 0,
        optional: bool = False,
        children: Optional[List['ArgumentDef']] = None,
    ) -> 'ArgumentDef':
        """Create an argument whose constraints are taken from the defaults.

        Args:
            name: Argument name
            offset: Position of the argument (or child) in its parent
            arg_type: Type tag of the scalar element
            defaults: Argument defaults; dataclass defaults if None
            dimension: Array nesting depth (0 = scalar)
            optional: Whether the argument may be omitted
            children: Child arguments for objects

        Returns:
            A normalized ArgumentDef
        """
        defaults = defaults or ArgDefaults()
        arg = cls(
            name=name,
            offset=offset,
            type=arg_type,
            dimension=dimension,
            optional=optional,
            children=list(children or []),
        )
        arg.intervals = cls.default_intervals(arg_type, defaults)
        arg.set_options(ArgOptions(
            num_integer=defaults.num_integer,
            str_length=Interval(defaults.str_min_len, defaults.str_max_len),
            str_charset=defaults.str_charset,
            dim_length=[
                Interval(defaults.dim_min_len, defaults.dim_max_len)
                for _ in range(dimension)
            ],
        ))
        return arg

    @staticmethod
    def default_intervals(arg_type: ArgType, defaults: ArgDefaults) -> List[Interval]:
        """Get the default candidate value ranges for a type."""
        if arg_type == ArgType.NUMBER:
            return [Interval(defaults.num_min, defaults.num_max).sorted()]
        if arg_type == ArgType.BOOLEAN:
            return [Interval(False, True)]
        if arg_type == ArgType.STRING:
            return [Interval("", "")]
        return []

    # ---------------------------------------------------------------- setters

    def set_intervals(self, intervals: List[Any]) -> None:
        """Replace the candidate value ranges, sorting reversed bounds.

        Args:
            intervals: Intervals, {min, max} mappings or (min, max) pairs
        """
        if self.type == ArgType.OBJECT:
            raise ConfigurationError(f"Argument {self.name} of type {self.type.value} has no intervals")

        normalized = []
        for value in intervals:
            try:
                interval = Interval.from_value(value)
                if self.type == ArgType.NUMBER:
                    interval = Interval(_to_number(interval.min), _to_number(interval.max))
                elif self.type == ArgType.BOOLEAN:
                    interval = Interval(bool(interval.min), bool(interval.max))
                else:
                    interval = Interval(str(interval.min), str(interval.max))
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid interval for {self.name}: {value!r}") from e
            normalized.append(interval.sorted())
        self.intervals = normalized

    def set_options(self, options: ArgOptions) -> None:
        """Replace generation options, normalizing string and array lengths."""
        str_length = Interval.from_value(options.str_length)
        if str_length.max < str_length.min:
            str_length = Interval(str_length.min, str_length.min)

        dim_length = [Interval.from_value(e).sorted() for e in options.dim_length]
        fallback = dim_length[-1] if dim_length else Interval(0, 4)
        while len(dim_length) < self.dimension:
            dim_length.append(Interval(fallback.min, fallback.max))

        self.options = ArgOptions(
            num_integer=bool(options.num_integer),
            str_length=str_length,
            str_charset=options.str_charset,
            dim_length=dim_length,
        )

    def apply_override(self, override: Dict[str, Any]) -> None:
        """Apply a user override to this argument's constraints.

        Recognized keys: ``min``/``max`` (both required together),
        ``num_integer``, ``min_str_len``/``max_str_len``, ``str_charset``
        and ``dim_length`` (list of {min, max}).

        Args:
            override: Override values

        Raises:
            ConfigurationError: If an override value is malformed
        """
        unknown = set(override) - {
            "min", "max", "num_integer", "min_str_len", "max_str_len",
            "str_charset", "dim_length",
        }
        if unknown:
            raise ConfigurationError(f"Unknown override keys for {self.name}: {sorted(unknown)}")

        if ("min" in override) != ("max" in override):
            raise ConfigurationError(f"Override for {self.name} needs both min and max")

        try:
            if "min" in override:
                self.set_intervals([Interval(override["min"], override["max"])])

            options = ArgOptions(
                num_integer=self.options.num_integer,
                str_length=self.options.str_length,
                str_charset=self.options.str_charset,
                dim_length=list(self.options.dim_length),
            )
            if "num_integer" in override:
                options.num_integer = bool(override["num_integer"])
            if "min_str_len" in override or "max_str_len" in override:
                options.str_length = Interval(
                    int(override.get("min_str_len", options.str_length.min)),
                    int(override.get("max_str_len", options.str_length.max)),
                )
            if "str_charset" in override:
                options.str_charset = str(override["str_charset"])
            if "dim_length" in override:
                options.dim_length = [Interval.from_value(e) for e in override["dim_length"]]
                options.dim_length = [
                    Interval(int(e.min), int(e.max)) for e in options.dim_length
                ]
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid override for {self.name}: {e}") from e

        self.set_options(options)

    # --------------------------------------------------------------- queries

    def flatten(self, prefix: str = "") -> List[tuple]:
        """Get (path, argument) pairs for this argument and its descendants."""
        path = f"{prefix}{self.name}"
        flat = [(path, self)]
        for child in self.children:
            flat.extend(child.flatten(f"{path}."))
        return flat

    def validate(self) -> ValidationResult:
        """Validate the argument's constraints."""
        result = ValidationResult(is_valid=True)

        if not isinstance(self.type, ArgType):
            result.add_error(f"Unsupported argument type: {self.type!r}")
            return result

        for error in self._validate_non_negative(self.dimension, "dimension"):
            result.add_error(error)

        if self.type == ArgType.OBJECT:
            if self.intervals:
                result.add_warning("Object arguments ignore intervals")
            names = [c.name for c in self.children]
            if len(names) != len(set(names)):
                result.add_error("Duplicate child names found")
            for child in self.children:
                result.merge(child.validate(), child.name)
        else:
            if not self.intervals:
                result.add_error("At least one interval is required")
            elif self.intervals[0].max < self.intervals[0].min:
                result.add_error("intervals[0].min must not exceed intervals[0].max")

        finite = True
        if self.type == ArgType.NUMBER:
            for index, interval in enumerate(self.intervals):
                if not (math.isfinite(interval.min) and math.isfinite(interval.max)):
                    finite = False
                    result.add_error(f"intervals[{index}] bounds must be finite numbers")

        if self.type == ArgType.NUMBER and self.intervals and finite and self.options.num_integer:
            primary = self.intervals[0]
            if math.ceil(primary.min) > math.floor(primary.max):
                result.add_error(f"No integer lies within [{primary.min}, {primary.max}]")

        if self.type == ArgType.STRING:
            length = self.options.str_length
            for error in self._validate_non_negative(length.min, "str_length.min"):
                result.add_error(error)
            for error in self._validate_non_negative(length.max, "str_length.max"):
                result.add_error(error)
            if not self.options.str_charset:
                result.add_error("str_charset cannot be empty")

        if len(self.options.dim_length) < self.dimension:
            result.add_error(f"dim_length needs {self.dimension} intervals")
        for dim, interval in enumerate(self.options.dim_length[:self.dimension]):
            for error in self._validate_non_negative(interval.min, f"dim_length[{dim}].min"):
                result.add_error(error)

        return result

    # ---------------------------------------------------------- conversions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "offset": self.offset,
            "type": self.type.value,
            "dimension": self.dimension,
            "optional": self.optional,
            "children": [c.to_dict() for c in self.children],
            "intervals": [i.to_dict() for i in self.intervals],
            "options": self.options.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], defaults: Optional[ArgDefaults] = None) -> 'ArgumentDef':
        """Build an argument from an analyzer-provided dictionary.

        Raises:
            ConfigurationError: If the type tag is unknown
        """
        try:
            arg_type = ArgType(data["type"])
        except (KeyError, ValueError) as e:
            raise ConfigurationError(f"Unsupported argument type: {data.get('type')!r}") from e

        children = [
            cls.from_dict(child, defaults) for child in data.get("children", [])
        ]
        arg = cls.create(
            name=data["name"],
            offset=int(data.get("offset", 0)),
            arg_type=arg_type,
            defaults=defaults,
            dimension=int(data.get("dimension", 0)),
            optional=bool(data.get("optional", False)),
            children=children,
        )
        if data.get("intervals"):
            arg.set_intervals(data["intervals"])
        if data.get("options"):
            raw = data["options"]
            arg.set_options(ArgOptions(
                num_integer=raw.get("num_integer", arg.options.num_integer),
                str_length=raw.get("str_length", arg.options.str_length),
                str_charset=raw.get("str_charset", arg.options.str_charset),
                dim_length=raw.get("dim_length", arg.options.dim_length),
            ))
        return arg


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Expected a number, got {value!r}")
    if isinstance(value, (int, float)):
        return value
    try:
        return int(value)
    except ValueError:
        return float(value)
