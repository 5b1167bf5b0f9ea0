"""Value generators producing concrete argument values from a seeded PRNG."""

import math
import random
from typing import Any, Dict, List

from typefuzz.fuzzer.arg_def import ArgumentDef
from typefuzz.fuzzer.base_interfaces import BaseValueGenerator, ConfigurationError
from typefuzz.fuzzer.data_models import ArgType, Interval


class NumberGenerator(BaseValueGenerator):
    """Draws integers or floats from the primary interval."""

    def __init__(self, arg: ArgumentDef, rng: random.Random):
        self.rng = rng
        primary = arg.intervals[0]
        self.integer = arg.options.num_integer
        if self.integer:
            self.low = math.ceil(primary.min)
            self.high = math.floor(primary.max)
            if self.low > self.high:
                raise ConfigurationError(
                    f"No integer lies within [{primary.min}, {primary.max}] for {arg.name}"
                )
        else:
            self.low = float(primary.min)
            self.high = float(primary.max)

    def generate(self) -> Any:
        if self.integer:
            return self.rng.randint(self.low, self.high)
        return self.rng.uniform(self.low, self.high)


class StringGenerator(BaseValueGenerator):
    """Draws a length, then that many characters from the charset."""

    def __init__(self, arg: ArgumentDef, rng: random.Random):
        self.rng = rng
        self.min_len = max(0, int(arg.options.str_length.min))
        self.max_len = max(self.min_len, int(arg.options.str_length.max))
        self.charset = arg.options.str_charset
        if not self.charset:
            raise ConfigurationError(f"Empty character set for {arg.name}")

    def generate(self) -> str:
        length = self.rng.randint(self.min_len, self.max_len)
        return "".join(self.rng.choice(self.charset) for _ in range(length))


class BooleanGenerator(BaseValueGenerator):
    """Returns the fixed value of a degenerate interval, else a coin flip."""

    def __init__(self, arg: ArgumentDef, rng: random.Random):
        self.rng = rng
        primary = arg.intervals[0]
        self.fixed = primary.min if primary.min == primary.max else None

    def generate(self) -> bool:
        if self.fixed is not None:
            return self.fixed
        return self.rng.random() < 0.5


class ObjectGenerator(BaseValueGenerator):
    """Generates each child independently into a dict keyed by child name.

    The object generator is the caller context of its children, so it also
    applies the omission policy for optional children.
    """

    def __init__(self, arg: ArgumentDef, rng: random.Random, none_rate: float = 0.0):
        self.rng = rng
        self.none_rate = none_rate
        self.children = [
            (child, create_generator(child, rng, none_rate)) for child in arg.children
        ]

    def generate(self) -> Dict[str, Any]:
        return {
            child.name: maybe_omit(child, gen, self.rng, self.none_rate)
            for child, gen in self.children
        }


class ArrayGenerator(BaseValueGenerator):
    """Generates nested lists, outermost dimension first."""

    def __init__(self, length: Interval, element: BaseValueGenerator, rng: random.Random):
        self.rng = rng
        self.min_len = max(0, int(length.min))
        self.max_len = max(self.min_len, int(length.max))
        self.element = element

    def generate(self) -> List[Any]:
        length = self.rng.randint(self.min_len, self.max_len)
        return [self.element.generate() for _ in range(length)]


_SCALAR_GENERATORS = {
    ArgType.NUMBER: NumberGenerator,
    ArgType.STRING: StringGenerator,
    ArgType.BOOLEAN: BooleanGenerator,
}


def create_generator(arg: ArgumentDef, rng: random.Random, none_rate: float = 0.0) -> BaseValueGenerator:
    """Build the generator for an argument.

    Args:
        arg: Normalized argument definition
        rng: PRNG stream the generator draws from
        none_rate: Omission rate for optional object children

    Returns:
        A generator whose ``generate()`` always returns a value

    Raises:
        ConfigurationError: If the argument's type tag is not supported
    """
    if arg.type == ArgType.OBJECT:
        scalar: BaseValueGenerator = ObjectGenerator(arg, rng, none_rate)
    elif arg.type in _SCALAR_GENERATORS:
        if not arg.intervals:
            raise ConfigurationError(f"Argument {arg.name} has no intervals")
        scalar = _SCALAR_GENERATORS[arg.type](arg, rng)
    else:
        raise ConfigurationError(f"Unsupported argument type for {arg.name}: {arg.type!r}")

    if len(arg.options.dim_length) < arg.dimension:
        raise ConfigurationError(f"Argument {arg.name} needs {arg.dimension} dim_length intervals")

    # Wrap innermost first so the outermost dimension uses dim_length[0]
    generator = scalar
    for dim in reversed(range(arg.dimension)):
        generator = ArrayGenerator(arg.options.dim_length[dim], generator, rng)
    return generator


def maybe_omit(arg: ArgumentDef, generator: BaseValueGenerator,
               rng: random.Random, none_rate: float) -> Any:
    """Generate a value, replacing it by None for optional arguments at ``none_rate``."""
    if arg.optional and none_rate > 0 and rng.random() < none_rate:
        return None
    return generator.generate()
