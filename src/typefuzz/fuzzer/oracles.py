"""Oracles judging test outcomes and the classifier merging their verdicts."""

import copy
import math
import numbers
from collections.abc import Mapping
from typing import Any, List, Optional, Sequence, Tuple

from typefuzz.fuzzer.data_models import (
    NO_OUTPUT_SENTINEL,
    FuzzOptions,
    FuzzResultCategory,
    FuzzTestResult,
    IoElement,
    ValidatorInput,
    to_plain,
)
from typefuzz.fuzzer.function_def import FunctionRef
from typefuzz.fuzzer.sandbox import ExecutionSandbox
from typefuzz.utils.logger import get_logger


def implicit_oracle(x: Any) -> bool:
    """Return True only if x contains no None, NaN or infinite values.

    Lists, tuples and sets are checked element-wise and mappings
    value-wise, recursively.
    """
    if x is None:
        return False
    if isinstance(x, bool):
        return True
    if isinstance(x, numbers.Real):
        value = float(x)
        return not (math.isnan(value) or math.isinf(value))
    if isinstance(x, Mapping):
        return all(implicit_oracle(v) for v in x.values())
    if isinstance(x, (list, tuple, set, frozenset)):
        return all(implicit_oracle(e) for e in x)
    return True


def check_implicit(result: FuzzTestResult, is_void: bool) -> bool:
    """Apply the implicit oracle to a test result."""
    if result.exception or result.timeout:
        return False
    if is_void:
        return all(e.value is None for e in result.output)
    return all(implicit_oracle(e.value) for e in result.output)


def values_equal(actual: Any, expected: Any) -> bool:
    """Structural equality of plain values.

    Integers and floats compare as numbers, so ``2`` equals ``2.0``. Booleans
    only equal booleans, and NaN equals NaN.
    """
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if isinstance(actual, numbers.Real) and isinstance(expected, numbers.Real):
        if math.isnan(actual) and math.isnan(expected):
            return True
        return actual == expected
    if isinstance(actual, dict) and isinstance(expected, dict):
        return actual.keys() == expected.keys() and all(
            values_equal(actual[k], expected[k]) for k in actual
        )
    if isinstance(actual, list) and isinstance(expected, list):
        return len(actual) == len(expected) and all(
            values_equal(a, e) for a, e in zip(actual, expected)
        )
    return type(actual) is type(expected) and actual == expected


def actual_equals_expected(result: FuzzTestResult, expected: List[IoElement]) -> bool:
    """Compare an actual outcome with a human-provided expected output."""
    if result.timeout:
        return len(expected) > 0 and expected[0].is_timeout
    if result.exception:
        return len(expected) > 0 and expected[0].is_exception
    if any(e.is_timeout or e.is_exception for e in expected):
        return False
    actual_values = [e.value for e in result.output]
    expected_values = [e.value for e in expected]
    return values_equal(to_plain(actual_values), to_plain(expected_values))


def bad_value_type(result: FuzzTestResult) -> FuzzResultCategory:
    """Category for a failing outcome by its kind."""
    if result.exception:
        return FuzzResultCategory.EXCEPTION
    if result.timeout:
        return FuzzResultCategory.TIMEOUT
    return FuzzResultCategory.BAD_VALUE


def categorize_result(result: FuzzTestResult) -> FuzzResultCategory:
    """Merge the oracle verdicts of a result into one category.

    The human oracle and the validators take precedence over the implicit
    oracle. When both are present they must agree; otherwise the result is
    a disagreement. A validator that failed to run marks the test as a
    failure regardless of any verdict.
    """
    if result.validator_exception:
        return FuzzResultCategory.FAILURE

    human = result.passed_human
    prop = result.passed_validator

    if human is True:
        return FuzzResultCategory.DISAGREE if prop is False else FuzzResultCategory.OK
    if human is False:
        return FuzzResultCategory.DISAGREE if prop is True else bad_value_type(result)
    if prop is True:
        return FuzzResultCategory.OK
    if prop is False:
        return FuzzResultCategory.BAD_VALUE
    return FuzzResultCategory.OK if result.passed_implicit else bad_value_type(result)


class OracleEvaluator:
    """Runs the enabled oracles against a test result and categorizes it."""

    def __init__(self, options: FuzzOptions, is_void: bool,
                 validators: Sequence[Tuple[FunctionRef, ExecutionSandbox]] = ()):
        """Initialize the evaluator.

        Args:
            options: Fuzzer options selecting the oracles
            is_void: Whether the function under test returns nothing
            validators: Validator references paired with their sandboxes
        """
        self.options = options
        self.is_void = is_void
        self.validators = list(validators)
        self.logger = get_logger("OracleEvaluator")

    def evaluate(self, result: FuzzTestResult) -> FuzzResultCategory:
        """Fill in the oracle verdicts of a result and return its category."""
        if self.options.use_implicit:
            result.passed_implicit = check_implicit(result, self.is_void)

        if self.options.use_human and result.expected_output:
            result.passed_human = actual_equals_expected(result, result.expected_output)

        if self.options.use_property and self.validators:
            self._run_validators(result)

        result.category = categorize_result(result)
        return result.category

    def _run_validators(self, result: FuzzTestResult) -> None:
        output = result.output[0].value if result.output else NO_OUTPUT_SENTINEL
        validator_input = ValidatorInput(
            inputs=result.input_values(),
            output=output,
            exception=result.exception,
            timeout=result.timeout,
        )

        verdicts: List[Optional[bool]] = []
        for ref, sandbox in self.validators:
            outcome = sandbox.call([copy.deepcopy(validator_input)])
            error = self._validator_error(ref, outcome)
            if error is not None:
                verdicts.append(None)
                if not result.validator_exception:
                    result.validator_exception = True
                    result.validator_exception_function = ref.name
                    result.validator_exception_message = error
                self.logger.debug(f"Validator {ref.name} failed: {error}")
                continue
            verdicts.append(outcome.value)

        result.passed_validators = verdicts
        result.passed_validator = all(v is True for v in verdicts)

    @staticmethod
    def _validator_error(ref: FunctionRef, outcome) -> Optional[str]:
        if outcome.timeout:
            return f"Validator {ref.name} timed out after {outcome.elapsed_time:.0f}ms"
        if outcome.exception:
            return f"{outcome.exception_type}: {outcome.message}"
        if not isinstance(outcome.value, bool):
            return f"Validator {ref.name} returned {type(outcome.value).__name__}, expected bool"
        return None
