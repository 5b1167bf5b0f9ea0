"""Tests for the oracles and the result categorizer."""

import math

import pytest

import fuzz_targets
from typefuzz.fuzzer.data_models import (
    FuzzOptions,
    FuzzResultCategory,
    FuzzTestResult,
    IoElement,
)
from typefuzz.fuzzer.function_def import FunctionRef
from typefuzz.fuzzer.oracles import (
    OracleEvaluator,
    actual_equals_expected,
    categorize_result,
    check_implicit,
    implicit_oracle,
)
from typefuzz.fuzzer.sandbox import ExecutionSandbox


def _result(value=None, exception=False, timeout=False, inputs=(1, 2)):
    result = FuzzTestResult(
        input=[IoElement(str(i), i, v) for i, v in enumerate(inputs)],
        exception=exception,
        timeout=timeout,
    )
    if not exception and not timeout:
        result.output.append(IoElement("0", 0, value))
    return result


@pytest.mark.parametrize("value, expected", [
    ({"a": 1, "b": [1, 2, math.nan]}, False),
    ({"a": 1, "b": [1, 2]}, True),
    (None, False),
    (math.inf, False),
    (-math.inf, False),
    ((1, None), False),
    ({1.0, 2.0}, True),
    ("", True),
    (False, True),
    (0, True),
])
def test_implicit_oracle(value, expected):
    assert implicit_oracle(value) is expected


def test_check_implicit():
    assert check_implicit(_result(3), is_void=False)
    assert not check_implicit(_result(exception=True), is_void=False)
    assert not check_implicit(_result(timeout=True), is_void=False)
    assert check_implicit(_result(None), is_void=True)
    assert not check_implicit(_result(0), is_void=True)


def test_actual_equals_expected():
    assert actual_equals_expected(_result({"a": [1]}), [IoElement("0", 0, {"a": [1]})])
    assert not actual_equals_expected(_result(2), [IoElement("0", 0, 3)])

    assert actual_equals_expected(_result(3), [IoElement("0", 0, 3.0)])
    assert actual_equals_expected(_result((1.0, {"k": 2})), [IoElement("0", 0, [1, {"k": 2.0}])])
    assert actual_equals_expected(_result(math.nan), [IoElement("0", 0, math.nan)])
    assert not actual_equals_expected(_result(True), [IoElement("0", 0, 1)])
    assert not actual_equals_expected(_result([1, 2]), [IoElement("0", 0, [1, 2, 3])])
    assert not actual_equals_expected(_result("3"), [IoElement("0", 0, 3)])

    timed_out = [IoElement("0", 0, is_timeout=True)]
    assert actual_equals_expected(_result(timeout=True), timed_out)
    assert not actual_equals_expected(_result(None), timed_out)

    raised = [IoElement("0", 0, is_exception=True)]
    assert actual_equals_expected(_result(exception=True), raised)
    assert not actual_equals_expected(_result(timeout=True), raised)


@pytest.mark.parametrize("human, prop, implicit, kind, expected", [
    (True, False, True, None, FuzzResultCategory.DISAGREE),
    (True, True, False, None, FuzzResultCategory.OK),
    (True, None, False, None, FuzzResultCategory.OK),
    (False, True, True, None, FuzzResultCategory.DISAGREE),
    (False, False, True, "exception", FuzzResultCategory.EXCEPTION),
    (False, None, True, "timeout", FuzzResultCategory.TIMEOUT),
    (False, None, True, None, FuzzResultCategory.BAD_VALUE),
    (None, True, False, None, FuzzResultCategory.OK),
    (None, False, True, None, FuzzResultCategory.BAD_VALUE),
    (None, None, True, None, FuzzResultCategory.OK),
    (None, None, False, None, FuzzResultCategory.BAD_VALUE),
    (None, None, False, "exception", FuzzResultCategory.EXCEPTION),
])
def test_categorize_result(human, prop, implicit, kind, expected):
    result = _result(1, exception=kind == "exception", timeout=kind == "timeout")
    result.passed_human = human
    result.passed_validator = prop
    result.passed_implicit = implicit

    assert categorize_result(result) == expected


def test_exception_takes_precedence_over_timeout():
    result = _result(exception=True, timeout=True)
    result.passed_implicit = False

    assert categorize_result(result) == FuzzResultCategory.EXCEPTION


def test_validator_exception_is_failure():
    result = _result(1)
    result.passed_human = True
    result.validator_exception = True

    assert categorize_result(result) == FuzzResultCategory.FAILURE


def test_no_oracle_enabled_reports_ok():
    options = FuzzOptions(use_implicit=False, use_human=False, use_property=False)
    evaluator = OracleEvaluator(options, is_void=False)

    assert evaluator.evaluate(_result(exception=True)) == FuzzResultCategory.OK


def test_human_oracle_needs_expected_output():
    evaluator = OracleEvaluator(FuzzOptions(), is_void=False)
    plain = _result(3)
    evaluator.evaluate(plain)
    assert plain.passed_human is None

    pinned = _result(3)
    pinned.expected_output = [IoElement("0", 0, 4)]
    assert evaluator.evaluate(pinned) == FuzzResultCategory.BAD_VALUE
    assert pinned.passed_human is False

    float_output = _result(2.0)
    float_output.expected_output = [IoElement("0", 0, 2)]
    assert evaluator.evaluate(float_output) == FuzzResultCategory.OK
    assert float_output.passed_human is True


def test_validators_run_in_sandboxes():
    refs = [
        (FunctionRef("square_non_negative", "fuzz_targets"), fuzz_targets.square_non_negative),
        (FunctionRef("cube_non_negative", "fuzz_targets"), fuzz_targets.cube_non_negative),
    ]
    sandboxes = [(ref, ExecutionSandbox(fn, 1000)) for ref, fn in refs]
    try:
        evaluator = OracleEvaluator(FuzzOptions(), is_void=False, validators=sandboxes)
        result = _result(-8, inputs=(-2,))
        category = evaluator.evaluate(result)
    finally:
        for _, sandbox in sandboxes:
            sandbox.close()

    assert result.passed_validators == [False, False]
    assert result.passed_validator is False
    assert category == FuzzResultCategory.BAD_VALUE


@pytest.mark.parametrize("validator, fragment", [
    (fuzz_targets.negate_check, "RuntimeError"),
    (fuzz_targets.identity_check, "expected bool"),
])
def test_broken_validator_marks_failure(validator, fragment):
    ref = FunctionRef(validator.__name__, "fuzz_targets")
    with ExecutionSandbox(validator, 1000) as sandbox:
        evaluator = OracleEvaluator(FuzzOptions(), is_void=False, validators=[(ref, sandbox)])
        result = _result(1, inputs=(1,))
        category = evaluator.evaluate(result)

    assert category == FuzzResultCategory.FAILURE
    assert result.validator_exception
    assert result.validator_exception_function == validator.__name__
    assert fragment in result.validator_exception_message
    assert result.passed_validators == [None]
