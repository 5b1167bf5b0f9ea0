"""Tests for timeout-bounded sandboxed execution."""

import pytest

import fuzz_targets
from typefuzz.fuzzer.base_interfaces import ConfigurationError, SandboxError
from typefuzz.fuzzer.sandbox import ExecutionSandbox


def test_returns_value():
    with ExecutionSandbox(fuzz_targets.add, 1000) as sandbox:
        outcome = sandbox.call([2, 3])

    assert outcome.value == 5
    assert not outcome.exception
    assert not outcome.timeout
    assert outcome.elapsed_time >= 0


def test_captures_exception():
    with ExecutionSandbox(fuzz_targets.divide, 1000) as sandbox:
        outcome = sandbox.call([1, 0])

    assert outcome.exception
    assert outcome.exception_type == "ZeroDivisionError"
    assert "division" in outcome.message
    assert "Traceback" in outcome.stack


def test_timeout_kills_and_recovers():
    """A runaway call is cut off and the next call gets a fresh worker."""
    with ExecutionSandbox(fuzz_targets.spin, 100) as sandbox:
        outcome = sandbox.call([0])
        assert outcome.timeout
        assert not outcome.exception
        assert outcome.elapsed_time >= 90
        assert sandbox.timeouts == 1

        # The same sandbox keeps serving calls after the kill
        assert sandbox.call([0]).timeout

    with ExecutionSandbox(fuzz_targets.add, 1000) as sandbox:
        assert sandbox.call([1, 1]).value == 2


def test_worker_restarts_after_timeout():
    with ExecutionSandbox(fuzz_targets.spin, 50) as sandbox:
        assert sandbox.call([0]).timeout
        assert sandbox.call([1]).timeout
        assert sandbox.restarts == 1
        assert sandbox.calls == 2


def test_arguments_are_not_shared():
    """Mutation inside the worker never reaches the caller's values."""
    values = [1, 2]
    with ExecutionSandbox(fuzz_targets.consume, 1000) as sandbox:
        assert sandbox.call([values]).value == 3
        assert sandbox.call([values]).value == 3

    assert values == [1, 2]


def test_rejects_bad_targets():
    with pytest.raises(SandboxError):
        ExecutionSandbox(42, 100)
    with pytest.raises(SandboxError):
        ExecutionSandbox(fuzz_targets.add, 0)


def test_sandbox_error_is_configuration_error():
    assert issubclass(SandboxError, ConfigurationError)


def test_close_is_idempotent():
    sandbox = ExecutionSandbox(fuzz_targets.add, 1000)
    sandbox.close()
    sandbox.call([1, 2])
    sandbox.close()
    sandbox.close()
