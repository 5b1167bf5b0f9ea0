"""The fuzz loop: environment setup, input generation, execution and stopping."""

import copy
import time
from collections import deque
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Set, Tuple, Union

from typefuzz.fuzzer.base_interfaces import ConfigurationError, PersistenceError
from typefuzz.fuzzer.data_models import (
    FuzzOptions,
    FuzzPinnedTest,
    FuzzResultCategory,
    FuzzStopReason,
    FuzzTestResult,
    FuzzTestResults,
    IoElement,
    canonical_key,
)
from typefuzz.fuzzer.function_def import (
    FunctionDef,
    FunctionRef,
    find_validators,
    load_module,
    resolve_function,
)
from typefuzz.fuzzer.generators import create_generator, maybe_omit
from typefuzz.fuzzer.oracles import OracleEvaluator
from typefuzz.fuzzer.random_seed_manager import RandomSeedManager
from typefuzz.fuzzer.report import save_results
from typefuzz.fuzzer.sandbox import ExecutionSandbox
from typefuzz.utils.logger import Logger, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FuzzEnv:
    """Immutable snapshot of everything one fuzzing run needs.

    The target and validator callables are resolved once, when the
    environment is built.
    """
    options: FuzzOptions
    function: FunctionDef
    target: Callable
    validators: Tuple[Tuple[FunctionRef, Callable], ...] = ()

    @classmethod
    def from_callable(
        cls,
        fn: Callable,
        options: Optional[FuzzOptions] = None,
        validators: Sequence[Callable] = (),
        overrides: Optional[Dict[str, Dict[str, Any]]] = None,
        function: Optional[FunctionDef] = None,
    ) -> 'FuzzEnv':
        """Build an environment for an already imported callable.

        Args:
            fn: Function under test
            options: Fuzzer options; defaults if None
            validators: Property validator callables
            overrides: Argument constraint overrides keyed by argument path
            function: Externally built signature; read from type hints if None

        Returns:
            FuzzEnv for the callable

        Raises:
            ConfigurationError: If options or argument constraints are invalid
        """
        options = copy.deepcopy(options) if options is not None else FuzzOptions()
        _check_options(options)

        if function is None:
            function = FunctionDef.from_callable(fn, options.arg_defaults)
        else:
            function = copy.deepcopy(function)
        if overrides:
            function.apply_overrides(overrides)
        _check_function(function)

        refs = tuple(
            (FunctionRef(getattr(v, "__name__", repr(v)), getattr(v, "__module__", "") or ""), v)
            for v in validators
        )
        return cls(options=options, function=function, target=fn, validators=refs)


@dataclass
class RunState:
    """Mutable counters owned by a single fuzz() call."""
    inputs_generated: int = 0
    inputs_saved: int = 0
    current_dupe_count: int = 0
    total_dupe_count: int = 0
    failure_count: int = 0
    seen: Set[str] = field(default_factory=set)


def setup(
    options: FuzzOptions,
    module: Union[str, Path],
    function_name: str,
    overrides: Optional[Dict[str, Dict[str, Any]]] = None,
) -> FuzzEnv:
    """Build the environment required by fuzz().

    The module is loaded fresh so edits made since the last run are picked up.

    Args:
        options: Fuzzer option set
        module: Dotted module name or path to a ``.py`` file
        function_name: Name of the function to fuzz
        overrides: Argument constraint overrides keyed by argument path

    Returns:
        A fuzz environment

    Raises:
        ConfigurationError: If the options or argument constraints are invalid
        TargetResolutionError: If the function cannot be found or is not callable
    """
    options = copy.deepcopy(options)
    _check_options(options)

    mod = load_module(module)
    fn = resolve_function(mod, function_name)
    function = FunctionDef.from_callable(fn, options.arg_defaults, module=mod.__name__)
    if overrides:
        function.apply_overrides(overrides)
    _check_function(function)

    validators = tuple(
        (ref, resolve_function(mod, ref.name))
        for ref in find_validators(mod, function_name)
    )
    if validators:
        logger.info(f"Found {len(validators)} validator(s) for {function_name}: "
                    f"{', '.join(ref.name for ref, _ in validators)}")

    return FuzzEnv(options=options, function=function, target=fn, validators=validators)


def fuzz(env: FuzzEnv, pinned_tests: Iterable[FuzzPinnedTest] = ()) -> FuzzTestResults:
    """Fuzz the function of an environment and return the test results.

    Pinned tests are replayed first, in order, and do not count against
    ``max_tests``.

    Args:
        env: Fuzz environment (created by calling setup())
        pinned_tests: Previously saved tests to replay

    Returns:
        FuzzTestResults of the run

    Raises:
        ConfigurationError: If the options are invalid or a callable cannot be sandboxed
    """
    options = env.options
    _check_options(options)
    _check_function(env.function)

    seeds = RandomSeedManager(options.seed)
    results = FuzzTestResults(function_name=env.function.name, seed=seeds.get_master_seed())
    state = RunState()
    none_rate = options.arg_defaults.optional_none_rate

    # Build a generator for each argument, each with its own PRNG stream
    arg_gens = []
    for arg in env.function.get_arg_defs():
        rng = seeds.get_random_instance("argument", f"{arg.offset}:{arg.name}")
        arg_gens.append((arg, create_generator(arg, rng, none_rate), rng))

    pinned = deque(pinned_tests)
    has_args = bool(arg_gens)

    logger.info(f"Fuzzing {env.function.name} (seed={results.seed!r}, "
                f"{len(pinned)} pinned test(s), max_tests={options.max_tests})")

    with ExitStack() as stack:
        sandbox = stack.enter_context(
            ExecutionSandbox(env.target, options.fn_timeout, name=env.function.name)
        )
        validator_sandboxes = []
        if options.use_property:
            for ref, validator in env.validators:
                validator_sandboxes.append(
                    (ref, stack.enter_context(ExecutionSandbox(validator, options.fn_timeout, name=ref.name)))
                )
        evaluator = OracleEvaluator(options, env.function.is_void, validator_sandboxes)

        start = time.monotonic()
        while True:
            stop_reason = check_stop_condition(options, state, _elapsed_ms(start))
            if stop_reason is not None:
                results.stop_reason = stop_reason
                results.elapsed_time = _elapsed_ms(start)
                results.inputs_generated = state.inputs_generated
                results.dupes_generated = state.total_dupe_count
                results.inputs_saved = state.inputs_saved
                break

            result = FuzzTestResult()
            from_pinned = bool(pinned)
            if from_pinned:
                pinned_test = pinned.popleft()
                result.input = copy.deepcopy(pinned_test.input)
                result.pinned = pinned_test.pinned
                if pinned_test.expected_output:
                    result.expected_output = copy.deepcopy(pinned_test.expected_output)
            else:
                result.input = [
                    IoElement(arg.name, arg.offset, maybe_omit(arg, gen, rng, none_rate))
                    for arg, gen, rng in arg_gens
                ]
                state.inputs_generated += 1

            # Skip inputs already tested in this run
            input_key = canonical_key(result.input_values())
            if input_key in state.seen:
                if from_pinned:
                    logger.debug(f"Skipping duplicate pinned test {Logger.format_result(result)}")
                else:
                    state.current_dupe_count += 1
                    state.total_dupe_count += 1
                continue
            state.current_dupe_count = 0
            if has_args:
                state.seen.add(input_key)
            if from_pinned:
                state.inputs_saved += 1

            _execute(sandbox, result)

            if evaluator.evaluate(result) != FuzzResultCategory.OK:
                state.failure_count += 1

            logger.debug(f"Test {Logger.format_result(result)}")

            if not options.only_failures or result.category != FuzzResultCategory.OK:
                results.results.append(result)

    logger.info(
        f"Fuzzing {env.function.name} stopped ({results.stop_reason.value}) after "
        f"{results.elapsed_time:.0f}ms: {results.inputs_generated} generated, "
        f"{results.dupes_generated} duplicates, {state.failure_count} failing"
    )

    # Persist to the output file, if requested
    if options.output_file:
        try:
            save_results(results, options.output_file)
        except PersistenceError as e:
            results.persist_error = str(e)
            logger.error(f"Could not save results: {e}")

    return results


def check_stop_condition(options: FuzzOptions, state: RunState,
                         elapsed_ms: float) -> Optional[FuzzStopReason]:
    """Check whether the fuzzer should stop and return the reason, if any.

    Conditions are checked in priority order; the first match wins.
    """
    if elapsed_ms >= options.suite_timeout:
        return FuzzStopReason.MAXTIME

    if state.inputs_generated - state.total_dupe_count >= options.max_tests:
        return FuzzStopReason.MAXTESTS

    if options.max_failures != 0 and state.failure_count >= options.max_failures:
        return FuzzStopReason.MAXFAILURES

    if state.current_dupe_count >= options.max_dupe_inputs:
        return FuzzStopReason.MAXDUPES

    return None


def _execute(sandbox: ExecutionSandbox, result: FuzzTestResult) -> None:
    # Deep copy protects the stored input from in-place mutation
    outcome = sandbox.call(copy.deepcopy(result.input_values()))
    result.elapsed_time = outcome.elapsed_time
    if outcome.timeout:
        result.timeout = True
    elif outcome.exception:
        result.exception = True
        result.exception_message = outcome.message
        result.exception_stack = outcome.stack
    else:
        result.output.append(IoElement(name="0", offset=0, value=outcome.value))


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000


def _check_options(options: FuzzOptions) -> None:
    validation = options.validate()
    for warning in validation.warnings:
        logger.warning(f"Configuration warning: {warning}")
    if not validation.is_valid:
        error_msg = f"Invalid options provided: {'; '.join(validation.errors)}"
        logger.error(error_msg)
        raise ConfigurationError(error_msg)


def _check_function(function: FunctionDef) -> None:
    validation = function.validate()
    for warning in validation.warnings:
        logger.warning(f"Argument warning for {function.name}: {warning}")
    if not validation.is_valid:
        error_msg = f"Invalid arguments for {function.name}: {'; '.join(validation.errors)}"
        logger.error(error_msg)
        raise ConfigurationError(error_msg)
