"""Type-directed fuzzing engine.

Generates inputs for a Python function from its type hints, runs each call
in a killable worker process, and judges every outcome with the implicit,
human and property oracles.
"""

__version__ = "1.0.0"

# Data Models
from typefuzz.fuzzer.data_models import (
    ArgType,
    Interval,
    ArgOptions,
    ArgDefaults,
    FuzzOptions,
    IoElement,
    FuzzPinnedTest,
    ValidatorInput,
    FuzzTestResult,
    FuzzTestResults,
    FuzzResultCategory,
    FuzzStopReason,
    ValidationResult,
    canonical_key,
)

# Base Interfaces
from typefuzz.fuzzer.base_interfaces import (
    BaseValueGenerator,
    BaseExecutor,
    FuzzerError,
    ConfigurationError,
    SandboxError,
    TargetResolutionError,
    PersistenceError,
)

# Argument and Function Model
from typefuzz.fuzzer.arg_def import ArgumentDef
from typefuzz.fuzzer.function_def import FunctionDef, FunctionRef, find_validators

# Configuration Management
from typefuzz.fuzzer.config_manager import (
    FuzzConfig,
    FuzzerConfigManager,
    get_fuzzer_config_manager,
    get_fuzzer_config,
)

# Core Components
from typefuzz.fuzzer.generators import create_generator
from typefuzz.fuzzer.sandbox import ExecutionSandbox, ExecutionOutcome
from typefuzz.fuzzer.oracles import OracleEvaluator, implicit_oracle, categorize_result
from typefuzz.fuzzer.fuzzer import FuzzEnv, setup, fuzz, check_stop_condition
from typefuzz.fuzzer.random_seed_manager import RandomSeedManager
from typefuzz.fuzzer.report import save_results, load_pinned_tests, collect_metrics, format_summary

__all__ = [
    # Data Models
    'ArgType',
    'Interval',
    'ArgOptions',
    'ArgDefaults',
    'FuzzOptions',
    'IoElement',
    'FuzzPinnedTest',
    'ValidatorInput',
    'FuzzTestResult',
    'FuzzTestResults',
    'FuzzResultCategory',
    'FuzzStopReason',
    'ValidationResult',
    'canonical_key',

    # Base Interfaces
    'BaseValueGenerator',
    'BaseExecutor',
    'FuzzerError',
    'ConfigurationError',
    'SandboxError',
    'TargetResolutionError',
    'PersistenceError',

    # Argument and Function Model
    'ArgumentDef',
    'FunctionDef',
    'FunctionRef',
    'find_validators',

    # Configuration Management
    'FuzzConfig',
    'FuzzerConfigManager',
    'get_fuzzer_config_manager',
    'get_fuzzer_config',

    # Core Components
    'create_generator',
    'ExecutionSandbox',
    'ExecutionOutcome',
    'OracleEvaluator',
    'implicit_oracle',
    'categorize_result',
    'FuzzEnv',
    'setup',
    'fuzz',
    'check_stop_condition',
    'RandomSeedManager',
    'save_results',
    'load_pinned_tests',
    'collect_metrics',
    'format_summary',

    # Convenience Functions
    'fuzz_function',
]


def fuzz_function(module, function_name, options=None, pinned_tests=(), overrides=None):
    """Convenience function to set up and fuzz a function in one call.

    Args:
        module: Dotted module name or path to a .py file
        function_name: Name of the function to fuzz
        options: FuzzOptions; defaults if None
        pinned_tests: Pinned tests to replay first
        overrides: Argument constraint overrides keyed by argument path

    Returns:
        FuzzTestResults of the run
    """
    env = setup(options or FuzzOptions(), module, function_name, overrides=overrides)
    return fuzz(env, pinned_tests)
