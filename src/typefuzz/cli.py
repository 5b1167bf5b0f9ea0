"""Command-line interface for typefuzz."""

import sys
from typing import List, Optional

from typefuzz.config import APP, DEFAULTS, DISPLAY, parse_arguments
from typefuzz.fuzzer.base_interfaces import ConfigurationError, FuzzerError, PersistenceError
from typefuzz.fuzzer.config_manager import FuzzerConfigManager
from typefuzz.fuzzer.fuzzer import fuzz, setup
from typefuzz.fuzzer.report import format_summary, load_pinned_tests
from typefuzz.utils.logger import Logger, get_logger


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI tool."""
    args = parse_arguments(argv)

    Logger.configure(level=args.log_level, log_to_file=args.log_to_file, log_dir=DEFAULTS.LOG_DIR)
    logger = get_logger("cli")

    try:
        config = FuzzerConfigManager(args.config).load_config()
        config = _apply_cli_overrides(config, args)

        pinned_tests = load_pinned_tests(args.pinned) if args.pinned else []

        env = setup(config.options, args.module, args.function, overrides=config.arguments)
    except (ConfigurationError, PersistenceError) as e:
        logger.error(f"Configuration error: {e}")
        return APP.EXIT_CONFIG_ERROR
    except FuzzerError as e:
        logger.error(f"Setup failed: {e}")
        return APP.EXIT_CONFIG_ERROR

    try:
        results = fuzz(env, pinned_tests)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return APP.EXIT_CONFIG_ERROR

    print(format_summary(results, DISPLAY.SEPARATOR_LENGTH))

    failures = results.failures()
    for result in failures[:DISPLAY.MAX_FAILURES_SHOWN]:
        print(f"  {Logger.format_result(result)}")
    if len(failures) > DISPLAY.MAX_FAILURES_SHOWN:
        print(f"  ... and {len(failures) - DISPLAY.MAX_FAILURES_SHOWN} more")

    return APP.EXIT_FAILURE if failures else APP.EXIT_SUCCESS


def _apply_cli_overrides(config, args):
    """Merge command line flags over the loaded configuration."""
    options = config.options
    cli_values = {
        'max_tests': args.max_tests,
        'max_dupe_inputs': args.max_dupes,
        'max_failures': args.max_failures,
        'suite_timeout': args.suite_timeout,
        'fn_timeout': args.fn_timeout,
        'seed': args.seed,
        'output_file': args.output,
    }
    for name, value in cli_values.items():
        if value is not None:
            setattr(options, name, value)

    if args.only_failures:
        options.only_failures = True
    if args.no_implicit:
        options.use_implicit = False
    if args.no_human:
        options.use_human = False
    if args.no_property:
        options.use_property = False

    for path, override in args.arg_overrides:
        config.arguments.setdefault(path, {}).update(override)

    return config


if __name__ == "__main__":
    sys.exit(main())
