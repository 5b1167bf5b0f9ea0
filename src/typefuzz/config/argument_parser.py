"""Argument parsing for the typefuzz command line."""

import argparse
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .constants import DEFAULTS, APP


def parse_arg_override(text: str) -> Tuple[str, Dict[str, Any]]:
    """Parse an ``PATH=MIN:MAX`` argument override.

    Bounds are read as YAML scalars, so ``x=0:10``, ``ratio=0.5:1.5`` and
    ``flag=true:true`` all work.

    Raises:
        argparse.ArgumentTypeError: If the text is malformed
    """
    path, sep, bounds = text.partition('=')
    low, colon, high = bounds.partition(':')
    if not sep or not colon or not path.strip():
        raise argparse.ArgumentTypeError(f"expected PATH=MIN:MAX, got {text!r}")
    try:
        return path.strip(), {'min': yaml.safe_load(low), 'max': yaml.safe_load(high)}
    except yaml.YAMLError as e:
        raise argparse.ArgumentTypeError(f"invalid bounds in {text!r}: {e}") from e


class ArgumentParserBuilder:
    """Builder for creating argument parser with fluent interface."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="typefuzz",
            description="typefuzz - Fuzz Python functions from their type hints",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_usage_examples()
        )
        self._add_core_arguments()
        self._add_limit_arguments()
        self._add_oracle_arguments()
        self._add_optional_arguments()

    def _add_core_arguments(self) -> None:
        """Add core required arguments."""
        self.parser.add_argument(
            'module',
            type=str,
            help='Dotted module name or path to a .py file'
        )

        self.parser.add_argument(
            'function',
            type=str,
            help='Name of the function to fuzz'
        )

        self.parser.add_argument(
            '--config', '-c',
            type=str,
            default=DEFAULTS.CONFIG_FILE,
            help=f'YAML configuration file (default: {DEFAULTS.CONFIG_FILE})'
        )

    def _add_limit_arguments(self) -> None:
        """Add run limit arguments; unset flags keep the configured value."""
        self.parser.add_argument('--max-tests', type=int, help='Maximum number of distinct tests')
        self.parser.add_argument('--max-dupes', type=int, help='Maximum consecutive duplicate inputs')
        self.parser.add_argument('--max-failures', type=int, help='Stop after this many failures (0 = unlimited)')
        self.parser.add_argument('--suite-timeout', type=float, help='Run time budget in milliseconds')
        self.parser.add_argument('--fn-timeout', type=float, help='Per-call time budget in milliseconds')
        self.parser.add_argument('--seed', type=str, help='Seed for reproducible input generation')

    def _add_oracle_arguments(self) -> None:
        """Add oracle selection arguments."""
        self.parser.add_argument('--no-implicit', action='store_true', help='Disable the implicit oracle')
        self.parser.add_argument('--no-human', action='store_true', help='Disable the human oracle')
        self.parser.add_argument('--no-property', action='store_true', help='Disable property validators')

    def _add_optional_arguments(self) -> None:
        """Add optional configuration arguments."""
        self.parser.add_argument(
            '--arg',
            dest='arg_overrides',
            type=parse_arg_override,
            action='append',
            default=[],
            metavar='PATH=MIN:MAX',
            help='Override the value range of an argument (repeatable)'
        )

        self.parser.add_argument(
            '--pinned',
            type=str,
            help='JSON or YAML file with pinned tests to replay first'
        )

        self.parser.add_argument(
            '--output', '-o',
            type=str,
            help='Write results to this .json or .yaml file'
        )

        self.parser.add_argument(
            '--only-failures',
            action='store_true',
            help='Only keep failing tests in the results'
        )

        self.parser.add_argument(
            '--log-level',
            type=str,
            choices=APP.log_levels,
            default=DEFAULTS.LOG_LEVEL,
            help=f'Logging level (default: {DEFAULTS.LOG_LEVEL})'
        )

        self.parser.add_argument(
            '--log-to-file',
            action='store_true',
            help=f'Also write a log file under {DEFAULTS.LOG_DIR}/'
        )

        self.parser.add_argument(
            '--version', '-V',
            action='version',
            version=APP.VERSION
        )

    def _get_usage_examples(self) -> str:
        """Get formatted usage examples."""
        return """
Examples:
  # Fuzz a function of an importable module
  typefuzz mypkg.geometry area

  # Fuzz a function in a file with a fixed seed and a narrower range
  typefuzz ./calc.py divide --seed demo --arg b=1:100

  # Keep only failures and save them as YAML
  typefuzz mypkg.text slugify --only-failures --output out/slugify.yaml
        """

    def build(self) -> argparse.ArgumentParser:
        """Build and return the configured parser."""
        return self.parser


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments using builder pattern."""
    parser = ArgumentParserBuilder().build()
    return parser.parse_args(argv)
