"""Command-line configuration module."""

from .constants import DISPLAY, DEFAULTS, APP
from .argument_parser import ArgumentParserBuilder, parse_arguments, parse_arg_override

__all__ = [
    'DISPLAY',
    'DEFAULTS',
    'APP',
    'ArgumentParserBuilder',
    'parse_arguments',
    'parse_arg_override',
]
