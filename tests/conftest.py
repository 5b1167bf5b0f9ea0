"""Pytest configuration for typefuzz."""

import os
import sys

import pytest

# Add src and the tests directory (for fuzz_targets) to path
TESTS_DIR = os.path.dirname(__file__)
sys.path.insert(0, os.path.join(TESTS_DIR, '..', 'src'))
sys.path.insert(0, TESTS_DIR)

from typefuzz.fuzzer.data_models import FuzzOptions  # noqa: E402


@pytest.fixture
def options():
    """Options with a generous suite budget so runs stop on test counts."""
    return FuzzOptions(suite_timeout=60000, fn_timeout=1000, seed="x")
