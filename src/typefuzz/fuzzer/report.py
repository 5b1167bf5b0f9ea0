"""Result persistence, pinned test loading and run metrics."""

import json
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from typefuzz.fuzzer.base_interfaces import PersistenceError
from typefuzz.fuzzer.data_models import (
    FuzzPinnedTest,
    FuzzResultCategory,
    FuzzTestResults,
)
from typefuzz.utils.file_utils import read_file, write_file
from typefuzz.utils.logger import get_logger

logger = get_logger(__name__)

YAML_SUFFIXES = ('.yaml', '.yml')


def save_results(results: FuzzTestResults, path: Union[str, Path]) -> Path:
    """Save fuzz results to a JSON or YAML file chosen by extension.

    Args:
        results: Results of a fuzzing run
        path: Output path; ``.yaml``/``.yml`` selects YAML, anything else JSON

    Returns:
        Path of the written file

    Raises:
        PersistenceError: If the file cannot be written
    """
    output_path = Path(path)
    data = results.to_dict()
    try:
        if output_path.suffix.lower() in YAML_SUFFIXES:
            content = yaml.safe_dump(data, default_flow_style=False, indent=2, sort_keys=False)
        else:
            content = json.dumps(data, indent=2, ensure_ascii=False)
        write_file(output_path, content)
    except (OSError, TypeError, ValueError, yaml.YAMLError) as e:
        raise PersistenceError(f"Failed to save results to {output_path}: {e}") from e

    logger.info(f"Saved {len(results.results)} test result(s) to {output_path}")
    return output_path


def load_pinned_tests(path: Union[str, Path]) -> List[FuzzPinnedTest]:
    """Load pinned tests from a JSON or YAML file.

    The file either holds a list of tests or a saved results document, in
    which case only the results marked as pinned are taken.

    Raises:
        PersistenceError: If the file cannot be read or parsed
    """
    input_path = Path(path)
    try:
        content = read_file(input_path)
        if input_path.suffix.lower() in YAML_SUFFIXES:
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise PersistenceError(f"Failed to load pinned tests from {input_path}: {e}") from e

    if isinstance(data, dict):
        entries = [r for r in data.get("results") or [] if r.get("pinned")]
    elif isinstance(data, list):
        entries = data
    else:
        raise PersistenceError(f"Unexpected pinned test document in {input_path}")

    try:
        tests = [FuzzPinnedTest.from_dict(entry) for entry in entries]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise PersistenceError(f"Malformed pinned test in {input_path}: {e}") from e

    logger.info(f"Loaded {len(tests)} pinned test(s) from {input_path}")
    return tests


def collect_metrics(results: FuzzTestResults) -> Dict[str, Any]:
    """Collect summary metrics from fuzz results.

    Args:
        results: Results of a fuzzing run

    Returns:
        Dictionary with run metrics
    """
    stored = results.results
    total_tests = len(stored)
    failed_tests = len(results.failures())
    passed_tests = total_tests - failed_tests

    total_execution_time = sum(r.elapsed_time for r in stored)
    average_execution_time = total_execution_time / total_tests if total_tests > 0 else 0

    categories = {
        category.value: len(results.get_results_by_category(category))
        for category in FuzzResultCategory
    }

    return {
        'function_name': results.function_name,
        'stop_reason': results.stop_reason.value,
        'elapsed_time': results.elapsed_time,
        'inputs_generated': results.inputs_generated,
        'dupes_generated': results.dupes_generated,
        'inputs_saved': results.inputs_saved,
        'total_tests': total_tests,
        'passed_tests': passed_tests,
        'failed_tests': failed_tests,
        'pass_rate': passed_tests / total_tests if total_tests > 0 else 0,
        'total_execution_time': total_execution_time,
        'average_execution_time': average_execution_time,
        'categories': categories,
    }


def format_summary(results: FuzzTestResults, separator_length: int = 60) -> str:
    """Format a human readable summary of a fuzzing run."""
    metrics = collect_metrics(results)
    lines = [
        "=" * separator_length,
        f"Function:          {metrics['function_name']}",
        f"Seed:              {results.seed}",
        f"Stop reason:       {metrics['stop_reason']}",
        f"Elapsed:           {metrics['elapsed_time']:.0f}ms",
        f"Inputs generated:  {metrics['inputs_generated']} "
        f"({metrics['dupes_generated']} duplicates, {metrics['inputs_saved']} pinned)",
        f"Tests stored:      {metrics['total_tests']} "
        f"({metrics['passed_tests']} ok, {metrics['failed_tests']} failing)",
    ]
    for category, count in metrics['categories'].items():
        if count and category != FuzzResultCategory.OK.value:
            lines.append(f"  {category:<16} {count}")
    if results.persist_error:
        lines.append(f"Persist error:     {results.persist_error}")
    lines.append("=" * separator_length)
    return "\n".join(lines)
