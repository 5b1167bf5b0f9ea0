"""Tests for result persistence and metrics."""

import json

import pytest
import yaml

from typefuzz.fuzzer.base_interfaces import PersistenceError
from typefuzz.fuzzer.data_models import (
    FuzzResultCategory,
    FuzzStopReason,
    FuzzTestResult,
    FuzzTestResults,
    IoElement,
)
from typefuzz.fuzzer.report import collect_metrics, format_summary, load_pinned_tests, save_results


@pytest.fixture
def results():
    ok = FuzzTestResult(
        input=[IoElement("a", 0, 1)],
        output=[IoElement("0", 0, {"total": (1, 2)})],
        elapsed_time=2.0,
    )
    bad = FuzzTestResult(
        input=[IoElement("a", 0, 0)],
        pinned=True,
        exception=True,
        exception_message="boom",
        elapsed_time=4.0,
        category=FuzzResultCategory.EXCEPTION,
        expected_output=[IoElement("0", 0, is_exception=True)],
    )
    return FuzzTestResults(
        function_name="f",
        seed="x",
        stop_reason=FuzzStopReason.MAXTESTS,
        elapsed_time=12.5,
        inputs_generated=3,
        dupes_generated=1,
        inputs_saved=1,
        results=[ok, bad],
    )


@pytest.mark.parametrize("name, loader", [
    ("run.json", json.loads),
    ("run.yaml", yaml.safe_load),
    ("run.yml", yaml.safe_load),
])
def test_save_results(tmp_path, results, name, loader):
    path = save_results(results, tmp_path / "reports" / name)
    data = loader(path.read_text())

    assert data["stop_reason"] == "maxTests"
    assert data["seed"] == "x"
    assert data["results"][0]["output"][0]["value"] == {"total": [1, 2]}
    assert data["results"][1]["category"] == "exception"
    assert data["results"][1]["exception_message"] == "boom"


def test_save_results_failure(tmp_path, results):
    blocker = tmp_path / "file"
    blocker.write_text("")
    with pytest.raises(PersistenceError):
        save_results(results, blocker / "run.json")


def test_load_pinned_tests_from_saved_results(tmp_path, results):
    path = save_results(results, tmp_path / "run.yaml")
    pinned = load_pinned_tests(path)

    assert len(pinned) == 1
    assert pinned[0].input[0].value == 0
    assert pinned[0].expected_output[0].is_exception


def test_load_pinned_tests_from_list(tmp_path):
    path = tmp_path / "pinned.json"
    path.write_text(json.dumps([
        {"input": [{"name": "a", "offset": 0, "value": 5}]},
        {"input": [{"name": "a", "offset": 0, "value": 6}], "pinned": False},
    ]))
    pinned = load_pinned_tests(path)

    assert [p.input[0].value for p in pinned] == [5, 6]
    assert [p.pinned for p in pinned] == [True, False]


@pytest.mark.parametrize("content", ["{not json", "42", "[{\"input\": [{}]}]"])
def test_load_pinned_tests_errors(tmp_path, content):
    path = tmp_path / "pinned.json"
    path.write_text(content)
    with pytest.raises(PersistenceError):
        load_pinned_tests(path)


def test_load_pinned_tests_missing_file(tmp_path):
    with pytest.raises(PersistenceError):
        load_pinned_tests(tmp_path / "absent.json")


def test_collect_metrics(results):
    metrics = collect_metrics(results)

    assert metrics['total_tests'] == 2
    assert metrics['passed_tests'] == 1
    assert metrics['failed_tests'] == 1
    assert metrics['pass_rate'] == 0.5
    assert metrics['average_execution_time'] == 3.0
    assert metrics['categories']['exception'] == 1
    assert metrics['categories']['ok'] == 1
    assert metrics['stop_reason'] == 'maxTests'


def test_collect_metrics_empty():
    metrics = collect_metrics(FuzzTestResults())

    assert metrics['total_tests'] == 0
    assert metrics['pass_rate'] == 0


def test_format_summary(results):
    results.persist_error = "disk full"
    summary = format_summary(results)

    assert "maxTests" in summary
    assert "exception" in summary
    assert "disk full" in summary
