"""Tests for signature reading, module loading and validator discovery."""

import json
import sys
import textwrap
from typing import Dict, Optional, Sequence, Tuple

import pytest

import fuzz_targets
from typefuzz.fuzzer.base_interfaces import ConfigurationError, TargetResolutionError
from typefuzz.fuzzer.data_models import ArgDefaults, ArgType, Interval
from typefuzz.fuzzer.function_def import (
    FunctionDef,
    find_validators,
    is_validator,
    load_module,
    resolve_function,
)


def test_from_callable_scalars():
    fn = FunctionDef.from_callable(fuzz_targets.divide, ArgDefaults(num_min=-3, num_max=3))

    assert fn.name == "divide"
    assert fn.module == "fuzz_targets"
    assert not fn.is_void
    assert [(a.name, a.offset, a.type) for a in fn.args] == [
        ("a", 0, ArgType.NUMBER),
        ("b", 1, ArgType.NUMBER),
    ]
    assert fn.args[0].intervals == [Interval(-3, 3)]


def test_from_callable_int_and_float_modes():
    def mixed(count: int, ratio: float, label: str, on: bool) -> str:
        return label

    args = FunctionDef.from_callable(mixed).args
    assert args[0].options.num_integer is True
    assert args[1].options.num_integer is False
    assert args[2].type == ArgType.STRING
    assert args[3].type == ArgType.BOOLEAN


def test_from_callable_void():
    assert FunctionDef.from_callable(fuzz_targets.log_message).is_void


def test_from_callable_optional_and_nested():
    fn = FunctionDef.from_callable(fuzz_targets.text_length)
    assert fn.args[0].optional

    grid = FunctionDef.from_callable(fuzz_targets.grid_total).args[0]
    assert grid.dimension == 2
    assert len(grid.options.dim_length) == 2

    def pairs(xs: Sequence[Tuple[int, ...]], y: int | None) -> int:
        return 0

    args = FunctionDef.from_callable(pairs).args
    assert args[0].dimension == 2
    assert args[1].optional


def test_from_callable_typeddict():
    point = FunctionDef.from_callable(fuzz_targets.manhattan).args[0]

    assert point.type == ArgType.OBJECT
    assert [c.name for c in point.children] == ["x", "y"]
    assert all(not c.optional for c in point.children)


def test_from_callable_skips_variadics():
    def flexible(a: int, *rest: int, scale: int = 2, **extra: int) -> int:
        return a

    assert [a.name for a in FunctionDef.from_callable(flexible).args] == ["a"]


@pytest.mark.parametrize("source", [
    "def f(a): return a",
    "def f(a: int, *, b: int) -> int: return a",
    "def f(a: Dict[str, int]) -> int: return 0",
    "def f(a: Optional[Tuple[int, str]]) -> int: return 0",
])
def test_from_callable_rejects_unsupported(source):
    namespace = {"Dict": Dict, "Optional": Optional, "Tuple": Tuple}
    exec(source, namespace)
    with pytest.raises(ConfigurationError):
        FunctionDef.from_callable(namespace["f"])


def test_apply_overrides_by_path():
    fn = FunctionDef.from_callable(fuzz_targets.manhattan)
    fn.apply_overrides({"p.x": {"min": 5, "max": 1}})

    assert fn.args[0].children[0].intervals == [Interval(1, 5)]

    with pytest.raises(ConfigurationError):
        fn.apply_overrides({"p.z": {"min": 0, "max": 1}})


def test_validate_reports_bad_arguments():
    fn = FunctionDef.from_callable(fuzz_targets.add)
    fn.args[1].set_intervals([(0.25, 0.75)])

    result = fn.validate()
    assert not result.is_valid
    assert any("Argument 1 (b)" in e for e in result.errors)


def test_load_module_by_name_reloads():
    mod = load_module("fuzz_targets")
    fuzz_targets_module = load_module("fuzz_targets")

    assert mod is fuzz_targets_module
    assert resolve_function(mod, "add")(1, 2) == 3


def test_load_module_from_path(tmp_path):
    path = tmp_path / "scratch_target.py"
    path.write_text("def twice(x: int) -> int:\n    return 2 * x\n")
    assert resolve_function(load_module(path), "twice")(4) == 8

    # Edits are picked up by the next load
    path.write_text("def twice(x: int) -> int:\n    return x + x + 1\n")
    assert resolve_function(load_module(str(path)), "twice")(4) == 9


@pytest.mark.parametrize("stem", ["json", "fuzz_targets"])
def test_load_module_refuses_shadowing(tmp_path, stem):
    """A target file may not replace an already loaded module of the same name."""
    path = tmp_path / f"{stem}.py"
    path.write_text("def twice(x: int) -> int:\n    return 2 * x\n")
    with pytest.raises(TargetResolutionError):
        load_module(path)

    assert sys.modules["json"] is json
    assert sys.modules["fuzz_targets"] is fuzz_targets


def test_load_module_errors(tmp_path):
    with pytest.raises(TargetResolutionError):
        load_module("no_such_module_anywhere")
    with pytest.raises(TargetResolutionError):
        load_module(tmp_path / "missing.py")


def test_resolve_function_errors(tmp_path):
    path = tmp_path / "with_constant.py"
    path.write_text(textwrap.dedent("""
        LIMIT = 3
    """))
    mod = load_module(path)

    with pytest.raises(TargetResolutionError):
        resolve_function(mod, "absent")
    with pytest.raises(TargetResolutionError):
        resolve_function(mod, "LIMIT")


def test_find_validators():
    mod = load_module("fuzz_targets")

    assert [r.name for r in find_validators(mod, "add")] == ["add_matches_sum"]
    assert [r.name for r in find_validators(mod, "square")] == ["square_non_negative"]
    assert find_validators(mod, "double") == []
    assert find_validators(mod, "divide") == []


def test_is_validator():
    assert is_validator(fuzz_targets.add_matches_sum)
    assert not is_validator(fuzz_targets.double_helper)
    assert not is_validator(fuzz_targets.add)
