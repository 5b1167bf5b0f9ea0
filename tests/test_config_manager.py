"""Tests for YAML configuration loading and saving."""

import pytest
import yaml

from typefuzz.fuzzer.base_interfaces import ConfigurationError
from typefuzz.fuzzer.config_manager import FuzzConfig, FuzzerConfigManager
from typefuzz.fuzzer.data_models import ArgDefaults, FuzzOptions

SAMPLE = """
typefuzz:
  limits:
    max_tests: 25
    fn_timeout: 250
  oracles:
    human: false
  output:
    only_failures: true
    output_file: ${TYPEFUZZ_TEST_OUT}
  reproducibility:
    seed: demo
  arg_defaults:
    num_min: -5
    num_max: 5
  arguments:
    b:
      min: 1
      max: 9
"""


def _write(tmp_path, text, name="typefuzz.yaml"):
    path = tmp_path / name
    path.write_text(text)
    return path


def test_missing_file_uses_defaults(tmp_path):
    config = FuzzerConfigManager(str(tmp_path / "absent.yaml")).load_config()

    assert config.options == FuzzOptions()
    assert config.arguments == {}


def test_load_config(tmp_path, monkeypatch):
    monkeypatch.setenv("TYPEFUZZ_TEST_OUT", "out/results.yaml")
    config = FuzzerConfigManager(str(_write(tmp_path, SAMPLE))).load_config()
    options = config.options

    assert options.max_tests == 25
    assert options.fn_timeout == 250
    assert options.max_dupe_inputs == FuzzOptions().max_dupe_inputs
    assert options.use_human is False
    assert options.use_implicit is True
    assert options.only_failures is True
    assert options.output_file == "out/results.yaml"
    assert options.seed == "demo"
    assert options.arg_defaults.num_min == -5
    assert config.arguments == {"b": {"min": 1, "max": 9}}


def test_unset_environment_variable(tmp_path, monkeypatch):
    monkeypatch.delenv("TYPEFUZZ_TEST_OUT", raising=False)
    config = FuzzerConfigManager(str(_write(tmp_path, SAMPLE))).load_config()

    assert config.options.output_file is None


def test_config_is_cached(tmp_path):
    path = _write(tmp_path, SAMPLE)
    manager = FuzzerConfigManager(str(path))
    first = manager.load_config()
    path.write_text("typefuzz:\n  limits:\n    max_tests: 3\n")

    assert manager.load_config() is first
    assert manager.load_config(reload=True).options.max_tests == 3


@pytest.mark.parametrize("text", [
    "typefuzz:\n  limits:\n    max_tests: -1\n",
    "typefuzz:\n  limits:\n    fn_timeout: 0\n",
    "typefuzz:\n  limits: [1, 2]\n",
    "typefuzz:\n  arguments:\n    a: 3\n",
    "typefuzz:\n  arg_defaults:\n    optional_none_rate: 2\n",
    "typefuzz: [unclosed\n",
    "- just\n- a list\n",
])
def test_invalid_config(tmp_path, text):
    manager = FuzzerConfigManager(str(_write(tmp_path, text)))
    with pytest.raises(ConfigurationError):
        manager.load_config()


def test_save_config_round_trip(tmp_path):
    config = FuzzConfig(
        options=FuzzOptions(max_tests=9, use_property=False, seed=7,
                            arg_defaults=ArgDefaults(str_max_len=3)),
        arguments={"p.x": {"min": 0, "max": 2}},
    )
    path = tmp_path / "nested" / "saved.yaml"
    FuzzerConfigManager(str(path)).save_config(config)

    loaded = FuzzerConfigManager(str(path)).load_config()
    assert loaded.options == config.options
    assert loaded.arguments == config.arguments


def test_save_preserves_other_sections(tmp_path):
    path = _write(tmp_path, "other:\n  keep: 1\n" + SAMPLE)
    manager = FuzzerConfigManager(str(path))
    manager.save_config(manager.load_config())

    raw = yaml.safe_load(path.read_text())
    assert raw["other"] == {"keep": 1}


def test_save_rejects_invalid(tmp_path):
    config = FuzzConfig(options=FuzzOptions(max_tests=-2))
    with pytest.raises(ConfigurationError):
        FuzzerConfigManager(str(tmp_path / "bad.yaml")).save_config(config)


def test_update_config(tmp_path):
    manager = FuzzerConfigManager(str(_write(tmp_path, SAMPLE)))
    updated = manager.update_config(max_tests=4, seed=None)

    assert updated.options.max_tests == 4
    assert updated.options.seed == "demo"
    assert updated.arguments == {"b": {"min": 1, "max": 9}}

    with pytest.raises(ConfigurationError):
        manager.update_config(colour="blue")
    assert manager.validate_current_config().is_valid
