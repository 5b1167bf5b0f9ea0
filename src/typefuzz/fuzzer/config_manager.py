"""Configuration manager for typefuzz runs."""

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from typefuzz.fuzzer.base_interfaces import ConfigurationError
from typefuzz.fuzzer.data_models import ArgDefaults, FuzzOptions, ValidationResult
from typefuzz.utils.file_utils import ensure_parent_directory
from typefuzz.utils.logger import get_logger

logger = get_logger(__name__)

CONFIG_SECTION = 'typefuzz'


@dataclass
class FuzzConfig:
    """Fuzzer options plus per-argument constraint overrides."""
    options: FuzzOptions = field(default_factory=FuzzOptions)
    arguments: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def validate(self) -> ValidationResult:
        result = self.options.validate()
        for path, override in self.arguments.items():
            if not isinstance(override, dict):
                result.add_error(f"arguments.{path} must be a mapping")
        return result


class FuzzerConfigManager:
    """Loads, validates and saves typefuzz configuration files."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file. If None, uses default.
        """
        self.config_path = Path(config_path) if config_path else Path("config/typefuzz.yaml")
        self._config_cache: Optional[FuzzConfig] = None
        self._raw_config: Optional[Dict[str, Any]] = None

    def load_config(self, reload: bool = False) -> FuzzConfig:
        """Load fuzzer configuration from file.

        Args:
            reload: Force reload from file even if cached

        Returns:
            FuzzConfig instance

        Raises:
            ConfigurationError: If the file cannot be parsed or is invalid
        """
        if self._config_cache is not None and not reload:
            return self._config_cache

        logger.info(f"Loading fuzzer configuration from {self.config_path}")

        if not self.config_path.exists():
            logger.warning(f"Config file not found: {self.config_path}. Using default configuration.")
            self._config_cache = FuzzConfig()
            return self._config_cache

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise ConfigurationError(f"Failed to parse {self.config_path}: {e}") from e

        if not isinstance(self._raw_config, dict):
            raise ConfigurationError(f"Top level of {self.config_path} must be a mapping")

        fuzzer_config_dict = self._raw_config.get(CONFIG_SECTION) or {}
        if not fuzzer_config_dict:
            logger.warning(f"No {CONFIG_SECTION} section found in config. Using default configuration.")
            self._config_cache = FuzzConfig()
            return self._config_cache

        config = self._parse_fuzzer_config(fuzzer_config_dict)

        validation = config.validate()
        if not validation.is_valid:
            error_msg = f"Invalid configuration: {'; '.join(validation.errors)}"
            logger.error(error_msg)
            raise ConfigurationError(error_msg)

        for warning in validation.warnings:
            logger.warning(f"Configuration warning: {warning}")

        logger.info("Fuzzer configuration loaded successfully")
        self._config_cache = config
        return config

    def _parse_fuzzer_config(self, config_dict: Dict[str, Any]) -> FuzzConfig:
        """Parse fuzzer configuration from dictionary with environment variable substitution.

        Args:
            config_dict: Raw configuration dictionary

        Returns:
            FuzzConfig instance
        """
        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"The {CONFIG_SECTION} section must be a mapping")

        limits = self._section(config_dict, 'limits')
        oracles = self._section(config_dict, 'oracles')
        output = self._section(config_dict, 'output')
        repro = self._section(config_dict, 'reproducibility')
        arg_defaults = self._section(config_dict, 'arg_defaults')
        arguments = self._section(config_dict, 'arguments')

        defaults = FuzzOptions()
        try:
            options = FuzzOptions(
                # Limits
                max_tests=limits.get('max_tests', defaults.max_tests),
                max_dupe_inputs=limits.get('max_dupe_inputs', defaults.max_dupe_inputs),
                max_failures=limits.get('max_failures', defaults.max_failures),
                suite_timeout=limits.get('suite_timeout', defaults.suite_timeout),
                fn_timeout=limits.get('fn_timeout', defaults.fn_timeout),

                # Oracles
                use_implicit=bool(oracles.get('implicit', defaults.use_implicit)),
                use_human=bool(oracles.get('human', defaults.use_human)),
                use_property=bool(oracles.get('property', defaults.use_property)),

                # Output
                only_failures=bool(output.get('only_failures', defaults.only_failures)),
                output_file=self._substitute_env_vars(output.get('output_file')),

                # Reproducibility
                seed=self._substitute_env_vars(repro.get('seed')),

                arg_defaults=ArgDefaults.from_dict(arg_defaults),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

        return FuzzConfig(options=options, arguments={str(k): v for k, v in arguments.items()})

    @staticmethod
    def _section(config_dict: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = config_dict.get(name) or {}
        if not isinstance(section, dict):
            raise ConfigurationError(f"Config section {name} must be a mapping")
        return section

    def _substitute_env_vars(self, value: Any) -> Any:
        """Substitute environment variables in configuration values.

        Args:
            value: Configuration value that may contain environment variables

        Returns:
            Value with environment variables substituted, or None if not found
        """
        if not isinstance(value, str) or not value:
            return value

        if value.startswith('${') and value.endswith('}'):
            env_var = value[2:-1]
            env_value = os.getenv(env_var)
            if env_value is None:
                logger.warning(f"Environment variable {env_var} not found")
            return env_value

        return value

    def save_config(self, config: FuzzConfig, config_path: Optional[str] = None) -> None:
        """Save fuzzer configuration to file.

        Args:
            config: FuzzConfig to save
            config_path: Optional path to save to. If None, uses current config path.

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        save_path = Path(config_path) if config_path else self.config_path

        validation = config.validate()
        if not validation.is_valid:
            error_msg = f"Cannot save invalid configuration: {'; '.join(validation.errors)}"
            logger.error(error_msg)
            raise ConfigurationError(error_msg)

        options = config.options
        config_dict = {
            CONFIG_SECTION: {
                'limits': {
                    'max_tests': options.max_tests,
                    'max_dupe_inputs': options.max_dupe_inputs,
                    'max_failures': options.max_failures,
                    'suite_timeout': options.suite_timeout,
                    'fn_timeout': options.fn_timeout,
                },
                'oracles': {
                    'implicit': options.use_implicit,
                    'human': options.use_human,
                    'property': options.use_property,
                },
                'output': {
                    'only_failures': options.only_failures,
                    'output_file': options.output_file,
                },
                'reproducibility': {
                    'seed': options.seed,
                },
                'arg_defaults': options.arg_defaults.to_dict(),
                'arguments': copy.deepcopy(config.arguments),
            }
        }

        # Preserve other top-level sections of an existing file
        if self._raw_config:
            merged_config = self._raw_config.copy()
            merged_config.update(config_dict)
            config_dict = merged_config

        ensure_parent_directory(save_path)
        with open(save_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(config_dict, f, default_flow_style=False, indent=2, sort_keys=False)

        logger.info(f"Fuzzer configuration saved to {save_path}")
        self._config_cache = config

    def get_config(self) -> FuzzConfig:
        """Get current configuration, loading if necessary."""
        if self._config_cache is None:
            return self.load_config()
        return self._config_cache

    def update_config(self, **kwargs) -> FuzzConfig:
        """Update option values of the current configuration.

        Args:
            **kwargs: FuzzOptions fields to update; None values are ignored

        Returns:
            Updated FuzzConfig instance
        """
        current = self.get_config()
        options_dict = current.options.to_dict()
        unknown = set(kwargs) - set(options_dict)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        options_dict.update({k: v for k, v in kwargs.items() if v is not None})

        updated = FuzzConfig(
            options=FuzzOptions.from_dict(options_dict),
            arguments=copy.deepcopy(current.arguments),
        )
        self._config_cache = updated
        return updated

    def validate_current_config(self) -> ValidationResult:
        """Validate current configuration."""
        return self.get_config().validate()


# Global configuration manager instance
_config_manager: Optional[FuzzerConfigManager] = None


def get_fuzzer_config_manager(config_path: Optional[str] = None) -> FuzzerConfigManager:
    """Get global fuzzer configuration manager instance.

    Args:
        config_path: Optional path to configuration file

    Returns:
        FuzzerConfigManager instance
    """
    global _config_manager
    if _config_manager is None or config_path is not None:
        _config_manager = FuzzerConfigManager(config_path)
    return _config_manager


def get_fuzzer_config(config_path: Optional[str] = None) -> FuzzConfig:
    """Get fuzzer configuration.

    Args:
        config_path: Optional path to configuration file

    Returns:
        FuzzConfig instance
    """
    manager = get_fuzzer_config_manager(config_path)
    return manager.get_config()
