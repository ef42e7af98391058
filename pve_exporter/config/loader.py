"""Configuration loader: YAML file, environment variables and command-line flags."""

import yaml
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from ..exceptions import ConfigurationError
from .models import ExporterConfig
from .settings import Settings


TRUE_VALUES = ('true', '1', 'yes', 'on')


class ConfigLoader:
    """Load and validate exporter configuration."""

    @staticmethod
    def load_from_file(config_path: str, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        """
        Load raw configuration values from a YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file
            environ: Mapping used for ${VAR} substitution (defaults to os.environ)

        Returns:
            Dict of config field values found in the file

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            ConfigurationError: If the file does not hold a mapping
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        if not isinstance(raw_config, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

        return ConfigLoader._substitute_env_vars(raw_config, environ)

    @staticmethod
    def load(
        config_path: Optional[str] = None,
        flags: Optional[Dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> ExporterConfig:
        """
        Build the exporter configuration.

        Precedence, lowest first: model defaults, YAML file, PVE_* environment
        variables, flags given on the command line.

        Args:
            config_path: Optional YAML file path
            flags: Flag values; None entries mean "not given"
            environ: Environment mapping (defaults to os.environ)

        Returns:
            ExporterConfig: Validated configuration object

        Raises:
            ConfigurationError: If the merged configuration is invalid
        """
        values: Dict[str, Any] = {"endpoint": ""}

        if config_path:
            try:
                values.update(ConfigLoader.load_from_file(config_path, environ))
            except (FileNotFoundError, yaml.YAMLError) as e:
                raise ConfigurationError(str(e)) from e

        values.update(Settings.overrides(environ))
        values.update({k: v for k, v in (flags or {}).items() if v is not None})

        if isinstance(values.get("insecure_skip_verify"), str):
            values["insecure_skip_verify"] = values["insecure_skip_verify"].lower() in TRUE_VALUES

        try:
            config = ExporterConfig(**values)
            # Fail at startup rather than on bind
            config.listen_address
        except (ValidationError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        return config

    @staticmethod
    def _substitute_env_vars(obj: Any, environ: Optional[Mapping[str, str]] = None) -> Any:
        """
        Recursively substitute ${ENV_VAR} placeholders with environment values.

        Args:
            obj: Object to process (str, dict, list, or primitive)
            environ: Mapping to read variables from

        Returns:
            Object with environment variables substituted
        """
        environ = os.environ if environ is None else environ

        if isinstance(obj, str):
            pattern = r'\$\{(\w+)\}'
            return re.sub(pattern, lambda m: environ.get(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v, environ) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item, environ) for item in obj]

        return obj
