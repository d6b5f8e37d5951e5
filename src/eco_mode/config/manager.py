"""Configuration loading and validation.

Config comes from ``config.defaults.yaml`` deep-merged with the user's
``config.yaml``. String values may reference environment variables as
``${NAME}`` or ``${NAME:default}``; references are expanded when the config
is validated, so broker credentials can stay out of the files.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from eco_mode.config.schema import AppConfig
from eco_mode.errors import ConfigError

logger = logging.getLogger(__name__)

_ENV_REFERENCE = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")

# Never rendered by to_json
_SECRET_FIELDS = {"mqtt": {"password"}}


def expand_env_vars(value: Any) -> Any:
    """Recursively replace ``${NAME}`` / ``${NAME:default}`` in string values."""
    if isinstance(value, str):
        return _ENV_REFERENCE.sub(
            lambda match: os.environ.get(match.group(1), match.group(2) or ""), value,
        )
    elif isinstance(value, dict):
        return {key: expand_env_vars(item) for key, item in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


class ConfigManager:
    """Loads config from YAML files and validates it."""

    def __init__(
        self,
        defaults_path: Path | None = None,
        user_path: Path | None = None,
    ) -> None:
        self._defaults_path = defaults_path or Path("config.defaults.yaml")
        self._user_path = user_path or Path("config.yaml")
        self._config: AppConfig | None = None

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            raise RuntimeError("Config not loaded. Call load() first.")
        return self._config

    def load(self) -> AppConfig:
        """Load configuration from defaults + user overrides.

        Raises:
            ConfigError: a file is not valid YAML or the result fails validation.
        """
        merged = self._deep_merge(
            self._load_yaml(self._defaults_path), self._load_yaml(self._user_path),
        )
        self._config = self._validate(merged)
        logger.info(
            "Configuration loaded (defaults=%s, user=%s)", self._defaults_path, self._user_path,
        )
        return self._config

    def to_json(self) -> str:
        """Validated config as JSON, secrets left out."""
        return self.config.model_dump_json(indent=2, exclude=_SECRET_FIELDS)

    @staticmethod
    def _validate(raw: dict[str, Any]) -> AppConfig:
        try:
            return AppConfig.model_validate(expand_env_vars(raw))
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @staticmethod
    def _load_yaml(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Cannot parse {path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: top level is not a mapping", path)
            return {}
        return data

    @staticmethod
    def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge override into base, returning a new dict."""
        result = dict(base)
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ConfigManager._deep_merge(result[key], value)
            else:
                result[key] = value
        return result
