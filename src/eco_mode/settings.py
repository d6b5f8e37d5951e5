"""Process-wide settings.

Config files default to ``config.defaults.yaml`` and ``config.yaml`` in the
working directory. ``ECO_MODE_DEFAULTS`` and ``ECO_MODE_CONFIG`` point
elsewhere; explicit paths win over both.
"""

from __future__ import annotations

import os
from pathlib import Path

from eco_mode.config.manager import ConfigManager
from eco_mode.config.schema import AppConfig

DEFAULTS_ENV = "ECO_MODE_DEFAULTS"
CONFIG_ENV = "ECO_MODE_CONFIG"

_config_manager: ConfigManager | None = None


def resolve_config_paths(
    defaults_path: Path | None = None,
    user_path: Path | None = None,
) -> tuple[Path, Path]:
    defaults = defaults_path or Path(os.environ.get(DEFAULTS_ENV, "config.defaults.yaml"))
    user = user_path or Path(os.environ.get(CONFIG_ENV, "config.yaml"))
    return defaults, user


def load_settings(
    defaults_path: Path | None = None,
    user_path: Path | None = None,
) -> AppConfig:
    """Load the configuration and make its manager the active one."""
    global _config_manager
    defaults, user = resolve_config_paths(defaults_path, user_path)
    manager = ConfigManager(defaults_path=defaults, user_path=user)
    config = manager.load()
    _config_manager = manager
    return config


def get_config_manager() -> ConfigManager:
    """Get the active config manager instance."""
    if _config_manager is None:
        raise RuntimeError("Settings not loaded. Call load_settings() first.")
    return _config_manager
