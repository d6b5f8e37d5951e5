"""Configuration management for Eco Mode."""

from eco_mode.config.schema import AppConfig
from eco_mode.config.manager import ConfigManager

__all__ = ["AppConfig", "ConfigManager"]
