"""Exception types raised by eco mode components."""

from __future__ import annotations


class EcoModeError(Exception):
    """Base class for eco mode errors."""


class BatteryUnavailableError(EcoModeError):
    """The host has battery support but the telemetry handle could not be acquired."""


class StorageError(EcoModeError):
    """A durable storage backend could not read or write its data."""


class ConfigError(EcoModeError):
    """Configuration files could not be parsed or failed validation."""
