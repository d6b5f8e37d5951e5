"""Pydantic configuration models for all system settings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class BatteryConfig(BaseModel):
    enabled: bool = True
    poll_interval_seconds: float = Field(30.0, gt=0)


class NetworkConfig(BaseModel):
    enabled: bool = True  # False = no connection telemetry, online/offline only
    probe_url: str = "https://www.gstatic.com/generate_204"
    probe_interval_seconds: float = Field(60.0, gt=0)
    probe_timeout_seconds: float = Field(5.0, gt=0)
    resource_timing_buffer_size: int = Field(250, ge=1)


class StorageConfig(BaseModel):
    path: str = "eco_mode_state.yaml"  # Empty = in-memory only, override lost on exit


class MQTTConfig(BaseModel):
    enabled: bool = False
    broker_host: str = "localhost"
    broker_port: int = 1883
    username: str = ""
    password: str = ""
    topic_prefix: str = "eco_mode"
    ha_discovery_enabled: bool = True
    ha_discovery_prefix: str = "homeassistant"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: Literal["json", "console", "auto"] = "json"  # auto = console on a terminal
    file: str = ""  # Empty = stdout only
    file_max_bytes: int = Field(5_000_000, gt=0)
    file_backup_count: int = Field(3, ge=0)


class AppConfig(BaseModel):
    """Root configuration model containing all system settings."""

    battery: BatteryConfig = BatteryConfig()
    network: NetworkConfig = NetworkConfig()
    storage: StorageConfig = StorageConfig()
    mqtt: MQTTConfig = MQTTConfig()
    logging: LoggingConfig = LoggingConfig()
