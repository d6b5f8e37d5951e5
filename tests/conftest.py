"""Shared test fixtures for Eco Mode."""

from __future__ import annotations

from pathlib import Path

import pytest

from eco_mode.config.manager import ConfigManager
from eco_mode.config.schema import AppConfig
from eco_mode.host.base import BatteryState, ConnectionState, HostEnvironment, ResourceTimingHistory
from eco_mode.storage import MemoryStorage


class FakeBatteryProvider:
    """Battery provider returning a fixed state, or raising ``error``."""

    def __init__(self, state: BatteryState, error: Exception | None = None) -> None:
        self.state = state
        self.error = error
        self.calls = 0

    async def get_battery(self) -> BatteryState:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.state


@pytest.fixture
def config() -> AppConfig:
    """Provide a default test configuration."""
    return AppConfig()


@pytest.fixture
def config_manager(tmp_path: Path) -> ConfigManager:
    """Provide a config manager with test paths."""
    defaults = tmp_path / "config.defaults.yaml"
    defaults.write_text(f"storage:\n  path: '{tmp_path / 'state.yaml'}'\n")
    user = tmp_path / "config.yaml"
    mgr = ConfigManager(defaults_path=defaults, user_path=user)
    mgr.load()
    return mgr


@pytest.fixture
def battery() -> BatteryState:
    return BatteryState(charging=False, level=0.5, discharging_time=7200.0)


@pytest.fixture
def battery_provider(battery: BatteryState) -> FakeBatteryProvider:
    return FakeBatteryProvider(battery)


@pytest.fixture
def connection() -> ConnectionState:
    return ConnectionState(effective_type="4g", downlink=10.0, rtt=50.0, type="wifi")


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def host(
    battery_provider: FakeBatteryProvider,
    connection: ConnectionState,
    storage: MemoryStorage,
) -> HostEnvironment:
    """Host with battery, connection telemetry and in-memory storage."""
    return HostEnvironment(
        battery=battery_provider,
        connection_sources=[connection],
        resource_timing=ResourceTimingHistory(),
        storage=storage,
    )


@pytest.fixture
def charged_host(storage: MemoryStorage) -> HostEnvironment:
    """Battery at 80% and charging, network scoring 95."""
    return HostEnvironment(
        battery=FakeBatteryProvider(BatteryState(charging=True, level=0.8)),
        connection_sources=[ConnectionState(effective_type="5g", downlink=50.0, rtt=20.0)],
        storage=storage,
    )
