"""Host environment seen by the analyzers."""

from eco_mode.host.base import (
    BATTERY_EVENTS,
    BatteryProvider,
    BatteryState,
    ConnectionState,
    EventTarget,
    HostEnvironment,
    ResourceTiming,
    ResourceTimingHistory,
)

__all__ = [
    "BATTERY_EVENTS",
    "BatteryProvider",
    "BatteryState",
    "ConnectionState",
    "EventTarget",
    "HostEnvironment",
    "ResourceTiming",
    "ResourceTimingHistory",
]
