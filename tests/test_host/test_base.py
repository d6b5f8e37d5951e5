"""Tests for the host environment model."""

from __future__ import annotations

import math

import pytest

from eco_mode.host.base import (
    BatteryState,
    ConnectionState,
    EventTarget,
    HostEnvironment,
    ResourceTiming,
    ResourceTimingHistory,
)


class TestEventTarget:
    def test_duplicate_listener_registered_once(self) -> None:
        target = EventTarget()
        calls = []
        target.add_listener("change", calls.append)
        target.add_listener("change", calls.append)
        target.dispatch("change")
        assert calls == ["change"]
        assert target.listener_count("change") == 1

    def test_remove_unknown_listener(self) -> None:
        target = EventTarget()
        target.remove_listener("change", print)
        assert target.listener_count() == 0


class TestBatteryState:
    def test_update_dispatches_changed_fields_only(self) -> None:
        battery = BatteryState(charging=False, level=0.5)
        seen = []
        for event in ("levelchange", "chargingchange"):
            battery.add_listener(event, seen.append)

        assert battery.update(level=0.5, charging=True) == ["chargingchange"]
        assert seen == ["chargingchange"]
        assert battery.charging is True

    def test_times_default_to_unknown(self) -> None:
        battery = BatteryState()
        assert math.isinf(battery.charging_time)
        assert math.isinf(battery.discharging_time)

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(TypeError):
            BatteryState().update(voltage=12.0)


class TestConnectionState:
    def test_single_change_event_per_update(self) -> None:
        connection = ConnectionState(effective_type="4g", downlink=10.0)
        seen = []
        connection.add_listener("change", seen.append)
        assert connection.update(effective_type="3g", downlink=1.0) is True
        assert connection.update(effective_type="3g") is False
        assert seen == ["change"]


class TestResourceTimingHistory:
    def test_oldest_entries_dropped(self) -> None:
        history = ResourceTimingHistory(capacity=2)
        for i in range(3):
            history.record(ResourceTiming(f"r{i}", 0.0, float(i)))
        assert [entry.name for entry in history.get_entries()] == ["r1", "r2"]
        assert len(history) == 2

    def test_duration(self) -> None:
        assert ResourceTiming("r", 100.0, 350.0).duration == 250.0


class TestHostEnvironment:
    def test_first_present_connection_source_wins(self) -> None:
        vendor = ConnectionState(effective_type="2g")
        host = HostEnvironment(connection_sources=[None, vendor, ConnectionState()])
        assert host.connection is vendor

    def test_no_connection_sources(self) -> None:
        assert HostEnvironment(connection_sources=[None]).connection is None

    def test_online_events_on_transitions_only(self) -> None:
        host = HostEnvironment()
        seen = []
        host.events.add_listener("online", seen.append)
        host.events.add_listener("offline", seen.append)

        host.set_online(True)
        host.set_online(False)
        host.set_online(False)
        host.set_online(True)
        assert seen == ["offline", "online"]
