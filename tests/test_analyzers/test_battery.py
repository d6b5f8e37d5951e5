"""Tests for the battery analyzer."""

from __future__ import annotations

import asyncio
import math

import pytest

from eco_mode.analyzers.battery import BatteryAnalyzer, battery_info_from_state
from eco_mode.analyzers.models import BatteryInfo
from eco_mode.errors import BatteryUnavailableError
from eco_mode.host.base import BatteryState, HostEnvironment


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


class TestBatteryInfoMapping:
    def test_infinite_times_become_unknown(self) -> None:
        state = BatteryState(charging=True, charging_time=math.inf, discharging_time=math.inf, level=0.42)
        info = battery_info_from_state(state)
        assert info.supported is True
        assert info.charging is True
        assert info.charging_time is None
        assert info.discharging_time is None
        assert info.level == 0.42
        assert info.level_percentage == 42

    def test_finite_times_kept(self) -> None:
        state = BatteryState(charging=True, charging_time=1800.0, discharging_time=math.inf, level=0.9)
        info = battery_info_from_state(state)
        assert info.charging_time == 1800.0
        assert info.discharging_time is None

    def test_level_percentage_rounds_half_up(self) -> None:
        info = battery_info_from_state(BatteryState(level=0.125))
        assert info.level_percentage == 13


class TestBatteryAnalyzer:
    def test_unsupported_emits_once_and_completes(self) -> None:
        analyzer = BatteryAnalyzer(HostEnvironment())
        values, completions = [], []
        analyzer.observe_battery().subscribe(values.append, on_complete=lambda: completions.append(True))
        assert values == [BatteryInfo.unsupported()]
        assert completions == [True]

    @pytest.mark.asyncio
    async def test_emits_current_values_after_acquisition(self, host, battery) -> None:
        values = []
        BatteryAnalyzer(host).observe_battery().subscribe(values.append)
        assert values == []

        await _settle()
        assert values == [
            BatteryInfo(
                supported=True,
                charging=False,
                charging_time=None,
                discharging_time=7200.0,
                level=0.5,
                level_percentage=50,
            )
        ]

    @pytest.mark.asyncio
    async def test_emits_on_each_battery_event(self, host, battery) -> None:
        values = []
        BatteryAnalyzer(host).observe_battery().subscribe(values.append)
        await _settle()

        battery.update(level=0.8)
        battery.update(charging=True)
        battery.update(discharging_time=math.inf)
        battery.update(level=0.8)  # unchanged, no event
        assert len(values) == 4
        assert values[1].level_percentage == 80
        assert values[2].charging is True
        assert values[3].discharging_time is None

    @pytest.mark.asyncio
    async def test_acquisition_failure_is_signalled(self, host, battery_provider) -> None:
        battery_provider.error = RuntimeError("permission denied")
        values, errors = [], []
        BatteryAnalyzer(host).observe_battery().subscribe(values.append, errors.append)
        await _settle()
        assert values == []
        assert len(errors) == 1
        assert isinstance(errors[0], BatteryUnavailableError)

    @pytest.mark.asyncio
    async def test_subscribers_share_one_acquisition(self, host, battery, battery_provider) -> None:
        analyzer = BatteryAnalyzer(host)
        first, second = [], []
        analyzer.observe_battery().subscribe(first.append)
        await _settle()
        analyzer.observe_battery().subscribe(second.append)
        await _settle()

        assert battery_provider.calls == 1
        assert battery.listener_count("levelchange") == 1
        assert second == first

    @pytest.mark.asyncio
    async def test_last_unsubscribe_removes_listeners(self, host, battery) -> None:
        analyzer = BatteryAnalyzer(host)
        sub1 = analyzer.observe_battery().subscribe()
        sub2 = analyzer.observe_battery().subscribe()
        await _settle()
        assert battery.listener_count() == 4

        sub1.unsubscribe()
        assert battery.listener_count() == 4
        sub2.unsubscribe()
        assert battery.listener_count() == 0

    @pytest.mark.asyncio
    async def test_unsubscribe_before_acquisition(self, host, battery, battery_provider) -> None:
        sub = BatteryAnalyzer(host).observe_battery().subscribe()
        sub.unsubscribe()
        await _settle()
        assert battery.listener_count() == 0
