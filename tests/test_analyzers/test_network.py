"""Tests for network quality scoring and the network analyzer."""

from __future__ import annotations

import pytest

from eco_mode.analyzers.models import Assessment
from eco_mode.analyzers.network import (
    NetworkAnalyzer,
    assessment_for_score,
    calculate_network_quality,
)
from eco_mode.host.base import (
    ConnectionState,
    HostEnvironment,
    ResourceTiming,
    ResourceTimingHistory,
)


def _timings(*durations: float) -> list[ResourceTiming]:
    return [ResourceTiming(name=f"r{i}", start_time=100.0, response_end=100.0 + d) for i, d in enumerate(durations)]


# ── Scoring Tests ─────────────────────────────────────────────


class TestScoringWithConnection:
    def test_offline_forces_zero(self) -> None:
        connection = ConnectionState(effective_type="5g", downlink=100.0, rtt=10.0)
        result = calculate_network_quality(online=False, connection=connection)
        assert result.score == 0
        assert result.details.assessment == Assessment.VERY_POOR
        assert result.details.is_online is False
        assert result.details.connection_type is None
        assert result.details.downlink_speed is None

    def test_good_4g(self) -> None:
        connection = ConnectionState(effective_type="4g", downlink=10.0, rtt=50.0, type="wifi")
        result = calculate_network_quality(online=True, connection=connection)
        assert result.score == 85  # 50 + 10 + 15 + 10
        assert result.details.assessment == Assessment.EXCELLENT
        assert result.details.connection_type == "4g"
        assert result.details.downlink_speed == 10.0
        assert result.details.rtt == 50.0
        assert result.details.avg_load_time is None

    def test_poor_3g(self) -> None:
        connection = ConnectionState(effective_type="3g", downlink=3.0, rtt=400.0)
        result = calculate_network_quality(online=True, connection=connection)
        assert result.score == 25  # 50 - 10 - 5 - 10
        assert result.details.assessment == Assessment.POOR

    def test_clamped_at_zero(self) -> None:
        connection = ConnectionState(effective_type="slow-2g", downlink=0.5, rtt=600.0)
        result = calculate_network_quality(online=True, connection=connection)
        assert result.score == 0  # 50 - 30 - 15 - 20
        assert result.details.assessment == Assessment.VERY_POOR

    def test_best_case(self) -> None:
        connection = ConnectionState(effective_type="5g", downlink=50.0, rtt=20.0)
        assert calculate_network_quality(online=True, connection=connection).score == 95

    def test_unknown_effective_type_falls_back_to_link_type(self) -> None:
        connection = ConnectionState(type="ethernet")
        result = calculate_network_quality(online=True, connection=connection)
        assert result.score == 50
        assert result.details.connection_type == "ethernet"
        assert result.details.assessment == Assessment.AVERAGE

    def test_zero_downlink_and_rtt_are_unknown(self) -> None:
        connection = ConnectionState(effective_type="4g", downlink=0.0, rtt=0.0)
        assert calculate_network_quality(online=True, connection=connection).score == 60

    @pytest.mark.parametrize(
        "downlink,expected",
        [(0.5, 35), (1.0, 45), (4.9, 45), (5.0, 55), (9.9, 55), (10.0, 65)],
    )
    def test_downlink_bands(self, downlink: float, expected: int) -> None:
        connection = ConnectionState(downlink=downlink)
        assert calculate_network_quality(online=True, connection=connection).score == expected

    @pytest.mark.parametrize(
        "rtt,expected",
        [(50.0, 60), (100.0, 60), (101.0, 45), (300.0, 45), (301.0, 40), (500.0, 40), (501.0, 30)],
    )
    def test_rtt_bands(self, rtt: float, expected: int) -> None:
        connection = ConnectionState(rtt=rtt)
        assert calculate_network_quality(online=True, connection=connection).score == expected

    def test_timings_ignored_when_connection_present(self) -> None:
        connection = ConnectionState(effective_type="4g")
        result = calculate_network_quality(online=True, connection=connection, timing_entries=_timings(5000))
        assert result.score == 60
        assert result.details.avg_load_time is None


class TestScoringWithoutConnection:
    def test_no_signals_is_base_score(self) -> None:
        result = calculate_network_quality(online=True, connection=None)
        assert result.score == 50
        assert result.details.avg_load_time is None

    def test_fast_loads(self) -> None:
        result = calculate_network_quality(online=True, connection=None, timing_entries=_timings(50, 150))
        assert result.score == 60
        assert result.details.avg_load_time == 100.0
        assert result.details.assessment == Assessment.GOOD

    @pytest.mark.parametrize(
        "duration,expected",
        [(200.0, 60), (201.0, 45), (500.0, 45), (501.0, 40), (1000.0, 40), (1001.0, 30)],
    )
    def test_load_time_bands(self, duration: float, expected: int) -> None:
        result = calculate_network_quality(online=True, connection=None, timing_entries=_timings(duration))
        assert result.score == expected

    def test_offline_without_connection(self) -> None:
        result = calculate_network_quality(online=False, connection=None, timing_entries=_timings(10))
        assert result.score == 0
        assert result.details.avg_load_time is None


@pytest.mark.parametrize(
    "score,expected",
    [
        (100, Assessment.EXCELLENT),
        (80, Assessment.EXCELLENT),
        (79, Assessment.GOOD),
        (60, Assessment.GOOD),
        (59, Assessment.AVERAGE),
        (40, Assessment.AVERAGE),
        (39, Assessment.POOR),
        (20, Assessment.POOR),
        (19, Assessment.VERY_POOR),
        (0, Assessment.VERY_POOR),
    ],
)
def test_assessment_bands(score: int, expected: Assessment) -> None:
    assert assessment_for_score(score) == expected


# ── Stream Tests ──────────────────────────────────────────────


class TestNetworkAnalyzer:
    def test_emits_on_subscribe(self, host) -> None:
        values = []
        NetworkAnalyzer(host).observe_network_quality().subscribe(values.append)
        assert [v.score for v in values] == [85]

    def test_emits_on_change_online_and_offline(self, host, connection) -> None:
        values = []
        NetworkAnalyzer(host).observe_network_quality().subscribe(values.append)

        connection.update(effective_type="3g")
        host.set_online(False)
        host.set_online(True)
        assert [v.score for v in values] == [85, 65, 0, 65]
        assert values[2].details.assessment == Assessment.VERY_POOR

    def test_without_connection_tracks_online_only(self) -> None:
        host = HostEnvironment(resource_timing=ResourceTimingHistory())
        values = []
        NetworkAnalyzer(host).observe_network_quality().subscribe(values.append)
        host.resource_timing.record(ResourceTiming("probe", 0.0, 1500.0))
        host.set_online(False)
        host.set_online(True)
        assert [v.score for v in values] == [50, 0, 30]

    def test_first_present_connection_source_wins(self) -> None:
        standard = ConnectionState(effective_type="4g")
        vendor = ConnectionState(effective_type="2g")

        host = HostEnvironment(connection_sources=[None, vendor])
        assert NetworkAnalyzer(host).calculate_network_quality().score == 30

        host = HostEnvironment(connection_sources=[standard, vendor])
        assert NetworkAnalyzer(host).calculate_network_quality().score == 60

    def test_shared_listeners_released_on_last_unsubscribe(self, host, connection) -> None:
        analyzer = NetworkAnalyzer(host)
        late = []
        sub1 = analyzer.observe_network_quality().subscribe()
        sub2 = analyzer.observe_network_quality().subscribe(late.append)
        assert connection.listener_count("change") == 1
        assert host.events.listener_count("online") == 1
        assert [v.score for v in late] == [85]

        sub1.unsubscribe()
        sub2.unsubscribe()
        assert connection.listener_count() == 0
        assert host.events.listener_count() == 0
