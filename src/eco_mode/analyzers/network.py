"""Network quality analyzer.

Scores the current connection from 0 to 100 by starting at 50 and applying
independent additive adjustments, in order: effective connection type,
downlink speed, then round-trip time. Hosts without connection telemetry
fall back to the average duration of recent resource fetches.
"""

from __future__ import annotations

import logging
from typing import Sequence

from eco_mode.analyzers.models import (
    Assessment,
    NetworkDetails,
    NetworkQualityResult,
    clamp_score,
)
from eco_mode.host.base import ConnectionState, HostEnvironment, ResourceTiming
from eco_mode.streams import Observable, SharedReplay, from_event, merge

logger = logging.getLogger(__name__)

BASE_SCORE = 50

EFFECTIVE_TYPE_ADJUSTMENTS: dict[str, int] = {
    "slow-2g": -30,
    "2g": -20,
    "3g": -10,
    "4g": 10,
    "5g": 20,
}


class NetworkAnalyzer:
    """Turns host connection telemetry into a live sequence of quality results."""

    def __init__(self, host: HostEnvironment) -> None:
        self._host = host
        self._shared: SharedReplay[NetworkQualityResult] | None = None

    def observe_network_quality(self) -> Observable[NetworkQualityResult]:
        """Live network quality, shared by all subscribers of this analyzer.

        Emits on subscribe, then on every connection ``change`` and global
        ``online``/``offline`` event. Without connection telemetry only the
        online/offline events trigger a recomputation.
        """
        if self._shared is None:
            self._shared = SharedReplay(self._build_stream(), name="network")
        return self._shared

    def _build_stream(self) -> Observable[NetworkQualityResult]:
        def subscribe(observer):
            connection = self._host.connection
            connectivity = from_event(self._host.events, "online", "offline")
            if connection is not None:
                triggers = merge(from_event(connection, "change"), connectivity)
            else:
                logger.info("No connection telemetry, tracking online/offline only")
                triggers = connectivity
            return (
                triggers.start_with("init")
                .map(lambda _: self.calculate_network_quality())
                .subscribe(observer.on_next, observer.on_error, observer.on_complete)
                .unsubscribe
            )

        return Observable(subscribe)

    def calculate_network_quality(self) -> NetworkQualityResult:
        """Score the host's current network signals."""
        timing = self._host.resource_timing
        result = calculate_network_quality(
            online=self._host.online,
            connection=self._host.connection,
            timing_entries=timing.get_entries() if timing is not None else (),
        )
        logger.debug(
            "Network quality: score=%d assessment=%s", result.score, result.details.assessment.value,
        )
        return result


def calculate_network_quality(
    online: bool,
    connection: ConnectionState | None,
    timing_entries: Sequence[ResourceTiming] = (),
) -> NetworkQualityResult:
    """Pure network scoring from a snapshot of host signals."""
    if not online:
        return NetworkQualityResult(
            score=0,
            details=NetworkDetails(is_online=False, assessment=assessment_for_score(0)),
        )

    score: float = BASE_SCORE
    connection_type = downlink = rtt = avg_load_time = None

    if connection is not None:
        connection_type = connection.effective_type or connection.type
        downlink = connection.downlink
        rtt = connection.rtt
        score = adjust_for_effective_type(connection.effective_type, score)
        score = adjust_for_downlink(connection.downlink, score)
        score = adjust_for_rtt(connection.rtt, score)
    elif timing_entries:
        avg_load_time = sum(entry.duration for entry in timing_entries) / len(timing_entries)
        score = adjust_for_load_time(avg_load_time, score)

    final = int(clamp_score(score))
    return NetworkQualityResult(
        score=final,
        details=NetworkDetails(
            is_online=True,
            assessment=assessment_for_score(final),
            connection_type=connection_type,
            downlink_speed=downlink,
            rtt=rtt,
            avg_load_time=avg_load_time,
        ),
    )


def adjust_for_effective_type(effective_type: str | None, score: float) -> float:
    return score + EFFECTIVE_TYPE_ADJUSTMENTS.get(effective_type or "", 0)


def adjust_for_downlink(downlink: float | None, score: float) -> float:
    """Downlink in Mbps. Zero means the host could not measure it."""
    if not downlink:
        return score
    if downlink < 1:
        return score - 15
    elif downlink < 5:
        return score - 5
    elif downlink < 10:
        return score + 5
    else:
        return score + 15


def adjust_for_rtt(rtt: float | None, score: float) -> float:
    """Round-trip time in ms. Zero means the host could not measure it."""
    if not rtt:
        return score
    if rtt > 500:
        return score - 20
    elif rtt > 300:
        return score - 10
    elif rtt > 100:
        return score - 5
    else:
        return score + 10


def adjust_for_load_time(avg_load_time: float, score: float) -> float:
    if avg_load_time > 1000:
        return score - 20
    elif avg_load_time > 500:
        return score - 10
    elif avg_load_time > 200:
        return score - 5
    else:
        return score + 10


def assessment_for_score(score: float) -> Assessment:
    if score >= 80:
        return Assessment.EXCELLENT
    elif score >= 60:
        return Assessment.GOOD
    elif score >= 40:
        return Assessment.AVERAGE
    elif score >= 20:
        return Assessment.POOR
    else:
        return Assessment.VERY_POOR
