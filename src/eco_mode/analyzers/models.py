"""Data model shared by the analyzers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class EcoModeLevel(str, Enum):
    """Eco mode classification. Values are the persisted strings."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, raw: str | None) -> EcoModeLevel | None:
        """Return the member whose value is ``raw``, or None for anything else."""
        if raw is None:
            return None
        for member in cls:
            if member.value == raw:
                return member
        return None


class Assessment(str, Enum):
    """Network quality band."""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    AVERAGE = "Average"
    POOR = "Poor"
    VERY_POOR = "Very Poor"


@dataclass(frozen=True)
class BatteryInfo:
    """Snapshot of the host battery.

    Only ``supported`` is set for hosts without battery telemetry. Times are
    seconds, None when the host reports them as unknown.
    """

    supported: bool
    charging: bool | None = None
    charging_time: float | None = None
    discharging_time: float | None = None
    level: float | None = None  # 0.0 to 1.0
    level_percentage: int | None = None  # 0 to 100

    @classmethod
    def unsupported(cls) -> BatteryInfo:
        return cls(supported=False)


@dataclass(frozen=True)
class NetworkDetails:
    """Signals that went into a network quality score."""

    is_online: bool
    assessment: Assessment
    connection_type: str | None = None
    downlink_speed: float | None = None  # Mbps
    rtt: float | None = None  # ms
    avg_load_time: float | None = None  # ms


@dataclass(frozen=True)
class NetworkQualityResult:
    """Network quality score (0-100) with its details."""

    score: int
    details: NetworkDetails


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding up."""
    return int(math.floor(value + 0.5))


def clamp_score(score: float) -> float:
    return max(0.0, min(100.0, score))
