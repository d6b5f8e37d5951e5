"""Leaf analyzers for battery and network signals."""

from eco_mode.analyzers.battery import BatteryAnalyzer
from eco_mode.analyzers.models import (
    Assessment,
    BatteryInfo,
    EcoModeLevel,
    NetworkDetails,
    NetworkQualityResult,
)
from eco_mode.analyzers.network import NetworkAnalyzer

__all__ = [
    "Assessment",
    "BatteryAnalyzer",
    "BatteryInfo",
    "EcoModeLevel",
    "NetworkAnalyzer",
    "NetworkDetails",
    "NetworkQualityResult",
]
