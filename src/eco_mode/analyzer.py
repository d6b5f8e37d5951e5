"""Eco mode aggregator.

Combines the battery and network leaf streams into an impact score (0-100)
and a three-level classification. A manually set level overrides the
computed one without altering the score, and survives restarts through the
host's key-value storage.
"""

from __future__ import annotations

import logging

from eco_mode.analyzers.battery import BatteryAnalyzer
from eco_mode.analyzers.models import (
    BatteryInfo,
    EcoModeLevel,
    NetworkQualityResult,
    clamp_score,
    round_half_up,
)
from eco_mode.analyzers.network import NetworkAnalyzer
from eco_mode.host.base import HostEnvironment
from eco_mode.streams import Observable, SharedReplay, ValueCell, combine_latest, on_error_return

logger = logging.getLogger(__name__)

STORAGE_KEY = "eco-mode-override"

BASE_SCORE = 50.0
BATTERY_LEVEL_WEIGHT = 35.0
CHARGING_BONUS = 5.0
HIGH_THRESHOLD = 75
MEDIUM_THRESHOLD = 40


class EcoModeAnalyzer:
    """Derives the live eco mode from battery and network telemetry."""

    def __init__(
        self,
        host: HostEnvironment,
        battery_analyzer: BatteryAnalyzer | None = None,
        network_analyzer: NetworkAnalyzer | None = None,
        storage_key: str = STORAGE_KEY,
    ) -> None:
        self._host = host
        self._battery = battery_analyzer or BatteryAnalyzer(host)
        self._network = network_analyzer or NetworkAnalyzer(host)
        self._storage_key = storage_key
        self._override: ValueCell[EcoModeLevel | None] = ValueCell(self._load_override())
        self._score: SharedReplay[int] | None = None

    @property
    def override(self) -> EcoModeLevel | None:
        return self._override.value

    def set_override(self, level: EcoModeLevel | None) -> None:
        """Force the eco mode level, or pass None to return to the computed level.

        The new value is written through to storage before subscribers are
        notified. Storage failures are logged and never raised.
        """
        logger.info("Eco mode override %s", f"set to {level.value}" if level else "cleared")
        self._save_override(level)
        self._override.set(level)

    def observe_eco_impact_score(self) -> Observable[int]:
        """Live impact score, recomputed on every battery or network emission."""
        if self._score is None:
            battery = on_error_return(self._battery.observe_battery(), self._battery_fallback)
            scores = combine_latest(battery, self._network.observe_network_quality()).map(
                lambda pair: compute_eco_impact_score(pair[0], pair[1])
            )
            self._score = SharedReplay(scores, name="eco_score")
        return self._score

    def observe_eco_mode_level(self) -> Observable[EcoModeLevel]:
        """Live eco mode level; a set override wins over the computed level."""
        return combine_latest(self.observe_eco_impact_score(), self._override).map(
            lambda pair: pair[1] if pair[1] is not None else compute_eco_mode_level(pair[0])
        )

    def observe_eco_mode_level_without_override(self) -> Observable[EcoModeLevel]:
        """Live computed level, ignoring any override."""
        return self.observe_eco_impact_score().map(compute_eco_mode_level)

    def observe_override(self) -> Observable[EcoModeLevel | None]:
        return self._override

    def observe_battery(self) -> Observable[BatteryInfo]:
        return self._battery.observe_battery()

    def observe_network_quality(self) -> Observable[NetworkQualityResult]:
        return self._network.observe_network_quality()

    @staticmethod
    def _battery_fallback(error: BaseException) -> BatteryInfo:
        logger.warning("Battery stream failed, excluding battery from eco score: %s", error)
        return BatteryInfo.unsupported()

    def _load_override(self) -> EcoModeLevel | None:
        storage = self._host.storage
        if storage is None:
            return None
        try:
            stored = storage.get(self._storage_key)
        except Exception as exc:
            logger.warning("Failed to load eco mode override from storage: %s", exc)
            return None

        level = EcoModeLevel.parse(stored)
        if stored is not None and level is None and stored != "undefined":
            logger.warning("Ignoring invalid stored eco mode override: %r", stored)
        return level

    def _save_override(self, level: EcoModeLevel | None) -> None:
        storage = self._host.storage
        if storage is None:
            return
        try:
            if level is None:
                storage.remove(self._storage_key)
            else:
                storage.set(self._storage_key, level.value)
        except Exception as exc:
            logger.warning("Failed to save eco mode override to storage: %s", exc)


def compute_eco_impact_score(battery: BatteryInfo, network: NetworkQualityResult) -> int:
    """Combine a battery snapshot and a network score into an impact score.

    Battery adds up to 35 points for charge level plus 5 while charging.
    Network quality adds up to 15 points above 75, costs up to 10 points
    between 50 and 75, and costs 10 to 30 points below 50.
    """
    score = BASE_SCORE

    if battery.supported and battery.level is not None:
        score += battery.level * BATTERY_LEVEL_WEIGHT
        if battery.charging:
            score += CHARGING_BONUS

    network_score = network.score
    if network_score >= 75:
        score += (network_score - 75) / 25 * 15
    elif network_score >= 50:
        score -= (75 - network_score) / 25 * 10
    else:
        score -= 10 + (50 - network_score) / 50 * 20

    return round_half_up(clamp_score(score))


def compute_eco_mode_level(score: int) -> EcoModeLevel:
    if score >= HIGH_THRESHOLD:
        return EcoModeLevel.HIGH
    elif score >= MEDIUM_THRESHOLD:
        return EcoModeLevel.MEDIUM
    else:
        return EcoModeLevel.LOW
