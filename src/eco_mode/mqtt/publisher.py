"""MQTT eco mode state publisher."""

from __future__ import annotations

import logging
from typing import Any, Callable, Coroutine

from eco_mode.analyzers.models import BatteryInfo, EcoModeLevel, NetworkQualityResult
from eco_mode.mqtt.topics import build_topics

logger = logging.getLogger(__name__)

# Type for async publish function: (topic, payload, retain) -> None
PublishFn = Callable[[str, str, bool], Coroutine[Any, Any, None]]

NO_OVERRIDE_PAYLOAD = "none"


class EcoStatePublisher:
    """Publishes eco mode state and its input signals to MQTT topics."""

    def __init__(self, publish_fn: PublishFn, topic_prefix: str = "eco_mode") -> None:
        self._publish = publish_fn
        self._topics = build_topics(topic_prefix)

    async def publish_status(self, online: bool = True) -> None:
        """Publish service online/offline status."""
        await self._publish(self._topics["status"], "online" if online else "offline", True)

    async def publish_score(self, score: int) -> None:
        await self._publish(self._topics["eco_score"], str(score), True)

    async def publish_level(self, level: EcoModeLevel) -> None:
        """Publish the effective level (override applied)."""
        await self._publish(self._topics["eco_level"], level.value, True)

    async def publish_level_computed(self, level: EcoModeLevel) -> None:
        """Publish the level computed from telemetry alone."""
        await self._publish(self._topics["eco_level_computed"], level.value, True)

    async def publish_override(self, level: EcoModeLevel | None) -> None:
        payload = level.value if level is not None else NO_OVERRIDE_PAYLOAD
        await self._publish(self._topics["eco_override"], payload, True)

    async def publish_battery(self, info: BatteryInfo) -> None:
        """Publish battery level and charging state. Unsupported batteries publish nothing."""
        if not info.supported:
            return
        await self._publish(self._topics["battery_level"], str(info.level_percentage), True)
        await self._publish(
            self._topics["battery_charging"], "true" if info.charging else "false", True,
        )

    async def publish_network(self, result: NetworkQualityResult) -> None:
        await self._publish(self._topics["network_score"], str(result.score), True)
        await self._publish(
            self._topics["network_assessment"], result.details.assessment.value, True,
        )
