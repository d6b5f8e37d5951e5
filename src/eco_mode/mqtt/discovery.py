"""Home Assistant MQTT auto-discovery."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Coroutine

from eco_mode.mqtt.topics import build_topics

logger = logging.getLogger(__name__)

PublishFn = Callable[[str, str, bool], Coroutine[Any, Any, None]]

# Discovery entities: (unique_id_suffix, name, state_topic_key, unit, device_class, icon)
_ENTITIES = [
    ("eco_score", "Eco Impact Score", "eco_score", None, None, "mdi:leaf"),
    ("eco_level", "Eco Mode", "eco_level", None, None, "mdi:leaf-circle"),
    ("eco_level_computed", "Eco Mode (computed)", "eco_level_computed", None, None, "mdi:leaf-circle-outline"),
    ("eco_override", "Eco Mode Override", "eco_override", None, None, "mdi:hand-back-right"),
    ("battery_level", "Battery Level", "battery_level", "%", "battery", "mdi:battery"),
    ("battery_charging", "Battery Charging", "battery_charging", None, None, "mdi:battery-charging"),
    ("network_score", "Network Quality", "network_score", None, None, "mdi:wifi"),
    ("network_assessment", "Network Assessment", "network_assessment", None, None, "mdi:wifi-check"),
]


def build_discovery_configs(
    topic_prefix: str = "eco_mode",
    ha_prefix: str = "homeassistant",
) -> list[tuple[str, str]]:
    """Build HA discovery config messages.

    Returns:
        List of (discovery_topic, config_json) tuples.
    """
    topics = build_topics(topic_prefix)
    configs = []

    device_info = {
        "identifiers": [topic_prefix],
        "name": "Eco Mode",
        "manufacturer": "Custom",
        "model": "Eco Mode Analyzer",
    }

    for uid_suffix, name, topic_key, unit, device_class, icon in _ENTITIES:
        unique_id = f"{topic_prefix}_{uid_suffix}"
        discovery_topic = f"{ha_prefix}/sensor/{unique_id}/config"

        config: dict[str, Any] = {
            "name": name,
            "unique_id": unique_id,
            "state_topic": topics[topic_key],
            "availability_topic": topics["status"],
            "device": device_info,
            "icon": icon,
        }
        if unit:
            config["unit_of_measurement"] = unit
        if device_class:
            config["device_class"] = device_class

        configs.append((discovery_topic, json.dumps(config)))

    return configs


async def publish_discovery(
    publish_fn: PublishFn,
    topic_prefix: str = "eco_mode",
    ha_prefix: str = "homeassistant",
) -> int:
    """Publish all HA discovery configs. Returns count published."""
    configs = build_discovery_configs(topic_prefix, ha_prefix)

    for topic, payload in configs:
        await publish_fn(topic, payload, True)

    logger.info("Published %d HA discovery configs", len(configs))
    return len(configs)
