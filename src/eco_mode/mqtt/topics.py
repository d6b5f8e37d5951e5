"""MQTT topic constants."""

from __future__ import annotations


def build_topics(prefix: str = "eco_mode") -> dict[str, str]:
    """Build all MQTT topic strings from a configurable prefix."""
    return {
        "status": f"{prefix}/status",
        "eco_score": f"{prefix}/eco/score",
        "eco_level": f"{prefix}/eco/level",
        "eco_level_computed": f"{prefix}/eco/level_computed",
        "eco_override": f"{prefix}/eco/override",
        "battery_level": f"{prefix}/battery/level",
        "battery_charging": f"{prefix}/battery/charging",
        "network_score": f"{prefix}/network/score",
        "network_assessment": f"{prefix}/network/assessment",
    }


def override_command_topic(prefix: str) -> str:
    """Build the command topic that sets or clears the eco mode override."""
    return f"{prefix}/eco/override/set"
