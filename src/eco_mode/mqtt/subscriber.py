"""MQTT subscriber for eco mode override commands."""

from __future__ import annotations

import logging
from typing import Callable

from eco_mode.analyzers.models import EcoModeLevel
from eco_mode.mqtt.topics import override_command_topic

logger = logging.getLogger(__name__)

_CLEAR_PAYLOADS = {"", "none", "auto", "clear"}


def parse_override_payload(payload: str) -> tuple[bool, EcoModeLevel | None]:
    """Parse an override command payload.

    Returns (valid, level); level None with valid True means clear the override.
    """
    text = payload.strip()
    if text.lower() in _CLEAR_PAYLOADS:
        return True, None
    level = EcoModeLevel.parse(text.capitalize())
    return level is not None, level


class OverrideCommandSubscriber:
    """Routes override commands from the command topic to a callback."""

    def __init__(
        self,
        on_override: Callable[[EcoModeLevel | None], None],
        topic_prefix: str = "eco_mode",
    ) -> None:
        self._on_override = on_override
        self.topic = override_command_topic(topic_prefix)

    async def handle_message(self, topic: str, payload: str) -> None:
        if topic != self.topic:
            logger.debug("Unhandled MQTT message: %s", topic)
            return

        valid, level = parse_override_payload(payload)
        if not valid:
            logger.warning("Ignoring invalid eco mode override command: %r", payload)
            return
        logger.debug("Override command received: %s → %s", topic, payload)
        self._on_override(level)
