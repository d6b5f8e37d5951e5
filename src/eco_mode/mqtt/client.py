"""Async MQTT client wrapper using aiomqtt."""

from __future__ import annotations

import contextlib
import logging
from typing import Any, Callable, Coroutine

import aiomqtt

from eco_mode.config.schema import MQTTConfig
from eco_mode.mqtt.topics import build_topics

logger = logging.getLogger(__name__)

# Type alias for message callback: (topic, payload) -> None
MessageCallback = Callable[[str, str], Coroutine[Any, Any, None]]


class MQTTClient:
    """Async MQTT client wrapping aiomqtt.

    Keeps one broker connection open between ``connect`` and ``disconnect``
    and registers a retained ``offline`` last-will on the status topic.
    """

    def __init__(self, config: MQTTConfig) -> None:
        self._config = config
        self._client: aiomqtt.Client | None = None
        self._stack: contextlib.AsyncExitStack | None = None
        self._connected = False
        self._subscriptions: dict[str, MessageCallback] = {}

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Connect to the MQTT broker."""
        status_topic = build_topics(self._config.topic_prefix)["status"]
        client = aiomqtt.Client(
            hostname=self._config.broker_host,
            port=self._config.broker_port,
            username=self._config.username or None,
            password=self._config.password or None,
            will=aiomqtt.Will(status_topic, "offline", retain=True),
        )
        stack = contextlib.AsyncExitStack()
        logger.info(
            "MQTT connecting to %s:%d",
            self._config.broker_host, self._config.broker_port,
        )
        try:
            await stack.enter_async_context(client)
        except aiomqtt.MqttError as e:
            logger.error("MQTT connect failed: %s", e)
            self._connected = False
            return
        self._client = client
        self._stack = stack
        self._connected = True

    async def disconnect(self) -> None:
        """Disconnect from the broker."""
        self._connected = False
        stack, self._stack = self._stack, None
        self._client = None
        if stack is not None:
            try:
                await stack.aclose()
            except aiomqtt.MqttError as e:
                logger.warning("MQTT disconnect error: %s", e)

    async def publish(self, topic: str, payload: str, retain: bool = False) -> None:
        """Publish a message to a topic."""
        if not self._connected or self._client is None:
            return

        try:
            await self._client.publish(topic, payload, retain=retain)
        except aiomqtt.MqttError as e:
            logger.error("MQTT publish failed for %s: %s", topic, e)

    def subscribe(self, topic: str, callback: MessageCallback) -> None:
        """Register a subscription callback for a topic."""
        self._subscriptions[topic] = callback

    async def listen(self) -> None:
        """Start listening for subscribed messages (blocking)."""
        if not self._connected or self._client is None or not self._subscriptions:
            return

        client = self._client
        try:
            for topic in self._subscriptions:
                await client.subscribe(topic)

            async for message in client.messages:
                topic = str(message.topic)
                payload = message.payload.decode() if isinstance(message.payload, bytes) else str(message.payload)

                callback = self._subscriptions.get(topic)
                if callback:
                    try:
                        await callback(topic, payload)
                    except Exception:
                        logger.exception("MQTT callback error for %s", topic)
        except aiomqtt.MqttError as e:
            logger.error("MQTT listener error: %s", e)
            self._connected = False
