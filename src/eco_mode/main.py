"""Eco Mode application entry point and lifecycle orchestrator.

Startup sequence:
  config → logging → host telemetry → analyzer → MQTT → HA discovery →
  stream subscriptions
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import dataclasses
import json
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Coroutine

from eco_mode import __version__
from eco_mode.analyzer import EcoModeAnalyzer
from eco_mode.analyzers.models import BatteryInfo, EcoModeLevel, NetworkQualityResult
from eco_mode.config.schema import AppConfig
from eco_mode.config.manager import ConfigManager
from eco_mode.errors import ConfigError
from eco_mode.host.base import HostEnvironment
from eco_mode.host.system import SystemHost, create_storage
from eco_mode.logging.structured import setup_logging
from eco_mode.settings import get_config_manager, load_settings
from eco_mode.streams import Observable, Subscription

logger = logging.getLogger(__name__)

STATUS_TIMEOUT_SECONDS = 10.0


class Application:
    """Main application lifecycle manager.

    Wires host telemetry, the analyzer and MQTT together and manages
    startup/shutdown ordering.
    """

    def __init__(self, config: AppConfig, config_manager: ConfigManager) -> None:
        self.config = config
        self.config_manager = config_manager
        self.analyzer: EcoModeAnalyzer | None = None
        self._running = False
        self._stop_event = asyncio.Event()
        self._host: SystemHost | None = None
        self._mqtt_client = None
        self._publisher = None
        self._subscriptions: list[Subscription] = []
        self._tasks: set[asyncio.Task] = set()
        self._listen_task: asyncio.Task | None = None
        self._last_level: EcoModeLevel | None = None

    async def start(self) -> None:
        """Start all components and run until ``stop`` is called."""
        logger.info("Starting Eco Mode v%s", __version__)
        logger.debug("Effective configuration: %s", self.config_manager.to_json())
        self._running = True
        self._stop_event.clear()

        # ── 1. Host telemetry ────────────────────────────────
        self._host = self._create_host()
        await self._host.start()

        # ── 2. Analyzer ──────────────────────────────────────
        self.analyzer = EcoModeAnalyzer(self._host.environment)
        if self.analyzer.override is not None:
            logger.info("Restored eco mode override: %s", self.analyzer.override.value)

        # ── 3. MQTT ──────────────────────────────────────────
        if self.config.mqtt.enabled:
            await self._start_mqtt()

        # ── 4. Stream subscriptions ──────────────────────────
        self._subscribe(self.analyzer)
        logger.info("Eco Mode started")

        await self._stop_event.wait()

    async def stop(self) -> None:
        """Release every subscription and shut components down."""
        logger.info("Stopping Eco Mode")
        self._running = False

        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

        if self._listen_task is not None:
            self._listen_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listen_task
            self._listen_task = None

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        if self._mqtt_client is not None:
            if self._publisher is not None:
                await self._publisher.publish_status(online=False)
            await self._mqtt_client.disconnect()
            self._mqtt_client = None
            self._publisher = None

        if self._host is not None:
            await self._host.close()
            self._host = None

        self._stop_event.set()
        logger.info("Eco Mode stopped")

    def _create_host(self) -> SystemHost:
        return SystemHost(self.config)

    async def _start_mqtt(self) -> None:
        from eco_mode.mqtt.client import MQTTClient
        from eco_mode.mqtt.discovery import publish_discovery
        from eco_mode.mqtt.publisher import EcoStatePublisher
        from eco_mode.mqtt.subscriber import OverrideCommandSubscriber

        mqtt_cfg = self.config.mqtt
        client = MQTTClient(mqtt_cfg)
        await client.connect()
        if not client.is_connected:
            logger.warning("MQTT unavailable, continuing without publishing")
            return

        self._mqtt_client = client
        self._publisher = EcoStatePublisher(client.publish, mqtt_cfg.topic_prefix)
        await self._publisher.publish_status(online=True)
        if mqtt_cfg.ha_discovery_enabled:
            await publish_discovery(client.publish, mqtt_cfg.topic_prefix, mqtt_cfg.ha_discovery_prefix)

        subscriber = OverrideCommandSubscriber(self._apply_override, mqtt_cfg.topic_prefix)
        client.subscribe(subscriber.topic, subscriber.handle_message)
        self._listen_task = asyncio.get_running_loop().create_task(client.listen())

    def _apply_override(self, level: EcoModeLevel | None) -> None:
        if self.analyzer is not None:
            self.analyzer.set_override(level)

    def _subscribe(self, analyzer: EcoModeAnalyzer) -> None:
        self._subscriptions = [
            analyzer.observe_eco_mode_level().subscribe(self._on_level),
            analyzer.observe_eco_mode_level_without_override().subscribe(self._on_level_computed),
            analyzer.observe_eco_impact_score().subscribe(self._on_score),
            analyzer.observe_override().subscribe(self._on_override),
            analyzer.observe_battery().subscribe(self._on_battery, self._on_battery_error),
            analyzer.observe_network_quality().subscribe(self._on_network),
        ]

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ── Stream handlers ──────────────────────────────────────

    def _on_level(self, level: EcoModeLevel) -> None:
        if level != self._last_level:
            logger.info(
                "Eco mode level: %s (was %s)",
                level.value, self._last_level.value if self._last_level else "unset",
            )
            self._last_level = level
        if self._publisher is not None:
            self._schedule(self._publisher.publish_level(level))

    def _on_level_computed(self, level: EcoModeLevel) -> None:
        if self._publisher is not None:
            self._schedule(self._publisher.publish_level_computed(level))

    def _on_score(self, score: int) -> None:
        logger.debug("Eco impact score: %d", score)
        if self._publisher is not None:
            self._schedule(self._publisher.publish_score(score))

    def _on_override(self, level: EcoModeLevel | None) -> None:
        if self._publisher is not None:
            self._schedule(self._publisher.publish_override(level))

    def _on_battery(self, info: BatteryInfo) -> None:
        if info.supported:
            logger.debug("Battery: %d%% charging=%s", info.level_percentage, info.charging)
        if self._publisher is not None:
            self._schedule(self._publisher.publish_battery(info))

    def _on_battery_error(self, error: BaseException) -> None:
        logger.warning("Battery telemetry stopped: %s", error)

    def _on_network(self, result: NetworkQualityResult) -> None:
        logger.debug(
            "Network: score=%d assessment=%s", result.score, result.details.assessment.value,
        )
        if self._publisher is not None:
            self._schedule(self._publisher.publish_network(result))


async def _first_value(stream: Observable[Any]) -> Any:
    future: asyncio.Future = asyncio.get_running_loop().create_future()

    def on_next(value: Any) -> None:
        if not future.done():
            future.set_result(value)

    def on_error(error: BaseException) -> None:
        if not future.done():
            future.set_exception(error)

    subscription = stream.subscribe(on_next, on_error)
    try:
        return await future
    finally:
        subscription.unsubscribe()


async def collect_status(analyzer: EcoModeAnalyzer, timeout: float = STATUS_TIMEOUT_SECONDS) -> dict[str, Any]:
    """Take one reading of every analyzer stream."""
    score, level, computed, network = await asyncio.wait_for(
        asyncio.gather(
            _first_value(analyzer.observe_eco_impact_score()),
            _first_value(analyzer.observe_eco_mode_level()),
            _first_value(analyzer.observe_eco_mode_level_without_override()),
            _first_value(analyzer.observe_network_quality()),
        ),
        timeout,
    )
    try:
        battery = await asyncio.wait_for(_first_value(analyzer.observe_battery()), timeout)
    except Exception as exc:
        logger.warning("Battery status unavailable: %s", exc)
        battery = BatteryInfo.unsupported()

    return {
        "score": score,
        "level": level.value,
        "level_computed": computed.value,
        "override": analyzer.override.value if analyzer.override else None,
        "battery": dataclasses.asdict(battery),
        "network": dataclasses.asdict(network),
    }


async def print_status(config: AppConfig) -> None:
    host = SystemHost(config)
    await host.start()
    try:
        status = await collect_status(EcoModeAnalyzer(host.environment))
    finally:
        await host.close()
    print(json.dumps(status, indent=2))


def set_persisted_override(config: AppConfig, raw: str) -> EcoModeLevel | None:
    """Persist an override given as a level name or ``none``."""
    level = EcoModeLevel.parse(raw)
    analyzer = EcoModeAnalyzer(HostEnvironment(storage=create_storage(config.storage.path)))
    analyzer.set_override(level)
    return level


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eco-mode",
        description="Classify this machine's eco mode from battery and network telemetry",
    )
    parser.add_argument("--config", type=Path, default=None,
                        help="User config file (default: $ECO_MODE_CONFIG or config.yaml)")
    parser.add_argument("--defaults", type=Path, default=None,
                        help="Defaults config file (default: $ECO_MODE_DEFAULTS or config.defaults.yaml)")
    action = parser.add_mutually_exclusive_group()
    action.add_argument("--set-override", choices=[level.value for level in EcoModeLevel] + ["none"],
                        help="Persist an eco mode override (or clear it with 'none') and exit")
    action.add_argument("--status", action="store_true",
                        help="Print one reading as JSON and exit")
    action.add_argument("--show-config", action="store_true",
                        help="Print the effective configuration as JSON (password hidden) and exit")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the application."""
    args = build_parser().parse_args(argv)

    try:
        config = load_settings(defaults_path=args.defaults, user_path=args.config)
    except ConfigError as e:
        print(f"eco-mode: {e}", file=sys.stderr)
        sys.exit(2)
    config_manager = get_config_manager()

    setup_logging(config.logging)

    if args.show_config:
        print(config_manager.to_json())
        return

    if args.set_override is not None:
        level = set_persisted_override(config, args.set_override)
        print(f"Eco mode override: {level.value if level else 'none'}")
        return

    if args.status:
        asyncio.run(print_status(config))
        return

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    app = Application(config, config_manager)
    stop_requested = False
    signal_count = 0

    async def _run() -> None:
        try:
            await app.start()
        finally:
            if app._running:
                with contextlib.suppress(Exception):
                    await app.stop()

    def _request_stop() -> None:
        nonlocal stop_requested, signal_count
        signal_count += 1
        if signal_count >= 2:
            os._exit(130)
        if stop_requested or loop.is_closed():
            return
        stop_requested = True
        loop.call_soon_threadsafe(lambda: asyncio.create_task(app.stop()))

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _request_stop)
    else:
        signal.signal(signal.SIGINT, lambda *_: _request_stop())

    try:
        loop.run_until_complete(_run())
    except KeyboardInterrupt:
        _request_stop()
        with contextlib.suppress(Exception):
            loop.run_until_complete(app.stop())
    finally:
        pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            with contextlib.suppress(Exception):
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        loop.close()


if __name__ == "__main__":
    main()
