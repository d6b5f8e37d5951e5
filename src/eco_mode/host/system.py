"""Local machine binding for the host environment.

Battery readings and network interface stats come from psutil;
reachability and round-trip time come from periodic httpx probes. psutil
offers no change notifications, so both are polled and events are
dispatched only when a reading actually differs.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import time
from typing import Any

import httpx
import psutil

from eco_mode.config.schema import AppConfig, BatteryConfig, NetworkConfig
from eco_mode.errors import BatteryUnavailableError
from eco_mode.host.base import (
    BatteryState,
    ConnectionState,
    HostEnvironment,
    ResourceTiming,
    ResourceTimingHistory,
)
from eco_mode.storage import KeyValueStorage, MemoryStorage, YamlFileStorage

logger = logging.getLogger(__name__)

RTT_GRANULARITY_MS = 25

# (effective type, rtt at or above (ms), downlink at or below (Mbps))
_EFFECTIVE_TYPE_THRESHOLDS = (
    ("slow-2g", 2000, 0.05),
    ("2g", 1400, 0.07),
    ("3g", 270, 0.7),
)

_WIFI_PREFIXES = ("wl", "wifi", "wi-fi")
_ETHERNET_PREFIXES = ("eth", "en", "em", "ethernet")


# ── Battery ───────────────────────────────────────────────────


def battery_fields(reading: Any) -> dict[str, Any]:
    """Map a ``psutil.sensors_battery()`` reading to ``BatteryState`` fields."""
    plugged = bool(reading.power_plugged)
    level = max(0.0, min(1.0, float(reading.percent) / 100))
    secsleft = reading.secsleft
    if plugged or secsleft is None or secsleft < 0:
        discharging_time = math.inf
    else:
        discharging_time = float(secsleft)
    return {
        "charging": plugged,
        "charging_time": 0.0 if plugged and level >= 1.0 else math.inf,
        "discharging_time": discharging_time,
        "level": level,
    }


class PsutilBatteryState(BatteryState):
    """Battery state refreshed from psutil on a fixed interval."""

    def __init__(self, reading: Any, poll_interval_seconds: float) -> None:
        super().__init__(**battery_fields(reading))
        self._interval = poll_interval_seconds
        self._task: asyncio.Task | None = None

    def refresh(self) -> list[str]:
        """Read the battery once; returns the events dispatched."""
        reading = psutil.sensors_battery()
        if reading is None:
            logger.debug("Battery reading unavailable, keeping last state")
            return []
        return self.update(**battery_fields(reading))

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._poll())

    async def close(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                events = self.refresh()
            except Exception:
                logger.exception("Battery poll failed")
                continue
            if events:
                logger.debug("Battery changed: %s", ", ".join(events))


class PsutilBatteryProvider:
    """Hands out one shared ``PsutilBatteryState`` per provider."""

    def __init__(self, poll_interval_seconds: float = 30.0) -> None:
        self._interval = poll_interval_seconds
        self._state: PsutilBatteryState | None = None

    @staticmethod
    def probe() -> bool:
        """True when this platform reports a battery through psutil."""
        if not hasattr(psutil, "sensors_battery"):
            return False
        try:
            return psutil.sensors_battery() is not None
        except Exception as exc:
            logger.debug("Battery probe failed: %s", exc)
            return False

    async def get_battery(self) -> PsutilBatteryState:
        if self._state is None:
            reading = await asyncio.to_thread(psutil.sensors_battery)
            if reading is None:
                raise BatteryUnavailableError("Host stopped reporting a battery")
            self._state = PsutilBatteryState(reading, self._interval)
            self._state.start()
        return self._state

    async def close(self) -> None:
        if self._state is not None:
            await self._state.close()


# ── Connection ────────────────────────────────────────────────


def effective_connection_type(rtt: float | None, downlink: float | None) -> str | None:
    """Classify a connection the way the Network Information API does."""
    if rtt is None and downlink is None:
        return None
    for name, min_rtt, max_downlink in _EFFECTIVE_TYPE_THRESHOLDS:
        if rtt is not None and rtt >= min_rtt:
            return name
        if downlink is not None and downlink <= max_downlink:
            return name
    return "4g"


def _is_loopback(name: str) -> bool:
    lowered = name.lower()
    return lowered.startswith("lo") or "loopback" in lowered


def _link_type(names: list[str]) -> str:
    lowered = [name.lower() for name in names]
    if any(name.startswith(_WIFI_PREFIXES) or "wireless" in name for name in lowered):
        return "wifi"
    if any(name.startswith(_ETHERNET_PREFIXES) for name in lowered):
        return "ethernet"
    return "unknown"


def read_interfaces() -> tuple[str, float | None]:
    """Return (link type, fastest link speed in Mbps) for the up interfaces."""
    stats = psutil.net_if_stats()
    up = [name for name, stat in stats.items() if stat.isup and not _is_loopback(name)]
    if not up:
        return "none", None
    speeds = [stats[name].speed for name in up if stats[name].speed > 0]
    return _link_type(up), float(max(speeds)) if speeds else None


class SystemConnectionState(ConnectionState):
    """Connection telemetry built from interface stats and probe round trips."""

    def refresh(self, rtt: float | None = None) -> bool:
        """Re-read interfaces, optionally with a new rtt sample; True if anything changed."""
        link_type, downlink = read_interfaces()
        if rtt is not None:
            rtt = float(math.floor(rtt / RTT_GRANULARITY_MS + 0.5) * RTT_GRANULARITY_MS)
        else:
            rtt = self.rtt
        return self.update(
            type=link_type,
            downlink=downlink,
            rtt=rtt,
            effective_type=effective_connection_type(rtt, downlink),
        )


# ── Connectivity ──────────────────────────────────────────────


class ConnectivityProbe:
    """Periodically fetches a probe URL to track reachability and latency.

    Any HTTP response counts as online. Transport errors count as offline.
    """

    def __init__(
        self,
        host: HostEnvironment,
        config: NetworkConfig,
        connection: SystemConnectionState | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._host = host
        self._config = config
        self._connection = connection
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.probe_timeout_seconds)
        self._task: asyncio.Task | None = None

    async def probe(self) -> bool:
        """Run one probe; returns whether the host is online."""
        start_ms = time.monotonic() * 1000
        try:
            await self._client.get(self._config.probe_url)
        except httpx.HTTPError as exc:
            logger.info("Connectivity probe failed: %s", exc)
            if self._connection is not None:
                self._connection.refresh()
            self._host.set_online(False)
            return False
        end_ms = time.monotonic() * 1000

        if self._host.resource_timing is not None:
            self._host.resource_timing.record(
                ResourceTiming(name=self._config.probe_url, start_time=start_ms, response_end=end_ms)
            )
        self._host.set_online(True)
        if self._connection is not None:
            self._connection.refresh(rtt=end_ms - start_ms)
        return True

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self._owns_client:
            await self._client.aclose()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._config.probe_interval_seconds)
            try:
                await self.probe()
            except Exception:
                logger.exception("Connectivity probe crashed")


# ── Host ──────────────────────────────────────────────────────


def create_storage(path: str) -> KeyValueStorage:
    """YAML file storage at ``path``; empty path keeps state in memory only."""
    if not path:
        logger.info("No storage path configured, eco mode override will not persist")
        return MemoryStorage()
    return YamlFileStorage(path)


class SystemHost:
    """Owns the ``HostEnvironment`` for the local machine and its pollers."""

    def __init__(self, config: AppConfig, client: httpx.AsyncClient | None = None) -> None:
        self._battery = self._create_battery_provider(config.battery)
        self._connection = SystemConnectionState() if config.network.enabled else None
        self.environment = HostEnvironment(
            battery=self._battery,
            connection_sources=[self._connection],
            resource_timing=ResourceTimingHistory(config.network.resource_timing_buffer_size),
            storage=create_storage(config.storage.path),
        )
        self._probe = ConnectivityProbe(
            self.environment, config.network, connection=self._connection, client=client,
        )

    async def start(self) -> None:
        """Take an initial reading, then start background polling."""
        await self._probe.probe()
        self._probe.start()
        logger.info(
            "Host telemetry started: battery=%s connection=%s online=%s",
            self._battery is not None, self._connection is not None, self.environment.online,
        )

    async def close(self) -> None:
        await self._probe.close()
        if self._battery is not None:
            await self._battery.close()

    @staticmethod
    def _create_battery_provider(config: BatteryConfig) -> PsutilBatteryProvider | None:
        if not config.enabled:
            return None
        if not PsutilBatteryProvider.probe():
            logger.info("No battery detected")
            return None
        return PsutilBatteryProvider(config.poll_interval_seconds)
