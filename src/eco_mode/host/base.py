"""Host environment model: event targets and telemetry state objects."""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Protocol, Sequence, runtime_checkable

from eco_mode.storage.base import KeyValueStorage

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]

# Battery field -> event dispatched when it changes
BATTERY_FIELD_EVENTS: dict[str, str] = {
    "charging": "chargingchange",
    "level": "levelchange",
    "charging_time": "chargingtimechange",
    "discharging_time": "dischargingtimechange",
}
BATTERY_EVENTS: tuple[str, ...] = tuple(BATTERY_FIELD_EVENTS.values())

CONNECTION_FIELDS = ("effective_type", "downlink", "rtt", "type")


class EventTarget:
    """Registry of named event listeners.

    Listeners receive the event type. Adding the same listener twice for one
    event type registers it once.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def add_listener(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.setdefault(event_type, [])
        if listener not in listeners:
            listeners.append(listener)

    def remove_listener(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event_type: str | None = None) -> int:
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return sum(len(listeners) for listeners in self._listeners.values())

    def dispatch(self, event_type: str) -> None:
        """Call every listener for ``event_type``; a failing listener does not stop the rest."""
        for listener in list(self._listeners.get(event_type, [])):
            try:
                listener(event_type)
            except Exception:
                logger.exception("Listener for '%s' failed", event_type)


class BatteryState(EventTarget):
    """Live battery readings. Times are seconds, ``math.inf`` when unknown."""

    def __init__(
        self,
        charging: bool = False,
        charging_time: float = math.inf,
        discharging_time: float = math.inf,
        level: float = 1.0,
    ) -> None:
        super().__init__()
        self.charging = charging
        self.charging_time = charging_time
        self.discharging_time = discharging_time
        self.level = level

    def update(self, **changes: object) -> list[str]:
        """Apply field changes and dispatch one event per field that actually changed."""
        events = []
        for name, value in changes.items():
            event_type = BATTERY_FIELD_EVENTS.get(name)
            if event_type is None:
                raise TypeError(f"Unknown battery field: {name}")
            if getattr(self, name) != value:
                setattr(self, name, value)
                events.append(event_type)
        for event_type in events:
            self.dispatch(event_type)
        return events


class ConnectionState(EventTarget):
    """Live connection telemetry: effective type, downlink (Mbps), rtt (ms), link type."""

    def __init__(
        self,
        effective_type: str | None = None,
        downlink: float | None = None,
        rtt: float | None = None,
        type: str | None = None,
    ) -> None:
        super().__init__()
        self.effective_type = effective_type
        self.downlink = downlink
        self.rtt = rtt
        self.type = type

    def update(self, **changes: object) -> bool:
        """Apply field changes; dispatch a single ``change`` if anything differed."""
        changed = False
        for name, value in changes.items():
            if name not in CONNECTION_FIELDS:
                raise TypeError(f"Unknown connection field: {name}")
            if getattr(self, name) != value:
                setattr(self, name, value)
                changed = True
        if changed:
            self.dispatch("change")
        return changed


@dataclass(frozen=True)
class ResourceTiming:
    """Timing of one completed network fetch, in milliseconds."""

    name: str
    start_time: float
    response_end: float

    @property
    def duration(self) -> float:
        return self.response_end - self.start_time


class ResourceTimingHistory:
    """Bounded buffer of recent resource timings, oldest dropped first."""

    def __init__(self, capacity: int = 250) -> None:
        self._entries: deque[ResourceTiming] = deque(maxlen=capacity)

    def record(self, entry: ResourceTiming) -> None:
        self._entries.append(entry)

    def get_entries(self) -> list[ResourceTiming]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


@runtime_checkable
class BatteryProvider(Protocol):
    """Asynchronous access to the host battery."""

    async def get_battery(self) -> BatteryState:
        """Acquire the live battery handle; raises when it is unavailable."""
        ...


@dataclass
class HostEnvironment:
    """Everything the analyzers read from the machine they run on.

    ``connection_sources`` is checked in order and the first present source
    wins. ``events`` carries the global ``online`` and ``offline`` events.
    """

    battery: BatteryProvider | None = None
    connection_sources: Sequence[ConnectionState | None] = ()
    resource_timing: ResourceTimingHistory | None = None
    storage: KeyValueStorage | None = None
    online: bool = True
    events: EventTarget = field(default_factory=EventTarget)

    @property
    def connection(self) -> ConnectionState | None:
        for source in self.connection_sources:
            if source is not None:
                return source
        return None

    def set_online(self, online: bool) -> None:
        """Record connectivity and dispatch ``online``/``offline`` on transitions."""
        if online == self.online:
            return
        self.online = online
        logger.info("Host is now %s", "online" if online else "offline")
        self.events.dispatch("online" if online else "offline")
