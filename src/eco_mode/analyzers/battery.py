"""Battery telemetry analyzer."""

from __future__ import annotations

import asyncio
import logging
import math

from eco_mode.analyzers.models import BatteryInfo, round_half_up
from eco_mode.errors import BatteryUnavailableError
from eco_mode.host.base import BATTERY_EVENTS, BatteryState, HostEnvironment
from eco_mode.streams import Observable, Observer, SharedReplay, Subscription, from_event

logger = logging.getLogger(__name__)


class BatteryAnalyzer:
    """Turns host battery telemetry into a live sequence of ``BatteryInfo``."""

    def __init__(self, host: HostEnvironment) -> None:
        self._host = host
        self._shared: SharedReplay[BatteryInfo] | None = None

    def observe_battery(self) -> Observable[BatteryInfo]:
        """Live battery snapshots, shared by all subscribers of this analyzer.

        Hosts without battery support yield one unsupported snapshot and
        complete. If the battery handle cannot be acquired the sequence fails
        with ``BatteryUnavailableError``.
        """
        if self._shared is None:
            self._shared = SharedReplay(Observable(self._subscribe), name="battery")
        return self._shared

    def _subscribe(self, observer: Observer[BatteryInfo]):
        provider = self._host.battery
        if provider is None:
            logger.info("Battery telemetry not supported on this host")
            observer.on_next(BatteryInfo.unsupported())
            observer.on_complete()
            return None

        events: Subscription | None = None

        async def acquire() -> None:
            nonlocal events
            try:
                battery = await provider.get_battery()
            except Exception as exc:
                logger.warning("Battery telemetry handle unavailable: %s", exc)
                observer.on_error(BatteryUnavailableError(f"Battery API not available: {exc}"))
                return

            logger.debug("Battery telemetry handle acquired")
            events = (
                from_event(battery, *BATTERY_EVENTS)
                .start_with("init")
                .map(lambda _: battery_info_from_state(battery))
                .subscribe(observer.on_next, observer.on_error, observer.on_complete)
            )

        task = asyncio.get_running_loop().create_task(acquire())

        def teardown() -> None:
            if not task.done():
                task.cancel()
            if events is not None:
                events.unsubscribe()

        return teardown


def battery_info_from_state(battery: BatteryState) -> BatteryInfo:
    """Map live battery state to a snapshot; infinite times become unknown."""
    return BatteryInfo(
        supported=True,
        charging=battery.charging,
        charging_time=None if math.isinf(battery.charging_time) else battery.charging_time,
        discharging_time=None if math.isinf(battery.discharging_time) else battery.discharging_time,
        level=battery.level,
        level_percentage=round_half_up(battery.level * 100),
    )
