"""Reference-counted multicast with a latest-value cache."""

from __future__ import annotations

import logging
from typing import Generic, Optional, TypeVar

from eco_mode.streams.observable import Observable, Observer, Subscription, Teardown

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SharedReplay(Observable[T], Generic[T]):
    """Shares one upstream subscription between any number of subscribers.

    The first subscriber connects the source. Every subscriber immediately
    receives the most recent value, if any. When the last subscriber leaves,
    the upstream subscription is released exactly once and the cache is
    dropped, so the next subscriber starts a fresh connection.

    A completed source stays completed: later subscribers get the final value
    followed by completion. An errored source is reset so the next subscriber
    reconnects.
    """

    def __init__(self, source: Observable[T], name: str = "") -> None:
        super().__init__(self._attach)
        self._source = source
        self._name = name or "shared"
        self._observers: list[Observer[T]] = []
        self._upstream: Subscription | None = None
        self._connected = False
        self._has_value = False
        self._latest: Optional[T] = None
        self._completed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._observers)

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def completed(self) -> bool:
        return self._completed

    def _attach(self, observer: Observer[T]) -> Optional[Teardown]:
        if self._completed:
            if self._has_value:
                observer.on_next(self._latest)  # type: ignore[arg-type]
            observer.on_complete()
            return None

        self._observers.append(observer)
        if self._has_value:
            observer.on_next(self._latest)  # type: ignore[arg-type]
        if not self._connected:
            self._connect()
        return lambda: self._detach(observer)

    def _connect(self) -> None:
        logger.debug("Connecting %s stream", self._name)
        self._connected = True
        upstream = self._source.subscribe(self._next, self._error, self._complete)
        if self._connected and not upstream.closed:
            self._upstream = upstream

    def _detach(self, observer: Observer[T]) -> None:
        if observer in self._observers:
            self._observers.remove(observer)
        if self._observers or not self._connected:
            return

        logger.debug("Last subscriber left, releasing %s stream", self._name)
        upstream = self._upstream
        self._reset()
        if upstream is not None:
            upstream.unsubscribe()

    def _reset(self) -> None:
        self._upstream = None
        self._connected = False
        self._has_value = False
        self._latest = None

    def _next(self, value: T) -> None:
        self._latest = value
        self._has_value = True
        for observer in list(self._observers):
            try:
                observer.on_next(value)
            except Exception:
                logger.exception("Subscriber of %s stream failed", self._name)

    def _error(self, error: BaseException) -> None:
        observers, self._observers = self._observers, []
        self._reset()
        for observer in observers:
            observer.on_error(error)

    def _complete(self) -> None:
        self._completed = True
        self._connected = False
        self._upstream = None
        observers, self._observers = self._observers, []
        for observer in observers:
            observer.on_complete()
