"""Observable value cell."""

from __future__ import annotations

import logging
from typing import Generic, TypeVar

from eco_mode.streams.observable import Observable, Observer, Teardown

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ValueCell(Observable[T], Generic[T]):
    """Holds a current value that can be read, replaced, and watched.

    Subscribers receive the current value immediately, then every value
    passed to ``set`` (including repeats).
    """

    def __init__(self, initial: T) -> None:
        super().__init__(self._attach)
        self._value = initial
        self._observers: list[Observer[T]] = []

    @property
    def value(self) -> T:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._observers)

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        """Replace the value and notify subscribers; a failing subscriber does not stop the rest."""
        self._value = value
        for observer in list(self._observers):
            try:
                observer.on_next(value)
            except Exception:
                logger.exception("Value cell subscriber failed")

    def _attach(self, observer: Observer[T]) -> Teardown:
        self._observers.append(observer)
        observer.on_next(self._value)

        def teardown() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return teardown
