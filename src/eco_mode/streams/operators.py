"""Combinators over live sequences."""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol, TypeVar

from eco_mode.streams.observable import Observable, Observer, Subscription, Teardown

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[str], None]


class SupportsListeners(Protocol):
    """Anything that registers named event listeners."""

    def add_listener(self, event_type: str, listener: Listener) -> None: ...

    def remove_listener(self, event_type: str, listener: Listener) -> None: ...


def from_event(target: SupportsListeners, *event_types: str) -> Observable[str]:
    """Emit the event type each time ``target`` dispatches one of ``event_types``.

    Listeners are registered on subscribe and removed on teardown.
    """

    def subscribe(observer: Observer[str]) -> Teardown:
        handler = observer.on_next
        for event_type in event_types:
            target.add_listener(event_type, handler)

        def teardown() -> None:
            for event_type in event_types:
                target.remove_listener(event_type, handler)

        return teardown

    return Observable(subscribe)


def _unsubscribe_all(subscriptions: list[Subscription]) -> Teardown:
    def teardown() -> None:
        for subscription in subscriptions:
            subscription.unsubscribe()

    return teardown


def merge(*sources: Observable[Any]) -> Observable[Any]:
    """Interleave values from all sources in delivery order."""

    def subscribe(observer: Observer[Any]) -> Teardown:
        remaining = len(sources)
        subscriptions: list[Subscription] = []

        def on_complete() -> None:
            nonlocal remaining
            remaining -= 1
            if remaining == 0:
                observer.on_complete()

        for source in sources:
            subscriptions.append(source.subscribe(observer.on_next, observer.on_error, on_complete))
        return _unsubscribe_all(subscriptions)

    return Observable(subscribe)


def combine_latest(*sources: Observable[Any]) -> Observable[tuple]:
    """Emit a tuple of the latest value from every source.

    Nothing is emitted until each source has produced a value. After that,
    every emission from any source yields exactly one tuple. A completed
    source keeps contributing its last value; the combined sequence completes
    once all sources have completed, or immediately if a source completes
    without ever emitting.
    """

    def subscribe(observer: Observer[tuple]) -> Teardown:
        count = len(sources)
        values: list[Any] = [None] * count
        has_value = [False] * count
        completed = [False] * count
        subscriptions: list[Subscription] = []

        def make_on_next(index: int) -> Callable[[Any], None]:
            def on_next(value: Any) -> None:
                values[index] = value
                has_value[index] = True
                if all(has_value):
                    observer.on_next(tuple(values))

            return on_next

        def make_on_complete(index: int) -> Callable[[], None]:
            def on_complete() -> None:
                completed[index] = True
                if not has_value[index] or all(completed):
                    observer.on_complete()

            return on_complete

        for index, source in enumerate(sources):
            subscriptions.append(
                source.subscribe(make_on_next(index), observer.on_error, make_on_complete(index))
            )
        return _unsubscribe_all(subscriptions)

    return Observable(subscribe)


def on_error_return(source: Observable[T], fallback: Callable[[BaseException], T]) -> Observable[T]:
    """Replace an error with ``fallback(error)`` followed by completion."""

    def subscribe(observer: Observer[T]) -> Teardown:
        def on_error(error: BaseException) -> None:
            observer.on_next(fallback(error))
            observer.on_complete()

        return source.subscribe(observer.on_next, on_error, observer.on_complete).unsubscribe

    return Observable(subscribe)
