"""Minimal push-based live sequences.

An ``Observable`` wraps a subscribe function. Subscribing hands that function
an ``Observer``; the function may return a teardown callable, which runs
exactly once: when the subscriber unsubscribes or when the sequence
terminates (error or completion), whichever happens first.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

Teardown = Callable[[], None]


class Subscription:
    """Handle returned by ``Observable.subscribe``.

    Unsubscribing stops its observer at once, so a value already being
    delivered to other subscribers no longer reaches it.
    """

    def __init__(self, observer: Optional[Observer] = None) -> None:
        self._observer = observer
        self._teardown: Teardown | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(self, teardown: Teardown | None) -> None:
        """Attach the producer's teardown; runs it at once if already closed."""
        if teardown is None:
            return
        if self._closed:
            teardown()
            return
        self._teardown = teardown

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._observer is not None:
            self._observer.stop()
            self._observer = None
        teardown, self._teardown = self._teardown, None
        if teardown is not None:
            teardown()


class Observer(Generic[T]):
    """Forwards notifications to subscriber callbacks until the sequence terminates."""

    def __init__(
        self,
        on_next: Optional[Callable[[T], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> None:
        self._on_next = on_next
        self._on_error = on_error
        self._on_complete = on_complete
        self._stopped = False
        self._subscription: Subscription | None = None

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        """Drop all further notifications without calling any callback."""
        self._stopped = True

    def on_next(self, value: T) -> None:
        if self._stopped or self._on_next is None:
            return
        self._on_next(value)

    def on_error(self, error: BaseException) -> None:
        if self._stopped:
            return
        self._stopped = True
        try:
            if self._on_error is not None:
                self._on_error(error)
            else:
                logger.error("Unhandled error in live sequence: %s", error, exc_info=error)
        finally:
            self._release()

    def on_complete(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        try:
            if self._on_complete is not None:
                self._on_complete()
        finally:
            self._release()

    def _release(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()


class Observable(Generic[T]):
    """A live sequence of values backed by a subscribe function."""

    def __init__(self, subscribe_fn: Callable[[Observer[T]], Optional[Teardown]]) -> None:
        self._subscribe_fn = subscribe_fn

    def subscribe(
        self,
        on_next: Optional[Callable[[T], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> Subscription:
        """Start receiving values. Returns a handle whose ``unsubscribe`` stops delivery."""
        observer: Observer[T] = Observer(on_next, on_error, on_complete)
        subscription = Subscription(observer)
        observer._subscription = subscription
        try:
            teardown = self._subscribe_fn(observer)
        except Exception as exc:
            observer.on_error(exc)
            return subscription
        subscription.attach(teardown)
        return subscription

    def map(self, fn: Callable[[T], U]) -> Observable[U]:
        """Transform each value; an exception from ``fn`` terminates the sequence."""

        def subscribe(observer: Observer[U]) -> Teardown:
            def on_next(value: T) -> None:
                try:
                    mapped = fn(value)
                except Exception as exc:
                    observer.on_error(exc)
                    return
                observer.on_next(mapped)

            return self.subscribe(on_next, observer.on_error, observer.on_complete).unsubscribe

        return Observable(subscribe)

    def start_with(self, value: T) -> Observable[T]:
        """Emit ``value`` synchronously on subscribe, then mirror this sequence."""

        def subscribe(observer: Observer[T]) -> Teardown:
            observer.on_next(value)
            return self.subscribe(observer.on_next, observer.on_error, observer.on_complete).unsubscribe

        return Observable(subscribe)
