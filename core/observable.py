"""Observable value holder used to publish cache snapshots.

A holder keeps the latest value and delivers it to every subscriber, including
subscribers that arrive after the value was published.

Updates:
    v0.1 - 2026-10-06 - Added latest-value broadcaster for cache snapshots.
    v0.2 - 2026-10-18 - Serialised delivery so concurrent publishes arrive in order.
"""

from __future__ import annotations

import logging
from threading import Lock, RLock
from typing import Callable, Dict, Generic, TypeVar

T = TypeVar("T")

LOGGER = logging.getLogger("lostfound.observable")


class Subscription:
    """Handle returned by :meth:`ObservableValue.subscribe`."""

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel = cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        """Stop receiving updates; safe to call more than once."""
        if self._active:
            self._active = False
            self._cancel()


class ObservableValue(Generic[T]):
    """Holds a value and broadcasts every new value to current subscribers."""

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._lock = Lock()
        # Held from value swap through delivery so subscribers see publishes in order.
        self._delivery_lock = RLock()
        self._subscribers: Dict[int, Callable[[T], None]] = {}
        self._next_token = 0

    @property
    def value(self) -> T:
        """Return the latest published value."""
        with self._lock:
            return self._value

    def publish(self, value: T) -> None:
        """Replace the held value and notify subscribers."""
        with self._delivery_lock:
            with self._lock:
                self._value = value
                callbacks = list(self._subscribers.values())
            for callback in callbacks:
                self._deliver(callback, value)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        """Register *callback* and immediately deliver the current value to it."""
        with self._delivery_lock:
            with self._lock:
                token = self._next_token
                self._next_token += 1
                self._subscribers[token] = callback
                current = self._value
            self._deliver(callback, current)

        def _cancel() -> None:
            with self._lock:
                self._subscribers.pop(token, None)

        return Subscription(_cancel)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    @staticmethod
    def _deliver(callback: Callable[[T], None], value: T) -> None:
        # A failing observer must not break the publisher or other observers.
        try:
            callback(value)
        except Exception:
            LOGGER.exception("Snapshot subscriber %r raised; continuing.", callback)
