"""Listener registry for controller state changes."""

import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Observable(Generic[T]):
    """Holds listeners and notifies them with a state snapshot."""

    def __init__(self):
        self._listeners: list[Callable[[T], None]] = []

    def add_listener(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(callback)
        return lambda: self.remove_listener(callback)

    def remove_listener(self, callback: Callable[[T], None]) -> None:
        """Unregister a listener."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, snapshot: T) -> None:
        for callback in list(self._listeners):
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"State listener error: {e}")
