"""Event — an explicit subscriber list for one kind of notification."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

_logger = logging.getLogger(__name__)


class Event:
    """Subscribers registered here are called in registration order on :meth:`emit`.

    A subscriber that raises is logged and does not prevent the remaining
    subscribers from being called.

    Parameters
    ----------
    name:
        Used in log messages.
    is_live:
        Optional guard checked before each subscriber is called.  Once it
        returns False the rest of the emission is abandoned, so a subscriber
        that shuts the source down is the last one called.
    """

    def __init__(self, name: str, is_live: Callable[[], bool] | None = None) -> None:
        self.name = name
        self._is_live = is_live
        self._callbacks: list[Callable[..., Any]] = []
        self._lock = threading.Lock()

    def register(self, callback: Callable[..., Any]) -> Callable[..., Any]:
        """Register *callback*; returns it so this can be used as a decorator."""
        with self._lock:
            self._callbacks.append(callback)
        return callback

    def unregister(self, callback: Callable[..., Any]) -> None:
        """Remove *callback*.  Unknown callbacks are ignored."""
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def emit(self, *args: Any) -> None:
        with self._lock:
            callbacks = list(self._callbacks)
        for cb in callbacks:
            if self._is_live is not None and not self._is_live():
                _logger.debug("%s: source stopped, skipping remaining subscribers", self.name)
                return
            try:
                cb(*args)
            except Exception:
                _logger.exception("%s subscriber %r failed", self.name, cb)

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def __repr__(self) -> str:
        return f"<Event {self.name!r} subscribers={len(self)}>"
