"""GraphicsChangeDetector — turns graphics polls into transition events."""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Callable
from typing import Any

from ac_shared_memory.telemetry.events import Event
from ac_shared_memory.telemetry.models import Graphics, TrackedGraphicsFields


def _always_live() -> bool:
    return True


class GraphicsChangeDetector:
    """Compares each graphics record with the last one seen.

    Every observed record is announced on :attr:`graphics_updated`.  Then
    run status, pit status and session type are compared independently with
    their previously stored values, and each one that differs is stored and
    announced once, always in that order.

    :meth:`observe` must only be called from the graphics poller's
    single-flight path, which is the only writer of :attr:`tracked`.

    Parameters
    ----------
    is_live:
        Checked before every step and every subscriber.  When it turns False
        mid-observe (a subscriber stopped the connection) the rest of the
        record is dropped without touching :attr:`tracked`.
    """

    def __init__(self, is_live: Callable[[], bool] | None = None) -> None:
        self._is_live = is_live or _always_live
        self.graphics_updated = Event("graphics_updated", self._is_live)
        self.run_status_changed = Event("run_status_changed", self._is_live)
        self.pit_status_changed = Event("pit_status_changed", self._is_live)
        self.session_type_changed = Event("session_type_changed", self._is_live)
        self._lock = threading.Lock()
        self._generation = 0
        self._tracked = TrackedGraphicsFields()

    @property
    def tracked(self) -> TrackedGraphicsFields:
        """Last known values, initially Off / in pit / unknown session."""
        return self._tracked

    def reset(self) -> None:
        """Restore the initial values; an observe already in progress is abandoned."""
        with self._lock:
            self._generation += 1
            self._tracked = TrackedGraphicsFields()

    def observe(self, graphics: Graphics) -> None:
        with self._lock:
            generation = self._generation
        if not self._is_live():
            return
        self.graphics_updated.emit(graphics)

        if graphics.status != self._tracked.status:
            if not self._store(generation, status=graphics.status):
                return
            self.run_status_changed.emit(graphics.status)

        in_pit = bool(graphics.is_in_pit)
        if in_pit != self._tracked.in_pit:
            if not self._store(generation, in_pit=in_pit):
                return
            self.pit_status_changed.emit(in_pit)

        if graphics.session != self._tracked.session:
            if not self._store(generation, session=graphics.session):
                return
            self.session_type_changed.emit(graphics.session)

    def _store(self, generation: int, **changes: Any) -> bool:
        """Apply *changes* unless a reset or a stop happened since *generation*."""
        with self._lock:
            if generation != self._generation or not self._is_live():
                return False
            self._tracked = dataclasses.replace(self._tracked, **changes)
            return True
