"""Poller — drives one region read + decode on its own interval."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

from ac_shared_memory.telemetry.exceptions import LayoutMismatchError, NotConnectedError
from ac_shared_memory.telemetry.scheduler import RecurringTask

_logger = logging.getLogger(__name__)

R = TypeVar("R")


class Poller(Generic[R]):
    """Calls *read* every *interval_ms* and hands the record to *on_tick*.

    Ticks are skipped silently while *is_connected* returns False, and a
    :class:`NotConnectedError` from *read* (a tick racing a disconnect) is
    swallowed.  A :class:`LayoutMismatchError` is a configuration error: it
    is logged, stored on :attr:`error` and stops this poller.

    Parameters
    ----------
    name:
        Region name used for the thread name and log messages.
    read:
        Returns one freshly decoded record.
    on_tick:
        Receives every record read by a tick.
    is_connected:
        Guard checked at the start of every tick.
    interval_ms:
        Initial polling interval in milliseconds.
    """

    def __init__(
        self,
        name: str,
        read: Callable[[], R],
        on_tick: Callable[[R], None],
        is_connected: Callable[[], bool],
        interval_ms: float,
    ) -> None:
        self.name = name
        self._read = read
        self._on_tick = on_tick
        self._is_connected = is_connected
        self._task = RecurringTask(f"{name}-poller", self._tick, interval_ms)
        self.error: LayoutMismatchError | None = None

    @property
    def interval(self) -> float:
        """Polling interval in milliseconds; a change applies from the next wait."""
        return self._task.interval

    @interval.setter
    def interval(self, value: float) -> None:
        self._task.interval = value

    @property
    def is_running(self) -> bool:
        return self._task.is_running

    def start(self, interval_ms: float | None = None) -> None:
        """Start ticking, optionally with a new *interval_ms*."""
        if interval_ms is not None:
            self.interval = interval_ms
        self.error = None
        self._task.start()

    def stop(self) -> None:
        self._task.stop()

    def cancel(self):
        """Stop ticking without waiting; see :meth:`RecurringTask.cancel`."""
        return self._task.cancel()

    def poll_now(self) -> bool:
        """Run one tick synchronously on the calling thread."""
        return self._task.run_once()

    def _tick(self) -> None:
        if not self._is_connected():
            _logger.debug("%s: not connected, skipping tick", self.name)
            return
        try:
            record = self._read()
        except NotConnectedError:
            _logger.debug("%s: disconnected during tick", self.name)
            return
        except LayoutMismatchError as exc:
            self.error = exc
            _logger.error("%s: %s; stopping poller", self.name, exc)
            self._task.cancel()
            return
        self._on_tick(record)
