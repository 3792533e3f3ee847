"""AssettoCorsa — owns the shared memory connection and the region pollers."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TypeVar

from ac_shared_memory.telemetry.config import TelemetryConfig
from ac_shared_memory.telemetry.decoder import (
    GRAPHICS_DECODER,
    PHYSICS_DECODER,
    STATIC_INFO_DECODER,
    RecordDecoder,
)
from ac_shared_memory.telemetry.dispatcher import GraphicsChangeDetector
from ac_shared_memory.telemetry.events import Event
from ac_shared_memory.telemetry.exceptions import (
    LayoutMismatchError,
    NotConnectedError,
    RegionNotPublishedError,
)
from ac_shared_memory.telemetry.models import ConnectionState, Graphics, Physics, StaticInfo
from ac_shared_memory.telemetry.poller import Poller
from ac_shared_memory.telemetry.region import RegionHandle
from ac_shared_memory.telemetry.scheduler import RecurringTask

_logger = logging.getLogger(__name__)

R = TypeVar("R")

PHYSICS = "physics"
GRAPHICS = "graphics"
STATIC_INFO = "static_info"


class AssettoCorsa:
    """Connects to the simulation's shared memory and publishes its telemetry.

    :meth:`start` attaches to the physics, graphics and static info regions,
    all or nothing.  While any of them is missing (the simulation is not
    running yet) a retry task attempts the full connection again every
    ``retry_interval`` ms, indefinitely, until it succeeds or :meth:`stop` is
    called.  Once connected each region is polled by its own thread at its
    own interval and every decoded record is announced on the matching
    event.  Graphics records additionally feed a
    :class:`~ac_shared_memory.telemetry.dispatcher.GraphicsChangeDetector`.

    Parameters
    ----------
    config:
        Intervals and region names.  Defaults to :class:`TelemetryConfig()`.
    opener:
        Callable that attaches to a region by name, raising
        :class:`RegionNotPublishedError` when it does not exist.  Injected for
        testability; defaults to :meth:`RegionHandle.open`.

    Events
    ------
    ``physics_updated(Physics)``, ``graphics_updated(Graphics)``,
    ``static_info_updated(StaticInfo)``, ``run_status_changed(AcStatus)``,
    ``pit_status_changed(bool)``, ``session_type_changed(AcSessionType)``
    and ``connection_changed(bool)``.
    """

    def __init__(
        self,
        config: TelemetryConfig | None = None,
        opener: Callable[[str], RegionHandle] | None = None,
    ) -> None:
        cfg = config or TelemetryConfig()
        self._opener = opener or RegionHandle.open
        self._region_names = {
            STATIC_INFO: cfg.static_info_region,
            GRAPHICS: cfg.graphics_region,
            PHYSICS: cfg.physics_region,
        }
        self._lock = threading.RLock()
        self._state = ConnectionState.DISCONNECTED
        self._active = False
        self._handles: dict[str, RegionHandle | None] = dict.fromkeys(self._region_names)

        self._detector = GraphicsChangeDetector(self._is_polling_allowed)
        self.physics_updated = Event("physics_updated", self._is_polling_allowed)
        self.static_info_updated = Event("static_info_updated", self._is_polling_allowed)
        self.graphics_updated = self._detector.graphics_updated
        self.run_status_changed = self._detector.run_status_changed
        self.pit_status_changed = self._detector.pit_status_changed
        self.session_type_changed = self._detector.session_type_changed
        self.connection_changed = Event("connection_changed")

        # Start order on connect: static info, graphics, physics.
        self._pollers: dict[str, Poller] = {
            STATIC_INFO: Poller(
                STATIC_INFO,
                self.read_static_info,
                self.static_info_updated.emit,
                self._is_polling_allowed,
                cfg.static_info_interval_ms,
            ),
            GRAPHICS: Poller(
                GRAPHICS,
                self.read_graphics,
                self._detector.observe,
                self._is_polling_allowed,
                cfg.graphics_interval_ms,
            ),
            PHYSICS: Poller(
                PHYSICS,
                self.read_physics,
                self.physics_updated.emit,
                self._is_polling_allowed,
                cfg.physics_interval_ms,
            ),
        }
        self._retry = RecurringTask("shared-memory-retry", self._retry_connect, cfg.retry_interval_ms)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        """True when all three regions are attached."""
        return self._state is ConnectionState.CONNECTED

    def start(self) -> bool:
        """Connect now, or keep retrying in the background until connected.

        Returns True if the immediate attempt connected.  Calling
        :meth:`start` again while started does nothing.
        """
        with self._lock:
            if self._active:
                return self.is_connected
            self._active = True
            if self._connect():
                return True
            if not self._active:
                # stopped by a subscriber during the connect
                return False
            _logger.info(
                "Shared memory not available, retrying every %.0f ms", self._retry.interval
            )
            self._retry.start()
            return False

    def stop(self) -> None:
        """Stop the pollers and the retry task, then close all regions.

        When this returns no subscriber is called again until the next
        :meth:`start`.  Safe to call from a subscriber and when not started;
        from a subscriber, the rest of the current tick is dropped, including
        later subscribers of the same event and pending transitions.
        """
        with self._lock:
            was_connected = self.is_connected
            self._active = False
            self._state = ConnectionState.DISCONNECTED
            threads = [self._retry.cancel()]
            threads.extend(poller.cancel() for poller in self._pollers.values())
            handles = [h for h in self._handles.values() if h is not None]
            self._handles = dict.fromkeys(self._region_names)

        # Outside the lock: a tick being waited for may itself call stop().
        for thread in threads:
            RecurringTask.wait(thread)
        for handle in handles:
            handle.close()
        self._detector.reset()

        if was_connected:
            _logger.info("Disconnected from Assetto Corsa shared memory")
            self.connection_changed.emit(False)

    def read_physics(self) -> Physics:
        """Read and decode the physics region now.

        Raises
        ------
        NotConnectedError
            If the shared memory is not connected.
        LayoutMismatchError
            If the region's content does not match the physics layout.
        """
        return self._read(PHYSICS, PHYSICS_DECODER)

    def read_graphics(self) -> Graphics:
        """Read and decode the graphics region now (see :meth:`read_physics`)."""
        return self._read(GRAPHICS, GRAPHICS_DECODER)

    def read_static_info(self) -> StaticInfo:
        """Read and decode the static info region now (see :meth:`read_physics`)."""
        return self._read(STATIC_INFO, STATIC_INFO_DECODER)

    @property
    def physics_interval(self) -> float:
        """Physics polling interval in milliseconds."""
        return self._pollers[PHYSICS].interval

    @physics_interval.setter
    def physics_interval(self, value: float) -> None:
        self._pollers[PHYSICS].interval = value

    @property
    def graphics_interval(self) -> float:
        """Graphics polling interval in milliseconds."""
        return self._pollers[GRAPHICS].interval

    @graphics_interval.setter
    def graphics_interval(self, value: float) -> None:
        self._pollers[GRAPHICS].interval = value

    @property
    def static_info_interval(self) -> float:
        """Static info polling interval in milliseconds."""
        return self._pollers[STATIC_INFO].interval

    @static_info_interval.setter
    def static_info_interval(self, value: float) -> None:
        self._pollers[STATIC_INFO].interval = value

    @property
    def retry_interval(self) -> float:
        """Delay between connection attempts while disconnected, in milliseconds."""
        return self._retry.interval

    @retry_interval.setter
    def retry_interval(self, value: float) -> None:
        self._retry.interval = value

    @property
    def errors(self) -> dict[str, LayoutMismatchError]:
        """Layout errors that stopped a poller, keyed by region."""
        return {name: p.error for name, p in self._pollers.items() if p.error is not None}

    def __enter__(self) -> AssettoCorsa:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def __repr__(self) -> str:
        return f"<AssettoCorsa {self._state.value}>"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _is_polling_allowed(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def _read(self, region: str, decoder: RecordDecoder[R]) -> R:
        handle = self._handles[region]
        if self._state is not ConnectionState.CONNECTED or handle is None:
            raise NotConnectedError()
        return decoder.decode(handle.snapshot(decoder.size))

    def _retry_connect(self) -> None:
        _logger.debug("Retrying shared memory connection")
        self._connect()

    def _connect(self) -> bool:
        """Attach to all three regions or to none of them."""
        with self._lock:
            # Re-checked under the lock: stop() may have won the race.
            if not self._active:
                return False
            if self.is_connected:
                return True

            self._state = ConnectionState.CONNECTING
            opened: dict[str, RegionHandle] = {}
            try:
                for region, name in self._region_names.items():
                    opened[region] = self._opener(name)
            except (RegionNotPublishedError, OSError) as exc:
                for handle in opened.values():
                    handle.close()
                self._state = ConnectionState.DISCONNECTED
                if isinstance(exc, RegionNotPublishedError):
                    _logger.debug("Shared memory not published yet: %s", exc)
                else:
                    _logger.warning("Could not attach to shared memory: %s", exc)
                return False

            self._handles.update(opened)
            self._state = ConnectionState.CONNECTED
            self._retry.cancel()
            _logger.info("Connected to Assetto Corsa shared memory")

            for poller in self._pollers.values():
                # A subscriber of the forced poll may have called stop().
                if not self.is_connected:
                    return False
                poller.start()
                poller.poll_now()

            self.connection_changed.emit(True)
            return self.is_connected
