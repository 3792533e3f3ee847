"""Shared fakes and record builders for telemetry tests."""

from __future__ import annotations

import time

import pytest

from ac_shared_memory.telemetry.config import (
    GRAPHICS_REGION,
    PHYSICS_REGION,
    STATIC_INFO_REGION,
    TelemetryConfig,
)
from ac_shared_memory.telemetry.decoder import (
    GRAPHICS_DECODER,
    PHYSICS_DECODER,
    STATIC_INFO_DECODER,
)
from ac_shared_memory.telemetry.exceptions import NotConnectedError, RegionNotPublishedError
from ac_shared_memory.telemetry.layout import (
    GRAPHICS_LAYOUT,
    PHYSICS_LAYOUT,
    STATIC_INFO_LAYOUT,
    RecordLayout,
)
from ac_shared_memory.telemetry.models import (
    AcFlagType,
    AcSessionType,
    AcStatus,
    Graphics,
    Physics,
    StaticInfo,
)

# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------


def blank_values(layout: RecordLayout) -> dict:
    """Return ``{field: zero value}`` for every field of *layout*."""
    values: dict = {}
    for f in layout.fields:
        if f.kind == "w":
            values[f.name] = ""
            continue
        zero = 0 if f.kind == "i" else 0.0
        if f.count == 1:
            values[f.name] = zero
        elif f.group > 1:
            values[f.name] = tuple((zero,) * f.group for _ in range(f.count // f.group))
        else:
            values[f.name] = (zero,) * f.count
    return values


def make_physics(**overrides) -> Physics:
    return Physics(**{**blank_values(PHYSICS_LAYOUT), **overrides})


def make_graphics(**overrides) -> Graphics:
    defaults = blank_values(GRAPHICS_LAYOUT)
    defaults.update(
        status=AcStatus.OFF,
        session=AcSessionType.PRACTICE,
        flag=AcFlagType.NO_FLAG,
        is_in_pit=False,
    )
    defaults.update(overrides)
    return Graphics(**defaults)


def make_static_info(**overrides) -> StaticInfo:
    return StaticInfo(**{**blank_values(STATIC_INFO_LAYOUT), **overrides})


def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
    """Poll *predicate* until it returns True or *timeout* seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


# ---------------------------------------------------------------------------
# In-memory shared memory
# ---------------------------------------------------------------------------


class FakeRegion:
    """Stands in for a RegionHandle attached to a :class:`FakeSharedMemory` region."""

    def __init__(self, name: str, data: bytearray) -> None:
        self.name = name
        self._data = data
        self.is_open = True
        self.snapshots = 0

    def snapshot(self, size: int) -> bytes:
        if not self.is_open:
            raise NotConnectedError()
        self.snapshots += 1
        return bytes(self._data[:size])

    def close(self) -> None:
        self.is_open = False


class FakeSharedMemory:
    """Named in-memory regions; :meth:`open` is used as the manager's opener."""

    def __init__(self) -> None:
        self.regions: dict[str, bytearray] = {}
        self.handles: list[FakeRegion] = []

    def publish(self, name: str, data: bytes) -> None:
        if name in self.regions:
            self.regions[name][:] = data
        else:
            self.regions[name] = bytearray(data)

    def publish_all(
        self,
        physics: Physics | None = None,
        graphics: Graphics | None = None,
        static_info: StaticInfo | None = None,
    ) -> None:
        self.publish(PHYSICS_REGION, PHYSICS_DECODER.encode(physics or make_physics()))
        self.publish(GRAPHICS_REGION, GRAPHICS_DECODER.encode(graphics or make_graphics()))
        self.publish(
            STATIC_INFO_REGION, STATIC_INFO_DECODER.encode(static_info or make_static_info())
        )

    def open(self, name: str) -> FakeRegion:
        if name not in self.regions:
            raise RegionNotPublishedError(name)
        handle = FakeRegion(name, self.regions[name])
        self.handles.append(handle)
        return handle

    def open_handles(self) -> list[FakeRegion]:
        return [h for h in self.handles if h.is_open]


@pytest.fixture
def shm() -> FakeSharedMemory:
    return FakeSharedMemory()


@pytest.fixture
def slow_config() -> TelemetryConfig:
    """Intervals long enough that only the forced poll on connect runs during a test."""
    return TelemetryConfig(
        physics_interval_ms=5000,
        graphics_interval_ms=5000,
        static_info_interval_ms=5000,
        retry_interval_ms=20,
    )
