"""Telemetry acquisition from Assetto Corsa shared memory.

Public API
----------
AssettoCorsa            - connection manager, pollers and events
TelemetryConfig         - polling intervals and region names
Physics / Graphics / StaticInfo - decoded records
AcStatus / AcSessionType / AcFlagType - enums carried by Graphics
ConnectionState         - DISCONNECTED / CONNECTING / CONNECTED
RegionHandle            - read-only attachment to one shared memory region
RecordDecoder           - fixed binary layout → record
NotConnectedError       - synchronous read while disconnected
LayoutMismatchError     - snapshot size differs from the record layout
RegionNotPublishedError - region does not exist yet
"""

from ac_shared_memory.telemetry.config import TelemetryConfig
from ac_shared_memory.telemetry.connection import AssettoCorsa
from ac_shared_memory.telemetry.decoder import (
    GRAPHICS_DECODER,
    PHYSICS_DECODER,
    STATIC_INFO_DECODER,
    RecordDecoder,
)
from ac_shared_memory.telemetry.exceptions import (
    LayoutMismatchError,
    NotConnectedError,
    RegionNotPublishedError,
    SharedMemoryError,
)
from ac_shared_memory.telemetry.models import (
    AcFlagType,
    AcSessionType,
    AcStatus,
    ConnectionState,
    Graphics,
    Physics,
    StaticInfo,
)
from ac_shared_memory.telemetry.region import RegionHandle

__all__ = [
    "GRAPHICS_DECODER",
    "PHYSICS_DECODER",
    "STATIC_INFO_DECODER",
    "AcFlagType",
    "AcSessionType",
    "AcStatus",
    "AssettoCorsa",
    "ConnectionState",
    "Graphics",
    "LayoutMismatchError",
    "NotConnectedError",
    "Physics",
    "RecordDecoder",
    "RegionHandle",
    "RegionNotPublishedError",
    "SharedMemoryError",
    "StaticInfo",
    "TelemetryConfig",
]
