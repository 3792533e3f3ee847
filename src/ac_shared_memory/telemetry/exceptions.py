"""Exceptions raised by the shared memory telemetry reader.

All exceptions inherit from :class:`SharedMemoryError` so callers can catch
everything with a single except clause if needed.
"""

from __future__ import annotations


class SharedMemoryError(Exception):
    """Base exception for all shared memory telemetry errors."""


class RegionNotPublishedError(SharedMemoryError):
    """Raised when a named shared memory region does not exist yet.

    The simulation creates its regions on startup; until then every attach
    attempt fails with this error.  The connection manager's retry loop
    recovers from it, so callers normally never see it.
    """

    def __init__(self, name: str) -> None:
        super().__init__(f"Shared memory region {name!r} is not published")
        self.name = name


class NotConnectedError(SharedMemoryError):
    """Raised by a synchronous read while the shared memory is not connected."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "Shared Memory not connected, is Assetto Corsa running "
            "and have you run start()?"
        )


class LayoutMismatchError(SharedMemoryError, ValueError):
    """Raised when a snapshot's length differs from the record's fixed size.

    This means the local record layout does not match the publisher's format
    and is treated as a configuration error, not as a transient disconnect.
    """

    def __init__(self, record: str, expected: int, actual: int) -> None:
        super().__init__(
            f"{record} snapshot is {actual} bytes, layout expects {expected}"
        )
        self.record = record
        self.expected = expected
        self.actual = actual
