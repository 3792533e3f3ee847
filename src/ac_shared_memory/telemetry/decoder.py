"""RecordDecoder — fixed-size page bytes → frozen telemetry record."""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Callable, Mapping
from typing import Any, Generic, TypeVar

from ac_shared_memory.telemetry.exceptions import LayoutMismatchError
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

R = TypeVar("R")


def _enum_or_int(enum_type: type[enum.IntEnum]) -> Callable[[int], Any]:
    """Map a raw int onto *enum_type*, keeping values a newer publisher may add."""

    def convert(raw: int) -> Any:
        try:
            return enum_type(raw)
        except ValueError:
            return raw

    return convert


class RecordDecoder(Generic[R]):
    """Decodes one page layout into *record_type* instances.

    Parameters
    ----------
    layout:
        The page's :class:`~ac_shared_memory.telemetry.layout.RecordLayout`.
    record_type:
        Frozen dataclass whose fields match the layout's field names.
    converters:
        Optional per-field conversion applied after the raw read.
    """

    def __init__(
        self,
        layout: RecordLayout,
        record_type: type[R],
        converters: Mapping[str, Callable[[Any], Any]] | None = None,
    ) -> None:
        record_fields = tuple(f.name for f in dataclasses.fields(record_type))  # type: ignore[arg-type]
        if record_fields != layout.names:
            raise ValueError(f"{record_type.__name__} fields do not match the {layout.name} layout")
        self._layout = layout
        self._record_type = record_type
        self._converters = dict(converters or {})

    @property
    def name(self) -> str:
        return self._layout.name

    @property
    def size(self) -> int:
        """Exact byte length of one page."""
        return self._layout.size

    def decode(self, data: bytes) -> R:
        """Decode *data*, which must be exactly :attr:`size` bytes long.

        Raises
        ------
        LayoutMismatchError
            If ``len(data)`` differs from the layout size.
        """
        if len(data) != self._layout.size:
            raise LayoutMismatchError(self._layout.name, self._layout.size, len(data))
        values = self._layout.unpack(data)
        for name, convert in self._converters.items():
            values[name] = convert(values[name])
        return self._record_type(**values)

    def encode(self, record: R) -> bytes:
        """Serialize *record* back into the page's binary layout."""
        values = {f.name: getattr(record, f.name) for f in dataclasses.fields(record)}  # type: ignore[arg-type]
        return self._layout.pack(values)


PHYSICS_DECODER: RecordDecoder[Physics] = RecordDecoder(PHYSICS_LAYOUT, Physics)

GRAPHICS_DECODER: RecordDecoder[Graphics] = RecordDecoder(
    GRAPHICS_LAYOUT,
    Graphics,
    converters={
        "status": _enum_or_int(AcStatus),
        "session": _enum_or_int(AcSessionType),
        "flag": _enum_or_int(AcFlagType),
        "is_in_pit": bool,
    },
)

STATIC_INFO_DECODER: RecordDecoder[StaticInfo] = RecordDecoder(STATIC_INFO_LAYOUT, StaticInfo)
