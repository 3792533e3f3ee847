"""Binary field layouts of the three Assetto Corsa shared memory pages.

The simulation publishes each page as a C struct compiled with 4-byte
packing: 32-bit ints and floats are aligned to 4 bytes, ``wchar_t`` text to
2 bytes, and the struct size is rounded up to a multiple of 4.  Every field
is read explicitly from its computed offset; nothing is reinterpreted in
place.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

_PACK = 4

# kind → (byte width, struct code)
_KINDS: dict[str, tuple[int, str]] = {
    "i": (4, "i"),  # int32
    "f": (4, "f"),  # float32
    "w": (2, ""),  # UTF-16 code unit (wchar_t on Windows)
}


@dataclass(frozen=True)
class Field:
    """One field of a page: *count* elements of *kind* at *offset*.

    Numeric fields with ``count > 1`` decode to a tuple; with ``group > 1``
    to a tuple of ``count // group`` tuples (e.g. four XYZ coordinates).
    Text fields (``kind == "w"``) hold *count* UTF-16 code units including
    the NUL terminator.
    """

    name: str
    kind: str
    count: int = 1
    group: int = 1
    offset: int = 0

    @property
    def width(self) -> int:
        return _KINDS[self.kind][0] * self.count

    @property
    def alignment(self) -> int:
        return min(_KINDS[self.kind][0], _PACK)


def _align(offset: int, alignment: int) -> int:
    return (offset + alignment - 1) // alignment * alignment


class RecordLayout:
    """An ordered field table with offsets computed under 4-byte packing."""

    def __init__(self, name: str, fields: Iterable[tuple]) -> None:
        self.name = name
        laid_out: list[Field] = []
        offset = 0
        max_alignment = 1
        for entry in fields:
            field = Field(*entry)
            if field.kind not in _KINDS:
                raise ValueError(f"{name}.{field.name}: unknown field kind {field.kind!r}")
            if field.count % field.group:
                raise ValueError(f"{name}.{field.name}: count not divisible by group")
            offset = _align(offset, field.alignment)
            laid_out.append(replace(field, offset=offset))
            offset += field.width
            max_alignment = max(max_alignment, field.alignment)
        self.fields: tuple[Field, ...] = tuple(laid_out)
        self.size: int = _align(offset, max_alignment)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def unpack(self, buf: bytes) -> dict[str, Any]:
        """Read every field of *buf* into a ``{name: value}`` dict.

        *buf* must be at least :attr:`size` bytes long.
        """
        return {f.name: _unpack_field(buf, f) for f in self.fields}

    def pack(self, values: Mapping[str, Any]) -> bytes:
        """Inverse of :meth:`unpack`; missing fields are written as zero."""
        buf = bytearray(self.size)
        for f in self.fields:
            if f.name in values:
                _pack_field(buf, f, values[f.name])
        return bytes(buf)


def _unpack_field(buf: bytes, field: Field) -> Any:
    if field.kind == "w":
        raw = bytes(buf[field.offset : field.offset + field.width])
        text = raw.decode("utf-16-le", errors="replace")
        end = text.find("\x00")
        return text if end < 0 else text[:end]

    values = struct.unpack_from(f"<{field.count}{_KINDS[field.kind][1]}", buf, field.offset)
    if field.count == 1:
        return values[0]
    if field.group > 1:
        return tuple(
            tuple(values[i : i + field.group]) for i in range(0, field.count, field.group)
        )
    return tuple(values)


def _pack_field(buf: bytearray, field: Field, value: Any) -> None:
    if field.kind == "w":
        # Keep room for the NUL terminator.
        raw = str(value)[: field.count - 1].encode("utf-16-le")
        buf[field.offset : field.offset + len(raw)] = raw
        return

    if field.count == 1:
        flat = [value]
    elif field.group > 1:
        flat = [v for item in value for v in item]
    else:
        flat = list(value)
    if field.kind == "i":
        flat = [int(v) for v in flat]
    struct.pack_into(f"<{field.count}{_KINDS[field.kind][1]}", buf, field.offset, *flat)


# ---------------------------------------------------------------------------
# Page layouts
# ---------------------------------------------------------------------------

PHYSICS_LAYOUT = RecordLayout(
    "Physics",
    (
        # name                     kind count group
        ("packet_id",              "i"),
        ("gas",                    "f"),
        ("brake",                  "f"),
        ("fuel",                   "f"),
        ("gear",                   "i"),
        ("rpms",                   "i"),
        ("steer_angle",            "f"),
        ("speed_kmh",              "f"),
        ("velocity",               "f", 3),
        ("acc_g",                  "f", 3),
        ("wheel_slip",             "f", 4),
        ("wheel_load",             "f", 4),
        ("wheels_pressure",        "f", 4),
        ("wheel_angular_speed",    "f", 4),
        ("tyre_wear",              "f", 4),
        ("tyre_dirty_level",       "f", 4),
        ("tyre_core_temperature",  "f", 4),
        ("camber_rad",             "f", 4),
        ("suspension_travel",      "f", 4),
        ("drs",                    "f"),
        ("tc",                     "f"),
        ("heading",                "f"),
        ("pitch",                  "f"),
        ("roll",                   "f"),
        ("cg_height",              "f"),
        ("car_damage",             "f", 5),
        ("number_of_tyres_out",    "i"),
        ("pit_limiter_on",         "i"),
        ("abs",                    "f"),
        ("kers_charge",            "f"),
        ("kers_input",             "f"),
        ("auto_shifter_on",        "i"),
        ("ride_height",            "f", 2),
        ("turbo_boost",            "f"),
        ("ballast",                "f"),
        ("air_density",            "f"),
        ("air_temp",               "f"),
        ("road_temp",              "f"),
        ("local_angular_velocity", "f", 3),
        ("final_ff",               "f"),
        ("performance_meter",      "f"),
        ("engine_brake",           "i"),
        ("ers_recovery_level",     "i"),
        ("ers_power_level",        "i"),
        ("ers_heat_charging",      "i"),
        ("ers_is_charging",        "i"),
        ("kers_current_kj",        "f"),
        ("drs_available",          "i"),
        ("drs_enabled",            "i"),
        ("brake_temp",             "f", 4),
        ("clutch",                 "f"),
        ("tyre_temp_i",            "f", 4),
        ("tyre_temp_m",            "f", 4),
        ("tyre_temp_o",            "f", 4),
        ("is_ai_controlled",       "i"),
        ("tyre_contact_point",     "f", 12, 3),
        ("tyre_contact_normal",    "f", 12, 3),
        ("tyre_contact_heading",   "f", 12, 3),
        ("brake_bias",             "f"),
        ("local_velocity",         "f", 3),
    ),
)

GRAPHICS_LAYOUT = RecordLayout(
    "Graphics",
    (
        ("packet_id",               "i"),
        ("status",                  "i"),
        ("session",                 "i"),
        ("current_time",            "w", 15),
        ("last_time",               "w", 15),
        ("best_time",               "w", 15),
        ("split",                   "w", 15),
        ("completed_laps",          "i"),
        ("position",                "i"),
        ("i_current_time",          "i"),
        ("i_last_time",             "i"),
        ("i_best_time",             "i"),
        ("session_time_left",       "f"),
        ("distance_traveled",       "f"),
        ("is_in_pit",               "i"),
        ("current_sector_index",    "i"),
        ("last_sector_time",        "i"),
        ("number_of_laps",          "i"),
        ("tyre_compound",           "w", 33),
        ("replay_time_multiplier",  "f"),
        ("normalized_car_position", "f"),
        ("car_coordinates",         "f", 3),
        ("penalty_time",            "f"),
        ("flag",                    "i"),
        ("ideal_line_on",           "i"),
        ("is_in_pit_lane",          "i"),
        ("surface_grip",            "f"),
        ("mandatory_pit_done",      "i"),
        ("wind_speed",              "f"),
        ("wind_direction",          "f"),
    ),
)

STATIC_INFO_LAYOUT = RecordLayout(
    "StaticInfo",
    (
        ("sm_version",                  "w", 15),
        ("ac_version",                  "w", 15),
        ("number_of_sessions",          "i"),
        ("num_cars",                    "i"),
        ("car_model",                   "w", 33),
        ("track",                       "w", 33),
        ("player_name",                 "w", 33),
        ("player_surname",              "w", 33),
        ("player_nick",                 "w", 33),
        ("sector_count",                "i"),
        ("max_torque",                  "f"),
        ("max_power",                   "f"),
        ("max_rpm",                     "i"),
        ("max_fuel",                    "f"),
        ("suspension_max_travel",       "f", 4),
        ("tyre_radius",                 "f", 4),
        ("max_turbo_boost",             "f"),
        ("deprecated_1",                "f"),
        ("deprecated_2",                "f"),
        ("penalties_enabled",           "i"),
        ("aid_fuel_rate",               "f"),
        ("aid_tire_rate",               "f"),
        ("aid_mechanical_damage",       "f"),
        ("aid_allow_tyre_blankets",     "i"),
        ("aid_stability",               "f"),
        ("aid_auto_clutch",             "i"),
        ("aid_auto_blip",               "i"),
        ("has_drs",                     "i"),
        ("has_ers",                     "i"),
        ("has_kers",                    "i"),
        ("kers_max_j",                  "f"),
        ("engine_brake_settings_count", "i"),
        ("ers_power_controller_count",  "i"),
        ("track_spline_length",         "f"),
        ("track_configuration",         "w", 33),
        ("ers_max_j",                   "f"),
        ("is_timed_race",               "i"),
        ("has_extra_lap",               "i"),
        ("car_skin",                    "w", 33),
        ("reversed_grid_positions",     "i"),
        ("pit_window_start",            "i"),
        ("pit_window_end",              "i"),
    ),
)
