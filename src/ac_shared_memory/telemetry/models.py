"""Telemetry record models and the enums they carry."""

from __future__ import annotations

import enum
from dataclasses import dataclass

Vector3 = tuple[float, float, float]
Wheels = tuple[float, float, float, float]


class ConnectionState(enum.Enum):
    """Shared memory connection state of an :class:`~ac_shared_memory.telemetry.connection.AssettoCorsa`."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class AcStatus(enum.IntEnum):
    """Run status of the simulation (``Graphics.status``)."""

    OFF = 0
    REPLAY = 1
    LIVE = 2
    PAUSE = 3

    @property
    def display_name(self) -> str:
        return STATUS_NAMES[self]


STATUS_NAMES: dict[AcStatus, str] = {
    AcStatus.OFF: "Off",
    AcStatus.LIVE: "Live",
    AcStatus.PAUSE: "Pause",
    AcStatus.REPLAY: "Replay",
}


class AcSessionType(enum.IntEnum):
    """Session type (``Graphics.session``)."""

    UNKNOWN = -1
    PRACTICE = 0
    QUALIFY = 1
    RACE = 2
    HOTLAP = 3
    TIME_ATTACK = 4
    DRIFT = 5
    DRAG = 6


class AcFlagType(enum.IntEnum):
    """Flag shown to the driver (``Graphics.flag``)."""

    NO_FLAG = 0
    BLUE = 1
    YELLOW = 2
    BLACK = 3
    WHITE = 4
    CHECKERED = 5
    PENALTY = 6


@dataclass(frozen=True)
class Physics:
    """Physics page, updated by the simulation every physics step.

    Per-wheel tuples are ordered front-left, front-right, rear-left,
    rear-right.
    """

    packet_id: int
    gas: float
    """Throttle pedal position [0.0, 1.0]."""
    brake: float
    """Brake pedal position [0.0, 1.0]."""
    fuel: float
    """Fuel left in litres."""
    gear: int
    """0 = reverse, 1 = neutral, 2 = first gear, ..."""
    rpms: int
    steer_angle: float
    speed_kmh: float
    velocity: Vector3
    acc_g: Vector3
    """G-forces [lateral, vertical, longitudinal]."""
    wheel_slip: Wheels
    wheel_load: Wheels
    wheels_pressure: Wheels
    wheel_angular_speed: Wheels
    tyre_wear: Wheels
    tyre_dirty_level: Wheels
    tyre_core_temperature: Wheels
    camber_rad: Wheels
    suspension_travel: Wheels
    drs: float
    tc: float
    heading: float
    pitch: float
    roll: float
    cg_height: float
    car_damage: tuple[float, float, float, float, float]
    number_of_tyres_out: int
    pit_limiter_on: int
    abs: float
    kers_charge: float
    kers_input: float
    auto_shifter_on: int
    ride_height: tuple[float, float]
    turbo_boost: float
    ballast: float
    air_density: float
    air_temp: float
    road_temp: float
    local_angular_velocity: Vector3
    final_ff: float
    performance_meter: float
    engine_brake: int
    ers_recovery_level: int
    ers_power_level: int
    ers_heat_charging: int
    ers_is_charging: int
    kers_current_kj: float
    drs_available: int
    drs_enabled: int
    brake_temp: Wheels
    clutch: float
    tyre_temp_i: Wheels
    tyre_temp_m: Wheels
    tyre_temp_o: Wheels
    is_ai_controlled: int
    tyre_contact_point: tuple[Vector3, Vector3, Vector3, Vector3]
    tyre_contact_normal: tuple[Vector3, Vector3, Vector3, Vector3]
    tyre_contact_heading: tuple[Vector3, Vector3, Vector3, Vector3]
    brake_bias: float
    local_velocity: Vector3


@dataclass(frozen=True)
class Graphics:
    """Graphics page: session state, timing and position."""

    packet_id: int
    status: AcStatus | int
    session: AcSessionType | int
    current_time: str
    last_time: str
    best_time: str
    split: str
    completed_laps: int
    position: int
    i_current_time: int
    """Current lap time in milliseconds."""
    i_last_time: int
    i_best_time: int
    session_time_left: float
    distance_traveled: float
    is_in_pit: bool
    current_sector_index: int
    last_sector_time: int
    number_of_laps: int
    tyre_compound: str
    replay_time_multiplier: float
    normalized_car_position: float
    """Lap progress [0.0, 1.0]."""
    car_coordinates: Vector3
    penalty_time: float
    flag: AcFlagType | int
    ideal_line_on: int
    is_in_pit_lane: int
    surface_grip: float
    mandatory_pit_done: int
    wind_speed: float
    wind_direction: float


@dataclass(frozen=True)
class StaticInfo:
    """Static page: values that do not change during a session."""

    sm_version: str
    ac_version: str
    number_of_sessions: int
    num_cars: int
    car_model: str
    track: str
    player_name: str
    player_surname: str
    player_nick: str
    sector_count: int
    max_torque: float
    max_power: float
    max_rpm: int
    max_fuel: float
    suspension_max_travel: Wheels
    tyre_radius: Wheels
    max_turbo_boost: float
    deprecated_1: float
    deprecated_2: float
    penalties_enabled: int
    aid_fuel_rate: float
    aid_tire_rate: float
    aid_mechanical_damage: float
    aid_allow_tyre_blankets: int
    aid_stability: float
    aid_auto_clutch: int
    aid_auto_blip: int
    has_drs: int
    has_ers: int
    has_kers: int
    kers_max_j: float
    engine_brake_settings_count: int
    ers_power_controller_count: int
    track_spline_length: float
    track_configuration: str
    ers_max_j: float
    is_timed_race: int
    has_extra_lap: int
    car_skin: str
    reversed_grid_positions: int
    pit_window_start: int
    pit_window_end: int


@dataclass(frozen=True)
class TrackedGraphicsFields:
    """Last observed values of the graphics fields that raise transition events."""

    status: AcStatus | int = AcStatus.OFF
    in_pit: bool = True
    session: AcSessionType | int = AcSessionType.UNKNOWN
