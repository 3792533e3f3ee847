"""TelemetryConfig — polling intervals and region names.

Values can be read from the environment (and a ``.env`` file in the working
directory) with :meth:`TelemetryConfig.from_env`:

=============================  ==========================
Variable                       Field
=============================  ==========================
``AC_PHYSICS_INTERVAL_MS``     ``physics_interval_ms``
``AC_GRAPHICS_INTERVAL_MS``    ``graphics_interval_ms``
``AC_STATIC_INFO_INTERVAL_MS`` ``static_info_interval_ms``
``AC_RETRY_INTERVAL_MS``       ``retry_interval_ms``
``AC_PHYSICS_REGION``          ``physics_region``
``AC_GRAPHICS_REGION``         ``graphics_region``
``AC_STATIC_INFO_REGION``      ``static_info_region``
=============================  ==========================
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, fields

from dotenv import find_dotenv, load_dotenv

# Windows mappings live in the session-local namespace; POSIX segment names
# carry no prefix.
_REGION_PREFIX = "Local\\" if sys.platform == "win32" else ""

PHYSICS_REGION = f"{_REGION_PREFIX}acpmf_physics"
GRAPHICS_REGION = f"{_REGION_PREFIX}acpmf_graphics"
STATIC_INFO_REGION = f"{_REGION_PREFIX}acpmf_static"

_ENV_VARS: dict[str, str] = {
    "physics_interval_ms": "AC_PHYSICS_INTERVAL_MS",
    "graphics_interval_ms": "AC_GRAPHICS_INTERVAL_MS",
    "static_info_interval_ms": "AC_STATIC_INFO_INTERVAL_MS",
    "retry_interval_ms": "AC_RETRY_INTERVAL_MS",
    "physics_region": "AC_PHYSICS_REGION",
    "graphics_region": "AC_GRAPHICS_REGION",
    "static_info_region": "AC_STATIC_INFO_REGION",
}


@dataclass
class TelemetryConfig:
    """Polling and connection settings for :class:`~ac_shared_memory.telemetry.connection.AssettoCorsa`."""

    physics_interval_ms: float = 10.0
    graphics_interval_ms: float = 1000.0
    static_info_interval_ms: float = 1000.0
    retry_interval_ms: float = 2000.0
    physics_region: str = PHYSICS_REGION
    graphics_region: str = GRAPHICS_REGION
    static_info_region: str = STATIC_INFO_REGION

    def __post_init__(self) -> None:
        for f in fields(self):
            if f.name.endswith("_interval_ms"):
                value = float(getattr(self, f.name))
                if value <= 0:
                    raise ValueError(f"{f.name} must be positive, got {value!r}")
                setattr(self, f.name, value)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TelemetryConfig:
        """Build a config from environment variables, falling back to defaults.

        When *environ* is omitted, ``.env`` is loaded first and
        ``os.environ`` is used.

        Raises
        ------
        ValueError
            If an interval variable is not a positive number.
        """
        if environ is None:
            # .env from the working directory, not from this package's location
            load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        kwargs: dict = {}
        for field_name, var in _ENV_VARS.items():
            raw = environ.get(var)
            if raw is None or raw == "":
                continue
            if field_name.endswith("_interval_ms"):
                try:
                    kwargs[field_name] = float(raw)
                except ValueError:
                    raise ValueError(f"{var} must be a number, got {raw!r}") from None
            else:
                kwargs[field_name] = raw
        return cls(**kwargs)
