"""Manual check that the Assetto Corsa shared memory connection works.

Usage:
  1. Start Assetto Corsa and enter any session (the car must be on track).
     The script may also be started first; it keeps retrying until the
     shared memory appears.
  2. In another terminal run: uv run python scripts/check_ac.py
  3. Watch the output and confirm the values change over time.

Set AC_PHYSICS_INTERVAL_MS etc. (or put them in .env) to change polling rates.

Exit: Ctrl+C
"""

import logging
import time

from ac_shared_memory.telemetry import AssettoCorsa, TelemetryConfig
from ac_shared_memory.telemetry.models import AcStatus


def on_connection_changed(connected: bool) -> None:
    status = "connected" if connected else "disconnected"
    print(f"\n[connection] -> {status}\n")


def on_status_changed(status) -> None:
    name = status.display_name if isinstance(status, AcStatus) else status
    print(f"\n[run status] -> {name}")


def on_pit_changed(in_pit: bool) -> None:
    print(f"\n[pit] -> {'in pit' if in_pit else 'on track'}")


def on_session_changed(session) -> None:
    print(f"\n[session] -> {getattr(session, 'name', session)}")


def on_static_info(info) -> None:
    print(f"\n[static] {info.car_model} @ {info.track} (AC {info.ac_version}, SM {info.sm_version})")


def on_physics(physics) -> None:
    print(
        f"{physics.speed_kmh:>10.1f} "
        f"{physics.gas:>6.2f} "
        f"{physics.brake:>6.2f} "
        f"{physics.gear - 1:>4d} "
        f"{physics.rpms:>7d} "
        f"{physics.acc_g[2]:>7.2f} "
        f"{physics.acc_g[0]:>7.2f}",
        end="\r",
    )


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config = TelemetryConfig.from_env()
    config.physics_interval_ms = max(config.physics_interval_ms, 100.0)  # 10 Hz console refresh
    ac = AssettoCorsa(config)

    ac.connection_changed.register(on_connection_changed)
    ac.run_status_changed.register(on_status_changed)
    ac.pit_status_changed.register(on_pit_changed)
    ac.session_type_changed.register(on_session_changed)
    ac.static_info_updated.register(on_static_info)
    ac.physics_updated.register(on_physics)

    print("Connecting to Assetto Corsa shared memory...")
    print("Press Ctrl+C to exit\n")
    print(f"{'km/h':>10} {'gas':>6} {'brake':>6} {'gear':>4} {'rpm':>7} {'lon G':>7} {'lat G':>7}")
    print("-" * 55)

    try:
        ac.start()
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        print("\n\nExiting.")
    finally:
        ac.stop()


if __name__ == "__main__":
    main()
