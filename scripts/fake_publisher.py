"""Development publisher: writes synthetic telemetry into the three regions.

Creates the POSIX shared memory segments the simulation would publish, so the
reader can be exercised without the game (Linux/macOS only).

Usage:
  uv run python scripts/fake_publisher.py          # publish until Ctrl+C
  uv run python scripts/check_ac.py                # in another terminal
"""

import argparse
import math
import sys
import time
from multiprocessing import shared_memory

from ac_shared_memory.telemetry.config import GRAPHICS_REGION, PHYSICS_REGION, STATIC_INFO_REGION
from ac_shared_memory.telemetry.decoder import GRAPHICS_DECODER, PHYSICS_DECODER, STATIC_INFO_DECODER
from ac_shared_memory.telemetry.layout import GRAPHICS_LAYOUT, PHYSICS_LAYOUT, STATIC_INFO_LAYOUT
from ac_shared_memory.telemetry.models import AcSessionType, AcStatus


def _create(name: str, size: int) -> shared_memory.SharedMemory:
    return shared_memory.SharedMemory(name=name, create=True, size=size)


def main() -> None:
    if sys.platform == "win32":
        print("The fake publisher only supports POSIX shared memory.")
        return

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--hz", type=float, default=60.0, help="physics update rate")
    args = parser.parse_args()

    regions = {
        PHYSICS_REGION: _create(PHYSICS_REGION, PHYSICS_DECODER.size),
        GRAPHICS_REGION: _create(GRAPHICS_REGION, GRAPHICS_DECODER.size),
        STATIC_INFO_REGION: _create(STATIC_INFO_REGION, STATIC_INFO_DECODER.size),
    }

    static = STATIC_INFO_LAYOUT.pack(
        {
            "sm_version": "1.7",
            "ac_version": "1.16",
            "number_of_sessions": 1,
            "num_cars": 1,
            "car_model": "fake_car",
            "track": "fake_track",
            "player_name": "Test",
            "max_rpm": 8000,
            "max_fuel": 60.0,
        }
    )
    regions[STATIC_INFO_REGION].buf[: len(static)] = static

    print(f"Publishing fake telemetry at {args.hz:.0f} Hz, Ctrl+C to stop")
    packet = 0
    started = time.monotonic()
    try:
        while True:
            packet += 1
            t = time.monotonic() - started
            speed = 120.0 + 60.0 * math.sin(t / 4.0)
            physics = PHYSICS_LAYOUT.pack(
                {
                    "packet_id": packet,
                    "gas": max(0.0, math.sin(t)),
                    "brake": max(0.0, -math.sin(t)),
                    "gear": 2 + int(speed // 50),
                    "rpms": int(3000 + 40 * (speed % 50) * 2),
                    "speed_kmh": speed,
                    "acc_g": (0.8 * math.sin(t / 2.0), 1.0, 0.5 * math.cos(t)),
                }
            )
            graphics = GRAPHICS_LAYOUT.pack(
                {
                    "packet_id": packet,
                    # pause for 5 s out of every 30 s to exercise status events
                    "status": AcStatus.PAUSE if t % 30 > 25 else AcStatus.LIVE,
                    "session": AcSessionType.PRACTICE,
                    "completed_laps": int(t // 90),
                    "i_current_time": int((t % 90) * 1000),
                    "is_in_pit": 1 if t < 5 else 0,
                    "normalized_car_position": (t % 90) / 90.0,
                }
            )
            regions[PHYSICS_REGION].buf[: len(physics)] = physics
            regions[GRAPHICS_REGION].buf[: len(graphics)] = graphics
            time.sleep(1.0 / args.hz)
    except KeyboardInterrupt:
        print("\nStopped.")
    finally:
        for shm in regions.values():
            shm.close()
            shm.unlink()


if __name__ == "__main__":
    main()
