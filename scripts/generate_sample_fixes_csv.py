from __future__ import annotations

import argparse
import csv
import math
import random
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Final

from zoneinfo import ZoneInfo


TZ: Final[str] = "Asia/Shanghai"


@dataclass(frozen=True, slots=True)
class Waypoint:
    name: str
    lat: float
    lon: float


def _epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def _offset_m(lat: float, lon: float, north_m: float, east_m: float) -> tuple[float, float]:
    d_lat = north_m / 111_195.0
    d_lon = east_m / (111_195.0 * math.cos(math.radians(lat)))
    return lat + d_lat, lon + d_lon


def generate_fixes(
    *,
    rows: int,
    seed: int,
    start_local: datetime,
    route: list[Waypoint],
) -> list[dict[str, str]]:
    """Generate a noisy 1 Hz walking/cycling recording with realistic glitches."""

    rng = random.Random(seed)
    cur_ms = _epoch_ms(start_local.replace(tzinfo=ZoneInfo(TZ)))

    out: list[dict[str, str]] = []
    leg = 0
    progress = 0.0
    altitude = 40.0
    speed = 4.0

    for _ in range(rows):
        a = route[leg % len(route)]
        b = route[(leg + 1) % len(route)]
        leg_m = math.hypot((b.lat - a.lat) * 111_195.0, (b.lon - a.lon) * 111_195.0 * math.cos(math.radians(a.lat)))

        # Stop-and-go: sometimes stand still for a while
        moving = rng.random() > 0.1
        speed = max(0.0, min(9.0, speed + rng.uniform(-0.5, 0.5))) if moving else 0.0
        progress += speed / max(leg_m, 1.0)
        if progress >= 1.0:
            progress = 0.0
            leg += 1

        lat = a.lat + (b.lat - a.lat) * progress
        lon = a.lon + (b.lon - a.lon) * progress
        hacc = rng.choice([3.0, 5.0, 5.0, 8.0, 12.0, 20.0, 35.0, 65.0])
        lat, lon = _offset_m(lat, lon, rng.gauss(0, hacc / 2), rng.gauss(0, hacc / 2))
        altitude += rng.uniform(-0.8, 1.0)
        cur_ms += 1000

        reported_speed = speed + rng.uniform(-0.3, 0.3)
        if rng.random() < 0.15:
            reported_speed = -1.0
        alt_out = altitude
        time_ms = cur_ms

        glitch = rng.random()
        if glitch < 0.01:
            # Teleport
            lat, lon = _offset_m(lat, lon, rng.uniform(800, 3000), rng.uniform(800, 3000))
        elif glitch < 0.02:
            hacc = rng.choice([0.0, -1.0])
        elif glitch < 0.03:
            alt_out = rng.choice([-9999.0, 20000.0])
        elif glitch < 0.04:
            # Late delivery of an old fix
            time_ms = cur_ms - rng.randint(2000, 8000)

        out.append(
            {
                "geoTime": str(time_ms),
                "latitude": f"{lat:.7f}",
                "longitude": f"{lon:.7f}",
                "altitude": f"{alt_out:.1f}",
                "speed": f"{reported_speed:.2f}",
                "horizontalAccuracy": f"{hacc:.1f}",
                "isMoving": "1" if moving else "0",
            }
        )

    # Keep arrival order: late fixes stay out of time order on purpose
    return out


def main() -> int:
    p = argparse.ArgumentParser(description="Generate a fake raw fix CSV for demo/testing (privacy-safe).")
    p.add_argument("--out", type=str, default="sample_data/Path.csv", help="Output CSV path")
    p.add_argument("--rows", type=int, default=1800, help="Number of rows (1 Hz)")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument(
        "--start",
        type=str,
        default="2025-01-01 08:00:00",
        help="Start local time in Asia/Shanghai, e.g. '2025-01-01 08:00:00'",
    )
    args = p.parse_args()

    start_local = datetime.fromisoformat(args.start)
    route = [
        Waypoint("bund", 31.2400000, 121.4900000),
        Waypoint("peoples_square", 31.2304000, 121.4737000),
        Waypoint("jingan_temple", 31.2235000, 121.4457000),
        Waypoint("xujiahui", 31.1950000, 121.4370000),
    ]

    rows = generate_fixes(rows=args.rows, seed=args.seed, start_local=start_local, route=route)
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    fieldnames = ["geoTime", "latitude", "longitude", "altitude", "speed", "horizontalAccuracy", "isMoving"]
    with out_path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        w.writerows(rows)

    print(f"Generated: {out_path} (rows={len(rows)}, seed={args.seed})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
