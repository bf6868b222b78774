"""Inspect a raw fix stream before running it through the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from track_clean.models import RawFix
from track_clean.timeutils import DeltaStats, delta_stats


@dataclass(frozen=True, slots=True)
class InspectResult:
    """High-level raw fix inspection result."""

    fixes: int
    min_time_ms: int | None
    max_time_ms: int | None
    delta: DeltaStats | None
    min_lat: float | None
    max_lat: float | None
    min_lon: float | None
    max_lon: float | None
    duplicate_times: int
    out_of_order: int
    accuracy_sentinels: int
    unknown_speed: int


def inspect_fixes(fixes: Sequence[RawFix]) -> InspectResult:
    """Inspect already-loaded fixes (in arrival order)."""

    if not fixes:
        return InspectResult(
            fixes=0,
            min_time_ms=None,
            max_time_ms=None,
            delta=None,
            min_lat=None,
            max_lat=None,
            min_lon=None,
            max_lon=None,
            duplicate_times=0,
            out_of_order=0,
            accuracy_sentinels=0,
            unknown_speed=0,
        )

    # 到达顺序中时间倒退的次数
    out_of_order = sum(1 for a, b in zip(fixes, fixes[1:]) if b.time_ms < a.time_ms)

    times = sorted(f.time_ms for f in fixes)
    dupe = sum(1 for a, b in zip(times, times[1:]) if a == b)

    lats = [f.latitude for f in fixes]
    lons = [f.longitude for f in fixes]
    return InspectResult(
        fixes=len(fixes),
        min_time_ms=times[0],
        max_time_ms=times[-1],
        delta=delta_stats(times),
        min_lat=min(lats),
        max_lat=max(lats),
        min_lon=min(lons),
        max_lon=max(lons),
        duplicate_times=dupe,
        out_of_order=out_of_order,
        accuracy_sentinels=sum(1 for f in fixes if f.horizontal_accuracy_m <= 0),
        unknown_speed=sum(1 for f in fixes if f.speed_mps < 0),
    )
