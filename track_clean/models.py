"""Data models for raw fixes, track points and tracks."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Final


@dataclass(frozen=True, slots=True)
class RawFix:
    """One positioning measurement as delivered by the location source.

    Attributes:
        time_ms: Unix epoch milliseconds.
        latitude: Latitude in decimal degrees (WGS84).
        longitude: Longitude in decimal degrees (WGS84).
        altitude_m: Altitude in meters.
        speed_mps: Speed in meters/second. Negative means unknown.
        horizontal_accuracy_m: Horizontal accuracy in meters. 0 or negative are sentinels.
    """

    time_ms: int
    latitude: float
    longitude: float
    altitude_m: float = 0.0
    speed_mps: float = -1.0
    horizontal_accuracy_m: float = -1.0

    @property
    def time_s(self) -> float:
        """Unix epoch seconds as float."""

        return self.time_ms / 1000.0


@dataclass(frozen=True, slots=True)
class TrackPoint:
    """A persisted trajectory sample (always WGS84)."""

    time_ms: int
    latitude: float
    longitude: float
    altitude_m: float
    speed_mps: float
    horizontal_accuracy_m: float

    @property
    def time_s(self) -> float:
        return self.time_ms / 1000.0

    @property
    def speed_kmh(self) -> float:
        return self.speed_mps * 3.6

    @classmethod
    def from_fix(cls, fix: RawFix) -> TrackPoint:
        return cls(
            time_ms=fix.time_ms,
            latitude=fix.latitude,
            longitude=fix.longitude,
            altitude_m=fix.altitude_m,
            speed_mps=fix.speed_mps,
            horizontal_accuracy_m=fix.horizontal_accuracy_m,
        )


@dataclass(slots=True)
class FilterState:
    """Kalman filter state owned by exactly one recording session.

    Note:
        variance < 0 means "uninitialized".
    """

    variance: float = -1.0
    last_fix: RawFix | None = None

    @property
    def initialized(self) -> bool:
        return self.variance >= 0

    def clear(self) -> None:
        self.variance = -1.0
        self.last_fix = None


@dataclass(slots=True)
class Track:
    """A recorded trajectory.

    Points are kept in insertion order, which is not guaranteed to be
    chronological; use sorted_points() before computing anything.
    end_ms is None while the track is still recording.
    """

    name: str
    start_ms: int
    end_ms: int | None = None
    points: list[TrackPoint] = field(default_factory=list)
    track_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def is_completed(self) -> bool:
        return self.end_ms is not None

    @property
    def duration_s(self) -> float | None:
        """Track duration in seconds, None while still recording."""

        if self.end_ms is None:
            return None
        return (self.end_ms - self.start_ms) / 1000.0

    def append(self, point: TrackPoint) -> None:
        if self.end_ms is not None:
            raise ValueError(f"轨迹已结束，不能再追加数据点：{self.name!r}")
        self.points.append(point)

    def finish(self, end_ms: int) -> None:
        if self.end_ms is not None:
            raise ValueError(f"轨迹已结束：{self.name!r}")
        self.end_ms = end_ms

    def sorted_points(self) -> list[TrackPoint]:
        return sorted(self.points, key=lambda p: p.time_ms)


DEFAULT_TZ: Final[str] = "Asia/Shanghai"
