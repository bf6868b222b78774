"""Trajectory analytics and data-quality auditing.

Every function works on a chronologically sorted copy of the points; insertion
order of a Track is not guaranteed to be time order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from track_clean.geo import distance_between_m, speed_kmh
from track_clean.models import Track, TrackPoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuditParams:
    """Thresholds for post-hoc analysis (more permissive than live filtering)."""

    max_segment_m: float = 1000.0
    max_speed_kmh: float = 150.0
    max_average_speed_kmh: float = 100.0
    poor_accuracy_m: float = 50.0
    max_elevation_step_m: float = 100.0
    min_altitude_m: float = -500.0
    max_altitude_m: float = 10000.0


DEFAULT_AUDIT = AuditParams()


def sorted_by_time(points: Iterable[TrackPoint]) -> list[TrackPoint]:
    """Stable chronological copy of points."""

    return sorted(points, key=lambda p: p.time_ms)


def total_distance_m(points: Sequence[TrackPoint], params: AuditParams = DEFAULT_AUDIT) -> float | None:
    """Sum of great-circle segment lengths in meters.

    Segments longer than max_segment_m, faster than max_speed_kmh, or without
    positive time delta are dropped (not clipped).

    Returns:
        Distance in meters, or None if less than 2 points.
    """

    if len(points) < 2:
        return None

    pts = sorted_by_time(points)
    total = 0.0
    valid = 0
    for prev, cur in zip(pts, pts[1:]):
        d = distance_between_m(prev, cur)
        v = speed_kmh(d, (cur.time_ms - prev.time_ms) / 1000.0)
        if v is None or d > params.max_segment_m:
            logger.debug("跳过异常距离段：%.1f m, dt=%s ms", d, cur.time_ms - prev.time_ms)
            continue
        if v > params.max_speed_kmh:
            logger.debug("跳过异常速度段：%.1f km/h, 距离 %.1f m", v, d)
            continue
        total += d
        valid += 1

    logger.debug("距离计算完成：%.1f m，有效段数 %s/%s", total, valid, len(pts) - 1)
    return total


def _raw_average_speed_kmh(points: Sequence[TrackPoint], duration_s: float | None, params: AuditParams) -> float | None:
    if duration_s is None or duration_s <= 0:
        return None
    distance = total_distance_m(points, params)
    if distance is None or distance <= 0:
        return None
    return distance / 1000.0 / duration_s * 3600.0


def average_speed_kmh(
    points: Sequence[TrackPoint],
    duration_s: float | None,
    params: AuditParams = DEFAULT_AUDIT,
) -> float | None:
    """Average speed over the track duration in km/h.

    Returns None if duration or distance is not positive, or if the result
    exceeds max_average_speed_kmh (implausible, not reported).
    """

    avg = _raw_average_speed_kmh(points, duration_s, params)
    if avg is None:
        return None
    if avg > params.max_average_speed_kmh:
        logger.warning("平均速度异常：%.1f km/h", avg)
        return None
    return avg


def max_speed_kmh(points: Sequence[TrackPoint], params: AuditParams = DEFAULT_AUDIT) -> float | None:
    """Largest reported point speed in km/h, ignoring values above max_speed_kmh."""

    speeds = [p.speed_kmh for p in points if p.speed_kmh <= params.max_speed_kmh]
    return max(speeds) if speeds else None


def moving_average_speed_kmh(
    points: Sequence[TrackPoint],
    window_size: int = 5,
    params: AuditParams = DEFAULT_AUDIT,
) -> list[float]:
    """Sliding-window average speeds in km/h.

    Each window spans window_size + 1 consecutive points. Windows without
    elapsed time or faster than max_speed_kmh are dropped from the output.
    """

    if window_size < 1 or len(points) <= window_size:
        return []

    pts = sorted_by_time(points)
    speeds: list[float] = []
    for end in range(window_size, len(pts)):
        window = pts[end - window_size : end + 1]
        distance = sum(distance_between_m(a, b) for a, b in zip(window, window[1:]))
        elapsed_s = (window[-1].time_ms - window[0].time_ms) / 1000.0
        v = speed_kmh(distance, elapsed_s)
        if v is not None and v <= params.max_speed_kmh:
            speeds.append(v)
    return speeds


def elevation_gain_m(points: Sequence[TrackPoint], params: AuditParams = DEFAULT_AUDIT) -> float | None:
    """Sum of positive altitude steps in (0, max_elevation_step_m].

    Larger steps are treated as sensor error and excluded entirely.
    Returns None if less than 2 points.
    """

    if len(points) < 2:
        return None
    pts = sorted_by_time(points)
    gain = 0.0
    for prev, cur in zip(pts, pts[1:]):
        delta = cur.altitude_m - prev.altitude_m
        if 0 < delta <= params.max_elevation_step_m:
            gain += delta
    return gain


def _valid_altitudes(points: Iterable[TrackPoint], params: AuditParams) -> list[float]:
    return [p.altitude_m for p in points if params.min_altitude_m <= p.altitude_m <= params.max_altitude_m]


def max_altitude_m(points: Sequence[TrackPoint], params: AuditParams = DEFAULT_AUDIT) -> float | None:
    alts = _valid_altitudes(points, params)
    return max(alts) if alts else None


def min_altitude_m(points: Sequence[TrackPoint], params: AuditParams = DEFAULT_AUDIT) -> float | None:
    alts = _valid_altitudes(points, params)
    return min(alts) if alts else None


def filter_inaccurate_points(
    points: Iterable[TrackPoint],
    accuracy_threshold: float = 30.0,
    params: AuditParams = DEFAULT_AUDIT,
) -> list[TrackPoint]:
    """Keep points with 0 < accuracy <= threshold and a plausible altitude."""

    return [
        p
        for p in points
        if 0 < p.horizontal_accuracy_m <= accuracy_threshold
        and params.min_altitude_m <= p.altitude_m <= params.max_altitude_m
    ]


def smooth_track(points: Sequence[TrackPoint], window_size: int = 3) -> list[TrackPoint]:
    """Centered moving average of latitude/longitude/altitude.

    Time, speed and accuracy of each point are kept. Tracks not longer than the
    window are returned unchanged.
    """

    if len(points) <= window_size:
        return list(points)

    pts = sorted_by_time(points)
    half = window_size // 2
    out: list[TrackPoint] = []
    for i, pt in enumerate(pts):
        window = pts[max(0, i - half) : min(len(pts) - 1, i + half) + 1]
        n = float(len(window))
        out.append(
            TrackPoint(
                time_ms=pt.time_ms,
                latitude=sum(w.latitude for w in window) / n,
                longitude=sum(w.longitude for w in window) / n,
                altitude_m=sum(w.altitude_m for w in window) / n,
                speed_mps=pt.speed_mps,
                horizontal_accuracy_m=pt.horizontal_accuracy_m,
            )
        )
    return out


@dataclass(frozen=True, slots=True)
class TrackAudit:
    """Result of a data-quality audit. is_valid iff issues is empty."""

    is_valid: bool
    issues: tuple[str, ...]


def validate_track(track: Track, params: AuditParams = DEFAULT_AUDIT) -> TrackAudit:
    """Structured data-quality audit of a track."""

    stored = list(track.points)
    if not stored:
        return TrackAudit(is_valid=False, issues=("轨迹没有位置数据",))

    issues: list[str] = []
    if len(stored) < 2:
        issues.append("轨迹数据点太少（少于2个）")

    pts = sorted_by_time(stored)
    if pts != stored:
        issues.append("位置数据时间顺序不正确")

    poor = sum(1 for p in stored if p.horizontal_accuracy_m > params.poor_accuracy_m)
    if poor > len(stored) // 2:
        issues.append(f"超过一半的数据点精度较差（>{params.poor_accuracy_m:g}m）")

    fast = sum(1 for p in stored if p.speed_kmh > params.max_speed_kmh)
    if fast > 0:
        issues.append(f"存在{fast}个异常高速数据点（>{params.max_speed_kmh:g}km/h）")

    jumps = sum(1 for a, b in zip(pts, pts[1:]) if distance_between_m(a, b) > params.max_segment_m)
    if jumps > 0:
        issues.append(f"存在{jumps}个大距离跳跃（>{params.max_segment_m / 1000.0:g}km）")

    avg = _raw_average_speed_kmh(stored, track.duration_s, params)
    if avg is not None and avg > params.max_average_speed_kmh:
        issues.append(f"平均速度异常高：{avg:.1f} km/h")

    return TrackAudit(is_valid=not issues, issues=tuple(issues))


@dataclass(frozen=True, slots=True)
class TrackSummary:
    """Derived statistics of one track."""

    points: int
    duration_s: float | None
    distance_m: float | None
    average_speed_kmh: float | None
    max_speed_kmh: float | None
    elevation_gain_m: float | None
    max_altitude_m: float | None
    min_altitude_m: float | None


def summarize_track(track: Track, params: AuditParams = DEFAULT_AUDIT) -> TrackSummary:
    """Compute all statistics over an immutable copy of the track points."""

    pts = tuple(track.points)
    return TrackSummary(
        points=len(pts),
        duration_s=track.duration_s,
        distance_m=total_distance_m(pts, params),
        average_speed_kmh=average_speed_kmh(pts, track.duration_s, params),
        max_speed_kmh=max_speed_kmh(pts, params),
        elevation_gain_m=elevation_gain_m(pts, params),
        max_altitude_m=max_altitude_m(pts, params),
        min_altitude_m=min_altitude_m(pts, params),
    )


def gps_status_description(accuracy_m: float) -> str:
    """Human readable signal quality for a horizontal accuracy."""

    if accuracy_m <= 5:
        return "GPS信号优秀"
    if accuracy_m <= 10:
        return "GPS信号良好"
    if accuracy_m <= 20:
        return "GPS信号一般"
    if accuracy_m <= 50:
        return "GPS信号较差"
    return "GPS信号很差"
