"""Time parsing and formatting utilities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timezone
from typing import Iterable

from zoneinfo import ZoneInfo


def tzinfo_from_name(tz_name: str) -> timezone:
    """Create tzinfo from an IANA timezone name.

    Raises:
        ValueError: If timezone name is invalid on this system.
    """

    try:
        return ZoneInfo(tz_name)
    except Exception as exc:  # ZoneInfo raises KeyError / ZoneInfoNotFoundError (platform dependent)
        raise ValueError(f"无效时区：{tz_name!r}。例如可用：Asia/Shanghai") from exc


def dt_from_epoch_ms(epoch_ms: int, tz_name: str) -> datetime:
    """Convert epoch milliseconds to timezone-aware datetime."""

    tz = tzinfo_from_name(tz_name)
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=tz)


def iso_utc(epoch_ms: int) -> str:
    """ISO-8601 UTC timestamp with second precision, e.g. 2025-01-01T08:00:00Z."""

    dt = datetime.fromtimestamp(epoch_ms / 1000.0, tz=UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def format_duration(seconds: float | None) -> str:
    """Format a duration as HH:MM:SS (>= 1 hour) or MM:SS.

    None means the track is still recording.
    """

    if seconds is None:
        return "未完成"
    s = int(max(0.0, seconds))
    h = s // 3600
    m = (s % 3600) // 60
    sec = s % 60
    if h > 0:
        return f"{h:02d}:{m:02d}:{sec:02d}"
    return f"{m:02d}:{sec:02d}"


@dataclass(frozen=True, slots=True)
class DeltaStats:
    """Sampling interval stats (seconds)."""

    count: int
    min_s: float
    median_s: float
    p95_s: float
    max_s: float


def delta_stats(epoch_ms_sorted: Iterable[int]) -> DeltaStats | None:
    """Compute basic sampling-interval statistics.

    Args:
        epoch_ms_sorted: Epoch ms sorted ascending.

    Returns:
        DeltaStats or None if less than 2 points.
    """

    ms = list(epoch_ms_sorted)
    if len(ms) < 2:
        return None
    deltas = [(ms[i] - ms[i - 1]) / 1000.0 for i in range(1, len(ms)) if ms[i] >= ms[i - 1]]
    if not deltas:
        return None
    deltas.sort()
    n = len(deltas)
    median = deltas[n // 2] if n % 2 == 1 else 0.5 * (deltas[n // 2 - 1] + deltas[n // 2])
    p95 = deltas[int(0.95 * (n - 1))]
    return DeltaStats(
        count=n,
        min_s=deltas[0],
        median_s=median,
        p95_s=p95,
        max_s=deltas[-1],
    )
