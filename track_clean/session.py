"""Recording session: raw fix -> validator -> smoother -> trajectory buffer."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from track_clean.geo import distance_between_m, speed_kmh
from track_clean.kalman import KalmanParams, KalmanSmoother
from track_clean.models import DEFAULT_TZ, FilterState, RawFix, Track, TrackPoint
from track_clean.timeutils import dt_from_epoch_ms
from track_clean.validator import FixValidator, ValidationParams

logger = logging.getLogger(__name__)

# 实时里程只累加不超过该距离的单步移动
MAX_LIVE_STEP_M = 200.0


def default_track_name(start_ms: int, tz_name: str = DEFAULT_TZ) -> str:
    return f"轨迹 - {dt_from_epoch_ms(start_ms, tz_name):%Y-%m-%d %H:%M}"


class RecordingSession:
    """One recording session at a time, fed sequentially by a single producer.

    The session exclusively owns its FilterState and the in-progress point
    buffer. Readers get copies through snapshot(); stop() hands the finished
    Track to the caller and resets the smoother and validator.
    """

    def __init__(
        self,
        validator: FixValidator | None = None,
        kalman_params: KalmanParams | None = None,
        tz_name: str = DEFAULT_TZ,
    ) -> None:
        self.validator = validator or FixValidator(ValidationParams())
        self.filter_state = FilterState()
        self.smoother = KalmanSmoother(self.filter_state, kalman_params)
        self.tz_name = tz_name

        self._track: Track | None = None
        self._last_accepted: RawFix | None = None
        self.current_speed_kmh = 0.0
        self.current_distance_m = 0.0
        self.received_count = 0
        self.accepted_count = 0

    @property
    def is_recording(self) -> bool:
        return self._track is not None

    @property
    def last_accepted(self) -> RawFix | None:
        return self._last_accepted

    def start(self, start_ms: int, name: str | None = None) -> Track:
        """Begin a new track with fresh filter state."""

        if self._track is not None:
            raise RuntimeError("已经在记录中，请先停止当前轨迹")

        self.smoother.reset()
        self.validator.reset()
        self._last_accepted = None
        self.current_speed_kmh = 0.0
        self.current_distance_m = 0.0
        self.received_count = 0
        self.accepted_count = 0

        self._track = Track(name=name or default_track_name(start_ms, self.tz_name), start_ms=start_ms)
        logger.info("开始记录：%s", self._track.name)
        return self._track

    def process(self, fix: RawFix, is_moving: bool, now_ms: int | None = None) -> TrackPoint | None:
        """Validate, smooth and append one fix.

        Returns:
            The appended TrackPoint, or None if the fix was rejected.
        """

        if self._track is None:
            raise RuntimeError("尚未开始记录")

        self.received_count += 1
        if not self.validator.is_valid(fix, self._last_accepted, is_moving, now_ms=now_ms):
            return None

        smoothed = self.smoother.smooth(fix)
        self._update_live_stats(fix, smoothed)

        point = TrackPoint.from_fix(smoothed)
        self._track.append(point)
        self._last_accepted = smoothed
        self.accepted_count += 1
        return point

    def process_stream(
        self,
        items: Iterable[tuple[RawFix, bool]],
        replay: bool = False,
    ) -> Iterator[TrackPoint]:
        """Consume (fix, is_moving) pairs in order and yield appended points.

        With replay=True the fix's own timestamp is used as "now", so recorded
        data is not rejected as stale.
        """

        for fix, is_moving in items:
            point = self.process(fix, is_moving, now_ms=fix.time_ms if replay else None)
            if point is not None:
                yield point

    def _update_live_stats(self, raw: RawFix, smoothed: RawFix) -> None:
        cap = self.validator.params.max_speed_kmh
        last = self._last_accepted
        step_m = distance_between_m(smoothed, last) if last is not None else None

        if raw.speed_mps >= 0:
            self.current_speed_kmh = min(raw.speed_mps * 3.6, cap)
        elif last is not None and step_m is not None:
            v = speed_kmh(step_m, (smoothed.time_ms - last.time_ms) / 1000.0)
            if v is not None:
                self.current_speed_kmh = min(v, cap)

        if step_m is not None and step_m <= MAX_LIVE_STEP_M:
            self.current_distance_m += step_m

    def snapshot(self) -> tuple[TrackPoint, ...]:
        """Immutable copy of the points recorded so far."""

        if self._track is None:
            return ()
        return tuple(self._track.points)

    def stop(self, end_ms: int) -> Track:
        """Finish the current track and reset filter and validator state."""

        if self._track is None:
            raise RuntimeError("尚未开始记录")

        track = self._track
        track.finish(end_ms)
        logger.info(
            "停止记录：%s，接收 %s 个定位点，保留 %s 个，丢弃原因 %s",
            track.name,
            self.received_count,
            self.accepted_count,
            {r.value: n for r, n in self.validator.rejection_counts.items()},
        )

        self._track = None
        self._last_accepted = None
        self.smoother.reset()
        self.validator.reset()
        return track
