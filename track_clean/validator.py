"""Fix validation: decide whether a raw fix may enter a recording session."""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from time import time
from typing import Callable

from track_clean.geo import distance_between_m
from track_clean.models import RawFix

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ValidationParams:
    """Thresholds for live fix filtering."""

    max_accuracy_m: float = 30.0
    max_age_s: float = 5.0
    # post-hoc analysis uses 150 km/h (stats.AuditParams)
    max_speed_kmh: float = 120.0
    max_jump_m: float = 500.0
    min_movement_m: float = 2.0
    stationary_window_s: float = 10.0
    min_altitude_m: float = -500.0
    max_altitude_m: float = 10000.0


class RejectReason(Enum):
    """Why a fix was rejected."""

    POOR_ACCURACY = "poor_accuracy"
    STALE = "stale"
    REPORTED_SPEED = "reported_speed"
    COMPUTED_SPEED = "computed_speed"
    JUMP = "jump"
    STATIONARY = "stationary"
    ALTITUDE = "altitude"


def is_moving_from_acceleration(x: float, y: float, z: float, threshold: float = 0.15) -> bool:
    """Derive the motion flag from an accelerometer sample in units of g.

    The device is considered moving when the magnitude deviates from 1 g by more than threshold.
    """

    magnitude = math.sqrt(x * x + y * y + z * z)
    return abs(magnitude - 1.0) > threshold


class FixValidator:
    """Stateful gatekeeper for raw fixes.

    The validator does not own the "last accepted fix"; the session passes it in.
    It keeps per-session rejection counters, cleared by reset().

    Args:
        params: Thresholds.
        clock_ms: Returns "now" in epoch milliseconds. Defaults to wall-clock time.
    """

    def __init__(
        self,
        params: ValidationParams | None = None,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        self.params = params or ValidationParams()
        self._clock_ms = clock_ms or (lambda: int(time() * 1000))
        self.rejection_counts: Counter[RejectReason] = Counter()

    def reset(self) -> None:
        self.rejection_counts.clear()

    def rejection_reason(
        self,
        fix: RawFix,
        last_accepted: RawFix | None,
        is_moving: bool,
        now_ms: int | None = None,
    ) -> RejectReason | None:
        """Return the first failing check, or None if the fix is acceptable.

        Checks run in order: accuracy, age, reported speed, relation to the last
        accepted fix (computed speed, jump, stationary suppression), altitude.
        """

        p = self.params
        acc = fix.horizontal_accuracy_m
        # NaN fails both comparisons
        if not (acc > 0 and acc <= p.max_accuracy_m):
            return RejectReason.POOR_ACCURACY

        if now_ms is None:
            now_ms = self._clock_ms()
        age_s = (now_ms - fix.time_ms) / 1000.0
        if not age_s < p.max_age_s:
            return RejectReason.STALE

        if fix.speed_mps > 0 and fix.speed_mps * 3.6 > p.max_speed_kmh:
            return RejectReason.REPORTED_SPEED

        if last_accepted is not None:
            dt_s = (fix.time_ms - last_accepted.time_ms) / 1000.0
            if dt_s > 0:
                distance = distance_between_m(fix, last_accepted)
                if distance / dt_s * 3.6 > p.max_speed_kmh:
                    return RejectReason.COMPUTED_SPEED
                if distance > p.max_jump_m:
                    return RejectReason.JUMP
                if not is_moving and distance < p.min_movement_m and dt_s < p.stationary_window_s:
                    return RejectReason.STATIONARY

        if not (p.min_altitude_m <= fix.altitude_m <= p.max_altitude_m):
            return RejectReason.ALTITUDE

        return None

    def is_valid(
        self,
        fix: RawFix,
        last_accepted: RawFix | None,
        is_moving: bool,
        now_ms: int | None = None,
    ) -> bool:
        """True if the fix passes every check."""

        reason = self.rejection_reason(fix, last_accepted, is_moving, now_ms=now_ms)
        if reason is None:
            return True
        self.rejection_counts[reason] += 1
        logger.debug(
            "丢弃定位点 reason=%s time_ms=%s lat=%s lon=%s acc=%s speed=%s alt=%s",
            reason.value,
            fix.time_ms,
            fix.latitude,
            fix.longitude,
            fix.horizontal_accuracy_m,
            fix.speed_mps,
            fix.altitude_m,
        )
        return False
