"""Scalar-variance Kalman smoother for position noise.

A single variance is shared by latitude and longitude (same gain on both axes);
this is not a full 2x2 covariance filter.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from track_clean.models import FilterState, RawFix


@dataclass(frozen=True, slots=True)
class KalmanParams:
    """Filter tuning."""

    process_noise_m2_s2: float = 4.0
    min_accuracy_m: float = 1.0


class KalmanSmoother:
    """Turn accepted raw fixes into denoised fixes.

    The smoother works on a FilterState owned by the recording session. If none
    is given, it creates a private one.
    """

    def __init__(self, state: FilterState | None = None, params: KalmanParams | None = None) -> None:
        self.state = state if state is not None else FilterState()
        self.params = params or KalmanParams()

    @property
    def variance(self) -> float:
        return self.state.variance

    def reset(self) -> None:
        """Return to the uninitialized state. Call at the start of every session."""

        self.state.clear()

    def smooth(self, fix: RawFix) -> RawFix:
        """Blend fix into the running estimate and return the smoothed fix.

        The output carries the corrected position but the original altitude,
        accuracy, speed and timestamp.
        """

        state = self.state
        if not state.initialized or state.last_fix is None:
            state.variance = fix.horizontal_accuracy_m * fix.horizontal_accuracy_m
            state.last_fix = fix
            return fix

        last = state.last_fix
        dt_s = (fix.time_ms - last.time_ms) / 1000.0
        if dt_s > 0:
            state.variance += dt_s * dt_s * self.params.process_noise_m2_s2

        accuracy = max(fix.horizontal_accuracy_m, self.params.min_accuracy_m)
        gain = state.variance / (state.variance + accuracy * accuracy)

        smoothed = replace(
            fix,
            latitude=last.latitude + gain * (fix.latitude - last.latitude),
            longitude=last.longitude + gain * (fix.longitude - last.longitude),
        )
        state.variance = (1 - gain) * state.variance
        state.last_fix = smoothed
        return smoothed
