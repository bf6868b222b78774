"""
Shared fixtures for the track_clean test suite.
"""
import pytest

from track_clean.models import RawFix, Track, TrackPoint

BASE_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z


@pytest.fixture
def make_fix():
    """Factory for valid-by-default raw fixes near Beijing."""

    def _make(
        t_s: float = 0.0,
        lat: float = 39.9042,
        lon: float = 116.4074,
        altitude: float = 50.0,
        speed: float = 1.5,
        accuracy: float = 10.0,
    ) -> RawFix:
        return RawFix(
            time_ms=BASE_MS + int(round(t_s * 1000)),
            latitude=lat,
            longitude=lon,
            altitude_m=altitude,
            speed_mps=speed,
            horizontal_accuracy_m=accuracy,
        )

    return _make


@pytest.fixture
def make_point():
    """Factory for track points; t_s is seconds after BASE_MS."""

    def _make(
        t_s: float = 0.0,
        lat: float = 0.0,
        lon: float = 0.0,
        altitude: float = 0.0,
        speed: float = 1.0,
        accuracy: float = 5.0,
    ) -> TrackPoint:
        return TrackPoint(
            time_ms=BASE_MS + int(round(t_s * 1000)),
            latitude=lat,
            longitude=lon,
            altitude_m=altitude,
            speed_mps=speed,
            horizontal_accuracy_m=accuracy,
        )

    return _make


@pytest.fixture
def make_track():
    def _make(points, duration_s: float | None = None, name: str = "test") -> Track:
        track = Track(name=name, start_ms=BASE_MS)
        track.points.extend(points)
        if duration_s is not None:
            track.finish(BASE_MS + int(duration_s * 1000))
        return track

    return _make
