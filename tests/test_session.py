"""
Tests for the recording pipeline (validator -> smoother -> buffer).
"""
import pytest

from track_clean.models import TrackPoint
from track_clean.session import RecordingSession, default_track_name
from track_clean.validator import FixValidator, RejectReason

from conftest import BASE_MS


@pytest.fixture
def session():
    return RecordingSession(FixValidator(clock_ms=lambda: BASE_MS))


def _walk(make_fix, n, start_s=0.0, lat0=39.9042, step_deg=0.00002):
    # ~2.2 m per second, well inside every live threshold
    return [make_fix(t_s=start_s + i, lat=lat0 + i * step_deg) for i in range(n)]


def test_process_requires_active_session(session, make_fix):
    with pytest.raises(RuntimeError):
        session.process(make_fix(), True, now_ms=BASE_MS)


def test_cannot_start_twice(session):
    session.start(BASE_MS)
    with pytest.raises(RuntimeError):
        session.start(BASE_MS)


def test_first_point_is_raw_fix(session, make_fix):
    session.start(BASE_MS, name="walk")
    fix = make_fix()
    point = session.process(fix, True, now_ms=fix.time_ms)
    assert point == TrackPoint.from_fix(fix)
    assert session.filter_state.variance == fix.horizontal_accuracy_m ** 2


def test_rejected_fix_is_dropped_silently(session, make_fix):
    session.start(BASE_MS)
    assert session.process(make_fix(accuracy=80.0), True, now_ms=BASE_MS) is None
    assert session.snapshot() == ()
    assert session.received_count == 1
    assert session.accepted_count == 0
    assert session.validator.rejection_counts[RejectReason.POOR_ACCURACY] == 1


def test_replay_stream_and_stop(session, make_fix):
    session.start(BASE_MS, name="walk")
    fixes = _walk(make_fix, 10)
    items = [(f, True) for f in fixes]
    items.insert(5, (make_fix(t_s=4.5, lat=39.95), True))  # ~5 km teleport
    points = list(session.process_stream(items, replay=True))

    assert len(points) == 10
    assert session.accepted_count == 10
    assert session.received_count == 11
    assert session.current_distance_m > 0

    snap = session.snapshot()
    assert isinstance(snap, tuple)
    assert list(snap) == points

    track = session.stop(BASE_MS + 10_000)
    assert track.is_completed
    assert track.duration_s == 10.0
    assert track.points == points
    assert not session.is_recording
    assert session.filter_state.variance == -1.0
    assert session.filter_state.last_fix is None
    assert sum(session.validator.rejection_counts.values()) == 0

    with pytest.raises(ValueError):
        track.append(points[0])


def test_snapshot_is_a_copy(session, make_fix):
    session.start(BASE_MS)
    fixes = _walk(make_fix, 3)
    session.process(fixes[0], True, now_ms=fixes[0].time_ms)
    snap = session.snapshot()
    session.process(fixes[1], True, now_ms=fixes[1].time_ms)
    assert len(snap) == 1
    assert len(session.snapshot()) == 2


def test_sessions_are_isolated(session, make_fix):
    session.start(BASE_MS)
    for f in _walk(make_fix, 20):
        session.process(f, True, now_ms=f.time_ms)
    session.stop(BASE_MS + 20_000)

    session.start(BASE_MS + 100_000)
    fresh = make_fix(t_s=100, lat=31.2304, lon=121.4737, accuracy=7.0)
    point = session.process(fresh, True, now_ms=fresh.time_ms)
    # far away from session 1, yet accepted and bit-identical
    assert point == TrackPoint.from_fix(fresh)
    assert session.filter_state.variance == 49.0


def test_live_speed_uses_reported_or_computed(session, make_fix):
    session.start(BASE_MS)
    a = make_fix(t_s=0, speed=50.0 / 3.6)
    session.process(a, True, now_ms=a.time_ms)
    assert session.current_speed_kmh == pytest.approx(50.0)

    b = make_fix(t_s=1, lat=a.latitude + 0.00002, speed=-1.0)
    session.process(b, True, now_ms=b.time_ms)
    assert 0 < session.current_speed_kmh < 10.0


def test_last_accepted_is_smoothed_fix(session, make_fix):
    session.start(BASE_MS)
    fixes = _walk(make_fix, 2)
    session.process(fixes[0], True, now_ms=fixes[0].time_ms)
    point = session.process(fixes[1], True, now_ms=fixes[1].time_ms)
    assert session.last_accepted.latitude == point.latitude
    assert point.latitude != fixes[1].latitude


def test_default_track_name():
    assert default_track_name(BASE_MS, "Asia/Shanghai") == "轨迹 - 2025-01-01 08:00"
