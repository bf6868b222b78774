"""
Tests for raw fix CSV input and stream inspection.
"""
import pytest

from track_clean.csv_io import iter_raw_fixes, load_raw_fixes
from track_clean.inspect import inspect_fixes
from track_clean.timeutils import delta_stats, format_duration, iso_utc, tzinfo_from_name

from conftest import BASE_MS

CSV_TEXT = (
    "geoTime,latitude,longitude,altitude,speed,horizontalAccuracy,isMoving\n"
    f"{BASE_MS},39.9042,116.4074,50.0,1.5,5.0,1\n"
    f"{BASE_MS + 1000},39.9043,116.4075,,,,0\n"
    "broken,39.9,116.4,0,0,5,1\n"
    f"{BASE_MS + 500},39.9044,116.4076,51.0,-1,0,true\n"
)


@pytest.fixture
def csv_path(tmp_path):
    p = tmp_path / "Path.csv"
    p.write_text(CSV_TEXT, encoding="utf-8")
    return p


def test_load_raw_fixes(csv_path):
    items, summary = load_raw_fixes(csv_path)
    assert summary.rows_total == 4
    assert summary.rows_parsed == 3
    assert summary.rows_skipped == 1
    assert "isMoving" in summary.fieldnames

    (f0, m0), (f1, m1), (f2, m2) = items
    assert (f0.time_ms, f0.latitude, f0.horizontal_accuracy_m, m0) == (BASE_MS, 39.9042, 5.0, True)
    # empty optional columns fall back to sentinels
    assert (f1.altitude_m, f1.speed_mps, f1.horizontal_accuracy_m, m1) == (0.0, -1.0, -1.0, False)
    assert m2 is True


def test_iter_raw_fixes_matches_load(csv_path):
    assert list(iter_raw_fixes(csv_path)) == load_raw_fixes(csv_path)[0]


def test_iter_raw_fixes_missing_column(tmp_path):
    p = tmp_path / "bad.csv"
    p.write_text("time,lat,lon\n1,2,3\n", encoding="utf-8")
    with pytest.raises(KeyError):
        list(iter_raw_fixes(p))


def test_is_moving_defaults_to_true(tmp_path):
    p = tmp_path / "nomotion.csv"
    p.write_text(f"geoTime,latitude,longitude\n{BASE_MS},1.0,2.0\n", encoding="utf-8")
    [(fix, moving)] = list(iter_raw_fixes(p))
    assert moving is True
    assert fix.speed_mps == -1.0


def test_inspect_fixes(csv_path):
    items, _ = load_raw_fixes(csv_path)
    res = inspect_fixes([f for f, _ in items])
    assert res.fixes == 3
    assert res.min_time_ms == BASE_MS
    assert res.max_time_ms == BASE_MS + 1000
    assert res.out_of_order == 1
    assert res.duplicate_times == 0
    assert res.accuracy_sentinels == 2
    assert res.unknown_speed == 2
    assert res.delta.count == 2
    assert (res.min_lat, res.max_lat) == (39.9042, 39.9044)


def test_inspect_empty():
    res = inspect_fixes([])
    assert res.fixes == 0
    assert res.delta is None


def test_delta_stats():
    assert delta_stats([1000]) is None
    stats = delta_stats([0, 1000, 2000, 5000])
    assert (stats.count, stats.min_s, stats.median_s, stats.max_s) == (3, 1.0, 1.0, 3.0)


@pytest.mark.parametrize("seconds,text", [
    (None, "未完成"),
    (0, "00:00"),
    (65.9, "01:05"),
    (3600, "01:00:00"),
    (3725, "01:02:05"),
])
def test_format_duration(seconds, text):
    assert format_duration(seconds) == text


def test_iso_utc():
    assert iso_utc(BASE_MS + 1500) == "2025-01-01T00:00:01Z"


def test_invalid_timezone():
    with pytest.raises(ValueError):
        tzinfo_from_name("Mars/Olympus")
