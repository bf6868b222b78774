"""
Tests for WGS84 / GCJ-02 / BD-09 conversion.
"""
import pytest

from track_clean.coords import (
    _gcj02_delta,
    CoordinateSystem,
    bd09_to_gcj02,
    convert,
    for_map_display,
    gcj02_to_bd09,
    gcj02_to_wgs84,
    out_of_china,
    wgs84_to_gcj02,
)
from track_clean.geo import haversine_m

CHINA_POINTS = [
    (39.9042, 116.4074),  # Beijing
    (31.2304, 121.4737),  # Shanghai
    (22.5431, 114.0579),  # Shenzhen
    (30.6586, 104.0648),  # Chengdu
    (43.8256, 87.6168),  # Urumqi
    (45.8038, 126.5350),  # Harbin
]


@pytest.mark.parametrize("lat,lon,expected", [
    (1.0, 100.0, False),
    (0.5, 100.0, True),
    (56.0, 100.0, True),
    (39.9, 116.4, False),
    (39.9, 71.0, True),
    (39.9, 138.0, True),
])
def test_out_of_china_boundary(lat, lon, expected):
    assert out_of_china(lat, lon) is expected


@pytest.mark.parametrize("lat,lon", CHINA_POINTS)
def test_gcj02_round_trip_within_five_meters(lat, lon):
    g_lat, g_lon = wgs84_to_gcj02(lat, lon)
    # the offset itself is hundreds of meters
    assert haversine_m(lat, lon, g_lat, g_lon) > 50.0

    w_lat, w_lon = gcj02_to_wgs84(g_lat, g_lon)
    assert haversine_m(lat, lon, w_lat, w_lon) < 5.0


@pytest.mark.parametrize("lat,lon", [(48.8566, 2.3522), (40.7128, -74.0060), (-33.8688, 151.2093)])
def test_outside_china_is_identity(lat, lon):
    assert wgs84_to_gcj02(lat, lon) == (lat, lon)
    assert gcj02_to_wgs84(lat, lon) == (lat, lon)
    assert for_map_display(lat, lon) == (lat, lon)


def test_inverse_is_first_order_not_iterative():
    lat, lon = 39.9042, 116.4074
    g_lat, g_lon = wgs84_to_gcj02(lat, lon)
    # delta evaluated at the shifted point and subtracted once
    d_lat, d_lon = _gcj02_delta(g_lat, g_lon)
    assert gcj02_to_wgs84(g_lat, g_lon) == (g_lat - d_lat, g_lon - d_lon)


def test_bd09_round_trip():
    lat, lon = 31.2304, 121.4737
    b_lat, b_lon = gcj02_to_bd09(lat, lon)
    assert (b_lat, b_lon) != (lat, lon)
    r_lat, r_lon = bd09_to_gcj02(b_lat, b_lon)
    assert haversine_m(lat, lon, r_lat, r_lon) < 1.0


def test_bd09_has_no_out_of_china_bypass():
    lat, lon = 48.8566, 2.3522
    assert gcj02_to_bd09(lat, lon) != (lat, lon)


def test_convert_identity_and_routing():
    lat, lon = 39.9042, 116.4074
    for cs in CoordinateSystem:
        assert convert(lat, lon, cs, cs) == (lat, lon)

    expected_bd = gcj02_to_bd09(*wgs84_to_gcj02(lat, lon))
    assert convert(lat, lon, CoordinateSystem.WGS84, CoordinateSystem.BD09) == expected_bd

    expected_wgs = gcj02_to_wgs84(*bd09_to_gcj02(*expected_bd))
    assert convert(*expected_bd, CoordinateSystem.BD09, CoordinateSystem.WGS84) == expected_wgs
    assert haversine_m(lat, lon, *expected_wgs) < 5.0


def test_for_map_display_inside_china_is_gcj02():
    lat, lon = 31.2304, 121.4737
    assert for_map_display(lat, lon) == wgs84_to_gcj02(lat, lon)


@pytest.mark.parametrize("name,expected", [
    ("wgs84", CoordinateSystem.WGS84),
    ("GCJ-02", CoordinateSystem.GCJ02),
    ("bd_09", CoordinateSystem.BD09),
])
def test_coordinate_system_from_name(name, expected):
    assert CoordinateSystem.from_name(name) is expected


def test_coordinate_system_from_unknown_name():
    with pytest.raises(ValueError):
        CoordinateSystem.from_name("utm")
