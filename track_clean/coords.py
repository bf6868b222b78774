"""Coordinate system conversion between WGS84, GCJ-02 and BD-09.

GCJ-02 is the offset datum required for map display inside mainland China,
BD-09 is Baidu's further offset on top of GCJ-02. Stored data is always WGS84;
these conversions are only applied at the display/export boundary.

Accuracy note:
    gcj02_to_wgs84 is a first-order inverse: the forward offset is evaluated at
    the GCJ-02 point itself and subtracted, without iterating. The residual is
    usually below one meter and can reach a few meters where the offset field
    changes quickly. Existing data depends on this exact approximation.
"""

from __future__ import annotations

import math
from enum import Enum

PI = 3.1415926535897932384626
A = 6378245.0  # semi-major axis of Krasovsky 1940
EE = 0.00669342162296594323  # eccentricity squared


class CoordinateSystem(Enum):
    """Identity tag of a coordinate system (never stored with points)."""

    WGS84 = "wgs84"
    GCJ02 = "gcj02"
    BD09 = "bd09"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def from_name(cls, name: str) -> CoordinateSystem:
        key = name.strip().lower().replace("-", "").replace("_", "")
        for cs in cls:
            if cs.value == key:
                return cs
        raise ValueError(f"未知坐标系：{name!r}。可用：wgs84 / gcj02 / bd09")


_DISPLAY_NAMES = {
    CoordinateSystem.WGS84: "WGS84 (GPS)",
    CoordinateSystem.GCJ02: "GCJ-02 (火星)",
    CoordinateSystem.BD09: "BD-09 (百度)",
}


def out_of_china(lat: float, lon: float) -> bool:
    """True when the point is outside the mainland China bounding box."""

    return lon < 72.004 or lon > 137.8347 or lat < 0.8293 or lat > 55.8271


def _transform_lat(x: float, y: float) -> float:
    ret = -100.0 + 2.0 * x + 3.0 * y + 0.2 * y * y + 0.1 * x * y + 0.2 * math.sqrt(abs(x))
    ret += (20.0 * math.sin(6.0 * x * PI) + 20.0 * math.sin(2.0 * x * PI)) * 2.0 / 3.0
    ret += (20.0 * math.sin(y * PI) + 40.0 * math.sin(y / 3.0 * PI)) * 2.0 / 3.0
    ret += (160.0 * math.sin(y / 12.0 * PI) + 320.0 * math.sin(y * PI / 30.0)) * 2.0 / 3.0
    return ret


def _transform_lon(x: float, y: float) -> float:
    ret = 300.0 + x + 2.0 * y + 0.1 * x * x + 0.1 * x * y + 0.1 * math.sqrt(abs(x))
    ret += (20.0 * math.sin(6.0 * x * PI) + 20.0 * math.sin(2.0 * x * PI)) * 2.0 / 3.0
    ret += (20.0 * math.sin(x * PI) + 40.0 * math.sin(x / 3.0 * PI)) * 2.0 / 3.0
    ret += (150.0 * math.sin(x / 12.0 * PI) + 300.0 * math.sin(x / 30.0 * PI)) * 2.0 / 3.0
    return ret


def _gcj02_delta(lat: float, lon: float) -> tuple[float, float]:
    """Offset (d_lat, d_lon) in degrees evaluated at (lat, lon)."""

    d_lat = _transform_lat(lon - 105.0, lat - 35.0)
    d_lon = _transform_lon(lon - 105.0, lat - 35.0)

    rad_lat = lat / 180.0 * PI
    magic = math.sin(rad_lat)
    magic = 1 - EE * magic * magic
    sqrt_magic = math.sqrt(magic)

    d_lat = (d_lat * 180.0) / ((A * (1 - EE)) / (magic * sqrt_magic) * PI)
    d_lon = (d_lon * 180.0) / (A / sqrt_magic * math.cos(rad_lat) * PI)
    return d_lat, d_lon


def wgs84_to_gcj02(lat: float, lon: float) -> tuple[float, float]:
    """Convert WGS84 -> GCJ-02. Identity outside China."""

    if out_of_china(lat, lon):
        return lat, lon
    d_lat, d_lon = _gcj02_delta(lat, lon)
    return lat + d_lat, lon + d_lon


def gcj02_to_wgs84(lat: float, lon: float) -> tuple[float, float]:
    """Convert GCJ-02 -> WGS84 (first-order approximation, see module docs)."""

    if out_of_china(lat, lon):
        return lat, lon
    d_lat, d_lon = _gcj02_delta(lat, lon)
    return lat - d_lat, lon - d_lon


def gcj02_to_bd09(lat: float, lon: float) -> tuple[float, float]:
    """Convert GCJ-02 -> BD-09."""

    z = math.sqrt(lon * lon + lat * lat) + 0.00002 * math.sin(lat * PI * 3000.0 / 180.0)
    theta = math.atan2(lat, lon) + 0.000003 * math.cos(lon * PI * 3000.0 / 180.0)
    return z * math.sin(theta) + 0.006, z * math.cos(theta) + 0.0065


def bd09_to_gcj02(lat: float, lon: float) -> tuple[float, float]:
    """Convert BD-09 -> GCJ-02."""

    x = lon - 0.0065
    y = lat - 0.006
    z = math.sqrt(x * x + y * y) - 0.00002 * math.sin(y * PI * 3000.0 / 180.0)
    theta = math.atan2(y, x) - 0.000003 * math.cos(x * PI * 3000.0 / 180.0)
    return z * math.sin(theta), z * math.cos(theta)


def convert(
    lat: float,
    lon: float,
    source: CoordinateSystem,
    target: CoordinateSystem,
) -> tuple[float, float]:
    """Convert a (lat, lon) pair between coordinate systems.

    WGS84 <-> BD-09 is routed through GCJ-02.
    """

    if source == target:
        return lat, lon

    if source == CoordinateSystem.BD09:
        lat, lon = bd09_to_gcj02(lat, lon)
    elif source == CoordinateSystem.WGS84:
        lat, lon = wgs84_to_gcj02(lat, lon)
    # now in GCJ-02

    if target == CoordinateSystem.GCJ02:
        return lat, lon
    if target == CoordinateSystem.BD09:
        return gcj02_to_bd09(lat, lon)
    return gcj02_to_wgs84(lat, lon)


def for_map_display(lat: float, lon: float) -> tuple[float, float]:
    """Display coordinates for a stored WGS84 point.

    Inside China the point is shifted to GCJ-02, outside it passes through unchanged.
    """

    if out_of_china(lat, lon):
        return lat, lon
    return convert(lat, lon, CoordinateSystem.WGS84, CoordinateSystem.GCJ02)
