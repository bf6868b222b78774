"""GPX / CSV export of recorded tracks.

Stored coordinates are WGS84 and exported as such. Bad points are skipped one
by one; the export as a whole never aborts because of a single point.
"""

from __future__ import annotations

import csv
import io
import logging
import math
import xml.etree.ElementTree as ET
from pathlib import Path

from track_clean.models import DEFAULT_TZ, Track, TrackPoint
from track_clean.timeutils import dt_from_epoch_ms, iso_utc

logger = logging.getLogger(__name__)

GPX_NS = "http://www.topografix.com/GPX/1/1"
CSV_HEADER = ["Timestamp", "Latitude", "Longitude", "Altitude(m)", "Speed(m/s)", "Speed(km/h)", "Accuracy(m)"]

MAX_EXPORT_ACCURACY_M = 50.0
MIN_EXPORT_ALTITUDE_M = -500.0
MAX_EXPORT_ALTITUDE_M = 10000.0


class ExportError(OSError):
    """Writing an export file failed. In-memory data is untouched."""


def _is_exportable(pt: TrackPoint) -> bool:
    if not (math.isfinite(pt.latitude) and math.isfinite(pt.longitude)):
        return False
    return pt.horizontal_accuracy_m <= MAX_EXPORT_ACCURACY_M


def track_to_gpx(track: Track) -> str:
    """Render a track as GPX 1.1 with a single trk/trkseg."""

    gpx = ET.Element("gpx", attrib={"version": "1.1", "creator": "track_clean", "xmlns": GPX_NS})
    metadata = ET.SubElement(gpx, "metadata")
    ET.SubElement(metadata, "name").text = track.name
    ET.SubElement(metadata, "time").text = iso_utc(track.start_ms)
    trk = ET.SubElement(gpx, "trk")
    ET.SubElement(trk, "name").text = track.name
    seg = ET.SubElement(trk, "trkseg")

    skipped = 0
    for pt in track.sorted_points():
        if not _is_exportable(pt) or not (MIN_EXPORT_ALTITUDE_M <= pt.altitude_m <= MAX_EXPORT_ALTITUDE_M):
            skipped += 1
            continue
        try:
            time_text = iso_utc(pt.time_ms)
        except (OverflowError, OSError, ValueError):
            skipped += 1
            continue
        trkpt = ET.SubElement(seg, "trkpt", attrib={"lat": repr(pt.latitude), "lon": repr(pt.longitude)})
        ET.SubElement(trkpt, "ele").text = f"{pt.altitude_m:.1f}"
        ET.SubElement(trkpt, "time").text = time_text
        if pt.speed_mps >= 0:
            ET.SubElement(trkpt, "speed").text = f"{pt.speed_mps:.2f}"

    if skipped:
        logger.warning("GPX导出：跳过 %s 个无效数据点", skipped)
    ET.indent(gpx)
    body = ET.tostring(gpx, encoding="unicode")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + body + "\n"


def track_to_csv(track: Track, tz_name: str = DEFAULT_TZ) -> str:
    """Render a track as CSV (local time, speeds floored at 0)."""

    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(CSV_HEADER)

    skipped = 0
    for pt in track.sorted_points():
        if not _is_exportable(pt):
            skipped += 1
            continue
        try:
            ts = dt_from_epoch_ms(pt.time_ms, tz_name).strftime("%Y-%m-%d %H:%M:%S")
        except (OverflowError, OSError, ValueError):
            skipped += 1
            continue
        speed = max(0.0, pt.speed_mps)
        w.writerow(
            [
                ts,
                repr(pt.latitude),
                repr(pt.longitude),
                f"{pt.altitude_m:.1f}",
                f"{speed:.2f}",
                f"{speed * 3.6:.2f}",
                f"{pt.horizontal_accuracy_m:.1f}",
            ]
        )

    if skipped:
        logger.warning("CSV导出：跳过 %s 个无效数据点", skipped)
    return buf.getvalue()


def export_basename(track: Track, tz_name: str = DEFAULT_TZ) -> str:
    """File stem like track_2025-01-01_08-00-00."""

    return f"track_{dt_from_epoch_ms(track.start_ms, tz_name):%Y-%m-%d_%H-%M-%S}"


def _write_text_atomic(path: Path, text: str) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(path)
    except OSError as exc:
        if tmp.exists():
            tmp.unlink()
        raise ExportError(f"导出失败：{path}（{exc}）") from exc


def write_track_exports(track: Track, out_dir: str | Path, tz_name: str = DEFAULT_TZ) -> tuple[Path, Path]:
    """Write <basename>.gpx and <basename>.csv into out_dir.

    Raises:
        ExportError: If a file cannot be written.
    """

    out = Path(out_dir)
    stem = export_basename(track, tz_name)
    gpx_path = out / f"{stem}.gpx"
    csv_path = out / f"{stem}.csv"
    _write_text_atomic(gpx_path, track_to_gpx(track))
    _write_text_atomic(csv_path, track_to_csv(track, tz_name))
    return gpx_path, csv_path
