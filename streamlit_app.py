from __future__ import annotations

from pathlib import Path

import streamlit as st

from track_clean.coords import CoordinateSystem, convert, for_map_display
from track_clean.csv_io import load_raw_fixes
from track_clean.export import export_basename, track_to_csv, track_to_gpx
from track_clean.models import DEFAULT_TZ, Track
from track_clean.session import RecordingSession
from track_clean.stats import (
    gps_status_description,
    moving_average_speed_kmh,
    summarize_track,
    validate_track,
)
from track_clean.timeutils import format_duration
from track_clean.validator import FixValidator, ValidationParams


def _fmt(value: float | None, spec: str = ".1f") -> str:
    return "-" if value is None else f"{value:{spec}}"


@st.cache_data(show_spinner=False)
def _replay(
    path_csv: str,
    tz_name: str,
    max_accuracy: float,
    max_speed_kmh: float,
    mtime: float,
) -> tuple[Track, dict[str, int], int]:
    _ = mtime  # part of cache key so updated files reload automatically
    items, _summary = load_raw_fixes(path_csv)
    if not items:
        raise ValueError(f"没有可用的定位数据：{path_csv!r}")
    session = RecordingSession(
        FixValidator(ValidationParams(max_accuracy_m=max_accuracy, max_speed_kmh=max_speed_kmh)),
        tz_name=tz_name,
    )
    times = [fix.time_ms for fix, _ in items]
    session.start(min(times))
    for _pt in session.process_stream(items, replay=True):
        pass
    rejections = {r.value: n for r, n in session.validator.rejection_counts.items()}
    return session.stop(max(times)), rejections, len(items)


def main() -> None:
    st.set_page_config(page_title="轨迹清洗：过滤、平滑与统计", layout="wide")
    st.title("轨迹清洗：定位点过滤 + 卡尔曼平滑 + 轨迹统计")

    with st.sidebar:
        st.subheader("数据与时区")
        tz_name = st.text_input("时区（IANA）", value=DEFAULT_TZ)
        path_csv = st.text_input("定位CSV路径", value="Path.csv")

        with st.expander("过滤参数（通常不用改）", expanded=False):
            max_accuracy = st.number_input("最大水平精度（米）", value=30.0, step=5.0)
            max_speed_kmh = st.number_input("最大合理速度（km/h）", value=120.0, step=10.0)
            window_size = st.number_input("移动平均窗口（点数）", value=5, min_value=1, step=1)

        display_cs = st.selectbox(
            "导出坐标预览坐标系",
            options=list(CoordinateSystem),
            format_func=lambda cs: cs.display_name,
            index=1,
        )

    p = Path(path_csv)
    if not p.exists():
        st.error(f"找不到文件：{path_csv!r}")
        return

    try:
        track, rejections, received = _replay(
            path_csv, tz_name, float(max_accuracy), float(max_speed_kmh), p.stat().st_mtime
        )
    except Exception as exc:
        st.exception(exc)
        return

    stats = summarize_track(track)
    audit = validate_track(track)

    st.subheader("汇总")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("总时长", format_duration(stats.duration_s))
    c2.metric("总距离（km）", _fmt(None if stats.distance_m is None else stats.distance_m / 1000.0, ".2f"))
    c3.metric("平均速度（km/h）", _fmt(stats.average_speed_kmh))
    c4.metric("最大速度（km/h）", _fmt(stats.max_speed_kmh))

    c5, c6, c7, c8 = st.columns(4)
    c5.metric("接收定位点", str(received))
    c6.metric("保留定位点", str(stats.points))
    c7.metric("累计爬升（m）", _fmt(stats.elevation_gain_m))
    c8.metric("海拔范围（m）", f"{_fmt(stats.min_altitude_m)} ~ {_fmt(stats.max_altitude_m)}")

    if rejections:
        with st.expander("丢弃原因", expanded=False):
            st.dataframe(
                [{"reason": k, "count": v} for k, v in sorted(rejections.items(), key=lambda kv: -kv[1])],
                use_container_width=True,
            )

    st.subheader("数据验证")
    if audit.is_valid:
        st.success("数据验证通过")
    else:
        for issue in audit.issues:
            st.warning(issue)

    speeds = moving_average_speed_kmh(track.points, window_size=int(window_size))
    if speeds:
        st.subheader("移动平均速度（km/h）")
        st.line_chart(speeds)

    st.subheader("轨迹点")
    rows = []
    for pt in track.sorted_points():
        # 地图显示：国内转 GCJ-02，海外保持不变
        map_lat, map_lon = for_map_display(pt.latitude, pt.longitude)
        preview_lat, preview_lon = convert(pt.latitude, pt.longitude, CoordinateSystem.WGS84, display_cs)
        rows.append(
            {
                "time_ms": pt.time_ms,
                "lat_wgs84": pt.latitude,
                "lon_wgs84": pt.longitude,
                "lat_map": map_lat,
                "lon_map": map_lon,
                f"lat_{display_cs.value}": preview_lat,
                f"lon_{display_cs.value}": preview_lon,
                "altitude_m": pt.altitude_m,
                "speed_kmh": round(pt.speed_kmh, 2),
                "accuracy_m": pt.horizontal_accuracy_m,
                "gps": gps_status_description(pt.horizontal_accuracy_m),
            }
        )
    st.dataframe(rows, use_container_width=True, height=420)

    stem = export_basename(track, tz_name)
    d1, d2 = st.columns(2)
    d1.download_button("导出为GPX", track_to_gpx(track), file_name=f"{stem}.gpx", mime="application/gpx+xml")
    d2.download_button("导出为CSV", track_to_csv(track, tz_name), file_name=f"{stem}.csv", mime="text/csv")

    st.caption("说明：存储与导出坐标始终为 WGS84；lat_map/lon_map 为地图显示用坐标（中国境内为 GCJ-02）。")


if __name__ == "__main__":
    main()
