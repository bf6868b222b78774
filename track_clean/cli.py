"""Command-line interface for track_clean.

Run:
    python -m track_clean inspect --csv Path.csv
    python -m track_clean record --csv Path.csv --out-dir exports
    python -m track_clean convert --lat 39.9 --lon 116.4 --from wgs84 --to gcj02
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import asdict

from track_clean.coords import CoordinateSystem, convert, out_of_china
from track_clean.csv_io import load_raw_fixes
from track_clean.export import ExportError, write_track_exports
from track_clean.inspect import inspect_fixes
from track_clean.models import DEFAULT_TZ
from track_clean.session import RecordingSession
from track_clean.stats import summarize_track, validate_track
from track_clean.timeutils import dt_from_epoch_ms, format_duration
from track_clean.validator import FixValidator, ValidationParams


def _fmt(value: float | None, spec: str = ".2f", unit: str = "") -> str:
    if value is None:
        return "-"
    return f"{value:{spec}}{unit}"


def _cmd_inspect(args: argparse.Namespace) -> int:
    items, summary = load_raw_fixes(args.csv)
    res = inspect_fixes([fix for fix, _ in items])

    print("### CSV字段")
    print(", ".join(summary.fieldnames))
    print()

    print("### 行数")
    print(f"total_rows={summary.rows_total}, parsed={summary.rows_parsed}, skipped={summary.rows_skipped}")
    print()

    if res.min_time_ms is not None and res.max_time_ms is not None:
        print("### 时间范围（本地时区）")
        start = dt_from_epoch_ms(res.min_time_ms, args.tz)
        end = dt_from_epoch_ms(res.max_time_ms, args.tz)
        print(f"start={start.isoformat(sep=' ')}, end={end.isoformat(sep=' ')}")
        print()

    if res.delta is not None:
        print("### 采样间隔（秒）")
        print(
            f"count={res.delta.count}, min={res.delta.min_s:.3f}, median={res.delta.median_s:.3f}, "
            f"p95={res.delta.p95_s:.3f}, max={res.delta.max_s:.3f}"
        )
        print()

    print("### 经纬度范围（粗略）")
    print(f"lat=[{res.min_lat}, {res.max_lat}], lon=[{res.min_lon}, {res.max_lon}]")
    print()

    print("### 数据问题")
    print(
        f"重复时间戳={res.duplicate_times}, 时间倒退={res.out_of_order}, "
        f"精度无效(<=0)={res.accuracy_sentinels}, 速度未知(<0)={res.unknown_speed}"
    )

    if args.json:
        import json

        payload = asdict(res) | {
            "rows_total": summary.rows_total,
            "rows_parsed": summary.rows_parsed,
            "rows_skipped": summary.rows_skipped,
            "fieldnames": list(summary.fieldnames),
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def _cmd_record(args: argparse.Namespace) -> int:
    items, summary = load_raw_fixes(args.csv)
    if not items:
        print(f"没有可用的定位数据：{args.csv}", file=sys.stderr)
        return 1

    params = ValidationParams(max_accuracy_m=args.max_accuracy, max_speed_kmh=args.max_speed_kmh)
    session = RecordingSession(FixValidator(params), tz_name=args.tz)

    times = [fix.time_ms for fix, _ in items]
    session.start(min(times), name=args.name)
    # 回放模式：以定位点自身时间作为"当前时间"，否则历史数据会全部被判为过期
    accepted = sum(1 for _ in session.process_stream(items, replay=True))
    rejections = {r.value: n for r, n in session.validator.rejection_counts.items()}
    track = session.stop(max(times))

    stats = summarize_track(track)
    audit = validate_track(track)

    print("### 处理结果")
    print(f"rows={summary.rows_parsed}, accepted={accepted}, rejected={len(items) - accepted}")
    if rejections:
        print("丢弃原因：" + ", ".join(f"{k}={v}" for k, v in sorted(rejections.items())))
    print()

    print("### 轨迹统计")
    print(f"时长={format_duration(stats.duration_s)}")
    print(f"距离={_fmt(None if stats.distance_m is None else stats.distance_m / 1000.0, '.3f', ' km')}")
    print(f"平均速度={_fmt(stats.average_speed_kmh, '.1f', ' km/h')}, 最大速度={_fmt(stats.max_speed_kmh, '.1f', ' km/h')}")
    print(
        f"海拔 min={_fmt(stats.min_altitude_m, '.1f', ' m')}, max={_fmt(stats.max_altitude_m, '.1f', ' m')}, "
        f"累计爬升={_fmt(stats.elevation_gain_m, '.1f', ' m')}"
    )
    print()

    print("### 数据验证")
    if audit.is_valid:
        print("数据验证通过")
    else:
        for issue in audit.issues:
            print(f"• {issue}")
    print()

    if args.out_dir:
        try:
            gpx_path, csv_path = write_track_exports(track, args.out_dir, args.tz)
        except ExportError as exc:
            print(str(exc), file=sys.stderr)
            return 1
        print(f"已导出：{gpx_path}")
        print(f"已导出：{csv_path}")

    if args.json:
        import json

        payload = {
            "track": {"id": track.track_id, "name": track.name, "start_ms": track.start_ms, "end_ms": track.end_ms},
            "accepted": accepted,
            "rejections": rejections,
            "summary": asdict(stats),
            "audit": {"is_valid": audit.is_valid, "issues": list(audit.issues)},
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def _cmd_convert(args: argparse.Namespace) -> int:
    source = CoordinateSystem.from_name(args.source)
    target = CoordinateSystem.from_name(args.target)
    lat, lon = convert(args.lat, args.lon, source, target)
    if out_of_china(args.lat, args.lon):
        print("注意：该坐标在中国范围之外，WGS84/GCJ-02 之间不做偏移", file=sys.stderr)
    print(f"{source.display_name} -> {target.display_name}")
    print(f"lat={lat:.8f}, lon={lon:.8f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    p = argparse.ArgumentParser(prog="track_clean")
    p.add_argument("-v", "--verbose", action="store_true", help="输出调试日志（包括每个被丢弃的定位点）")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_ins = sub.add_parser("inspect", help="分析定位CSV的结构/时间范围/采样间隔等")
    p_ins.add_argument("--csv", type=str, default="Path.csv", help="输入CSV路径")
    p_ins.add_argument("--tz", type=str, default=DEFAULT_TZ, help="时区（IANA），默认 Asia/Shanghai")
    p_ins.add_argument("--json", action="store_true", help="额外输出JSON（便于后处理）")
    p_ins.set_defaults(func=_cmd_inspect)

    p_rec = sub.add_parser("record", help="回放定位CSV：过滤+卡尔曼平滑，输出统计/验证并导出GPX、CSV")
    p_rec.add_argument("--csv", type=str, default="Path.csv", help="输入CSV路径")
    p_rec.add_argument("--name", type=str, default=None, help="轨迹名称（默认按开始时间生成）")
    p_rec.add_argument("--out-dir", type=str, default=None, help="导出目录（不填则不导出文件）")
    p_rec.add_argument("--tz", type=str, default=DEFAULT_TZ, help="时区（IANA）")
    p_rec.add_argument("--max-accuracy", type=float, default=30.0, help="允许的最大水平精度（米）")
    p_rec.add_argument("--max-speed-kmh", type=float, default=120.0, help="实时过滤的最大合理速度（km/h）")
    p_rec.add_argument("--json", action="store_true", help="额外输出JSON（便于后处理）")
    p_rec.set_defaults(func=_cmd_record)

    p_cv = sub.add_parser("convert", help="坐标系转换（wgs84 / gcj02 / bd09）")
    p_cv.add_argument("--lat", type=float, required=True, help="纬度")
    p_cv.add_argument("--lon", type=float, required=True, help="经度")
    p_cv.add_argument("--from", dest="source", type=str, default="wgs84", help="源坐标系")
    p_cv.add_argument("--to", dest="target", type=str, default="gcj02", help="目标坐标系")
    p_cv.set_defaults(func=_cmd_convert)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return int(args.func(args))
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
