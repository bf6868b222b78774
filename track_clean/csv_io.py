"""CSV input of recorded raw fixes (footprint export format)."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

from track_clean.models import RawFix

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "y", "t"}


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int
    fieldnames: Sequence[str]


def _parse_int(value: str) -> int:
    return int(value.strip())


def _parse_float(value: str) -> float:
    return float(value.strip())


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _row_to_fix(row: dict[str, str]) -> tuple[RawFix, bool]:
    fix = RawFix(
        time_ms=_parse_int(row["geoTime"]),
        latitude=_parse_float(row["latitude"]),
        longitude=_parse_float(row["longitude"]),
        altitude_m=_parse_float(row.get("altitude", "0") or "0"),
        speed_mps=_parse_float(row.get("speed", "-1") or "-1"),
        horizontal_accuracy_m=_parse_float(row.get("horizontalAccuracy", "-1") or "-1"),
    )
    # 没有 isMoving 列时按"移动中"处理
    return fix, _parse_bool(row.get("isMoving", "1") or "1")


def iter_raw_fixes(csv_path: str | Path) -> Iterator[tuple[RawFix, bool]]:
    """Yield (fix, is_moving) pairs from an exported CSV, in file order.

    Notes:
        Required columns: geoTime (epoch ms), latitude, longitude.
        Optional: altitude, speed, horizontalAccuracy, isMoving.
        Malformed rows are skipped.
    """

    p = Path(csv_path)
    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            return

        for row in reader:
            try:
                yield _row_to_fix(row)
            except KeyError as exc:
                raise KeyError(f"CSV缺少必要字段：{exc}. 实际字段：{reader.fieldnames}") from exc
            except (ValueError, TypeError, AttributeError):
                # 某些行可能损坏/空行，直接跳过
                continue


def load_raw_fixes(csv_path: str | Path) -> tuple[list[tuple[RawFix, bool]], CsvSummary]:
    """Load all fixes into memory.

    Returns:
        (items, summary)
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[tuple[RawFix, bool]] = []
    fieldnames: Sequence[str] = ()

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        for row in reader:
            rows_total += 1
            try:
                parsed.append(_row_to_fix(row))
            except (KeyError, ValueError, TypeError, AttributeError):
                continue

    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=len(parsed),
        rows_skipped=rows_total - len(parsed),
        fieldnames=fieldnames,
    )
    if summary.rows_skipped > 0:
        logger.warning("CSV中有 %s 行解析失败已跳过", summary.rows_skipped)
    return parsed, summary
