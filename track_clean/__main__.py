"""Module entry point: python -m track_clean ..."""

from __future__ import annotations

from track_clean.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
