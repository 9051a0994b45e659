"""Date parsing and UTC helpers for run metadata."""

from __future__ import annotations

from datetime import datetime, timezone


def parse_inspection_date(ddmmyyyy: str | None) -> int:
    """Turn a ``ddmmyyyy`` inspection date into a sortable ``yyyymmdd`` integer.

    Anything that is not exactly eight digits after trimming sorts first as 0.
    """
    value = (ddmmyyyy or "").strip()
    if len(value) != 8 or not (value.isascii() and value.isdigit()):
        return 0
    return int(f"{value[4:8]}{value[2:4]}{value[0:2]}")


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


def generate_run_id() -> str:
    now = datetime.now(tz=timezone.utc)
    return now.strftime("run-%Y%m%dT%H%M%S%fZ")
