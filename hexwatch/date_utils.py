"""Shared timestamp normalization helpers."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_datetime_utc(value: datetime) -> str:
    dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        token = value.strip()
        if not token:
            return None
        try:
            parsed = datetime.fromisoformat(token.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def iso_to_epoch(value: Any) -> float:
    parsed = parse_iso_datetime(value)
    if parsed is None:
        return 0.0
    return parsed.timestamp()


def _file_created_datetime(stats: Any) -> datetime | None:
    for attr in ("st_birthtime",):
        value = getattr(stats, attr, None)
        if isinstance(value, (int, float)) and value > 0:
            return datetime.fromtimestamp(float(value), timezone.utc)
    ctime = getattr(stats, "st_ctime", None)
    if isinstance(ctime, (int, float)) and ctime > 0:
        return datetime.fromtimestamp(float(ctime), timezone.utc)
    return None


def file_metadata_dates(path: Path) -> dict[str, str]:
    """Return normalized filesystem creation/modified timestamps.

    Raises ``OSError`` when the file cannot be stat'ed; callers treat that as
    a per-file read failure.
    """
    stats = path.stat()
    modified_dt = datetime.fromtimestamp(float(stats.st_mtime), timezone.utc)
    created_dt = _file_created_datetime(stats) or modified_dt
    return {
        "createdAt": format_datetime_utc(created_dt),
        "updatedAt": format_datetime_utc(modified_dt),
    }
