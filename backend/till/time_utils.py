from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_in(tz_name: str) -> date:
    """Calendar day it currently is in the given IANA zone."""
    return datetime.now(ZoneInfo(tz_name)).date()


def parse_business_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a YYYY-MM-DD business date.

    - None / "" -> None
    - anything that is not a plain calendar date raises ValueError
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    if len(s) != 10:
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    return date.fromisoformat(s)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
