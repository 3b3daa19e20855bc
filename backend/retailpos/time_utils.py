from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" or "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def is_date_only(value: Optional[str]) -> bool:
    """True for bare calendar dates such as "2024-05-01"."""
    if not value:
        return False
    try:
        date.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


def end_of_day(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time.max)


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


def local_day_start(tz_name: str, now: Optional[datetime] = None) -> datetime:
    """
    Local midnight of the current day in tz_name, as UTC-naive.

    `now` is UTC-naive when given (tests pin it).
    """
    zone = ZoneInfo(tz_name)
    current = (now or utcnow()).replace(tzinfo=timezone.utc).astimezone(zone)
    midnight = datetime.combine(current.date(), time.min, tzinfo=zone)
    return midnight.astimezone(timezone.utc).replace(tzinfo=None)


def local_month_start(tz_name: str, now: Optional[datetime] = None) -> datetime:
    """First instant of the current local month in tz_name, as UTC-naive."""
    zone = ZoneInfo(tz_name)
    current = (now or utcnow()).replace(tzinfo=timezone.utc).astimezone(zone)
    first = datetime.combine(current.date().replace(day=1), time.min, tzinfo=zone)
    return first.astimezone(timezone.utc).replace(tzinfo=None)
