# chronogrid/util/dates.py
"""Timezone-aware datetime helpers shared by the engine.

All engine datetimes are *aware*. Values without an offset are interpreted in
the scheduler timezone. Calendar units (day and coarser) move wall-clock time;
hours and minutes move absolute time, so a one-hour step across a DST change
is still sixty minutes long.
"""
from __future__ import annotations

import datetime as dt
import re
from typing import Any, Optional

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

UTC = dt.timezone.utc
EPOCH = dt.datetime(1970, 1, 1, tzinfo=UTC)
ONE_MS = dt.timedelta(milliseconds=1)

# Calendar-ish units as accepted by add_to_date(); plural forms are tolerated.
_CALENDAR_UNITS = {
    "year": "years",
    "month": "months",
    "week": "weeks",
    "day": "days",
}
_ABSOLUTE_UNITS = {
    "hour": "hours",
    "minute": "minutes",
    "second": "seconds",
    "millisecond": "milliseconds",
}

# "2023-01-25, 12:00 p.m." as produced by Salesforce date-time fields.
_SF_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2}),\s*(\d{1,2}):(\d{2})\s*([ap])\.?\s*m\.?$",
    re.IGNORECASE,
)


def _unit_key(unit: str) -> str:
    u = str(unit or "").strip().lower()
    return u[:-1] if u.endswith("s") else u


def date_from(value: Any, tz: dt.tzinfo = UTC) -> Optional[dt.datetime]:
    """Coerce `value` into an aware datetime in `tz`, or None.

    Accepts aware/naive datetimes, dates, epoch milliseconds, ISO-8601 strings
    and the "YYYY-MM-DD, h:mm a.m." form.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, dt.datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=tz)
        return value.astimezone(tz)

    if isinstance(value, dt.date):
        return dt.datetime(value.year, value.month, value.day, tzinfo=tz)

    if isinstance(value, (int, float)):
        try:
            return from_ms(int(value), tz)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        m = _SF_RE.match(s)
        if m:
            y, mo, d, hh, mm, ampm = m.groups()
            hour = int(hh) % 12 + (12 if ampm.lower() == "p" else 0)
            try:
                return dt.datetime(int(y), int(mo), int(d), hour, int(mm), tzinfo=tz)
            except ValueError:
                return None
        try:
            parsed = isoparse(s)
        except (ValueError, OverflowError):
            return None
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=tz)
        return parsed.astimezone(tz)

    return None


def from_ms(ms: int, tz: dt.tzinfo = UTC) -> dt.datetime:
    return (EPOCH + dt.timedelta(milliseconds=int(ms))).astimezone(tz)


def to_ms(d: dt.datetime) -> int:
    return (d - EPOCH) // ONE_MS


def to_utc_iso(d: Optional[dt.datetime]) -> Optional[str]:
    """ISO-8601 in UTC with millisecond precision, e.g. 2024-01-01T09:00:00.000Z."""
    if d is None:
        return None
    return d.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def start_of_day(d: dt.datetime) -> dt.datetime:
    return d.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(d: dt.datetime) -> dt.datetime:
    return d.replace(hour=23, minute=59, second=59, microsecond=999000)


def is_midnight(d: dt.datetime) -> bool:
    return d.hour == 0 and d.minute == 0 and d.second == 0 and d.microsecond == 0


def weekday_sunday_first(d: dt.datetime) -> int:
    """0=Sunday .. 6=Saturday."""
    return d.isoweekday() % 7


def set_iso_weekday(d: dt.datetime, iso_weekday: int) -> dt.datetime:
    """Move `d` to `iso_weekday` (1=Mon .. 7=Sun) inside its Monday-start week."""
    return d + relativedelta(days=int(iso_weekday) - d.isoweekday())


def set_time_of(d: dt.datetime, other: dt.datetime) -> dt.datetime:
    """`d`'s date with `other`'s wall-clock time."""
    return d.replace(
        hour=other.hour,
        minute=other.minute,
        second=other.second,
        microsecond=other.microsecond,
    )


def add_to_date(d: dt.datetime, unit: str, span: int) -> dt.datetime:
    u = _unit_key(unit)
    if u in _CALENDAR_UNITS:
        return d + relativedelta(**{_CALENDAR_UNITS[u]: int(span)})
    if u in _ABSOLUTE_UNITS:
        delta = dt.timedelta(**{_ABSOLUTE_UNITS[u]: int(span)})
        return (d.astimezone(UTC) + delta).astimezone(d.tzinfo)
    raise ValueError(f"Unknown time unit: {unit!r}")


def remove_from_date(d: dt.datetime, unit: str, span: int) -> dt.datetime:
    return add_to_date(d, unit, -int(span))
