# chronogrid/availability.py
"""Availability filter: month, weekday and time-of-day constraints.

Months are numbered 0=January .. 11=December, weekdays 0=Sunday .. 6=Saturday
and time frames are "HH:MM-HH:MM" strings (seconds optional). A time is inside
a frame when start <= time < end.

The next_*/previous_* walks return the input unchanged when it is already
allowed, and None when no allowed value exists before `limit` (or within the
step guard).
"""
from __future__ import annotations

import datetime as dt
from typing import List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from .defaults import DEFAULT_AVAILABLE_DAYS_OF_THE_WEEK, WEEKDAY_LABELS
from .util.console import obs_warn
from .util.dates import add_to_date, remove_from_date, set_time_of, start_of_day, weekday_sunday_first
from .util.timeparse import parse_time_frame

_MONTH_GUARD = 12
_DAY_GUARD = 800
_TIME_GUARD = 200_000


def is_allowed_month(date: dt.datetime, allowed_months: Sequence[int]) -> bool:
    return (date.month - 1) in allowed_months


def is_allowed_day(date: dt.datetime, allowed_days: Sequence[int]) -> bool:
    return weekday_sunday_first(date) in allowed_days


def in_time_frame(date: dt.datetime, time_frame: str) -> bool:
    try:
        start, end = parse_time_frame(time_frame)
    except ValueError as ex:
        obs_warn("availability", f"ignoring time frame {time_frame!r}: {ex}")
        return True
    t = date.timetz().replace(tzinfo=None)
    return start <= t < end


def is_allowed_time(date: dt.datetime, allowed_time_frames: Sequence[str]) -> bool:
    return any(in_time_frame(date, tf) for tf in allowed_time_frames)


def next_allowed_month(
    date: dt.datetime,
    allowed_months: Sequence[int],
    first_day: bool = True,
    limit: Optional[dt.datetime] = None,
) -> Optional[dt.datetime]:
    guard = 0
    while not is_allowed_month(date, allowed_months):
        guard += 1
        if guard > _MONTH_GUARD:
            return None
        date = date + relativedelta(months=1)
        if first_day:
            date = date.replace(day=1)
        if limit is not None and date > limit:
            return None
    return date


def previous_allowed_month(
    date: dt.datetime,
    allowed_months: Sequence[int],
    first_day: bool = True,
    limit: Optional[dt.datetime] = None,
) -> Optional[dt.datetime]:
    guard = 0
    while not is_allowed_month(date, allowed_months):
        guard += 1
        if guard > _MONTH_GUARD:
            return None
        date = date - relativedelta(months=1)
        if first_day:
            date = date.replace(day=1)
        if limit is not None and date < limit:
            return None
    return date


def next_allowed_day(
    date: dt.datetime,
    allowed_months: Sequence[int],
    allowed_days: Sequence[int],
    limit: Optional[dt.datetime] = None,
) -> Optional[dt.datetime]:
    guard = 0
    while True:
        if not is_allowed_month(date, allowed_months):
            nxt = next_allowed_month(date, allowed_months, limit=limit)
            if nxt is None:
                return None
            date = start_of_day(nxt)
        if is_allowed_day(date, allowed_days):
            return date
        guard += 1
        if guard > _DAY_GUARD:
            return None
        date = start_of_day(date + relativedelta(days=1))
        if limit is not None and date > limit:
            return None


def previous_allowed_day(
    date: dt.datetime,
    allowed_months: Sequence[int],
    allowed_days: Sequence[int],
    limit: Optional[dt.datetime] = None,
) -> Optional[dt.datetime]:
    guard = 0
    while True:
        if not is_allowed_month(date, allowed_months):
            prev = previous_allowed_month(date, allowed_months, limit=limit)
            if prev is None:
                return None
            date = start_of_day(prev)
        if is_allowed_day(date, allowed_days):
            return date
        guard += 1
        if guard > _DAY_GUARD:
            return None
        date = start_of_day(date - relativedelta(days=1))
        if limit is not None and date < limit:
            return None


def next_allowed_time(
    date: dt.datetime,
    allowed_months: Sequence[int],
    allowed_days: Sequence[int],
    allowed_time_frames: Sequence[str],
    unit: str,
    span: int,
    limit: Optional[dt.datetime] = None,
) -> Optional[dt.datetime]:
    """Step forward by unit x span until the time of day is allowed.

    Whenever a step lands on another day, the day (and month) are re-checked.
    """
    guard = 0
    while not is_allowed_time(date, allowed_time_frames):
        guard += 1
        if guard > _TIME_GUARD:
            return None
        prev = date
        date = add_to_date(date, unit, span)
        if date.date() != prev.date():
            nxt = next_allowed_day(date, allowed_months, allowed_days, limit=limit)
            if nxt is None:
                return None
            date = nxt
        if limit is not None and date > limit:
            return None
    return date


def previous_allowed_time(
    date: dt.datetime,
    allowed_months: Sequence[int],
    allowed_days: Sequence[int],
    allowed_time_frames: Sequence[str],
    unit: str,
    span: int,
    limit: Optional[dt.datetime] = None,
) -> Optional[dt.datetime]:
    guard = 0
    while not is_allowed_time(date, allowed_time_frames):
        guard += 1
        if guard > _TIME_GUARD:
            return None
        prev = date
        date = remove_from_date(date, unit, span)
        if date.date() != prev.date():
            before = previous_allowed_day(date, allowed_months, allowed_days, limit=limit)
            if before is None:
                return None
            if before.date() != date.date():
                # Landed on a disabled day: resume from the end of the allowed one.
                before = set_time_of(before, date)
            date = before
        if limit is not None and date < limit:
            return None
    return date


def is_allowed(
    start: dt.datetime,
    end: dt.datetime,
    allowed_months: Optional[Sequence[int]] = None,
    allowed_weekdays: Optional[Sequence[int]] = None,
    allowed_time_frames: Optional[Sequence[str]] = None,
    unit: str = "day",
    span: int = 1,
) -> bool:
    """True iff [start, end) reaches at least one allowed slot.

    Missing (None or empty) constraints allow everything. Time frames are only
    consulted for minute and hour granularity; coarser headers only need a day
    overlap.
    """
    months = list(allowed_months) if allowed_months else list(range(12))
    days = list(allowed_weekdays) if allowed_weekdays else list(range(7))

    first_month = next_allowed_month(start, months, limit=end)
    if first_month is None or first_month > end:
        return False

    first_day = next_allowed_day(first_month, months, days, limit=end)
    if first_day is None or first_day > end:
        return False

    if unit in ("minute", "hour") and allowed_time_frames:
        first_time = next_allowed_time(
            first_day,
            months,
            days,
            list(allowed_time_frames),
            unit,
            max(1, int(span or 1)),
            limit=end,
        )
        return first_time is not None and first_time < end

    return True


def disabled_weekday_labels(allowed_days: Sequence[int]) -> List[str]:
    """Short labels ("Sun", "Mon", ...) of the weekdays missing from `allowed_days`."""
    return [WEEKDAY_LABELS[d][:3] for d in DEFAULT_AVAILABLE_DAYS_OF_THE_WEEK if d not in allowed_days]
