# chronogrid/recurrence.py
"""Recurrence expansion.

The expander walks the candidate start dates of a recurring event and hands
each one to an `add_occurrence(start, end=None)` sink; filtering against the
visible window and availability is the sink's job. Expansion stops at the
first date past the effective end or once `recurrence_count` dates have been
produced, whichever comes first.
"""
from __future__ import annotations

import datetime as dt
import math
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from .model import EventSpec, OccurrenceSink
from .util.dates import add_to_date, end_of_day, is_midnight, set_iso_weekday, set_time_of, start_of_day

# Upper bound on loop iterations for any single expansion.
MAX_STEPS = 100_000


def _interval(attrs: Optional[Dict[str, Any]]) -> int:
    raw = (attrs or {}).get("interval")
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 1:
        return 1
    return raw


def iso_weekdays(raw: Any) -> List[int]:
    """0=Sun..6=Sat weekday list -> sorted, de-duplicated ISO weekdays (Sunday=7)."""
    if not isinstance(raw, (list, tuple)):
        return []
    out = set()
    for x in raw:
        if isinstance(x, bool) or not isinstance(x, int) or not 0 <= x <= 6:
            continue
        out.add(7 if x == 0 else x)
    return sorted(out)


def recurrence_end(spec: EventSpec) -> Optional[dt.datetime]:
    """The earlier of recurrence_end_date and scheduler_end (either may be absent)."""
    ends = [d for d in (spec.recurrence_end_date, spec.scheduler_end) if d is not None]
    return min(ends) if ends else None


def _day_end_clamp(start: dt.datetime, original_from: dt.datetime, original_to: dt.datetime) -> dt.datetime:
    # Recurring occurrences never cross midnight: an original end earlier in
    # the day than the original start is pinned to 23:59:59.
    to_clock = (original_to.hour, original_to.minute, original_to.second)
    from_clock = (original_from.hour, original_from.minute, original_from.second)
    if to_clock < from_clock:
        return start.replace(hour=23, minute=59, second=59, microsecond=0)
    return set_time_of(start, original_to)


def compute_occurrence_end(
    spec: EventSpec,
    start: dt.datetime,
    original_from: dt.datetime,
    original_to: dt.datetime,
) -> dt.datetime:
    """End of the occurrence starting at `start`, derived from the original from/to."""
    attrs = spec.recurrence_attributes or {}

    if spec.recurrence == "weekly":
        if iso_weekdays(attrs.get("weekdays")):
            end = set_time_of(start, original_to)
            if is_midnight(original_to) or end < start:
                end = end_of_day(start)
        else:
            end = set_time_of(set_iso_weekday(start, original_to.isoweekday()), original_to)
            if end < start:
                end = end + relativedelta(weeks=1)
    else:
        end = _day_end_clamp(start, original_from, original_to)

    if spec.reference_line and end == start:
        end = add_to_date(end, "minute", 1)
    return end


def _expand_daily(date, end, count, interval, sink) -> int:
    n = 0
    steps = 0
    while (end is None or date <= end) and n < count and steps < MAX_STEPS:
        sink(date, None)
        n += 1
        steps += 1
        date = date + relativedelta(days=interval)
    return n


def _first_weekly_date(original_from: dt.datetime, weekdays: List[int]) -> dt.datetime:
    week = original_from
    while True:
        for wd in weekdays:
            candidate = set_iso_weekday(week, wd)
            if candidate >= original_from:
                return candidate
        # None left this week: next Monday, same time of day.
        week = set_iso_weekday(week + relativedelta(weeks=1), 1)


def _expand_weekly(original_from, end, count, interval, weekdays, sink) -> int:
    n = 0
    steps = 0
    if not weekdays:
        date = original_from
        while (end is None or date <= end) and n < count and steps < MAX_STEPS:
            sink(date, None)
            n += 1
            steps += 1
            date = original_from + relativedelta(weeks=interval * n)
        return n

    date = _first_weekly_date(original_from, weekdays)
    idx = weekdays.index(date.isoweekday())
    while (end is None or date <= end) and n < count and steps < MAX_STEPS:
        sink(date, None)
        n += 1
        steps += 1
        idx += 1
        if idx < len(weekdays):
            date = set_iso_weekday(date, weekdays[idx])
        else:
            idx = 0
            date = set_iso_weekday(date + relativedelta(weeks=interval), weekdays[0])
    return n


def _nth_weekday_of_month(month_start: dt.datetime, iso_weekday: int, nth: int) -> dt.datetime:
    first = set_iso_weekday(month_start, iso_weekday)
    if first < month_start:
        first = first + relativedelta(weeks=1)
    # No clamp: a missing fifth weekday spills into the following month.
    return first + relativedelta(weeks=nth - 1)


def _expand_monthly_same_week(original_from, original_to, end, count, interval, sink) -> int:
    month_start = original_from.replace(day=1)
    nth = 1
    probe = _nth_weekday_of_month(month_start, original_from.isoweekday(), 1)
    while probe < original_from:
        probe = probe + relativedelta(weeks=1)
        nth += 1

    days_duration = (start_of_day(original_to) - start_of_day(original_from)).days
    if original_to < original_from:
        days_duration = 0

    n = 0
    steps = 0
    date = original_from
    occurrence_to = original_to
    while (end is None or date <= end) and n < count and steps < MAX_STEPS:
        sink(date, occurrence_to)
        n += 1
        steps += 1
        next_month = (original_from + relativedelta(months=interval * n)).replace(day=1)
        date = _nth_weekday_of_month(next_month, original_from.isoweekday(), nth)
        occurrence_to = set_time_of(date + relativedelta(days=days_duration), original_to)
    return n


def _expand_by_anchor(original_from, end, count, step: relativedelta, sink) -> int:
    # Always computed from the anchor so a clamped day (31st -> 30th) does not drift.
    n = 0
    date = original_from
    while (end is None or date <= end) and n < count and n < MAX_STEPS:
        sink(date, None)
        n += 1
        date = original_from + step * n
    return n


def expand_recurrence(
    spec: EventSpec,
    add_occurrence: OccurrenceSink,
    original_from: dt.datetime,
    original_to: dt.datetime,
) -> int:
    """Feed every recurrence start of `spec` to `add_occurrence`; return how many."""
    end = recurrence_end(spec)
    count = spec.recurrence_count
    if end is None and math.isinf(count):
        return 0

    attrs = spec.recurrence_attributes or {}
    interval = _interval(attrs)

    if spec.recurrence == "daily":
        return _expand_daily(original_from, end, count, interval, add_occurrence)
    if spec.recurrence == "weekly":
        return _expand_weekly(original_from, end, count, interval, iso_weekdays(attrs.get("weekdays")), add_occurrence)
    if spec.recurrence == "monthly":
        if attrs.get("sameDaySameWeek") or attrs.get("same_day_same_week"):
            return _expand_monthly_same_week(original_from, original_to, end, count, interval, add_occurrence)
        return _expand_by_anchor(original_from, end, count, relativedelta(months=interval), add_occurrence)
    if spec.recurrence == "yearly":
        return _expand_by_anchor(original_from, end, count, relativedelta(years=interval), add_occurrence)
    return 0
