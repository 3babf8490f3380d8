# chronogrid/model.py
from __future__ import annotations

import datetime as dt
import math
import uuid as uuid_mod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .defaults import (
    DEFAULT_EVENTS_LABELS,
    RECURRENCES,
    SchedulerDefaults,
    UNITS,
    normalize_count,
    normalize_months,
    normalize_time_frames,
    normalize_weekdays,
)
from .util.console import obs_warn
from .util.dates import date_from
from .util.tz import normalize_tz_name, resolve_tz


@dataclass(frozen=True)
class SmallestHeader:
    unit: str = "day"
    span: int = 1

    @classmethod
    def coerce(cls, raw: Any) -> Optional["SmallestHeader"]:
        if isinstance(raw, SmallestHeader):
            return raw
        if not isinstance(raw, dict):
            return None
        unit = str(raw.get("unit") or "").strip().lower()
        if unit.endswith("s"):
            unit = unit[:-1]
        if unit not in UNITS:
            return None
        span = raw.get("span", 1)
        if isinstance(span, bool) or not isinstance(span, int) or span < 1:
            span = 1
        return cls(unit=unit, span=span)


@dataclass(frozen=True)
class Occurrence:
    key: str
    event_name: str
    start: dt.datetime
    end: dt.datetime
    resource_name: Optional[str]
    resource_names: Tuple[str, ...]
    title: Optional[str] = None
    reference_line: bool = False
    # Draft fields of a one-instance edit that have no column of their own.
    extra: Dict[str, Any] = field(default_factory=dict, hash=False)

    # Layout only.
    offset_top: int = 0
    level: int = 0

    @property
    def row_key(self) -> Optional[str]:
        return self.resource_name


@dataclass(frozen=True)
class OccurrenceSet:
    """Result of expanding one event.

    ok=False means a precondition was missing and `reason` names it; an empty
    but valid expansion is ok=True with no occurrences.
    """

    occurrences: Tuple[Occurrence, ...] = ()
    ok: bool = True
    reason: Optional[str] = None


@dataclass(frozen=True)
class OccurrenceOverride:
    """One-instance edit of a recurring event, keyed by the generated occurrence key.

    clone_of marks an extra per-resource copy added by the edit: `key` is then
    the new key and `clone_of` the generated occurrence it was copied from.
    """

    key: str
    removed: bool = False
    start: Optional[dt.datetime] = None
    end: Optional[dt.datetime] = None
    title: Optional[str] = None
    resource_name: Optional[str] = None
    resource_names: Optional[Tuple[str, ...]] = None
    clone_of: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class Cell:
    """A grid cell; start/end are epoch milliseconds."""

    start: int
    end: int


@dataclass(frozen=True)
class Notification:
    name: str  # "eventcreate" | "eventchange" | "eventdelete"
    detail: Dict[str, Any]


@dataclass
class Selection:
    event: "EventSpec"
    occurrence: Optional[Occurrence] = None
    occurrences: List[Occurrence] = field(default_factory=list)
    draft_values: Dict[str, Any] = field(default_factory=dict)
    new_event: bool = False
    state: str = "selecting"  # selecting | editing | dragging | resizing
    original_values: Dict[str, Any] = field(default_factory=dict)
    x: Optional[float] = None
    y: Optional[float] = None
    is_moving: bool = False


_NOTHING = object()

_ALIASES: Dict[str, str] = {
    "name": "name",
    "from": "start",
    "start": "start",
    "to": "end",
    "end": "end",
    "allDay": "all_day",
    "all_day": "all_day",
    "resourceNames": "resource_names",
    "resource_names": "resource_names",
    "keyFields": "resource_names",
    "recurrence": "recurrence",
    "recurrenceAttributes": "recurrence_attributes",
    "recurrence_attributes": "recurrence_attributes",
    "recurrenceCount": "recurrence_count",
    "recurrence_count": "recurrence_count",
    "recurrenceEndDate": "recurrence_end_date",
    "recurrence_end_date": "recurrence_end_date",
    "availableMonths": "available_months",
    "available_months": "available_months",
    "availableDaysOfTheWeek": "available_days_of_the_week",
    "available_days_of_the_week": "available_days_of_the_week",
    "availableTimeFrames": "available_time_frames",
    "available_time_frames": "available_time_frames",
    "disabled": "disabled",
    "referenceLine": "reference_line",
    "reference_line": "reference_line",
    "schedulerStart": "scheduler_start",
    "scheduler_start": "scheduler_start",
    "schedulerEnd": "scheduler_end",
    "scheduler_end": "scheduler_end",
    "smallestHeader": "smallest_header",
    "smallest_header": "smallest_header",
    "timezone": "timezone",
    "theme": "theme",
    "color": "color",
    "title": "title",
    "iconName": "icon_name",
    "icon_name": "icon_name",
    "labels": "labels",
    "data": "data",
}

# Changing any of these invalidates the generated occurrences.
RECOMPUTE_FIELDS = frozenset(
    {
        "name",
        "start",
        "end",
        "all_day",
        "resource_names",
        "recurrence",
        "recurrence_attributes",
        "recurrence_count",
        "recurrence_end_date",
        "available_months",
        "available_days_of_the_week",
        "available_time_frames",
        "reference_line",
        "scheduler_start",
        "scheduler_end",
        "smallest_header",
        "timezone",
        "title",
    }
)


def canonical_props(props: Dict[str, Any]) -> Dict[str, Any]:
    """Map camelCase/snake_case input keys onto EventSpec attribute names."""
    out: Dict[str, Any] = {}
    for k, v in (props or {}).items():
        attr = _ALIASES.get(k)
        if attr is not None:
            out[attr] = v
    return out


def _str_or_none(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v)
    return s if s else None


def _names(v: Any) -> List[str]:
    if isinstance(v, str):
        return [v] if v else []
    if not isinstance(v, (list, tuple)):
        return []
    out: List[str] = []
    for x in v:
        if isinstance(x, str) and x and x not in out:
            out.append(x)
    return out


@dataclass
class EventSpec:
    """Declarative event definition.

    Build with from_props() and change with update(); both normalise every
    supplied field before anything is recomputed. Occurrences are owned by the
    generator and replaced wholesale.
    """

    name: str = "new-event"
    start: Optional[dt.datetime] = None
    end: Optional[dt.datetime] = None
    all_day: bool = False
    resource_names: List[str] = field(default_factory=list)
    recurrence: Optional[str] = None
    recurrence_attributes: Optional[Dict[str, Any]] = None
    recurrence_count: float = math.inf
    recurrence_end_date: Optional[dt.datetime] = None
    available_months: Tuple[int, ...] = ()
    available_days_of_the_week: Tuple[int, ...] = ()
    available_time_frames: Tuple[str, ...] = ()
    disabled: bool = False
    reference_line: bool = False
    scheduler_start: Optional[dt.datetime] = None
    scheduler_end: Optional[dt.datetime] = None
    smallest_header: Optional[SmallestHeader] = None
    timezone: str = "UTC"
    theme: Optional[str] = None
    color: Optional[str] = None
    title: Optional[str] = None
    icon_name: Optional[str] = None
    labels: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_EVENTS_LABELS))
    data: Dict[str, Any] = field(default_factory=dict)

    key: str = field(default_factory=lambda: uuid_mod.uuid4().hex)
    occurrence_overrides: Dict[str, OccurrenceOverride] = field(default_factory=dict)
    occurrences: List[Occurrence] = field(default_factory=list)
    result: Optional[OccurrenceSet] = None
    defaults: SchedulerDefaults = field(default_factory=SchedulerDefaults, repr=False, compare=False)

    @classmethod
    def from_props(cls, props: Dict[str, Any], defaults: Optional[SchedulerDefaults] = None) -> "EventSpec":
        spec = cls(defaults=defaults or SchedulerDefaults())
        spec.timezone = spec.defaults.tz
        canon = canonical_props(props)
        canon.setdefault("name", None)
        for attr in ("available_months", "available_days_of_the_week", "available_time_frames", "recurrence_count"):
            canon.setdefault(attr, None)
        spec._assign(canon)
        return spec

    @property
    def tzinfo(self) -> dt.tzinfo:
        return resolve_tz(self.timezone)

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    def update(self, props: Dict[str, Any]) -> List[str]:
        """Normalise and apply `props`; return the attributes that changed."""
        return self._assign(canonical_props(props))

    def needs_recompute(self, changed: List[str]) -> bool:
        return any(c in RECOMPUTE_FIELDS for c in changed)

    def _assign(self, canon: Dict[str, Any]) -> List[str]:
        # Timezone first: every date below is read in it.
        if "timezone" in canon:
            name = normalize_tz_name(canon.pop("timezone"))
            try:
                resolve_tz(name)
            except ValueError as ex:
                obs_warn("model", f"event {self.name!r}: {ex}; using UTC")
                name = "UTC"
            canon = {"timezone": name, **canon}

        changed: List[str] = []
        # Flags before name: the default name depends on them.
        order = sorted(canon, key=lambda a: (a != "timezone", a == "name"))
        for attr in order:
            value = self._normalize(attr, canon[attr])
            if value is _NOTHING:
                continue
            if getattr(self, attr) != value:
                setattr(self, attr, value)
                changed.append(attr)
        return changed

    def _normalize(self, attr: str, raw: Any) -> Any:
        tz = self.tzinfo
        d = self.defaults

        if attr == "timezone":
            return raw
        if attr == "name":
            return _str_or_none(raw) or ("new-event" if not (self.reference_line or self.disabled) else "disabled")
        if attr in ("start", "end", "recurrence_end_date", "scheduler_start", "scheduler_end"):
            parsed = date_from(raw, tz)
            if raw not in (None, "") and parsed is None:
                obs_warn("model", f"event {self.name!r}: invalid {attr} value={raw!r}")
            return parsed
        if attr in ("all_day", "disabled", "reference_line"):
            return bool(raw)
        if attr == "resource_names":
            return _names(raw)
        if attr == "recurrence":
            if isinstance(raw, dict):
                raw = raw.get("name")
            return raw if raw in RECURRENCES else None
        if attr == "recurrence_attributes":
            return dict(raw) if isinstance(raw, dict) else None
        if attr == "recurrence_count":
            count = normalize_count(raw)
            return count if count is not None else d.recurrence_count
        if attr == "available_months":
            return normalize_months(raw) or d.available_months
        if attr == "available_days_of_the_week":
            return normalize_weekdays(raw) or d.available_days_of_the_week
        if attr == "available_time_frames":
            return normalize_time_frames(raw) or d.available_time_frames
        if attr == "smallest_header":
            return SmallestHeader.coerce(raw)
        if attr in ("labels", "data"):
            if isinstance(raw, dict):
                return dict(raw)
            return dict(DEFAULT_EVENTS_LABELS) if attr == "labels" else {}
        if attr in ("theme", "color", "title", "icon_name"):
            return _str_or_none(raw)
        return _NOTHING


OccurrenceSink = Callable[[dt.datetime, Optional[dt.datetime]], None]
