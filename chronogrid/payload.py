# chronogrid/payload.py
"""Render payload: the JSON a front end needs to draw the current grid."""
from __future__ import annotations

import datetime as dt
import math
from typing import Any, Dict, Iterable, List, Optional

import orjson

from .defaults import SchedulerDefaults
from .layout import SchedulerRow
from .model import EventSpec, Notification, Occurrence
from .util.dates import to_ms, to_utc_iso

SCHEMA_VERSION = 1


def occurrence_to_dict(occ: Occurrence) -> Dict[str, Any]:
    return {
        "key": occ.key,
        "eventName": occ.event_name,
        "from": to_utc_iso(occ.start),
        "to": to_utc_iso(occ.end),
        "resourceName": occ.resource_name,
        "resourceNames": list(occ.resource_names),
        "title": occ.title,
        "referenceLine": occ.reference_line,
        "offsetTop": occ.offset_top,
        "level": occ.level,
        "extra": dict(occ.extra),
    }


def event_to_dict(event: EventSpec) -> Dict[str, Any]:
    count = event.recurrence_count
    return {
        "name": event.name,
        "title": event.title,
        "from": to_utc_iso(event.start),
        "to": to_utc_iso(event.end),
        "allDay": event.all_day,
        "resourceNames": list(event.resource_names),
        "recurrence": event.recurrence,
        "recurrenceAttributes": event.recurrence_attributes,
        "recurrenceCount": None if math.isinf(count) else int(count),
        "recurrenceEndDate": to_utc_iso(event.recurrence_end_date),
        "referenceLine": event.reference_line,
        "disabled": event.disabled,
        "theme": event.theme,
        "color": event.color,
        "iconName": event.icon_name,
        "labels": event.labels,
        "ok": event.result.ok if event.result is not None else None,
        "reason": event.result.reason if event.result is not None else None,
        "occurrences": [occurrence_to_dict(o) for o in event.occurrences],
    }


def row_to_dict(row: SchedulerRow) -> Dict[str, Any]:
    return {
        "key": row.key,
        "height": row.height,
        "cells": [
            {"start": c.start, "end": c.end, "events": [o.key for o in c.events]}
            for c in row.cells
        ],
    }


def notification_to_dict(note: Notification) -> Dict[str, Any]:
    return {"name": note.name, "detail": note.detail}


def cfg_to_dict(defaults: SchedulerDefaults) -> Dict[str, Any]:
    count = defaults.recurrence_count
    return {
        "tz": defaults.tz,
        "available_months": list(defaults.available_months),
        "available_days_of_the_week": list(defaults.available_days_of_the_week),
        "available_time_frames": list(defaults.available_time_frames),
        "recurrence_count": None if math.isinf(count) else int(count),
        "new_event_title": defaults.new_event_title,
        "events_theme": defaults.events_theme,
        "recurrent_edit_modes": list(defaults.recurrent_edit_modes),
    }


def build_payload(
    defaults: SchedulerDefaults,
    events: Iterable[EventSpec],
    rows: Iterable[SchedulerRow] = (),
    *,
    window_start: Optional[dt.datetime] = None,
    window_end: Optional[dt.datetime] = None,
    notifications: Iterable[Notification] = (),
    now: Optional[dt.datetime] = None,
) -> Dict[str, Any]:
    generated = now or dt.datetime.now(dt.timezone.utc)
    ev: List[Dict[str, Any]] = [event_to_dict(e) for e in events]
    return {
        "schema_version": SCHEMA_VERSION,
        "meta": {
            "generated_at": to_utc_iso(generated),
            "window_start_ms": to_ms(window_start) if window_start is not None else None,
            "window_end_ms": to_ms(window_end) if window_end is not None else None,
            "occurrence_count": sum(len(e["occurrences"]) for e in ev),
        },
        "cfg": cfg_to_dict(defaults),
        "events": ev,
        "rows": [row_to_dict(r) for r in rows],
        "notifications": [notification_to_dict(n) for n in notifications],
    }


def payload_from_controller(ctrl: Any, now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    return build_payload(
        ctrl.defaults,
        ctrl.events,
        ctrl.rows,
        window_start=ctrl.visible_start,
        window_end=ctrl.visible_end,
        notifications=ctrl.notifications,
        now=now,
    )


def dumps_payload(payload: Dict[str, Any], *, indent: bool = False) -> str:
    opts = orjson.OPT_SORT_KEYS
    if indent:
        opts |= orjson.OPT_INDENT_2
    return orjson.dumps(payload, option=opts).decode("utf-8")


def loads_payload(text: str) -> Dict[str, Any]:
    obj = orjson.loads(text)
    if not isinstance(obj, dict):
        raise ValueError(f"payload must be a JSON object; got {type(obj).__name__}")
    return obj
