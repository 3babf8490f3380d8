"""chronogrid.api

Stable *library* entrypoint for chronogrid.

Policy:
  - Only names listed in __all__ are considered public API.
  - Everything else is internal and may change without notice.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from chronogrid.availability import (
    disabled_weekday_labels,
    is_allowed,
    next_allowed_day,
    next_allowed_month,
    next_allowed_time,
    previous_allowed_day,
    previous_allowed_month,
    previous_allowed_time,
)
from chronogrid.crud import EventCrudController, GridResolver
from chronogrid.defaults import ConfigError, SchedulerDefaults, defaults_from_cfg
from chronogrid.layout import SchedulerRow, build_rows, compute_levels
from chronogrid.model import (
    Cell,
    EventSpec,
    Notification,
    Occurrence,
    OccurrenceOverride,
    OccurrenceSet,
    Selection,
    SmallestHeader,
)
from chronogrid.occurrences import OccurrenceGenerator, remove_occurrence
from chronogrid.payload import build_payload, dumps_payload, loads_payload, occurrence_to_dict, payload_from_controller
from chronogrid.recurrence import compute_occurrence_end, expand_recurrence


def expand_event(
    props: Dict[str, Any],
    defaults: Optional[SchedulerDefaults] = None,
    selected_resources: Iterable[str] = (),
) -> OccurrenceSet:
    """One-shot: build an EventSpec from `props` and expand it."""
    d = defaults or SchedulerDefaults()
    spec = EventSpec.from_props(props, d)
    return OccurrenceGenerator(d).init_occurrences(spec, selected_resources)


def expand_events(
    events: Iterable[Dict[str, Any]],
    defaults: Optional[SchedulerDefaults] = None,
) -> List[Occurrence]:
    out: List[Occurrence] = []
    for props in events:
        if isinstance(props, dict):
            out.extend(expand_event(props, defaults).occurrences)
    return out


__all__ = [
    "Cell",
    "ConfigError",
    "EventCrudController",
    "EventSpec",
    "GridResolver",
    "Notification",
    "Occurrence",
    "OccurrenceGenerator",
    "OccurrenceOverride",
    "OccurrenceSet",
    "SchedulerDefaults",
    "SchedulerRow",
    "Selection",
    "SmallestHeader",
    "build_payload",
    "build_rows",
    "compute_levels",
    "compute_occurrence_end",
    "defaults_from_cfg",
    "disabled_weekday_labels",
    "dumps_payload",
    "expand_event",
    "expand_events",
    "expand_recurrence",
    "is_allowed",
    "loads_payload",
    "next_allowed_day",
    "next_allowed_month",
    "next_allowed_time",
    "occurrence_to_dict",
    "payload_from_controller",
    "previous_allowed_day",
    "previous_allowed_month",
    "previous_allowed_time",
    "remove_occurrence",
]
