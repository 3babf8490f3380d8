# chronogrid/occurrences.py
from __future__ import annotations

import datetime as dt
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence

from .availability import is_allowed
from .defaults import SchedulerDefaults
from .model import EventSpec, Occurrence, OccurrenceOverride, OccurrenceSet
from .recurrence import compute_occurrence_end, expand_recurrence
from .util.console import obs_warn
from .util.dates import end_of_day, start_of_day, to_ms


def computed_from(spec: EventSpec) -> Optional[dt.datetime]:
    if spec.start is None:
        return None
    start = start_of_day(spec.start) if spec.all_day else spec.start
    if not spec.is_recurring and spec.scheduler_start is not None and start < spec.scheduler_start:
        start = spec.scheduler_start
    return start


def computed_to(spec: EventSpec) -> Optional[dt.datetime]:
    if spec.start is None:
        return None
    if spec.end is None:
        end = end_of_day(spec.start)
    elif spec.all_day:
        end = end_of_day(spec.end)
    else:
        end = spec.end
    if end < spec.start:
        end = end_of_day(spec.start)
    if not spec.is_recurring and spec.scheduler_end is not None and end > spec.scheduler_end:
        end = spec.scheduler_end
    return end


def apply_occurrence_overrides(
    occurrences: Sequence[Occurrence],
    overrides: Dict[str, OccurrenceOverride],
) -> List[Occurrence]:
    """Re-apply one-instance edits to freshly generated occurrences.

    Overrides whose generated occurrence no longer exists are ignored. A clone
    copies its source occurrence, even when the source itself was removed.
    """
    if not overrides:
        return list(occurrences)

    out: List[Occurrence] = []
    generated = {occ.key: occ for occ in occurrences}
    by_key: Dict[str, Occurrence] = {}
    for occ in occurrences:
        ov = overrides.get(occ.key)
        if ov is not None and ov.clone_of is None:
            if ov.removed:
                continue
            occ = _overridden(occ, ov)
        by_key[occ.key] = occ
        out.append(occ)

    for ov in overrides.values():
        if ov.clone_of is None or ov.removed:
            continue
        source = by_key.get(ov.clone_of) or generated.get(ov.clone_of)
        if source is None:
            continue
        if any(o.key == ov.key for o in out):
            continue
        out.append(_overridden(replace(source, key=ov.key), ov))
    return out


def _overridden(occ: Occurrence, ov: OccurrenceOverride) -> Occurrence:
    start = ov.start if ov.start is not None else occ.start
    end = ov.end if ov.end is not None else occ.end
    if end < start:
        end = start
    return replace(
        occ,
        start=start,
        end=end,
        title=ov.title if ov.title is not None else occ.title,
        resource_name=ov.resource_name if ov.resource_name is not None else occ.resource_name,
        resource_names=ov.resource_names if ov.resource_names is not None else occ.resource_names,
        extra={**occ.extra, **ov.extra},
    )


class OccurrenceGenerator:
    """Expands an EventSpec into the occurrences visible in its window."""

    def __init__(self, defaults: Optional[SchedulerDefaults] = None) -> None:
        self.defaults = defaults or SchedulerDefaults()

    def init_occurrences(self, spec: EventSpec, selected_resources: Iterable[str] = ()) -> OccurrenceSet:
        """Compute the occurrences of `spec` without touching it."""
        selected = tuple(selected_resources or ())
        start = computed_from(spec)
        end = computed_to(spec)

        if spec.start is None or start is None:
            return OccurrenceSet(ok=False, reason="missing_start")
        if spec.smallest_header is None:
            return OccurrenceSet(ok=False, reason="missing_smallest_header")
        ss, se = spec.scheduler_start, spec.scheduler_end
        if ss is not None and se is not None and se < ss:
            obs_warn("occurrences", f"event {spec.name!r}: window ends before it starts")
            return OccurrenceSet(ok=False, reason="invalid_window")

        out: List[Occurrence] = []

        def add(occ_from: dt.datetime, occ_to: Optional[dt.datetime] = None) -> None:
            out.extend(self.add_occurrence(spec, occ_from, occ_to, original_from=start, original_to=end, index=len(out)))

        if spec.is_recurring:
            expand_recurrence(spec, add, start, end)
        else:
            add(start, end)

        # Overrides and clones may target hidden resources; filter only once they are applied.
        edited = apply_occurrence_overrides(out, spec.occurrence_overrides)
        return OccurrenceSet(
            occurrences=tuple(o for o in edited if o.reference_line or not selected or o.resource_name in selected)
        )

    def refresh(self, spec: EventSpec, selected_resources: Iterable[str] = ()) -> OccurrenceSet:
        """Recompute and swap `spec.occurrences` for a new list."""
        result = self.init_occurrences(spec, selected_resources)
        spec.result = result
        spec.occurrences = list(result.occurrences)
        return result

    def add_occurrence(
        self,
        spec: EventSpec,
        occ_from: dt.datetime,
        occ_to: Optional[dt.datetime],
        *,
        original_from: dt.datetime,
        original_to: dt.datetime,
        index: int = 0,
    ) -> List[Occurrence]:
        """Occurrences for one candidate interval (empty when it is filtered out)."""
        if occ_to is None:
            occ_to = compute_occurrence_end(spec, occ_from, original_from, original_to)

        if occ_from > occ_to:
            return []

        ss = spec.scheduler_start
        se = spec.scheduler_end
        if ss is not None and occ_from < ss and occ_to < ss:
            return []
        if se is not None and occ_from > se and occ_to > se:
            return []

        header = spec.smallest_header
        if not is_allowed(
            occ_from,
            occ_to,
            spec.available_months or self.defaults.available_months,
            spec.available_days_of_the_week or self.defaults.available_days_of_the_week,
            spec.available_time_frames or self.defaults.available_time_frames,
            header.unit if header else "day",
            header.span if header else 1,
        ):
            return []

        if spec.reference_line:
            return [
                Occurrence(
                    key=f"{spec.title}-{index}",
                    event_name=spec.name,
                    start=occ_from,
                    end=occ_to,
                    resource_name=None,
                    resource_names=(),
                    title=spec.title,
                    reference_line=True,
                )
            ]

        names = tuple(spec.resource_names)
        return [
            Occurrence(
                key=f"{spec.name}-{name}-{to_ms(occ_from)}",
                event_name=spec.name,
                start=occ_from,
                end=occ_to,
                resource_name=name,
                resource_names=names,
                title=spec.title,
            )
            for name in names
        ]


def remove_occurrence(spec: EventSpec, key: str) -> List[Occurrence]:
    """`spec`'s occurrences without `key`, as a new list."""
    return [o for o in spec.occurrences if o.key != key]
