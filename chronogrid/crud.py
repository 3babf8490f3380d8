# chronogrid/crud.py
"""Event-CRUD controller.

Owns the event collection, the resource rows and the current selection, and
turns user intents (create, edit, drag, resize, delete) into EventSpec updates
plus host notifications. Pixel lookups are delegated to a GridResolver; this
module only ever sees row keys and cells.

Collections are never mutated in place: every operation builds a new list and
swaps it in, so a host holding the previous list keeps a consistent snapshot.
"""
from __future__ import annotations

import copy
import datetime as dt
import re
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence

from .defaults import DEFAULT_EVENTS_LABELS, SchedulerDefaults
from .layout import SchedulerRow, build_rows
from .model import Cell, EventSpec, Notification, Occurrence, OccurrenceOverride, Selection, SmallestHeader
from .occurrences import OccurrenceGenerator
from .util.console import obs_warn
from .util.dates import date_from, from_ms, start_of_day, to_utc_iso
from .util.tz import resolve_tz

EVENT_CREATE = "eventcreate"
EVENT_CHANGE = "eventchange"
EVENT_DELETE = "eventdelete"

Listener = Callable[[Notification], None]

# Draft keys a one-instance edit maps onto occurrence columns; anything else is carried in `extra`.
_OCCURRENCE_KEYS = frozenset({"name", "from", "to", "allDay", "title", "resourceNames", "keyFields"})


class GridResolver(Protocol):
    def row_at(self, y: float) -> Optional[str]:
        """Row key under the vertical position `y`."""

    def cell_at(self, row_key: Optional[str], x: float) -> Optional[Cell]:
        """Cell of `row_key` under the horizontal position `x`."""


def _has_value(key: str, value: Any) -> bool:
    # Draft values are only merged when non-empty; allDay always counts.
    if key == "allDay":
        return True
    if isinstance(value, (str, list, tuple)):
        return len(value) > 0
    return False


def _slug(title: str) -> str:
    return re.sub(r"\s", "-", (title or "").lower())


class EventCrudController:
    def __init__(
        self,
        defaults: Optional[SchedulerDefaults] = None,
        resources: Sequence[str] = (),
        columns: Sequence[Cell] = (),
        *,
        selected_resources: Optional[Sequence[str]] = None,
        smallest_header: Any = None,
        events_labels: Optional[Dict[str, Any]] = None,
        resolver: Optional[GridResolver] = None,
        focus: Optional[Callable[[str], None]] = None,
        level_height: int = 0,
    ) -> None:
        self.defaults = defaults or SchedulerDefaults()
        self.generator = OccurrenceGenerator(self.defaults)
        self.resources: List[str] = [str(r) for r in resources]
        self.selected_resources: List[str] = (
            [str(r) for r in selected_resources] if selected_resources is not None else list(self.resources)
        )
        self.columns: List[Cell] = list(columns)
        self.smallest_header = SmallestHeader.coerce(smallest_header) or SmallestHeader()
        self.events_labels = dict(events_labels) if isinstance(events_labels, dict) else dict(DEFAULT_EVENTS_LABELS)
        self.resolver = resolver
        self.level_height = int(level_height)
        self._focus = focus

        self.events: List[EventSpec] = []
        self.rows: List[SchedulerRow] = []
        self.selection: Optional[Selection] = None
        self.resize_side: Optional[str] = None
        self.notifications: List[Notification] = []
        self._listeners: Dict[str, List[Listener]] = {}

    # --- window ---------------------------------------------------------------

    @property
    def tz(self) -> dt.tzinfo:
        return resolve_tz(self.defaults.tz)

    @property
    def visible_start(self) -> Optional[dt.datetime]:
        return from_ms(self.columns[0].start, self.tz) if self.columns else None

    @property
    def visible_end(self) -> Optional[dt.datetime]:
        return from_ms(self.columns[-1].end, self.tz) if self.columns else None

    @property
    def only_occurrence_edit_allowed(self) -> bool:
        modes = self.defaults.recurrent_edit_modes
        return len(modes) == 1 and modes[0] == "one"

    def set_columns(self, columns: Sequence[Cell], smallest_header: Any = None) -> None:
        """Move the visible window and recompute every event against it."""
        self.columns = list(columns)
        if smallest_header is not None:
            self.smallest_header = SmallestHeader.coerce(smallest_header) or self.smallest_header

        events: List[EventSpec] = []
        for event in self.events:
            event.update(
                {
                    "schedulerStart": self.visible_start,
                    "schedulerEnd": self.visible_end,
                    "smallestHeader": self.smallest_header,
                }
            )
            self.generator.refresh(event, self.selected_resources)
            events.append(event)
        self._swap(events)

    # --- notifications --------------------------------------------------------

    def subscribe(self, name: str, listener: Listener) -> None:
        self._listeners.setdefault(name, []).append(listener)

    def dispatch(self, name: str, detail: Dict[str, Any]) -> Notification:
        note = Notification(name=name, detail=detail)
        self.notifications = [*self.notifications, note]
        for listener in self._listeners.get(name, []):
            listener(note)
        return note

    # --- collection -----------------------------------------------------------

    def _swap(self, events: Iterable[EventSpec]) -> None:
        self.events = list(events)
        self.rows = build_rows(self.selected_resources, self.columns, self.events, level_height=self.level_height)

    def _event_props(self, props: Dict[str, Any]) -> Dict[str, Any]:
        p = dict(props or {})
        p["schedulerStart"] = self.visible_start
        p["schedulerEnd"] = self.visible_end
        p["smallestHeader"] = self.smallest_header
        p["timezone"] = self.defaults.tz
        # The raw input is kept as `data` for custom label fields.
        data = copy.deepcopy(dict(props or {}))
        p["data"] = data
        p["theme"] = "disabled" if p.get("disabled") else (data.get("theme") or self.defaults.events_theme)
        p["labels"] = data.get("labels") if isinstance(data.get("labels"), dict) else self.events_labels
        return p

    def _build(self, props: Dict[str, Any]) -> EventSpec:
        event = EventSpec.from_props(self._event_props(props), self.defaults)
        self.generator.refresh(event, self.selected_resources)
        return event

    def belongs_to_selected_resources(self, event: EventSpec) -> bool:
        if event.reference_line:
            return True
        return any(name in self.selected_resources for name in event.resource_names)

    def init_events(self, events_props: Iterable[Dict[str, Any]]) -> List[EventSpec]:
        """Replace the collection with the given events, keeping those with visible occurrences."""
        if not self.columns:
            self._swap([])
            return self.events

        out: List[EventSpec] = []
        for props in events_props:
            if not isinstance(props, dict):
                continue
            event = self._build(props)
            if not self.belongs_to_selected_resources(event):
                continue
            if event.occurrences:
                out.append(event)
        self._swap(out)
        return self.events

    def get_event(self, name: str) -> Optional[EventSpec]:
        for event in self.events:
            if event.name == name:
                return event
        return None

    def create_event(self, props: Dict[str, Any]) -> EventSpec:
        event = self._build(props)
        self._swap([*self.events, event])
        return event

    def delete_event(self, name: Optional[str] = None) -> Optional[str]:
        if name is None:
            if self.selection is None:
                return None
            name = self.selection.event.name

        events = list(self.events)
        for i, event in enumerate(events):
            if event.name == name:
                del events[i]
                break
        else:
            obs_warn("crud", f"delete_event: no event named {name!r}")
            return None

        self._swap(events)
        self.clean_selection()
        self.dispatch(EVENT_DELETE, {"name": name})
        return name

    def focus_event(self, name: str) -> bool:
        if self._focus is None:
            return False
        self._focus(name)
        return True

    # --- cells ----------------------------------------------------------------

    def clamp_cell(self, cell: Optional[Cell]) -> Optional[Cell]:
        """Snap a cell outside the visible columns to the nearest edge column."""
        if not self.columns:
            return cell
        if cell is None:
            return self.columns[-1]
        if cell.start < self.columns[0].start:
            return self.columns[0]
        if cell.start > self.columns[-1].start:
            return self.columns[-1]
        return cell

    def _resolve(self, x: Optional[float], y: Optional[float]):
        row_key = None
        cell = None
        if self.resolver is not None and y is not None:
            row_key = self.resolver.row_at(y)
        if row_key is None and self.selected_resources:
            row_key = self.selected_resources[0]
        if self.resolver is not None and x is not None:
            cell = self.resolver.cell_at(row_key, x)
        if cell is None and self.columns:
            cell = self.columns[0]
        return row_key, self.clamp_cell(cell)

    # --- selection ------------------------------------------------------------

    def new_event(
        self,
        x: Optional[float] = None,
        y: Optional[float] = None,
        show_dialog: bool = True,
        *,
        resource_names: Optional[Sequence[str]] = None,
        start: Any = None,
        end: Any = None,
    ) -> Optional[Selection]:
        """Start creating an event at a grid position.

        With show_dialog the provisional event joins the collection at once and
        the selection is in "editing"; otherwise it waits for a drag to size it.
        """
        if start is None:
            row_key, cell = self._resolve(x, y)
            if cell is None:
                return None
            start = cell.start
            end = cell.end + 1
            if resource_names is None:
                resource_names = [row_key] if row_key else []

        event = self._build(
            {
                "resourceNames": list(resource_names or []),
                "title": self.defaults.new_event_title,
                "from": start,
                "to": end,
            }
        )
        self.selection = Selection(
            event=event,
            occurrence=event.occurrences[0] if event.occurrences else None,
            occurrences=list(event.occurrences),
            new_event=True,
            state="editing" if show_dialog else "selecting",
            x=x,
            y=y,
        )
        if show_dialog:
            self._swap([*self.events, event])
        return self.selection

    def select_event(
        self,
        event_name: str,
        start: Any,
        key: Optional[str] = None,
        x: Optional[float] = None,
        y: Optional[float] = None,
    ) -> Optional[Selection]:
        event = self.get_event(event_name)
        if event is None:
            return None
        when = date_from(start, self.tz)
        occurrences = [o for o in event.occurrences if o.start == when or start_of_day(o.start) == when]
        occurrence = next((o for o in occurrences if o.key == key), occurrences[0] if occurrences else None)
        if occurrence is None:
            return None

        self.selection = Selection(
            event=event,
            occurrence=occurrence,
            occurrences=occurrences,
            original_values={
                "from": occurrence.start,
                "to": occurrence.end,
                "title": occurrence.title,
                "resourceName": occurrence.resource_name,
                "resourceNames": occurrence.resource_names,
            },
            x=x,
            y=y,
        )
        return self.selection

    def update_draft(self, values: Dict[str, Any]) -> None:
        """Record edit-form values on the current selection."""
        if self.selection is None:
            return
        self.selection.draft_values = {**self.selection.draft_values, **dict(values or {})}
        self.selection.state = "editing"

    def clean_selection(self, cancel_edition: bool = False) -> None:
        sel = self.selection
        if cancel_edition and sel is not None:
            last = self.events[-1] if self.events else None
            if sel.new_event and last is sel.event:
                self._swap(self.events[:-1])
            elif not sel.new_event and sel.occurrence is not None and sel.original_values:
                ov = sel.original_values
                restored = replace(
                    sel.occurrence,
                    start=ov["from"],
                    end=ov["to"],
                    title=ov["title"],
                    resource_name=ov["resourceName"],
                    resource_names=ov["resourceNames"],
                )
                self._replace_occurrence(sel.event, sel.occurrence.key, restored)
        self.selection = None
        self.resize_side = None

    # --- saving ---------------------------------------------------------------

    def save_event(self) -> Optional[EventSpec]:
        sel = self.selection
        if sel is None:
            return None
        event = sel.event
        draft = dict(sel.draft_values)

        event.update({k: v for k, v in draft.items() if _has_value(k, v)})
        # A whole-series save supersedes one-instance edits.
        event.occurrence_overrides = {}

        if sel.new_event:
            event.update({"name": _slug(event.title or "") + event.key})
            self.dispatch(
                EVENT_CREATE,
                {
                    "event": {
                        "from": to_utc_iso(event.start),
                        "resourceNames": list(event.resource_names),
                        "name": event.name,
                        "title": event.title,
                        "to": to_utc_iso(event.end),
                    }
                },
            )
        else:
            self.dispatch(EVENT_CHANGE, {"name": event.name, "draftValues": draft})

        self.generator.refresh(event, self.selected_resources)
        events = list(self.events)
        if not any(e is event for e in events):
            events.append(event)
        self._swap(events)
        self.selection = None
        return event

    def save_occurrence(self) -> Optional[EventSpec]:
        """Apply the draft to the selected date only; the recurrence rule is untouched."""
        sel = self.selection
        if sel is None or sel.occurrence is None:
            return None
        event = sel.event
        occurrence = sel.occurrence
        draft = dict(sel.draft_values)
        tz = self.tz

        draft_names = draft.get("resourceNames") or draft.get("keyFields") or []
        if isinstance(draft_names, str):
            draft_names = [draft_names]
        resource_names = tuple(draft_names) if draft_names else tuple(occurrence.resource_names)
        pending = list(resource_names)

        fields: Dict[str, Any] = {"resource_names": resource_names}
        extra: Dict[str, Any] = {}
        for k, v in draft.items():
            if k not in _OCCURRENCE_KEYS:
                if v is not None and v != "":
                    extra[k] = v
                continue
            if not _has_value(k, v):
                continue
            if k in ("from", "to"):
                parsed = date_from(v, tz)
                if parsed is not None:
                    fields["start" if k == "from" else "end"] = parsed
            elif k == "title":
                fields["title"] = str(v)
        fields["extra"] = extra

        overrides = dict(event.occurrence_overrides)
        kept: List[Occurrence] = []
        for occ in sel.occurrences:
            existing = overrides.get(occ.key)
            base = existing if existing is not None and existing.clone_of else OccurrenceOverride(key=occ.key)
            if occ.resource_name in pending:
                overrides[occ.key] = replace(base, removed=False, **fields)
                pending.remove(occ.resource_name)
                kept.append(occ)
            else:
                overrides[occ.key] = replace(base, removed=True)

        source = kept[0] if kept else (sel.occurrences[0] if sel.occurrences else occurrence)
        source_key = _generated_key(source, overrides)

        # Same date on resources that are not selected: edit their generated occurrence in place.
        stamp = _key_stamp(event, source_key)
        visible = {o.resource_name for o in sel.occurrences}
        if stamp is not None:
            for name in event.resource_names:
                if name in visible:
                    continue
                hidden_key = f"{event.name}-{name}-{stamp}"
                if name in pending:
                    overrides[hidden_key] = OccurrenceOverride(key=hidden_key, **fields)
                    pending.remove(name)
                else:
                    overrides[hidden_key] = OccurrenceOverride(key=hidden_key, removed=True)

        counter = len(event.occurrences)
        for name in pending:
            counter += 1
            key = f"{event.name}-{name}-{counter}"
            overrides[key] = OccurrenceOverride(
                key=key,
                clone_of=source_key,
                resource_name=name,
                **fields,
            )

        event.occurrence_overrides = overrides
        self.generator.refresh(event, self.selected_resources)
        self._swap(self.events)

        self.dispatch(
            EVENT_CHANGE,
            {
                "name": event.name,
                "draftValues": draft,
                "recurrenceDates": {
                    "from": to_utc_iso(occurrence.start),
                    "to": to_utc_iso(occurrence.end),
                },
            },
        )
        self.selection = None
        return event

    def save_selection(self, recurrence_mode: Optional[str] = None) -> None:
        sel = self.selection
        if sel is None:
            return
        event = sel.event
        if recurrence_mode == "one" or (event.is_recurring and self.only_occurrence_edit_allowed):
            self.save_occurrence()
        else:
            occ = sel.occurrence
            orig = sel.original_values
            if occ is not None and orig:
                # Fold in an occurrence that was already moved or resized.
                changes: Dict[str, Any] = {}
                if occ.start != orig.get("from"):
                    changes["from"] = occ.start
                if occ.end != orig.get("to"):
                    changes["to"] = occ.end
                if occ.title != orig.get("title"):
                    changes["title"] = occ.title
                if tuple(occ.resource_names) != tuple(orig.get("resourceNames") or ()):
                    changes["resourceNames"] = list(occ.resource_names)
                if changes:
                    event.update(changes)
            self.save_event()
        self.clean_selection()

    # --- drag & resize --------------------------------------------------------

    def start_drag(self, event_name: str, start: Any, key: Optional[str] = None,
                   x: Optional[float] = None, y: Optional[float] = None) -> Optional[Selection]:
        sel = self.select_event(event_name, start, key, x, y)
        if sel is not None:
            sel.state = "dragging"
            self.resize_side = None
        return sel

    def start_resize(self, side: str) -> None:
        if self.selection is None or side not in ("start", "end"):
            return
        self.selection.state = "resizing"
        self.resize_side = side

    def start_new_event_drag(self, row_key: Optional[str], cell: Cell,
                             x: Optional[float] = None, y: Optional[float] = None) -> Optional[Selection]:
        """Pointer-down on an empty cell: a provisional event sized by the drag."""
        cell = self.clamp_cell(cell)
        if cell is None:
            return None
        sel = self.new_event(
            x,
            y,
            show_dialog=False,
            resource_names=[row_key] if row_key else [],
            start=cell.start,
            end=cell.end + 1,
        )
        if sel is not None:
            sel.state = "resizing"
            self.resize_side = "end"
        return sel

    def _replace_occurrence(self, event: EventSpec, key: str, new: Occurrence) -> None:
        event.occurrences = [new if o.key == key else o for o in event.occurrences]
        if self.selection is not None and self.selection.event is event:
            self.selection.occurrences = [new if o.key == key else o for o in self.selection.occurrences]
            if self.selection.occurrence is not None and self.selection.occurrence.key == key:
                self.selection.occurrence = new
        self._swap(self.events)

    def drag_event_to(self, row_key: Optional[str], cell: Optional[Cell]) -> None:
        """Move the selected occurrence to `cell` (and `row_key`), keeping its duration."""
        sel = self.selection
        cell = self.clamp_cell(cell)
        if sel is None or sel.occurrence is None or cell is None:
            return
        occ = sel.occurrence
        duration = occ.end - occ.start
        start = from_ms(cell.start, self.tz)
        sel.draft_values["from"] = to_utc_iso(start)
        sel.draft_values["to"] = to_utc_iso(start + duration)

        previous = occ.resource_name
        if row_key is not None and previous != row_key:
            names = [n for n in occ.resource_names if n != previous]
            if row_key not in names:
                names.append(row_key)
            sel.draft_values["resourceNames"] = names

    def resize_event_to_cell(self, cell: Optional[Cell]) -> None:
        sel = self.selection
        cell = self.clamp_cell(cell)
        if sel is None or sel.occurrence is None or cell is None:
            return
        occ = sel.occurrence
        if self.resize_side == "end":
            end = from_ms(cell.end + 1, self.tz)
            if end <= occ.start:
                return
            new = replace(occ, end=end)
        elif self.resize_side == "start":
            start = from_ms(cell.start, self.tz)
            if start >= occ.end:
                return
            new = replace(occ, start=start)
        else:
            return
        self._replace_occurrence(sel.event, occ.key, new)

    def handle_mouse_move(self, row_key: Optional[str] = None, cell: Optional[Cell] = None) -> None:
        sel = self.selection
        if sel is None:
            return
        if sel.new_event and not any(e is sel.event for e in self.events):
            self._swap([*self.events, sel.event])
            return
        sel.is_moving = True
        if self.resize_side or sel.new_event:
            self.resize_event_to_cell(cell)

    def handle_mouse_up(self, row_key: Optional[str] = None, cell: Optional[Cell] = None) -> Dict[str, Any]:
        sel = self.selection
        if sel is None or not sel.is_moving:
            self.clean_selection()
            return {}

        cell = self.clamp_cell(cell)
        if cell is None:
            self.clean_selection(cancel_edition=True)
            return {}

        side = self.resize_side
        if side == "end":
            end = from_ms(cell.end + 1, self.tz)
            sel.draft_values["allDay"] = False
            sel.draft_values["to"] = to_utc_iso(end)
        elif side == "start":
            start = from_ms(cell.start, self.tz)
            sel.draft_values["allDay"] = False
            sel.draft_values["from"] = to_utc_iso(start)
        else:
            self.drag_event_to(row_key, cell)

        if sel.new_event:
            sel.is_moving = False
            sel.state = "editing"
            return {"eventToDispatch": "edit"}

        modes = self.defaults.recurrent_edit_modes
        if sel.event.is_recurring and len(modes) > 1:
            return {"eventToDispatch": "recurrence"}
        if sel.event.is_recurring and self.only_occurrence_edit_allowed:
            self.save_occurrence()
        else:
            self.save_event()
        self.clean_selection()
        return {"updateCellGroups": True}


def _generated_key(occ: Occurrence, overrides: Dict[str, OccurrenceOverride]) -> str:
    ov = overrides.get(occ.key)
    if ov is not None and ov.clone_of:
        return ov.clone_of
    return occ.key


def _key_stamp(event: EventSpec, key: str) -> Optional[str]:
    # Generated keys are "{event}-{resource}-{epoch_ms}".
    for name in event.resource_names:
        prefix = f"{event.name}-{name}-"
        if key.startswith(prefix):
            return key[len(prefix):]
    return None
