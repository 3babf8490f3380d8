# chronogrid/layout.py
"""Row/cell grouping and overlap levels for rendering.

Pixel geometry stays with the renderer; this module only decides which cells
an occurrence crosses and on which level it sits when occurrences overlap.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .model import Cell, EventSpec, Occurrence
from .util.dates import to_ms

ROW_PADDING = 10


@dataclass
class SchedulerCell:
    start: int
    end: int
    events: List[Occurrence] = field(default_factory=list)


def _span_ms(occ: Occurrence) -> Tuple[int, int]:
    start = to_ms(occ.start)
    end = to_ms(occ.end) if occ.end is not None else start
    return start, end


class SchedulerRow:
    """One resource row: its cells and the occurrences placed in them."""

    def __init__(self, key: str, reference_cells: Sequence[Cell], occurrences: Iterable[Occurrence] = ()) -> None:
        self.key = str(key)
        self.reference_cells = list(reference_cells)
        self.events: List[Occurrence] = list(occurrences)
        self.min_height = 0
        self._height = 0
        self.cells: List[SchedulerCell] = []
        self.init_cells()

    @property
    def height(self) -> int:
        return max(self._height, self.min_height)

    @height.setter
    def height(self, value: int) -> None:
        self._height = int(value)

    def init_cells(self) -> None:
        self.cells = [SchedulerCell(start=c.start, end=c.end) for c in self.reference_cells]
        for occ in self.events:
            self.add_event_to_cells(occ)

    def _first_cell_index(self, start_ms: int) -> Optional[int]:
        for i, cell in enumerate(self.cells):
            if cell.end >= start_ms:
                return i
        return None

    def add_event_to_cells(self, occ: Occurrence) -> None:
        start, end = _span_ms(occ)
        i = self._first_cell_index(start)
        if i is None:
            return
        while i < len(self.cells) and end >= self.cells[i].start:
            cell = self.cells[i]
            if not any(e.key == occ.key for e in cell.events):
                cell.events.append(occ)
                cell.events.sort(key=lambda e: e.start)
            i += 1

    def remove_event(self, occ: Occurrence) -> None:
        for cell in self.cells:
            cell.events = [e for e in cell.events if e.key != occ.key]
        self.events = [e for e in self.events if e.key != occ.key]

    def get_cell_from_start(self, start: int) -> Optional[SchedulerCell]:
        for cell in self.cells:
            if cell.start == start:
                return cell
        return None


@dataclass(frozen=True)
class LevelLayout:
    occurrences: Tuple[Occurrence, ...]
    height: int
    overlaps: int


def compute_levels(
    occurrences: Sequence[Occurrence],
    level_height: int = 0,
    vertical: bool = False,
) -> LevelLayout:
    """Assign every occurrence the lowest level free of overlap.

    Occurrences are processed by start time; two occurrences overlap when each
    starts before the other ends. Horizontal layouts stack levels downwards
    (offset_top = level x level_height); vertical layouts keep offset_top at 0
    and report how many levels side-by-side the widest overlap needs.
    """
    ordered = sorted(occurrences, key=lambda o: (o.start, o.end, o.key))
    level_ends: List[int] = []
    placed: List[Occurrence] = []
    for occ in ordered:
        start, end = _span_ms(occ)
        level = 0
        while level < len(level_ends) and level_ends[level] > start:
            level += 1
        if level == len(level_ends):
            level_ends.append(end)
        else:
            level_ends[level] = end
        offset = 0 if vertical else level * int(level_height)
        placed.append(replace(occ, level=level, offset_top=offset))

    levels = len(level_ends)
    height = 0 if vertical else levels * int(level_height) + (ROW_PADDING if levels else 0)
    return LevelLayout(occurrences=tuple(placed), height=height, overlaps=levels)


def build_rows(
    resources: Sequence[str],
    columns: Sequence[Cell],
    events: Iterable[EventSpec],
    level_height: int = 0,
) -> List[SchedulerRow]:
    """One row per resource, holding its non-reference-line occurrences."""
    by_resource: Dict[str, List[Occurrence]] = {r: [] for r in resources}
    for spec in events:
        for occ in spec.occurrences:
            if occ.reference_line or occ.resource_name not in by_resource:
                continue
            by_resource[occ.resource_name].append(occ)

    rows: List[SchedulerRow] = []
    for name in resources:
        layout = compute_levels(by_resource[name], level_height=level_height)
        row = SchedulerRow(name, columns, layout.occurrences)
        row.height = layout.height
        rows.append(row)
    return rows
