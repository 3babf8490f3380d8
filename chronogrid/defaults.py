# chronogrid/defaults.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

from .util.console import obs_warn
from .util.timeparse import parse_time_frame
from .util.tz import normalize_tz_name, resolve_tz

DEFAULT_AVAILABLE_MONTHS: Tuple[int, ...] = tuple(range(12))  # 0=Jan .. 11=Dec
DEFAULT_AVAILABLE_DAYS_OF_THE_WEEK: Tuple[int, ...] = tuple(range(7))  # 0=Sun .. 6=Sat
DEFAULT_AVAILABLE_TIME_FRAMES: Tuple[str, ...] = ("00:00-23:59",)
DEFAULT_NEW_EVENT_TITLE = "New event"
DEFAULT_EVENTS_LABELS: Dict[str, Any] = {"center": {"fieldName": "title"}}

RECURRENCES: Dict[str, str] = {
    "daily": "day",
    "weekly": "week",
    "monthly": "month",
    "yearly": "year",
}
EDIT_MODES: Tuple[str, ...] = ("all", "one")
EVENTS_THEMES: Tuple[str, ...] = ("default", "transparent", "line", "hollow", "rounded")
UNITS: Tuple[str, ...] = ("minute", "hour", "day", "week", "month", "year")
WEEKDAY_LABELS: Tuple[str, ...] = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class SchedulerDefaults:
    """Scheduler-wide settings every event falls back to.

    Passed explicitly into the generator and the controller; never read from
    module state.
    """

    available_months: Tuple[int, ...] = DEFAULT_AVAILABLE_MONTHS
    available_days_of_the_week: Tuple[int, ...] = DEFAULT_AVAILABLE_DAYS_OF_THE_WEEK
    available_time_frames: Tuple[str, ...] = DEFAULT_AVAILABLE_TIME_FRAMES
    recurrence_count: float = math.inf
    tz: str = "UTC"
    new_event_title: str = DEFAULT_NEW_EVENT_TITLE
    events_theme: str = "default"
    recurrent_edit_modes: Tuple[str, ...] = EDIT_MODES


def _int_tuple(raw: Any, lo: int, hi: int) -> Optional[Tuple[int, ...]]:
    if not isinstance(raw, (list, tuple)):
        return None
    out = []
    for x in raw:
        if isinstance(x, bool) or not isinstance(x, int):
            continue
        if lo <= x <= hi and x not in out:
            out.append(x)
    return tuple(out) if out else None


def _frames(raw: Any) -> Optional[Tuple[str, ...]]:
    if not isinstance(raw, (list, tuple)):
        return None
    out = []
    for x in raw:
        if not isinstance(x, str):
            continue
        try:
            parse_time_frame(x)
        except ValueError as ex:
            # Kept: an invalid frame allows everything during filtering.
            obs_warn("defaults", f"invalid time frame {x!r}: {ex}")
        out.append(x)
    return tuple(out) if out else None


def _choices(raw: Any, valid: Iterable[str]) -> Optional[Tuple[str, ...]]:
    if not isinstance(raw, (list, tuple)):
        return None
    allowed = set(valid)
    out = tuple(str(x) for x in raw if str(x) in allowed)
    return out or None


def normalize_months(raw: Any) -> Optional[Tuple[int, ...]]:
    return _int_tuple(raw, 0, 11)


def normalize_weekdays(raw: Any) -> Optional[Tuple[int, ...]]:
    return _int_tuple(raw, 0, 6)


def normalize_time_frames(raw: Any) -> Optional[Tuple[str, ...]]:
    return _frames(raw)


def normalize_count(raw: Any) -> Optional[float]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw >= 0 else None
    if isinstance(raw, float) and (math.isinf(raw) or raw.is_integer()):
        return raw if raw >= 0 else None
    return None


def defaults_from_cfg(cfg: Optional[Dict[str, Any]] = None) -> SchedulerDefaults:
    """Build SchedulerDefaults from a plain cfg dict.

    Unknown or malformed values fall back to the built-in defaults; only a
    non-dict cfg or an unresolvable timezone is an error.
    """
    if cfg is None:
        return SchedulerDefaults()
    if not isinstance(cfg, dict):
        raise ConfigError(f"cfg must be a dict; got {type(cfg).__name__}")

    tz_name = normalize_tz_name(cfg.get("tz"))
    try:
        resolve_tz(tz_name)
    except ValueError as ex:
        raise ConfigError(str(ex)) from ex

    count = normalize_count(cfg.get("recurrence_count"))
    title = cfg.get("new_event_title")
    theme = cfg.get("events_theme")

    return SchedulerDefaults(
        available_months=normalize_months(cfg.get("available_months")) or DEFAULT_AVAILABLE_MONTHS,
        available_days_of_the_week=normalize_weekdays(cfg.get("available_days_of_the_week"))
        or DEFAULT_AVAILABLE_DAYS_OF_THE_WEEK,
        available_time_frames=normalize_time_frames(cfg.get("available_time_frames")) or DEFAULT_AVAILABLE_TIME_FRAMES,
        recurrence_count=count if count is not None else math.inf,
        tz=tz_name,
        new_event_title=str(title) if isinstance(title, str) and title.strip() else DEFAULT_NEW_EVENT_TITLE,
        events_theme=theme if theme in EVENTS_THEMES else "default",
        recurrent_edit_modes=_choices(cfg.get("recurrent_edit_modes"), EDIT_MODES) or EDIT_MODES,
    )
