from __future__ import annotations

import datetime as dt
import re
from typing import Tuple

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_clock(s: str) -> dt.time:
    """Parse "HH:MM" or "HH:MM:SS" into a naive time of day."""
    m = _CLOCK_RE.match(s.strip())
    if not m:
        raise ValueError(f"Invalid time of day: {s!r}")
    hh = int(m.group(1))
    mm = int(m.group(2))
    ss = int(m.group(3) or 0)
    if not (0 <= hh <= 23 and 0 <= mm <= 59 and 0 <= ss <= 59):
        raise ValueError(f"Invalid time of day: {s!r}")
    return dt.time(hh, mm, ss)


def parse_time_frame(s: str) -> Tuple[dt.time, dt.time]:
    """Parse an availability frame like "08:00-17:30".

    The end may equal the start (an empty frame) but never precede it.
    """
    if not isinstance(s, str):
        raise ValueError(f"Time frame must be a string; got {type(s).__name__}")
    parts = s.strip().split("-")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"Time frame must be like 08:00-17:00; got {s!r}")
    start = parse_clock(parts[0])
    end = parse_clock(parts[1])
    if end < start:
        raise ValueError(f"Time frame end is before its start: {s!r}")
    return start, end
