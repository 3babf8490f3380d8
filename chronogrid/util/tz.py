# chronogrid/util/tz.py
from __future__ import annotations

import datetime as dt
import re
from typing import Optional
from zoneinfo import ZoneInfo

# Fixed-offset zones as a scheduler cfg writes them: "UTC+2", "UTC-05:30", "+02:00".
_OFFSET_RE = re.compile(r"^(?:UTC)?([+-])(\d{1,2})(?::?(\d{2}))?$", re.IGNORECASE)


def normalize_tz_name(name: Optional[str]) -> str:
    """Scheduler timezone name; empty means UTC."""
    s = str(name or "").strip()
    if not s or s.upper() in {"UTC", "Z", "ETC/UTC"}:
        return "UTC"
    return s


def resolve_tz(name: Optional[str]) -> dt.tzinfo:
    """tzinfo for a scheduler timezone name.

    Raises ValueError for unknown zones and out-of-range offsets.
    """
    tz_name = normalize_tz_name(name)
    if tz_name == "UTC":
        return dt.timezone.utc

    m = _OFFSET_RE.match(tz_name)
    if m:
        sign_s, hh_s, mm_s = m.groups()
        minutes = int(hh_s) * 60 + int(mm_s or 0)
        if int(hh_s) > 23 or int(mm_s or 0) > 59:
            raise ValueError(f"Invalid timezone offset: {tz_name!r}")
        return dt.timezone(dt.timedelta(minutes=minutes if sign_s == "+" else -minutes))

    try:
        return ZoneInfo(tz_name)
    except Exception as ex:
        raise ValueError(f"Invalid timezone identifier: {tz_name!r}") from ex
