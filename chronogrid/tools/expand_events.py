#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

import orjson

from chronogrid.defaults import ConfigError, defaults_from_cfg
from chronogrid.model import EventSpec
from chronogrid.occurrences import OccurrenceGenerator
from chronogrid.payload import build_payload, dumps_payload
from chronogrid.util.dates import date_from
from chronogrid.util.tz import resolve_tz


def _die(msg: str, rc: int = 2) -> int:
    print(f"[chronogrid-expand] ERROR: {msg}", file=sys.stderr)
    return rc


def _load_input(path: Path) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    obj = orjson.loads(path.read_bytes())
    if isinstance(obj, list):
        return [e for e in obj if isinstance(e, dict)], {}
    if isinstance(obj, dict):
        events = obj.get("events") or []
        cfg = obj.get("cfg") or {}
        if not isinstance(events, list):
            raise ValueError("'events' must be a list")
        if not isinstance(cfg, dict):
            raise ValueError("'cfg' must be an object")
        return [e for e in events if isinstance(e, dict)], cfg
    raise ValueError(f"input must be a JSON list or object; got {type(obj).__name__}")


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="chronogrid-expand",
        description="Expand scheduler events into the occurrences visible in a window.",
    )
    ap.add_argument("--in", dest="in_json", required=True, help="Events JSON (list, or object with 'events' and 'cfg')")
    ap.add_argument("--start", required=True, help="Window start (ISO-8601)")
    ap.add_argument("--end", required=True, help="Window end (ISO-8601)")
    ap.add_argument("--unit", default="hour", help="Smallest header unit (default: hour)")
    ap.add_argument("--span", type=int, default=1, help="Smallest header span (default: 1)")
    ap.add_argument("--tz", default=None, help="Scheduler timezone (overrides cfg.tz)")
    ap.add_argument("--out", default=None, help="Output JSON path (default: stdout)")
    ap.add_argument("--indent", action="store_true", help="Pretty-print the output")
    ns = ap.parse_args(argv)

    in_path = Path(ns.in_json)
    if not in_path.exists():
        return _die(f"Input not found: {in_path}")

    try:
        events, cfg = _load_input(in_path)
    except (ValueError, orjson.JSONDecodeError) as ex:
        return _die(f"Failed to read {in_path}: {ex}")

    if ns.tz:
        cfg = {**cfg, "tz": ns.tz}
    try:
        defaults = defaults_from_cfg(cfg)
    except ConfigError as ex:
        return _die(str(ex))

    tz = resolve_tz(defaults.tz)
    window_start = date_from(ns.start, tz)
    window_end = date_from(ns.end, tz)
    if window_start is None or window_end is None:
        return _die("--start/--end must be ISO-8601 dates")
    if window_end < window_start:
        return _die("--end is before --start")

    gen = OccurrenceGenerator(defaults)
    specs: List[EventSpec] = []
    for props in events:
        spec = EventSpec.from_props(
            {
                **props,
                "schedulerStart": window_start,
                "schedulerEnd": window_end,
                "smallestHeader": {"unit": ns.unit, "span": ns.span},
                "timezone": defaults.tz,
            },
            defaults,
        )
        gen.refresh(spec)
        specs.append(spec)

    payload = build_payload(defaults, specs, window_start=window_start, window_end=window_end)
    text = dumps_payload(payload, indent=ns.indent)

    if ns.out:
        out = Path(ns.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text + "\n", encoding="utf-8")
        print(f"[chronogrid-expand] OK: {payload['meta']['occurrence_count']} occurrence(s) -> {out}")
    else:
        sys.stdout.write(text + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
