from __future__ import annotations

import datetime as dt
import unittest

from chronogrid.api import EventSpec, OccurrenceGenerator, OccurrenceOverride, SchedulerDefaults, expand_event
from chronogrid.occurrences import apply_occurrence_overrides, remove_occurrence
from chronogrid.util.dates import to_ms

UTC = dt.timezone.utc
WINDOW = {
    "schedulerStart": "2024-01-01T00:00:00Z",
    "schedulerEnd": "2024-12-31T23:59:59Z",
    "smallestHeader": {"unit": "hour", "span": 1},
}


def _d(*args: int) -> dt.datetime:
    return dt.datetime(*args, tzinfo=UTC)


def _props(**extra):
    return {"name": "evt", "resourceNames": ["r1"], **WINDOW, **extra}


class TestOccurrenceGeneratorContract(unittest.TestCase):
    def test_all_day_spans_whole_day(self) -> None:
        out = expand_event(_props(**{"from": "2024-06-15T14:00:00Z", "to": "2024-06-15T14:00:00Z", "allDay": True}))
        self.assertTrue(out.ok)
        self.assertEqual(len(out.occurrences), 1)
        occ = out.occurrences[0]
        self.assertEqual(occ.start, _d(2024, 6, 15))
        self.assertEqual(occ.end, dt.datetime(2024, 6, 15, 23, 59, 59, 999000, tzinfo=UTC))

    def test_one_occurrence_per_resource(self) -> None:
        out = expand_event(
            _props(**{"from": "2024-01-02T09:00:00Z", "to": "2024-01-02T10:00:00Z", "resourceNames": ["r1", "r2"]})
        )
        self.assertEqual([o.resource_name for o in out.occurrences], ["r1", "r2"])
        self.assertEqual({(o.start, o.end) for o in out.occurrences}, {(_d(2024, 1, 2, 9), _d(2024, 1, 2, 10))})
        ms = to_ms(_d(2024, 1, 2, 9))
        self.assertEqual([o.key for o in out.occurrences], [f"evt-r1-{ms}", f"evt-r2-{ms}"])
        for occ in out.occurrences:
            self.assertEqual(occ.resource_names, ("r1", "r2"))
            self.assertEqual(occ.row_key, occ.resource_name)

    def test_selected_resources_filter_fan_out(self) -> None:
        out = expand_event(
            _props(**{"from": "2024-01-02T09:00:00Z", "to": "2024-01-02T10:00:00Z", "resourceNames": ["r1", "r2"]}),
            selected_resources=["r2"],
        )
        self.assertEqual([o.resource_name for o in out.occurrences], ["r2"])

    def test_unavailable_weekday_yields_no_occurrence(self) -> None:
        # 2024-01-06 is a Saturday.
        out = expand_event(
            _props(
                **{"from": "2024-01-06T10:00:00Z", "to": "2024-01-06T11:00:00Z"},
                availableDaysOfTheWeek=[1, 2, 3, 4, 5],
            )
        )
        self.assertTrue(out.ok)
        self.assertEqual(out.occurrences, ())

    def test_scheduler_defaults_apply_when_event_has_none(self) -> None:
        defaults = SchedulerDefaults(available_time_frames=("08:00-12:00",))
        out = expand_event(_props(**{"from": "2024-01-02T13:00:00Z", "to": "2024-01-02T14:00:00Z"}), defaults)
        self.assertEqual(out.occurrences, ())

    def test_missing_start(self) -> None:
        out = expand_event(_props(to="2024-01-02T10:00:00Z"))
        self.assertFalse(out.ok)
        self.assertEqual(out.reason, "missing_start")

    def test_missing_smallest_header(self) -> None:
        props = _props(**{"from": "2024-01-02T09:00:00Z", "to": "2024-01-02T10:00:00Z"})
        del props["smallestHeader"]
        out = expand_event(props)
        self.assertFalse(out.ok)
        self.assertEqual(out.reason, "missing_smallest_header")

    def test_daily_count_without_window(self) -> None:
        out = expand_event(
            {
                "name": "evt",
                "resourceNames": ["r1"],
                "from": "2024-01-01T09:00:00Z",
                "to": "2024-01-01T10:00:00Z",
                "recurrence": "daily",
                "recurrenceCount": 3,
                "smallestHeader": {"unit": "hour", "span": 1},
            }
        )
        self.assertTrue(out.ok)
        self.assertEqual(
            [(o.start, o.end) for o in out.occurrences],
            [(_d(2024, 1, d, 9), _d(2024, 1, d, 10)) for d in (1, 2, 3)],
        )

    def test_unbounded_recurrence_without_window_is_empty(self) -> None:
        out = expand_event(
            {
                "name": "evt",
                "resourceNames": ["r1"],
                "from": "2024-01-01T09:00:00Z",
                "to": "2024-01-01T10:00:00Z",
                "recurrence": "daily",
                "smallestHeader": {"unit": "hour", "span": 1},
            }
        )
        self.assertTrue(out.ok)
        self.assertEqual(out.occurrences, ())

    def test_window_ending_before_start_is_invalid(self) -> None:
        props = _props(**{"from": "2024-01-02T09:00:00Z", "to": "2024-01-02T10:00:00Z"})
        props["schedulerEnd"] = "2023-06-01T00:00:00Z"
        out = expand_event(props)
        self.assertFalse(out.ok)
        self.assertEqual(out.reason, "invalid_window")

    def test_missing_end_means_end_of_start_day(self) -> None:
        out = expand_event(_props(**{"from": "2024-01-02T09:00:00Z"}))
        self.assertEqual(len(out.occurrences), 1)
        self.assertEqual(out.occurrences[0].end, dt.datetime(2024, 1, 2, 23, 59, 59, 999000, tzinfo=UTC))

    def test_event_before_window_is_dropped(self) -> None:
        out = expand_event(_props(**{"from": "2023-12-20T09:00:00Z", "to": "2023-12-20T10:00:00Z"}))
        self.assertTrue(out.ok)
        self.assertEqual(out.occurrences, ())

    def test_event_straddling_window_start_is_clamped(self) -> None:
        out = expand_event(_props(**{"from": "2023-12-31T22:00:00Z", "to": "2024-01-01T02:00:00Z"}))
        self.assertEqual(len(out.occurrences), 1)
        self.assertEqual(out.occurrences[0].start, _d(2024, 1, 1))
        self.assertEqual(out.occurrences[0].end, _d(2024, 1, 1, 2))

    def test_reference_line(self) -> None:
        out = expand_event(
            {
                "referenceLine": True,
                "title": "Now",
                "from": "2024-01-02T12:00:00Z",
                "to": "2024-01-02T12:00:00Z",
                "schedulerStart": "2024-01-01T00:00:00Z",
                "schedulerEnd": "2024-01-07T23:59:59Z",
                "smallestHeader": {"unit": "day", "span": 1},
            }
        )
        self.assertEqual(len(out.occurrences), 1)
        occ = out.occurrences[0]
        self.assertEqual(occ.key, "Now-0")
        self.assertTrue(occ.reference_line)
        self.assertIsNone(occ.resource_name)
        self.assertEqual(occ.event_name, "disabled")

    def test_recurring_reference_line_gets_one_minute(self) -> None:
        out = expand_event(
            {
                "referenceLine": True,
                "title": "Noon",
                "from": "2024-01-02T12:00:00Z",
                "to": "2024-01-02T12:00:00Z",
                "recurrence": "daily",
                "recurrenceCount": 2,
                "schedulerStart": "2024-01-01T00:00:00Z",
                "schedulerEnd": "2024-01-07T23:59:59Z",
                "smallestHeader": {"unit": "hour", "span": 1},
            }
        )
        self.assertEqual([o.key for o in out.occurrences], ["Noon-0", "Noon-1"])
        self.assertEqual(out.occurrences[0].end, _d(2024, 1, 2, 12, 1))

    def test_init_occurrences_is_idempotent(self) -> None:
        gen = OccurrenceGenerator()
        spec = EventSpec.from_props(
            _props(**{"from": "2024-01-01T09:00:00Z", "to": "2024-01-01T10:00:00Z"}, recurrence="daily", recurrenceCount=5)
        )
        first = gen.init_occurrences(spec)
        second = gen.init_occurrences(spec)
        self.assertEqual(first, second)
        self.assertEqual(spec.occurrences, [])

    def test_refresh_replaces_occurrence_list(self) -> None:
        gen = OccurrenceGenerator()
        spec = EventSpec.from_props(_props(**{"from": "2024-01-01T09:00:00Z", "to": "2024-01-01T10:00:00Z"}))
        gen.refresh(spec)
        before = spec.occurrences
        spec.update({"resourceNames": ["r1", "r2"]})
        gen.refresh(spec)
        self.assertIsNot(before, spec.occurrences)
        self.assertEqual(len(before), 1)
        self.assertEqual(len(spec.occurrences), 2)
        self.assertTrue(spec.result.ok)

    def test_overrides_survive_recompute(self) -> None:
        gen = OccurrenceGenerator()
        spec = EventSpec.from_props(
            _props(**{"from": "2024-01-01T09:00:00Z", "to": "2024-01-01T10:00:00Z"}, recurrence="daily", recurrenceCount=3)
        )
        gen.refresh(spec)
        moved, removed = spec.occurrences[0], spec.occurrences[1]
        spec.occurrence_overrides = {
            moved.key: OccurrenceOverride(key=moved.key, start=_d(2024, 1, 1, 15), end=_d(2024, 1, 1, 16)),
            removed.key: OccurrenceOverride(key=removed.key, removed=True),
        }
        gen.refresh(spec)
        self.assertEqual([o.start for o in spec.occurrences], [_d(2024, 1, 1, 15), _d(2024, 1, 3, 9)])
        self.assertEqual(spec.occurrences[0].key, moved.key)

    def test_clone_override_copies_source(self) -> None:
        gen = OccurrenceGenerator()
        spec = EventSpec.from_props(_props(**{"from": "2024-01-01T09:00:00Z", "to": "2024-01-01T10:00:00Z"}))
        src = gen.init_occurrences(spec).occurrences
        overrides = {
            src[0].key: OccurrenceOverride(key=src[0].key, removed=True),
            "evt-r2-2": OccurrenceOverride(key="evt-r2-2", clone_of=src[0].key, resource_name="r2"),
        }
        out = apply_occurrence_overrides(src, overrides)
        self.assertEqual([(o.key, o.resource_name) for o in out], [("evt-r2-2", "r2")])
        self.assertEqual(out[0].start, _d(2024, 1, 1, 9))

    def test_remove_occurrence_returns_new_list(self) -> None:
        gen = OccurrenceGenerator()
        spec = EventSpec.from_props(
            _props(**{"from": "2024-01-01T09:00:00Z", "to": "2024-01-01T10:00:00Z"}, recurrence="daily", recurrenceCount=2)
        )
        gen.refresh(spec)
        before = spec.occurrences
        after = remove_occurrence(spec, before[0].key)
        self.assertEqual(len(before), 2)
        self.assertEqual([o.key for o in after], [before[1].key])


if __name__ == "__main__":
    unittest.main(verbosity=2)
