from __future__ import annotations

import math
import unittest

from chronogrid.api import ConfigError, EventSpec, SchedulerDefaults, defaults_from_cfg


class TestDefaultsCfgContract(unittest.TestCase):
    def test_none_gives_builtin_defaults(self) -> None:
        d = defaults_from_cfg(None)
        self.assertEqual(d, SchedulerDefaults())
        self.assertEqual(d.available_months, tuple(range(12)))
        self.assertEqual(d.available_days_of_the_week, tuple(range(7)))
        self.assertEqual(d.available_time_frames, ("00:00-23:59",))
        self.assertTrue(math.isinf(d.recurrence_count))
        self.assertEqual(d.tz, "UTC")
        self.assertEqual(d.recurrent_edit_modes, ("all", "one"))

    def test_values_are_normalised(self) -> None:
        d = defaults_from_cfg(
            {
                "tz": "Europe/Paris",
                "available_months": [0, 5, 5, 12, "x", True],
                "available_days_of_the_week": [1, 2, 9],
                "available_time_frames": ["08:00-12:00", 7],
                "recurrence_count": 5,
                "new_event_title": "Booking",
                "events_theme": "rounded",
                "recurrent_edit_modes": ["one", "bogus"],
            }
        )
        self.assertEqual(d.tz, "Europe/Paris")
        self.assertEqual(d.available_months, (0, 5))
        self.assertEqual(d.available_days_of_the_week, (1, 2))
        self.assertEqual(d.available_time_frames, ("08:00-12:00",))
        self.assertEqual(d.recurrence_count, 5)
        self.assertEqual(d.new_event_title, "Booking")
        self.assertEqual(d.events_theme, "rounded")
        self.assertEqual(d.recurrent_edit_modes, ("one",))

    def test_malformed_values_fall_back(self) -> None:
        d = defaults_from_cfg(
            {
                "available_months": "all",
                "available_days_of_the_week": [],
                "recurrence_count": -1,
                "new_event_title": "   ",
                "events_theme": "neon",
                "recurrent_edit_modes": [],
            }
        )
        self.assertEqual(d, SchedulerDefaults())

    def test_invalid_time_frame_is_kept(self) -> None:
        d = defaults_from_cfg({"available_time_frames": ["nope"]})
        self.assertEqual(d.available_time_frames, ("nope",))

    def test_non_dict_cfg_is_rejected(self) -> None:
        with self.assertRaises(ConfigError):
            defaults_from_cfg(["tz", "UTC"])  # type: ignore[arg-type]

    def test_unknown_timezone_is_rejected(self) -> None:
        with self.assertRaises(ConfigError):
            defaults_from_cfg({"tz": "Mars/Olympus_Mons"})

    def test_event_inherits_scheduler_defaults(self) -> None:
        d = defaults_from_cfg({"available_days_of_the_week": [1, 2], "recurrence_count": 3, "tz": "+02:00"})
        spec = EventSpec.from_props({"name": "evt"}, d)
        self.assertEqual(spec.available_days_of_the_week, (1, 2))
        self.assertEqual(spec.recurrence_count, 3)
        self.assertEqual(spec.timezone, "+02:00")

    def test_event_values_override_defaults(self) -> None:
        d = defaults_from_cfg({"available_days_of_the_week": [1, 2]})
        spec = EventSpec.from_props({"availableDaysOfTheWeek": [0, 6], "recurrenceCount": 2}, d)
        self.assertEqual(spec.available_days_of_the_week, (0, 6))
        self.assertEqual(spec.recurrence_count, 2)
        self.assertEqual(spec.name, "new-event")

    def test_update_reports_changed_fields(self) -> None:
        spec = EventSpec.from_props({"name": "evt", "title": "A"})
        changed = spec.update({"title": "B", "name": "evt", "color": "#fff"})
        self.assertEqual(sorted(changed), ["color", "title"])
        self.assertTrue(spec.needs_recompute(changed))
        self.assertFalse(spec.needs_recompute(spec.update({"color": "#000"})))


if __name__ == "__main__":
    unittest.main(verbosity=2)
