from __future__ import annotations

import datetime as dt
import unittest
from zoneinfo import ZoneInfo

from chronogrid.util.dates import (
    add_to_date,
    date_from,
    end_of_day,
    from_ms,
    is_midnight,
    remove_from_date,
    set_iso_weekday,
    to_ms,
    to_utc_iso,
    weekday_sunday_first,
)

UTC = dt.timezone.utc
PARIS = ZoneInfo("Europe/Paris")


class TestDateHelpersContract(unittest.TestCase):
    def test_iso_strings(self) -> None:
        self.assertEqual(date_from("2024-01-02T09:00:00Z"), dt.datetime(2024, 1, 2, 9, tzinfo=UTC))
        got = date_from("2024-01-02T09:00:00Z", PARIS)
        self.assertEqual(got, dt.datetime(2024, 1, 2, 10, tzinfo=PARIS))
        self.assertIs(got.tzinfo, PARIS)

    def test_naive_values_take_the_scheduler_timezone(self) -> None:
        self.assertEqual(date_from("2024-01-02T09:00:00", PARIS), dt.datetime(2024, 1, 2, 9, tzinfo=PARIS))
        self.assertEqual(date_from(dt.datetime(2024, 1, 2, 9), PARIS), dt.datetime(2024, 1, 2, 9, tzinfo=PARIS))
        self.assertEqual(date_from(dt.date(2024, 1, 2), UTC), dt.datetime(2024, 1, 2, tzinfo=UTC))

    def test_epoch_milliseconds(self) -> None:
        self.assertEqual(date_from(0), dt.datetime(1970, 1, 1, tzinfo=UTC))
        self.assertEqual(date_from(1_704_186_000_000), dt.datetime(2024, 1, 2, 9, tzinfo=UTC))

    def test_salesforce_format(self) -> None:
        self.assertEqual(date_from("2023-01-25, 12:00 p.m."), dt.datetime(2023, 1, 25, 12, tzinfo=UTC))
        self.assertEqual(date_from("2023-01-25, 12:30 a.m."), dt.datetime(2023, 1, 25, 0, 30, tzinfo=UTC))
        self.assertEqual(date_from("2023-01-25, 3:15 P.M."), dt.datetime(2023, 1, 25, 15, 15, tzinfo=UTC))

    def test_unparseable_values(self) -> None:
        for raw in (None, "", "yesterday", True, [], {}):
            with self.subTest(raw=raw):
                self.assertIsNone(date_from(raw))

    def test_ms_conversions_are_exact(self) -> None:
        d = dt.datetime(2024, 1, 2, 23, 59, 59, 999000, tzinfo=UTC)
        self.assertEqual(from_ms(to_ms(d)), d)
        self.assertEqual(to_ms(dt.datetime(1970, 1, 1, 1, tzinfo=dt.timezone(dt.timedelta(hours=1)))), 0)

    def test_utc_iso(self) -> None:
        d = dt.datetime(2024, 1, 2, 10, tzinfo=PARIS)
        self.assertEqual(to_utc_iso(d), "2024-01-02T09:00:00.000Z")
        self.assertEqual(to_utc_iso(end_of_day(dt.datetime(2024, 1, 2, tzinfo=UTC))), "2024-01-02T23:59:59.999Z")
        self.assertIsNone(to_utc_iso(None))

    def test_weekday_numbering(self) -> None:
        self.assertEqual(weekday_sunday_first(dt.datetime(2024, 1, 7, tzinfo=UTC)), 0)
        self.assertEqual(weekday_sunday_first(dt.datetime(2024, 1, 6, tzinfo=UTC)), 6)
        # ISO weeks start on Monday, so Sunday is the last day.
        self.assertEqual(set_iso_weekday(dt.datetime(2024, 1, 3, 9, tzinfo=UTC), 7), dt.datetime(2024, 1, 7, 9, tzinfo=UTC))
        self.assertEqual(set_iso_weekday(dt.datetime(2024, 1, 7, 9, tzinfo=UTC), 1), dt.datetime(2024, 1, 1, 9, tzinfo=UTC))

    def test_midnight(self) -> None:
        self.assertTrue(is_midnight(dt.datetime(2024, 1, 2, tzinfo=UTC)))
        self.assertFalse(is_midnight(dt.datetime(2024, 1, 2, 0, 0, 1, tzinfo=UTC)))

    def test_hours_are_absolute_across_dst(self) -> None:
        before = dt.datetime(2024, 3, 31, 1, 30, tzinfo=PARIS)
        after = add_to_date(before, "hour", 1)
        self.assertEqual(after.hour, 3)
        self.assertEqual(after.astimezone(UTC) - before.astimezone(UTC), dt.timedelta(hours=1))

    def test_days_keep_wall_clock_across_dst(self) -> None:
        after = add_to_date(dt.datetime(2024, 3, 30, 12, tzinfo=PARIS), "days", 1)
        self.assertEqual((after.day, after.hour), (31, 12))

    def test_months_clamp_day(self) -> None:
        self.assertEqual(
            add_to_date(dt.datetime(2024, 1, 31, tzinfo=UTC), "month", 1),
            dt.datetime(2024, 2, 29, tzinfo=UTC),
        )
        self.assertEqual(
            remove_from_date(dt.datetime(2024, 3, 31, tzinfo=UTC), "month", 1),
            dt.datetime(2024, 2, 29, tzinfo=UTC),
        )

    def test_unknown_unit(self) -> None:
        with self.assertRaises(ValueError):
            add_to_date(dt.datetime(2024, 1, 1, tzinfo=UTC), "fortnight", 1)


if __name__ == "__main__":
    unittest.main(verbosity=2)
