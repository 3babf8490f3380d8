from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from chronogrid.api import EventSpec
from chronogrid.availability import in_time_frame
from chronogrid.util.dates import date_from


def _combined(ep) -> str:
    return "\n".join(str(c.args[0]) for c in ep.call_args_list if c.args)


class TestTimestampObservabilityContract(unittest.TestCase):
    def test_invalid_timestamp_logs_warning_when_obs_enabled(self) -> None:
        with patch.dict(os.environ, {"CHRONOGRID_OBS_LOG": "1"}, clear=False), patch("chronogrid.util.console.eprint") as ep:
            spec = EventSpec.from_props({"name": "evt", "from": "2025-13-01T00:00:00Z"})
        self.assertIsNone(spec.start)
        self.assertIn("[chronogrid.model] WARN:", _combined(ep))
        self.assertIn("invalid start value='2025-13-01T00:00:00Z'", _combined(ep))

    def test_invalid_timestamp_does_not_log_when_obs_disabled(self) -> None:
        with patch.dict(os.environ, {}, clear=True), patch("chronogrid.util.console.eprint") as ep:
            spec = EventSpec.from_props({"name": "evt", "from": "2025-13-01T00:00:00Z"})
        self.assertIsNone(spec.start)
        self.assertFalse(ep.called)

    def test_invalid_time_frame_logs_and_allows(self) -> None:
        when = date_from("2024-01-01T03:00:00Z")
        with patch.dict(os.environ, {"CHRONOGRID_OBS_LOG": "yes"}, clear=False), patch("chronogrid.util.console.eprint") as ep:
            self.assertTrue(in_time_frame(when, "25:00-26:00"))
        self.assertIn("[chronogrid.availability] WARN: ignoring time frame '25:00-26:00'", _combined(ep))


if __name__ == "__main__":
    unittest.main(verbosity=2)
