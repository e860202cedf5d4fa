import unittest
from datetime import datetime, timezone

from hexwatch.date_utils import format_datetime_utc, iso_to_epoch, parse_iso_datetime


class DateUtilsTests(unittest.TestCase):
    def test_parse_iso_datetime_handles_z_suffix_and_naive_values(self) -> None:
        self.assertEqual(
            parse_iso_datetime("2026-02-16T10:00:00.123Z"),
            datetime(2026, 2, 16, 10, 0, 0, 123000, tzinfo=timezone.utc),
        )
        self.assertEqual(
            parse_iso_datetime("2026-02-16T10:00:00"),
            datetime(2026, 2, 16, 10, 0, 0, tzinfo=timezone.utc),
        )

    def test_unparseable_values(self) -> None:
        self.assertIsNone(parse_iso_datetime(""))
        self.assertIsNone(parse_iso_datetime("yesterday"))
        self.assertIsNone(parse_iso_datetime(1234))
        self.assertEqual(iso_to_epoch("yesterday"), 0.0)

    def test_format_datetime_utc(self) -> None:
        dt = datetime(2026, 2, 16, 10, 0, 0, 500000, tzinfo=timezone.utc)
        self.assertEqual(format_datetime_utc(dt), "2026-02-16T10:00:00.500Z")
        self.assertEqual(iso_to_epoch(format_datetime_utc(dt)), dt.timestamp())


if __name__ == "__main__":
    unittest.main()
