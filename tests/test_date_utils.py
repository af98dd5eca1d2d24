"""Tests for timestamp parsing and UTC normalization."""
from datetime import datetime, timedelta, timezone

from mediawatch.core.date_utils import (
    from_timestamp,
    parse_exif_datetime,
    parse_iso,
    to_iso,
    to_local,
    to_utc_iso,
)

PLUS_TWO = timezone(timedelta(hours=2))


class TestIso:
    """Tests for ISO serialization."""

    def test_to_iso_utc_z(self):
        """Test UTC output with millisecond precision and Z suffix."""
        dt = datetime(2024, 3, 15, 10, 30, 0, 123456, tzinfo=timezone.utc)
        assert to_iso(dt) == "2024-03-15T10:30:00.123Z"

    def test_to_iso_converts_offset(self):
        """Test offset datetimes are converted to UTC."""
        dt = datetime(2024, 3, 15, 12, 0, tzinfo=PLUS_TWO)
        assert to_iso(dt) == "2024-03-15T10:00:00.000Z"

    def test_parse_iso_z(self):
        """Test Z-suffixed strings parse as UTC."""
        assert parse_iso("2024-03-15T10:30:00.000Z") == datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)

    def test_parse_iso_naive_is_utc(self):
        """Test naive strings are read as UTC."""
        assert parse_iso("2024-03-15T10:30:00").tzinfo == timezone.utc

    def test_parse_iso_invalid(self):
        """Test garbage and empty values give None."""
        assert parse_iso("not a date") is None
        assert parse_iso(None) is None
        assert parse_iso("") is None

    def test_from_timestamp(self):
        """Test POSIX timestamps become aware UTC datetimes."""
        assert from_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)


class TestExifDates:
    """Tests for EXIF date handling."""

    def test_parse_exif(self):
        """Test the colon-separated EXIF format."""
        assert parse_exif_datetime("2024:03:15 10:30:00") == datetime(2024, 3, 15, 10, 30)

    def test_parse_exif_invalid(self):
        """Test unparsable strings give None."""
        assert parse_exif_datetime("0000:00:00 00:00:00") is None

    def test_to_utc_iso_uses_given_zone(self):
        """Test naive EXIF dates are interpreted in the given zone."""
        assert to_utc_iso("2024:03:15 12:00:00", tz=PLUS_TWO) == "2024-03-15T10:00:00.000Z"

    def test_to_utc_iso_keeps_offset(self):
        """Test ISO strings with an offset ignore the local zone."""
        assert to_utc_iso("2024-03-15T10:30:00.000000Z", tz=PLUS_TWO) == "2024-03-15T10:30:00.000Z"

    def test_to_utc_iso_datetime(self):
        """Test datetime values are accepted."""
        assert to_utc_iso(datetime(2024, 3, 15, 12, 0), tz=PLUS_TWO) == "2024-03-15T10:00:00.000Z"

    def test_to_utc_iso_unusable(self):
        """Test values that are not dates give None."""
        assert to_utc_iso("garbage") is None
        assert to_utc_iso(12345) is None
        assert to_utc_iso("") is None
        assert to_utc_iso(None) is None


class TestSystemZone:
    """Tests for conversions that follow the system zone's DST rules."""

    def test_naive_exif_winter(self, eastern_tz):
        """Test a January wall-clock time gets the standard-time offset."""
        assert to_utc_iso("2024:01:15 00:00:00") == "2024-01-15T05:00:00.000Z"

    def test_naive_exif_summer(self, eastern_tz):
        """Test a July wall-clock time gets the daylight-saving offset."""
        assert to_utc_iso("2024:07:15 00:00:00") == "2024-07-15T04:00:00.000Z"

    def test_to_local_per_instant(self, eastern_tz):
        """Test to_local() applies the offset in effect at each instant."""
        winter = to_local(datetime(2024, 1, 16, 4, 30, tzinfo=timezone.utc))
        summer = to_local(datetime(2024, 7, 16, 4, 30, tzinfo=timezone.utc))
        assert (winter.day, winter.hour, winter.utcoffset()) == (15, 23, timedelta(hours=-5))
        assert (summer.day, summer.hour, summer.utcoffset()) == (16, 0, timedelta(hours=-4))

    def test_to_local_fixed_zone(self):
        """Test an explicit zone wins over the system zone."""
        assert to_local(datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc), PLUS_TWO).hour == 12
