"""Tests for date and year-month helpers."""
import pytest
from datetime import date, datetime


class TestYearMonthOf:
    """Tests for deriving year-month keys from entry dates."""

    def test_iso_date_string(self):
        """Test a plain YYYY-MM-DD string."""
        from timesheet.utils.dates import year_month_of

        assert year_month_of("2024-01-15") == "2024-01"
        assert year_month_of("2024-12-31") == "2024-12"

    def test_date_and_datetime_objects(self):
        """Test date and datetime values."""
        from timesheet.utils.dates import year_month_of

        assert year_month_of(date(2023, 7, 4)) == "2023-07"
        assert year_month_of(datetime(2023, 11, 30, 23, 59)) == "2023-11"

    def test_missing_or_unparsable(self):
        """Test that bad dates map to no month."""
        from timesheet.utils.dates import year_month_of

        assert year_month_of(None) is None
        assert year_month_of("") is None
        assert year_month_of("not-a-date") is None
        assert year_month_of("2024-13-01") is None
        assert year_month_of(20240115) is None

    def test_trailing_junk_and_other_iso_forms(self):
        """Test the whole string must be a calendar date or timestamp."""
        from timesheet.utils.dates import year_month_of

        assert year_month_of("2024-01-15xyz") is None
        assert year_month_of("2024-01-15T10:00junk") is None
        assert year_month_of("2024-W03-1") is None
        assert year_month_of("20240115") is None

    def test_timestamps(self):
        """Test ISO timestamps resolve to their calendar month."""
        from timesheet.utils.dates import year_month_of

        assert year_month_of("2024-01-31T23:30:00") == "2024-01"
        assert year_month_of("2024-02-01T08:00:00Z") == "2024-02"
        assert year_month_of(" 2024-03-05 ") == "2024-03"


class TestParseEntryDate:
    """Tests for parsing the date of a logged session."""

    def test_calendar_date(self):
        """Test a YYYY-MM-DD string parses."""
        from timesheet.utils.dates import parse_entry_date

        assert parse_entry_date("2024-02-29") == date(2024, 2, 29)

    @pytest.mark.parametrize("value", ["2024-02-30", "2024-W09-4", "20240229", "2024-02-29x"])
    def test_rejects_other_forms(self, value):
        """Test invalid days and non calendar ISO forms are rejected."""
        from timesheet.utils.dates import parse_entry_date

        with pytest.raises(ValueError, match="Invalid date value"):
            parse_entry_date(value)


class TestYearMonthKeys:
    """Tests for formatting and splitting year-month keys."""

    def test_format_pads(self):
        """Test zero padding."""
        from timesheet.utils.dates import format_year_month

        assert format_year_month(2024, 3) == "2024-03"

    def test_split(self):
        """Test splitting into integers."""
        from timesheet.utils.dates import split_year_month

        assert split_year_month("2024-03") == (2024, 3)

    @pytest.mark.parametrize("value", ["2024-3", "24-03", "2024/03", "2024-03-01", None, 202403])
    def test_is_year_month_rejects(self, value):
        """Test values that are not YYYY-MM."""
        from timesheet.utils.dates import is_year_month

        assert is_year_month(value) is False

    def test_split_invalid(self):
        """Test splitting an invalid key fails."""
        from timesheet.utils.dates import split_year_month

        with pytest.raises(ValueError):
            split_year_month("March 2024")


class TestSessionHours:
    """Tests for work session duration."""

    def test_same_day(self):
        """Test a regular day session."""
        from timesheet.utils.dates import session_hours

        assert session_hours("2024-01-15", "09:00", "17:30") == 8.5

    def test_rounds_to_two_decimals(self):
        """Test rounding of odd minute counts."""
        from timesheet.utils.dates import session_hours

        assert session_hours("2024-01-15", "09:00", "09:10") == 0.17

    def test_overnight(self):
        """Test the end time rolling past midnight."""
        from timesheet.utils.dates import session_hours

        assert session_hours("2024-01-15", "22:00", "02:15", is_overnight=True) == 4.25

    def test_full_day_overnight(self):
        """Test exactly 24 hours is accepted."""
        from timesheet.utils.dates import session_hours

        assert session_hours("2024-01-15", "08:00", "08:00", is_overnight=True) == 24.0

    def test_end_before_start(self):
        """Test end before start without overnight fails."""
        from timesheet.utils.dates import session_hours

        with pytest.raises(ValueError, match="after start"):
            session_hours("2024-01-15", "17:00", "09:00")

    def test_longer_than_a_day(self):
        """Test sessions over 24 hours fail."""
        from timesheet.utils.dates import session_hours

        with pytest.raises(ValueError, match="24 hours"):
            session_hours("2024-01-15", "08:00", "09:00", is_overnight=True)

    def test_invalid_time(self):
        """Test unparsable times fail."""
        from timesheet.utils.dates import session_hours

        with pytest.raises(ValueError, match="Invalid"):
            session_hours("2024-01-15", "25:00", "26:00")
