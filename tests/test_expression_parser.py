"""Unit tests for DateExpressionParser."""
from datetime import date

import pytest

from dates.expression_parser import (
    DateExpressionParser,
    format_range,
    format_readable,
    parse,
)
from processor.models import TemporalValue

TODAY = date(2026, 1, 10)


@pytest.fixture
def parser():
    """Parser with a fixed clock."""
    return DateExpressionParser(clock=lambda: TODAY)


class TestSingleDates:
    """Test cases for single-date deadline expressions."""

    def test_month_with_by_prefix(self, parser):
        """Test 'by <month> <year>' resolves to the first of the month."""
        result = parser.parse("by September 2026")

        assert result.start_date == date(2026, 9, 1)
        assert result.end_date is None
        assert result.is_ongoing is False

    def test_abbreviated_month(self, parser):
        """Test abbreviated month names, including 'Sept'."""
        assert parser.parse("Sept 2026").start_date == date(2026, 9, 1)
        assert parser.parse("Jan 2027").start_date == date(2027, 1, 1)

    def test_quarter_uses_middle_month(self, parser):
        """Test quarters resolve to their middle month."""
        assert parser.parse("Q1 2026").start_date == date(2026, 2, 1)
        assert parser.parse("Q2 2026").start_date == date(2026, 5, 1)
        assert parser.parse("Q3 2026").start_date == date(2026, 8, 1)
        assert parser.parse("Q4 2026").start_date == date(2026, 11, 1)

    def test_quarter_long_form(self, parser):
        """Test 'quarter 2 of 2026' and 'Q2 of 2026'."""
        assert parser.parse("quarter 2 of 2026").start_date == date(2026, 5, 1)
        assert parser.parse("Q2 of 2026").start_date == date(2026, 5, 1)

    def test_fiscal_year_two_digit(self, parser):
        """Test FY27 resolves to September 30, 2027."""
        assert parser.parse("FY27").start_date == date(2027, 9, 30)

    def test_fiscal_year_long_form(self, parser):
        """Test 'fiscal year 2026' resolves to September 30, 2026."""
        assert parser.parse("fiscal year 2026").start_date == date(2026, 9, 30)

    def test_vague_periods(self, parser):
        """Test early/mid/late map to March, July and November."""
        assert parser.parse("early 2026").start_date == date(2026, 3, 1)
        assert parser.parse("mid-2027").start_date == date(2027, 7, 1)
        assert parser.parse("Mid 2027").start_date == date(2027, 7, 1)
        assert parser.parse("late 2026").start_date == date(2026, 11, 1)

    def test_seasons(self, parser):
        """Test seasons, with winter anchored in the following January."""
        assert parser.parse("spring 2026").start_date == date(2026, 4, 1)
        assert parser.parse("summer 2026").start_date == date(2026, 7, 1)
        assert parser.parse("fall 2026").start_date == date(2026, 10, 1)
        assert parser.parse("autumn 2026").start_date == date(2026, 10, 1)
        assert parser.parse("winter 2026").start_date == date(2027, 1, 1)

    def test_end_of_year(self, parser):
        """Test 'end of' and 'by the end of' resolve to December 31."""
        assert parser.parse("end of 2026").start_date == date(2026, 12, 31)
        assert parser.parse("by the end of 2026").start_date == date(2026, 12, 31)

    def test_starting_in(self, parser):
        """Test 'starting in <year>' resolves to January 1."""
        assert parser.parse("starting in 2027").start_date == date(2027, 1, 1)
        assert parser.parse("beginning of 2027").start_date == date(2027, 1, 1)

    def test_by_year_and_bare_year_differ(self, parser):
        """Test 'by 2026' is January 1 while a bare year is July 1."""
        assert parser.parse("by 2026").start_date == date(2026, 1, 1)
        assert parser.parse("2026").start_date == date(2026, 7, 1)

    def test_bare_year_out_of_range(self, parser):
        """Test implausible years are not treated as deadlines."""
        assert parser.parse("1850") is None
        assert parser.parse("by 1850") is None
        assert parser.parse("2150") is None

    def test_iso_calendar_date(self, parser):
        """Test explicit ISO dates fall through to the calendar parser."""
        assert parser.parse("2026-03-15").start_date == date(2026, 3, 15)

    def test_us_calendar_date(self, parser):
        """Test US formatted dates."""
        assert parser.parse("03/15/2026").start_date == date(2026, 3, 15)

    def test_computed_date_is_start(self, parser):
        """Test the computed date is the start date."""
        result = parser.parse("Q1 2026")
        assert result.computed_date == result.start_date


class TestRanges:
    """Test cases for range expressions."""

    def test_month_range(self, parser):
        """Test 'April-June 2026' spans April 1 to June 28."""
        result = parser.parse("April-June 2026")

        assert result.start_date == date(2026, 4, 1)
        assert result.end_date == date(2026, 6, 28)
        assert result.is_range is True
        assert result.is_ongoing is False

    def test_month_range_across_years(self, parser):
        """Test month-year to month-year ranges."""
        result = parser.parse("September 2026 - March 2027")

        assert result.start_date == date(2026, 9, 1)
        assert result.end_date == date(2027, 3, 28)

    def test_quarter_range(self, parser):
        """Test quarter ranges use the first month of the first quarter."""
        result = parser.parse("Q3-Q4 2026")

        assert result.start_date == date(2026, 7, 1)
        assert result.end_date == date(2026, 12, 28)

    def test_year_range(self, parser):
        """Test year ranges span whole years."""
        result = parser.parse("2025-2027")

        assert result.start_date == date(2025, 1, 1)
        assert result.end_date == date(2027, 12, 31)

    def test_range_with_en_dash(self, parser):
        """Test en dashes are accepted as range separators."""
        result = parser.parse("2025 – 2027")

        assert result.start_date == date(2025, 1, 1)
        assert result.end_date == date(2027, 12, 31)

    @pytest.mark.parametrize("text", ["2026-9999", "0001-0002", "1850-2026"])
    def test_year_range_outside_supported_years(self, parser, text):
        """Test year ranges are limited to the same years as bare years."""
        assert parser.parse(text) is None

    def test_reversed_ranges_are_rejected(self, parser):
        """Test ranges whose end precedes their start are rejected."""
        assert parser.parse("2027-2025") is None
        assert parser.parse("June-April 2026") is None
        assert parser.parse("Q4-Q1 2026") is None


class TestOngoingAndInvalid:
    """Test cases for ongoing literals and unparseable input."""

    @pytest.mark.parametrize("text", ["ongoing", "Continuous", "TBD", "indefinite"])
    def test_ongoing_literals(self, parser, text):
        """Test ongoing literals resolve to today with the ongoing flag."""
        result = parser.parse(text)

        assert result.start_date == TODAY
        assert result.end_date is None
        assert result.is_ongoing is True
        assert result.is_range is False

    def test_ongoing_uses_explicit_today(self, parser):
        """Test an explicit anchor date overrides the clock."""
        result = parser.parse("ongoing", today=date(2026, 5, 5))
        assert result.start_date == date(2026, 5, 5)

    def test_unparseable_text(self, parser):
        """Test free text with no date returns None."""
        assert parser.parse("not a date at all") is None

    @pytest.mark.parametrize("text", ["", "   ", None, 42])
    def test_empty_or_non_string(self, parser, text):
        """Test empty and non-string input returns None."""
        assert parser.parse(text) is None

    def test_module_level_parse(self):
        """Test the module-level helper uses a default parser."""
        assert parse("Q1 2026") == TemporalValue(start_date=date(2026, 2, 1))


class TestFormatting:
    """Test cases for readable formatting helpers."""

    def test_format_readable_date(self):
        """Test long-form formatting without zero padding."""
        assert format_readable(date(2026, 9, 1)) == "September 1, 2026"

    def test_format_readable_iso_string(self):
        """Test ISO strings are accepted."""
        assert format_readable("2026-12-31") == "December 31, 2026"

    def test_format_readable_invalid(self):
        """Test invalid input formats as an empty string."""
        assert format_readable("garbage") == ""
        assert format_readable(None) == ""

    def test_format_range_single(self):
        """Test single dates format as the start date."""
        value = TemporalValue(start_date=date(2026, 2, 1))
        assert format_range(value) == "February 1, 2026"

    def test_format_range_span(self):
        """Test ranges join start and end with an en dash."""
        value = TemporalValue(start_date=date(2026, 4, 1), end_date=date(2026, 6, 28))
        assert format_range(value) == "April 1, 2026 – June 28, 2026"

    def test_format_range_ongoing(self):
        """Test ongoing values format as 'Ongoing'."""
        value = TemporalValue(start_date=TODAY, is_ongoing=True)
        assert format_range(value) == "Ongoing"

    def test_format_range_none(self):
        """Test missing values format as an empty string."""
        assert format_range(None) == ""
