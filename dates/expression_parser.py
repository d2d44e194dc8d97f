"""Parser that resolves loosely-worded deadlines into calendar dates."""
import logging
import re
from datetime import date, datetime
from typing import Callable, Optional, Union

from processor.models import TemporalValue

logger = logging.getLogger(__name__)

MONTHS = {
    'january': 1, 'jan': 1,
    'february': 2, 'feb': 2,
    'march': 3, 'mar': 3,
    'april': 4, 'apr': 4,
    'may': 5,
    'june': 6, 'jun': 6,
    'july': 7, 'jul': 7,
    'august': 8, 'aug': 8,
    'september': 9, 'sept': 9, 'sep': 9,
    'october': 10, 'oct': 10,
    'november': 11, 'nov': 11,
    'december': 12, 'dec': 12,
}

# Representative month of each quarter for single-quarter deadlines
QUARTER_MONTHS = {1: 2, 2: 5, 3: 8, 4: 11}

SEASON_MONTHS = {
    'spring': 4,
    'summer': 7,
    'fall': 10,
    'autumn': 10,
    'winter': 1,
}

VAGUE_MONTHS = {
    'early': 3,
    'mid': 7,
    'late': 11,
}

ONGOING_LITERALS = {'ongoing', 'continuous', 'tbd', 'indefinite'}

MIN_BARE_YEAR = 2000
MAX_BARE_YEAR = 2100

# Day used for the end of month and quarter ranges
RANGE_END_DAY = 28

# Longest names first so "sept" wins over "sep" and "june" over "jun"
_MONTH = '|'.join(sorted(MONTHS, key=len, reverse=True))
_DASH = r'\s*[-–—]\s*'

MONTH_YEAR_RANGE_RE = re.compile(
    rf'\b({_MONTH})\s+(\d{{4}}){_DASH}({_MONTH})\s+(\d{{4}})\b'
)
MONTH_RANGE_RE = re.compile(rf'\b({_MONTH}){_DASH}({_MONTH})\s+(\d{{4}})\b')
QUARTER_RANGE_RE = re.compile(rf'\bq([1-4]){_DASH}q([1-4])\s+(\d{{4}})\b')
YEAR_RANGE_RE = re.compile(rf'\b(\d{{4}}){_DASH}(\d{{4}})\b')
FISCAL_YEAR_RE = re.compile(r'\b(?:fy|fiscal\s+year)\s*(\d{4}|\d{2})\b')
QUARTER_RE = re.compile(r'\b(?:q|quarter)\s*([1-4])\s*(?:of\s+)?(\d{4})\b')
SEASON_RE = re.compile(
    r'\b(' + '|'.join(SEASON_MONTHS) + r')\s+(?:of\s+)?(\d{4})\b'
)
MONTH_RE = re.compile(rf'\b(?:by\s+)?({_MONTH})\s+(\d{{4}})\b')
VAGUE_RE = re.compile(r'\b(early|mid|late)[-\s](\d{4})\b')
END_OF_YEAR_RE = re.compile(r'\b(?:by\s+the\s+end\s+of|end\s+of)\s+(\d{4})\b')
STARTING_IN_RE = re.compile(
    r'\b(?:start(?:ing)?\s+in|beginning\s+(?:in|of))\s+(\d{4})\b'
)
BY_YEAR_RE = re.compile(r'\bby\s+(\d{4})\b')
BARE_YEAR_RE = re.compile(r'(?:^|\s)(\d{4})(?:\s|$)')

# Formats tried by the generic calendar-date fallback
DATE_FORMATS = [
    '%Y-%m-%d',      # ISO 8601
    '%m/%d/%Y',      # US format
    '%m-%d-%Y',      # US format with dashes
    '%B %d, %Y',     # Full month name
    '%b %d, %Y',     # Abbreviated month name
    '%B %d %Y',
    '%d %B %Y',
    '%d/%m/%Y',      # European format
    '%Y/%m/%d',      # Alternative ISO format
]


class DateExpressionParser:
    """Resolves deadline text such as "Q1 2026" or "mid-2027" to dates."""

    def __init__(self, clock: Callable[[], date] = date.today):
        """
        Initialize the parser.

        Args:
            clock: Callable returning the current date, used for ongoing values
        """
        self.clock = clock

    def parse(self, text, today: Optional[date] = None) -> Optional[TemporalValue]:
        """
        Parse deadline text into a canonical temporal value.

        Range patterns are tried before single-date patterns, and richer
        single-date patterns before looser ones, so that e.g. "Q1 2026" is
        never read as the bare year 2026.

        Args:
            text: Free-form deadline text
            today: Anchor for ongoing values (defaults to the clock)

        Returns:
            TemporalValue, or None if the text cannot be resolved
        """
        if not isinstance(text, str) or not text.strip():
            return None

        normalized = text.lower().strip()

        if normalized in ONGOING_LITERALS:
            return TemporalValue(
                start_date=today or self.clock(),
                end_date=None,
                is_ongoing=True
            )

        try:
            range_match = self._match_range(normalized)
            if range_match is not None:
                start, end = range_match
                if end < start:
                    logger.warning(f"Rejecting reversed date range: {text!r}")
                    return None
                return TemporalValue(start_date=start, end_date=end)

            for strategy in (
                self._parse_fiscal_year,
                self._parse_quarter,
                self._parse_season,
                self._parse_month,
                self._parse_vague_period,
                self._parse_end_of_year,
                self._parse_starting_in,
                self._parse_year,
            ):
                result = strategy(normalized)
                if result:
                    return TemporalValue(start_date=result)

            result = self._parse_calendar_date(text)
            if result:
                return TemporalValue(start_date=result)
        except ValueError as e:
            # Pattern matched but produced an impossible calendar date
            logger.warning(f"Date parsing error for {text!r}: {e}")

        return None

    def _match_range(self, text: str):
        """
        Match range patterns, most specific first.

        Args:
            text: Normalized deadline text

        Returns:
            (start, end) tuple of dates, or None if no range pattern matches
        """
        match = MONTH_YEAR_RANGE_RE.search(text)
        if match:
            return (
                date(int(match.group(2)), MONTHS[match.group(1)], 1),
                date(int(match.group(4)), MONTHS[match.group(3)], RANGE_END_DAY)
            )

        match = MONTH_RANGE_RE.search(text)
        if match:
            year = int(match.group(3))
            return (
                date(year, MONTHS[match.group(1)], 1),
                date(year, MONTHS[match.group(2)], RANGE_END_DAY)
            )

        match = QUARTER_RANGE_RE.search(text)
        if match:
            start_quarter = int(match.group(1))
            end_quarter = int(match.group(2))
            year = int(match.group(3))
            return (
                date(year, (start_quarter - 1) * 3 + 1, 1),
                date(year, end_quarter * 3, RANGE_END_DAY)
            )

        match = YEAR_RANGE_RE.search(text)
        if match:
            start_year = int(match.group(1))
            end_year = int(match.group(2))
            if (MIN_BARE_YEAR <= start_year <= MAX_BARE_YEAR and
                    MIN_BARE_YEAR <= end_year <= MAX_BARE_YEAR):
                return date(start_year, 1, 1), date(end_year, 12, 31)

        return None

    def _parse_fiscal_year(self, text: str) -> Optional[date]:
        # Fiscal years end on September 30
        match = FISCAL_YEAR_RE.search(text)
        if not match:
            return None
        year = int(match.group(1))
        if year < 100:
            year += 2000
        return date(year, 9, 30)

    def _parse_quarter(self, text: str) -> Optional[date]:
        match = QUARTER_RE.search(text)
        if not match:
            return None
        month = QUARTER_MONTHS[int(match.group(1))]
        return date(int(match.group(2)), month, 1)

    def _parse_season(self, text: str) -> Optional[date]:
        match = SEASON_RE.search(text)
        if not match:
            return None
        season = match.group(1)
        year = int(match.group(2))
        # Winter straddles the year boundary; anchor it to the later half
        if season == 'winter':
            year += 1
        return date(year, SEASON_MONTHS[season], 1)

    def _parse_month(self, text: str) -> Optional[date]:
        match = MONTH_RE.search(text)
        if not match:
            return None
        return date(int(match.group(2)), MONTHS[match.group(1)], 1)

    def _parse_vague_period(self, text: str) -> Optional[date]:
        match = VAGUE_RE.search(text)
        if not match:
            return None
        return date(int(match.group(2)), VAGUE_MONTHS[match.group(1)], 1)

    def _parse_end_of_year(self, text: str) -> Optional[date]:
        match = END_OF_YEAR_RE.search(text)
        if not match:
            return None
        return date(int(match.group(1)), 12, 31)

    def _parse_starting_in(self, text: str) -> Optional[date]:
        match = STARTING_IN_RE.search(text)
        if not match:
            return None
        return date(int(match.group(1)), 1, 1)

    def _parse_year(self, text: str) -> Optional[date]:
        """
        Parse a bare year.

        "by 2026" is a deadline and resolves to the start of the year; a
        year on its own resolves to its midpoint.

        Args:
            text: Normalized deadline text

        Returns:
            Date or None if no plausible year is present
        """
        match = BY_YEAR_RE.search(text)
        if match:
            year = int(match.group(1))
            if MIN_BARE_YEAR <= year <= MAX_BARE_YEAR:
                return date(year, 1, 1)

        match = BARE_YEAR_RE.search(text)
        if match:
            year = int(match.group(1))
            if MIN_BARE_YEAR <= year <= MAX_BARE_YEAR:
                return date(year, 7, 1)

        return None

    def _parse_calendar_date(self, text: str) -> Optional[date]:
        """
        Parse an explicit calendar date.

        Args:
            text: Raw deadline text

        Returns:
            Date or None if no known format matches
        """
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text.strip(), fmt).date()
            except ValueError:
                continue

        return None

    def today(self) -> date:
        """Return the current calendar date."""
        return self.clock()


def _coerce_date(value: Union[date, str, None]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def format_readable(value: Union[date, str, None]) -> str:
    """
    Format a date as long human-readable text, e.g. "September 1, 2026".

    Args:
        value: Date or ISO 8601 date string

    Returns:
        Readable date, or an empty string for missing/invalid input
    """
    day = _coerce_date(value)
    if day is None:
        return ''
    return f"{day.strftime('%B')} {day.day}, {day.year}"


def format_range(value: Optional[TemporalValue]) -> str:
    """
    Format a temporal value for display.

    Args:
        value: Parsed temporal value

    Returns:
        "Ongoing", "<start> – <end>" or "<start>"
    """
    if value is None:
        return ''
    if value.is_ongoing:
        return 'Ongoing'

    start = format_readable(value.start_date)
    if value.end_date is None:
        return start

    return f"{start} – {format_readable(value.end_date)}"


_default_parser = DateExpressionParser()


def parse(text, today: Optional[date] = None) -> Optional[TemporalValue]:
    """Parse deadline text with the default parser."""
    return _default_parser.parse(text, today=today)


def today() -> date:
    """Return the current calendar date."""
    return _default_parser.today()
