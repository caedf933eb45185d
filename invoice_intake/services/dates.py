"""
Date normalization for invoice fields.

Recognizes, in order:
1. "<day>. <month name> <year>" with German or English month names
2. "<dd>.<mm>.<yy>" with a two-digit year (pivot at 50)
3. anything python-dateutil can parse (day-first for ambiguous numeric dates)

Results are ISO calendar dates (YYYY-MM-DD). ``parse_date`` falls back to the
current date rather than raising.
"""

import re
from datetime import date, datetime
from dateutil import parser as date_parser
from loguru import logger

MONTHS = {
    # German
    "januar": 1, "jänner": 1, "jaenner": 1, "jan": 1,
    "februar": 2, "feber": 2, "feb": 2,
    "märz": 3, "maerz": 3, "mär": 3, "mae": 3, "mrz": 3,
    "april": 4, "apr": 4,
    "mai": 5,
    "juni": 6, "jun": 6,
    "juli": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sept": 9, "sep": 9,
    "oktober": 10, "okt": 10,
    "november": 11, "nov": 11,
    "dezember": 12, "dez": 12,
    # English
    "january": 1,
    "february": 2,
    "march": 3, "mar": 3,
    "may": 5,
    "june": 6,
    "july": 7,
    "october": 10, "oct": 10,
    "december": 12, "dec": 12,
}

NAMED_MONTH_PATTERN = re.compile(r"(\d{1,2})\.\s*([A-Za-zÄÖÜäöü]+)\.?\s+(\d{4})")
SHORT_NUMERIC_PATTERN = re.compile(r"(?<!\d)(\d{1,2})\.(\d{1,2})\.(\d{2})(?!\d)")
YEAR_FIRST_PATTERN = re.compile(r"\d{4}\D")

TWO_DIGIT_YEAR_PIVOT = 50


def expand_two_digit_year(yy: int) -> int:
    return 2000 + yy if yy < TWO_DIGIT_YEAR_PIVOT else 1900 + yy


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _from_named_month(text: str) -> date | None:
    match = NAMED_MONTH_PATTERN.search(text)
    if not match:
        return None
    month = MONTHS.get(match.group(2).lower())
    if month is None:
        return None
    return _safe_date(int(match.group(3)), month, int(match.group(1)))


def _from_short_numeric(text: str) -> date | None:
    match = SHORT_NUMERIC_PATTERN.search(text)
    if not match:
        return None
    day, month, yy = (int(g) for g in match.groups())
    return _safe_date(expand_two_digit_year(yy), month, day)


def _from_generic(text: str) -> date | None:
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    # dateutil reads "2014-05-07" as year-day-month when dayfirst is set
    dayfirst = not YEAR_FIRST_PATTERN.match(text)
    today = date.today()
    try:
        parsed = date_parser.parse(text, dayfirst=dayfirst, default=datetime(today.year, 1, 1))
    except (ValueError, OverflowError, date_parser.ParserError):
        return None
    return parsed.date()


def try_parse_date(value) -> str | None:
    """Return the ISO date for ``value`` or None when no strategy recognizes it"""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if value is None:
        return None

    text = str(value).strip()
    if not text:
        return None

    for strategy in (_from_named_month, _from_short_numeric, _from_generic):
        parsed = strategy(text)
        if parsed is not None:
            return parsed.isoformat()
    return None


def parse_date(value, fallback: date | None = None) -> str:
    """
    Normalize a free-text date to YYYY-MM-DD.

    Args:
        value: Date string (e.g. "7. Mai 2014", "01.05.14", "2014-05-07") or date object
        fallback: Date used when nothing matches (default: today)

    Returns:
        ISO calendar date string
    """
    parsed = try_parse_date(value)
    if parsed is not None:
        return parsed

    fallback = fallback or date.today()
    if value not in (None, ""):
        logger.warning("Unrecognized date, using fallback", raw=str(value), fallback=fallback.isoformat())
    return fallback.isoformat()
