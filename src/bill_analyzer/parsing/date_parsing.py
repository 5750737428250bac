"""Date parsing and calendar helpers for bill text."""
from __future__ import annotations
import calendar
import re
from datetime import date

MONTHS: dict[str, int] = {}
for _num in range(1, 13):
    MONTHS[calendar.month_name[_num].lower()] = _num
    MONTHS[calendar.month_abbr[_num].lower()] = _num
MONTHS["sept"] = 9

# Years outside this window are OCR noise, not bill dates
MIN_YEAR = 1900
MAX_YEAR = 2200

# Longest names first so "june" wins over "jun" in alternations
MONTH_NAME_PATTERN = "|".join(sorted(MONTHS, key=len, reverse=True))

# Date shapes accepted inside labelled values, tried in this order
DATE_TOKEN_PATTERN = (
    r"\d{4}-\d{1,2}-\d{1,2}"
    r"|\d{1,2}[/.]\d{1,2}[/.]\d{2,4}"
    r"|\d{1,2}-(?:" + MONTH_NAME_PATTERN + r")\.?-\d{2,4}"
    r"|(?:" + MONTH_NAME_PATTERN + r")\.?\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4}"
    r"|\d{1,2}(?:st|nd|rd|th)?\s+(?:" + MONTH_NAME_PATTERN + r")\.?,?\s+\d{4}"
)

_ISO_RE = re.compile(r'^(\d{4})-(\d{1,2})-(\d{1,2})$')
_DOT_RE = re.compile(r'^(\d{1,2})\.(\d{1,2})\.(\d{4})$')
_SLASH_RE = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{2,4})$')
_DAY_MON_YEAR_RE = re.compile(
    r'^(\d{1,2})(?:st|nd|rd|th)?[\s-]+(' + MONTH_NAME_PATTERN + r')\.?,?[\s-]+(\d{2,4})$', re.IGNORECASE
)
_MON_DAY_YEAR_RE = re.compile(
    r'^(' + MONTH_NAME_PATTERN + r')\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})$', re.IGNORECASE
)
_MONTH_LABEL_RE = re.compile(
    r'\b(' + MONTH_NAME_PATTERN + r')\b\.?,?\s*(\d{4})?', re.IGNORECASE
)


def _full_year(year: int) -> int:
    return year + 2000 if year < 100 else year


def check_year(year: int) -> int:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValueError(f"Year {year} outside {MIN_YEAR}-{MAX_YEAR}")
    return year


def parse_date(raw_string: str, date_format: str = "MM/DD/YYYY") -> date:
    """Parse a date token. Slash dates follow ``date_format`` (US order by default).

    Raises ``ValueError`` for unknown shapes, impossible days and years outside
    ``MIN_YEAR``-``MAX_YEAR``.
    """
    parsed = _parse_date_token(raw_string, date_format)
    check_year(parsed.year)
    return parsed


def _parse_date_token(raw_string: str, date_format: str) -> date:
    s = re.sub(r'\s+', ' ', raw_string.strip())

    iso_match = _ISO_RE.match(s)
    if iso_match:
        return date(int(iso_match.group(1)), int(iso_match.group(2)), int(iso_match.group(3)))

    # Dot format (European)
    dot_match = _DOT_RE.match(s)
    if dot_match:
        day, month, year = int(dot_match.group(1)), int(dot_match.group(2)), int(dot_match.group(3))
        return date(year, month, day)

    slash_match = _SLASH_RE.match(s)
    if slash_match:
        p1, p2 = int(slash_match.group(1)), int(slash_match.group(2))
        year = _full_year(int(slash_match.group(3)))
        if date_format.startswith("DD"):
            day, month = p1, p2
        else:
            month, day = p1, p2
        return date(year, month, day)

    named = _MON_DAY_YEAR_RE.match(s)
    if named:
        month = MONTHS[named.group(1).lower()]
        return date(int(named.group(3)), month, int(named.group(2)))

    named = _DAY_MON_YEAR_RE.match(s)
    if named:
        month = MONTHS[named.group(2).lower()]
        return date(_full_year(int(named.group(3))), month, int(named.group(1)))

    raise ValueError(f"Cannot parse date: {raw_string} with format {date_format}")


def parse_month_label(raw_string: str, default_year: int | None = None) -> str:
    """Normalise a billing month such as "MAY 2025" or "May" to "May 2025".

    Raises ``ValueError`` when no month name is present, when there is no
    year and no ``default_year``, or when the year is outside the window.
    """
    match = _MONTH_LABEL_RE.search(raw_string)
    if not match:
        raise ValueError(f"No month name in: {raw_string}")
    month = MONTHS[match.group(1).lower()]
    year = int(match.group(2)) if match.group(2) else default_year
    if year is None:
        raise ValueError(f"No year in: {raw_string}")
    check_year(year)
    return f"{calendar.month_name[month]} {year}"


def month_label_bounds(label: str) -> tuple[date, date]:
    """First and last day of a "<Month> <Year>" label."""
    match = _MONTH_LABEL_RE.fullmatch(label.strip())
    if not match or not match.group(2):
        raise ValueError(f"Not a month label: {label}")
    month, year = MONTHS[match.group(1).lower()], int(match.group(2))
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def format_month_label(day: date) -> str:
    return f"{calendar.month_name[day.month]} {day.year}"


def short_month_label(year: int, month: int) -> str:
    return f"{calendar.month_abbr[month]} {year}"


def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def validate_billing_period(start: date, end: date) -> tuple[bool, str | None]:
    """Validate billing period sanity. Returns (is_valid, error_message)."""
    days = (end - start).days
    if days < 0:
        return False, f"Billing period is negative: {days} days (start={start}, end={end})"
    if days == 0:
        return False, "Billing period is zero days"
    if days > 400:
        return False, f"Billing period exceeds 400 days: {days} days"
    if days < 15:
        return True, f"Unusually short billing period: {days} days"
    if days > 95:
        return True, f"Unusually long billing period: {days} days"
    return True, None
