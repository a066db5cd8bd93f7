"""Date parsing utilities."""

import re
from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from budgetsync.domain.errors import ValidationError

_DAYS_AGO_RE = re.compile(r"^(\d+)\s+days?\s+ago$")
_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")


def parse_date(date_str: str, dayfirst: bool = True) -> date:
    """Parse a date string into a date object.

    Supports:
    - ISO dates: "2024-01-15" (and ISO timestamps with a time part)
    - Bank export dates: "15.01.2024", "15/01/2024" (day first by default)
    - Relative dates: "today", "yesterday", "N days ago"

    Args:
        date_str: Date string
        dayfirst: Interpret ambiguous numeric dates as day-first

    Returns:
        Date object

    Raises:
        ValidationError: If date string cannot be parsed
    """
    if date_str is None or not date_str.strip():
        raise ValidationError("Empty date string")

    text = date_str.strip().lower()
    today = date.today()

    if text == "today":
        return today
    if text == "yesterday":
        return today - timedelta(days=1)

    match = _DAYS_AGO_RE.match(text)
    if match:
        return today - timedelta(days=int(match.group(1)))

    try:
        # ISO strings are never day-first
        dt = date_parser.parse(text, dayfirst=dayfirst and not _ISO_RE.match(text))
        return dt.date()
    except (ValueError, OverflowError) as e:
        raise ValidationError(f"Could not parse date '{date_str}': {e}") from None


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a named import period.

    Args:
        period: One of last-7-days, last-30-days, this-month, last-month

    Returns:
        Tuple of (start_date, end_date), both inclusive and never in the future

    Raises:
        ValidationError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()

    if period == "last-7-days":
        return (today - timedelta(days=6), today)
    if period == "last-30-days":
        return (today - timedelta(days=29), today)
    if period == "this-month":
        return (today.replace(day=1), today)
    if period == "last-month":
        start_date = (today - relativedelta(months=1)).replace(day=1)
        end_date = today.replace(day=1) - timedelta(days=1)
        return (start_date, end_date)

    raise ValidationError(
        f"Unknown period: '{period}'. Supported periods: "
        "last-7-days, last-30-days, this-month, last-month"
    )


def validate_date_range(start_date: date, end_date: date, today: date | None = None) -> None:
    """Check an import date range.

    Raises:
        ValidationError: If start is after end or either date is in the future
    """
    today = today or date.today()
    if start_date is None or end_date is None:
        raise ValidationError("Start and end dates are required")
    if start_date > end_date:
        raise ValidationError("Start date cannot be after end date")
    if start_date > today or end_date > today:
        raise ValidationError("Dates cannot be in the future")
