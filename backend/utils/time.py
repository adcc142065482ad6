"""Date and time utility functions."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def to_date(value) -> date:
    """Coerce an ISO date string, date or datetime to a date. Raises ValueError."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Not a date: {value!r}")
    return date.fromisoformat(value.strip()[:10])


def to_time(value) -> time:
    """Coerce an "HH:MM" / "HH:MM:SS" string or time to a time. Raises ValueError."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Not a time: {value!r}")
    return time.fromisoformat(value.strip())


def parse_month(value) -> date:
    """
    Normalize a month reference to the first day of that month.

    Accepts "YYYY-MM", "YYYY-MM-DD", a date or a datetime.
    """
    if isinstance(value, (date, datetime)):
        day = to_date(value)
    else:
        day = isoparse(str(value).strip()).date()
    return day.replace(day=1)


def month_end(month_start: date) -> date:
    """Last calendar day of the month containing `month_start`."""
    return month_start.replace(day=1) + relativedelta(months=1) - timedelta(days=1)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Every calendar date from start to end, inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def sunday_weekday(day: date) -> int:
    """Weekday number with 0 = Sunday ... 6 = Saturday."""
    return day.isoweekday() % 7
