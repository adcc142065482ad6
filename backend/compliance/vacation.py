"""Vacation day counting and balance bookkeeping."""

from dataclasses import dataclass

from utils import iter_dates, to_date

from .types import VacationPolicy, coerce_enum

# Business-day counting always treats Saturday and Sunday as non-working,
# independent of the organization's weekend definition.
BUSINESS_WEEKEND = frozenset({5, 6})


def count_days(start_date, end_date, policy=VacationPolicy.CALENDAR) -> int:
    """
    Count the days of an inclusive date range under a vacation policy.

    Returns 0 when either date cannot be parsed or start is after end.
    """
    policy = coerce_enum(VacationPolicy, policy, "policy")
    try:
        start = to_date(start_date)
        end = to_date(end_date)
    except ValueError:
        return 0
    if start > end:
        return 0

    if policy == VacationPolicy.CALENDAR:
        return (end - start).days + 1
    return sum(1 for day in iter_dates(start, end) if day.weekday() not in BUSINESS_WEEKEND)


@dataclass(frozen=True)
class VacationBalance:
    """Vacation days a staff member has for one year."""
    year: int
    days_allocated: int
    days_used: int
    days_remaining: int

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "days_allocated": self.days_allocated,
            "days_used": self.days_used,
            "days_remaining": self.days_remaining,
        }


def update_vacation_balance(year: int, days_allocated: int, days_used: int, counted_days: int) -> VacationBalance:
    """Book `counted_days` against a balance. Remaining days never go below zero."""
    used = (days_used or 0) + (counted_days or 0)
    allocated = days_allocated or 0
    return VacationBalance(
        year=year,
        days_allocated=allocated,
        days_used=used,
        days_remaining=max(allocated - used, 0),
    )
