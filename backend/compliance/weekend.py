"""
Weekend calendar.

Maps an organization's weekend definition onto the dates of a month and
answers whether a staff member kept at least one whole weekend free.
"""

from datetime import date

from utils import iter_dates, month_end

from .types import MonthSchedule, WeekendDefinition, coerce_enum

# Python weekday numbers: Monday = 0 ... Sunday = 6
FRIDAY, SATURDAY, SUNDAY = 4, 5, 6

WEEKEND_DAYS = {
    WeekendDefinition.SAT_SUN: frozenset({SATURDAY, SUNDAY}),
    WeekendDefinition.FRI_SAT: frozenset({FRIDAY, SATURDAY}),
    WeekendDefinition.FRI_SAT_SUN: frozenset({FRIDAY, SATURDAY, SUNDAY}),
    WeekendDefinition.SUN: frozenset({SUNDAY}),
}


def weekend_days(definition) -> frozenset[int]:
    """Python weekday numbers (Monday = 0) that make up the weekend. Raises InvalidInput for unknown definitions."""
    return WEEKEND_DAYS[coerce_enum(WeekendDefinition, definition, "weekend_definition")]


def is_weekend(day: date, definition=WeekendDefinition.SAT_SUN) -> bool:
    """True when `day` falls on the weekend under `definition`."""
    return day.weekday() in weekend_days(definition)


def weekend_runs(month_start: date, definition=WeekendDefinition.SAT_SUN) -> list[list[date]]:
    """
    Group the month's weekend dates into maximal runs of consecutive days.

    A run that crosses a month boundary is truncated to the part inside the
    month, so a month starting on a Sunday has a one-day SAT_SUN weekend.
    """
    days = weekend_days(definition)
    runs: list[list[date]] = []
    current: list[date] = []
    for day in iter_dates(month_start.replace(day=1), month_end(month_start)):
        if day.weekday() in days:
            current.append(day)
        elif current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)
    return runs


def has_full_weekend_off(schedule: MonthSchedule, staff_id: str, definition=WeekendDefinition.SAT_SUN) -> bool:
    """True when at least one weekend run has no shift for the staff member on any of its days."""
    worked = {shift.date for shift in schedule.shifts_for(staff_id)}
    return any(
        not any(day in worked for day in run)
        for run in weekend_runs(schedule.month, definition)
    )
