"""Unit tests for the weekend calendar.

January 2026 starts on a Thursday: Saturdays are the 3rd, 10th, 17th, 24th
and 31st. February 2026 starts on a Sunday.
"""

import pytest
from datetime import date

from compliance import InvalidInput, WeekendDefinition
from compliance.weekend import has_full_weekend_off, is_weekend, weekend_days, weekend_runs


JANUARY = date(2026, 1, 1)
FEBRUARY = date(2026, 2, 1)


class TestWeekendRuns:
    """Tests for grouping weekend dates into runs."""

    def test_sat_sun_runs_in_january(self):
        runs = weekend_runs(JANUARY, WeekendDefinition.SAT_SUN)

        assert len(runs) == 5
        assert runs[0] == [date(2026, 1, 3), date(2026, 1, 4)]
        assert runs[-1] == [date(2026, 1, 31)]

    def test_run_truncated_at_month_start(self):
        """February 2026 opens on a Sunday, so its first weekend is a single day."""
        runs = weekend_runs(FEBRUARY, WeekendDefinition.SAT_SUN)

        assert runs[0] == [date(2026, 2, 1)]
        assert runs[1] == [date(2026, 2, 7), date(2026, 2, 8)]

    def test_fri_sat_sun_runs_are_three_days(self):
        runs = weekend_runs(JANUARY, WeekendDefinition.FRI_SAT_SUN)

        assert runs[0] == [date(2026, 1, 2), date(2026, 1, 3), date(2026, 1, 4)]
        assert runs[-1] == [date(2026, 1, 30), date(2026, 1, 31)]

    def test_sunday_only(self):
        runs = weekend_runs(JANUARY, WeekendDefinition.SUN)

        assert runs == [[date(2026, 1, 4)], [date(2026, 1, 11)], [date(2026, 1, 18)], [date(2026, 1, 25)]]

    def test_accepts_any_date_in_month(self):
        assert weekend_runs(date(2026, 1, 20), "SAT_SUN") == weekend_runs(JANUARY, "SAT_SUN")

    def test_unknown_definition_rejected(self):
        with pytest.raises(InvalidInput):
            weekend_runs(JANUARY, "MON_TUE")


class TestIsWeekend:
    """Tests for single-date weekend checks."""

    def test_fri_sat(self):
        assert is_weekend(date(2026, 1, 2), WeekendDefinition.FRI_SAT)  # Friday
        assert is_weekend(date(2026, 1, 3), WeekendDefinition.FRI_SAT)  # Saturday
        assert not is_weekend(date(2026, 1, 4), WeekendDefinition.FRI_SAT)  # Sunday

    def test_default_is_sat_sun(self):
        assert is_weekend(date(2026, 1, 4))
        assert not is_weekend(date(2026, 1, 5))

    def test_weekend_days_use_python_numbering(self):
        assert weekend_days("SAT_SUN") == frozenset({5, 6})
        assert weekend_days(WeekendDefinition.FRI_SAT_SUN) == frozenset({4, 5, 6})

    def test_unknown_definition(self):
        with pytest.raises(InvalidInput):
            is_weekend(date(2026, 1, 4), "MON")


class TestFullWeekendOff:
    """Tests for has_full_weekend_off."""

    def test_working_one_weekend_leaves_others_free(self, make_shift, make_schedule):
        schedule = make_schedule(
            shifts=[make_shift("s1", "2026-01-03")],
            assignments=[("s1", "staff-1")],
        )

        assert has_full_weekend_off(schedule, "staff-1", WeekendDefinition.SAT_SUN)

    def test_one_day_of_every_run_worked(self, make_shift, make_schedule):
        saturdays = ["2026-01-03", "2026-01-10", "2026-01-17", "2026-01-24", "2026-01-31"]
        schedule = make_schedule(
            shifts=[make_shift(f"s{i}", day) for i, day in enumerate(saturdays)],
            assignments=[(f"s{i}", "staff-1") for i in range(len(saturdays))],
        )

        assert not has_full_weekend_off(schedule, "staff-1", WeekendDefinition.SAT_SUN)

    def test_truncated_run_counts_as_weekend(self, make_shift, make_schedule):
        """Only January 31st is free; that one-day run is a full weekend within the month."""
        saturdays = ["2026-01-03", "2026-01-10", "2026-01-17", "2026-01-24"]
        schedule = make_schedule(
            shifts=[make_shift(f"s{i}", day) for i, day in enumerate(saturdays)],
            assignments=[(f"s{i}", "staff-1") for i in range(len(saturdays))],
        )

        assert has_full_weekend_off(schedule, "staff-1", WeekendDefinition.SAT_SUN)

    def test_other_staff_shifts_ignored(self, make_shift, make_schedule):
        saturdays = ["2026-01-03", "2026-01-10", "2026-01-17", "2026-01-24", "2026-01-31"]
        schedule = make_schedule(
            shifts=[make_shift(f"s{i}", day) for i, day in enumerate(saturdays)],
            assignments=[(f"s{i}", "staff-2") for i in range(len(saturdays))],
        )

        assert has_full_weekend_off(schedule, "staff-1", WeekendDefinition.SAT_SUN)
