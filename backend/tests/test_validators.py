"""Unit tests for schedule rule validators.

Tests shift code allow-lists, approved time-off conflicts, same-day overlaps,
consecutive day limits and the weekend-off rule. Dates are in January 2026,
which starts on a Thursday.
"""

import pytest
from datetime import date

from compliance.types import (
    OrganizationScheduleRule,
    RotationMode,
    RuleId,
    Severity,
    StaffScheduleRule,
    TimeOffRequest,
    TimeOffStatus,
    TimeOffType,
    ValidationReport,
    WeekendDefinition,
)
from compliance.validators import (
    AllowedShiftCodesValidator,
    MaxConsecutiveDaysValidator,
    ShiftOverlapValidator,
    TimeOffConflictValidator,
    ValidationContext,
    WeekendOffValidator,
    longest_consecutive_run,
)


SATURDAYS = ["2026-01-03", "2026-01-10", "2026-01-17", "2026-01-24", "2026-01-31"]


# ============================================================================
# ============================================================================


@pytest.fixture
def make_context():
    """Factory for ValidationContext with organization defaults."""
    def _make(schedule, staff_rules=(), org_rules=None, time_off=()):
        return ValidationContext(
            schedule=schedule,
            staff_rules={r.staff_id: r for r in staff_rules},
            org_rules=org_rules or OrganizationScheduleRule(organization_id="org-1"),
            time_off=list(time_off),
        )
    return _make


def run(validator, context) -> ValidationReport:
    result = ValidationReport()
    validator.validate(context, result)
    return result


@pytest.fixture
def saturday_worker(make_shift, make_schedule):
    """staff-1 works every Saturday of January 2026."""
    return make_schedule(
        shifts=[make_shift(f"sat{i}", day) for i, day in enumerate(SATURDAYS)],
        assignments=[(f"sat{i}", "staff-1") for i in range(len(SATURDAYS))],
    )


# ============================================================================
# Allowed shift codes
# ============================================================================


class TestAllowedShiftCodes:
    """Tests for AllowedShiftCodesValidator."""

    def test_disallowed_code_is_error(self, make_shift, make_schedule, make_context):
        schedule = make_schedule(
            shifts=[make_shift("s1", "2026-01-04", shift_code="AFTERNOON", start="14:00", end="22:00")],
            assignments=[("s1", "staff-1")],
        )
        rule = StaffScheduleRule(staff_id="staff-1", allowed_shift_codes=("MORNING",))

        result = run(AllowedShiftCodesValidator(), make_context(schedule, [rule]))

        assert len(result.errors) == 1
        finding = result.errors[0]
        assert finding.rule_id == RuleId.ALLOWED_SHIFT_CODE
        assert finding.staff_id == "staff-1"
        assert finding.date == date(2026, 1, 4)
        assert finding.context["shift_code"] == "AFTERNOON"

    def test_allowed_code_passes(self, make_shift, make_schedule, make_context):
        schedule = make_schedule(
            shifts=[make_shift("s1", "2026-01-04", shift_code="MORNING")],
            assignments=[("s1", "staff-1")],
        )
        rule = StaffScheduleRule(staff_id="staff-1", allowed_shift_codes=("MORNING",))

        assert run(AllowedShiftCodesValidator(), make_context(schedule, [rule])).errors == []

    def test_empty_allow_list_is_unrestricted(self, make_shift, make_schedule, make_context):
        schedule = make_schedule(
            shifts=[make_shift("s1", "2026-01-04", shift_code="NIGHT")],
            assignments=[("s1", "staff-1")],
        )
        rule = StaffScheduleRule(staff_id="staff-1", allowed_shift_codes=())

        assert run(AllowedShiftCodesValidator(), make_context(schedule, [rule])).errors == []

    def test_no_rule_is_unrestricted(self, make_shift, make_schedule, make_context):
        schedule = make_schedule(
            shifts=[make_shift("s1", "2026-01-04", shift_code="NIGHT")],
            assignments=[("s1", "staff-1")],
        )

        assert run(AllowedShiftCodesValidator(), make_context(schedule)).errors == []

    def test_rotation_mode_reported_in_context(self, make_shift, make_schedule, make_context):
        schedule = make_schedule(
            shifts=[make_shift("s1", "2026-01-04", shift_code="NIGHT")],
            assignments=[("s1", "staff-1")],
        )
        rule = StaffScheduleRule(
            staff_id="staff-1", allowed_shift_codes=("MORNING",), rotation_mode=RotationMode.FIXED
        )

        result = run(AllowedShiftCodesValidator(), make_context(schedule, [rule]))

        assert result.errors[0].context["rotation_mode"] == "FIXED"


# ============================================================================
# Time off
# ============================================================================


class TestTimeOffConflict:
    """Tests for TimeOffConflictValidator."""

    @pytest.fixture
    def vacation(self):
        return TimeOffRequest(
            request_id="t1",
            staff_id="staff-1",
            type=TimeOffType.VACATION,
            start_date=date(2026, 1, 5),
            end_date=date(2026, 1, 9),
            status=TimeOffStatus.APPROVED,
        )

    def test_shift_during_approved_vacation(self, make_shift, make_schedule, make_context, vacation):
        schedule = make_schedule(
            shifts=[make_shift("s1", "2026-01-06")],
            assignments=[("s1", "staff-1")],
        )

        result = run(TimeOffConflictValidator(), make_context(schedule, time_off=[vacation]))

        assert len(result.errors) == 1
        assert result.errors[0].rule_id == RuleId.TIME_OFF_CONFLICT
        assert result.errors[0].context["time_off_ids"] == ["t1"]

    def test_shift_outside_vacation(self, make_shift, make_schedule, make_context, vacation):
        schedule = make_schedule(
            shifts=[make_shift("s1", "2026-01-12")],
            assignments=[("s1", "staff-1")],
        )

        assert run(TimeOffConflictValidator(), make_context(schedule, time_off=[vacation])).errors == []


# ============================================================================
# Overlaps
# ============================================================================


class TestShiftOverlap:
    """Tests for ShiftOverlapValidator."""

    def test_overlapping_pair_reported_once(self, make_shift, make_schedule, make_context):
        schedule = make_schedule(
            shifts=[
                make_shift("s1", "2026-01-06", shift_code="MORNING", start="07:00", end="15:00"),
                make_shift("s2", "2026-01-06", shift_code="MIDDAY", start="12:00", end="20:00"),
            ],
            assignments=[("s1", "staff-1"), ("s2", "staff-1")],
        )

        result = run(ShiftOverlapValidator(), make_context(schedule))

        assert len(result.errors) == 1
        assert result.errors[0].rule_id == RuleId.SHIFT_OVERLAP
        assert result.errors[0].context["shift_ids"] == ["s1", "s2"]

    def test_back_to_back_shifts_allowed(self, make_shift, make_schedule, make_context):
        schedule = make_schedule(
            shifts=[
                make_shift("s1", "2026-01-06", start="07:00", end="15:00"),
                make_shift("s2", "2026-01-06", shift_code="AFTERNOON", start="15:00", end="23:00"),
            ],
            assignments=[("s1", "staff-1"), ("s2", "staff-1")],
        )

        assert run(ShiftOverlapValidator(), make_context(schedule)).errors == []

    def test_different_staff_do_not_overlap(self, make_shift, make_schedule, make_context):
        schedule = make_schedule(
            shifts=[
                make_shift("s1", "2026-01-06", start="07:00", end="15:00"),
                make_shift("s2", "2026-01-06", shift_code="MIDDAY", start="12:00", end="20:00"),
            ],
            assignments=[("s1", "staff-1"), ("s2", "staff-2")],
        )

        assert run(ShiftOverlapValidator(), make_context(schedule)).errors == []

    def test_each_staff_member_reported(self, make_shift, make_schedule, make_context):
        schedule = make_schedule(
            shifts=[
                make_shift("s1", "2026-01-06", start="07:00", end="15:00"),
                make_shift("s2", "2026-01-06", shift_code="MIDDAY", start="12:00", end="20:00"),
            ],
            assignments=[("s1", "staff-1"), ("s2", "staff-1"), ("s1", "staff-2"), ("s2", "staff-2")],
        )

        result = run(ShiftOverlapValidator(), make_context(schedule))

        assert sorted(f.staff_id for f in result.errors) == ["staff-1", "staff-2"]


# ============================================================================
# Consecutive days
# ============================================================================


class TestLongestConsecutiveRun:
    """Tests for longest_consecutive_run."""

    def test_empty(self):
        assert longest_consecutive_run([]) == (None, 0)

    def test_duplicates_and_gaps(self):
        days = [date(2026, 1, 1), date(2026, 1, 2), date(2026, 1, 2), date(2026, 1, 5), date(2026, 1, 6), date(2026, 1, 7)]

        assert longest_consecutive_run(days) == (date(2026, 1, 5), 3)

    def test_earliest_run_wins_tie(self):
        days = [date(2026, 1, 10), date(2026, 1, 11), date(2026, 1, 1), date(2026, 1, 2)]

        assert longest_consecutive_run(days) == (date(2026, 1, 1), 2)


class TestMaxConsecutiveDays:
    """Tests for MaxConsecutiveDaysValidator."""

    @pytest.fixture
    def weekday_worker(self, make_shift, make_schedule):
        """staff-1 works Monday January 5th to Friday January 9th."""
        days = ["2026-01-05", "2026-01-06", "2026-01-07", "2026-01-08", "2026-01-09"]
        return make_schedule(
            shifts=[make_shift(f"s{i}", day) for i, day in enumerate(days)],
            assignments=[(f"s{i}", "staff-1") for i in range(len(days))],
        )

    def test_run_over_limit(self, weekday_worker, make_context):
        rule = StaffScheduleRule(staff_id="staff-1", max_consecutive_days=3)

        result = run(MaxConsecutiveDaysValidator(), make_context(weekday_worker, [rule]))

        assert len(result.errors) == 1
        finding = result.errors[0]
        assert finding.rule_id == RuleId.MAX_CONSECUTIVE_DAYS
        assert finding.date == date(2026, 1, 5)
        assert finding.context["longest_run"] == 5
        assert finding.context["run_end"] == "2026-01-09"

    def test_run_at_limit(self, weekday_worker, make_context):
        rule = StaffScheduleRule(staff_id="staff-1", max_consecutive_days=5)

        assert run(MaxConsecutiveDaysValidator(), make_context(weekday_worker, [rule])).errors == []

    @pytest.mark.parametrize("limit", [None, 0])
    def test_no_limit(self, weekday_worker, make_context, limit):
        rule = StaffScheduleRule(staff_id="staff-1", max_consecutive_days=limit)

        assert run(MaxConsecutiveDaysValidator(), make_context(weekday_worker, [rule])).errors == []


# ============================================================================
# Weekend off
# ============================================================================


class TestWeekendOff:
    """Tests for WeekendOffValidator."""

    def test_no_weekend_off_is_error_by_default(self, saturday_worker, make_context):
        result = run(WeekendOffValidator(), make_context(saturday_worker))

        assert len(result.errors) == 1
        finding = result.errors[0]
        assert finding.rule_id == RuleId.WEEKEND_OFF
        assert finding.date == date(2026, 1, 1)
        assert finding.context["weekend_definition"] == "SAT_SUN"

    def test_soft_enforcement_is_warning(self, saturday_worker, make_context):
        org = OrganizationScheduleRule(organization_id="org-1", enforce_weekend_off_hard=False)

        result = run(WeekendOffValidator(), make_context(saturday_worker, org_rules=org))

        assert result.errors == []
        assert len(result.warnings) == 1
        assert result.warnings[0].severity == Severity.WARNING

    def test_staff_exempt(self, saturday_worker, make_context):
        rule = StaffScheduleRule(staff_id="staff-1", requires_weekend_off_per_month=False)

        result = run(WeekendOffValidator(), make_context(saturday_worker, [rule]))

        assert result.errors == [] and result.warnings == []

    def test_sunday_weekend_leaves_saturday_worker_free(self, saturday_worker, make_context):
        org = OrganizationScheduleRule(organization_id="org-1", weekend_definition=WeekendDefinition.SUN)

        assert run(WeekendOffValidator(), make_context(saturday_worker, org_rules=org)).errors == []

    def test_fri_sat_weekend(self, saturday_worker, make_context):
        org = OrganizationScheduleRule(organization_id="org-1", weekend_definition=WeekendDefinition.FRI_SAT)

        result = run(WeekendOffValidator(), make_context(saturday_worker, org_rules=org))

        assert len(result.errors) == 1
        assert result.errors[0].context["weekend_definition"] == "FRI_SAT"
