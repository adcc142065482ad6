"""Schedule rule engine that orchestrates all validators."""

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional

from utils import parse_month

from .errors import InvalidInput
from .types import (
    CoverageDateOverride,
    CoverageDayRule,
    MonthSchedule,
    OrganizationScheduleRule,
    ScheduleSnapshot,
    ShiftAssignment,
    ShiftDefinition,
    StaffScheduleRule,
    TimeOffRequest,
    ValidationReport,
)
from .validators import (
    AllowedShiftCodesValidator,
    BaseValidator,
    CoverageValidator,
    MaxConsecutiveDaysValidator,
    ShiftOverlapValidator,
    TimeOffConflictValidator,
    ValidationContext,
    WeekendOffValidator,
)


class ScheduleRuleEngine:
    """
    Main engine for validating a month of shift assignments.

    Holds no state between runs: every input is passed in and the report is
    rebuilt from scratch, so validating the same month twice gives the same
    report.
    """

    def __init__(self, validators: Optional[list[BaseValidator]] = None):
        """Initialize with all validators."""
        self.validators: list[BaseValidator] = validators if validators is not None else [
            AllowedShiftCodesValidator(),
            TimeOffConflictValidator(),
            ShiftOverlapValidator(),
            MaxConsecutiveDaysValidator(),
            WeekendOffValidator(),
            CoverageValidator(),
        ]

    def validate_month(
        self,
        schedule: MonthSchedule,
        staff_rules=(),
        org_rules: Optional[OrganizationScheduleRule] = None,
        time_off: Iterable[TimeOffRequest] = (),
        day_rules: Iterable[CoverageDayRule] = (),
        overrides: Iterable[CoverageDateOverride] = (),
        max_workers: Optional[int] = None,
    ) -> ValidationReport:
        """
        Run all validators over one month.

        Args:
            schedule: Shifts and assignments of the month
            staff_rules: StaffScheduleRule list, or a mapping of staff_id to rule
            org_rules: Organization settings; defaults apply when missing
            time_off: Time-off requests of the assigned staff (only APPROVED ones block)
            day_rules: Weekday coverage rules
            overrides: Date coverage overrides
            max_workers: Run validators on a thread pool of this size when > 1

        Returns:
            ValidationReport with errors and warnings in (date, staff, rule, message) order
        """
        if isinstance(staff_rules, Mapping):
            rules_by_staff = dict(staff_rules)
        else:
            rules_by_staff = {rule.staff_id: rule for rule in staff_rules}

        context = ValidationContext(
            schedule=schedule,
            staff_rules=rules_by_staff,
            org_rules=org_rules or OrganizationScheduleRule(organization_id=schedule.organization_id),
            time_off=list(time_off),
            day_rules=list(day_rules),
            overrides=list(overrides),
        )

        if max_workers and max_workers > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                partials = list(pool.map(lambda v: self._run_validator(v, context), self.validators))
        else:
            partials = [self._run_validator(v, context) for v in self.validators]

        report = ValidationReport()
        for partial in partials:
            report.merge(partial)
        report.sort()

        logging.debug(
            f"Validated {schedule.organization_id} {schedule.month:%Y-%m}: "
            f"{report.error_count} errors, {report.warning_count} warnings"
        )
        return report

    def validate_snapshot(self, snapshot: ScheduleSnapshot, max_workers: Optional[int] = None) -> ValidationReport:
        return self.validate_month(
            snapshot.schedule,
            staff_rules=snapshot.staff_rules,
            org_rules=snapshot.org_rules,
            time_off=snapshot.time_off,
            day_rules=snapshot.day_rules,
            overrides=snapshot.overrides,
            max_workers=max_workers,
        )

    @staticmethod
    def _run_validator(validator: BaseValidator, context: ValidationContext) -> ValidationReport:
        partial = ValidationReport()
        validator.validate(context, partial)
        return partial

    @classmethod
    def build_snapshot(
        cls,
        organization_id: str,
        month,
        shifts: list[dict],
        staff_rules: Optional[list[dict]] = None,
        org_rules: Optional[dict] = None,
        time_off: Optional[list[dict]] = None,
        day_rules: Optional[list[dict]] = None,
        overrides: Optional[list[dict]] = None,
    ) -> ScheduleSnapshot:
        """
        Build a snapshot from stored records.

        Args:
            organization_id: Owning organization
            month: "YYYY-MM", "YYYY-MM-DD" or a date inside the month
            shifts: Shift records, each with an "assignments" list of {"staff_id"}
            staff_rules: Staff rule records
            org_rules: Organization rule record, or None for defaults
            time_off: Time-off records
            day_rules: Weekday coverage rule records
            overrides: Date override records
        """
        try:
            month_start = parse_month(month)
        except (TypeError, ValueError):
            raise InvalidInput(f"Invalid month '{month}'. Use YYYY-MM")

        shift_defs = []
        assignments = []
        for record in shifts:
            shift = ShiftDefinition.from_record(record)
            shift_defs.append(shift)
            for assignment in record.get("assignments") or []:
                assignments.append(ShiftAssignment(
                    shift_id=shift.shift_id,
                    staff_id=assignment.get("staff_id") or "",
                ))

        schedule = MonthSchedule(
            organization_id=organization_id,
            month=month_start,
            shifts=tuple(shift_defs),
            assignments=tuple(assignments),
        )

        return ScheduleSnapshot(
            schedule=schedule,
            staff_rules=tuple(StaffScheduleRule.from_record(r) for r in staff_rules or []),
            org_rules=OrganizationScheduleRule.from_record(org_rules) if org_rules else None,
            time_off=tuple(TimeOffRequest.from_record(r) for r in time_off or []),
            day_rules=tuple(CoverageDayRule.from_record(r) for r in day_rules or []),
            overrides=tuple(CoverageDateOverride.from_record(r) for r in overrides or []),
        )
