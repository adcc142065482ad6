"""Schedule rule validators."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from .conflicts import ConflictDetector
from .coverage import CoverageResolver
from .types import (
    CoverageDateOverride,
    CoverageDayRule,
    MonthSchedule,
    OrganizationScheduleRule,
    RuleId,
    Severity,
    StaffScheduleRule,
    TimeOffRequest,
    ValidationFinding,
    ValidationReport,
)
from .weekend import has_full_weekend_off


@dataclass
class ValidationContext:
    """Inputs for one validation run, plus the lookups derived from them."""
    schedule: MonthSchedule
    staff_rules: dict[str, StaffScheduleRule]  # staff_id -> rule
    org_rules: OrganizationScheduleRule
    time_off: list[TimeOffRequest] = field(default_factory=list)
    day_rules: list[CoverageDayRule] = field(default_factory=list)
    overrides: list[CoverageDateOverride] = field(default_factory=list)
    conflicts: ConflictDetector = field(init=False)
    coverage: CoverageResolver = field(init=False)

    def __post_init__(self):
        # Built eagerly so validators running on worker threads only read.
        self.conflicts = ConflictDetector(self.schedule, self.time_off)
        self.coverage = CoverageResolver(self.day_rules, self.overrides)

    def rule_for(self, staff_id: str) -> Optional[StaffScheduleRule]:
        return self.staff_rules.get(staff_id)


class BaseValidator(ABC):
    """Base class for schedule validators."""

    @abstractmethod
    def validate(self, context: ValidationContext, result: ValidationReport) -> None:
        """Validate the month and add findings to result."""
        pass


class AllowedShiftCodesValidator(BaseValidator):
    """Staff may only work shift codes in their allow-list, when they have one."""

    def validate(self, context: ValidationContext, result: ValidationReport) -> None:
        for staff_id in context.schedule.staff_ids():
            rule = context.rule_for(staff_id)
            if not rule or not rule.allowed_shift_codes:
                continue

            for shift in context.schedule.shifts_for(staff_id):
                if shift.shift_code in rule.allowed_shift_codes:
                    continue
                result.add_finding(ValidationFinding(
                    severity=Severity.ERROR,
                    rule_id=RuleId.ALLOWED_SHIFT_CODE,
                    staff_id=staff_id,
                    date=shift.date,
                    message=f"Staff {staff_id} is not allowed to work shift {shift.shift_code} on {shift.date.isoformat()}",
                    context={
                        "shift_id": shift.shift_id,
                        "shift_code": shift.shift_code,
                        "allowed_shift_codes": list(rule.allowed_shift_codes),
                        "rotation_mode": rule.rotation_mode.value,
                    },
                ))


class TimeOffConflictValidator(BaseValidator):
    """Nobody works a day covered by their approved time off."""

    def validate(self, context: ValidationContext, result: ValidationReport) -> None:
        for staff_id in context.schedule.staff_ids():
            for shift in context.schedule.shifts_for(staff_id):
                conflicts = context.conflicts.time_off_conflicts(staff_id, shift.date)
                if not conflicts:
                    continue
                kind = conflicts[0].type.value.lower().replace("_", " ")
                result.add_finding(ValidationFinding(
                    severity=Severity.ERROR,
                    rule_id=RuleId.TIME_OFF_CONFLICT,
                    staff_id=staff_id,
                    date=shift.date,
                    message=f"Staff {staff_id} has approved {kind} time off on {shift.date.isoformat()}",
                    context={
                        "shift_id": shift.shift_id,
                        "time_off_ids": [r.request_id for r in conflicts],
                    },
                ))


class ShiftOverlapValidator(BaseValidator):
    """A staff member cannot hold two overlapping shifts on the same day."""

    def validate(self, context: ValidationContext, result: ValidationReport) -> None:
        for staff_id in context.schedule.staff_ids():
            reported = set()
            for shift in context.schedule.shifts_for(staff_id):
                overlaps = context.conflicts.shift_overlaps(
                    staff_id, shift.date, shift.start_time, shift.end_time, exclude_shift_id=shift.shift_id
                )
                for other in overlaps:
                    # Each pair once, not once from each side
                    pair = frozenset({shift.shift_id, other.shift_id})
                    if pair in reported:
                        continue
                    reported.add(pair)
                    first, second = sorted([shift, other], key=lambda s: (s.start_time, s.shift_id))
                    result.add_finding(ValidationFinding(
                        severity=Severity.ERROR,
                        rule_id=RuleId.SHIFT_OVERLAP,
                        staff_id=staff_id,
                        date=shift.date,
                        message=(
                            f"Staff {staff_id} has overlapping shifts on {shift.date.isoformat()}: "
                            f"{first.shift_code} {first.start_time:%H:%M}-{first.end_time:%H:%M} and "
                            f"{second.shift_code} {second.start_time:%H:%M}-{second.end_time:%H:%M}"
                        ),
                        context={"shift_ids": [first.shift_id, second.shift_id]},
                    ))


def longest_consecutive_run(days) -> tuple[Optional[date], int]:
    """Start and length of the longest run of consecutive dates. Earliest run wins ties."""
    best_start, best_length = None, 0
    run_start, run_length, previous = None, 0, None
    for day in sorted(set(days)):
        if previous is not None and day - previous == timedelta(days=1):
            run_length += 1
        else:
            run_start, run_length = day, 1
        if run_length > best_length:
            best_start, best_length = run_start, run_length
        previous = day
    return best_start, best_length


class MaxConsecutiveDaysValidator(BaseValidator):
    """Limits how many days in a row a staff member works within the month."""

    def validate(self, context: ValidationContext, result: ValidationReport) -> None:
        for staff_id in context.schedule.staff_ids():
            rule = context.rule_for(staff_id)
            limit = rule.max_consecutive_days if rule else None
            if not limit:
                continue

            worked = [shift.date for shift in context.schedule.shifts_for(staff_id)]
            run_start, run_length = longest_consecutive_run(worked)
            if run_length <= limit:
                continue

            result.add_finding(ValidationFinding(
                severity=Severity.ERROR,
                rule_id=RuleId.MAX_CONSECUTIVE_DAYS,
                staff_id=staff_id,
                date=run_start,
                message=f"Staff {staff_id} works {run_length} consecutive days from {run_start.isoformat()}, max is {limit}",
                context={
                    "longest_run": run_length,
                    "max_allowed": limit,
                    "run_start": run_start.isoformat(),
                    "run_end": (run_start + timedelta(days=run_length - 1)).isoformat(),
                },
            ))


class WeekendOffValidator(BaseValidator):
    """Each staff member keeps at least one whole weekend of the month free."""

    def validate(self, context: ValidationContext, result: ValidationReport) -> None:
        org_rules = context.org_rules
        severity = Severity.ERROR if org_rules.enforce_weekend_off_hard else Severity.WARNING

        for staff_id in context.schedule.staff_ids():
            rule = context.rule_for(staff_id)
            if rule and not rule.requires_weekend_off_per_month:
                continue
            if has_full_weekend_off(context.schedule, staff_id, org_rules.weekend_definition):
                continue

            result.add_finding(ValidationFinding(
                severity=severity,
                rule_id=RuleId.WEEKEND_OFF,
                staff_id=staff_id,
                date=context.schedule.month,
                message=f"Staff {staff_id} has no full weekend off in {context.schedule.month:%Y-%m}",
                context={
                    "weekend_definition": org_rules.weekend_definition.value,
                    "enforced": org_rules.enforce_weekend_off_hard,
                },
            ))


class CoverageValidator(BaseValidator):
    """Reports understaffed slots and conflicting coverage configuration."""

    def validate(self, context: ValidationContext, result: ValidationReport) -> None:
        result.extend(context.coverage.configuration_findings(context.schedule))
        result.extend(context.coverage.coverage_gaps(context.schedule))
