"""Type definitions for the compliance module."""

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Any, Optional

from utils import iter_dates, month_end, to_date, to_time

from .errors import InvalidInput, NotFound


class Severity(str, Enum):
    """Severity levels for findings."""
    ERROR = "error"  # Blocks publishing
    WARNING = "warning"  # Reported, never blocks


class RuleId(str, Enum):
    """Rules a finding can be raised against."""
    ALLOWED_SHIFT_CODE = "ALLOWED_SHIFT_CODE"
    TIME_OFF_CONFLICT = "TIME_OFF_CONFLICT"
    SHIFT_OVERLAP = "SHIFT_OVERLAP"
    MAX_CONSECUTIVE_DAYS = "MAX_CONSECUTIVE_DAYS"
    WEEKEND_OFF = "WEEKEND_OFF"
    COVERAGE_GAP = "COVERAGE_GAP"
    DUPLICATE_COVERAGE_RULE = "DUPLICATE_COVERAGE_RULE"


class RotationMode(str, Enum):
    NONE = "NONE"
    FIXED = "FIXED"
    ROTATING = "ROTATING"


class WeekendDefinition(str, Enum):
    """Which weekdays an organization counts as the weekend."""
    SAT_SUN = "SAT_SUN"
    FRI_SAT = "FRI_SAT"
    FRI_SAT_SUN = "FRI_SAT_SUN"
    SUN = "SUN"


class TimeOffType(str, Enum):
    VACATION = "VACATION"
    SICK_LEAVE = "SICK_LEAVE"
    OTHER = "OTHER"


class TimeOffStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class VacationPolicy(str, Enum):
    """How days in a time-off range are counted."""
    CALENDAR = "CALENDAR"  # every day in the range
    BUSINESS = "BUSINESS"  # Monday to Friday only


def coerce_enum(enum_cls, value, field_name: str):
    """Convert a raw value to `enum_cls`, raising InvalidInput on unknown values."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidInput(f"Invalid {field_name} '{value}'. Expected one of: {allowed}")


def parse_date(value, field_name: str) -> date:
    """Parse an ISO date, raising InvalidInput instead of ValueError."""
    try:
        return to_date(value)
    except ValueError:
        raise InvalidInput(f"Invalid {field_name} '{value}'. Use YYYY-MM-DD")


def parse_time(value, field_name: str) -> time:
    """Parse an "HH:MM" time, raising InvalidInput instead of ValueError."""
    try:
        return to_time(value)
    except ValueError:
        raise InvalidInput(f"Invalid {field_name} '{value}'. Use HH:MM")


def normalize_station(station: Optional[str]) -> Optional[str]:
    """An absent or blank station is the same as no station."""
    if station is None:
        return None
    station = str(station).strip()
    return station or None


@dataclass(frozen=True)
class ShiftDefinition:
    """A dated slot with a shift code and a same-day time window."""
    shift_id: str
    date: date
    shift_code: str
    start_time: time
    end_time: time
    station: Optional[str] = None

    def __post_init__(self):
        if not self.shift_code:
            raise InvalidInput(f"Shift {self.shift_id} has no shift code")
        if self.end_time <= self.start_time:
            raise InvalidInput(
                f"Shift {self.shift_id} ends at {self.end_time:%H:%M}, "
                f"which is not after its start {self.start_time:%H:%M}"
            )
        object.__setattr__(self, "station", normalize_station(self.station))

    @property
    def coverage_key(self) -> tuple:
        return (self.date, self.shift_code, self.station)

    def overlaps(self, start_time: time, end_time: time) -> bool:
        """Strict interval overlap; touching endpoints do not overlap."""
        return self.start_time < end_time and self.end_time > start_time

    @classmethod
    def from_record(cls, record: dict) -> "ShiftDefinition":
        """Create from a stored shift record (ISO date, "HH:MM" times)."""
        shift_id = record.get("shift_id") or record.get("id")
        if not shift_id:
            raise InvalidInput("Shift record has no id")
        return cls(
            shift_id=str(shift_id),
            date=parse_date(record.get("date"), "date"),
            shift_code=record.get("shift_code") or "",
            start_time=parse_time(record.get("start_time"), "start_time"),
            end_time=parse_time(record.get("end_time"), "end_time"),
            station=record.get("station"),
        )


@dataclass(frozen=True)
class ShiftAssignment:
    """One staff member placed on one shift."""
    shift_id: str
    staff_id: str


@dataclass(frozen=True)
class MonthSchedule:
    """All shifts and assignments of one organization for one calendar month."""
    organization_id: str
    month: date
    shifts: tuple[ShiftDefinition, ...] = ()
    assignments: tuple[ShiftAssignment, ...] = ()
    _shift_index: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "month", self.month.replace(day=1))
        object.__setattr__(self, "shifts", tuple(self.shifts))
        object.__setattr__(self, "assignments", tuple(self.assignments))

        last_day = self.month_end
        for shift in self.shifts:
            if shift.shift_id in self._shift_index:
                raise InvalidInput(f"Duplicate shift id {shift.shift_id}")
            if not self.month <= shift.date <= last_day:
                raise InvalidInput(
                    f"Shift {shift.shift_id} on {shift.date.isoformat()} is outside "
                    f"month {self.month:%Y-%m}"
                )
            self._shift_index[shift.shift_id] = shift

        for assignment in self.assignments:
            if not assignment.staff_id:
                raise InvalidInput(f"Assignment on shift {assignment.shift_id} has no staff id")
            if assignment.shift_id not in self._shift_index:
                raise InvalidInput(f"Assignment references unknown shift {assignment.shift_id}")

    @property
    def month_end(self) -> date:
        return month_end(self.month)

    def dates(self) -> list[date]:
        """Every calendar date of the month."""
        return list(iter_dates(self.month, self.month_end))

    def shift(self, shift_id: str) -> ShiftDefinition:
        try:
            return self._shift_index[shift_id]
        except KeyError:
            raise NotFound(f"Shift {shift_id} not found")

    def staff_ids(self) -> list[str]:
        """Staff with at least one assignment, sorted."""
        return sorted({a.staff_id for a in self.assignments})

    def shifts_for(self, staff_id: str) -> list[ShiftDefinition]:
        """Distinct shifts a staff member is assigned to, ordered by date and start."""
        shift_ids = {a.shift_id for a in self.assignments if a.staff_id == staff_id}
        shifts = [self._shift_index[shift_id] for shift_id in shift_ids]
        return sorted(shifts, key=lambda s: (s.date, s.start_time, s.shift_id))

    def assigned_count(self) -> dict[tuple, int]:
        """Number of assignments per (date, shift code, station)."""
        counts: dict[tuple, int] = {}
        for assignment in self.assignments:
            key = self._shift_index[assignment.shift_id].coverage_key
            counts[key] = counts.get(key, 0) + 1
        return counts


@dataclass(frozen=True)
class CoverageDayRule:
    """Required headcount for a shift code (and optional station) on a weekday.

    Weekday numbering: 0 = Sunday ... 6 = Saturday.
    """
    weekday: int
    shift_code: str
    required_staff: int
    station: Optional[str] = None
    active: bool = True
    rule_id: Optional[str] = None

    def __post_init__(self):
        if not 0 <= self.weekday <= 6:
            raise InvalidInput(f"Weekday must be between 0 and 6, got {self.weekday}")
        if self.required_staff < 0:
            raise InvalidInput(f"Required staff cannot be negative, got {self.required_staff}")
        object.__setattr__(self, "station", normalize_station(self.station))

    @property
    def key(self) -> tuple:
        return (self.weekday, self.shift_code, self.station)

    @classmethod
    def from_record(cls, record: dict) -> "CoverageDayRule":
        try:
            weekday = int(record.get("weekday"))
            required = int(record.get("required_staff") or 0)
        except (TypeError, ValueError):
            raise InvalidInput(f"Invalid coverage rule {record!r}")
        active = record.get("active")
        return cls(
            weekday=weekday,
            shift_code=record.get("shift_code") or "",
            required_staff=required,
            station=record.get("station"),
            active=True if active is None else bool(active),
            rule_id=record.get("id"),
        )


@dataclass(frozen=True)
class CoverageDateOverride:
    """Required headcount for a specific date; replaces the weekday rule."""
    date: date
    shift_code: str
    required_staff: int
    station: Optional[str] = None
    reason: Optional[str] = None
    override_id: Optional[str] = None

    def __post_init__(self):
        if self.required_staff < 0:
            raise InvalidInput(f"Required staff cannot be negative, got {self.required_staff}")
        object.__setattr__(self, "station", normalize_station(self.station))

    @property
    def key(self) -> tuple:
        return (self.date, self.shift_code, self.station)

    @classmethod
    def from_record(cls, record: dict) -> "CoverageDateOverride":
        try:
            required = int(record.get("required_staff") or 0)
        except (TypeError, ValueError):
            raise InvalidInput(f"Invalid coverage override {record!r}")
        return cls(
            date=parse_date(record.get("date"), "date"),
            shift_code=record.get("shift_code") or "",
            required_staff=required,
            station=record.get("station"),
            reason=record.get("reason"),
            override_id=record.get("id"),
        )


@dataclass(frozen=True)
class StaffScheduleRule:
    """Per-staff scheduling constraints."""
    staff_id: str
    allowed_shift_codes: tuple[str, ...] = ()  # empty means unrestricted
    rotation_mode: RotationMode = RotationMode.NONE
    preferred_days_off: tuple[str, ...] = ()
    max_consecutive_days: Optional[int] = None  # None or 0 means no limit
    requires_weekend_off_per_month: bool = True

    @classmethod
    def from_record(cls, record: dict) -> "StaffScheduleRule":
        max_days = record.get("max_consecutive_days")
        requires_weekend_off = record.get("requires_weekend_off_per_month")
        return cls(
            staff_id=record.get("staff_id") or "",
            allowed_shift_codes=tuple(record.get("allowed_shift_codes") or ()),
            rotation_mode=coerce_enum(RotationMode, record.get("rotation_mode") or "NONE", "rotation_mode"),
            preferred_days_off=tuple(record.get("preferred_days_off") or ()),
            max_consecutive_days=int(max_days) if max_days is not None else None,
            requires_weekend_off_per_month=True if requires_weekend_off is None else bool(requires_weekend_off),
        )

    def to_dict(self) -> dict:
        return {
            "staff_id": self.staff_id,
            "allowed_shift_codes": list(self.allowed_shift_codes),
            "rotation_mode": self.rotation_mode.value,
            "preferred_days_off": list(self.preferred_days_off),
            "max_consecutive_days": self.max_consecutive_days,
            "requires_weekend_off_per_month": self.requires_weekend_off_per_month,
        }


@dataclass(frozen=True)
class OrganizationScheduleRule:
    """Organization-wide scheduling settings."""
    organization_id: Optional[str] = None
    weekend_definition: WeekendDefinition = WeekendDefinition.SAT_SUN
    enforce_weekend_off_hard: bool = True
    rotation_enabled: bool = False

    @classmethod
    def from_record(cls, record: dict) -> "OrganizationScheduleRule":
        enforce = record.get("enforce_weekend_off_hard")
        return cls(
            organization_id=record.get("organization_id"),
            weekend_definition=coerce_enum(
                WeekendDefinition, record.get("weekend_definition") or "SAT_SUN", "weekend_definition"
            ),
            enforce_weekend_off_hard=True if enforce is None else bool(enforce),
            rotation_enabled=bool(record.get("rotation_enabled")),
        )

    def to_dict(self) -> dict:
        return {
            "organization_id": self.organization_id,
            "weekend_definition": self.weekend_definition.value,
            "enforce_weekend_off_hard": self.enforce_weekend_off_hard,
            "rotation_enabled": self.rotation_enabled,
        }


@dataclass(frozen=True)
class TimeOffRequest:
    """A staff member's request to be away over an inclusive date range."""
    request_id: str
    staff_id: str
    type: TimeOffType
    start_date: date
    end_date: date
    status: TimeOffStatus = TimeOffStatus.PENDING
    notes: Optional[str] = None
    created_by: Optional[str] = None
    approved_by: Optional[str] = None
    day_count: Optional[int] = None  # set on approval

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise InvalidInput("start_date must not be after end_date")

    @property
    def is_terminal(self) -> bool:
        return self.status != TimeOffStatus.PENDING

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    @classmethod
    def from_record(cls, record: dict) -> "TimeOffRequest":
        return cls(
            request_id=str(record.get("request_id") or record.get("id") or ""),
            staff_id=record.get("staff_id") or "",
            type=coerce_enum(TimeOffType, record.get("type"), "type"),
            start_date=parse_date(record.get("start_date"), "start_date"),
            end_date=parse_date(record.get("end_date"), "end_date"),
            status=coerce_enum(TimeOffStatus, record.get("status") or "PENDING", "status"),
            notes=record.get("notes"),
            created_by=record.get("created_by"),
            approved_by=record.get("approved_by"),
            day_count=record.get("day_count"),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "id": self.request_id,
            "staff_id": self.staff_id,
            "type": self.type.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status.value,
            "notes": self.notes,
            "created_by": self.created_by,
            "approved_by": self.approved_by,
            "day_count": self.day_count,
        }


@dataclass
class ValidationFinding:
    """A single rule finding. Errors block publishing, warnings never do."""
    severity: Severity
    rule_id: RuleId
    message: str
    date: Optional[date] = None
    staff_id: Optional[str] = None
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def sort_key(self) -> tuple:
        return (
            self.date.isoformat() if self.date else "",
            self.staff_id or "",
            self.rule_id.value,
            self.message,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "severity": self.severity.value,
            "rule_id": self.rule_id.value,
            "staff_id": self.staff_id,
            "date": self.date.isoformat() if self.date else None,
            "message": self.message,
            "context": self.context,
        }


@dataclass
class ValidationReport:
    """Findings of one validation run, partitioned by severity."""
    errors: list[ValidationFinding] = field(default_factory=list)
    warnings: list[ValidationFinding] = field(default_factory=list)

    def add_finding(self, finding: ValidationFinding):
        """Add a finding to the matching partition."""
        if finding.severity == Severity.ERROR:
            self.errors.append(finding)
        else:
            self.warnings.append(finding)

    def extend(self, findings):
        for finding in findings:
            self.add_finding(finding)

    def merge(self, other: "ValidationReport"):
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    def sort(self):
        """Order both partitions by (date, staff, rule, message)."""
        self.errors.sort(key=lambda f: f.sort_key)
        self.warnings.sort(key=lambda f: f.sort_key)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "errors": [f.to_dict() for f in self.errors],
            "warnings": [f.to_dict() for f in self.warnings],
        }


@dataclass(frozen=True)
class ScheduleSnapshot:
    """Everything needed to validate one month, loaded in a single read."""
    schedule: MonthSchedule
    staff_rules: tuple[StaffScheduleRule, ...] = ()
    org_rules: Optional[OrganizationScheduleRule] = None
    time_off: tuple[TimeOffRequest, ...] = ()
    day_rules: tuple[CoverageDayRule, ...] = ()
    overrides: tuple[CoverageDateOverride, ...] = ()
