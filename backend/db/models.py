from datetime import datetime
from typing import Literal, Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field
from pymongo import IndexModel

from utils import utc_now


# Stored as plain strings so documents stay readable in the shell
MonthStatus = Literal["DRAFT", "PUBLISHED"]
TimeOffTypeValue = Literal["VACATION", "SICK_LEAVE", "OTHER"]
TimeOffStatusValue = Literal["PENDING", "APPROVED", "REJECTED"]
RotationModeValue = Literal["NONE", "FIXED", "ROTATING"]
WeekendDefinitionValue = Literal["SAT_SUN", "FRI_SAT", "FRI_SAT_SUN", "SUN"]


class StaffDoc(Document):
    """Staff profile within an organization."""
    staff_id: Indexed(str)
    organization_id: Indexed(str)
    name: str
    active: bool = True
    vacation_days_per_year: int = 0  # contract allocation, seeds new vacation balances
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "staff"
        indexes = [
            IndexModel(
                [("organization_id", 1), ("staff_id", 1)],
                unique=True,
                name="unique_org_staff",
            ),
        ]


class ScheduleMonthDoc(Document):
    """
    One organization's schedule for one calendar month.
    Keyed by (organization_id, month).
    """
    organization_id: Indexed(str)
    month: str  # ISO first day of month: "2026-01-01"
    status: MonthStatus = "DRAFT"
    created_by: Optional[str] = None
    published_by: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "schedule_months"
        indexes = [
            IndexModel(
                [("organization_id", 1), ("month", 1)],
                unique=True,
                name="unique_org_month",
            ),
        ]


class ShiftAssignmentEmbed(BaseModel):
    staff_id: str


class ShiftDoc(Document):
    """A dated shift slot and the staff assigned to it."""
    schedule_month_id: Indexed(str)
    organization_id: str
    date: Indexed(str)  # ISO: "2026-01-20"
    shift_code: str
    start_time: str  # "07:00"
    end_time: str  # "15:00"
    station: Optional[str] = None
    assignments: list[ShiftAssignmentEmbed] = []
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "shifts"
        indexes = [
            IndexModel([("organization_id", 1), ("date", 1)]),
        ]


class CoverageDayRuleDoc(Document):
    """Required headcount per weekday (0 = Sunday), shift code and station."""
    organization_id: Indexed(str)
    weekday: int
    shift_code: str
    required_staff: int = 0
    station: Optional[str] = None
    active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "coverage_day_rules"
        indexes = [
            IndexModel([("organization_id", 1), ("weekday", 1), ("shift_code", 1)]),
        ]


class CoverageDateOverrideDoc(Document):
    """Required headcount for one date, replacing the weekday rule."""
    organization_id: Indexed(str)
    date: str  # ISO: "2026-12-24"
    shift_code: str
    required_staff: int = 0
    station: Optional[str] = None
    reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "coverage_date_overrides"
        indexes = [
            IndexModel([("organization_id", 1), ("date", 1)]),
        ]


class StaffScheduleRuleDoc(Document):
    """Per-staff scheduling constraints."""
    organization_id: Indexed(str)
    staff_id: Indexed(str)
    allowed_shift_codes: Optional[list[str]] = None  # None or [] means unrestricted
    rotation_mode: RotationModeValue = "NONE"
    preferred_days_off: Optional[list[str]] = None
    max_consecutive_days: Optional[int] = None
    requires_weekend_off_per_month: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "staff_schedule_rules"
        indexes = [
            IndexModel(
                [("organization_id", 1), ("staff_id", 1)],
                unique=True,
                name="unique_org_staff_rule",
            ),
        ]


class OrganizationScheduleRuleDoc(Document):
    """Organization-wide scheduling settings."""
    organization_id: Indexed(str, unique=True)
    weekend_definition: WeekendDefinitionValue = "SAT_SUN"
    enforce_weekend_off_hard: bool = True
    rotation_enabled: bool = False
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "organization_schedule_rules"


class TimeOffDoc(Document):
    """A staff member's time-off request."""
    organization_id: Indexed(str)
    staff_id: Indexed(str)
    type: TimeOffTypeValue
    start_date: str  # ISO: "2026-01-12"
    end_date: str  # ISO, inclusive
    status: TimeOffStatusValue = "PENDING"
    notes: Optional[str] = None
    created_by: Optional[str] = None
    approved_by: Optional[str] = None
    day_count: Optional[int] = None  # set on approval
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "time_off"
        indexes = [
            IndexModel([("organization_id", 1), ("staff_id", 1), ("start_date", 1), ("end_date", 1)]),
            IndexModel([("organization_id", 1), ("status", 1), ("created_at", -1)]),
        ]


class VacationBalanceDoc(Document):
    """Vacation days allocated and used by a staff member in one year."""
    organization_id: Indexed(str)
    staff_id: Indexed(str)
    year: int
    days_allocated: int = 0
    days_used: int = 0
    days_remaining: int = 0
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "vacation_balances"
        indexes = [
            IndexModel(
                [("organization_id", 1), ("staff_id", 1), ("year", 1)],
                unique=True,
                name="unique_org_staff_year",
            ),
        ]


# ============================================================================
# Authentication Models
# ============================================================================


class UserDoc(Document):
    """API user. Tokens carry the email as subject."""
    email: Indexed(str, unique=True)
    name: str
    role: str = "viewer"  # "admin", "editor", "viewer"
    organization_ids: list[str] = []
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    last_login_at: Optional[datetime] = None

    class Settings:
        name = "users"
        indexes = [
            IndexModel([("email", 1)], unique=True),
        ]
