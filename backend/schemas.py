from pydantic import BaseModel, Field

from compliance import RotationMode, VacationPolicy, WeekendDefinition


class ValidationFindingSchema(BaseModel):
    severity: str  # "error" | "warning"
    rule_id: str
    staff_id: str | None = None
    date: str | None = None  # ISO date string: "2026-01-04"
    message: str
    context: dict = {}


class ValidationReportSchema(BaseModel):
    errors: list[ValidationFindingSchema]
    warnings: list[ValidationFindingSchema]


class PublishResponse(BaseModel):
    success: bool
    month_id: str
    status: str
    warnings: list[ValidationFindingSchema] = []


class AssignmentsUpdateRequest(BaseModel):
    staff_ids: list[str]


class ShiftUpdateRequest(BaseModel):
    """Fields left out of the body keep their stored value."""
    date: str | None = None  # ISO date string
    start_time: str | None = None  # HH:MM
    end_time: str | None = None  # HH:MM
    shift_code: str | None = None
    station: str | None = None  # explicit null clears the station


class CoverageRuleInput(BaseModel):
    weekday: int = Field(ge=0, le=6)  # 0 = Sunday
    shift_code: str
    required_staff: int  # negative values are stored as 0
    station: str | None = None
    active: bool = True


class CoverageRulesUpdate(BaseModel):
    rules: list[CoverageRuleInput]


class CoverageOverrideInput(BaseModel):
    date: str  # ISO date string
    shift_code: str
    required_staff: int
    station: str | None = None
    reason: str | None = None


class StaffScheduleRuleUpdate(BaseModel):
    """Partial update. Explicit null clears the nullable fields."""
    allowed_shift_codes: list[str] | None = None
    rotation_mode: RotationMode | None = None
    preferred_days_off: list[str] | None = None
    max_consecutive_days: int | None = Field(default=None, ge=0)
    requires_weekend_off_per_month: bool | None = None


class OrganizationScheduleRuleUpdate(BaseModel):
    weekend_definition: WeekendDefinition | None = None
    enforce_weekend_off_hard: bool | None = None
    rotation_enabled: bool | None = None


class TimeOffCreateRequest(BaseModel):
    # Optional here so a missing field is reported by the lifecycle as a 400
    staff_id: str | None = None
    type: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    notes: str | None = None


class TimeOffApproveRequest(BaseModel):
    policy: VacationPolicy = VacationPolicy.CALENDAR
