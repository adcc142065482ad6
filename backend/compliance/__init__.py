"""Schedule compliance module: rule validation, coverage and time off."""

from .errors import (
    ComplianceError,
    ErrorKind,
    InvalidInput,
    InvalidState,
    NotFound,
)
from .types import (
    CoverageDateOverride,
    CoverageDayRule,
    MonthSchedule,
    OrganizationScheduleRule,
    RotationMode,
    RuleId,
    ScheduleSnapshot,
    Severity,
    ShiftAssignment,
    ShiftDefinition,
    StaffScheduleRule,
    TimeOffRequest,
    TimeOffStatus,
    TimeOffType,
    VacationPolicy,
    ValidationFinding,
    ValidationReport,
    WeekendDefinition,
)
from .conflicts import ConflictDetector
from .coverage import CoverageResolver
from .engine import ScheduleRuleEngine
from .time_off import (
    InMemoryTimeOffStore,
    TimeOffManager,
    approve_request,
    create_request,
    reject_request,
)
from .vacation import VacationBalance, count_days, update_vacation_balance
from .validators import BaseValidator, ValidationContext
from .weekend import has_full_weekend_off, is_weekend, weekend_runs

__all__ = [
    "ComplianceError",
    "ErrorKind",
    "InvalidInput",
    "InvalidState",
    "NotFound",
    "CoverageDateOverride",
    "CoverageDayRule",
    "MonthSchedule",
    "OrganizationScheduleRule",
    "RotationMode",
    "RuleId",
    "ScheduleSnapshot",
    "Severity",
    "ShiftAssignment",
    "ShiftDefinition",
    "StaffScheduleRule",
    "TimeOffRequest",
    "TimeOffStatus",
    "TimeOffType",
    "VacationPolicy",
    "ValidationFinding",
    "ValidationReport",
    "WeekendDefinition",
    "ConflictDetector",
    "CoverageResolver",
    "ScheduleRuleEngine",
    "InMemoryTimeOffStore",
    "TimeOffManager",
    "approve_request",
    "create_request",
    "reject_request",
    "VacationBalance",
    "count_days",
    "update_vacation_balance",
    "BaseValidator",
    "ValidationContext",
    "has_full_weekend_off",
    "is_weekend",
    "weekend_runs",
]
