from .database import init_db, get_database, close_db
from .models import (
    StaffDoc,
    ScheduleMonthDoc,
    ShiftDoc,
    ShiftAssignmentEmbed,
    CoverageDayRuleDoc,
    CoverageDateOverrideDoc,
    StaffScheduleRuleDoc,
    OrganizationScheduleRuleDoc,
    TimeOffDoc,
    VacationBalanceDoc,
    UserDoc,
)
from .loader import load_month_snapshot

__all__ = [
    "init_db",
    "get_database",
    "close_db",
    "StaffDoc",
    "ScheduleMonthDoc",
    "ShiftDoc",
    "ShiftAssignmentEmbed",
    "CoverageDayRuleDoc",
    "CoverageDateOverrideDoc",
    "StaffScheduleRuleDoc",
    "OrganizationScheduleRuleDoc",
    "TimeOffDoc",
    "VacationBalanceDoc",
    "UserDoc",
    "load_month_snapshot",
]
