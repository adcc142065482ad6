"""
Loads everything the rule engine needs for one month in a single pass.

The engine itself never touches the database; handlers call
`load_month_snapshot` once and validate the returned snapshot.
"""

import logging
from typing import Optional

from beanie.operators import GTE, LTE, In

from compliance import InvalidInput, NotFound, ScheduleRuleEngine, ScheduleSnapshot
from utils import month_end, parse_month

from .models import (
    CoverageDateOverrideDoc,
    CoverageDayRuleDoc,
    OrganizationScheduleRuleDoc,
    ScheduleMonthDoc,
    ShiftDoc,
    StaffScheduleRuleDoc,
    TimeOffDoc,
)


def _id(doc) -> Optional[str]:
    return str(doc.id) if doc.id is not None else None


def shift_record(doc) -> dict:
    return {
        "id": _id(doc),
        "date": doc.date,
        "shift_code": doc.shift_code,
        "start_time": doc.start_time,
        "end_time": doc.end_time,
        "station": doc.station,
        "assignments": [{"staff_id": a.staff_id} for a in doc.assignments],
    }


def staff_rule_record(doc) -> dict:
    return {
        "staff_id": doc.staff_id,
        "allowed_shift_codes": doc.allowed_shift_codes,
        "rotation_mode": doc.rotation_mode,
        "preferred_days_off": doc.preferred_days_off,
        "max_consecutive_days": doc.max_consecutive_days,
        "requires_weekend_off_per_month": doc.requires_weekend_off_per_month,
    }


def org_rule_record(doc) -> dict:
    return {
        "organization_id": doc.organization_id,
        "weekend_definition": doc.weekend_definition,
        "enforce_weekend_off_hard": doc.enforce_weekend_off_hard,
        "rotation_enabled": doc.rotation_enabled,
    }


def time_off_record(doc) -> dict:
    return {
        "id": _id(doc),
        "staff_id": doc.staff_id,
        "type": doc.type,
        "start_date": doc.start_date,
        "end_date": doc.end_date,
        "status": doc.status,
        "notes": doc.notes,
        "created_by": doc.created_by,
        "approved_by": doc.approved_by,
        "day_count": doc.day_count,
    }


def day_rule_record(doc) -> dict:
    return {
        "id": _id(doc),
        "weekday": doc.weekday,
        "shift_code": doc.shift_code,
        "required_staff": doc.required_staff,
        "station": doc.station,
        "active": doc.active,
    }


def override_record(doc) -> dict:
    return {
        "id": _id(doc),
        "date": doc.date,
        "shift_code": doc.shift_code,
        "required_staff": doc.required_staff,
        "station": doc.station,
        "reason": doc.reason,
    }


async def load_month_snapshot(organization_id: str, month) -> ScheduleSnapshot:
    """
    Read one month of schedule data for an organization.

    Args:
        organization_id: Owning organization
        month: "YYYY-MM", "YYYY-MM-DD" or a date inside the month

    Raises:
        InvalidInput: month cannot be parsed
        NotFound: the organization has no schedule for the month
    """
    try:
        month_start = parse_month(month)
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid month '{month}'. Use YYYY-MM")
    first_day = month_start.isoformat()
    last_day = month_end(month_start).isoformat()

    month_doc = await ScheduleMonthDoc.find_one(
        ScheduleMonthDoc.organization_id == organization_id,
        ScheduleMonthDoc.month == first_day,
    )
    if not month_doc:
        raise NotFound(f"No schedule for {month_start:%Y-%m}")

    shifts = await ShiftDoc.find(ShiftDoc.schedule_month_id == str(month_doc.id)).to_list()
    shift_records = [shift_record(s) for s in shifts]
    staff_ids = sorted({a["staff_id"] for s in shift_records for a in s["assignments"]})

    staff_rules = await StaffScheduleRuleDoc.find(
        StaffScheduleRuleDoc.organization_id == organization_id,
        In(StaffScheduleRuleDoc.staff_id, staff_ids),
    ).to_list()
    org_rules = await OrganizationScheduleRuleDoc.find_one(
        OrganizationScheduleRuleDoc.organization_id == organization_id
    )
    time_off = await TimeOffDoc.find(
        TimeOffDoc.organization_id == organization_id,
        In(TimeOffDoc.staff_id, staff_ids),
        LTE(TimeOffDoc.start_date, last_day),
        GTE(TimeOffDoc.end_date, first_day),
    ).to_list()
    day_rules = await CoverageDayRuleDoc.find(
        CoverageDayRuleDoc.organization_id == organization_id
    ).to_list()
    overrides = await CoverageDateOverrideDoc.find(
        CoverageDateOverrideDoc.organization_id == organization_id,
        GTE(CoverageDateOverrideDoc.date, first_day),
        LTE(CoverageDateOverrideDoc.date, last_day),
    ).to_list()

    logging.debug(
        f"Loaded {organization_id} {month_start:%Y-%m}: {len(shift_records)} shifts, "
        f"{len(staff_ids)} staff, {len(time_off)} time off, "
        f"{len(day_rules)} coverage rules, {len(overrides)} overrides"
    )

    return ScheduleRuleEngine.build_snapshot(
        organization_id=organization_id,
        month=month_start,
        shifts=shift_records,
        staff_rules=[staff_rule_record(r) for r in staff_rules],
        org_rules=org_rule_record(org_rules) if org_rules else None,
        time_off=[time_off_record(t) for t in time_off],
        day_rules=[day_rule_record(r) for r in day_rules],
        overrides=[override_record(o) for o in overrides],
    )
