import logging
from contextlib import asynccontextmanager

from beanie import PydanticObjectId
from beanie.operators import GTE, LTE, In, Set
from bson.errors import InvalidId
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.errors import PyMongoError
from dotenv import load_dotenv

from auth import get_current_user, organization_of, require_editor_or_admin, validate_auth_config
from compliance import (
    ComplianceError,
    ConflictDetector,
    ErrorKind,
    InvalidInput,
    InvalidState,
    ScheduleRuleEngine,
    ShiftDefinition,
    StaffScheduleRule,
    OrganizationScheduleRule,
    TimeOffRequest,
    TimeOffType,
    TimeOffStatus,
    ValidationReport,
    VacationPolicy,
    approve_request,
    create_request,
    reject_request,
    update_vacation_balance,
)
from compliance.types import normalize_station, parse_date
from db import (
    init_db,
    close_db,
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
from db.loader import (
    day_rule_record,
    load_month_snapshot,
    org_rule_record,
    override_record,
    shift_record,
    staff_rule_record,
    time_off_record,
)
from schemas import (
    AssignmentsUpdateRequest,
    CoverageOverrideInput,
    CoverageRulesUpdate,
    OrganizationScheduleRuleUpdate,
    PublishResponse,
    ShiftUpdateRequest,
    StaffScheduleRuleUpdate,
    TimeOffApproveRequest,
    TimeOffCreateRequest,
    ValidationReportSchema,
)
from utils import parse_month, setup_logging, utc_now

load_dotenv()

ERROR_STATUS_CODES = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_STATE: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    validate_auth_config()
    await init_db()
    yield
    await close_db()


app = FastAPI(title="shiftCompliance", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ComplianceError)
async def compliance_error_handler(request: Request, exc: ComplianceError):
    return JSONResponse(status_code=ERROR_STATUS_CODES[exc.kind], content={"detail": exc.message})


def _object_id(value: str, label: str) -> PydanticObjectId:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=404, detail=f"{label} not found")


def _partial_updates(request: BaseModel, nullable: frozenset = frozenset()) -> dict:
    """Fields present in the body. Null is kept only where it clears a nullable field."""
    updates = request.model_dump(mode="json", exclude_unset=True)
    return {key: value for key, value in updates.items() if value is not None or key in nullable}


async def _validate(organization_id: str, month: str) -> ValidationReport:
    snapshot = await load_month_snapshot(organization_id, month)
    return ScheduleRuleEngine().validate_snapshot(snapshot)


# ============================================================================
# Schedule Endpoints
# ============================================================================


async def _get_schedule_month(month_id: str, organization_id: str) -> ScheduleMonthDoc:
    month = await ScheduleMonthDoc.get(_object_id(month_id, "Schedule month"))
    if not month or month.organization_id != organization_id:
        raise HTTPException(status_code=404, detail="Schedule month not found")
    return month


async def _get_shift(shift_id: str, organization_id: str) -> ShiftDoc:
    shift = await ShiftDoc.get(_object_id(shift_id, "Shift"))
    if not shift or shift.organization_id != organization_id:
        raise HTTPException(status_code=404, detail="Shift not found")
    return shift


@app.post("/schedule/months/{month_id}/validate", response_model=ValidationReportSchema)
async def validate_schedule_month(month_id: str, current_user: UserDoc = Depends(get_current_user)):
    """Validate every assignment of a month against staff, organization and coverage rules."""
    organization_id = organization_of(current_user)
    month = await _get_schedule_month(month_id, organization_id)

    report = await _validate(organization_id, month.month)
    return report.to_dict()


@app.post("/schedule/months/{month_id}/publish", response_model=PublishResponse)
async def publish_schedule_month(month_id: str, current_user: UserDoc = Depends(require_editor_or_admin)):
    """Publish a month. Refused while the month has error findings; warnings never block."""
    organization_id = organization_of(current_user)
    month = await _get_schedule_month(month_id, organization_id)

    report = await _validate(organization_id, month.month)
    if report.errors:
        raise HTTPException(
            status_code=400,
            detail={"message": "Validation failed", **report.to_dict()},
        )

    await month.set({
        "status": "PUBLISHED",
        "published_by": str(current_user.id),
        "published_at": utc_now(),
        "updated_at": utc_now(),
    })
    logging.info(f"Published schedule {month.month} for {organization_id} with {report.warning_count} warnings")

    return {
        "success": True,
        "month_id": month_id,
        "status": "PUBLISHED",
        "warnings": report.to_dict()["warnings"],
    }


@app.put("/schedule/shifts/{shift_id}/assignments")
async def update_shift_assignments(
    shift_id: str,
    request: AssignmentsUpdateRequest,
    current_user: UserDoc = Depends(require_editor_or_admin),
):
    """Replace the staff assigned to a shift after checking time off and overlaps."""
    organization_id = organization_of(current_user)
    shift = await _get_shift(shift_id, organization_id)
    staff_ids = list(dict.fromkeys(s for s in request.staff_ids if s))

    if staff_ids:
        staff = await StaffDoc.find(
            StaffDoc.organization_id == organization_id,
            In(StaffDoc.staff_id, staff_ids),
        ).to_list()
        missing = sorted(set(staff_ids) - {s.staff_id for s in staff})
        if missing:
            raise HTTPException(status_code=404, detail=f"Staff not found: {', '.join(missing)}")

        snapshot = await load_month_snapshot(organization_id, shift.date)
        detector = ConflictDetector(snapshot.schedule, snapshot.time_off)
        shift_date = parse_date(shift.date, "date")

        for staff_id in staff_ids:
            if detector.time_off_conflicts(staff_id, shift_date):
                raise HTTPException(
                    status_code=400,
                    detail=f"Staff {staff_id} has approved time off on {shift.date}",
                )
            if detector.shift_overlaps(
                staff_id, shift_date, shift.start_time, shift.end_time, exclude_shift_id=shift_id
            ):
                raise HTTPException(
                    status_code=400,
                    detail=f"Staff {staff_id} already works an overlapping shift on {shift.date}",
                )

    await shift.set({
        "assignments": [ShiftAssignmentEmbed(staff_id=s) for s in staff_ids],
        "updated_at": utc_now(),
    })
    return {"success": True, "shift_id": shift_id, "staff_ids": staff_ids}


@app.patch("/schedule/shifts/{shift_id}")
async def update_shift(
    shift_id: str,
    request: ShiftUpdateRequest,
    current_user: UserDoc = Depends(require_editor_or_admin),
):
    """Edit a shift's date, times, code or station; assigned staff are re-checked."""
    organization_id = organization_of(current_user)
    shift = await _get_shift(shift_id, organization_id)
    updates = _partial_updates(request, nullable=frozenset({"station"}))
    if "station" in updates:
        updates["station"] = normalize_station(updates["station"])

    current = shift_record(shift)
    edited = ShiftDefinition.from_record({**current, **updates, "id": shift_id})
    if parse_month(edited.date) != parse_month(current["date"]):
        raise InvalidInput("A shift cannot be moved to another month")

    timing_changed = any(key in updates for key in ("date", "start_time", "end_time"))
    if timing_changed and shift.assignments:
        snapshot = await load_month_snapshot(organization_id, current["date"])
        detector = ConflictDetector(snapshot.schedule, snapshot.time_off)
        for assignment in shift.assignments:
            if detector.time_off_conflicts(assignment.staff_id, edited.date):
                raise HTTPException(
                    status_code=400,
                    detail=f"Staff {assignment.staff_id} has approved time off on {edited.date.isoformat()}",
                )
            if detector.shift_overlaps(
                assignment.staff_id, edited.date, edited.start_time, edited.end_time, exclude_shift_id=shift_id
            ):
                raise HTTPException(
                    status_code=400,
                    detail=f"Shift would overlap another shift of staff {assignment.staff_id}",
                )

    stored = {
        "date": edited.date.isoformat(),
        "start_time": edited.start_time.strftime("%H:%M"),
        "end_time": edited.end_time.strftime("%H:%M"),
        "shift_code": edited.shift_code,
        "station": edited.station,
    }
    await shift.set({**{key: stored[key] for key in updates}, "updated_at": utc_now()})

    return {"success": True, "shift": {**current, **stored}}


# ============================================================================
# Coverage Endpoints
# ============================================================================


@app.get("/schedule/coverage")
async def get_coverage(
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    current_user: UserDoc = Depends(get_current_user),
):
    """Weekday coverage rules and date overrides, overrides optionally limited to a date range."""
    organization_id = organization_of(current_user)

    conditions = [CoverageDateOverrideDoc.organization_id == organization_id]
    if date_from:
        conditions.append(GTE(CoverageDateOverrideDoc.date, parse_date(date_from, "from").isoformat()))
    if date_to:
        conditions.append(LTE(CoverageDateOverrideDoc.date, parse_date(date_to, "to").isoformat()))

    day_rules = await CoverageDayRuleDoc.find(
        CoverageDayRuleDoc.organization_id == organization_id
    ).sort("+weekday", "+shift_code").to_list()
    overrides = await CoverageDateOverrideDoc.find(*conditions).sort("+date", "+shift_code").to_list()

    return {
        "day_rules": [day_rule_record(r) for r in day_rules],
        "date_overrides": [override_record(o) for o in overrides],
    }


@app.put("/schedule/coverage")
async def replace_coverage_rules(
    request: CoverageRulesUpdate,
    current_user: UserDoc = Depends(require_editor_or_admin),
):
    """Replace the organization's whole set of weekday coverage rules."""
    organization_id = organization_of(current_user)

    rules = [
        {
            "weekday": r.weekday,
            "shift_code": r.shift_code,
            "required_staff": max(0, r.required_staff),
            "station": normalize_station(r.station),
            "active": r.active,
        }
        for r in request.rules
    ]

    await CoverageDayRuleDoc.find(CoverageDayRuleDoc.organization_id == organization_id).delete()
    if rules:
        try:
            await CoverageDayRuleDoc.insert_many([
                CoverageDayRuleDoc(organization_id=organization_id, **rule) for rule in rules
            ])
        except PyMongoError as e:
            logging.error(f"Coverage rules for {organization_id} were deleted but could not be re-inserted: {e}")
            raise HTTPException(status_code=500, detail="Failed to save coverage rules")

    logging.info(f"Replaced coverage rules for {organization_id}: {len(rules)} rules")
    return {"success": True, "day_rules": rules}


@app.post("/schedule/coverage/overrides", status_code=201)
async def create_coverage_override(
    request: CoverageOverrideInput,
    current_user: UserDoc = Depends(require_editor_or_admin),
):
    """Add a coverage requirement for one date."""
    organization_id = organization_of(current_user)

    override = {
        "date": parse_date(request.date, "date").isoformat(),
        "shift_code": request.shift_code,
        "required_staff": max(0, request.required_staff),
        "station": normalize_station(request.station),
        "reason": request.reason,
    }
    doc = CoverageDateOverrideDoc(organization_id=organization_id, **override)
    await doc.insert()

    return {"id": str(doc.id), **override}


# ============================================================================
# Rule Endpoints
# ============================================================================

STAFF_RULE_NULLABLE = frozenset({"allowed_shift_codes", "preferred_days_off", "max_consecutive_days"})


async def _get_staff(staff_id: str, organization_id: str) -> StaffDoc:
    staff = await StaffDoc.find_one(
        StaffDoc.organization_id == organization_id,
        StaffDoc.staff_id == staff_id,
    )
    if not staff:
        raise HTTPException(status_code=404, detail="Staff not found")
    return staff


@app.get("/schedule/rules/staff/{staff_id}")
async def get_staff_rules(staff_id: str, current_user: UserDoc = Depends(get_current_user)):
    """Staff rule, or the defaults when none is stored."""
    organization_id = organization_of(current_user)
    await _get_staff(staff_id, organization_id)

    rule = await StaffScheduleRuleDoc.find_one(
        StaffScheduleRuleDoc.organization_id == organization_id,
        StaffScheduleRuleDoc.staff_id == staff_id,
    )
    if not rule:
        return StaffScheduleRule(staff_id=staff_id).to_dict()
    return staff_rule_record(rule)


@app.put("/schedule/rules/staff/{staff_id}")
async def update_staff_rules(
    staff_id: str,
    request: StaffScheduleRuleUpdate,
    current_user: UserDoc = Depends(require_editor_or_admin),
):
    """Create or partially update a staff rule."""
    organization_id = organization_of(current_user)
    await _get_staff(staff_id, organization_id)
    updates = _partial_updates(request, nullable=STAFF_RULE_NULLABLE)

    rule = await StaffScheduleRuleDoc.find_one(
        StaffScheduleRuleDoc.organization_id == organization_id,
        StaffScheduleRuleDoc.staff_id == staff_id,
    )
    if rule:
        await rule.set({**updates, "updated_at": utc_now()})
    else:
        rule = StaffScheduleRuleDoc(organization_id=organization_id, staff_id=staff_id, **updates)
        await rule.insert()

    return staff_rule_record(rule)


@app.get("/schedule/rules/organization")
async def get_organization_rules(current_user: UserDoc = Depends(get_current_user)):
    """Organization rule, or the defaults when none is stored."""
    organization_id = organization_of(current_user)

    rule = await OrganizationScheduleRuleDoc.find_one(
        OrganizationScheduleRuleDoc.organization_id == organization_id
    )
    if not rule:
        return OrganizationScheduleRule(organization_id=organization_id).to_dict()
    return org_rule_record(rule)


@app.put("/schedule/rules/organization")
async def update_organization_rules(
    request: OrganizationScheduleRuleUpdate,
    current_user: UserDoc = Depends(require_editor_or_admin),
):
    """Create or partially update the organization rule."""
    organization_id = organization_of(current_user)
    updates = _partial_updates(request)

    rule = await OrganizationScheduleRuleDoc.find_one(
        OrganizationScheduleRuleDoc.organization_id == organization_id
    )
    if rule:
        await rule.set({**updates, "updated_at": utc_now()})
    else:
        rule = OrganizationScheduleRuleDoc(organization_id=organization_id, **updates)
        await rule.insert()

    return org_rule_record(rule)


# ============================================================================
# Time Off Endpoints
# ============================================================================


async def _get_time_off(time_off_id: str, organization_id: str) -> TimeOffDoc:
    doc = await TimeOffDoc.get(_object_id(time_off_id, "Time off request"))
    if not doc or doc.organization_id != organization_id:
        raise HTTPException(status_code=404, detail="Time off request not found")
    return doc


async def _finish_time_off(doc: TimeOffDoc, updated: TimeOffRequest):
    """Store a terminal transition only while the stored request is still PENDING."""
    result = await TimeOffDoc.find_one(
        TimeOffDoc.id == doc.id,
        TimeOffDoc.status == TimeOffStatus.PENDING.value,
    ).update(Set({
        "status": updated.status.value,
        "approved_by": updated.approved_by,
        "day_count": updated.day_count,
        "updated_at": utc_now(),
    }))
    if not result or not result.matched_count:
        raise InvalidState(f"Time off request {updated.request_id} is no longer PENDING")


async def _apply_vacation_balance(request: TimeOffRequest, organization_id: str):
    """Book an approved vacation's day count against the staff member's yearly balance."""
    year = request.start_date.year
    balance = await VacationBalanceDoc.find_one(
        VacationBalanceDoc.organization_id == organization_id,
        VacationBalanceDoc.staff_id == request.staff_id,
        VacationBalanceDoc.year == year,
    )

    if balance:
        updated = update_vacation_balance(year, balance.days_allocated, balance.days_used, request.day_count)
        await balance.set({
            "days_allocated": updated.days_allocated,
            "days_used": updated.days_used,
            "days_remaining": updated.days_remaining,
            "updated_at": utc_now(),
        })
    else:
        staff = await StaffDoc.find_one(
            StaffDoc.organization_id == organization_id,
            StaffDoc.staff_id == request.staff_id,
        )
        allocated = staff.vacation_days_per_year if staff else 0
        updated = update_vacation_balance(year, allocated, 0, request.day_count)
        await VacationBalanceDoc(
            organization_id=organization_id, staff_id=request.staff_id, **updated.to_dict()
        ).insert()

    logging.info(
        f"Vacation balance {request.staff_id} {year}: "
        f"{updated.days_used} used, {updated.days_remaining} remaining"
    )


@app.get("/time-off")
async def list_time_off(
    status: TimeOffStatus | None = None,
    current_user: UserDoc = Depends(get_current_user),
):
    """Time-off requests of the organization, newest first."""
    organization_id = organization_of(current_user)

    conditions = [TimeOffDoc.organization_id == organization_id]
    if status:
        conditions.append(TimeOffDoc.status == status.value)

    requests = await TimeOffDoc.find(*conditions).sort("-created_at").to_list()
    return [time_off_record(r) for r in requests]


@app.post("/time-off", status_code=201)
async def create_time_off(
    request: TimeOffCreateRequest,
    current_user: UserDoc = Depends(require_editor_or_admin),
):
    """File a PENDING time-off request."""
    organization_id = organization_of(current_user)
    record = create_request(
        request.staff_id,
        request.type,
        request.start_date,
        request.end_date,
        notes=request.notes,
        created_by=str(current_user.id),
    )
    await _get_staff(record.staff_id, organization_id)

    doc = TimeOffDoc(
        organization_id=organization_id,
        staff_id=record.staff_id,
        type=record.type.value,
        start_date=record.start_date.isoformat(),
        end_date=record.end_date.isoformat(),
        status=record.status.value,
        notes=record.notes,
        created_by=record.created_by,
    )
    await doc.insert()

    return {**record.to_dict(), "id": str(doc.id)}


@app.post("/time-off/{time_off_id}/approve")
async def approve_time_off(
    time_off_id: str,
    request: TimeOffApproveRequest | None = None,
    current_user: UserDoc = Depends(require_editor_or_admin),
):
    """Approve a PENDING request and count its days; vacations update the yearly balance."""
    organization_id = organization_of(current_user)
    doc = await _get_time_off(time_off_id, organization_id)
    policy = request.policy if request else VacationPolicy.CALENDAR

    approved = approve_request(TimeOffRequest.from_record(time_off_record(doc)), str(current_user.id), policy)
    await _finish_time_off(doc, approved)

    if approved.type == TimeOffType.VACATION:
        await _apply_vacation_balance(approved, organization_id)

    return approved.to_dict()


@app.post("/time-off/{time_off_id}/reject")
async def reject_time_off(
    time_off_id: str,
    current_user: UserDoc = Depends(require_editor_or_admin),
):
    """Reject a PENDING request."""
    organization_id = organization_of(current_user)
    doc = await _get_time_off(time_off_id, organization_id)

    rejected = reject_request(TimeOffRequest.from_record(time_off_record(doc)), str(current_user.id))
    await _finish_time_off(doc, rejected)

    return rejected.to_dict()
