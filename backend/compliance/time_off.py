"""
Time-off request lifecycle.

A request starts PENDING and moves exactly once, to APPROVED or REJECTED.
Approval records how many days the request counts for under the chosen
vacation policy.
"""

import logging
import uuid
from dataclasses import replace
from typing import Optional, Protocol

from .errors import InvalidInput, InvalidState, NotFound
from .types import (
    TimeOffRequest,
    TimeOffStatus,
    TimeOffType,
    VacationPolicy,
    coerce_enum,
    parse_date,
)
from .vacation import count_days


def create_request(
    staff_id: Optional[str],
    time_off_type,
    start_date,
    end_date,
    notes: Optional[str] = None,
    created_by: Optional[str] = None,
    request_id: Optional[str] = None,
) -> TimeOffRequest:
    """Validate raw input and build a PENDING request."""
    required = {
        "staff_id": staff_id,
        "type": time_off_type,
        "start_date": start_date,
        "end_date": end_date,
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise InvalidInput(f"Missing required fields: {', '.join(missing)}")

    start = parse_date(start_date, "start_date")
    end = parse_date(end_date, "end_date")
    if start > end:
        raise InvalidInput("start_date must not be after end_date")

    return TimeOffRequest(
        request_id=request_id or uuid.uuid4().hex,
        staff_id=staff_id,
        type=coerce_enum(TimeOffType, time_off_type, "type"),
        start_date=start,
        end_date=end,
        status=TimeOffStatus.PENDING,
        notes=notes,
        created_by=created_by,
    )


def _ensure_pending(request: TimeOffRequest):
    if request.is_terminal:
        raise InvalidState(f"Time off request {request.request_id} is already {request.status.value}")


def approve_request(request: TimeOffRequest, approved_by: str, policy=VacationPolicy.CALENDAR) -> TimeOffRequest:
    """Approve a PENDING request and record its day count under `policy`."""
    _ensure_pending(request)
    if not approved_by:
        raise InvalidInput("approved_by is required")
    policy = coerce_enum(VacationPolicy, policy, "policy")

    day_count = count_days(request.start_date, request.end_date, policy)
    logging.info(f"Approving time off {request.request_id} for {request.staff_id}: {day_count} {policy.value.lower()} days")
    return replace(request, status=TimeOffStatus.APPROVED, approved_by=approved_by, day_count=day_count)


def reject_request(request: TimeOffRequest, approved_by: str) -> TimeOffRequest:
    """Reject a PENDING request. The day count stays unset."""
    _ensure_pending(request)
    if not approved_by:
        raise InvalidInput("approved_by is required")

    logging.info(f"Rejecting time off {request.request_id} for {request.staff_id}")
    return replace(request, status=TimeOffStatus.REJECTED, approved_by=approved_by)


class TimeOffStore(Protocol):
    def get(self, request_id: str) -> Optional[TimeOffRequest]: ...

    def save(self, request: TimeOffRequest) -> None: ...

    def all(self) -> list[TimeOffRequest]: ...


class InMemoryTimeOffStore:
    """Dict-backed store, newest request first."""

    def __init__(self):
        self._requests: dict[str, TimeOffRequest] = {}

    def get(self, request_id: str) -> Optional[TimeOffRequest]:
        return self._requests.get(request_id)

    def save(self, request: TimeOffRequest) -> None:
        self._requests[request.request_id] = request

    def all(self) -> list[TimeOffRequest]:
        return list(reversed(self._requests.values()))


class TimeOffManager:
    """Runs the request lifecycle against a store."""

    def __init__(self, store: Optional[TimeOffStore] = None):
        self.store = store if store is not None else InMemoryTimeOffStore()

    def request(self, staff_id, time_off_type, start_date, end_date, notes=None, created_by=None) -> TimeOffRequest:
        request = create_request(staff_id, time_off_type, start_date, end_date, notes=notes, created_by=created_by)
        self.store.save(request)
        return request

    def get(self, request_id: str) -> TimeOffRequest:
        request = self.store.get(request_id)
        if request is None:
            raise NotFound(f"Time off request {request_id} not found")
        return request

    def approve(self, request_id: str, approved_by: str, policy=VacationPolicy.CALENDAR) -> TimeOffRequest:
        approved = approve_request(self.get(request_id), approved_by, policy)
        self.store.save(approved)
        return approved

    def reject(self, request_id: str, approved_by: str) -> TimeOffRequest:
        rejected = reject_request(self.get(request_id), approved_by)
        self.store.save(rejected)
        return rejected

    def list(self, status=None) -> list[TimeOffRequest]:
        """All requests, optionally filtered by status."""
        requests = self.store.all()
        if status is None:
            return requests
        status = coerce_enum(TimeOffStatus, status, "status")
        return [r for r in requests if r.status == status]
