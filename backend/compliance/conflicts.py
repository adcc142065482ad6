"""Conflict detection against approved time off and same-day shifts."""

from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from .errors import InvalidInput
from .types import (
    MonthSchedule,
    ShiftDefinition,
    TimeOffRequest,
    TimeOffStatus,
    parse_time,
)


class ConflictDetector:
    """
    Answers conflict questions for a single loaded month.

    Only APPROVED time off blocks a shift. Two shifts overlap when their
    windows intersect strictly; a shift ending at 14:00 and one starting at
    14:00 do not overlap.
    """

    def __init__(self, schedule: MonthSchedule, time_off: Iterable[TimeOffRequest] = ()):
        self.schedule = schedule
        approved = defaultdict(list)
        for request in time_off:
            if request.status == TimeOffStatus.APPROVED:
                approved[request.staff_id].append(request)
        self._approved = {
            staff_id: sorted(requests, key=lambda r: (r.start_date, r.request_id))
            for staff_id, requests in approved.items()
        }
        self._shifts_by_staff = {
            staff_id: schedule.shifts_for(staff_id) for staff_id in schedule.staff_ids()
        }

    def time_off_conflicts(self, staff_id: str, day: date) -> list[TimeOffRequest]:
        """Approved time-off requests of the staff member that cover `day`."""
        return [r for r in self._approved.get(staff_id, []) if r.covers(day)]

    def shift_overlaps(
        self,
        staff_id: str,
        day: date,
        start_time,
        end_time,
        exclude_shift_id: Optional[str] = None,
    ) -> list[ShiftDefinition]:
        """Shifts the staff member already works on `day` that overlap the given window."""
        start = parse_time(start_time, "start_time")
        end = parse_time(end_time, "end_time")
        if end <= start:
            raise InvalidInput("end_time must be after start_time")

        return [
            shift
            for shift in self._shifts_by_staff.get(staff_id, [])
            if shift.date == day
            and shift.shift_id != exclude_shift_id
            and shift.overlaps(start, end)
        ]
