import pytest
from datetime import date, datetime, time, timezone
from unittest.mock import patch, AsyncMock, DEFAULT

from compliance import MonthSchedule, ShiftAssignment, ShiftDefinition


class MockUserDoc:
    def __init__(self, role="admin", organization_ids=None):
        self.id = "test-user-id"
        self.email = "test@example.com"
        self.name = "Test User"
        self.role = role
        self.organization_ids = ["org-1"] if organization_ids is None else organization_ids
        self.created_at = datetime.now(timezone.utc)
        self.updated_at = datetime.now(timezone.utc)
        self.last_login_at = datetime.now(timezone.utc)


@pytest.fixture(autouse=True)
def override_auth_dependencies():
    from app import app
    from auth.dependencies import get_current_user, require_editor_or_admin

    mock_user = MockUserDoc(role="admin")

    async def mock_get_current_user():
        return mock_user

    async def mock_require_editor_or_admin():
        return mock_user

    app.dependency_overrides[get_current_user] = mock_get_current_user
    app.dependency_overrides[require_editor_or_admin] = mock_require_editor_or_admin

    yield mock_user

    app.dependency_overrides.clear()


# ============================================================================
# Engine builders
# ============================================================================


@pytest.fixture
def make_shift():
    """Factory for ShiftDefinition with ISO date and HH:MM times."""
    def _make(shift_id, day, shift_code="MORNING", start="07:00", end="15:00", station=None):
        return ShiftDefinition(
            shift_id=shift_id,
            date=date.fromisoformat(day),
            shift_code=shift_code,
            start_time=time.fromisoformat(start),
            end_time=time.fromisoformat(end),
            station=station,
        )
    return _make


@pytest.fixture
def make_schedule():
    """Factory for MonthSchedule from shifts and (shift_id, staff_id) pairs."""
    def _make(shifts=(), assignments=(), month="2026-01-01", organization_id="org-1"):
        return MonthSchedule(
            organization_id=organization_id,
            month=date.fromisoformat(month),
            shifts=tuple(shifts),
            assignments=tuple(ShiftAssignment(shift_id=s, staff_id=staff) for s, staff in assignments),
        )
    return _make


# ============================================================================
# API client
# ============================================================================


class QueryField:
    """Document field stand-in. `field == value` returns (name, value) so query filters can be asserted."""

    def __init__(self, name):
        self.name = name

    def __eq__(self, other):
        return (self.name, other)

    __hash__ = None


@pytest.fixture
def query_field():
    return QueryField

PATCHED_DOCS = (
    "StaffDoc",
    "ScheduleMonthDoc",
    "ShiftDoc",
    "CoverageDayRuleDoc",
    "CoverageDateOverrideDoc",
    "StaffScheduleRuleDoc",
    "OrganizationScheduleRuleDoc",
    "TimeOffDoc",
    "VacationBalanceDoc",
)


@pytest.fixture
def mock_db():
    """Mock MongoDB documents and the month loader used by the app."""
    load_month_snapshot = AsyncMock()
    with patch.multiple(
        "app",
        init_db=AsyncMock(),
        close_db=AsyncMock(),
        load_month_snapshot=load_month_snapshot,
        **{name: DEFAULT for name in PATCHED_DOCS},
    ) as mocks:
        mocks["load_month_snapshot"] = load_month_snapshot
        yield mocks


@pytest.fixture
def client(mock_db):
    """Create test client for the FastAPI app."""
    from fastapi.testclient import TestClient
    from app import app

    return TestClient(app)
