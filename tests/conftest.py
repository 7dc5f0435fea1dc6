"""
Pytest fixtures for the HR compliance test suite.

Provides:
- Structured logging configured once per session, with per-test capture
- A deterministic clock (engines never read wall-clock time)
- Employee and leave-request snapshot factories
- An in-memory SQLite engine for the SQLAlchemy payroll store

No external database is required: persistence tests run against
``sqlite://`` through ``init_engine_from_url``.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest

from hr_kernel.domain.clock import DeterministicClock
from hr_kernel.domain.records import (
    ContractType,
    EmployeeSnapshot,
    Gender,
    LeaveRequestRecord,
    LeaveStatus,
    LeaveType,
)
from hr_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

TEST_COMPANY_ID = "acme-trading"
TEST_ACTOR_ID = UUID("00000000-0000-4000-8000-000000000001")


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session", autouse=True)
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture hr_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            calculate_gratuity(...)
            logs = captured_logs()
            assert any(r["message"] == "HR_ENGINE_TRACE" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("hr_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# ---------------------------------------------------------------------------
# Clock and actors
# ---------------------------------------------------------------------------


@pytest.fixture
def deterministic_clock():
    """Clock pinned to 2026-03-15."""
    return DeterministicClock.on(date(2026, 3, 15))


@pytest.fixture
def test_actor_id():
    return TEST_ACTOR_ID


@pytest.fixture
def company_id():
    return TEST_COMPANY_ID


# ---------------------------------------------------------------------------
# Snapshot factories
# ---------------------------------------------------------------------------


def make_employee(
    hire_date: date = date(2020, 1, 1),
    gender: Gender = Gender.MALE,
    basic_salary: str = "10000",
    housing: str = "0",
    transport: str = "0",
    other: str = "0",
    contract_type: ContractType = ContractType.UNLIMITED,
    company_id: str = TEST_COMPANY_ID,
    employee_number: str = "E-001",
    is_active: bool = True,
    employee_id: UUID | None = None,
) -> EmployeeSnapshot:
    return EmployeeSnapshot(
        id=employee_id or uuid4(),
        company_id=company_id,
        employee_number=employee_number,
        hire_date=hire_date,
        gender=gender,
        contract_type=contract_type,
        basic_salary=Decimal(basic_salary),
        housing_allowance=Decimal(housing),
        transport_allowance=Decimal(transport),
        other_allowances=Decimal(other),
        is_active=is_active,
    )


def make_leave(
    employee: EmployeeSnapshot,
    leave_type: LeaveType,
    start_date: date,
    end_date: date,
    total_days: int,
    status: LeaveStatus = LeaveStatus.APPROVED,
) -> LeaveRequestRecord:
    return LeaveRequestRecord(
        id=uuid4(),
        company_id=employee.company_id,
        employee_id=employee.id,
        leave_type=leave_type,
        start_date=start_date,
        end_date=end_date,
        total_days=total_days,
        status=status,
    )


@pytest.fixture
def employee_factory():
    """Build EmployeeSnapshot records with sensible defaults."""
    return make_employee


@pytest.fixture
def leave_factory():
    """Build LeaveRequestRecord records for a given employee."""
    return make_leave


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
def sqlite_session_factory():
    """
    Fresh in-memory SQLite database with the payroll tables created.

    The engine is module-global in ``hr_kernel.db.engine``; it is reset
    after every test.
    """
    from hr_kernel.db.engine import (
        create_tables,
        get_session_factory,
        init_engine_from_url,
        reset_engine,
    )
    import hr_modules.payroll.orm  # noqa: F401  registers the tables

    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    reset_engine()
