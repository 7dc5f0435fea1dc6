"""
Employment records (``hr_kernel.domain.records``).

Responsibility
--------------
Frozen dataclass snapshots of the raw employment facts the engines consume:
the employee (hire date, gender, contract, compensation) and the leave
request history.  Snapshots are supplied by the persistence collaborator and
are never mutated by any calculator.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  Imported by
engines and modules alike.

Invariants enforced
-------------------
* All records are ``frozen=True``.
* All monetary fields are ``Decimal`` and non-negative.
* Every record carries its ``company_id`` so that no engine needs a
  process-wide tenant.
* A leave request's status transitions are the only mutation, and they
  produce a new record (``with_status``).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from hr_kernel.domain.values import ZERO
from hr_kernel.exceptions import ValidationError
from hr_kernel.logging_config import get_logger

logger = get_logger("domain.records")


class Gender(Enum):
    """Gender as recorded on the labor contract."""
    MALE = "male"
    FEMALE = "female"


class ContractType(Enum):
    """UAE labor contract types."""
    LIMITED = "limited"
    UNLIMITED = "unlimited"


class LeaveType(Enum):
    """Statutory leave types."""
    ANNUAL = "annual"
    SICK = "sick"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    UNPAID = "unpaid"


class LeaveStatus(Enum):
    """Leave request lifecycle states."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def counts_toward_balance(self) -> bool:
        """Rejected and cancelled requests are excluded from all balance math."""
        return self in (LeaveStatus.PENDING, LeaveStatus.APPROVED)


@dataclass(frozen=True)
class EmployeeSnapshot:
    """Point-in-time view of one employee, as read from the HR record."""
    id: UUID
    company_id: str
    employee_number: str
    hire_date: date
    gender: Gender
    contract_type: ContractType
    basic_salary: Decimal
    housing_allowance: Decimal = ZERO
    transport_allowance: Decimal = ZERO
    other_allowances: Decimal = ZERO
    termination_date: date | None = None
    is_active: bool = True

    def __post_init__(self):
        if not self.company_id:
            raise ValidationError("company_id", "is required")
        for name in (
            "basic_salary",
            "housing_allowance",
            "transport_allowance",
            "other_allowances",
        ):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                raise ValidationError(name, "must be Decimal")
            if value < 0:
                logger.warning(
                    "employee_negative_compensation",
                    extra={
                        "employee_id": str(self.id),
                        "field": name,
                        "value": str(value),
                    },
                )
                raise ValidationError(name, "cannot be negative")
        if self.termination_date is not None and self.termination_date < self.hire_date:
            raise ValidationError(
                "termination_date",
                f"{self.termination_date} is before hire date {self.hire_date}",
            )

    @property
    def total_allowances(self) -> Decimal:
        return self.housing_allowance + self.transport_allowance + self.other_allowances

    @property
    def fixed_compensation(self) -> Decimal:
        """Basic salary plus all recurring allowances."""
        return self.basic_salary + self.total_allowances


@dataclass(frozen=True)
class LeaveRequestRecord:
    """A leave request as submitted and (possibly) decided."""
    id: UUID
    company_id: str
    employee_id: UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    total_days: int
    status: LeaveStatus = LeaveStatus.PENDING
    reason: str = ""

    def __post_init__(self):
        if self.end_date < self.start_date:
            raise ValidationError(
                "end_date", f"{self.end_date} is before start date {self.start_date}"
            )
        if self.total_days < 0:
            raise ValidationError("total_days", "cannot be negative")

    @property
    def year(self) -> int:
        """Leave year the request is booked against (year of its first day)."""
        return self.start_date.year

    def with_status(self, status: LeaveStatus) -> LeaveRequestRecord:
        return replace(self, status=status)
