"""
Payroll Domain Models (``hr_modules.payroll.models``).

Responsibility
--------------
Frozen dataclass value objects for the nouns of monthly payroll: payroll
runs, per-employee entries with their earnings and deduction breakdown,
the loan / salary-advance ledger, and manual deductions.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Produced by
``PayrollAggregator`` and persisted by a ``PayrollStore``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``PayrollEntry.net_salary == total_earnings - total_deductions``,
  checked at construction.
* A loan's remaining balance never goes below zero.

Failure modes
-------------
* ``ValidationError`` on an unbalanced entry, a bad period, or negative
  loan figures.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID

from hr_kernel.domain.values import ZERO
from hr_kernel.exceptions import ValidationError
from hr_kernel.logging_config import get_logger

logger = get_logger("modules.payroll.models")


class PayrollRunStatus(Enum):
    """Payroll run lifecycle states."""
    DRAFT = "draft"
    CALCULATED = "calculated"
    APPROVED = "approved"
    COMPLETED = "completed"


class LoanKind(Enum):
    """Loans are repaid over many months; advances are salary paid early."""
    LOAN = "loan"
    ADVANCE = "advance"


class LoanStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass(frozen=True)
class PayrollPeriod:
    """A calendar month."""
    month: int
    year: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValidationError("month", f"must be 1-12, got {self.month}")
        if self.year < 1:
            raise ValidationError("year", f"must be positive, got {self.year}")

    @property
    def start_date(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end_date(self) -> date:
        if self.month == 12:
            return date(self.year, 12, 31)
        return date(self.year, self.month + 1, 1) - timedelta(days=1)

    def contains(self, day: date) -> bool:
        return day.year == self.year and day.month == self.month


@dataclass(frozen=True)
class ActiveLoan:
    """An employee loan or salary advance repaid through payroll."""
    id: UUID
    company_id: str
    employee_id: UUID
    kind: LoanKind
    principal: Decimal
    monthly_deduction: Decimal
    remaining_balance: Decimal
    paid_installments: int = 0
    status: LoanStatus = LoanStatus.ACTIVE

    def __post_init__(self):
        for name in ("principal", "monthly_deduction", "remaining_balance"):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                raise ValidationError(name, "must be Decimal")
            if value < 0:
                raise ValidationError(name, "cannot be negative")
        if self.paid_installments < 0:
            raise ValidationError("paid_installments", "cannot be negative")

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    def apply_installment(self, amount: Decimal) -> ActiveLoan:
        """Loan after one payroll deduction of ``amount``.

        A balance that reaches zero (or would go below it) completes the
        loan with its balance at exactly zero.
        """
        remaining = self.remaining_balance - amount
        if remaining <= 0:
            return replace(
                self,
                remaining_balance=ZERO,
                paid_installments=self.paid_installments + 1,
                status=LoanStatus.COMPLETED,
            )
        return replace(
            self,
            remaining_balance=remaining,
            paid_installments=self.paid_installments + 1,
        )


@dataclass(frozen=True)
class ManualDeduction:
    """A one-off deduction entered by payroll staff (fines, recoveries)."""
    employee_id: UUID
    amount: Decimal
    description: str = ""

    def __post_init__(self):
        if self.amount < 0:
            raise ValidationError("amount", "manual deduction cannot be negative")


@dataclass(frozen=True)
class LoanDeductionLine:
    """The part of one entry's deductions that repays one loan."""
    loan_id: UUID
    kind: LoanKind
    amount: Decimal


@dataclass(frozen=True)
class PayrollEntry:
    """One employee's pay for one run."""
    id: UUID
    run_id: UUID
    company_id: str
    employee_id: UUID
    basic_salary: Decimal
    housing_allowance: Decimal
    transport_allowance: Decimal
    other_allowances: Decimal
    overtime_amount: Decimal
    loan_deduction: Decimal
    advance_deduction: Decimal
    unpaid_leave_deduction: Decimal
    other_deductions: Decimal
    net_salary: Decimal
    unpaid_leave_days: int = 0
    loan_lines: tuple[LoanDeductionLine, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.net_salary != self.total_earnings - self.total_deductions:
            logger.error("payroll_entry_unbalanced", extra={
                "employee_id": str(self.employee_id),
                "net_salary": str(self.net_salary),
                "total_earnings": str(self.total_earnings),
                "total_deductions": str(self.total_deductions),
            })
            raise ValidationError(
                "net_salary",
                f"{self.net_salary} != earnings {self.total_earnings} "
                f"- deductions {self.total_deductions}",
            )

    @property
    def gross_salary(self) -> Decimal:
        return self.total_earnings

    @property
    def total_earnings(self) -> Decimal:
        return (
            self.basic_salary
            + self.housing_allowance
            + self.transport_allowance
            + self.other_allowances
            + self.overtime_amount
        )

    @property
    def total_deductions(self) -> Decimal:
        return (
            self.loan_deduction
            + self.advance_deduction
            + self.unpaid_leave_deduction
            + self.other_deductions
        )

    @property
    def is_balanced(self) -> bool:
        return self.net_salary == self.total_earnings - self.total_deductions


@dataclass(frozen=True)
class PayrollRun:
    """A company's payroll for one month."""
    id: UUID
    company_id: str
    month: int
    year: int
    status: PayrollRunStatus = PayrollRunStatus.DRAFT
    total_gross: Decimal = ZERO
    total_deductions: Decimal = ZERO
    total_net: Decimal = ZERO
    employee_count: int = 0
    created_by: UUID | None = None

    @property
    def period(self) -> PayrollPeriod:
        return PayrollPeriod(self.month, self.year)

    @property
    def is_locked(self) -> bool:
        """Entries may only change while the run is a draft."""
        return self.status != PayrollRunStatus.DRAFT

    def with_totals(self, entries: tuple[PayrollEntry, ...]) -> PayrollRun:
        return replace(
            self,
            total_gross=sum((e.total_earnings for e in entries), ZERO),
            total_deductions=sum((e.total_deductions for e in entries), ZERO),
            total_net=sum((e.net_salary for e in entries), ZERO),
            employee_count=len(entries),
        )
