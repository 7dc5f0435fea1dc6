"""
Payroll ORM Persistence Models (``hr_modules.payroll.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen dataclass DTOs defined in
    ``hr_modules.payroll.models``.  Each ORM class mirrors a DTO and
    provides ``to_dto()`` / ``from_dto()`` round-trip conversion.

Architecture position:
    **Modules layer** -- persistence companions to the pure DTO models.
    Inherits from ``TrackedBase`` (kernel DB base) which provides:
    id (UUID PK, auto-generated), created_at, updated_at,
    created_by_id (NOT NULL UUID), updated_by_id (nullable UUID).

Invariants enforced:
    - At most one payroll run per (company_id, month, year)
      (uq_hr_payroll_run_period).  This constraint is what serializes
      concurrent run creation on a real database.
    - One entry per employee per run (uq_hr_payroll_entry_run_employee).
    - All monetary fields use Decimal (DecimalString) -- NEVER float.
    - Enum fields stored as String(20) containing the enum .value string.

Audit relevance:
    Completed runs are the record of what was paid.  TrackedBase audit
    columns are inherited by every model.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_kernel.db.base import TrackedBase
from hr_modules.payroll.models import (
    ActiveLoan,
    LoanDeductionLine,
    LoanKind,
    LoanStatus,
    PayrollEntry,
    PayrollRun,
    PayrollRunStatus,
)

# ---------------------------------------------------------------------------
# PayrollRunModel
# ---------------------------------------------------------------------------


class PayrollRunModel(TrackedBase):
    """
    ORM model for ``PayrollRun``.

    Guarantees:
        - (company_id, month, year) is unique.
        - Totals are stored, and always equal the sums over ``entries``.
    """

    __tablename__ = "hr_payroll_runs"

    company_id: Mapped[str] = mapped_column(String(100), nullable=False)
    month: Mapped[int] = mapped_column(nullable=False)
    year: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    total_gross: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    total_net: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    employee_count: Mapped[int] = mapped_column(default=0, nullable=False)

    entries: Mapped[list["PayrollEntryModel"]] = relationship(
        "PayrollEntryModel",
        back_populates="payroll_run",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("company_id", "month", "year", name="uq_hr_payroll_run_period"),
        Index("idx_hr_payroll_run_company", "company_id"),
        Index("idx_hr_payroll_run_status", "status"),
    )

    def to_dto(self) -> PayrollRun:
        return PayrollRun(
            id=self.id,
            company_id=self.company_id,
            month=self.month,
            year=self.year,
            status=PayrollRunStatus(self.status),
            total_gross=self.total_gross,
            total_deductions=self.total_deductions,
            total_net=self.total_net,
            employee_count=self.employee_count,
            created_by=self.created_by_id,
        )

    @classmethod
    def from_dto(cls, dto: PayrollRun, created_by_id: UUID) -> "PayrollRunModel":
        return cls(
            id=dto.id,
            company_id=dto.company_id,
            month=dto.month,
            year=dto.year,
            status=dto.status.value,
            total_gross=dto.total_gross,
            total_deductions=dto.total_deductions,
            total_net=dto.total_net,
            employee_count=dto.employee_count,
            created_by_id=created_by_id,
        )

    def apply_totals(self, dto: PayrollRun) -> None:
        self.total_gross = dto.total_gross
        self.total_deductions = dto.total_deductions
        self.total_net = dto.total_net
        self.employee_count = dto.employee_count

    def __repr__(self) -> str:
        return f"<PayrollRunModel {self.company_id} {self.year}-{self.month:02d} ({self.status})>"


# ---------------------------------------------------------------------------
# PayrollEntryModel
# ---------------------------------------------------------------------------


class PayrollEntryModel(TrackedBase):
    """
    ORM model for ``PayrollEntry``.

    Contract:
        ``net_salary = earnings - deductions`` is re-checked by the DTO
        constructor on every ``to_dto()``, so a tampered row cannot be read
        back silently.
    """

    __tablename__ = "hr_payroll_entries"

    run_id: Mapped[UUID] = mapped_column(
        ForeignKey("hr_payroll_runs.id"), nullable=False,
    )
    company_id: Mapped[str] = mapped_column(String(100), nullable=False)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    basic_salary: Mapped[Decimal] = mapped_column(nullable=False)
    housing_allowance: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    transport_allowance: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    other_allowances: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    overtime_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    loan_deduction: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    advance_deduction: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    unpaid_leave_deduction: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    other_deductions: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    net_salary: Mapped[Decimal] = mapped_column(nullable=False)
    unpaid_leave_days: Mapped[int] = mapped_column(default=0, nullable=False)

    payroll_run: Mapped["PayrollRunModel"] = relationship(
        "PayrollRunModel", back_populates="entries",
    )
    loan_lines: Mapped[list["PayrollLoanLineModel"]] = relationship(
        "PayrollLoanLineModel",
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("run_id", "employee_id", name="uq_hr_payroll_entry_run_employee"),
        Index("idx_hr_payroll_entry_run", "run_id"),
        Index("idx_hr_payroll_entry_employee", "employee_id"),
    )

    def to_dto(self) -> PayrollEntry:
        return PayrollEntry(
            id=self.id,
            run_id=self.run_id,
            company_id=self.company_id,
            employee_id=self.employee_id,
            basic_salary=self.basic_salary,
            housing_allowance=self.housing_allowance,
            transport_allowance=self.transport_allowance,
            other_allowances=self.other_allowances,
            overtime_amount=self.overtime_amount,
            loan_deduction=self.loan_deduction,
            advance_deduction=self.advance_deduction,
            unpaid_leave_deduction=self.unpaid_leave_deduction,
            other_deductions=self.other_deductions,
            net_salary=self.net_salary,
            unpaid_leave_days=self.unpaid_leave_days,
            loan_lines=tuple(line.to_dto() for line in self.loan_lines),
        )

    @classmethod
    def from_dto(cls, dto: PayrollEntry, created_by_id: UUID) -> "PayrollEntryModel":
        return cls(
            id=dto.id,
            run_id=dto.run_id,
            company_id=dto.company_id,
            employee_id=dto.employee_id,
            basic_salary=dto.basic_salary,
            housing_allowance=dto.housing_allowance,
            transport_allowance=dto.transport_allowance,
            other_allowances=dto.other_allowances,
            overtime_amount=dto.overtime_amount,
            loan_deduction=dto.loan_deduction,
            advance_deduction=dto.advance_deduction,
            unpaid_leave_deduction=dto.unpaid_leave_deduction,
            other_deductions=dto.other_deductions,
            net_salary=dto.net_salary,
            unpaid_leave_days=dto.unpaid_leave_days,
            loan_lines=[
                PayrollLoanLineModel.from_dto(line, created_by_id)
                for line in dto.loan_lines
            ],
            created_by_id=created_by_id,
        )

    def apply_adjustment(self, dto: PayrollEntry, updated_by_id: UUID) -> None:
        """Copy the editable draft figures from ``dto``."""
        self.overtime_amount = dto.overtime_amount
        self.other_deductions = dto.other_deductions
        self.net_salary = dto.net_salary
        self.updated_by_id = updated_by_id

    def __repr__(self) -> str:
        return f"<PayrollEntryModel run={self.run_id} employee={self.employee_id}>"


class PayrollLoanLineModel(TrackedBase):
    """ORM model for ``LoanDeductionLine``."""

    __tablename__ = "hr_payroll_loan_lines"

    entry_id: Mapped[UUID] = mapped_column(
        ForeignKey("hr_payroll_entries.id"), nullable=False,
    )
    loan_id: Mapped[UUID] = mapped_column(
        ForeignKey("hr_loans.id"), nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    entry: Mapped["PayrollEntryModel"] = relationship(
        "PayrollEntryModel", back_populates="loan_lines",
    )

    __table_args__ = (
        Index("idx_hr_payroll_loan_line_loan", "loan_id"),
    )

    def to_dto(self) -> LoanDeductionLine:
        return LoanDeductionLine(
            loan_id=self.loan_id,
            kind=LoanKind(self.kind),
            amount=self.amount,
        )

    @classmethod
    def from_dto(cls, dto: LoanDeductionLine, created_by_id: UUID) -> "PayrollLoanLineModel":
        return cls(
            loan_id=dto.loan_id,
            kind=dto.kind.value,
            amount=dto.amount,
            created_by_id=created_by_id,
        )


# ---------------------------------------------------------------------------
# LoanModel
# ---------------------------------------------------------------------------


class LoanModel(TrackedBase):
    """
    ORM model for ``ActiveLoan`` -- an employee loan or salary advance.

    Contract:
        Only payroll run completion changes ``remaining_balance``,
        ``paid_installments`` and ``status``.
    """

    __tablename__ = "hr_loans"

    company_id: Mapped[str] = mapped_column(String(100), nullable=False)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    principal: Mapped[Decimal] = mapped_column(nullable=False)
    monthly_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    remaining_balance: Mapped[Decimal] = mapped_column(nullable=False)
    paid_installments: Mapped[int] = mapped_column(default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    __table_args__ = (
        Index("idx_hr_loan_company_employee", "company_id", "employee_id"),
        Index("idx_hr_loan_status", "status"),
    )

    def to_dto(self) -> ActiveLoan:
        return ActiveLoan(
            id=self.id,
            company_id=self.company_id,
            employee_id=self.employee_id,
            kind=LoanKind(self.kind),
            principal=self.principal,
            monthly_deduction=self.monthly_deduction,
            remaining_balance=self.remaining_balance,
            paid_installments=self.paid_installments,
            status=LoanStatus(self.status),
        )

    @classmethod
    def from_dto(cls, dto: ActiveLoan, created_by_id: UUID) -> "LoanModel":
        return cls(
            id=dto.id,
            company_id=dto.company_id,
            employee_id=dto.employee_id,
            kind=dto.kind.value,
            principal=dto.principal,
            monthly_deduction=dto.monthly_deduction,
            remaining_balance=dto.remaining_balance,
            paid_installments=dto.paid_installments,
            status=dto.status.value,
            created_by_id=created_by_id,
        )

    def apply_dto(self, dto: ActiveLoan, updated_by_id: UUID) -> None:
        self.remaining_balance = dto.remaining_balance
        self.paid_installments = dto.paid_installments
        self.status = dto.status.value
        self.updated_by_id = updated_by_id

    def __repr__(self) -> str:
        return f"<LoanModel {self.kind} employee={self.employee_id} balance={self.remaining_balance}>"
