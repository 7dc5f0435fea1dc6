"""
Payroll Aggregator (``hr_modules.payroll.aggregator``).

Responsibility
--------------
Compose employee compensation, approved overtime, unpaid leave, manual
deductions and the loan ledger into a monthly ``PayrollRun`` with one
``PayrollEntry`` per active employee, and drive the run through its
lifecycle up to completion.

Architecture position
---------------------
**Modules layer** -- thin orchestration.  Pure per-employee arithmetic
lives in ``compute_entry``; atomicity (one run per period, all-or-nothing
entry insert, atomic loan-ledger completion) is delegated to the
``PayrollStore``.

Invariants enforced
-------------------
* ``gross = basic + housing + transport + other + approved overtime``.
* ``deductions = loans + advances + unpaid leave + manual``.
* ``net = gross - deductions`` exactly, for every entry.
* All entries are computed before anything is stored; a single failure
  aborts the whole run.  Run totals are summed only after every entry
  succeeded.
* Entries change only while the run is a draft.
* Only entering ``completed`` touches the loan ledger.

Failure modes
-------------
* ``DuplicatePayrollRunError`` -- run already exists for the period.
* ``EmployeeNotFoundError`` -- a manual deduction names an employee who is
  not part of the run.
* ``PayrollEntryComputationError`` -- an unexpected error while computing
  one employee's entry (the run is not created).
* ``InvalidRunTransitionError`` / ``PayrollRunLockedError`` -- lifecycle
  violations.

Audit relevance
---------------
Structured log events at run creation, every transition and every loan
mutation, carrying run, company and employee ids and the run totals.

Usage::

    aggregator = PayrollAggregator(InMemoryPayrollStore())
    run = aggregator.create_run(
        company_id="acme", month=3, year=2026,
        employees=employees, overtime=overtime, loans=loans,
        actor_id=actor_id,
    )
    aggregator.transition("acme", run.id, "calculate", actor_id)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from decimal import Decimal
from uuid import UUID, uuid4

from hr_engines.overtime import OvertimeEntry
from hr_kernel.domain.records import (
    EmployeeSnapshot,
    LeaveRequestRecord,
    LeaveStatus,
    LeaveType,
)
from hr_kernel.domain.values import ZERO, quantize_money, to_decimal
from hr_kernel.exceptions import (
    DuplicatePayrollRunError,
    EmployeeNotFoundError,
    HRKernelError,
    InvalidRunTransitionError,
    PayrollEntryComputationError,
    PayrollRunLockedError,
    ValidationError,
)
from hr_kernel.logging_config import LogContext, get_logger
from hr_modules.payroll.models import (
    ActiveLoan,
    LoanDeductionLine,
    LoanKind,
    ManualDeduction,
    PayrollEntry,
    PayrollPeriod,
    PayrollRun,
    PayrollRunStatus,
)
from hr_modules.payroll.store import InMemoryPayrollStore, PayrollStore
from hr_modules.payroll.workflows import PAYROLL_RUN_WORKFLOW

logger = get_logger("modules.payroll.aggregator")

DAYS_IN_YEAR = Decimal("365")
MONTHS_IN_YEAR = Decimal("12")


def unpaid_leave_daily_rate(basic_salary: Decimal) -> Decimal:
    """Daily wage withheld per unpaid leave day, ``basic * 12 / 365``."""
    return basic_salary * MONTHS_IN_YEAR / DAYS_IN_YEAR


def compute_entry(
    run_id: UUID,
    period: PayrollPeriod,
    employee: EmployeeSnapshot,
    overtime: Sequence[OvertimeEntry] = (),
    loans: Sequence[ActiveLoan] = (),
    leave_history: Sequence[LeaveRequestRecord] = (),
    manual_deductions: Sequence[ManualDeduction] = (),
) -> PayrollEntry:
    """
    One employee's payroll entry for ``period``.

    Pure: the inputs may contain records of other employees and periods;
    only the employee's own approved overtime dated in the period, active
    loans, approved unpaid leave starting in the period and manual
    deductions are used.  Every component is rounded to fils before the
    net is taken, so the stored figures balance exactly.
    """
    overtime_amount = sum(
        (
            e.amount for e in overtime
            if e.employee_id == employee.id
            and e.company_id == employee.company_id
            and e.is_approved
            and period.contains(e.work_date)
        ),
        ZERO,
    )

    loan_lines = tuple(
        LoanDeductionLine(
            loan_id=loan.id,
            kind=loan.kind,
            amount=quantize_money(loan.monthly_deduction),
        )
        for loan in loans
        if loan.employee_id == employee.id
        and loan.company_id == employee.company_id
        and loan.is_active
        and loan.monthly_deduction > 0
    )
    loan_deduction = sum((line.amount for line in loan_lines if line.kind == LoanKind.LOAN), ZERO)
    advance_deduction = sum((line.amount for line in loan_lines if line.kind == LoanKind.ADVANCE), ZERO)

    unpaid_days = sum(
        r.total_days for r in leave_history
        if r.employee_id == employee.id
        and r.company_id == employee.company_id
        and r.leave_type == LeaveType.UNPAID
        and r.status == LeaveStatus.APPROVED
        and period.contains(r.start_date)
    )
    unpaid_leave_deduction = quantize_money(
        unpaid_leave_daily_rate(employee.basic_salary) * unpaid_days
    )

    other_deductions = sum(
        (to_decimal(d.amount, "manual_deduction") for d in manual_deductions
         if d.employee_id == employee.id),
        ZERO,
    )

    basic = quantize_money(employee.basic_salary)
    housing = quantize_money(employee.housing_allowance)
    transport = quantize_money(employee.transport_allowance)
    other_allowances = quantize_money(employee.other_allowances)
    overtime_amount = quantize_money(overtime_amount)
    other_deductions = quantize_money(other_deductions)

    gross = basic + housing + transport + other_allowances + overtime_amount
    deductions = loan_deduction + advance_deduction + unpaid_leave_deduction + other_deductions

    return PayrollEntry(
        id=uuid4(),
        run_id=run_id,
        company_id=employee.company_id,
        employee_id=employee.id,
        basic_salary=basic,
        housing_allowance=housing,
        transport_allowance=transport,
        other_allowances=other_allowances,
        overtime_amount=overtime_amount,
        loan_deduction=loan_deduction,
        advance_deduction=advance_deduction,
        unpaid_leave_deduction=unpaid_leave_deduction,
        other_deductions=other_deductions,
        net_salary=gross - deductions,
        unpaid_leave_days=unpaid_days,
        loan_lines=loan_lines,
    )


class PayrollAggregator:
    """
    Monthly payroll orchestration over a ``PayrollStore``.

    Contract:
        Inputs are snapshots; the aggregator never mutates them.  The store
        is the only stateful collaborator.
    Guarantees:
        - ``create_run`` either stores a complete run or nothing.
        - A second ``create_run`` for the same period fails with
          ``DuplicatePayrollRunError`` and leaves the first run untouched.
    """

    def __init__(
        self,
        store: PayrollStore | None = None,
        max_workers: int | None = None,
    ):
        self._store = store or InMemoryPayrollStore()
        self._max_workers = max_workers

    @property
    def store(self) -> PayrollStore:
        return self._store

    # -- run creation ----------------------------------------------------

    def create_run(
        self,
        company_id: str,
        month: int,
        year: int,
        employees: Iterable[EmployeeSnapshot],
        overtime: Iterable[OvertimeEntry],
        loans: Iterable[ActiveLoan],
        leave_history: Iterable[LeaveRequestRecord] = (),
        manual_deductions: Iterable[ManualDeduction] | None = None,
        actor_id: UUID | None = None,
    ) -> PayrollRun:
        """Compute and store the payroll run for one company and month."""
        period = PayrollPeriod(month, year)
        actor = actor_id or uuid4()

        with LogContext.bind(company_id=company_id, actor_id=actor):
            existing = self._store.find_run(company_id, month, year)
            if existing is not None:
                logger.warning("payroll_run_duplicate_rejected", extra={
                    "month": month,
                    "year": year,
                    "existing_run_id": str(existing.id),
                })
                raise DuplicatePayrollRunError(company_id, month, year)

            roster = sorted(
                (e for e in employees if e.company_id == company_id and e.is_active),
                key=lambda e: e.employee_number,
            )
            overtime = tuple(overtime)
            loans = tuple(loans)
            leave_history = tuple(leave_history)
            manual = tuple(manual_deductions or ())

            roster_ids = {e.id for e in roster}
            for deduction in manual:
                if deduction.employee_id not in roster_ids:
                    raise EmployeeNotFoundError(str(deduction.employee_id))

            run_id = uuid4()
            logger.info("payroll_run_started", extra={
                "run_id": str(run_id),
                "month": month,
                "year": year,
                "employee_count": len(roster),
            })

            def build(employee: EmployeeSnapshot) -> PayrollEntry:
                try:
                    return compute_entry(
                        run_id, period, employee, overtime, loans, leave_history, manual,
                    )
                except HRKernelError:
                    raise
                except Exception as exc:
                    raise PayrollEntryComputationError(str(employee.id), str(exc)) from exc

            if self._max_workers and self._max_workers > 1 and len(roster) > 1:
                with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                    entries = tuple(pool.map(build, roster))
            else:
                entries = tuple(build(e) for e in roster)

            run = PayrollRun(
                id=run_id,
                company_id=company_id,
                month=month,
                year=year,
                status=PayrollRunStatus.DRAFT,
                created_by=actor,
            ).with_totals(entries)

            self._store.insert_run(run, entries, actor)

            logger.info("payroll_run_created", extra={
                "run_id": str(run.id),
                "employee_count": run.employee_count,
                "total_gross": str(run.total_gross),
                "total_deductions": str(run.total_deductions),
                "total_net": str(run.total_net),
            })
            return run

    # -- lifecycle -------------------------------------------------------

    def transition(
        self,
        company_id: str,
        run_id: UUID,
        action: str,
        actor_id: UUID | None = None,
    ) -> PayrollRun:
        """Apply a workflow action (calculate, approve, complete) to a run."""
        actor = actor_id or uuid4()
        run = self._store.get_run(company_id, run_id)
        transition = PAYROLL_RUN_WORKFLOW.find_transition(run.status.value, action)
        if transition is None:
            logger.warning("payroll_run_transition_rejected", extra={
                "run_id": str(run_id),
                "from_status": run.status.value,
                "action": action,
                "allowed_actions": list(PAYROLL_RUN_WORKFLOW.actions_from(run.status.value)),
            })
            raise InvalidRunTransitionError(str(run_id), run.status.value, action)

        if transition.mutates_ledger:
            updated, loans = self._store.complete_run(company_id, run_id, run.status, actor)
            for loan in loans:
                logger.info("loan_installment_applied", extra={
                    "run_id": str(run_id),
                    "loan_id": str(loan.id),
                    "employee_id": str(loan.employee_id),
                    "remaining_balance": str(loan.remaining_balance),
                    "paid_installments": loan.paid_installments,
                    "loan_status": loan.status.value,
                })
        else:
            updated = self._store.update_status(
                company_id, run_id, action, run.status,
                PayrollRunStatus(transition.to_state), actor,
            )

        logger.info("payroll_run_transitioned", extra={
            "run_id": str(run_id),
            "company_id": company_id,
            "from_status": run.status.value,
            "to_status": updated.status.value,
            "action": action,
        })
        return updated

    def calculate(self, company_id: str, run_id: UUID, actor_id: UUID | None = None) -> PayrollRun:
        return self.transition(company_id, run_id, "calculate", actor_id)

    def approve(self, company_id: str, run_id: UUID, actor_id: UUID | None = None) -> PayrollRun:
        return self.transition(company_id, run_id, "approve", actor_id)

    def complete_run(self, company_id: str, run_id: UUID, actor_id: UUID | None = None) -> PayrollRun:
        return self.transition(company_id, run_id, "complete", actor_id)

    # -- entry adjustment ------------------------------------------------

    def adjust_entry(
        self,
        company_id: str,
        run_id: UUID,
        employee_id: UUID,
        other_deductions: Decimal | None = None,
        overtime_amount: Decimal | None = None,
        actor_id: UUID | None = None,
    ) -> PayrollEntry:
        """
        Change the manual deduction or overtime figure of one draft entry.

        Raises:
            PayrollRunLockedError: the run has left draft.
            EmployeeNotFoundError: no entry for ``employee_id`` in the run.
        """
        actor = actor_id or uuid4()
        run = self._store.get_run(company_id, run_id)
        if run.is_locked:
            logger.warning("payroll_entry_adjust_rejected", extra={
                "run_id": str(run_id),
                "status": run.status.value,
            })
            raise PayrollRunLockedError(str(run_id), run.status.value)

        current = next(
            (e for e in self._store.list_entries(company_id, run_id) if e.employee_id == employee_id),
            None,
        )
        if current is None:
            raise EmployeeNotFoundError(str(employee_id))

        new_overtime = current.overtime_amount
        new_other = current.other_deductions
        if overtime_amount is not None:
            new_overtime = quantize_money(to_decimal(overtime_amount, "overtime_amount"))
        if other_deductions is not None:
            new_other = quantize_money(to_decimal(other_deductions, "other_deductions"))
        if new_overtime < 0 or new_other < 0:
            raise ValidationError("adjustment", "amounts cannot be negative")

        earnings = current.total_earnings - current.overtime_amount + new_overtime
        deductions = current.total_deductions - current.other_deductions + new_other
        adjusted = replace(
            current,
            overtime_amount=new_overtime,
            other_deductions=new_other,
            net_salary=earnings - deductions,
        )

        self._store.replace_entry(company_id, run_id, adjusted, actor)
        logger.info("payroll_entry_adjusted", extra={
            "run_id": str(run_id),
            "employee_id": str(employee_id),
            "net_salary": str(adjusted.net_salary),
        })
        return adjusted

    # -- reads -----------------------------------------------------------

    def get_run(self, company_id: str, run_id: UUID) -> PayrollRun:
        return self._store.get_run(company_id, run_id)

    def list_entries(self, company_id: str, run_id: UUID) -> tuple[PayrollEntry, ...]:
        return self._store.list_entries(company_id, run_id)
