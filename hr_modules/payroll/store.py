"""
Payroll Stores (``hr_modules.payroll.store``).

Responsibility
--------------
Hold payroll runs, their entries and the loan ledger, and make the three
stateful payroll operations atomic:

* inserting a run together with all of its entries, at most once per
  (company, month, year);
* compare-and-set status changes;
* completing a run, which applies every loan deduction line of the run to
  its loan in the same unit of work as the status change.

Two implementations share the ``PayrollStore`` protocol:
``InMemoryPayrollStore`` (one lock around every operation) and
``SqlPayrollStore`` (one transaction per operation, period uniqueness from
the ``uq_hr_payroll_run_period`` constraint).

Architecture position
---------------------
**Modules layer** -- persistence seam used by ``PayrollAggregator``.

Failure modes
-------------
* ``DuplicatePayrollRunError`` -- a run for the period already exists.
* ``PayrollRunNotFoundError`` / ``LoanNotFoundError`` -- unknown ids.
* ``PayrollRunLockedError`` -- entry change on a run that left draft.
* ``InvalidRunTransitionError`` -- the run is no longer in the status the
  caller expected (a concurrent transition won).
* Any failure while completing leaves the run status and every loan
  exactly as they were.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import replace
from typing import Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from hr_kernel.db.engine import get_session_factory, session_scope
from hr_kernel.exceptions import (
    DuplicatePayrollRunError,
    EmployeeNotFoundError,
    InvalidRunTransitionError,
    LoanNotFoundError,
    PayrollRunLockedError,
    PayrollRunNotFoundError,
)
from hr_kernel.logging_config import get_logger
from hr_modules.payroll.models import (
    ActiveLoan,
    LoanDeductionLine,
    PayrollEntry,
    PayrollRun,
    PayrollRunStatus,
)
from hr_modules.payroll.orm import LoanModel, PayrollEntryModel, PayrollRunModel

logger = get_logger("modules.payroll.store")


@runtime_checkable
class PayrollStore(Protocol):
    """Persistence protocol for payroll runs and the loan ledger."""

    def add_loans(self, loans: Iterable[ActiveLoan], actor_id: UUID) -> None: ...

    def get_loan(self, loan_id: UUID) -> ActiveLoan: ...

    def list_loans(
        self, company_id: str, employee_id: UUID | None = None,
    ) -> tuple[ActiveLoan, ...]: ...

    def insert_run(
        self, run: PayrollRun, entries: tuple[PayrollEntry, ...], actor_id: UUID,
    ) -> PayrollRun: ...

    def find_run(self, company_id: str, month: int, year: int) -> PayrollRun | None: ...

    def get_run(self, company_id: str, run_id: UUID) -> PayrollRun: ...

    def list_entries(self, company_id: str, run_id: UUID) -> tuple[PayrollEntry, ...]: ...

    def replace_entry(
        self, company_id: str, run_id: UUID, entry: PayrollEntry, actor_id: UUID,
    ) -> PayrollRun: ...

    def update_status(
        self,
        company_id: str,
        run_id: UUID,
        action: str,
        expected: PayrollRunStatus,
        new_status: PayrollRunStatus,
        actor_id: UUID,
    ) -> PayrollRun: ...

    def complete_run(
        self,
        company_id: str,
        run_id: UUID,
        expected: PayrollRunStatus,
        actor_id: UUID,
    ) -> tuple[PayrollRun, tuple[ActiveLoan, ...]]: ...


def _apply_loan_lines(
    run_id: UUID,
    lines: Iterable[LoanDeductionLine],
    lookup,
) -> dict[UUID, ActiveLoan]:
    """Loans after applying ``lines``, keyed by id.  Pure: nothing is written."""
    updated: dict[UUID, ActiveLoan] = {}
    for line in lines:
        loan = updated.get(line.loan_id) or lookup(line.loan_id)
        if loan is None:
            raise LoanNotFoundError(str(line.loan_id))
        if not loan.is_active:
            logger.warning("loan_already_completed", extra={
                "run_id": str(run_id),
                "loan_id": str(loan.id),
            })
            continue
        updated[loan.id] = loan.apply_installment(line.amount)
    return updated


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryPayrollStore:
    """
    Process-local store.  Every operation runs under a single lock, so the
    period check and the insert of a run can never interleave.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._runs: dict[UUID, PayrollRun] = {}
        self._periods: dict[tuple[str, int, int], UUID] = {}
        self._entries: dict[UUID, dict[UUID, PayrollEntry]] = {}
        self._loans: dict[UUID, ActiveLoan] = {}

    # -- loans -----------------------------------------------------------

    def add_loans(self, loans: Iterable[ActiveLoan], actor_id: UUID) -> None:
        with self._lock:
            for loan in loans:
                self._loans[loan.id] = loan

    def get_loan(self, loan_id: UUID) -> ActiveLoan:
        with self._lock:
            loan = self._loans.get(loan_id)
        if loan is None:
            raise LoanNotFoundError(str(loan_id))
        return loan

    def list_loans(
        self, company_id: str, employee_id: UUID | None = None,
    ) -> tuple[ActiveLoan, ...]:
        with self._lock:
            loans = list(self._loans.values())
        return tuple(
            loan for loan in loans
            if loan.company_id == company_id
            and (employee_id is None or loan.employee_id == employee_id)
        )

    # -- runs ------------------------------------------------------------

    def insert_run(
        self, run: PayrollRun, entries: tuple[PayrollEntry, ...], actor_id: UUID,
    ) -> PayrollRun:
        key = (run.company_id, run.month, run.year)
        with self._lock:
            if key in self._periods:
                raise DuplicatePayrollRunError(run.company_id, run.month, run.year)
            self._periods[key] = run.id
            self._runs[run.id] = run
            self._entries[run.id] = {e.employee_id: e for e in entries}
        return run

    def find_run(self, company_id: str, month: int, year: int) -> PayrollRun | None:
        with self._lock:
            run_id = self._periods.get((company_id, month, year))
            return self._runs.get(run_id) if run_id is not None else None

    def get_run(self, company_id: str, run_id: UUID) -> PayrollRun:
        with self._lock:
            return self._require_run(company_id, run_id)

    def list_entries(self, company_id: str, run_id: UUID) -> tuple[PayrollEntry, ...]:
        with self._lock:
            self._require_run(company_id, run_id)
            return tuple(self._entries[run_id].values())

    def replace_entry(
        self, company_id: str, run_id: UUID, entry: PayrollEntry, actor_id: UUID,
    ) -> PayrollRun:
        with self._lock:
            run = self._require_run(company_id, run_id)
            if run.is_locked:
                raise PayrollRunLockedError(str(run_id), run.status.value)
            entries = self._entries[run_id]
            if entry.employee_id not in entries:
                raise EmployeeNotFoundError(str(entry.employee_id))
            entries[entry.employee_id] = entry
            updated = run.with_totals(tuple(entries.values()))
            self._runs[run_id] = updated
            return updated

    def update_status(
        self,
        company_id: str,
        run_id: UUID,
        action: str,
        expected: PayrollRunStatus,
        new_status: PayrollRunStatus,
        actor_id: UUID,
    ) -> PayrollRun:
        with self._lock:
            run = self._require_run(company_id, run_id)
            if run.status != expected:
                raise InvalidRunTransitionError(str(run_id), run.status.value, action)
            updated = replace(run, status=new_status)
            self._runs[run_id] = updated
            return updated

    def complete_run(
        self,
        company_id: str,
        run_id: UUID,
        expected: PayrollRunStatus,
        actor_id: UUID,
    ) -> tuple[PayrollRun, tuple[ActiveLoan, ...]]:
        with self._lock:
            run = self._require_run(company_id, run_id)
            if run.status != expected:
                raise InvalidRunTransitionError(str(run_id), run.status.value, "complete")
            lines = [
                line
                for entry in self._entries[run_id].values()
                for line in entry.loan_lines
            ]
            # Compute every loan first; only then swap, so a failure changes nothing.
            updated_loans = _apply_loan_lines(run_id, lines, self._loans.get)
            completed = replace(run, status=PayrollRunStatus.COMPLETED)
            self._loans.update(updated_loans)
            self._runs[run_id] = completed
            return completed, tuple(updated_loans.values())

    def _require_run(self, company_id: str, run_id: UUID) -> PayrollRun:
        run = self._runs.get(run_id)
        if run is None or run.company_id != company_id:
            raise PayrollRunNotFoundError(company_id, str(run_id))
        return run


# ---------------------------------------------------------------------------
# SQLAlchemy store
# ---------------------------------------------------------------------------


class SqlPayrollStore:
    """
    Store backed by the ``hr_modules.payroll.orm`` tables.

    Every public method is one ``session_scope`` transaction: committed on
    success, rolled back on any exception.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._factory = session_factory or get_session_factory()

    # -- loans -----------------------------------------------------------

    def add_loans(self, loans: Iterable[ActiveLoan], actor_id: UUID) -> None:
        with session_scope(self._factory) as session:
            for loan in loans:
                session.add(LoanModel.from_dto(loan, actor_id))

    def get_loan(self, loan_id: UUID) -> ActiveLoan:
        with session_scope(self._factory) as session:
            model = session.get(LoanModel, loan_id)
            if model is None:
                raise LoanNotFoundError(str(loan_id))
            return model.to_dto()

    def list_loans(
        self, company_id: str, employee_id: UUID | None = None,
    ) -> tuple[ActiveLoan, ...]:
        stmt = select(LoanModel).where(LoanModel.company_id == company_id)
        if employee_id is not None:
            stmt = stmt.where(LoanModel.employee_id == employee_id)
        with session_scope(self._factory) as session:
            return tuple(m.to_dto() for m in session.execute(stmt).scalars())

    # -- runs ------------------------------------------------------------

    def insert_run(
        self, run: PayrollRun, entries: tuple[PayrollEntry, ...], actor_id: UUID,
    ) -> PayrollRun:
        try:
            with session_scope(self._factory) as session:
                model = PayrollRunModel.from_dto(run, actor_id)
                model.entries = [PayrollEntryModel.from_dto(e, actor_id) for e in entries]
                session.add(model)
                session.flush()
        except IntegrityError:
            if self.find_run(run.company_id, run.month, run.year) is None:
                raise
            logger.warning("payroll_run_insert_conflict", extra={
                "company_id": run.company_id,
                "month": run.month,
                "year": run.year,
            })
            raise DuplicatePayrollRunError(run.company_id, run.month, run.year) from None
        return run

    def find_run(self, company_id: str, month: int, year: int) -> PayrollRun | None:
        stmt = select(PayrollRunModel).where(
            PayrollRunModel.company_id == company_id,
            PayrollRunModel.month == month,
            PayrollRunModel.year == year,
        )
        with session_scope(self._factory) as session:
            model = session.execute(stmt).scalar_one_or_none()
            return model.to_dto() if model is not None else None

    def get_run(self, company_id: str, run_id: UUID) -> PayrollRun:
        with session_scope(self._factory) as session:
            return self._require_run(session, company_id, run_id).to_dto()

    def list_entries(self, company_id: str, run_id: UUID) -> tuple[PayrollEntry, ...]:
        with session_scope(self._factory) as session:
            model = self._require_run(session, company_id, run_id)
            return tuple(e.to_dto() for e in model.entries)

    def replace_entry(
        self, company_id: str, run_id: UUID, entry: PayrollEntry, actor_id: UUID,
    ) -> PayrollRun:
        with session_scope(self._factory) as session:
            model = self._require_run(session, company_id, run_id, for_update=True)
            if model.status != PayrollRunStatus.DRAFT.value:
                raise PayrollRunLockedError(str(run_id), model.status)
            existing = next(
                (e for e in model.entries if e.employee_id == entry.employee_id), None,
            )
            if existing is None:
                raise EmployeeNotFoundError(str(entry.employee_id))
            existing.apply_adjustment(entry, actor_id)
            session.flush()
            updated = model.to_dto().with_totals(tuple(e.to_dto() for e in model.entries))
            model.apply_totals(updated)
            model.updated_by_id = actor_id
            return updated

    def update_status(
        self,
        company_id: str,
        run_id: UUID,
        action: str,
        expected: PayrollRunStatus,
        new_status: PayrollRunStatus,
        actor_id: UUID,
    ) -> PayrollRun:
        with session_scope(self._factory) as session:
            model = self._require_run(session, company_id, run_id, for_update=True)
            if model.status != expected.value:
                raise InvalidRunTransitionError(str(run_id), model.status, action)
            model.status = new_status.value
            model.updated_by_id = actor_id
            return model.to_dto()

    def complete_run(
        self,
        company_id: str,
        run_id: UUID,
        expected: PayrollRunStatus,
        actor_id: UUID,
    ) -> tuple[PayrollRun, tuple[ActiveLoan, ...]]:
        with session_scope(self._factory) as session:
            model = self._require_run(session, company_id, run_id, for_update=True)
            if model.status != expected.value:
                raise InvalidRunTransitionError(str(run_id), model.status, "complete")

            lines = [line.to_dto() for entry in model.entries for line in entry.loan_lines]
            loan_ids = {line.loan_id for line in lines}
            loan_models: dict[UUID, LoanModel] = {}
            if loan_ids:
                loan_models = {
                    m.id: m
                    for m in session.execute(
                        select(LoanModel).where(LoanModel.id.in_(loan_ids)).with_for_update()
                    ).scalars()
                }

            def lookup(loan_id: UUID) -> ActiveLoan | None:
                found = loan_models.get(loan_id)
                return found.to_dto() if found is not None else None

            updated_loans = _apply_loan_lines(run_id, lines, lookup)
            for loan in updated_loans.values():
                loan_models[loan.id].apply_dto(loan, actor_id)
            model.status = PayrollRunStatus.COMPLETED.value
            model.updated_by_id = actor_id
            return model.to_dto(), tuple(updated_loans.values())

    @staticmethod
    def _require_run(
        session: Session,
        company_id: str,
        run_id: UUID,
        for_update: bool = False,
    ) -> PayrollRunModel:
        stmt = select(PayrollRunModel).where(
            PayrollRunModel.id == run_id,
            PayrollRunModel.company_id == company_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        model = session.execute(stmt).scalar_one_or_none()
        if model is None:
            raise PayrollRunNotFoundError(company_id, str(run_id))
        return model
