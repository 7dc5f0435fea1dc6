"""
ORM round-trip and SQL store tests for the payroll module.

Runs the SQLAlchemy-backed ``SqlPayrollStore`` against an in-memory SQLite
database.  Verifies that runs, entries, loan lines and loans survive a
round-trip with exact Decimal values, that the period uniqueness
constraint maps to ``DuplicatePayrollRunError``, and that a failed
completion rolls back as a unit.
"""

from datetime import date, time
from decimal import Decimal
from uuid import uuid4

import pytest

from hr_engines.overtime import OvertimeStatus, create_overtime_entry
from hr_kernel.exceptions import (
    DuplicatePayrollRunError,
    LoanNotFoundError,
    PayrollRunLockedError,
    PayrollRunNotFoundError,
)
from hr_modules.payroll import (
    ActiveLoan,
    LoanKind,
    LoanStatus,
    PayrollAggregator,
    PayrollRun,
    PayrollRunStatus,
    PayrollStore,
    SqlPayrollStore,
)

COMPANY = "acme-trading"


def _loan(employee, monthly="500", remaining="500", kind=LoanKind.LOAN):
    return ActiveLoan(
        id=uuid4(),
        company_id=employee.company_id,
        employee_id=employee.id,
        kind=kind,
        principal=Decimal(remaining),
        monthly_deduction=Decimal(monthly),
        remaining_balance=Decimal(remaining),
    )


@pytest.fixture
def sql_store(sqlite_session_factory):
    return SqlPayrollStore(sqlite_session_factory)


@pytest.fixture
def roster(employee_factory):
    return (
        employee_factory(employee_number="E-001", basic_salary="12345.67", housing="2000"),
        employee_factory(employee_number="E-002", basic_salary="8000"),
    )


class TestSqlStoreRoundTrip:
    """DTO -> ORM -> DTO preserves every figure."""

    def test_store_satisfies_protocol(self, sql_store):
        """The SQL store implements the PayrollStore protocol."""
        assert isinstance(sql_store, PayrollStore)

    def test_run_and_entries_round_trip(self, sql_store, roster, test_actor_id):
        """Stored entries read back equal to what was computed."""
        first, _ = roster
        overtime = create_overtime_entry(
            company_id=COMPANY,
            employee_id=first.id,
            basic_salary=first.basic_salary,
            work_date=date(2026, 3, 16),
            start_time=time(18, 0),
            end_time=time(19, 30),
        ).with_status(OvertimeStatus.APPROVED)
        loan = _loan(first)
        sql_store.add_loans([loan], test_actor_id)

        aggregator = PayrollAggregator(sql_store)
        run = aggregator.create_run(COMPANY, 3, 2026, roster, [overtime], [loan], actor_id=test_actor_id)

        stored_run = sql_store.get_run(COMPANY, run.id)
        assert stored_run == run

        stored = {e.employee_id: e for e in sql_store.list_entries(COMPANY, run.id)}
        assert set(stored) == {e.id for e in roster}
        entry = stored[first.id]
        assert entry.basic_salary == Decimal("12345.67")
        assert entry.housing_allowance == Decimal("2000.00")
        # 12345.67 / 240 * 1.25 * 1.5 hours
        assert entry.overtime_amount == Decimal("96.45")
        assert entry.loan_lines[0].loan_id == loan.id
        assert entry.loan_lines[0].kind == LoanKind.LOAN
        assert entry.net_salary == Decimal("13942.12")

    def test_loan_round_trip(self, sql_store, roster, test_actor_id):
        """Loans read back exactly, filtered by company and employee."""
        first, second = roster
        a = _loan(first, monthly="333.33", remaining="999.99")
        b = _loan(second, kind=LoanKind.ADVANCE)
        sql_store.add_loans([a, b], test_actor_id)

        assert sql_store.get_loan(a.id) == a
        assert sql_store.list_loans(COMPANY, first.id) == (a,)
        assert len(sql_store.list_loans(COMPANY)) == 2
        assert sql_store.list_loans("other-co") == ()

    def test_unknown_loan(self, sql_store):
        """A missing loan id raises not-found."""
        with pytest.raises(LoanNotFoundError):
            sql_store.get_loan(uuid4())

    def test_find_run_absent(self, sql_store):
        """No run for the period returns None."""
        assert sql_store.find_run(COMPANY, 1, 2026) is None


class TestSqlStoreConstraints:
    """Uniqueness and lifecycle enforced by the store."""

    def test_period_unique_constraint(self, sql_store, test_actor_id):
        """A second insert for the same period maps IntegrityError to a conflict."""
        first = PayrollRun(id=uuid4(), company_id=COMPANY, month=3, year=2026)
        second = PayrollRun(id=uuid4(), company_id=COMPANY, month=3, year=2026)
        sql_store.insert_run(first, (), test_actor_id)

        with pytest.raises(DuplicatePayrollRunError):
            sql_store.insert_run(second, (), test_actor_id)

        assert sql_store.find_run(COMPANY, 3, 2026).id == first.id

    def test_run_not_visible_to_other_company(self, sql_store, test_actor_id):
        """Runs are scoped by company."""
        run = PayrollRun(id=uuid4(), company_id=COMPANY, month=3, year=2026)
        sql_store.insert_run(run, (), test_actor_id)
        with pytest.raises(PayrollRunNotFoundError):
            sql_store.get_run("other-co", run.id)

    def test_adjust_entry_persists_totals(self, sql_store, roster, test_actor_id):
        """A draft adjustment updates the entry row and the run totals."""
        first, _ = roster
        aggregator = PayrollAggregator(sql_store)
        run = aggregator.create_run(COMPANY, 3, 2026, roster, [], [], actor_id=test_actor_id)

        aggregator.adjust_entry(COMPANY, run.id, first.id, other_deductions=Decimal("45.67"))

        stored = sql_store.get_run(COMPANY, run.id)
        assert stored.total_net == run.total_net - Decimal("45.67")
        entry = next(e for e in sql_store.list_entries(COMPANY, run.id) if e.employee_id == first.id)
        assert entry.other_deductions == Decimal("45.67")

    def test_adjust_after_calculate_refused(self, sql_store, roster, test_actor_id):
        """The store itself refuses entry changes once the run left draft."""
        first, _ = roster
        aggregator = PayrollAggregator(sql_store)
        run = aggregator.create_run(COMPANY, 3, 2026, roster, [], [], actor_id=test_actor_id)
        aggregator.calculate(COMPANY, run.id)
        entry = sql_store.list_entries(COMPANY, run.id)[0]
        with pytest.raises(PayrollRunLockedError):
            sql_store.replace_entry(COMPANY, run.id, entry, test_actor_id)


class TestSqlCompletion:
    """Completion applies the loan ledger in the same transaction."""

    def test_complete_updates_loans(self, sql_store, roster, test_actor_id):
        """Completing the run pays one installment on each loan."""
        first, second = roster
        loan = _loan(first, monthly="500", remaining="500")
        advance = _loan(second, monthly="1000", remaining="2500", kind=LoanKind.ADVANCE)
        sql_store.add_loans([loan, advance], test_actor_id)

        aggregator = PayrollAggregator(sql_store)
        run = aggregator.create_run(COMPANY, 3, 2026, roster, [], [loan, advance])
        aggregator.calculate(COMPANY, run.id)
        completed = aggregator.complete_run(COMPANY, run.id)

        assert completed.status == PayrollRunStatus.COMPLETED
        paid = sql_store.get_loan(loan.id)
        assert paid.remaining_balance == Decimal("0")
        assert paid.status == LoanStatus.COMPLETED
        assert sql_store.get_loan(advance.id).remaining_balance == Decimal("1500.00")

    def test_failed_completion_rolls_back(self, sql_store, roster, test_actor_id):
        """A loan missing from the ledger aborts completion with nothing written."""
        first, second = roster
        present = _loan(first)
        missing = _loan(second, kind=LoanKind.ADVANCE)
        sql_store.add_loans([present], test_actor_id)

        aggregator = PayrollAggregator(sql_store)
        run = aggregator.create_run(COMPANY, 3, 2026, roster, [], [present, missing])
        aggregator.calculate(COMPANY, run.id)

        with pytest.raises(LoanNotFoundError):
            aggregator.complete_run(COMPANY, run.id)

        assert sql_store.get_run(COMPANY, run.id).status == PayrollRunStatus.CALCULATED
        assert sql_store.get_loan(present.id) == present
