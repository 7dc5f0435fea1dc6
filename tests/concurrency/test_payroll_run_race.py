"""
Concurrency tests for payroll runs and leave decisions.

These tests release many threads at once through a Barrier and verify
that the invariants hold under real interleaving:

- At most one payroll run per company and period.
- A run is completed once; each loan receives exactly one installment.
- A pending leave request receives exactly one decision.

Run with: pytest tests/concurrency -v
Skip with: pytest -m "not slow"
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
from threading import Barrier
from uuid import uuid4

import pytest

from hr_kernel.domain.records import LeaveStatus, LeaveType
from hr_kernel.exceptions import (
    DuplicatePayrollRunError,
    InvalidLeaveTransitionError,
    InvalidRunTransitionError,
)
from hr_modules.leave import LeaveLedger
from hr_modules.payroll import (
    ActiveLoan,
    InMemoryPayrollStore,
    LoanKind,
    PayrollAggregator,
    PayrollRunStatus,
)

pytestmark = pytest.mark.slow

COMPANY = "acme-trading"
THREADS = 16


def _race(fn, count=THREADS):
    """Run ``fn`` on ``count`` threads released together; return (results, errors)."""
    barrier = Barrier(count)

    def worker(i):
        barrier.wait()
        try:
            return ("ok", fn(i))
        except Exception as exc:  # collected for assertions below
            return ("error", exc)

    with ThreadPoolExecutor(max_workers=count) as pool:
        outcomes = list(pool.map(worker, range(count)))
    results = [value for kind, value in outcomes if kind == "ok"]
    errors = [value for kind, value in outcomes if kind == "error"]
    return results, errors


class TestPayrollRunCreationRace:
    """Concurrent creation for the same period."""

    def test_one_run_per_period(self, employee_factory):
        """Sixteen simultaneous creates produce exactly one run."""
        store = InMemoryPayrollStore()
        aggregator = PayrollAggregator(store)
        employees = [employee_factory(employee_number=f"E-{i:03d}") for i in range(5)]

        results, errors = _race(
            lambda _: aggregator.create_run(COMPANY, 3, 2026, employees, [], []),
        )

        assert len(results) == 1
        assert len(errors) == THREADS - 1
        assert all(isinstance(e, DuplicatePayrollRunError) for e in errors)
        assert store.find_run(COMPANY, 3, 2026).id == results[0].id
        assert len(store.list_entries(COMPANY, results[0].id)) == 5

    def test_distinct_periods_do_not_conflict(self, employee_factory):
        """Different months proceed in parallel without conflicts."""
        aggregator = PayrollAggregator(InMemoryPayrollStore())
        employees = [employee_factory()]

        results, errors = _race(
            lambda i: aggregator.create_run(COMPANY, i % 12 + 1, 2026 + i // 12, employees, [], []),
        )

        assert errors == []
        assert len({(r.month, r.year) for r in results}) == THREADS


class TestPayrollCompletionRace:
    """Concurrent completion of the same run."""

    def test_loans_applied_once(self, employee_factory, test_actor_id):
        """Only one completion wins; the loan gets a single installment."""
        store = InMemoryPayrollStore()
        aggregator = PayrollAggregator(store)
        employee = employee_factory()
        loan = ActiveLoan(
            id=uuid4(),
            company_id=employee.company_id,
            employee_id=employee.id,
            kind=LoanKind.LOAN,
            principal=Decimal("5000"),
            monthly_deduction=Decimal("500"),
            remaining_balance=Decimal("5000"),
        )
        store.add_loans([loan], test_actor_id)
        run = aggregator.create_run(COMPANY, 3, 2026, [employee], [], [loan])
        aggregator.calculate(COMPANY, run.id)

        results, errors = _race(lambda _: aggregator.complete_run(COMPANY, run.id))

        assert len(results) == 1
        assert all(isinstance(e, InvalidRunTransitionError) for e in errors)
        assert store.get_run(COMPANY, run.id).status == PayrollRunStatus.COMPLETED
        updated = store.get_loan(loan.id)
        assert updated.remaining_balance == Decimal("4500.00")
        assert updated.paid_installments == 1


class TestLeaveDecisionRace:
    """Concurrent decisions on one pending request."""

    def test_single_decision_wins(self):
        """Approve and reject racing each other leave one final status."""
        ledger = LeaveLedger()
        request = ledger.submit(
            COMPANY, uuid4(), LeaveType.ANNUAL, date(2026, 3, 16), date(2026, 3, 19),
        )

        def decide(i):
            return ledger.approve(request.id) if i % 2 == 0 else ledger.reject(request.id)

        results, errors = _race(decide)

        assert len(results) == 1
        assert all(isinstance(e, InvalidLeaveTransitionError) for e in errors)
        final = ledger.get(request.id).status
        assert final == results[0].status
        assert final in (LeaveStatus.APPROVED, LeaveStatus.REJECTED)
