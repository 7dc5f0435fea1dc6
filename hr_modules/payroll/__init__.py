"""
Payroll Module.

Handles:
- Monthly payroll runs (one per company and month)
- Earnings: basic salary, allowances, approved overtime
- Deductions: loans, salary advances, unpaid leave, manual deductions
- Run lifecycle: draft -> calculated -> approved -> completed
- Loan ledger updates when a run completes
- In-memory and SQLAlchemy-backed stores
"""

from hr_modules.payroll.aggregator import (
    PayrollAggregator,
    compute_entry,
    unpaid_leave_daily_rate,
)
from hr_modules.payroll.models import (
    ActiveLoan,
    LoanDeductionLine,
    LoanKind,
    LoanStatus,
    ManualDeduction,
    PayrollEntry,
    PayrollPeriod,
    PayrollRun,
    PayrollRunStatus,
)
from hr_modules.payroll.store import InMemoryPayrollStore, PayrollStore, SqlPayrollStore
from hr_modules.payroll.workflows import PAYROLL_RUN_WORKFLOW

__all__ = [
    "PayrollAggregator",
    "compute_entry",
    "unpaid_leave_daily_rate",
    "ActiveLoan",
    "LoanDeductionLine",
    "LoanKind",
    "LoanStatus",
    "ManualDeduction",
    "PayrollEntry",
    "PayrollPeriod",
    "PayrollRun",
    "PayrollRunStatus",
    "InMemoryPayrollStore",
    "PayrollStore",
    "SqlPayrollStore",
    "PAYROLL_RUN_WORKFLOW",
]
