"""
Typed Exception Hierarchy for the HR Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll and end-of-service figures are legally binding amounts. Callers
(HTTP handlers, batch jobs, persistence adapters) must react to failures by
type and code, never by parsing message strings:

    try:
        aggregator.create_run(company_id, 3, 2026, ...)
    except DuplicatePayrollRunError as e:
        api_response(status=409, code=e.code, month=e.month, year=e.year)

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a ``code`` class attribute (machine-readable, API-safe)
  3. Carries structured attributes (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    HRKernelError (base)
    |
    +-- ValidationError                 missing / malformed input field
    |
    +-- NotFoundError
    |   +-- EmployeeNotFoundError
    |   +-- LoanNotFoundError
    |   +-- PayrollRunNotFoundError
    |   +-- LeaveRequestNotFoundError
    |
    +-- ConflictError
    |   +-- DuplicatePayrollRunError
    |   +-- PayrollRunLockedError
    |   +-- InvalidRunTransitionError
    |   +-- InvalidLeaveTransitionError
    |
    +-- ComputationError
        +-- TerminationBeforeHireError
        +-- PayrollEntryComputationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                        | When Raised
-------------|-----------------------------|-----------------------------------------
Validation   | VALIDATION_ERROR            | Required field missing or malformed
-------------|-----------------------------|-----------------------------------------
Not found    | EMPLOYEE_NOT_FOUND          | Employee absent from snapshot set
             | LOAN_NOT_FOUND              | Loan absent from ledger
             | PAYROLL_RUN_NOT_FOUND       | Run id unknown for the company
             | LEAVE_REQUEST_NOT_FOUND     | Leave request id unknown
-------------|-----------------------------|-----------------------------------------
Conflict     | DUPLICATE_PAYROLL_RUN       | Run exists for (company, month, year)
             | PAYROLL_RUN_LOCKED          | Entry edit after run left draft
             | INVALID_RUN_TRANSITION      | Illegal payroll status change
             | INVALID_LEAVE_TRANSITION    | Leave request no longer pending
-------------|-----------------------------|-----------------------------------------
Computation  | TERMINATION_BEFORE_HIRE     | Termination date precedes hire date
             | PAYROLL_ENTRY_FAILED        | One employee's entry could not be built

Gratuity ineligibility (< 1 year of service) is NOT an exception. It is an
expected business outcome returned as a zero breakdown carrying an
``IneligibilityReason`` (see ``hr_engines.gratuity``).

===============================================================================
DESIGN DECISIONS
===============================================================================

1. WHY INHERIT FROM Exception (not ValueError)?
   Domain errors must be catchable as a group, separate from programming
   errors raised by the standard library.

2. WHY A ``code`` CLASS ATTRIBUTE?
   Codes are static per type: ``DuplicatePayrollRunError.code`` is usable
   without instantiation, in API docs and in log processors.

3. WHY SEPARATE CATEGORIES?
   Middleware maps them to responses:
   - ValidationError  -> 422
   - NotFoundError    -> 404
   - ConflictError    -> 409
   - ComputationError -> 422 with the offending figures
===============================================================================
"""

from __future__ import annotations

from datetime import date


class HRKernelError(Exception):
    """
    Base exception for all HR kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "HR_KERNEL_ERROR"


# Validation


class ValidationError(HRKernelError):
    """A required input is missing or malformed."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Not found


class NotFoundError(HRKernelError):
    """Base exception for references missing from the supplied snapshots."""

    code: str = "NOT_FOUND"


class EmployeeNotFoundError(NotFoundError):
    """Employee is not part of the provided snapshot set."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


class LoanNotFoundError(NotFoundError):
    """Loan referenced by a payroll entry is not in the ledger."""

    code: str = "LOAN_NOT_FOUND"

    def __init__(self, loan_id: str):
        self.loan_id = loan_id
        super().__init__(f"Loan not found: {loan_id}")


class PayrollRunNotFoundError(NotFoundError):
    """Payroll run does not exist for the company."""

    code: str = "PAYROLL_RUN_NOT_FOUND"

    def __init__(self, company_id: str, run_id: str):
        self.company_id = company_id
        self.run_id = run_id
        super().__init__(f"Payroll run {run_id} not found for company {company_id}")


class LeaveRequestNotFoundError(NotFoundError):
    """Leave request id is unknown to the ledger."""

    code: str = "LEAVE_REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Leave request not found: {request_id}")


# Conflict


class ConflictError(HRKernelError):
    """Base exception for operations that conflict with existing state."""

    code: str = "CONFLICT"


class DuplicatePayrollRunError(ConflictError):
    """A payroll run already exists for (company, month, year)."""

    code: str = "DUPLICATE_PAYROLL_RUN"

    def __init__(self, company_id: str, month: int, year: int):
        self.company_id = company_id
        self.month = month
        self.year = year
        super().__init__(
            f"Payroll run already exists for company {company_id} "
            f"period {year}-{month:02d}"
        )


class PayrollRunLockedError(ConflictError):
    """Entries cannot change once the run has left draft."""

    code: str = "PAYROLL_RUN_LOCKED"

    def __init__(self, run_id: str, status: str):
        self.run_id = run_id
        self.status = status
        super().__init__(
            f"Payroll run {run_id} is {status}; entries are only editable in draft"
        )


class InvalidRunTransitionError(ConflictError):
    """Requested payroll status change is not allowed by the workflow."""

    code: str = "INVALID_RUN_TRANSITION"

    def __init__(self, run_id: str, from_status: str, action: str):
        self.run_id = run_id
        self.from_status = from_status
        self.action = action
        super().__init__(
            f"Action '{action}' is not allowed for payroll run {run_id} "
            f"in status '{from_status}'"
        )


class InvalidLeaveTransitionError(ConflictError):
    """Leave requests may only be decided while pending."""

    code: str = "INVALID_LEAVE_TRANSITION"

    def __init__(self, request_id: str, from_status: str, to_status: str):
        self.request_id = request_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Leave request {request_id} cannot move from "
            f"'{from_status}' to '{to_status}'"
        )


# Computation


class ComputationError(HRKernelError):
    """Inputs are individually valid but inconsistent with each other."""

    code: str = "COMPUTATION_ERROR"

    def __init__(self, message: str):
        super().__init__(message)


class TerminationBeforeHireError(ComputationError):
    """Termination date precedes hire date."""

    code: str = "TERMINATION_BEFORE_HIRE"

    def __init__(self, hire_date: date, termination_date: date):
        self.hire_date = hire_date
        self.termination_date = termination_date
        super().__init__(
            f"Termination date {termination_date} is before hire date {hire_date}"
        )


class PayrollEntryComputationError(ComputationError):
    """An employee's payroll entry failed; the whole run is aborted."""

    code: str = "PAYROLL_ENTRY_FAILED"

    def __init__(self, employee_id: str, cause: str):
        self.employee_id = employee_id
        self.cause = cause
        super().__init__(
            f"Payroll entry for employee {employee_id} could not be computed: {cause}"
        )
