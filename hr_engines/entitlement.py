"""
hr_engines.entitlement -- Leave accrual and per-year leave balances.

Responsibility:
    Turn an employee's hire date and full leave-request history into the
    statutory leave position for one leave year: annual accrual by length
    of service, tiered sick-leave consumption, gender-specific parental
    leave, and the inclusive business-day count that is authoritative for
    every leave request.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import hr_kernel domain types.
    Consumed by hr_modules.leave (request ledger) and
    hr_modules.payroll (unpaid-leave deduction).

Invariants enforced:
    - Balances are recomputed in full from the request history on every
      call; there is no running total to drift.
    - Rejected and cancelled requests never contribute to used or pending.
    - ``available == entitled + carried_over - used - pending`` for every
      leave type with a ceiling.  The figure is NOT clamped at zero so an
      over-booked balance stays visible.
    - Sick leave is consumed strictly in order: 15 full-pay days, then 30
      half-pay days, then the unpaid remainder.
    - Maternity figures are non-zero only for female employees, paternity
      only for male employees.  The other gender yields zeros, not errors.

Failure modes:
    - ValidationError from ``business_days_between`` if end precedes start.

Audit relevance:
    Leave balances drive approval decisions and the unpaid-leave payroll
    deduction.  ``compute_balance`` is traced via ``@traced_engine``.

Usage:
    from hr_engines.entitlement import EntitlementCalculator

    calculator = EntitlementCalculator(clock)
    balance = calculator.compute_balance(
        employee=employee, leave_history=history, year=2026,
    )
    balance.for_type(LeaveType.ANNUAL).available
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_FLOOR, Decimal
from typing import Iterable, Mapping

from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.domain.records import (
    EmployeeSnapshot,
    Gender,
    LeaveRequestRecord,
    LeaveStatus,
    LeaveType,
)
from hr_kernel.exceptions import ValidationError
from hr_kernel.logging_config import get_logger
from hr_engines.tracer import traced_engine

logger = get_logger("engines.entitlement")

# Average Gregorian month, used to turn elapsed days into service months.
AVERAGE_DAYS_PER_MONTH = Decimal("30.44")

ANNUAL_ACCRUAL_START_MONTHS = 6
ANNUAL_FULL_ENTITLEMENT_MONTHS = 12
ANNUAL_PRORATED_DAYS_PER_MONTH = 2
ANNUAL_LEAVE_DAYS = 30

SICK_FULL_PAY_DAYS = 15
SICK_HALF_PAY_DAYS = 30
SICK_UNPAID_DAYS = 45

MATERNITY_FULL_PAY_DAYS = 45
MATERNITY_HALF_PAY_DAYS = 15

PATERNITY_DAYS = 5

# date.weekday(): Friday == 4, Saturday == 5
UAE_WEEKEND_DAYS: frozenset[int] = frozenset({4, 5})


@dataclass(frozen=True)
class LeaveTypeBalance:
    """
    Balance for one leave type in one leave year.

    ``entitled`` and ``available`` are None for leave types without a
    statutory ceiling (unpaid leave).
    """

    leave_type: LeaveType
    entitled: int | None
    used: int
    pending: int
    carried_over: int = 0
    available: int | None = None

    @property
    def has_ceiling(self) -> bool:
        return self.entitled is not None


@dataclass(frozen=True)
class SickLeaveBreakdown:
    """Approved sick days split across the three pay tiers."""

    full_pay_used: int
    half_pay_used: int
    unpaid_used: int
    full_pay_entitled: int = SICK_FULL_PAY_DAYS
    half_pay_entitled: int = SICK_HALF_PAY_DAYS
    unpaid_entitled: int = SICK_UNPAID_DAYS

    @property
    def total_used(self) -> int:
        return self.full_pay_used + self.half_pay_used + self.unpaid_used

    @property
    def full_pay_remaining(self) -> int:
        return max(0, self.full_pay_entitled - self.full_pay_used)

    @property
    def half_pay_remaining(self) -> int:
        return max(0, self.half_pay_entitled - self.half_pay_used)


@dataclass(frozen=True)
class MaternityLeaveBreakdown:
    """Approved maternity days split into full-pay and half-pay portions."""

    full_pay_entitled: int
    half_pay_entitled: int
    full_pay_used: int = 0
    half_pay_used: int = 0

    @property
    def total_entitled(self) -> int:
        return self.full_pay_entitled + self.half_pay_entitled


@dataclass(frozen=True)
class LeaveBalance:
    """Derived leave position of one employee for one leave year."""

    employee_id: object
    company_id: str
    year: int
    as_of: date
    service_months: int
    balances: Mapping[LeaveType, LeaveTypeBalance]
    sick: SickLeaveBreakdown
    maternity: MaternityLeaveBreakdown = field(
        default_factory=lambda: MaternityLeaveBreakdown(0, 0)
    )

    def for_type(self, leave_type: LeaveType) -> LeaveTypeBalance:
        return self.balances[leave_type]


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def service_months(hire_date: date, as_of: date) -> int:
    """Whole months of continuous service, ``floor(days / 30.44)``."""
    if as_of < hire_date:
        return 0
    elapsed = Decimal((as_of - hire_date).days)
    return int((elapsed / AVERAGE_DAYS_PER_MONTH).to_integral_value(rounding=ROUND_FLOOR))


def annual_entitlement_for_months(months: int) -> int:
    if months < ANNUAL_ACCRUAL_START_MONTHS:
        return 0
    if months < ANNUAL_FULL_ENTITLEMENT_MONTHS:
        return (months - ANNUAL_ACCRUAL_START_MONTHS) * ANNUAL_PRORATED_DAYS_PER_MONTH
    return ANNUAL_LEAVE_DAYS


def sick_leave_tiers(approved_days: int) -> SickLeaveBreakdown:
    """Split a total of approved sick days into full, half and unpaid tiers."""
    remaining = max(0, approved_days)
    full_pay = min(remaining, SICK_FULL_PAY_DAYS)
    remaining -= full_pay
    half_pay = min(remaining, SICK_HALF_PAY_DAYS)
    remaining -= half_pay
    return SickLeaveBreakdown(
        full_pay_used=full_pay,
        half_pay_used=half_pay,
        unpaid_used=remaining,
    )


def business_days_between(
    start: date,
    end: date,
    weekend_days: Iterable[int] = UAE_WEEKEND_DAYS,
) -> int:
    """Inclusive count of days between ``start`` and ``end`` outside the weekend.

    Raises:
        ValidationError: if ``end`` is before ``start``.
    """
    if end < start:
        raise ValidationError("end_date", f"{end} is before start date {start}")
    weekend = frozenset(weekend_days)
    total_days = (end - start).days + 1
    full_weeks, remainder = divmod(total_days, 7)
    count = full_weeks * (7 - len(weekend))
    for offset in range(remainder):
        if (start + timedelta(days=full_weeks * 7 + offset)).weekday() not in weekend:
            count += 1
    return count


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------


class EntitlementCalculator:
    """
    Leave entitlement and balance calculator.

    Contract:
        Pure over its arguments.  The injected clock is consulted only to
        default ``as_of`` when the caller omits it.
    Guarantees:
        - Input records are never mutated.
        - Identical (employee, history, year, as_of, carried_over) always
          yield an identical LeaveBalance.
    Non-goals:
        - Does not persist or cache balances.
        - Does not decide whether a request may be approved; callers read
          ``available`` and apply their own policy.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()

    def annual_entitlement(self, hire_date: date, as_of: date) -> int:
        """Annual leave days accrued by ``as_of`` under the service-length tiers."""
        return annual_entitlement_for_months(service_months(hire_date, as_of))

    def business_days_between(self, start: date, end: date) -> int:
        return business_days_between(start, end)

    def default_as_of(self, year: int) -> date:
        """Balances for past years are read at year end, the current year at today."""
        return min(date(year, 12, 31), self._clock.today())

    @traced_engine("entitlement", "1.0", fingerprint_fields=("year", "as_of", "carried_over"))
    def compute_balance(
        self,
        employee: EmployeeSnapshot,
        leave_history: Iterable[LeaveRequestRecord],
        year: int,
        as_of: date | None = None,
        carried_over: Mapping[LeaveType, int] | None = None,
    ) -> LeaveBalance:
        """
        Compute the employee's leave balance for ``year``.

        Preconditions:
            ``leave_history`` may contain requests of other employees,
            other companies and other years; they are filtered out.

        Postconditions:
            Every LeaveType has an entry in ``balances``.
        """
        evaluation_day = as_of or self.default_as_of(year)
        carry = dict(carried_over or {})

        used: dict[LeaveType, int] = {t: 0 for t in LeaveType}
        pending: dict[LeaveType, int] = {t: 0 for t in LeaveType}
        considered = 0
        for request in leave_history:
            if (
                request.employee_id != employee.id
                or request.company_id != employee.company_id
                or request.year != year
                or not request.status.counts_toward_balance
            ):
                continue
            considered += 1
            if request.status == LeaveStatus.APPROVED:
                used[request.leave_type] += request.total_days
            else:
                pending[request.leave_type] += request.total_days

        months = service_months(employee.hire_date, evaluation_day)
        sick = sick_leave_tiers(used[LeaveType.SICK])
        maternity = self._maternity_breakdown(employee, used[LeaveType.MATERNITY])

        entitled: dict[LeaveType, int | None] = {
            LeaveType.ANNUAL: annual_entitlement_for_months(months),
            LeaveType.SICK: SICK_FULL_PAY_DAYS + SICK_HALF_PAY_DAYS + SICK_UNPAID_DAYS,
            LeaveType.MATERNITY: maternity.total_entitled,
            LeaveType.PATERNITY: PATERNITY_DAYS if employee.gender == Gender.MALE else 0,
            LeaveType.UNPAID: None,
        }

        balances: dict[LeaveType, LeaveTypeBalance] = {}
        for leave_type in LeaveType:
            balances[leave_type] = self._type_balance(
                employee,
                leave_type,
                entitled[leave_type],
                used[leave_type],
                pending[leave_type],
                carry.get(leave_type, 0),
            )

        logger.debug("leave_balance_computed", extra={
            "employee_id": str(employee.id),
            "company_id": employee.company_id,
            "year": year,
            "as_of": evaluation_day.isoformat(),
            "service_months": months,
            "requests_considered": considered,
        })

        return LeaveBalance(
            employee_id=employee.id,
            company_id=employee.company_id,
            year=year,
            as_of=evaluation_day,
            service_months=months,
            balances=balances,
            sick=sick,
            maternity=maternity,
        )

    # -- internals -------------------------------------------------------

    @staticmethod
    def _maternity_breakdown(
        employee: EmployeeSnapshot,
        approved_days: int,
    ) -> MaternityLeaveBreakdown:
        if employee.gender != Gender.FEMALE:
            return MaternityLeaveBreakdown(full_pay_entitled=0, half_pay_entitled=0)
        full_pay = min(approved_days, MATERNITY_FULL_PAY_DAYS)
        return MaternityLeaveBreakdown(
            full_pay_entitled=MATERNITY_FULL_PAY_DAYS,
            half_pay_entitled=MATERNITY_HALF_PAY_DAYS,
            full_pay_used=full_pay,
            half_pay_used=min(approved_days - full_pay, MATERNITY_HALF_PAY_DAYS),
        )

    @staticmethod
    def _type_balance(
        employee: EmployeeSnapshot,
        leave_type: LeaveType,
        entitled: int | None,
        used: int,
        pending: int,
        carried_over: int,
    ) -> LeaveTypeBalance:
        if entitled is None:
            return LeaveTypeBalance(
                leave_type=leave_type,
                entitled=None,
                used=used,
                pending=pending,
                carried_over=carried_over,
                available=None,
            )

        gender_locked = (
            (leave_type == LeaveType.MATERNITY and employee.gender != Gender.FEMALE)
            or (leave_type == LeaveType.PATERNITY and employee.gender != Gender.MALE)
        )
        if gender_locked:
            if used or pending:
                logger.warning("leave_type_not_applicable_to_gender", extra={
                    "employee_id": str(employee.id),
                    "leave_type": leave_type.value,
                    "used": used,
                    "pending": pending,
                })
            return LeaveTypeBalance(
                leave_type=leave_type,
                entitled=0,
                used=0,
                pending=0,
                carried_over=0,
                available=0,
            )

        return LeaveTypeBalance(
            leave_type=leave_type,
            entitled=entitled,
            used=used,
            pending=pending,
            carried_over=carried_over,
            available=entitled + carried_over - used - pending,
        )
