"""
hr_engines.gratuity -- End-of-service gratuity.

Responsibility:
    Compute the statutory end-of-service benefit from basic salary, the
    service period (less unpaid leave), the contract type and who ended the
    employment.  Every intermediate figure is kept on the result.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import hr_kernel domain types.

Invariants enforced:
    - Inputs are validated before any arithmetic (fail fast).
    - Service shorter than one year is an expected outcome: a zero
      breakdown with ``IneligibilityReason.INSUFFICIENT_SERVICE``, never an
      exception.
    - ``daily_wage = basic_salary * 12 / 365``.
    - Five-year boundary: service up to and including five years accrues at
      21 days per year; only the fraction beyond five accrues at 30.
    - Resignation multiplier on unlimited contracts by service: <1 year 0,
      <3 years 1/3, <5 years 2/3, otherwise 1.  Limited contracts and
      employer termination always use 1.
    - ``capped_gratuity <= 24 * basic_salary``.
    - No clock: the termination date is the only "now".

Failure modes:
    - ValidationError: missing termination date, non-positive salary,
      negative unpaid-leave days.
    - TerminationBeforeHireError: termination precedes hire.
    - ComputationError: unpaid-leave days exceed the service period.

Audit relevance:
    The breakdown is what an employee is shown at exit and what the final
    settlement is paid from.  Calls are traced via ``@traced_engine``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from hr_kernel.domain.records import ContractType, EmployeeSnapshot
from hr_kernel.domain.values import ZERO, quantize_money, to_decimal
from hr_kernel.exceptions import (
    ComputationError,
    TerminationBeforeHireError,
    ValidationError,
)
from hr_kernel.logging_config import get_logger
from hr_engines.tracer import traced_engine

logger = get_logger("engines.gratuity")

DAYS_IN_YEAR = Decimal("365")
DAYS_IN_REPORTING_MONTH = 30
MONTHS_IN_YEAR = Decimal("12")

MIN_SERVICE_YEARS = Decimal("1")
FIRST_TIER_YEARS = Decimal("5")
FIRST_TIER_DAYS_PER_YEAR = Decimal("21")
SECOND_TIER_DAYS_PER_YEAR = Decimal("30")
MAX_CAP_YEARS_OF_SALARY = Decimal("2")

PAYMENT_DEADLINE_DAYS = 14

ONE = Decimal("1")
ONE_THIRD = ONE / Decimal("3")
TWO_THIRDS = Decimal("2") / Decimal("3")


class TerminationType(str, Enum):
    RESIGNATION = "resignation"
    EMPLOYER_TERMINATION = "termination"


class IneligibilityReason(str, Enum):
    INSUFFICIENT_SERVICE = "insufficient_service"


@dataclass(frozen=True)
class GratuityBreakdown:
    """Every figure that goes into an end-of-service gratuity."""

    # Service
    hire_date: date
    termination_date: date
    total_service_days: int
    unpaid_leave_days: int
    effective_service_days: int
    years_of_service: Decimal
    full_years: int
    months_of_service: int
    days_of_service: int

    # Wage
    basic_salary: Decimal
    annual_salary: Decimal
    daily_wage: Decimal

    # Tiers
    first_five_years_amount: Decimal
    after_five_years_amount: Decimal
    gross_gratuity: Decimal

    # Adjustments
    contract_type: ContractType
    termination_type: TerminationType
    resignation_multiplier: Decimal
    resignation_deduction: Decimal
    net_gratuity: Decimal

    # Cap
    max_cap: Decimal
    capped_gratuity: Decimal
    is_capped: bool

    # Eligibility
    is_eligible: bool
    ineligibility_reason: IneligibilityReason | None = None

    @property
    def payment_deadline(self) -> date:
        """Last day the final settlement may be paid."""
        return payment_deadline(self.termination_date)

    def quantized(self) -> GratuityBreakdown:
        """Copy with every money figure rounded to fils."""
        return replace(
            self,
            annual_salary=quantize_money(self.annual_salary),
            daily_wage=quantize_money(self.daily_wage),
            first_five_years_amount=quantize_money(self.first_five_years_amount),
            after_five_years_amount=quantize_money(self.after_five_years_amount),
            gross_gratuity=quantize_money(self.gross_gratuity),
            resignation_deduction=quantize_money(self.resignation_deduction),
            net_gratuity=quantize_money(self.net_gratuity),
            max_cap=quantize_money(self.max_cap),
            capped_gratuity=quantize_money(self.capped_gratuity),
        )

    def service_duration(self) -> str:
        """Human-readable service length, e.g. ``"3 years, 2 months, 5 days"``."""
        parts = []
        for count, unit in (
            (self.full_years, "year"),
            (self.months_of_service, "month"),
            (self.days_of_service, "day"),
        ):
            if count > 0:
                parts.append(f"{count} {unit}{'' if count == 1 else 's'}")
        return ", ".join(parts) or "0 days"


def resignation_multiplier(
    years_of_service: Decimal,
    termination_type: TerminationType,
    contract_type: ContractType = ContractType.UNLIMITED,
) -> Decimal:
    """Share of the gross gratuity paid out.

    Only unlimited contracts are reduced on resignation; limited contracts
    and employer terminations are paid in full.
    """
    if termination_type == TerminationType.EMPLOYER_TERMINATION:
        return ONE
    if contract_type == ContractType.LIMITED:
        return ONE
    if years_of_service < Decimal("1"):
        return ZERO
    if years_of_service < Decimal("3"):
        return ONE_THIRD
    if years_of_service < Decimal("5"):
        return TWO_THIRDS
    return ONE


def resignation_tier_description(years_of_service: Decimal) -> str:
    if years_of_service < Decimal("1"):
        return "Less than 1 year - no gratuity entitlement"
    if years_of_service < Decimal("3"):
        return "1-3 years - entitled to 1/3 of gratuity"
    if years_of_service < Decimal("5"):
        return "3-5 years - entitled to 2/3 of gratuity"
    return "More than 5 years - entitled to full gratuity"


def payment_deadline(termination_date: date) -> date:
    return termination_date + timedelta(days=PAYMENT_DEADLINE_DAYS)


def _validate(
    basic_salary: Decimal | int | str,
    hire_date: date,
    termination_date: date | None,
    unpaid_leave_days: int,
) -> tuple[Decimal, date]:
    if termination_date is None:
        raise ValidationError("termination_date", "is required to compute gratuity")
    salary = to_decimal(basic_salary, "basic_salary")
    if salary <= 0:
        raise ValidationError("basic_salary", "must be positive")
    if unpaid_leave_days < 0:
        raise ValidationError("unpaid_leave_days", "cannot be negative")
    if termination_date < hire_date:
        raise TerminationBeforeHireError(hire_date, termination_date)
    service_days = (termination_date - hire_date).days
    if unpaid_leave_days > service_days:
        raise ComputationError(
            f"Unpaid leave of {unpaid_leave_days} days exceeds "
            f"the {service_days}-day service period"
        )
    return salary, termination_date


@traced_engine(
    "gratuity", "1.0",
    fingerprint_fields=(
        "basic_salary", "hire_date", "termination_date",
        "contract_type", "termination_type", "unpaid_leave_days",
    ),
)
def calculate_gratuity(
    *,
    basic_salary: Decimal,
    hire_date: date,
    termination_date: date | None,
    contract_type: ContractType,
    termination_type: TerminationType,
    unpaid_leave_days: int = 0,
) -> GratuityBreakdown:
    """
    Compute the end-of-service gratuity breakdown.

    Preconditions:
        ``basic_salary`` excludes allowances.

    Postconditions:
        ``capped_gratuity == min(net_gratuity, max_cap)``.
        Ineligible results carry zero amounts and a reason.
    """
    salary, end = _validate(basic_salary, hire_date, termination_date, unpaid_leave_days)

    total_days = (end - hire_date).days
    effective_days = total_days - unpaid_leave_days
    years = Decimal(effective_days) / DAYS_IN_YEAR
    full_years, leftover_days = divmod(effective_days, int(DAYS_IN_YEAR))
    months, days = divmod(leftover_days, DAYS_IN_REPORTING_MONTH)

    annual_salary = salary * MONTHS_IN_YEAR
    daily_wage = annual_salary / DAYS_IN_YEAR
    max_cap = annual_salary * MAX_CAP_YEARS_OF_SALARY
    multiplier = resignation_multiplier(years, termination_type, contract_type)

    is_eligible = years >= MIN_SERVICE_YEARS
    if is_eligible:
        first_tier = min(years, FIRST_TIER_YEARS) * FIRST_TIER_DAYS_PER_YEAR * daily_wage
        second_tier = max(ZERO, years - FIRST_TIER_YEARS) * SECOND_TIER_DAYS_PER_YEAR * daily_wage
    else:
        first_tier = ZERO
        second_tier = ZERO

    gross = first_tier + second_tier
    net = gross * multiplier
    capped = min(net, max_cap)

    breakdown = GratuityBreakdown(
        hire_date=hire_date,
        termination_date=end,
        total_service_days=total_days,
        unpaid_leave_days=unpaid_leave_days,
        effective_service_days=effective_days,
        years_of_service=years,
        full_years=full_years,
        months_of_service=months,
        days_of_service=days,
        basic_salary=salary,
        annual_salary=annual_salary,
        daily_wage=daily_wage,
        first_five_years_amount=first_tier,
        after_five_years_amount=second_tier,
        gross_gratuity=gross,
        contract_type=contract_type,
        termination_type=termination_type,
        resignation_multiplier=multiplier,
        resignation_deduction=gross - net,
        net_gratuity=net,
        max_cap=max_cap,
        capped_gratuity=capped,
        is_capped=net > max_cap,
        is_eligible=is_eligible,
        ineligibility_reason=None if is_eligible else IneligibilityReason.INSUFFICIENT_SERVICE,
    )

    if not is_eligible:
        logger.info("gratuity_ineligible", extra={
            "effective_service_days": effective_days,
            "reason": IneligibilityReason.INSUFFICIENT_SERVICE.value,
        })
    elif breakdown.is_capped:
        logger.info("gratuity_capped", extra={
            "net_gratuity": str(quantize_money(net)),
            "max_cap": str(quantize_money(max_cap)),
        })

    return breakdown


class GratuityCalculator:
    """
    Convenience wrapper computing gratuity straight from an employee snapshot.

    Contract:
        Stateless; delegates to ``calculate_gratuity``.
    """

    def calculate(
        self,
        employee: EmployeeSnapshot,
        termination_type: TerminationType,
        termination_date: date | None = None,
        unpaid_leave_days: int = 0,
    ) -> GratuityBreakdown:
        return calculate_gratuity(
            basic_salary=employee.basic_salary,
            hire_date=employee.hire_date,
            termination_date=termination_date or employee.termination_date,
            contract_type=employee.contract_type,
            termination_type=termination_type,
            unpaid_leave_days=unpaid_leave_days,
        )
