"""
Tests for Entitlement Calculator.

Covers:
- Service months and annual leave accrual tiers
- Sick leave pay tiers
- Gender-specific maternity and paternity balances
- Business day counting over the Friday/Saturday weekend
- Balance arithmetic (entitled + carried - used - pending)
- Filtering of other employees, other years and inactive statuses
"""

from datetime import date

import pytest

from hr_engines.entitlement import (
    EntitlementCalculator,
    annual_entitlement_for_months,
    business_days_between,
    service_months,
    sick_leave_tiers,
)
from hr_kernel.domain.clock import DeterministicClock
from hr_kernel.domain.records import Gender, LeaveStatus, LeaveType
from hr_kernel.exceptions import ValidationError


class TestServiceMonthsAndAccrual:
    """Annual leave accrues by completed months of service."""

    def setup_method(self):
        self.calculator = EntitlementCalculator(clock=DeterministicClock.on(date(2026, 12, 31)))
        self.hire = date(2025, 1, 1)

    def test_service_months_floor(self):
        """250 days of service is 8 whole months."""
        assert service_months(date(2025, 1, 1), date(2025, 9, 8)) == 8

    def test_service_before_hire_is_zero(self):
        """An evaluation date before hire counts no service."""
        assert service_months(date(2025, 6, 1), date(2025, 1, 1)) == 0

    def test_under_six_months_no_annual_leave(self):
        """Five months of service accrues nothing."""
        assert self.calculator.annual_entitlement(self.hire, date(2025, 6, 5)) == 0

    def test_eight_months_accrues_four_days(self):
        """Two days per month beyond the sixth."""
        assert self.calculator.annual_entitlement(self.hire, date(2025, 9, 8)) == 4

    def test_fifteen_months_full_entitlement(self):
        """From twelve months on the entitlement is thirty days."""
        assert self.calculator.annual_entitlement(self.hire, date(2026, 4, 3)) == 30

    @pytest.mark.parametrize("months,expected", [
        (0, 0), (5, 0), (6, 0), (7, 2), (11, 10), (12, 30), (60, 30),
    ])
    def test_accrual_table(self, months, expected):
        """Accrual tier boundaries."""
        assert annual_entitlement_for_months(months) == expected


class TestSickLeaveTiers:
    """Approved sick days fill full pay, then half pay, then unpaid."""

    def test_twenty_days(self):
        """20 days is 15 full pay and 5 half pay."""
        tiers = sick_leave_tiers(20)
        assert (tiers.full_pay_used, tiers.half_pay_used, tiers.unpaid_used) == (15, 5, 0)

    def test_fifty_days(self):
        """50 days spills 5 into the unpaid tier."""
        tiers = sick_leave_tiers(50)
        assert (tiers.full_pay_used, tiers.half_pay_used, tiers.unpaid_used) == (15, 30, 5)
        assert tiers.full_pay_remaining == 0
        assert tiers.half_pay_remaining == 0

    def test_zero_days(self):
        """No sick leave leaves every tier untouched."""
        tiers = sick_leave_tiers(0)
        assert tiers.total_used == 0
        assert tiers.full_pay_remaining == 15


class TestBusinessDays:
    """Inclusive day counts skipping Friday and Saturday."""

    def test_full_week(self):
        """Monday to Sunday has five business days."""
        assert business_days_between(date(2026, 3, 16), date(2026, 3, 22)) == 5

    def test_single_weekday(self):
        """One working day counts as one."""
        assert business_days_between(date(2026, 3, 16), date(2026, 3, 16)) == 1

    def test_single_friday(self):
        """A request for a Friday alone is zero business days."""
        assert business_days_between(date(2026, 3, 20), date(2026, 3, 20)) == 0

    def test_multi_week_span(self):
        """Three full weeks plus a Monday."""
        assert business_days_between(date(2026, 3, 16), date(2026, 4, 6)) == 16

    def test_custom_weekend(self):
        """A Saturday/Sunday weekend counts Friday as working."""
        assert business_days_between(date(2026, 3, 20), date(2026, 3, 22), weekend_days={5, 6}) == 1

    def test_end_before_start_rejected(self):
        """An inverted range is a validation error."""
        with pytest.raises(ValidationError) as exc_info:
            business_days_between(date(2026, 3, 22), date(2026, 3, 16))
        assert exc_info.value.field == "end_date"


class TestComputeBalance:
    """Balances derived from the leave history."""

    def setup_method(self):
        self.calculator = EntitlementCalculator(clock=DeterministicClock.on(date(2026, 3, 15)))

    def test_available_formula(self, employee_factory, leave_factory):
        """available = entitled + carried over - used - pending."""
        employee = employee_factory(hire_date=date(2020, 1, 1))
        history = [
            leave_factory(employee, LeaveType.ANNUAL, date(2026, 1, 5), date(2026, 1, 16), 10),
            leave_factory(employee, LeaveType.ANNUAL, date(2026, 2, 2), date(2026, 2, 4), 3,
                          status=LeaveStatus.PENDING),
        ]

        balance = self.calculator.compute_balance(
            employee=employee,
            leave_history=history,
            year=2026,
            carried_over={LeaveType.ANNUAL: 5},
        )

        annual = balance.for_type(LeaveType.ANNUAL)
        assert annual.entitled == 30
        assert annual.used == 10
        assert annual.pending == 3
        assert annual.carried_over == 5
        assert annual.available == 22

    def test_rejected_and_cancelled_ignored(self, employee_factory, leave_factory):
        """Only pending and approved requests affect the balance."""
        employee = employee_factory()
        history = [
            leave_factory(employee, LeaveType.ANNUAL, date(2026, 1, 5), date(2026, 1, 6), 2,
                          status=LeaveStatus.REJECTED),
            leave_factory(employee, LeaveType.ANNUAL, date(2026, 1, 7), date(2026, 1, 8), 2,
                          status=LeaveStatus.CANCELLED),
        ]
        balance = self.calculator.compute_balance(employee=employee, leave_history=history, year=2026)
        annual = balance.for_type(LeaveType.ANNUAL)
        assert annual.used == 0
        assert annual.pending == 0

    def test_other_years_and_employees_filtered(self, employee_factory, leave_factory):
        """History may include unrelated records."""
        employee = employee_factory()
        colleague = employee_factory(employee_number="E-002")
        history = [
            leave_factory(employee, LeaveType.ANNUAL, date(2025, 12, 1), date(2025, 12, 2), 2),
            leave_factory(colleague, LeaveType.ANNUAL, date(2026, 1, 5), date(2026, 1, 6), 2),
        ]
        balance = self.calculator.compute_balance(employee=employee, leave_history=history, year=2026)
        assert balance.for_type(LeaveType.ANNUAL).used == 0

    def test_sick_breakdown_in_balance(self, employee_factory, leave_factory):
        """Sick leave is reported against the 90-day ceiling with pay tiers."""
        employee = employee_factory()
        history = [leave_factory(employee, LeaveType.SICK, date(2026, 1, 4), date(2026, 1, 29), 20)]
        balance = self.calculator.compute_balance(employee=employee, leave_history=history, year=2026)

        sick = balance.for_type(LeaveType.SICK)
        assert sick.entitled == 90
        assert sick.available == 70
        assert balance.sick.full_pay_used == 15
        assert balance.sick.half_pay_used == 5

    def test_unpaid_has_no_ceiling(self, employee_factory, leave_factory):
        """Unpaid leave reports usage only."""
        employee = employee_factory()
        history = [leave_factory(employee, LeaveType.UNPAID, date(2026, 2, 2), date(2026, 2, 3), 2)]
        balance = self.calculator.compute_balance(employee=employee, leave_history=history, year=2026)

        unpaid = balance.for_type(LeaveType.UNPAID)
        assert unpaid.entitled is None
        assert unpaid.available is None
        assert unpaid.used == 2

    def test_overdrawn_balance_goes_negative(self, employee_factory, leave_factory):
        """available is reported as computed, never clamped."""
        employee = employee_factory(hire_date=date(2025, 6, 1))
        history = [leave_factory(employee, LeaveType.ANNUAL, date(2026, 1, 5), date(2026, 1, 23), 15)]
        balance = self.calculator.compute_balance(
            employee=employee, leave_history=history, year=2026, as_of=date(2026, 3, 15),
        )
        annual = balance.for_type(LeaveType.ANNUAL)
        # 9 months of service accrues 6 days
        assert annual.entitled == 6
        assert annual.available == -9

    def test_every_leave_type_present(self, employee_factory):
        """Each LeaveType has a balance even with no history."""
        balance = self.calculator.compute_balance(employee=employee_factory(), leave_history=[], year=2026)
        assert set(balance.balances) == set(LeaveType)

    def test_default_as_of(self):
        """Past years are read at year end, the current year at today."""
        assert self.calculator.default_as_of(2025) == date(2025, 12, 31)
        assert self.calculator.default_as_of(2026) == date(2026, 3, 15)

    def test_history_not_mutated(self, employee_factory, leave_factory):
        """Input records are left untouched."""
        employee = employee_factory()
        history = [leave_factory(employee, LeaveType.ANNUAL, date(2026, 1, 5), date(2026, 1, 6), 2)]
        snapshot = list(history)
        self.calculator.compute_balance(employee=employee, leave_history=history, year=2026)
        assert history == snapshot

    def test_balance_call_emits_engine_trace(self, employee_factory, captured_logs):
        """Every balance computation is traced."""
        self.calculator.compute_balance(employee=employee_factory(), leave_history=[], year=2026)
        traces = [r for r in captured_logs() if r["message"] == "HR_ENGINE_TRACE"]
        assert traces
        assert traces[-1]["engine_name"] == "entitlement"


class TestGenderSpecificLeave:
    """Maternity for female employees, paternity for male employees."""

    def setup_method(self):
        self.calculator = EntitlementCalculator(clock=DeterministicClock.on(date(2026, 6, 30)))

    def test_female_maternity_split(self, employee_factory, leave_factory):
        """50 approved days use all 45 full-pay days and 5 half-pay days."""
        employee = employee_factory(gender=Gender.FEMALE)
        history = [leave_factory(employee, LeaveType.MATERNITY, date(2026, 2, 1), date(2026, 3, 22), 50)]
        balance = self.calculator.compute_balance(employee=employee, leave_history=history, year=2026)

        assert balance.maternity.full_pay_used == 45
        assert balance.maternity.half_pay_used == 5
        assert balance.for_type(LeaveType.MATERNITY).entitled == 60
        assert balance.for_type(LeaveType.MATERNITY).available == 10
        assert balance.for_type(LeaveType.PATERNITY).entitled == 0

    def test_male_paternity(self, employee_factory):
        """Male employees get five paternity days and no maternity."""
        balance = self.calculator.compute_balance(
            employee=employee_factory(gender=Gender.MALE), leave_history=[], year=2026,
        )
        assert balance.for_type(LeaveType.PATERNITY).entitled == 5
        assert balance.for_type(LeaveType.MATERNITY).entitled == 0
        assert balance.maternity.total_entitled == 0

    def test_inapplicable_records_zeroed_and_logged(self, employee_factory, leave_factory, captured_logs):
        """Paternity records on a female employee report all zeros and log a warning."""
        employee = employee_factory(gender=Gender.FEMALE)
        history = [leave_factory(employee, LeaveType.PATERNITY, date(2026, 2, 2), date(2026, 2, 3), 2)]
        balance = self.calculator.compute_balance(employee=employee, leave_history=history, year=2026)

        paternity = balance.for_type(LeaveType.PATERNITY)
        assert (paternity.entitled, paternity.used, paternity.pending, paternity.available) == (0, 0, 0, 0)
        warnings = [r for r in captured_logs() if r["message"] == "leave_type_not_applicable_to_gender"]
        assert warnings
        assert warnings[0]["leave_type"] == "paternity"
