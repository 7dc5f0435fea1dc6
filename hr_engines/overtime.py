"""
hr_engines.overtime -- Shift classification, overtime rates, and pay.

Responsibility:
    Classify an overtime shift (regular, night, Friday rest day, public
    holiday), derive the hourly rate from basic salary, and freeze the pay
    for the shift into an immutable ``OvertimeEntry``.  Summaries are pure
    reductions over entries already created.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import hr_kernel domain types.
    Consumed by hr_modules.payroll (approved overtime feeds gross salary).

Invariants enforced:
    - Fixed multiplier table (``OVERTIME_MULTIPLIERS``); callers cannot pass
      their own rate.
    - Detection priority: holiday > Friday > night > regular.  An explicitly
      supplied type always wins over detection; the entry counts as
      auto-detected when the two agree.
    - Daily limit: 2 hours (6 during Ramadan).  Exceeding it is logged, not
      rejected.  The 144-hour three-week cap is checked over stored entries.
    - ``hourly_rate = basic_salary / (30 * daily_hours)``, where daily hours
      are 6 during Ramadan and 8 otherwise.
    - ``amount = hourly_rate * multiplier * hours`` is computed once when the
      entry is created.  Summaries add stored amounts; they never recompute
      from a salary.
    - Overnight shifts (end time <= start time) roll over midnight.

Failure modes:
    - ValidationError for a non-positive salary or non-positive hours.

Audit relevance:
    Stored overtime amounts are the figures paid through payroll.  Entry
    creation is traced via ``@traced_engine``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import date, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Mapping
from uuid import UUID, uuid4

from hr_kernel.domain.values import ZERO, quantize_money, to_decimal
from hr_kernel.exceptions import ValidationError
from hr_kernel.logging_config import get_logger
from hr_engines.tracer import traced_engine

logger = get_logger("engines.overtime")


class OvertimeType(str, Enum):
    """Overtime classification, in ascending detection priority."""

    REGULAR = "regular"
    NIGHT = "night"
    FRIDAY = "friday"
    HOLIDAY = "holiday"


class OvertimeStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


OVERTIME_MULTIPLIERS: Mapping[OvertimeType, Decimal] = {
    OvertimeType.REGULAR: Decimal("1.25"),
    OvertimeType.NIGHT: Decimal("1.50"),
    OvertimeType.FRIDAY: Decimal("1.50"),
    OvertimeType.HOLIDAY: Decimal("2.50"),
}

SALARY_DAYS_PER_MONTH = 30
STANDARD_DAILY_HOURS = 8
RAMADAN_DAILY_HOURS = 6
MAX_DAILY_OVERTIME_HOURS = Decimal("2")
RAMADAN_MAX_DAILY_OVERTIME_HOURS = Decimal(RAMADAN_DAILY_HOURS)
MAX_OVERTIME_HOURS_PER_THREE_WEEKS = Decimal("144")
THREE_WEEK_WINDOW_DAYS = 21

FRIDAY = 4  # date.weekday()

NIGHT_WINDOW_START = time(22, 0)
NIGHT_WINDOW_END = time(4, 0)

_MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class PublicHoliday:
    """A public holiday spanning ``start_date`` to ``end_date`` inclusive."""

    name: str
    start_date: date
    end_date: date | None = None

    def __post_init__(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValidationError(
                "end_date", f"holiday {self.name!r} ends before it starts"
            )

    @property
    def last_day(self) -> date:
        return self.end_date or self.start_date

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.last_day


@dataclass(frozen=True)
class HolidayCalendar:
    """An ordered set of public holidays."""

    holidays: tuple[PublicHoliday, ...] = ()

    def holiday_on(self, day: date) -> PublicHoliday | None:
        for holiday in self.holidays:
            if holiday.covers(day):
                return holiday
        return None

    def is_holiday(self, day: date) -> bool:
        return self.holiday_on(day) is not None

    def __len__(self) -> int:
        return len(self.holidays)


EMPTY_CALENDAR = HolidayCalendar()


@dataclass(frozen=True)
class OvertimeEntry:
    """
    One overtime shift with its pay frozen at creation.

    The amount reflects the salary in effect when the entry was created;
    later salary changes never alter it.
    """

    id: UUID
    company_id: str
    employee_id: UUID
    work_date: date
    start_time: time
    end_time: time
    overtime_type: OvertimeType
    hours: Decimal
    multiplier: Decimal
    hourly_rate: Decimal
    amount: Decimal
    is_ramadan: bool = False
    is_auto_detected: bool = False
    status: OvertimeStatus = OvertimeStatus.PENDING
    reason: str = ""

    @property
    def is_approved(self) -> bool:
        return self.status == OvertimeStatus.APPROVED

    def with_status(self, status: OvertimeStatus) -> OvertimeEntry:
        return replace(self, status=status)


@dataclass(frozen=True)
class OvertimeSummary:
    """Hours and amounts per overtime type over a reporting period."""

    period_start: date
    period_end: date
    employee_id: UUID | None
    hours_by_type: Mapping[OvertimeType, Decimal] = field(default_factory=dict)
    amount_by_type: Mapping[OvertimeType, Decimal] = field(default_factory=dict)
    entry_count: int = 0

    @property
    def total_hours(self) -> Decimal:
        return sum(self.hours_by_type.values(), ZERO)

    @property
    def total_amount(self) -> Decimal:
        return sum(self.amount_by_type.values(), ZERO)

    def quantized(self) -> OvertimeSummary:
        """Copy with every amount rounded to fils."""
        return replace(
            self,
            amount_by_type={t: quantize_money(a) for t, a in self.amount_by_type.items()},
        )


# ---------------------------------------------------------------------------
# Shift helpers
# ---------------------------------------------------------------------------


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _shift_span(start: time, end: time) -> tuple[int, int]:
    begin = _minutes(start)
    finish = _minutes(end)
    if finish < begin:
        finish += _MINUTES_PER_DAY
    return begin, finish


def calculate_hours(start: time, end: time) -> Decimal:
    """Hours between two clock times; an end before the start rolls past midnight."""
    begin, finish = _shift_span(start, end)
    return Decimal(finish - begin) / Decimal(60)


def is_night_shift(start: time, end: time) -> bool:
    """True when any part of the shift falls between 22:00 and 04:00."""
    begin, finish = _shift_span(start, end)
    if begin == finish:
        return False
    window_start = _minutes(NIGHT_WINDOW_START)
    window_length = _MINUTES_PER_DAY - window_start + _minutes(NIGHT_WINDOW_END)
    # Night windows open at 22:00 on the previous day, this day and the next.
    for day_offset in (-1, 0, 1):
        opens = window_start + day_offset * _MINUTES_PER_DAY
        closes = opens + window_length
        if begin < closes and finish > opens:
            return True
    return False


def detect_overtime_type(
    work_date: date,
    start: time,
    end: time,
    holidays: HolidayCalendar = EMPTY_CALENDAR,
) -> OvertimeType:
    """Classify a shift: holiday > Friday > night > regular."""
    if holidays.is_holiday(work_date):
        return OvertimeType.HOLIDAY
    if work_date.weekday() == FRIDAY:
        return OvertimeType.FRIDAY
    if is_night_shift(start, end):
        return OvertimeType.NIGHT
    return OvertimeType.REGULAR


def hourly_rate(basic_salary: Decimal, is_ramadan: bool = False) -> Decimal:
    """Basic salary spread over 30 days of 8 hours (6 during Ramadan)."""
    salary = to_decimal(basic_salary, "basic_salary")
    if salary <= 0:
        raise ValidationError("basic_salary", "must be positive")
    daily_hours = RAMADAN_DAILY_HOURS if is_ramadan else STANDARD_DAILY_HOURS
    return salary / Decimal(SALARY_DAYS_PER_MONTH * daily_hours)


def overtime_amount(
    basic_salary: Decimal,
    overtime_type: OvertimeType,
    hours: Decimal,
    is_ramadan: bool = False,
) -> Decimal:
    return hourly_rate(basic_salary, is_ramadan) * OVERTIME_MULTIPLIERS[overtime_type] * hours


def exceeds_daily_limit(hours: Decimal, is_ramadan: bool = False) -> bool:
    """True when a day's overtime exceeds the daily limit.

    The limit is two hours, or the six-hour Ramadan working day.
    """
    limit = RAMADAN_MAX_DAILY_OVERTIME_HOURS if is_ramadan else MAX_DAILY_OVERTIME_HOURS
    return hours > limit


def three_week_overtime_hours(
    entries: Iterable[OvertimeEntry],
    employee_id: UUID,
    as_of: date,
) -> Decimal:
    """Hours of non-rejected overtime in the 21 days ending on ``as_of``."""
    window_start = as_of - timedelta(days=THREE_WEEK_WINDOW_DAYS - 1)
    return sum(
        (
            e.hours for e in entries
            if e.employee_id == employee_id
            and window_start <= e.work_date <= as_of
            and e.status != OvertimeStatus.REJECTED
        ),
        ZERO,
    )


def exceeds_three_week_limit(
    entries: Iterable[OvertimeEntry],
    employee_id: UUID,
    as_of: date,
) -> bool:
    return three_week_overtime_hours(entries, employee_id, as_of) > MAX_OVERTIME_HOURS_PER_THREE_WEEKS


# ---------------------------------------------------------------------------
# Entry creation and summaries
# ---------------------------------------------------------------------------


@traced_engine(
    "overtime", "1.0",
    fingerprint_fields=(
        "basic_salary", "work_date", "start_time", "end_time",
        "overtime_type", "hours", "is_ramadan",
    ),
)
def create_overtime_entry(
    *,
    company_id: str,
    employee_id: UUID,
    basic_salary: Decimal,
    work_date: date,
    start_time: time,
    end_time: time,
    overtime_type: OvertimeType | None = None,
    hours: Decimal | None = None,
    is_ramadan: bool = False,
    holidays: HolidayCalendar = EMPTY_CALENDAR,
    entry_id: UUID | None = None,
    reason: str = "",
) -> OvertimeEntry:
    """
    Create an overtime entry with its pay computed and frozen.

    Preconditions:
        ``basic_salary`` is the salary in effect on ``work_date``.
        When ``hours`` is omitted it is derived from the time range.

    Raises:
        ValidationError: non-positive salary or hours.
    """
    if not company_id:
        raise ValidationError("company_id", "is required")

    worked = (
        calculate_hours(start_time, end_time)
        if hours is None
        else to_decimal(hours, "hours")
    )
    if worked <= 0:
        raise ValidationError("hours", f"must be positive, got {worked}")

    detected_type = detect_overtime_type(work_date, start_time, end_time, holidays)
    auto_detected = overtime_type is None or overtime_type == detected_type
    resolved_type = detected_type if overtime_type is None else overtime_type

    rate = hourly_rate(basic_salary, is_ramadan)
    multiplier = OVERTIME_MULTIPLIERS[resolved_type]
    amount = rate * multiplier * worked

    if exceeds_daily_limit(worked, is_ramadan):
        logger.warning("overtime_exceeds_daily_limit", extra={
            "employee_id": str(employee_id),
            "work_date": work_date.isoformat(),
            "hours": str(worked),
            "is_ramadan": is_ramadan,
        })

    entry = OvertimeEntry(
        id=entry_id or uuid4(),
        company_id=company_id,
        employee_id=employee_id,
        work_date=work_date,
        start_time=start_time,
        end_time=end_time,
        overtime_type=resolved_type,
        hours=worked,
        multiplier=multiplier,
        hourly_rate=rate,
        amount=amount,
        is_ramadan=is_ramadan,
        is_auto_detected=auto_detected,
        reason=reason,
    )

    logger.info("overtime_entry_created", extra={
        "employee_id": str(employee_id),
        "company_id": company_id,
        "work_date": work_date.isoformat(),
        "overtime_type": resolved_type.value,
        "auto_detected": auto_detected,
        "hours": str(worked),
        "amount": str(quantize_money(amount)),
    })
    return entry


def summarize_overtime(
    entries: Iterable[OvertimeEntry],
    start: date,
    end: date,
    employee_id: UUID | None = None,
    statuses: Sequence[OvertimeStatus] = (OvertimeStatus.PENDING, OvertimeStatus.APPROVED),
) -> OvertimeSummary:
    """Add up stored hours and amounts per type for entries dated within [start, end].

    Rejected entries are left out unless ``statuses`` asks for them.
    """
    if end < start:
        raise ValidationError("end", f"{end} is before start {start}")

    hours_by_type: dict[OvertimeType, Decimal] = {t: ZERO for t in OvertimeType}
    amount_by_type: dict[OvertimeType, Decimal] = {t: ZERO for t in OvertimeType}
    count = 0
    for entry in entries:
        if not start <= entry.work_date <= end:
            continue
        if employee_id is not None and entry.employee_id != employee_id:
            continue
        if entry.status not in statuses:
            continue
        hours_by_type[entry.overtime_type] += entry.hours
        amount_by_type[entry.overtime_type] += entry.amount
        count += 1

    return OvertimeSummary(
        period_start=start,
        period_end=end,
        employee_id=employee_id,
        hours_by_type=hours_by_type,
        amount_by_type=amount_by_type,
        entry_count=count,
    )
