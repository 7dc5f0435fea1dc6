"""
LaborPolicy schema.

The typed form of a labor policy set: where it applies (scope), the
weekly rest days, the public-holiday table and the Ramadan periods that
switch overtime to the reduced working day.  YAML files are parsed into
these types by the loader.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from hr_engines.overtime import HolidayCalendar, PublicHoliday


@dataclass(frozen=True)
class PolicyScope:
    """Where and when a policy set applies.  ``company_id == "*"`` matches all."""

    company_id: str
    jurisdiction: str
    currency: str
    effective_from: date
    effective_to: date | None = None

    def covers(self, company_id: str, as_of: date) -> bool:
        if self.company_id not in ("*", company_id):
            return False
        if as_of < self.effective_from:
            return False
        return self.effective_to is None or as_of <= self.effective_to


@dataclass(frozen=True)
class HolidayDef:
    name: str
    start_date: date
    end_date: date | None = None


@dataclass(frozen=True)
class RamadanPeriod:
    start_date: date
    end_date: date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class LaborPolicy:
    """A validated labor policy set, identified by its checksum."""

    config_id: str
    version: int
    scope: PolicyScope
    weekend_days: tuple[int, ...]
    public_holidays: tuple[HolidayDef, ...] = ()
    ramadan_periods: tuple[RamadanPeriod, ...] = ()
    checksum: str = ""

    def holiday_calendar(self) -> HolidayCalendar:
        """Public holidays in the form the overtime engine consumes."""
        return HolidayCalendar(tuple(
            PublicHoliday(name=h.name, start_date=h.start_date, end_date=h.end_date)
            for h in self.public_holidays
        ))

    def is_ramadan(self, day: date) -> bool:
        return any(period.contains(day) for period in self.ramadan_periods)
