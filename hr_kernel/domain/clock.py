"""
Clock -- Deterministic time abstraction.

Responsibility:
    Provides an injectable clock so that engine and module code never call
    ``datetime.now()`` or ``date.today()`` directly.  The only place an
    engine is allowed to learn "today" is through a ``Clock`` it was given.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).

Failure modes:
    None -- clocks always return a value.

Invariants enforced:
    - ``today()`` is the calendar day in the clock's local timezone, which
      defaults to UAE time (UTC+4, no daylight saving).  Between 00:00 and
      04:00 local time the UTC date would still be yesterday.

Audit relevance:
    Expiry tiers and default leave-balance dates depend on "today".  Pinning
    the clock in tests and replays makes those results reproducible.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone, tzinfo

UAE_TIMEZONE = timezone(timedelta(hours=4), "Asia/Dubai")


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        Components that need the current date receive a Clock instance via
        constructor injection.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``today()`` returns the calendar day of ``now()`` in ``tz``.
    """

    tz: tzinfo = UAE_TIMEZONE

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    def today(self) -> date:
        """Get the current calendar day in the local timezone."""
        return self.now().astimezone(self.tz).date()


class SystemClock(Clock):
    """
    Production clock that returns actual system time.

    Non-goals:
        Not suitable for deterministic replay or testing.
    """

    def __init__(self, tz: tzinfo | None = None):
        if tz is not None:
            self.tz = tz

    def now(self) -> datetime:
        """Get current system time in the local timezone."""
        return datetime.now(self.tz)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` or ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None, tz: tzinfo | None = None):
        if tz is not None:
            self.tz = tz
        self._fixed_time = fixed_time or datetime(
            2026, 1, 1, 9, 0, 0, tzinfo=timezone.utc
        )
        self._advance_days = 0

    @classmethod
    def on(cls, day: date) -> "DeterministicClock":
        """Clock pinned to 09:00 UTC on ``day``."""
        return cls(datetime(day.year, day.month, day.day, 9, 0, 0, tzinfo=timezone.utc))

    def now(self) -> datetime:
        """Get the fixed/controlled time."""
        return self._fixed_time + timedelta(days=self._advance_days)

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._fixed_time = time
        self._advance_days = 0

    def advance(self, days: int = 1) -> None:
        """Advance the clock by whole days."""
        self._advance_days += days
