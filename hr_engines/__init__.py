"""
Module: hr_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    labor-law calculation engines.  This is the canonical import surface
    for higher layers (hr_modules, callers).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import hr_kernel (domain, exceptions, logging) and sibling
    engine modules.  MUST NOT import hr_modules, hr_config or sqlalchemy.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      "Today" reaches an engine only through an injected ``Clock``.
    - Decimal-only arithmetic: money is ``Decimal``; floats are refused.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine invocations are traced via ``@traced_engine`` (see
    ``hr_engines.tracer``), emitting HR_ENGINE_TRACE log records.

Usage:
    from hr_engines.expiry import ExpiryClassifier
    from hr_engines.entitlement import EntitlementCalculator
    from hr_engines.overtime import create_overtime_entry
    from hr_engines.gratuity import calculate_gratuity
"""

from hr_kernel.logging_config import get_logger

logger = get_logger("engines")

from hr_engines.entitlement import (
    EntitlementCalculator,
    LeaveBalance,
    LeaveTypeBalance,
    MaternityLeaveBreakdown,
    SickLeaveBreakdown,
    business_days_between,
    service_months,
    sick_leave_tiers,
)
from hr_engines.expiry import (
    LEGACY_STATUS_ALIASES,
    DocumentAssessment,
    ExpiryAssessment,
    ExpiryClassifier,
    ExpiryStatus,
    TrackedDocument,
    canonical_status,
    compliance_percentage,
    days_remaining,
    expiring_within,
    tier_for_days,
)
from hr_engines.gratuity import (
    GratuityBreakdown,
    GratuityCalculator,
    IneligibilityReason,
    TerminationType,
    calculate_gratuity,
    payment_deadline,
    resignation_tier_description,
)
from hr_engines.overtime import (
    OVERTIME_MULTIPLIERS,
    HolidayCalendar,
    OvertimeEntry,
    OvertimeStatus,
    OvertimeSummary,
    OvertimeType,
    PublicHoliday,
    calculate_hours,
    create_overtime_entry,
    detect_overtime_type,
    exceeds_daily_limit,
    exceeds_three_week_limit,
    hourly_rate,
    is_night_shift,
    summarize_overtime,
    three_week_overtime_hours,
)
from hr_engines.tracer import compute_input_fingerprint, traced_engine

logger.debug("hr_engines_loaded")

__all__ = [
    # Entitlement
    "EntitlementCalculator",
    "LeaveBalance",
    "LeaveTypeBalance",
    "MaternityLeaveBreakdown",
    "SickLeaveBreakdown",
    "business_days_between",
    "service_months",
    "sick_leave_tiers",
    # Expiry
    "LEGACY_STATUS_ALIASES",
    "DocumentAssessment",
    "ExpiryAssessment",
    "ExpiryClassifier",
    "ExpiryStatus",
    "TrackedDocument",
    "canonical_status",
    "compliance_percentage",
    "days_remaining",
    "expiring_within",
    "tier_for_days",
    # Gratuity
    "GratuityBreakdown",
    "GratuityCalculator",
    "IneligibilityReason",
    "TerminationType",
    "calculate_gratuity",
    "payment_deadline",
    "resignation_tier_description",
    # Overtime
    "OVERTIME_MULTIPLIERS",
    "HolidayCalendar",
    "OvertimeEntry",
    "OvertimeStatus",
    "OvertimeSummary",
    "OvertimeType",
    "PublicHoliday",
    "calculate_hours",
    "create_overtime_entry",
    "detect_overtime_type",
    "exceeds_daily_limit",
    "exceeds_three_week_limit",
    "three_week_overtime_hours",
    "hourly_rate",
    "is_night_shift",
    "summarize_overtime",
    # Tracing
    "compute_input_fingerprint",
    "traced_engine",
]
