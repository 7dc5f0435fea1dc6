"""
Module: hr_engines.expiry
Responsibility:
    Classify document expiry dates (passports, Emirates IDs, visas, labor
    cards, trade licences) into a single canonical tier vocabulary.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import hr_kernel domain types.

Invariants enforced:
    - Exactly one threshold table (``EXPIRY_TIERS``).  Legacy display
      vocabularies are translated onto it, never given their own thresholds.
    - Day-granularity: datetimes are truncated to calendar days before any
      arithmetic, so time-of-day never moves a document between tiers.
    - No wall-clock reads: "today" comes from the injected ``Clock``.

Failure modes:
    - ValueError from ``canonical_status`` for a label that is neither a
      canonical tier nor a known legacy alias.

Usage:
    from hr_engines.expiry import ExpiryClassifier
    from hr_kernel.domain.clock import DeterministicClock

    classifier = ExpiryClassifier(DeterministicClock.on(date(2026, 3, 1)))
    assessment = classifier.classify(date(2026, 3, 8))
    assessment.status          # ExpiryStatus.CRITICAL
    assessment.days_remaining  # 7
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Sequence
from uuid import UUID

from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.domain.values import as_calendar_day
from hr_kernel.logging_config import get_logger

logger = get_logger("engines.expiry")


class ExpiryStatus(Enum):
    """Canonical expiry tiers, most severe first."""
    EXPIRED = "expired"
    CRITICAL = "critical"
    URGENT = "urgent"
    WARNING = "warning"
    UPCOMING = "upcoming"
    VALID = "valid"


@dataclass(frozen=True)
class ExpiryTier:
    """Upper bound (inclusive) of days remaining for a tier; None = unbounded."""
    status: ExpiryStatus
    max_days: int | None


# First match wins, evaluated top to bottom.
EXPIRY_TIERS: tuple[ExpiryTier, ...] = (
    ExpiryTier(ExpiryStatus.EXPIRED, -1),
    ExpiryTier(ExpiryStatus.CRITICAL, 7),
    ExpiryTier(ExpiryStatus.URGENT, 30),
    ExpiryTier(ExpiryStatus.WARNING, 60),
    ExpiryTier(ExpiryStatus.UPCOMING, 90),
    ExpiryTier(ExpiryStatus.VALID, None),
)

# Labels used by older screens and alert emails.
LEGACY_STATUS_ALIASES: dict[str, ExpiryStatus] = {
    "expiring_soon": ExpiryStatus.UPCOMING,
    "expiring": ExpiryStatus.WARNING,
    "info": ExpiryStatus.UPCOMING,
}


def tier_for_days(days_remaining: int) -> ExpiryStatus:
    """Map a day count onto the canonical tier table."""
    for tier in EXPIRY_TIERS:
        if tier.max_days is None or days_remaining <= tier.max_days:
            return tier.status
    raise AssertionError("EXPIRY_TIERS must end with an unbounded tier")


def canonical_status(label: str) -> ExpiryStatus:
    """Translate a canonical or legacy status label into an ExpiryStatus."""
    key = label.strip().lower()
    if key in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[key]
    try:
        return ExpiryStatus(key)
    except ValueError:
        raise ValueError(f"Unknown expiry status label: {label!r}") from None


def days_remaining(expiry: date | datetime, as_of: date | datetime) -> int:
    """Whole calendar days from ``as_of`` until ``expiry`` (negative once past)."""
    return (as_calendar_day(expiry) - as_calendar_day(as_of)).days


@dataclass(frozen=True)
class ExpiryAssessment:
    """A (status, days_remaining) pair for one expiry date."""
    status: ExpiryStatus
    days_remaining: int
    expiry_date: date | None = None
    as_of: date | None = None

    @property
    def is_expired(self) -> bool:
        return self.status == ExpiryStatus.EXPIRED


@dataclass(frozen=True)
class TrackedDocument:
    """A compliance document with an optional expiry date."""
    id: UUID
    company_id: str
    document_type: str
    document_number: str
    expiry_date: date | None
    employee_id: UUID | None = None


@dataclass(frozen=True)
class DocumentAssessment:
    """A tracked document paired with its expiry assessment."""
    document: TrackedDocument
    assessment: ExpiryAssessment


class ExpiryClassifier:
    """
    Classify expiry dates into canonical tiers.

    Contract:
        Pure apart from reading "today" from the injected clock when no
        evaluation date is supplied.
    Guarantees:
        - Identical (expiry, as_of) pairs always yield identical assessments.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()

    def classify(
        self,
        expiry: date | datetime,
        as_of: date | datetime | None = None,
    ) -> ExpiryAssessment:
        evaluation_day = as_calendar_day(as_of) if as_of is not None else self._clock.today()
        expiry_day = as_calendar_day(expiry)
        remaining = days_remaining(expiry_day, evaluation_day)
        return ExpiryAssessment(
            status=tier_for_days(remaining),
            days_remaining=remaining,
            expiry_date=expiry_day,
            as_of=evaluation_day,
        )

    def classify_documents(
        self,
        documents: Iterable[TrackedDocument],
        as_of: date | datetime | None = None,
    ) -> tuple[DocumentAssessment, ...]:
        """Assess every document, nearest expiry first.

        Documents without an expiry date never expire and are reported as
        ``valid``; they sort last.
        """
        evaluation_day = as_calendar_day(as_of) if as_of is not None else self._clock.today()
        results: list[DocumentAssessment] = []
        for doc in documents:
            if doc.expiry_date is None:
                assessment = ExpiryAssessment(
                    status=ExpiryStatus.VALID,
                    days_remaining=0,
                    expiry_date=None,
                    as_of=evaluation_day,
                )
            else:
                assessment = self.classify(doc.expiry_date, evaluation_day)
            results.append(DocumentAssessment(document=doc, assessment=assessment))

        results.sort(key=_sort_key)

        logger.debug("documents_classified", extra={
            "document_count": len(results),
            "as_of": evaluation_day.isoformat(),
            "expired_count": sum(1 for r in results if r.assessment.is_expired),
        })
        return tuple(results)


def _sort_key(item: DocumentAssessment) -> tuple[int, int]:
    if item.document.expiry_date is None:
        return (1, 0)
    return (0, item.assessment.days_remaining)


def expiring_within(
    assessments: Sequence[DocumentAssessment],
    days: int,
) -> tuple[DocumentAssessment, ...]:
    """Documents not yet expired whose expiry falls within ``days``."""
    return tuple(
        a for a in assessments
        if a.document.expiry_date is not None
        and 0 <= a.assessment.days_remaining <= days
    )


def compliance_percentage(assessments: Sequence[DocumentAssessment]) -> int:
    """Whole-number share of documents with at least one day of validity left.

    Documents without an expiry date count as compliant.  An empty set is
    fully compliant.  Halves round up.
    """
    if not assessments:
        return 100
    compliant = sum(
        1 for a in assessments
        if a.document.expiry_date is None or a.assessment.days_remaining > 0
    )
    share = Decimal(compliant * 100) / Decimal(len(assessments))
    return int(share.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
