"""
Tests for Expiry Classifier.

Covers:
- Tier boundaries (expired, critical, urgent, warning, upcoming, valid)
- Legacy status labels mapped onto canonical tiers
- Document classification ordering and documents without expiry
- Expiring-within filter and compliance percentage
"""

from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from hr_engines.expiry import (
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
from hr_kernel.domain.clock import UAE_TIMEZONE, DeterministicClock, SystemClock

AS_OF = date(2026, 3, 15)


def _doc(expiry: date | None, document_type: str = "visa") -> TrackedDocument:
    return TrackedDocument(
        id=uuid4(),
        company_id="acme-trading",
        document_type=document_type,
        document_number=f"DOC-{uuid4().hex[:6]}",
        expiry_date=expiry,
    )


class TestTierBoundaries:
    """Day counts map onto exactly one tier."""

    def setup_method(self):
        self.classifier = ExpiryClassifier(clock=DeterministicClock.on(AS_OF))

    def test_past_expiry_is_expired(self):
        """A document that expired yesterday is expired with -1 days."""
        result = self.classifier.classify(AS_OF - timedelta(days=1), AS_OF)
        assert result.status == ExpiryStatus.EXPIRED
        assert result.days_remaining == -1
        assert result.is_expired

    def test_expiring_today_is_critical(self):
        """Zero days remaining is critical, not expired."""
        result = self.classifier.classify(AS_OF, AS_OF)
        assert result.status == ExpiryStatus.CRITICAL
        assert result.days_remaining == 0

    def test_seven_days_is_critical(self):
        """Seven days remaining is the last critical day."""
        assert self.classifier.classify(AS_OF + timedelta(days=7), AS_OF).status == ExpiryStatus.CRITICAL

    def test_eight_days_is_urgent(self):
        """Eight days remaining moves into urgent."""
        assert self.classifier.classify(AS_OF + timedelta(days=8), AS_OF).status == ExpiryStatus.URGENT

    @pytest.mark.parametrize("days,expected", [
        (30, ExpiryStatus.URGENT),
        (31, ExpiryStatus.WARNING),
        (60, ExpiryStatus.WARNING),
        (61, ExpiryStatus.UPCOMING),
        (90, ExpiryStatus.UPCOMING),
        (91, ExpiryStatus.VALID),
        (3650, ExpiryStatus.VALID),
    ])
    def test_upper_tiers(self, days, expected):
        """Each tier's upper bound is inclusive."""
        assert tier_for_days(days) == expected

    def test_default_evaluation_date_comes_from_clock(self):
        """Without as_of the clock's today is used."""
        result = self.classifier.classify(AS_OF + timedelta(days=10))
        assert result.as_of == AS_OF
        assert result.days_remaining == 10

    def test_datetime_inputs_truncate_to_calendar_day(self):
        """Times of day never change the day count."""
        expiry = datetime(2026, 3, 20, 23, 59, tzinfo=timezone.utc)
        as_of = datetime(2026, 3, 15, 0, 1, tzinfo=timezone.utc)
        assert days_remaining(expiry, as_of) == 5

    def test_identical_inputs_identical_assessment(self):
        """Classification is deterministic."""
        a = self.classifier.classify(date(2026, 5, 1), AS_OF)
        b = self.classifier.classify(date(2026, 5, 1), AS_OF)
        assert a == b


class TestStatusLabels:
    """Older labels translate onto the canonical set."""

    @pytest.mark.parametrize("label,expected", [
        ("expiring_soon", ExpiryStatus.UPCOMING),
        ("expiring", ExpiryStatus.WARNING),
        ("info", ExpiryStatus.UPCOMING),
        ("critical", ExpiryStatus.CRITICAL),
        ("  Expired ", ExpiryStatus.EXPIRED),
    ])
    def test_known_labels(self, label, expected):
        """Legacy and canonical labels both resolve."""
        assert canonical_status(label) == expected

    def test_unknown_label_rejected(self):
        """An unrecognized label raises ValueError."""
        with pytest.raises(ValueError, match="Unknown expiry status"):
            canonical_status("overdue")


class TestDocumentClassification:
    """Classifying a set of documents."""

    def setup_method(self):
        self.classifier = ExpiryClassifier(clock=DeterministicClock.on(AS_OF))

    def test_sorted_nearest_expiry_first(self):
        """Results are ordered by days remaining, expired first."""
        far = _doc(AS_OF + timedelta(days=200))
        near = _doc(AS_OF + timedelta(days=3))
        past = _doc(AS_OF - timedelta(days=10))

        results = self.classifier.classify_documents([far, near, past], AS_OF)

        assert [r.document for r in results] == [past, near, far]
        assert [r.assessment.status for r in results] == [
            ExpiryStatus.EXPIRED, ExpiryStatus.CRITICAL, ExpiryStatus.VALID,
        ]

    def test_document_without_expiry_is_valid_and_last(self):
        """A document with no expiry never expires and sorts after dated ones."""
        undated = _doc(None, document_type="degree")
        dated = _doc(AS_OF + timedelta(days=400))

        results = self.classifier.classify_documents([undated, dated], AS_OF)

        assert results[-1].document is undated
        assert results[-1].assessment.status == ExpiryStatus.VALID
        assert results[-1].assessment.expiry_date is None

    def test_empty_input(self):
        """No documents, no results."""
        assert self.classifier.classify_documents([], AS_OF) == ()


class TestExpiringWithinAndCompliance:
    """Aggregate views over document assessments."""

    def setup_method(self):
        classifier = ExpiryClassifier(clock=DeterministicClock.on(AS_OF))
        self.docs = [
            _doc(AS_OF - timedelta(days=5)),
            _doc(AS_OF),
            _doc(AS_OF + timedelta(days=20)),
            _doc(AS_OF + timedelta(days=45)),
            _doc(None),
        ]
        self.results = classifier.classify_documents(self.docs, AS_OF)

    def test_expiring_within_excludes_expired_and_undated(self):
        """Only documents with 0..N days left are returned."""
        within = expiring_within(self.results, 30)
        assert {r.assessment.days_remaining for r in within} == {0, 20}

    def test_expiring_within_boundary_inclusive(self):
        """A document exactly N days out is included."""
        within = expiring_within(self.results, 45)
        assert 45 in {r.assessment.days_remaining for r in within}

    def test_compliance_percentage(self):
        """Expired and expiring-today documents are non-compliant; undated are compliant."""
        # 3 of 5 compliant: +20, +45 and undated
        assert compliance_percentage(self.results) == 60

    def test_compliance_of_empty_set_is_full(self):
        """No documents means nothing is out of compliance."""
        assert compliance_percentage([]) == 100

    def test_compliance_rounds_to_whole_percent(self):
        """Two of three compliant rounds to 67."""
        doc = _doc(AS_OF + timedelta(days=10))
        ok = ExpiryAssessment(ExpiryStatus.URGENT, 10)
        bad = ExpiryAssessment(ExpiryStatus.EXPIRED, -1)
        results = [
            DocumentAssessment(doc, ok),
            DocumentAssessment(doc, ok),
            DocumentAssessment(doc, bad),
        ]
        assert compliance_percentage(results) == 67

    def test_compliance_half_rounds_up(self):
        """One of eight compliant is 12.5%, reported as 13."""
        doc = _doc(AS_OF + timedelta(days=10))
        ok = ExpiryAssessment(ExpiryStatus.URGENT, 10)
        bad = ExpiryAssessment(ExpiryStatus.EXPIRED, -1)
        results = [DocumentAssessment(doc, ok)] + [DocumentAssessment(doc, bad)] * 7
        assert compliance_percentage(results) == 13


class TestLocalCalendarDay:
    """The evaluation day is the UAE calendar day, not the UTC one."""

    def test_early_morning_local_time(self):
        """At 01:00 in Dubai the UTC date is still yesterday; the local day wins."""
        clock = DeterministicClock(datetime(2026, 3, 7, 1, 0, tzinfo=UAE_TIMEZONE))
        assert clock.now().astimezone(timezone.utc).date() == date(2026, 3, 6)
        assert clock.today() == date(2026, 3, 7)

        result = ExpiryClassifier(clock=clock).classify(date(2026, 3, 14))
        assert result.days_remaining == 7
        assert result.status == ExpiryStatus.CRITICAL

    def test_utc_instant_converted_to_local_day(self):
        """21:30 UTC is already the next day in the UAE."""
        clock = DeterministicClock(datetime(2026, 3, 14, 21, 30, tzinfo=timezone.utc))
        assert clock.today() == date(2026, 3, 15)

    def test_system_clock_uses_uae_offset(self):
        """The production clock reports UTC+4."""
        assert SystemClock().now().utcoffset() == timedelta(hours=4)

    def test_explicit_timezone(self):
        """A clock can be given another timezone."""
        clock = DeterministicClock(datetime(2026, 3, 14, 21, 30, tzinfo=timezone.utc), tz=timezone.utc)
        assert clock.today() == date(2026, 3, 14)
