"""Tests for the dashboard projections."""

import logging
from datetime import datetime

import pytest

from app.core.exceptions import ForbiddenError
from app.models.record import SummaryScale
from app.schemas.analytics import PeriodGranularity
from app.schemas.record import ResidentStepInput, SelfAssessmentRequest
from app.services.analytics import (
    RecordAnalyticsService,
    completion_trend,
    records_per_period,
    summary_scale_history,
    surgery_distribution,
)
from app.services.repository import RecordRepository

from .conftest import OTHER_RESIDENT_ID, RESIDENT_ID


class TestCompletionTrend:
    """Test completion percentage rows"""

    def test_rows_are_oldest_first(self, make_record):
        records = [
            make_record(date=datetime(2025, 6, 1)),
            make_record(date=datetime(2025, 3, 15)),
            make_record(surgery_name="Hernia repair", date=datetime(2025, 4, 2)),
        ]

        trend = completion_trend(records)

        assert [row.date for row in trend.data] == [
            datetime(2025, 3, 15),
            datetime(2025, 4, 2),
            datetime(2025, 6, 1),
        ]
        assert [row.month for row in trend.data] == ["2025-03", "2025-04", "2025-06"]
        assert trend.surgeries == ["Appendectomy", "Hernia repair"]

    def test_percent_uses_step_weights(self, make_record):
        record = make_record(
            steps=[(True, True, "a"), (True, True, "b"), (False, False, "a"), (True, False, "a")]
        )

        assert completion_trend([record]).data[0].percent == 38

    def test_filter_by_surgery_keeps_surgery_list(self, make_record):
        records = [
            make_record(surgery_name="Appendectomy"),
            make_record(surgery_name="Hernia repair"),
        ]

        trend = completion_trend(records, surgery_name="Hernia repair")

        assert [row.surgery for row in trend.data] == ["Hernia repair"]
        assert trend.surgeries == ["Appendectomy", "Hernia repair"]

    def test_unresolved_surgery_is_skipped(self, make_record):
        records = [make_record(surgery_name=None), make_record()]

        trend = completion_trend(records)

        assert len(trend.data) == 1
        assert trend.surgeries == ["Appendectomy"]

    def test_no_records(self):
        trend = completion_trend([])

        assert trend.surgeries == []
        assert trend.data == []


class TestSummaryScaleHistory:
    """Test summary-scale history per surgery"""

    def test_newest_first_within_surgery(self, make_record):
        records = [
            make_record(date=datetime(2025, 1, 1), summary_scale="C"),
            make_record(date=datetime(2025, 3, 1), summary_scale="A"),
            make_record(surgery_name="Hernia repair", date=datetime(2025, 2, 1), summary_scale="B"),
            make_record(date=datetime(2025, 2, 1), summary_scale="B"),
        ]

        history = summary_scale_history(records)

        assert history.surgeries == ["Appendectomy", "Hernia repair"]
        appendectomy = [e for e in history.data if e.surgery == "Appendectomy"]
        assert [e.scale for e in appendectomy] == [SummaryScale.A, SummaryScale.B, SummaryScale.C]

    def test_limit_applies_per_surgery(self, make_record):
        records = [make_record(date=datetime(2025, month, 1)) for month in range(1, 8)]
        records.append(make_record(surgery_name="Hernia repair"))

        history = summary_scale_history(records, limit=5)

        appendectomy = [e for e in history.data if e.surgery == "Appendectomy"]
        assert len(appendectomy) == 5
        assert appendectomy[0].date == datetime(2025, 7, 1)
        assert len([e for e in history.data if e.surgery == "Hernia repair"]) == 1

    def test_unresolved_surgery_is_skipped(self, make_record):
        records = [make_record(surgery_name=None, summary_scale="E"), make_record(summary_scale="B")]

        history = summary_scale_history(records)

        assert history.surgeries == ["Appendectomy"]
        assert [e.scale for e in history.data] == [SummaryScale.B]


class TestSurgeryDistribution:
    """Test record counts per surgery"""

    def test_counts_in_first_appearance_order(self, make_record):
        records = [
            make_record(surgery_name="Hernia repair"),
            make_record(),
            make_record(surgery_name="Hernia repair"),
            make_record(surgery_name=None),
        ]

        counts = surgery_distribution(records)

        assert [(c.name, c.count) for c in counts] == [("Hernia repair", 2), ("Appendectomy", 1)]

    def test_unresolved_surgery_is_skipped(self, make_record):
        counts = surgery_distribution([make_record(surgery_name=None), make_record(surgery_name=None)])

        assert counts == []


class TestUnresolvedSurgeryLogging:
    """Skipped records are logged for every projection"""

    @pytest.mark.parametrize(
        "projection", [completion_trend, summary_scale_history, surgery_distribution]
    )
    def test_skip_is_logged_at_warning(self, make_record, caplog, projection):
        record = make_record(surgery_name=None)
        record.id = 42

        with caplog.at_level(logging.WARNING, logger="app.services.analytics"):
            projection([record])

        warnings = [
            r for r in caplog.records
            if r.name == "app.services.analytics" and r.levelno == logging.WARNING
        ]
        assert len(warnings) == 1
        assert "Record 42" in warnings[0].getMessage()


class TestRecordsPerPeriod:
    """Test record counts per period bucket"""

    @pytest.fixture
    def records(self, make_record):
        return [
            make_record(date=datetime(2025, 5, 26, 9, 0)),
            make_record(date=datetime(2025, 5, 25, 18, 0)),
            make_record(date=datetime(2025, 5, 19, 7, 30)),
            make_record(date=datetime(2024, 12, 30, 12, 0)),
        ]

    def test_week_starts_on_monday(self, records):
        counts = records_per_period(records, PeriodGranularity.WEEK)

        assert [(c.period, c.count) for c in counts] == [
            ("2024-12-30", 1),
            ("2025-05-19", 2),
            ("2025-05-26", 1),
        ]

    def test_month(self, records):
        counts = records_per_period(records, PeriodGranularity.MONTH)

        assert [(c.period, c.count) for c in counts] == [("2024-12", 1), ("2025-05", 3)]

    def test_year(self, records):
        counts = records_per_period(records, PeriodGranularity.YEAR)

        assert [(c.period, c.count) for c in counts] == [("2024", 1), ("2025", 3)]


class TestRecordAnalyticsService:
    """Test dashboard access and record selection"""

    @pytest.fixture
    def analytics(self, db) -> RecordAnalyticsService:
        return RecordAnalyticsService(RecordRepository(db))

    def test_pending_records_are_not_counted(self, analytics, pending_record, resident):
        assert analytics.get_surgery_distribution(resident, RESIDENT_ID) == []

    def test_corrected_records_are_counted(self, analytics, service, pending_record, resident, teacher):
        service.submit_self_assessment(
            pending_record.id,
            resident,
            SelfAssessmentRequest(
                revision=pending_record.revision,
                steps=[ResidentStepInput(name=s.name, resident_done=True) for s in pending_record.steps],
                resident_judgment=5,
                resident_comment="First attempt",
            ),
        )

        trend = analytics.get_completion_trend(teacher, RESIDENT_ID)
        assert trend.surgeries == ["Appendectomy"]
        assert [row.percent for row in trend.data] == [0]

        counts = analytics.get_surgery_distribution(resident, RESIDENT_ID)
        assert [(c.name, c.count) for c in counts] == [("Appendectomy", 1)]

    def test_resident_cannot_view_other_dashboard(self, analytics, resident):
        with pytest.raises(ForbiddenError):
            analytics.get_scale_history(resident, OTHER_RESIDENT_ID)

    def test_admin_can_view_any_dashboard(self, analytics, admin):
        assert analytics.get_records_per_period(admin, OTHER_RESIDENT_ID) == []
