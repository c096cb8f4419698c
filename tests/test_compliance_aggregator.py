"""
SGI Compliance Tracker - Compliance Aggregator Tests

Span-level compliance, evidence counts, review queue and dashboard
series over in-memory requirements.
"""

from datetime import timedelta

import pytest

from app.models.compliance_enums import EvidenceStatus, EvidenceType, Periodicity, SpanStatus
from app.services import evidence_lifecycle
from app.services.compliance_aggregator import ComplianceAggregator, calendar_cells, percentage
from app.utils.error_handling import MalformedPlanException
from tests.factories import FIXED_NOW, make_requirement, with_plan


def _execute(requirement, year, *months):
    for month in months:
        requirement.plans[year][month].executed = True
    return requirement


def _aggregator(*requirements) -> ComplianceAggregator:
    return ComplianceAggregator(requirements, legacy_year=2025, today=FIXED_NOW)


class TestSpanCompliance:
    """Completion counted per span, not per month."""

    def test_quarterly_single_execution(self):
        """Quarterly executed in June: only the second span is done."""
        req = _execute(with_plan(make_requirement(periodicity=Periodicity.QUARTERLY), 2025), 2025, 5)
        summary = _aggregator(req).summarize(req, 2025)
        assert summary.span_statuses == [
            SpanStatus.PLANNED, SpanStatus.EXECUTED, SpanStatus.PLANNED, SpanStatus.PLANNED,
        ]
        assert summary.scheduled == 4
        assert summary.completed == 1
        assert summary.compliance_percentage == 25.0

    def test_delayed_span(self):
        req = with_plan(make_requirement(periodicity=Periodicity.QUARTERLY), 2025)
        req.plans[2025][1].delayed = True
        summary = _aggregator(req).summarize(req, 2025)
        assert summary.span_statuses[0] == SpanStatus.DELAYED
        assert summary.completed == 0

    def test_rejected_evidence_does_not_count(self):
        req = with_plan(make_requirement(periodicity=Periodicity.ANNUAL), 2025)
        record = req.plans[2025][11]
        evidence_lifecycle.upload(record, EvidenceType.LINK, "https://x", "ana", now=FIXED_NOW)
        evidence_lifecycle.reject(record, "Incompleto", now=FIXED_NOW)
        assert _aggregator(req).summarize(req, 2025).completed == 0

    def test_bimonthly_area_compliance(self):
        """Bimonthly executed in Jan, Mar and May of 2025 is 50%."""
        req = _execute(
            with_plan(make_requirement(periodicity=Periodicity.BIMONTHLY, responsible_area="SST"), 2025),
            2025, 0, 2, 4,
        )
        report = _aggregator(req).area_compliance(2025)
        assert report["projected"] is False
        assert report["status"] == "actual"
        assert report["areas"][0]["name"] == "SST"
        assert report["areas"][0]["total_activities"] == 6
        assert report["areas"][0]["completed_activities"] == 3
        assert report["areas"][0]["compliance_percentage"] == 50.0

    def test_annual_approved_evidence(self):
        """Annual with approved November evidence: one approved item and 100%."""
        req = with_plan(make_requirement(periodicity=Periodicity.ANNUAL), 2025)
        record = req.plans[2025][11]
        evidence_lifecycle.upload(record, EvidenceType.FILE, "/uploads/a.pdf", "ana", file_name="a.pdf")
        evidence_lifecycle.approve(record, "admin")

        aggregator = _aggregator(req)
        assert aggregator.evidence_counts(2025).to_dict() == {"pending": 0, "approved": 1, "rejected": 0}
        assert aggregator.overall_compliance(2025) == 100.0

    def test_percentage_of_nothing(self):
        assert percentage(0, 0) is None
        assert percentage(1, 3) == 33.33


class TestProjectedYears:
    """Years past the last recorded actuals report planned checkpoints only."""

    def test_future_year_is_projected(self):
        req = _execute(with_plan(make_requirement(periodicity=Periodicity.MONTHLY), 2025), 2025, 0)
        aggregator = _aggregator(req)
        report = aggregator.area_compliance(2026)
        assert report["projected"] is True
        assert report["status"] == "not_applicable"
        assert report["areas"][0]["total_activities"] == 12
        assert report["areas"][0]["completed_activities"] == 0
        assert report["areas"][0]["compliance_percentage"] is None
        assert aggregator.overall_compliance(2026) is None

    def test_without_actuals_today_decides(self):
        req = make_requirement(periodicity=Periodicity.QUARTERLY)
        aggregator = _aggregator(req)
        assert aggregator.last_actual_year() == 2025
        assert aggregator.is_projected(2025) is False
        assert aggregator.is_projected(2026) is True


class TestPreviousPeriod:

    def test_previous_from_stored_plans(self):
        req = with_plan(make_requirement(periodicity=Periodicity.SEMIANNUAL), 2024)
        req.plans[2024][5].executed = True
        req.plans[2024][11].executed = True
        with_plan(req, 2025)
        req.plans[2025][5].executed = True
        assert _aggregator(req).deterioration(2025) == -50.0

    def test_previous_from_legacy_flags(self):
        """Without a stored 2024 plan the 2024 snapshot flags stand in."""
        done = _execute(with_plan(make_requirement(compliance_2024=True), 2025), 2025, 2)
        missed = with_plan(make_requirement(sub_clause="7.5.2", compliance_2024=False), 2025)
        report = _aggregator(done, missed).area_compliance(2025)
        assert report["areas"][0]["previous_compliance"] == 50.0


class TestMalformedPlans:

    def test_short_plan_is_skipped_and_reported(self):
        good = _execute(with_plan(make_requirement(), 2025), 2025, 2)
        bad = with_plan(make_requirement(sub_clause="8.1", responsible_area="Producción"), 2025)
        bad.plans[2025] = bad.plans[2025][:11]

        report = _aggregator(good, bad).area_compliance(2025)
        assert [a["name"] for a in report["areas"]] == ["Calidad"]
        assert report["issues"] == [{
            "requirement_id": bad.id,
            "year": 2025,
            "month_count": 11,
            "message": report["issues"][0]["message"],
        }]

    def test_calendar_cells_raise_on_short_plan(self):
        req = with_plan(make_requirement(), 2025)
        req.plans[2025].pop()
        with pytest.raises(MalformedPlanException):
            calendar_cells(req, 2025)


class TestEvidenceQueue:
    """Review queue ordering and filtering."""

    def _requirement_with_reviews(self):
        req = with_plan(make_requirement(periodicity=Periodicity.QUARTERLY), 2025)
        plan = req.plans[2025]
        evidence_lifecycle.upload(plan[2], EvidenceType.LINK, "https://q1", "ana",
                                  now=FIXED_NOW - timedelta(days=60))
        evidence_lifecycle.upload(plan[5], EvidenceType.LINK, "https://q2", "ana",
                                  now=FIXED_NOW - timedelta(days=10))
        evidence_lifecycle.reject(plan[2], "Sin firma", now=FIXED_NOW - timedelta(days=3))
        return req

    def test_newest_first_with_days_open(self):
        req = self._requirement_with_reviews()
        queue = _aggregator(req).evidence_queue()
        assert [item["month"] for item in queue] == [2, 5]
        assert queue[0]["status"] == "REJECTED"
        assert queue[0]["days_open"] == 3
        assert queue[0]["month_label"] == "Mar"
        assert queue[1]["days_open"] is None

    def test_filter_by_status(self):
        req = self._requirement_with_reviews()
        pending = _aggregator(req).evidence_queue(status=EvidenceStatus.PENDING)
        assert [item["month"] for item in pending] == [5]

    def test_counts_skip_records_without_evidence(self):
        req = self._requirement_with_reviews()
        counts = _aggregator(req).evidence_counts()
        assert counts.to_dict() == {"pending": 1, "approved": 0, "rejected": 1}
        assert counts.total == 2


class TestDashboard:

    def test_critical_and_monthly_series(self):
        """Quarterly checkpoints in March and June are due by mid-June."""
        req = with_plan(make_requirement(periodicity=Periodicity.QUARTERLY), 2025)
        done = _execute(
            with_plan(make_requirement(sub_clause="9.1", periodicity=Periodicity.BIMONTHLY), 2025),
            2025, 0, 2, 4,
        )
        dashboard = _aggregator(req, done).dashboard(2025, plants=["mosquera"])

        assert dashboard["critical_count"] == 2
        assert dashboard["planned_checkpoints"] == 10
        assert dashboard["monthly"][0] == {"month": "Ene", "plan": 1, "real": 1}
        assert dashboard["monthly"][2] == {"month": "Mar", "plan": 2, "real": 1}
        assert dashboard["monthly"][5] == {"month": "Jun", "plan": 1, "real": 0}
        assert dashboard["evidence_total"] == "0/10"
        assert dashboard["plants"][0]["name"] == "MOSQUERA"
        assert dashboard["total_activities"] == 10
        assert dashboard["completed_activities"] == 3

    def test_filter_by_standard(self):
        iso = with_plan(make_requirement(), 2025)
        sst = with_plan(make_requirement(sub_clause="4.1", standards=["SG-SST (Seguridad y Salud)"]), 2025)
        dashboard = _aggregator(iso, sst).dashboard(2025, standard="SG-SST (Seguridad y Salud)")
        assert [s["name"] for s in dashboard["standards"]] == ["SG-SST (Seguridad y Salud)"]


class TestCalendarCells:

    def test_quarterly_cells(self):
        req = with_plan(make_requirement(periodicity=Periodicity.QUARTERLY), 2025)
        evidence_lifecycle.upload(req.plans[2025][5], EvidenceType.LINK, "https://q2", "ana")
        cells = calendar_cells(req, 2025)
        assert [(c.start_month, c.end_month, c.col_span) for c in cells] == [
            (0, 2, 3), (3, 5, 3), (6, 8, 3), (9, 11, 3),
        ]
        assert cells[1].status == SpanStatus.EXECUTED
        assert cells[1].planned_months == [5]
        assert cells[1].evidence["url"] == "https://q2"
        assert cells[0].evidence is None
