"""
SGI Compliance Tracker - Requirement and Plan Model Tests
"""

from datetime import datetime, timezone

import pytest

from app.models.compliance_enums import EvidenceStatus, EvidenceType, Periodicity
from app.services.compliance_plan import (
    Evidence,
    ExecutionRecord,
    Requirement,
    generate_plan,
    normalize_plant_ids,
    parse_datetime,
)
from app.services.periodicity_service import expand
from app.utils.error_handling import InvalidPeriodicityException, MalformedPlanException
from tests.factories import make_requirement


class TestGeneratePlan:
    """Fresh plans from a periodicity."""

    @pytest.mark.parametrize("periodicity", list(Periodicity))
    def test_matches_expander(self, periodicity):
        """Planned flags mirror the expander; nothing is executed."""
        plan = generate_plan(periodicity, 2025)
        assert len(plan) == 12
        assert [r.planned for r in plan] == list(expand(periodicity, 2025))
        assert [r.month for r in plan] == list(range(12))
        assert not any(r.executed or r.delayed or r.evidence for r in plan)

    def test_invalid_periodicity(self):
        with pytest.raises(InvalidPeriodicityException):
            generate_plan("Quincenal", 2025)


class TestPlanForYear:
    """Stored plans, legacy alias and read-time projection."""

    def test_projection_is_not_attached(self):
        """Reading a year with no stored plan does not store one."""
        req = make_requirement(periodicity=Periodicity.ANNUAL)
        plan = req.plan_for_year(2027)
        assert [r.planned for r in plan].count(True) == 1
        assert 2027 not in req.plans

    def test_manual_override_is_kept(self):
        """A stored plan is returned as stored, overrides included."""
        req = make_requirement(periodicity=Periodicity.ANNUAL)
        req.plans[2025] = generate_plan(Periodicity.ANNUAL, 2025)
        req.plans[2025][3].planned = True
        assert req.plan_for_year(2025)[3].planned is True

    def test_legacy_alias_only_for_legacy_year(self):
        """monthly_plan stands for the legacy year and nothing else."""
        legacy = generate_plan(Periodicity.MONTHLY, 2025)
        legacy[0].executed = True
        req = make_requirement(periodicity=Periodicity.MONTHLY, monthly_plan=legacy)
        assert req.plan_for_year(2025, legacy_year=2025)[0].executed is True
        assert req.plan_for_year(2026, legacy_year=2025)[0].executed is False

    def test_plans_win_over_legacy_alias(self):
        req = make_requirement(periodicity=Periodicity.MONTHLY)
        req.monthly_plan = generate_plan(Periodicity.MONTHLY, 2025)
        req.monthly_plan[0].executed = True
        req.plans[2025] = generate_plan(Periodicity.MONTHLY, 2025)
        assert req.plan_for_year(2025)[0].executed is False

    def test_ensure_plan_moves_legacy_alias(self):
        """Writing to the legacy year lands in plans."""
        legacy = generate_plan(Periodicity.QUARTERLY, 2025)
        legacy[2].executed = True
        req = make_requirement(monthly_plan=legacy)
        plan = req.ensure_plan(2025, legacy_year=2025)
        assert plan[2].executed is True
        assert req.plans[2025] is plan
        assert req.monthly_plan is None

    def test_ensure_plan_rejects_short_plan(self):
        """A stored plan without 12 months is reported, not padded."""
        req = make_requirement()
        req.plans[2025] = generate_plan(Periodicity.QUARTERLY, 2025)[:10]
        with pytest.raises(MalformedPlanException) as exc_info:
            req.ensure_plan(2025)
        assert exc_info.value.month_count == 10
        assert exc_info.value.year == 2025


class TestChangePeriodicity:
    """Regeneration keeps recorded years."""

    def test_only_years_without_actuals_regenerate(self):
        req = make_requirement(periodicity=Periodicity.QUARTERLY)
        req.plans[2025] = generate_plan(Periodicity.QUARTERLY, 2025)
        req.plans[2025][2].executed = True
        req.plans[2026] = generate_plan(Periodicity.QUARTERLY, 2026)

        req.change_periodicity("Mensual")

        assert req.periodicity == Periodicity.MONTHLY
        assert sum(r.planned for r in req.plans[2025]) == 4
        assert req.plans[2025][2].executed is True
        assert sum(r.planned for r in req.plans[2026]) == 12

    def test_invalid_value_leaves_requirement_untouched(self):
        req = make_requirement(periodicity=Periodicity.QUARTERLY)
        with pytest.raises(InvalidPeriodicityException):
            req.change_periodicity("Diario")
        assert req.periodicity == Periodicity.QUARTERLY


class TestRequirementHelpers:

    def test_historical_compliance(self):
        """The flag shown for a year is the previous year's snapshot."""
        req = make_requirement(compliance_2024=True, compliance_2025=False)
        assert req.historical_compliance(2025) is True
        assert req.historical_compliance(2026) is False
        assert req.historical_compliance(2027) is False

    def test_plant_ids_normalized(self):
        """Trimmed, upper-cased, unique, main plant always present."""
        assert normalize_plant_ids([" norte ", "NORTE", None, ""], "Mosquera") == ["NORTE", "MOSQUERA"]
        assert normalize_plant_ids(None) == ["MOSQUERA"]

    def test_document_round_trip_keeps_evidence(self):
        req = make_requirement()
        req.plans[2025] = generate_plan(req.periodicity, 2025)
        req.plans[2025][5].evidence = Evidence(
            type=EvidenceType.LINK,
            url="https://example.com/acta",
            file_name="Acta",
            uploaded_by="ana",
            uploaded_at=datetime(2025, 6, 1, tzinfo=timezone.utc),
        )
        doc = req.to_document()
        assert list(doc["plans"]) == ["2025"]

        restored = Requirement.from_document(doc)
        evidence = restored.plans[2025][5].evidence
        assert restored.id == req.id
        assert evidence.status == EvidenceStatus.PENDING
        assert evidence.uploaded_at == datetime(2025, 6, 1, tzinfo=timezone.utc)

    def test_from_document_rejects_unknown_periodicity(self):
        doc = make_requirement().to_document()
        doc["periodicity"] = "Cada tanto"
        with pytest.raises(InvalidPeriodicityException):
            Requirement.from_document(doc)

    def test_evidence_without_status_is_pending(self):
        evidence = Evidence.from_document({"type": "FILE", "url": "/uploads/a.pdf", "fileName": "a.pdf"})
        assert evidence.status == EvidenceStatus.PENDING
        assert evidence.file_name == "a.pdf"

    def test_effective_execution(self):
        """Evidence counts unless rejected; otherwise the executed flag decides."""
        record = ExecutionRecord(month=0, planned=True)
        assert record.is_effectively_executed is False
        record.executed = True
        assert record.is_effectively_executed is True
        record.evidence = Evidence(type=EvidenceType.LINK, url="https://x", status=EvidenceStatus.REJECTED)
        assert record.is_effectively_executed is False

    def test_parse_legacy_dates(self):
        assert parse_datetime("2025-03-01T10:00:00Z") == datetime(2025, 3, 1, 10, tzinfo=timezone.utc)
        assert parse_datetime("3/14/2025") == datetime(2025, 3, 14, tzinfo=timezone.utc)
        assert parse_datetime("not a date") is None
