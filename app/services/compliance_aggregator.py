"""
SGI Compliance Tracker - Compliance Aggregator

Read-only views folding a collection of requirements into compliance
percentages, evidence status counts, calendar cells and dashboard
series.

Completion is evaluated span by span (a quarterly requirement has four
spans of three months). Within a span the status resolves as
executed > delayed > planned > blank. A year past the last year with
recorded actuals is reported as projected (planned checkpoints only).

A requirement whose plan for the year does not hold exactly 12 months
is skipped and reported in ``issues``; it never aborts the pass.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from app.models.compliance_enums import EvidenceStatus, SpanStatus
from app.services.compliance_plan import (
    DEFAULT_LEGACY_PLAN_YEAR,
    ExecutionRecord,
    Requirement,
    utcnow,
    validate_plan,
)
from app.services.evidence_lifecycle import days_open
from app.services.periodicity_service import MONTH_LABELS, MONTHS_PER_YEAR, spans
from app.utils.error_handling import MalformedPlanException

logger = logging.getLogger(__name__)


def span_status(records: List[ExecutionRecord], start: int, end: int) -> SpanStatus:
    """Collapse the records of one span into a single status."""
    window = records[start:end + 1]
    if any(r.is_effectively_executed for r in window):
        return SpanStatus.EXECUTED
    if any(r.delayed for r in window):
        return SpanStatus.DELAYED
    if any(r.planned for r in window):
        return SpanStatus.PLANNED
    return SpanStatus.BLANK


def percentage(completed: int, total: int) -> Optional[float]:
    if total <= 0:
        return None
    return round(completed / total * 100, 2)


@dataclass
class CalendarCell:
    """One rendered cell of the calendar grid (one span)."""
    start_month: int
    end_month: int
    col_span: int
    status: SpanStatus
    planned_months: List[int] = field(default_factory=list)
    evidence: Optional[Dict[str, Any]] = None


@dataclass
class PlanIssue:
    """A requirement-year left out of an aggregation pass."""
    requirement_id: Optional[str]
    year: int
    month_count: int
    message: str


@dataclass
class RequirementYearSummary:
    requirement_id: str
    responsible_area: str
    standards: List[str]
    plant_ids: List[str]
    year: int
    scheduled: int
    completed: int
    span_statuses: List[SpanStatus]

    @property
    def compliance_percentage(self) -> Optional[float]:
        return percentage(self.completed, self.scheduled)


@dataclass
class GroupStats:
    """Compliance of one area / standard / plant for a year."""
    name: str
    total_activities: int
    completed_activities: int
    compliance_percentage: Optional[float]
    previous_compliance: Optional[float] = None
    deterioration: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EvidenceCounts:
    pending: int = 0
    approved: int = 0
    rejected: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.approved + self.rejected

    def to_dict(self) -> Dict[str, int]:
        return {"pending": self.pending, "approved": self.approved, "rejected": self.rejected}


def calendar_cells(
    requirement: Requirement,
    year: int,
    legacy_year: int = DEFAULT_LEGACY_PLAN_YEAR,
) -> List[CalendarCell]:
    """
    Span cells for the calendar grid of a requirement-year.

    Raises:
        MalformedPlanException: the year's plan is not 12 months long
    """
    records = requirement.plan_for_year(year, legacy_year)
    validate_plan(records, requirement.id, year)
    cells = []
    for start, end in spans(requirement.periodicity):
        window = records[start:end + 1]
        with_evidence = [r for r in window if r.evidence is not None]
        cells.append(CalendarCell(
            start_month=start,
            end_month=end,
            col_span=end - start + 1,
            status=span_status(records, start, end),
            planned_months=[r.month for r in window if r.planned],
            evidence=with_evidence[-1].evidence.to_document() if with_evidence else None,
        ))
    return cells


class ComplianceAggregator:
    """
    Compliance views over a snapshot of requirements.

    Usage:
        aggregator = ComplianceAggregator(requirements, today=datetime.now(timezone.utc))
        report = aggregator.area_compliance(2025, standard="ISO 9001:2015 (Calidad)")
    """

    def __init__(
        self,
        requirements: Iterable[Requirement],
        legacy_year: int = DEFAULT_LEGACY_PLAN_YEAR,
        today: Optional[datetime] = None,
    ):
        self.requirements = list(requirements)
        self.legacy_year = legacy_year
        self.today = today or utcnow()

    # ------------------------------------------------------------------
    # Scope
    # ------------------------------------------------------------------

    def filter(
        self,
        standard: Optional[str] = None,
        responsible_area: Optional[str] = None,
        plant_id: Optional[str] = None,
    ) -> List[Requirement]:
        plant = plant_id.strip().upper() if plant_id else None
        return [
            r for r in self.requirements
            if (standard is None or standard in r.standards)
            and (responsible_area is None or r.responsible_area == responsible_area)
            and (plant is None or plant in r.plant_ids)
        ]

    def last_actual_year(self, requirements: Optional[List[Requirement]] = None) -> int:
        """Latest year with any executed/delayed/evidence record; today's year when none."""
        requirements = self.requirements if requirements is None else requirements
        years = [
            year
            for req in requirements
            for year in req.years(self.legacy_year)
            if any(r.has_actuals for r in req.stored_plan(year, self.legacy_year) or [])
        ]
        return max(years) if years else self.today.year

    def is_projected(self, year: int, requirements: Optional[List[Requirement]] = None) -> bool:
        return year > self.last_actual_year(requirements)

    # ------------------------------------------------------------------
    # Per requirement
    # ------------------------------------------------------------------

    def summarize(self, requirement: Requirement, year: int, projected: bool = False) -> RequirementYearSummary:
        """
        Span-level completion of one requirement-year.

        Raises:
            MalformedPlanException: the year's plan is not 12 months long
        """
        records = requirement.plan_for_year(year, self.legacy_year)
        validate_plan(records, requirement.id, year)

        statuses = []
        for start, end in spans(requirement.periodicity):
            if projected:
                planned = any(r.planned for r in records[start:end + 1])
                statuses.append(SpanStatus.PLANNED if planned else SpanStatus.BLANK)
            else:
                statuses.append(span_status(records, start, end))

        return RequirementYearSummary(
            requirement_id=requirement.id,
            responsible_area=requirement.responsible_area,
            standards=list(requirement.standards),
            plant_ids=list(requirement.plant_ids),
            year=year,
            scheduled=sum(1 for s in statuses if s != SpanStatus.BLANK),
            completed=sum(1 for s in statuses if s == SpanStatus.EXECUTED),
            span_statuses=statuses,
        )

    def _summaries(
        self,
        requirements: List[Requirement],
        year: int,
        projected: bool,
    ) -> tuple:
        summaries: List[RequirementYearSummary] = []
        issues: List[PlanIssue] = []
        for req in requirements:
            try:
                summaries.append(self.summarize(req, year, projected))
            except MalformedPlanException as exc:
                logger.warning(f"Skipping requirement {req.id} for {year}: {exc.message}")
                issues.append(PlanIssue(
                    requirement_id=exc.requirement_id,
                    year=exc.year,
                    month_count=exc.month_count,
                    message=exc.message,
                ))
        return summaries, issues

    # ------------------------------------------------------------------
    # Compliance percentages
    # ------------------------------------------------------------------

    def _previous_percentage(
        self,
        requirements: List[Requirement],
        year: int,
        planned_only_years: Callable[[int], bool],
    ) -> Optional[float]:
        """
        Previous period: span compliance from stored plans when any exist,
        else the legacy yearly snapshot flags.
        """
        previous = year - 1
        if planned_only_years(previous):
            return None
        if any(r.stored_plan(previous, self.legacy_year) is not None for r in requirements):
            summaries, _ = self._summaries(requirements, previous, projected=False)
            return percentage(sum(s.completed for s in summaries), sum(s.scheduled for s in summaries))
        if previous in (2024, 2025) and requirements:
            flag = "compliance_2024" if previous == 2024 else "compliance_2025"
            return percentage(sum(1 for r in requirements if getattr(r, flag)), len(requirements))
        return None

    def _grouped(
        self,
        requirements: List[Requirement],
        summaries: List[RequirementYearSummary],
        year: int,
        projected: bool,
        keys_of: Callable[[Requirement], List[str]],
        order: Optional[List[str]] = None,
    ) -> List[GroupStats]:
        by_id = {r.id: r for r in requirements}
        groups: "OrderedDict[str, List[RequirementYearSummary]]" = OrderedDict((name, []) for name in order or [])
        members: Dict[str, List[Requirement]] = {name: [] for name in order or []}
        for summary in summaries:
            req = by_id[summary.requirement_id]
            for key in keys_of(req):
                groups.setdefault(key, []).append(summary)
                members.setdefault(key, []).append(req)

        def planned_only(y: int) -> bool:
            return self.is_projected(y, requirements)

        stats = []
        for name, group in groups.items():
            total = sum(s.scheduled for s in group)
            completed = sum(s.completed for s in group)
            current = None if projected else percentage(completed, total)
            previous = self._previous_percentage(members.get(name, []), year, planned_only)
            stats.append(GroupStats(
                name=name,
                total_activities=total,
                completed_activities=0 if projected else completed,
                compliance_percentage=current,
                previous_compliance=previous,
                deterioration=(
                    round(current - previous, 2)
                    if current is not None and previous is not None else None
                ),
            ))
        return stats

    def area_compliance(
        self,
        year: int,
        standard: Optional[str] = None,
        responsible_area: Optional[str] = None,
        plant_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Per-area compliance percentages for a year."""
        scope = self.filter(standard, responsible_area, plant_id)
        projected = self.is_projected(year, scope)
        summaries, issues = self._summaries(scope, year, projected)
        areas = self._grouped(scope, summaries, year, projected, lambda r: [r.responsible_area])
        areas.sort(key=lambda a: (a.compliance_percentage is None, -(a.compliance_percentage or 0), a.name))
        return {
            "year": year,
            "projected": projected,
            "status": "not_applicable" if projected else "actual",
            "areas": [a.to_dict() for a in areas],
            "issues": [asdict(i) for i in issues],
        }

    def overall_compliance(
        self,
        year: int,
        standard: Optional[str] = None,
        responsible_area: Optional[str] = None,
        plant_id: Optional[str] = None,
    ) -> Optional[float]:
        """Span compliance across the whole scope; None when projected or nothing scheduled."""
        scope = self.filter(standard, responsible_area, plant_id)
        if self.is_projected(year, scope):
            return None
        summaries, _ = self._summaries(scope, year, projected=False)
        return percentage(sum(s.completed for s in summaries), sum(s.scheduled for s in summaries))

    def deterioration(
        self,
        year: int,
        standard: Optional[str] = None,
        responsible_area: Optional[str] = None,
        plant_id: Optional[str] = None,
    ) -> Optional[float]:
        """Current minus previous period compliance; negative means regression."""
        scope = self.filter(standard, responsible_area, plant_id)
        current = self.overall_compliance(year, standard, responsible_area, plant_id)
        previous = self._previous_percentage(scope, year, lambda y: self.is_projected(y, scope))
        if current is None or previous is None:
            return None
        return round(current - previous, 2)

    # ------------------------------------------------------------------
    # Evidence
    # ------------------------------------------------------------------

    def _stored_records(
        self,
        requirements: List[Requirement],
        year: Optional[int],
        issues: List[PlanIssue],
    ):
        for req in requirements:
            years = [year] if year is not None else req.years(self.legacy_year)
            for y in years:
                records = req.stored_plan(y, self.legacy_year)
                if records is None:
                    continue
                try:
                    validate_plan(records, req.id, y)
                except MalformedPlanException as exc:
                    issues.append(PlanIssue(exc.requirement_id, exc.year, exc.month_count, exc.message))
                    continue
                for record in records:
                    yield req, y, record

    def evidence_counts(
        self,
        year: Optional[int] = None,
        standard: Optional[str] = None,
        responsible_area: Optional[str] = None,
        plant_id: Optional[str] = None,
    ) -> EvidenceCounts:
        """Records by evidence status; records without evidence are not counted."""
        counts = EvidenceCounts()
        issues: List[PlanIssue] = []
        scope = self.filter(standard, responsible_area, plant_id)
        for _, _, record in self._stored_records(scope, year, issues):
            if record.evidence is None:
                continue
            status = record.evidence.status
            if status == EvidenceStatus.APPROVED:
                counts.approved += 1
            elif status == EvidenceStatus.REJECTED:
                counts.rejected += 1
            else:
                counts.pending += 1
        return counts

    def evidence_queue(
        self,
        status: Optional[EvidenceStatus] = None,
        year: Optional[int] = None,
        standard: Optional[str] = None,
        responsible_area: Optional[str] = None,
        plant_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Evidence items for review, newest first by rejection or upload date.
        ``status=None`` lists the whole history.
        """
        issues: List[PlanIssue] = []
        items = []
        scope = self.filter(standard, responsible_area, plant_id)
        for req, y, record in self._stored_records(scope, year, issues):
            evidence = record.evidence
            if evidence is None:
                continue
            if status is not None and evidence.status != status:
                continue
            sort_date = evidence.rejection_date or evidence.uploaded_at
            items.append({
                "requirement_id": req.id,
                "clause": req.clause,
                "sub_clause": req.sub_clause,
                "clause_title": req.clause_title,
                "responsible_area": req.responsible_area,
                "standards": list(req.standards),
                "year": y,
                "month": record.month,
                "month_label": MONTH_LABELS[record.month] if 0 <= record.month < MONTHS_PER_YEAR else None,
                "status": evidence.status.value,
                "days_open": days_open(evidence, self.today),
                "evidence": evidence.to_document(),
                "_sort": sort_date.timestamp() if sort_date else float("-inf"),
            })
        items.sort(key=lambda item: item["_sort"], reverse=True)
        for item in items:
            del item["_sort"]
        return items

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def _reference_month(self, year: int) -> int:
        """Last month index already due in ``year`` (-1 when none)."""
        if year < self.today.year:
            return MONTHS_PER_YEAR - 1
        if year > self.today.year:
            return -1
        return self.today.month - 1

    def dashboard(
        self,
        year: int,
        standard: Optional[str] = None,
        responsible_area: Optional[str] = None,
        plant_id: Optional[str] = None,
        plants: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        scope = self.filter(standard, responsible_area, plant_id)
        projected = self.is_projected(year, scope)
        summaries, issues = self._summaries(scope, year, projected)
        valid_ids = {s.requirement_id for s in summaries}

        monthly = [{"month": label, "plan": 0, "real": 0} for label in MONTH_LABELS]
        planned_checkpoints = 0
        critical = 0
        due_until = self._reference_month(year)
        for req in scope:
            if req.id not in valid_ids:
                continue
            for idx, record in enumerate(req.plan_for_year(year, self.legacy_year)):
                if not record.planned:
                    continue
                planned_checkpoints += 1
                monthly[idx]["plan"] += 1
                if projected:
                    continue
                if record.is_effectively_executed:
                    monthly[idx]["real"] += 1
                elif idx <= due_until:
                    critical += 1

        counts = self.evidence_counts(year, standard, responsible_area, plant_id)
        total = sum(s.scheduled for s in summaries)
        completed = sum(s.completed for s in summaries)
        overall = None if projected else percentage(completed, total)
        previous = self._previous_percentage(scope, year, lambda y: self.is_projected(y, scope))

        areas = self._grouped(scope, summaries, year, projected, lambda r: [r.responsible_area])
        by_standard = self._grouped(scope, summaries, year, projected, lambda r: list(r.standards))
        plant_order = [p.strip().upper() for p in plants] if plants else None
        by_plant = self._grouped(scope, summaries, year, projected, lambda r: list(r.plant_ids), plant_order)
        for group in (areas, by_plant):
            group.sort(key=lambda g: (g.compliance_percentage is None, -(g.compliance_percentage or 0), g.name))

        return {
            "year": year,
            "projected": projected,
            "status": "not_applicable" if projected else "actual",
            "overall_compliance": overall,
            "previous_compliance": previous,
            "deterioration": (
                round(overall - previous, 2) if overall is not None and previous is not None else None
            ),
            "total_activities": total,
            "completed_activities": 0 if projected else completed,
            "planned_checkpoints": planned_checkpoints,
            "critical_count": critical,
            "evidence_counts": counts.to_dict(),
            "evidence_total": f"{counts.approved}/{planned_checkpoints}",
            "areas": [a.to_dict() for a in areas],
            "standards": [s.to_dict() for s in by_standard],
            "plants": [p.to_dict() for p in by_plant],
            "monthly": monthly,
            "issues": [asdict(i) for i in issues],
        }
