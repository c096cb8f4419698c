"""
SGI Compliance Tracker - Requirement and Execution Plan Model

Plain dataclasses for a requirement, its per-year monthly execution
records and the evidence attached to them, plus the plan generation and
read-time projection rules.

Documents are the canonical snake_case dicts held by the persistence
collaborator; ``to_document`` / ``from_document`` convert both ways.
"""

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from app.models.compliance_enums import EvidenceStatus, EvidenceType, Periodicity
from app.services.periodicity_service import MONTHS_PER_YEAR, expand
from app.utils.error_handling import MalformedPlanException

DEFAULT_LEGACY_PLAN_YEAR = 2025
DEFAULT_MAIN_PLANT_ID = "MOSQUERA"

_LEGACY_DATE_FORMATS = ("%m/%d/%Y", "%d/%m/%Y", "%Y-%m-%d")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO strings and the locale date strings of older documents."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            parsed = None
            for fmt in _LEGACY_DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
            if parsed is None:
                return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Evidence:
    """A file or link substantiating one checkpoint, with its review state."""
    type: EvidenceType
    url: str
    file_name: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    status: EvidenceStatus = EvidenceStatus.PENDING
    admin_comment: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_date: Optional[datetime] = None
    rejected_by: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "url": self.url,
            "file_name": self.file_name,
            "uploaded_by": self.uploaded_by,
            "uploaded_at": _iso(self.uploaded_at),
            "status": self.status.value,
            "admin_comment": self.admin_comment,
            "approved_by": self.approved_by,
            "approved_at": _iso(self.approved_at),
            "rejection_date": _iso(self.rejection_date),
            "rejected_by": self.rejected_by,
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "Evidence":
        raw_type = str(data.get("type") or EvidenceType.FILE.value).upper()
        return cls(
            type=EvidenceType(raw_type),
            url=data.get("url") or "",
            file_name=data.get("file_name") or data.get("fileName"),
            uploaded_by=data.get("uploaded_by") or data.get("uploadedBy"),
            uploaded_at=parse_datetime(data.get("uploaded_at") or data.get("uploadedAt")),
            status=EvidenceStatus.parse(data.get("status")),
            admin_comment=data.get("admin_comment") or data.get("adminComment"),
            approved_by=data.get("approved_by") or data.get("approvedBy"),
            approved_at=parse_datetime(data.get("approved_at") or data.get("approvedAt")),
            rejection_date=parse_datetime(data.get("rejection_date") or data.get("rejectionDate")),
            rejected_by=data.get("rejected_by") or data.get("rejectedBy"),
        )


@dataclass
class ExecutionRecord:
    """Planned/executed/delayed state of one month of one requirement-year."""
    month: int
    planned: bool = False
    executed: bool = False
    delayed: bool = False
    evidence: Optional[Evidence] = None

    @property
    def has_actuals(self) -> bool:
        return self.executed or self.delayed or self.evidence is not None

    @property
    def is_effectively_executed(self) -> bool:
        """
        Evidence presence is authoritative; the executed flag is the
        legacy signal. Rejected evidence does not count as done.
        """
        if self.evidence is not None:
            return self.evidence.status != EvidenceStatus.REJECTED
        return self.executed

    def to_document(self) -> Dict[str, Any]:
        doc = {
            "month": self.month,
            "planned": self.planned,
            "executed": self.executed,
            "delayed": self.delayed,
        }
        if self.evidence is not None:
            doc["evidence"] = self.evidence.to_document()
        return doc

    @classmethod
    def from_document(cls, data: Dict[str, Any], position: int) -> "ExecutionRecord":
        evidence = data.get("evidence")
        month = data.get("month")
        return cls(
            month=position if month is None else int(month),
            planned=bool(data.get("planned", False)),
            executed=bool(data.get("executed", False)),
            delayed=bool(data.get("delayed", False)),
            evidence=Evidence.from_document(evidence) if evidence else None,
        )


def generate_plan(periodicity: Any, year: Optional[int] = None) -> List[ExecutionRecord]:
    """Fresh 12-month plan with planned flags from the periodicity."""
    year = year or utcnow().year
    return [
        ExecutionRecord(month=i, planned=planned)
        for i, planned in enumerate(expand(periodicity, year))
    ]


def validate_plan(records: List[ExecutionRecord], requirement_id: Optional[str], year: int) -> None:
    if len(records) != MONTHS_PER_YEAR:
        raise MalformedPlanException(requirement_id, year, len(records))


def plan_has_actuals(records: Iterable[ExecutionRecord]) -> bool:
    return any(r.has_actuals for r in records)


def normalize_plant_ids(plant_ids: Optional[Iterable[str]], main_plant_id: str = DEFAULT_MAIN_PLANT_ID) -> List[str]:
    """Trim and upper-case plant ids, drop duplicates, always keep the main plant."""
    result: List[str] = []
    for raw in plant_ids or []:
        if raw is None:
            continue
        cleaned = str(raw).strip().upper()
        if cleaned and cleaned not in result:
            result.append(cleaned)
    main = main_plant_id.strip().upper()
    if main not in result:
        result.append(main)
    return result


@dataclass
class Requirement:
    """A compliance obligation and its execution plans by year."""
    clause: str
    sub_clause: str
    clause_title: str
    standards: List[str]
    responsible_area: str
    periodicity: Periodicity
    description: str = ""
    contextualization: str = ""
    related_questions: str = ""
    plant_ids: List[str] = field(default_factory=list)
    compliance_2024: bool = False
    compliance_2025: bool = False
    plans: Dict[int, List[ExecutionRecord]] = field(default_factory=dict)
    monthly_plan: Optional[List[ExecutionRecord]] = None
    id: str = field(default_factory=lambda: f"ACT-{uuid.uuid4().hex[:12].upper()}")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def identity_key(self) -> tuple:
        """Fields that must be unique together among requirements."""
        return (
            self.clause.strip().lower(),
            self.sub_clause.strip().lower(),
            self.clause_title.strip().lower(),
            self.responsible_area.strip().lower(),
        )

    def stored_plan(self, year: int, legacy_year: int = DEFAULT_LEGACY_PLAN_YEAR) -> Optional[List[ExecutionRecord]]:
        """The persisted plan for a year, falling back to the legacy alias."""
        if year in self.plans:
            return self.plans[year]
        if year == legacy_year and self.monthly_plan:
            return self.monthly_plan
        return None

    def plan_for_year(self, year: int, legacy_year: int = DEFAULT_LEGACY_PLAN_YEAR) -> List[ExecutionRecord]:
        """
        Read-time view of a year's plan.

        Stored records (including manual overrides of ``planned``) are
        returned as they are; a year with nothing stored is projected
        from the periodicity without being attached to the requirement.
        """
        stored = self.stored_plan(year, legacy_year)
        if stored is not None:
            return stored
        return generate_plan(self.periodicity, year)

    def ensure_plan(self, year: int, legacy_year: int = DEFAULT_LEGACY_PLAN_YEAR) -> List[ExecutionRecord]:
        """
        Make a year's plan durable before recording actuals on it.

        A legacy ``monthly_plan`` for the legacy year is moved into
        ``plans`` so every write lands in the canonical shape.
        """
        if year not in self.plans:
            stored = self.stored_plan(year, legacy_year)
            if stored is not None:
                self.plans[year] = stored
                self.monthly_plan = None
            else:
                self.plans[year] = generate_plan(self.periodicity, year)
        plan = self.plans[year]
        validate_plan(plan, self.id, year)
        return plan

    def years(self, legacy_year: int = DEFAULT_LEGACY_PLAN_YEAR) -> List[int]:
        years = set(self.plans)
        if self.monthly_plan:
            years.add(legacy_year)
        return sorted(years)

    def historical_compliance(self, year: int) -> bool:
        """Legacy flag shown next to a year: the previous year's snapshot."""
        if year == 2025:
            return self.compliance_2024
        if year == 2026:
            return self.compliance_2025
        return False

    def change_periodicity(self, periodicity: Any) -> None:
        """
        Switch periodicity, regenerating only the years with nothing
        recorded on them. Recorded years keep their records untouched.
        """
        new = Periodicity.parse(periodicity, requirement_id=self.id)
        if new == self.periodicity:
            return
        self.periodicity = new
        for year in list(self.plans):
            if not plan_has_actuals(self.plans[year]):
                self.plans[year] = generate_plan(new, year)
        if self.monthly_plan and not plan_has_actuals(self.monthly_plan):
            self.monthly_plan = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "clause": self.clause,
            "sub_clause": self.sub_clause,
            "clause_title": self.clause_title,
            "description": self.description,
            "contextualization": self.contextualization,
            "related_questions": self.related_questions,
            "standards": list(self.standards),
            "responsible_area": self.responsible_area,
            "plant_ids": list(self.plant_ids),
            "periodicity": self.periodicity.value,
            "compliance_2024": self.compliance_2024,
            "compliance_2025": self.compliance_2025,
            "plans": {
                str(year): [r.to_document() for r in records]
                for year, records in sorted(self.plans.items())
            },
            "monthly_plan": (
                [r.to_document() for r in self.monthly_plan]
                if self.monthly_plan is not None else None
            ),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "Requirement":
        doc_id = data.get("id")
        plans = {
            int(year): [ExecutionRecord.from_document(r, i) for i, r in enumerate(records or [])]
            for year, records in (data.get("plans") or {}).items()
        }
        legacy = data.get("monthly_plan")
        kwargs = {}
        if doc_id:
            kwargs["id"] = str(doc_id)
        return cls(
            clause=data.get("clause") or "",
            sub_clause=data.get("sub_clause") or "",
            clause_title=data.get("clause_title") or "",
            description=data.get("description") or "",
            contextualization=data.get("contextualization") or "",
            related_questions=data.get("related_questions") or "",
            standards=list(data.get("standards") or []),
            responsible_area=data.get("responsible_area") or "",
            plant_ids=list(data.get("plant_ids") or []),
            periodicity=Periodicity.parse(data.get("periodicity"), requirement_id=doc_id),
            compliance_2024=bool(data.get("compliance_2024", False)),
            compliance_2025=bool(data.get("compliance_2025", False)),
            plans=plans,
            monthly_plan=(
                [ExecutionRecord.from_document(r, i) for i, r in enumerate(legacy)]
                if legacy else None
            ),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
            **kwargs,
        )

    def copy(self) -> "Requirement":
        return copy.deepcopy(self)
