"""
SGI Compliance Tracker - Legacy Document Normalization

One-time pass folding the historical requirement document shapes into
the canonical one:

- camelCase keys of the browser-era documents (``subClause``,
  ``responsibleArea``, ``monthlyPlan``...)
- the ``monthly_plan`` alias of the legacy year, merged into ``plans``
  month by month with ``plans`` winning on conflicts
- requirement-level evidence (an ``evidence`` object, or the
  ``evidenceFile`` / ``evidenceUrl`` strings), moved onto the last
  planned month of the legacy year that has no evidence yet
"""

import logging
import posixpath
from typing import Any, Dict, List, Optional

from app.models.compliance_enums import EvidenceType
from app.services.compliance_plan import (
    DEFAULT_LEGACY_PLAN_YEAR,
    DEFAULT_MAIN_PLANT_ID,
    Evidence,
    ExecutionRecord,
    generate_plan,
    normalize_plant_ids,
)
from app.services.periodicity_service import MONTHS_PER_YEAR

logger = logging.getLogger(__name__)

FIELD_ALIASES = {
    "subClause": "sub_clause",
    "clauseTitle": "clause_title",
    "relatedQuestions": "related_questions",
    "responsibleArea": "responsible_area",
    "plantIds": "plant_ids",
    "compliance2024": "compliance_2024",
    "compliance2025": "compliance_2025",
    "monthlyPlan": "monthly_plan",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

LEGACY_EVIDENCE_KEYS = ("evidence", "evidenceFile", "evidenceUrl", "evidence_file", "evidence_url")


def _records_by_month(raw_records: Optional[List[Dict[str, Any]]]) -> Dict[int, ExecutionRecord]:
    result = {}
    for position, raw in enumerate(raw_records or []):
        if not raw:
            continue
        record = ExecutionRecord.from_document(raw, position)
        if 0 <= record.month < MONTHS_PER_YEAR:
            result[record.month] = record
    return result


def _legacy_evidence(doc: Dict[str, Any]) -> Optional[Evidence]:
    raw = doc.get("evidence")
    if isinstance(raw, dict) and raw.get("url"):
        return Evidence.from_document(raw)

    file_url = doc.get("evidenceFile") or doc.get("evidence_file")
    if file_url:
        name = posixpath.basename(str(file_url).split("?", 1)[0]) or "evidence"
        return Evidence(type=EvidenceType.FILE, url=str(file_url), file_name=name)

    link = doc.get("evidenceUrl") or doc.get("evidence_url")
    if link:
        return Evidence(type=EvidenceType.LINK, url=str(link), file_name="External link")
    return None


def normalize_legacy_document(
    doc: Dict[str, Any],
    legacy_year: int = DEFAULT_LEGACY_PLAN_YEAR,
    main_plant_id: str = DEFAULT_MAIN_PLANT_ID,
) -> Dict[str, Any]:
    """Return the canonical form of a requirement document of any vintage."""
    canonical: Dict[str, Any] = {}
    for key, value in doc.items():
        if key in LEGACY_EVIDENCE_KEYS:
            continue
        canonical[FIELD_ALIASES.get(key, key)] = value

    requirement_id = canonical.get("id")

    merged: Dict[int, Dict[int, ExecutionRecord]] = {}
    for year, records in (canonical.get("plans") or {}).items():
        merged[int(year)] = _records_by_month(records)

    legacy_records = _records_by_month(canonical.pop("monthly_plan", None))
    if legacy_records:
        target = merged.setdefault(legacy_year, {})
        for month, record in legacy_records.items():
            # plans takes precedence for the same (year, month)
            target.setdefault(month, record)

    evidence = _legacy_evidence(doc)
    if evidence is not None:
        target = merged.setdefault(legacy_year, {})
        if len(target) < MONTHS_PER_YEAR:
            for record in generate_plan(canonical.get("periodicity"), legacy_year):
                target.setdefault(record.month, record)
        candidates = [
            m for m in sorted(target)
            if target[m].planned and target[m].evidence is None
        ]
        if candidates:
            slot = target[candidates[-1]]
            slot.evidence = evidence
            slot.executed = True
        else:
            logger.warning(
                f"Requirement {requirement_id}: no free planned month in {legacy_year} "
                f"for requirement-level evidence, dropped"
            )

    plans = {}
    for year, by_month in sorted(merged.items()):
        plans[str(year)] = [by_month[m].to_document() for m in sorted(by_month)]

    canonical["plans"] = plans
    canonical["monthly_plan"] = None
    canonical["plant_ids"] = normalize_plant_ids(canonical.get("plant_ids"), main_plant_id)
    canonical["standards"] = list(canonical.get("standards") or [])
    canonical["compliance_2024"] = bool(canonical.get("compliance_2024", False))
    canonical["compliance_2025"] = bool(canonical.get("compliance_2025", False))
    return canonical
