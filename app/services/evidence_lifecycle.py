"""
SGI Compliance Tracker - Evidence Lifecycle

State machine for the evidence attached to one execution record:

    NONE -> PENDING -> APPROVED | REJECTED
    REJECTED -> PENDING   (new upload)
    REJECTED -> APPROVED  (reviewer overrides the rejection)

An upload always starts a new evidence instance in PENDING and replaces
whatever was attached before; the replaced instance is not kept.
"""

import logging
import math
from datetime import datetime
from typing import Optional

from app.models.compliance_enums import EvidenceStatus, EvidenceType
from app.services.compliance_plan import Evidence, ExecutionRecord, Requirement, utcnow
from app.services.periodicity_service import MONTHS_PER_YEAR
from app.utils.error_handling import (
    EvidenceNotFoundException,
    InvalidTargetException,
    InvalidTransitionException,
    ValidationException,
)

logger = logging.getLogger(__name__)

APPROVABLE_FROM = {EvidenceStatus.PENDING, EvidenceStatus.REJECTED}
REJECTABLE_FROM = {EvidenceStatus.PENDING}

DEFAULT_LINK_NAME = "External link"


def resolve_record(
    requirement: Optional[Requirement],
    year: Optional[int],
    month: Optional[int],
    legacy_year: int,
) -> ExecutionRecord:
    """
    Locate (and make durable) the execution record an evidence action targets.

    Raises:
        InvalidTargetException: no requirement, year or month in range
    """
    requirement_id = requirement.id if requirement else None
    if requirement is None:
        raise InvalidTargetException("No active requirement for evidence action", requirement_id, year, month)
    if year is None or month is None:
        raise InvalidTargetException("Year and month are required", requirement_id, year, month)
    if not 0 <= month < MONTHS_PER_YEAR:
        raise InvalidTargetException(f"Month index {month} out of range 0-11", requirement_id, year, month)
    plan = requirement.ensure_plan(year, legacy_year)
    return plan[month]


def upload(
    record: Optional[ExecutionRecord],
    evidence_type: EvidenceType,
    url: str,
    uploaded_by: str,
    file_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Evidence:
    """Attach new evidence in PENDING; the record counts as executed from now on."""
    if record is None:
        raise InvalidTargetException("No execution record for evidence upload")
    if not url or not str(url).strip():
        raise ValidationException(message="Evidence URL must not be empty", field="url")
    if evidence_type == EvidenceType.FILE and not file_name:
        raise ValidationException(message="File evidence requires a file name", field="file_name")

    previous = record.evidence.status.value if record.evidence else None
    evidence = Evidence(
        type=evidence_type,
        url=str(url).strip(),
        file_name=file_name or DEFAULT_LINK_NAME,
        uploaded_by=uploaded_by,
        uploaded_at=now or utcnow(),
        status=EvidenceStatus.PENDING,
    )
    record.evidence = evidence
    record.executed = True
    record.delayed = False
    logger.info(f"Evidence uploaded for month {record.month} (previous status: {previous or 'NONE'})")
    return evidence


def _require_evidence(
    record: Optional[ExecutionRecord],
    requirement_id: Optional[str],
    year: Optional[int],
) -> Evidence:
    if record is None:
        raise InvalidTargetException("No execution record for evidence review", requirement_id, year)
    if record.evidence is None:
        raise EvidenceNotFoundException(requirement_id, year, record.month)
    return record.evidence


def approve(
    record: Optional[ExecutionRecord],
    approved_by: str,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
    requirement_id: Optional[str] = None,
    year: Optional[int] = None,
) -> Evidence:
    evidence = _require_evidence(record, requirement_id, year)
    if evidence.status not in APPROVABLE_FROM:
        raise InvalidTransitionException("approve", evidence.status.value)

    evidence.status = EvidenceStatus.APPROVED
    evidence.approved_by = approved_by
    evidence.approved_at = now or utcnow()
    evidence.rejection_date = None
    evidence.rejected_by = None
    # An earlier rejection comment does not carry over to the approval
    evidence.admin_comment = comment
    return evidence


def reject(
    record: Optional[ExecutionRecord],
    comment: str,
    rejected_by: Optional[str] = None,
    now: Optional[datetime] = None,
    requirement_id: Optional[str] = None,
    year: Optional[int] = None,
) -> Evidence:
    evidence = _require_evidence(record, requirement_id, year)
    if evidence.status not in REJECTABLE_FROM:
        raise InvalidTransitionException("reject", evidence.status.value)
    if not comment or not comment.strip():
        raise ValidationException(message="A rejection requires a reviewer comment", field="comment")

    evidence.status = EvidenceStatus.REJECTED
    evidence.admin_comment = comment.strip()
    evidence.rejection_date = now or utcnow()
    evidence.rejected_by = rejected_by
    return evidence


def days_open(evidence: Optional[Evidence], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days since rejection; None unless the evidence is REJECTED."""
    if evidence is None or evidence.status != EvidenceStatus.REJECTED or evidence.rejection_date is None:
        return None
    elapsed = (now or utcnow()) - evidence.rejection_date
    return math.floor(elapsed.total_seconds() / 86400)
