"""
SGI Compliance Tracker - Evidence Router

Evidence upload and review for one execution record, addressed as
requirement / year / month index (0 = January), plus the cross-
requirement review queue.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile

from app.dependencies import get_evidence_service
from app.models.compliance_enums import EvidenceStatus
from app.schemas.compliance import (
    ApproveEvidenceRequest,
    EvidenceCountsResponse,
    EvidenceQueueItem,
    EvidenceResponse,
    ExecutionRecordResponse,
    ExecutionRecordUpdate,
    LinkEvidenceRequest,
    RejectEvidenceRequest,
)
from app.services.evidence_service import EvidenceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/evidence", tags=["Evidence"])

ALL_STATUSES = "ALL"


# ===========================================
# REVIEW QUEUE
# ===========================================

@router.get("", response_model=List[EvidenceQueueItem])
async def list_evidence(
    status_filter: str = Query(ALL_STATUSES, alias="status", description="ALL, PENDING, APPROVED or REJECTED"),
    year: Optional[int] = Query(None),
    standard: Optional[str] = Query(None),
    responsible_area: Optional[str] = Query(None),
    plant_id: Optional[str] = Query(None),
    evidence_service: EvidenceService = Depends(get_evidence_service),
):
    """
    Evidence review queue, newest first by rejection or upload date.
    Rejected items carry ``days_open``.
    """
    status = None if status_filter.upper() == ALL_STATUSES else EvidenceStatus.parse(status_filter.upper())
    return await evidence_service.queue(status, year, standard, responsible_area, plant_id)


@router.get("/counts", response_model=EvidenceCountsResponse)
async def evidence_counts(
    year: Optional[int] = Query(None),
    standard: Optional[str] = Query(None),
    responsible_area: Optional[str] = Query(None),
    plant_id: Optional[str] = Query(None),
    evidence_service: EvidenceService = Depends(get_evidence_service),
):
    """Execution records by evidence status; records without evidence are not counted."""
    return await evidence_service.counts(year, standard, responsible_area, plant_id)


# ===========================================
# ONE EXECUTION RECORD
# ===========================================

@router.post("/{requirement_id}/{year}/{month}/file", response_model=EvidenceResponse)
async def upload_file_evidence(
    requirement_id: str,
    year: int,
    month: int = Path(..., description="Month index 0-11"),
    file: UploadFile = File(..., description="Evidence file (PDF, images, Office documents)"),
    uploaded_by: str = Form(...),
    evidence_service: EvidenceService = Depends(get_evidence_service),
):
    """
    Upload a file as evidence for one month.

    The month counts as executed immediately; the evidence waits in
    PENDING for review. A new upload replaces the previous evidence.
    """
    content = await file.read()
    evidence = await evidence_service.upload_file(
        requirement_id,
        year,
        month,
        content,
        file.filename or "",
        file.content_type,
        uploaded_by,
    )
    return evidence.to_document()


@router.post("/{requirement_id}/{year}/{month}/link", response_model=EvidenceResponse)
async def upload_link_evidence(
    requirement_id: str,
    year: int,
    month: int,
    payload: LinkEvidenceRequest,
    evidence_service: EvidenceService = Depends(get_evidence_service),
):
    """Submit an external link as evidence for one month."""
    evidence = await evidence_service.upload_link(
        requirement_id, year, month, payload.url, payload.uploaded_by, payload.label
    )
    return evidence.to_document()


@router.post("/{requirement_id}/{year}/{month}/approve", response_model=EvidenceResponse)
async def approve_evidence(
    requirement_id: str,
    year: int,
    month: int,
    payload: ApproveEvidenceRequest,
    evidence_service: EvidenceService = Depends(get_evidence_service),
):
    evidence = await evidence_service.approve(
        requirement_id, year, month, payload.approved_by, payload.comment
    )
    return evidence.to_document()


@router.post("/{requirement_id}/{year}/{month}/reject", response_model=EvidenceResponse)
async def reject_evidence(
    requirement_id: str,
    year: int,
    month: int,
    payload: RejectEvidenceRequest,
    evidence_service: EvidenceService = Depends(get_evidence_service),
):
    """Reject pending evidence; a reviewer comment is required."""
    evidence = await evidence_service.reject(
        requirement_id, year, month, payload.comment, payload.rejected_by
    )
    return evidence.to_document()


@router.put("/{requirement_id}/{year}/{month}/record", response_model=ExecutionRecordResponse)
async def update_execution_record(
    requirement_id: str,
    year: int,
    month: int,
    payload: ExecutionRecordUpdate,
    evidence_service: EvidenceService = Depends(get_evidence_service),
):
    """Manually set the planned/executed/delayed flags of one month."""
    record = await evidence_service.update_record(
        requirement_id, year, month, payload.planned, payload.executed, payload.delayed
    )
    return record.to_document()
