"""
SGI Compliance Tracker - Evidence Service

Applies evidence lifecycle actions to stored requirements: locate the
execution record, run the transition, persist the requirement's plans
as one field group and let the change feed notify subscribers.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from app.models.compliance_enums import EvidenceStatus, EvidenceType
from app.services import evidence_lifecycle
from app.services.compliance_aggregator import ComplianceAggregator
from app.services.compliance_plan import Evidence, ExecutionRecord, Requirement, utcnow
from app.services.data_service import DataService
from app.services.evidence_storage import EvidenceStorage
from app.utils.error_handling import ValidationException, require_non_empty

logger = logging.getLogger(__name__)


class EvidenceService:
    """Upload and review of evidence attached to monthly execution records."""

    def __init__(
        self,
        data_service: DataService,
        storage: Optional[EvidenceStorage] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.data = data_service
        self.storage = storage
        self.clock = clock

    async def _load_target(self, requirement_id: str, year: int, month: int):
        requirement = await self.data.get_requirement(requirement_id)
        record = evidence_lifecycle.resolve_record(requirement, year, month, self.data.legacy_year)
        return requirement, record

    async def _save_plans(self, requirement: Requirement) -> None:
        doc = requirement.to_document()
        await self.data.patch_requirement(
            requirement.id,
            {"plans": doc["plans"], "monthly_plan": doc["monthly_plan"]},
        )

    # ===========================================
    # UPLOAD
    # ===========================================

    async def upload_file(
        self,
        requirement_id: str,
        year: int,
        month: int,
        content: bytes,
        filename: str,
        content_type: Optional[str],
        uploaded_by: str,
    ) -> Evidence:
        """Store a file and attach it as new PENDING evidence."""
        if self.storage is None:
            raise ValidationException(message="File storage is not configured", field="file")
        uploaded_by = require_non_empty(uploaded_by, "uploaded_by")
        requirement, record = await self._load_target(requirement_id, year, month)

        url = await self.storage.store(content, filename, content_type, requirement.id, year, month)
        evidence = evidence_lifecycle.upload(
            record, EvidenceType.FILE, url, uploaded_by, file_name=filename, now=self.clock()
        )
        await self._save_plans(requirement)
        logger.info(f"File evidence attached: {requirement.id} {year}-{month + 1:02d} by {uploaded_by}")
        return evidence

    async def upload_link(
        self,
        requirement_id: str,
        year: int,
        month: int,
        url: str,
        uploaded_by: str,
        label: Optional[str] = None,
    ) -> Evidence:
        """Attach an external link as new PENDING evidence."""
        uploaded_by = require_non_empty(uploaded_by, "uploaded_by")
        url = require_non_empty(url, "url")
        if not url.lower().startswith(("http://", "https://")):
            raise ValidationException(message="Evidence link must be an http(s) URL", field="url")
        requirement, record = await self._load_target(requirement_id, year, month)

        evidence = evidence_lifecycle.upload(
            record, EvidenceType.LINK, url, uploaded_by, file_name=label, now=self.clock()
        )
        await self._save_plans(requirement)
        logger.info(f"Link evidence attached: {requirement.id} {year}-{month + 1:02d} by {uploaded_by}")
        return evidence

    # ===========================================
    # REVIEW
    # ===========================================

    async def approve(
        self,
        requirement_id: str,
        year: int,
        month: int,
        approved_by: str,
        comment: Optional[str] = None,
    ) -> Evidence:
        approved_by = require_non_empty(approved_by, "approved_by")
        requirement, record = await self._load_target(requirement_id, year, month)
        evidence = evidence_lifecycle.approve(
            record, approved_by, comment, now=self.clock(), requirement_id=requirement.id, year=year
        )
        await self._save_plans(requirement)
        logger.info(f"Evidence approved: {requirement.id} {year}-{month + 1:02d} by {approved_by}")
        return evidence

    async def reject(
        self,
        requirement_id: str,
        year: int,
        month: int,
        comment: str,
        rejected_by: Optional[str] = None,
    ) -> Evidence:
        requirement, record = await self._load_target(requirement_id, year, month)
        evidence = evidence_lifecycle.reject(
            record, comment, rejected_by, now=self.clock(), requirement_id=requirement.id, year=year
        )
        await self._save_plans(requirement)
        logger.info(f"Evidence rejected: {requirement.id} {year}-{month + 1:02d} by {rejected_by or 'reviewer'}")
        return evidence

    async def update_record(
        self,
        requirement_id: str,
        year: int,
        month: int,
        planned: Optional[bool] = None,
        executed: Optional[bool] = None,
        delayed: Optional[bool] = None,
    ) -> ExecutionRecord:
        """Manual override of the flags of one execution record."""
        requirement, record = await self._load_target(requirement_id, year, month)
        if planned is not None:
            record.planned = planned
        if executed is not None:
            record.executed = executed
        if delayed is not None:
            record.delayed = delayed
        await self._save_plans(requirement)
        return record

    # ===========================================
    # QUEUE
    # ===========================================

    async def _aggregator(self) -> ComplianceAggregator:
        requirements = await self.data.list_requirements()
        return ComplianceAggregator(requirements, legacy_year=self.data.legacy_year, today=self.clock())

    async def queue(
        self,
        status: Optional[EvidenceStatus] = None,
        year: Optional[int] = None,
        standard: Optional[str] = None,
        responsible_area: Optional[str] = None,
        plant_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        aggregator = await self._aggregator()
        return aggregator.evidence_queue(status, year, standard, responsible_area, plant_id)

    async def counts(
        self,
        year: Optional[int] = None,
        standard: Optional[str] = None,
        responsible_area: Optional[str] = None,
        plant_id: Optional[str] = None,
    ) -> Dict[str, int]:
        aggregator = await self._aggregator()
        return aggregator.evidence_counts(year, standard, responsible_area, plant_id).to_dict()
