"""
SGI Compliance Tracker - Compliance Schemas

Pydantic schemas for requirements, execution records and evidence.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ===========================================
# EVIDENCE
# ===========================================

class EvidenceResponse(BaseModel):
    """Evidence attached to one execution record."""
    type: str = Field(..., description="FILE or LINK")
    url: str
    file_name: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    status: str = Field("PENDING", description="PENDING, APPROVED or REJECTED")
    admin_comment: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_date: Optional[datetime] = None
    rejected_by: Optional[str] = None


class LinkEvidenceRequest(BaseModel):
    """External link submitted as evidence."""
    url: str = Field(..., min_length=1)
    uploaded_by: str = Field(..., min_length=1)
    label: Optional[str] = Field(None, max_length=255)


class ApproveEvidenceRequest(BaseModel):
    approved_by: str = Field(..., min_length=1)
    comment: Optional[str] = None


class RejectEvidenceRequest(BaseModel):
    comment: str = Field(..., description="Reviewer comment (required)")
    rejected_by: Optional[str] = None


# ===========================================
# EXECUTION RECORDS
# ===========================================

class ExecutionRecordResponse(BaseModel):
    """Planned/executed/delayed state of one month."""
    month: int = Field(..., ge=0, le=11)
    planned: bool = False
    executed: bool = False
    delayed: bool = False
    evidence: Optional[EvidenceResponse] = None


class ExecutionRecordUpdate(BaseModel):
    """Manual override of the flags of one month."""
    planned: Optional[bool] = None
    executed: Optional[bool] = None
    delayed: Optional[bool] = None


class YearPlanResponse(BaseModel):
    """A requirement's plan for one year."""
    requirement_id: str
    year: int
    stored: bool = Field(..., description="False when projected from the periodicity")
    historical_compliance: bool
    records: List[ExecutionRecordResponse]


class CalendarCellResponse(BaseModel):
    """One span cell of the calendar grid."""
    start_month: int
    end_month: int
    col_span: int
    label: str = Field(..., description="Month label or range, e.g. Ene-Mar")
    status: str = Field(..., description="executed, delayed, planned or blank")
    planned_months: List[int] = Field(default_factory=list)
    evidence: Optional[EvidenceResponse] = None


class CalendarResponse(BaseModel):
    requirement_id: str
    year: int
    periodicity: str
    historical_compliance: bool
    cells: List[CalendarCellResponse]


# ===========================================
# REQUIREMENTS
# ===========================================

class RequirementBase(BaseModel):
    clause: str = Field(..., min_length=1, max_length=50)
    sub_clause: str = Field("", max_length=50)
    clause_title: str = Field("", max_length=255)
    description: str = ""
    contextualization: str = ""
    related_questions: str = ""
    standards: List[str] = Field(default_factory=list)
    responsible_area: str = Field(..., max_length=120)
    plant_ids: List[str] = Field(default_factory=list)
    periodicity: str = Field(..., description="Mensual, Bimestral, Trimestral, Semestral or Anual")
    compliance_2024: bool = False
    compliance_2025: bool = False


class RequirementCreate(RequirementBase):
    """Schema for creating a requirement."""
    id: Optional[str] = Field(None, max_length=64)


class RequirementUpdate(BaseModel):
    """Schema for updating a requirement; only given fields change."""
    clause: Optional[str] = Field(None, min_length=1, max_length=50)
    sub_clause: Optional[str] = Field(None, max_length=50)
    clause_title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    contextualization: Optional[str] = None
    related_questions: Optional[str] = None
    standards: Optional[List[str]] = None
    responsible_area: Optional[str] = Field(None, max_length=120)
    plant_ids: Optional[List[str]] = None
    periodicity: Optional[str] = None
    compliance_2024: Optional[bool] = None
    compliance_2025: Optional[bool] = None


class RequirementResponse(RequirementBase):
    """Requirement document as stored."""
    id: str
    plans: Dict[str, List[ExecutionRecordResponse]] = Field(default_factory=dict)
    monthly_plan: Optional[List[ExecutionRecordResponse]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NormalizeResponse(BaseModel):
    scanned: int
    migrated: int


# ===========================================
# REVIEW QUEUE / DASHBOARD
# ===========================================

class EvidenceQueueItem(BaseModel):
    """Evidence item listed for review."""
    requirement_id: str
    clause: str
    sub_clause: str
    clause_title: str
    responsible_area: str
    standards: List[str]
    year: int
    month: int
    month_label: Optional[str] = None
    status: str
    days_open: Optional[int] = None
    evidence: EvidenceResponse


class EvidenceCountsResponse(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class GroupStatsResponse(BaseModel):
    """Compliance of one area, standard or plant."""
    name: str
    total_activities: int
    completed_activities: int
    compliance_percentage: Optional[float] = None
    previous_compliance: Optional[float] = None
    deterioration: Optional[float] = None


class PlanIssueResponse(BaseModel):
    requirement_id: Optional[str] = None
    year: int
    month_count: int
    message: str


class MonthlyPoint(BaseModel):
    month: str
    plan: int
    real: int


class AreaComplianceResponse(BaseModel):
    year: int
    projected: bool
    status: str = Field(..., description="actual or not_applicable")
    areas: List[GroupStatsResponse]
    issues: List[PlanIssueResponse] = Field(default_factory=list)


class DashboardResponse(BaseModel):
    """Compliance dashboard for one year and filter scope."""
    year: int
    projected: bool
    status: str
    overall_compliance: Optional[float] = None
    previous_compliance: Optional[float] = None
    deterioration: Optional[float] = None
    total_activities: int
    completed_activities: int
    planned_checkpoints: int
    critical_count: int
    evidence_counts: EvidenceCountsResponse
    evidence_total: str = Field(..., description="approved/planned")
    areas: List[GroupStatsResponse]
    standards: List[GroupStatsResponse]
    plants: List[GroupStatsResponse]
    monthly: List[MonthlyPoint]
    issues: List[PlanIssueResponse] = Field(default_factory=list)
    filters: Dict[str, Any] = Field(default_factory=dict)
