"""
SGI Compliance Tracker - Schemas Package

Pydantic schemas for request/response validation.
"""

from app.schemas.compliance import (
    # Evidence
    EvidenceResponse,
    LinkEvidenceRequest,
    ApproveEvidenceRequest,
    RejectEvidenceRequest,
    # Execution records
    ExecutionRecordResponse,
    ExecutionRecordUpdate,
    YearPlanResponse,
    CalendarCellResponse,
    CalendarResponse,
    # Requirements
    RequirementCreate,
    RequirementUpdate,
    RequirementResponse,
    NormalizeResponse,
    # Review queue / dashboard
    EvidenceQueueItem,
    EvidenceCountsResponse,
    GroupStatsResponse,
    AreaComplianceResponse,
    DashboardResponse,
)
from app.schemas.registry import (
    AreaCreate,
    AreaUpdate,
    AreaResponse,
    PlantCreate,
    PlantUpdate,
    PlantResponse,
    StandardUpsert,
    StandardCommentCreate,
    StandardResponse,
    UserCreate,
    UserUpdate,
    UserResponse,
    SettingsUpdate,
    SettingsResponse,
    SeedResponse,
)
