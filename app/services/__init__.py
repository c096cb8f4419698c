"""
SGI Compliance Tracker - Services Package

Compliance core (periodicity, plans, evidence lifecycle, aggregation,
legacy normalization) and its collaborators (stores, change feeds, data
service, evidence storage, websocket bridge).
"""

from app.services.compliance_aggregator import ComplianceAggregator, calendar_cells
from app.services.compliance_plan import Evidence, ExecutionRecord, Requirement, generate_plan
from app.services.data_service import DataService, build_data_service
from app.services.evidence_service import EvidenceService
from app.services.evidence_storage import EvidenceStorage
from app.services.websocket_manager import WebSocketManager

__all__ = [
    "ComplianceAggregator",
    "calendar_cells",
    "Evidence",
    "ExecutionRecord",
    "Requirement",
    "generate_plan",
    "DataService",
    "build_data_service",
    "EvidenceService",
    "EvidenceStorage",
    "WebSocketManager",
]
