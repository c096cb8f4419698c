"""
SGI Compliance Tracker - FastAPI Dependencies

Shared dependencies resolving the collaborators built in the
application lifespan (kept on ``app.state``).

Authentication is handled by the hosting platform; actor names are
supplied by the caller on each evidence action.
"""

from datetime import datetime
from typing import Callable

from fastapi import Depends, Request

from app.config import Settings
from app.services.compliance_plan import utcnow
from app.services.data_service import DataService
from app.services.evidence_service import EvidenceService
from app.services.evidence_storage import EvidenceStorage


def get_app_settings(request: Request) -> Settings:
    """Settings the application was built with."""
    return request.app.state.settings


def get_data_service(request: Request) -> DataService:
    return request.app.state.data_service


def get_evidence_storage(request: Request) -> EvidenceStorage:
    return request.app.state.evidence_storage


def get_clock(request: Request) -> Callable[[], datetime]:
    """Clock used for evidence timestamps and the dashboard reference date."""
    return getattr(request.app.state, "clock", utcnow)


def get_evidence_service(
    data_service: DataService = Depends(get_data_service),
    storage: EvidenceStorage = Depends(get_evidence_storage),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> EvidenceService:
    return EvidenceService(data_service, storage, clock)
