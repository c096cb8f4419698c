"""
SGI Compliance Tracker - Requirements Router

CRUD for compliance requirements plus read-time views of their yearly
plans and calendar cells.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from app.dependencies import get_clock, get_data_service
from app.schemas.compliance import (
    CalendarResponse,
    NormalizeResponse,
    RequirementCreate,
    RequirementResponse,
    RequirementUpdate,
    YearPlanResponse,
)
from app.services.compliance_aggregator import ComplianceAggregator, calendar_cells
from app.services.compliance_plan import Requirement
from app.services.data_service import DataService
from app.services.periodicity_service import MONTH_LABELS
from app.models.compliance_enums import Periodicity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/requirements", tags=["Requirements"])


def _cell_label(start: int, end: int) -> str:
    if start == end:
        return MONTH_LABELS[start]
    return f"{MONTH_LABELS[start]}-{MONTH_LABELS[end]}"


# ===========================================
# COLLECTION
# ===========================================

@router.get("", response_model=List[RequirementResponse])
async def list_requirements(
    standard: Optional[str] = Query(None, description="Filter by standard"),
    responsible_area: Optional[str] = Query(None, description="Filter by responsible area"),
    plant_id: Optional[str] = Query(None, description="Filter by plant"),
    data_service: DataService = Depends(get_data_service),
):
    """List requirements, optionally filtered."""
    requirements = await data_service.list_requirements()
    scope = ComplianceAggregator(requirements, legacy_year=data_service.legacy_year).filter(
        standard, responsible_area, plant_id
    )
    return [r.to_document() for r in scope]


@router.post("", response_model=RequirementResponse, status_code=status.HTTP_201_CREATED)
async def create_requirement(
    payload: RequirementCreate,
    data_service: DataService = Depends(get_data_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Create a requirement.

    The plan of the creation year is expanded from the periodicity;
    other years are projected when read.
    """
    data = payload.model_dump(exclude_none=True)
    data["periodicity"] = Periodicity.parse(data["periodicity"], requirement_id=data.get("id"))
    requirement = Requirement(**data)
    created = await data_service.create_requirement(requirement, creation_year=clock().year)
    return created.to_document()


@router.post("/normalize", response_model=NormalizeResponse)
async def normalize_requirements(
    data_service: DataService = Depends(get_data_service),
):
    """Rewrite legacy-shaped requirement documents in the canonical shape."""
    return await data_service.normalize_legacy_requirements()


# ===========================================
# SINGLE REQUIREMENT
# ===========================================

@router.get("/{requirement_id}", response_model=RequirementResponse)
async def get_requirement(
    requirement_id: str,
    data_service: DataService = Depends(get_data_service),
):
    requirement = await data_service.get_requirement(requirement_id)
    return requirement.to_document()


@router.put("/{requirement_id}", response_model=RequirementResponse)
@router.patch("/{requirement_id}", response_model=RequirementResponse)
async def update_requirement(
    requirement_id: str,
    payload: RequirementUpdate,
    data_service: DataService = Depends(get_data_service),
):
    """
    Update the given fields of a requirement.

    A periodicity change regenerates only the years with nothing
    recorded; executed months and their evidence are kept.
    """
    requirement = await data_service.get_requirement(requirement_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    periodicity = changes.pop("periodicity", None)
    for name, value in changes.items():
        setattr(requirement, name, value)
    if periodicity is not None:
        requirement.change_periodicity(periodicity)
    updated = await data_service.update_requirement(requirement)
    return updated.to_document()


@router.delete("/{requirement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_requirement(
    requirement_id: str,
    data_service: DataService = Depends(get_data_service),
):
    await data_service.delete_requirement(requirement_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{requirement_id}/plans/{year}", response_model=YearPlanResponse)
async def get_year_plan(
    requirement_id: str,
    year: int,
    data_service: DataService = Depends(get_data_service),
):
    """Monthly records for a year (stored, or projected from the periodicity)."""
    requirement = await data_service.get_requirement(requirement_id)
    stored = requirement.stored_plan(year, data_service.legacy_year)
    records = requirement.plan_for_year(year, data_service.legacy_year)
    return {
        "requirement_id": requirement.id,
        "year": year,
        "stored": stored is not None,
        "historical_compliance": requirement.historical_compliance(year),
        "records": [r.to_document() for r in records],
    }


@router.get("/{requirement_id}/calendar/{year}", response_model=CalendarResponse)
async def get_calendar(
    requirement_id: str,
    year: int,
    data_service: DataService = Depends(get_data_service),
):
    """Span cells for rendering the requirement's row of the calendar grid."""
    requirement = await data_service.get_requirement(requirement_id)
    cells = calendar_cells(requirement, year, data_service.legacy_year)
    return {
        "requirement_id": requirement.id,
        "year": year,
        "periodicity": requirement.periodicity.value,
        "historical_compliance": requirement.historical_compliance(year),
        "cells": [
            {
                "start_month": cell.start_month,
                "end_month": cell.end_month,
                "col_span": cell.col_span,
                "label": _cell_label(cell.start_month, cell.end_month),
                "status": cell.status.value,
                "planned_months": cell.planned_months,
                "evidence": cell.evidence,
            }
            for cell in cells
        ],
    }
