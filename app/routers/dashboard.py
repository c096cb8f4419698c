"""
SGI Compliance Tracker - Dashboard Router

Compliance dashboard: overall and grouped compliance, monthly
planned-vs-executed series, critical checkpoints and evidence totals.
"""

from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_clock, get_data_service
from app.schemas.compliance import AreaComplianceResponse, DashboardResponse
from app.services.compliance_aggregator import ComplianceAggregator
from app.services.data_service import DataService

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])


async def _aggregator(data_service: DataService, clock: Callable[[], datetime]) -> ComplianceAggregator:
    requirements = await data_service.list_requirements()
    return ComplianceAggregator(requirements, legacy_year=data_service.legacy_year, today=clock())


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    year: Optional[int] = Query(None, description="Defaults to the current year"),
    standard: Optional[str] = Query(None),
    responsible_area: Optional[str] = Query(None),
    plant_id: Optional[str] = Query(None),
    data_service: DataService = Depends(get_data_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Dashboard for one year and filter scope.

    A year past the last year with recorded actuals is reported as
    projected: planned checkpoints only, compliance not applicable.
    """
    aggregator = await _aggregator(data_service, clock)
    year = year or aggregator.today.year
    plants = await data_service.list_plant_ids()
    result = aggregator.dashboard(year, standard, responsible_area, plant_id, plants=plants or None)
    result["filters"] = {
        "standard": standard,
        "responsible_area": responsible_area,
        "plant_id": plant_id,
    }
    return result


@router.get("/areas", response_model=AreaComplianceResponse)
async def get_area_compliance(
    year: Optional[int] = Query(None, description="Defaults to the current year"),
    standard: Optional[str] = Query(None),
    plant_id: Optional[str] = Query(None),
    data_service: DataService = Depends(get_data_service),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Compliance percentage per responsible area."""
    aggregator = await _aggregator(data_service, clock)
    return aggregator.area_compliance(year or aggregator.today.year, standard, None, plant_id)
