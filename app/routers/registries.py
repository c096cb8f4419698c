"""
SGI Compliance Tracker - Registry Router

Lookup collections referenced by requirements: areas, plants, standard
definitions (with reviewer comments), users and general settings, plus
the admin seed operation.
"""

import re
from typing import List

from fastapi import APIRouter, Depends, Response, status

from app.dependencies import get_data_service
from app.schemas.registry import (
    AreaCreate,
    AreaResponse,
    AreaUpdate,
    PlantCreate,
    PlantResponse,
    PlantUpdate,
    SeedResponse,
    SettingsResponse,
    SettingsUpdate,
    StandardCommentCreate,
    StandardResponse,
    StandardUpsert,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from app.services.data_service import AREAS, PLANTS, DataService

router = APIRouter(prefix="/api/v1", tags=["Registries"])


def plant_code(name: str) -> str:
    """Plant id derived from its name: MOSQUERA, PLANTA_NORTE..."""
    return re.sub(r"[^A-Z0-9]+", "_", name.strip().upper()).strip("_")


# ===========================================
# AREAS
# ===========================================

@router.get("/areas", response_model=List[AreaResponse])
async def list_areas(data_service: DataService = Depends(get_data_service)):
    return await data_service.list_registry(AREAS)


@router.post("/areas", response_model=AreaResponse, status_code=status.HTTP_201_CREATED)
async def create_area(payload: AreaCreate, data_service: DataService = Depends(get_data_service)):
    return await data_service.create_registry_entry(AREAS, payload.model_dump(exclude_none=True), prefix="area")


@router.put("/areas/{area_id}", response_model=AreaResponse)
async def update_area(area_id: str, payload: AreaUpdate, data_service: DataService = Depends(get_data_service)):
    return await data_service.update_registry_entry(AREAS, area_id, payload.model_dump(exclude_none=True))


@router.delete("/areas/{area_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_area(area_id: str, data_service: DataService = Depends(get_data_service)):
    await data_service.delete_registry_entry(AREAS, area_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ===========================================
# PLANTS
# ===========================================

@router.get("/plants", response_model=List[PlantResponse])
async def list_plants(data_service: DataService = Depends(get_data_service)):
    return await data_service.list_registry(PLANTS)


@router.post("/plants", response_model=PlantResponse, status_code=status.HTTP_201_CREATED)
async def create_plant(payload: PlantCreate, data_service: DataService = Depends(get_data_service)):
    """Create a plant; its id is the upper-cased code used in requirement plant lists."""
    data = payload.model_dump(exclude_none=True)
    data["id"] = plant_code(data.get("id") or data["name"])
    return await data_service.create_registry_entry(PLANTS, data, prefix="plant")


@router.put("/plants/{plant_id}", response_model=PlantResponse)
async def update_plant(plant_id: str, payload: PlantUpdate, data_service: DataService = Depends(get_data_service)):
    return await data_service.update_registry_entry(PLANTS, plant_id, payload.model_dump(exclude_none=True))


@router.delete("/plants/{plant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plant(plant_id: str, data_service: DataService = Depends(get_data_service)):
    await data_service.delete_registry_entry(PLANTS, plant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ===========================================
# STANDARDS
# ===========================================

@router.get("/standards", response_model=List[StandardResponse])
async def list_standards(data_service: DataService = Depends(get_data_service)):
    return await data_service.list_standards()


@router.put("/standards", response_model=StandardResponse)
async def upsert_standard(payload: StandardUpsert, data_service: DataService = Depends(get_data_service)):
    """Create or replace a standard definition; existing comments are kept."""
    return await data_service.upsert_standard(payload.model_dump(exclude_none=True))


@router.post("/standards/{standard_id}/comments", response_model=StandardResponse, status_code=status.HTTP_201_CREATED)
async def add_standard_comment(
    standard_id: str,
    payload: StandardCommentCreate,
    data_service: DataService = Depends(get_data_service),
):
    return await data_service.add_standard_comment(standard_id, payload.text, payload.author)


# ===========================================
# USERS
# ===========================================

@router.get("/users", response_model=List[UserResponse])
async def list_users(data_service: DataService = Depends(get_data_service)):
    return await data_service.list_users()


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreate, data_service: DataService = Depends(get_data_service)):
    return await data_service.create_user(payload.model_dump(exclude_none=True, mode="json"))


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, data_service: DataService = Depends(get_data_service)):
    return await data_service.get_user(user_id)


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(user_id: str, payload: UserUpdate, data_service: DataService = Depends(get_data_service)):
    return await data_service.update_user(user_id, payload.model_dump(exclude_none=True, mode="json"))


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: str, data_service: DataService = Depends(get_data_service)):
    await data_service.delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ===========================================
# SETTINGS / ADMIN
# ===========================================

@router.get("/settings", response_model=SettingsResponse)
async def get_settings(data_service: DataService = Depends(get_data_service)):
    return await data_service.get_settings()


@router.put("/settings", response_model=SettingsResponse)
async def update_settings(payload: SettingsUpdate, data_service: DataService = Depends(get_data_service)):
    return await data_service.update_settings(payload.company_logo)


@router.post("/admin/seed", response_model=SeedResponse)
async def seed_initial_data(data_service: DataService = Depends(get_data_service)):
    """Load the default standard definitions (ISO 9001, SG-SST, FSC)."""
    return await data_service.seed_initial_data()
