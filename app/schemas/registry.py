"""
SGI Compliance Tracker - Registry Schemas

Pydantic schemas for areas, plants, standard definitions, users and the
general settings document.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.compliance_enums import UserRole


# ===========================================
# AREAS
# ===========================================

class AreaCreate(BaseModel):
    id: Optional[str] = Field(None, max_length=64)
    name: str = Field(..., min_length=1, max_length=120)
    description: str = ""


class AreaUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None


class AreaResponse(BaseModel):
    id: str
    name: str
    description: str = ""


# ===========================================
# PLANTS
# ===========================================

class PlantCreate(BaseModel):
    id: Optional[str] = Field(None, max_length=64, description="Plant code, e.g. MOSQUERA")
    name: str = Field(..., min_length=1, max_length=120)
    location: str = ""
    is_main: bool = False
    description: str = ""


class PlantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    location: Optional[str] = None
    is_main: Optional[bool] = None
    description: Optional[str] = None


class PlantResponse(BaseModel):
    id: str
    name: str
    location: str = ""
    is_main: bool = False
    description: str = ""


# ===========================================
# STANDARDS
# ===========================================

class StandardComment(BaseModel):
    id: str
    text: str
    author: str
    date: str


class StandardUpsert(BaseModel):
    id: Optional[str] = Field(None, max_length=64)
    type: str = Field(..., min_length=1, max_length=120)
    description: str = ""
    objective: str = ""
    certifying_body: str = ""


class StandardCommentCreate(BaseModel):
    text: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)


class StandardResponse(BaseModel):
    id: str
    type: str
    description: str = ""
    objective: str = ""
    certifying_body: str = ""
    comments: List[StandardComment] = Field(default_factory=list)


# ===========================================
# USERS
# ===========================================

class UserCreate(BaseModel):
    id: Optional[str] = Field(None, max_length=64)
    name: str = Field(..., min_length=1, max_length=120)
    email: str = Field(..., min_length=3, max_length=255)
    role: UserRole = UserRole.LEADER
    assigned_area: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)
    notifications: Dict[str, Any] = Field(default_factory=dict)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    email: Optional[str] = Field(None, min_length=3, max_length=255)
    role: Optional[UserRole] = None
    assigned_area: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)
    notifications: Optional[Dict[str, Any]] = None


class UserResponse(BaseModel):
    """User without credentials."""
    id: str
    name: str
    email: str
    role: UserRole
    assigned_area: Optional[str] = None
    notifications: Dict[str, Any] = Field(default_factory=dict)


# ===========================================
# SETTINGS / ADMIN
# ===========================================

class SettingsUpdate(BaseModel):
    company_logo: Optional[str] = Field(None, description="Logo as URL or data URI")


class SettingsResponse(BaseModel):
    company_logo: Optional[str] = None


class SeedResponse(BaseModel):
    standards: int
    requirements: int
    users: int
