"""
SGI Compliance Tracker - Registry Models

Flat lookup collections referenced by requirements: organizational
areas, plants, standard definitions, users and the general settings
document.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class Area(BaseModel):
    """Organizational unit accountable for requirements."""
    __tablename__ = "areas"

    DOCUMENT_FIELDS = ("name", "description")

    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Plant(BaseModel):
    """Production site a requirement applies to."""
    __tablename__ = "plants"

    DOCUMENT_FIELDS = ("name", "location", "is_main", "description")

    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    location: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    is_main: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")


class StandardDefinition(BaseModel):
    """Management-system standard with reviewer comments."""
    __tablename__ = "standard_definitions"

    DOCUMENT_FIELDS = ("type", "description", "objective", "certifying_body", "comments")

    type: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    objective: Mapped[str] = mapped_column(Text, nullable=False, default="")
    certifying_body: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    comments: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)


class User(BaseModel):
    """Application user; authentication itself is handled elsewhere."""
    __tablename__ = "users"

    DOCUMENT_FIELDS = ("name", "email", "role", "assigned_area", "password_hash", "notifications")

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    assigned_area: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notifications: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)


class AppSetting(BaseModel):
    """Single general settings document (company logo)."""
    __tablename__ = "app_settings"

    DOCUMENT_FIELDS = ("company_logo",)

    company_logo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
