"""
SGI Compliance Tracker - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from app.models.base import BaseModel, TimestampMixin
from app.models.compliance_enums import (
    Periodicity,
    EvidenceType,
    EvidenceStatus,
    SpanStatus,
    StandardType,
    UserRole,
)
from app.models.requirement import RequirementRecord
from app.models.registry import Area, Plant, StandardDefinition, User, AppSetting

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "Periodicity",
    "EvidenceType",
    "EvidenceStatus",
    "SpanStatus",
    "StandardType",
    "UserRole",
    "RequirementRecord",
    "Area",
    "Plant",
    "StandardDefinition",
    "User",
    "AppSetting",
]
