"""
SGI Compliance Tracker - Requirement Model

A compliance requirement ("activity") with its yearly execution plans.

Plans are stored as JSON keyed by year: {"2025": [12 monthly records]},
each record optionally carrying its evidence. ``monthly_plan`` keeps the
legacy single-year alias until the document is normalized.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class RequirementRecord(BaseModel):
    """Row form of a requirement document."""

    __tablename__ = "requirements"

    DOCUMENT_FIELDS = (
        "clause",
        "sub_clause",
        "clause_title",
        "description",
        "contextualization",
        "related_questions",
        "standards",
        "responsible_area",
        "plant_ids",
        "periodicity",
        "compliance_2024",
        "compliance_2025",
        "plans",
        "monthly_plan",
    )

    # Classification
    clause: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    sub_clause: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    clause_title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    contextualization: Mapped[str] = mapped_column(Text, nullable=False, default="")
    related_questions: Mapped[str] = mapped_column(Text, nullable=False, default="")

    standards: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    responsible_area: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    plant_ids: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # Stored as the enumeration label ("Mensual", "Trimestral"...)
    periodicity: Mapped[str] = mapped_column(String(20), nullable=False)

    # Legacy yearly snapshots
    compliance_2024: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    compliance_2025: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    plans: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    monthly_plan: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSON, nullable=True)

    def to_document(self) -> Dict[str, Any]:
        doc = super().to_document()
        doc["created_at"] = self.created_at.isoformat() if self.created_at else None
        doc["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return doc
