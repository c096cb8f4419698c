"""
SGI Compliance Tracker - Base Model

Base model class and mixins for all SQLAlchemy models.

Every collection is keyed by an opaque string id and converts to and
from the plain documents exchanged with the persistence collaborator
(``to_document`` / ``apply_document``), so the SQL backend and the local
JSON backend hold exactly the same shapes.
"""

from datetime import datetime
from typing import Any, Dict, Tuple

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class BaseModel(Base, TimestampMixin):
    """
    Abstract base model with string primary key and timestamps.
    All models should inherit from this class.
    """

    __abstract__ = True

    # Columns mirrored one-to-one in the document form
    DOCUMENT_FIELDS: Tuple[str, ...] = ()

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )

    def to_document(self) -> Dict[str, Any]:
        doc = {"id": self.id}
        for name in self.DOCUMENT_FIELDS:
            doc[name] = getattr(self, name)
        return doc

    def apply_document(self, data: Dict[str, Any]) -> None:
        """Copy known fields from a (partial) document onto the row."""
        for name in self.DOCUMENT_FIELDS:
            if name in data:
                setattr(self, name, data[name])

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"
