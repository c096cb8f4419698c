"""
SGI Compliance Tracker - Compliance Enumerations

Closed enumerations shared by the ORM models, schemas and services.

The stored values are the labels used by the legacy documents
("Mensual", "Trimestral", ...). ``parse`` accepts either the member
name or the stored value and fails fast on anything else.
"""

from enum import Enum
from typing import Any

from app.utils.error_handling import InvalidPeriodicityException, ValidationException


class Periodicity(str, Enum):
    """Recurrence category of a requirement."""
    MONTHLY = "Mensual"
    BIMONTHLY = "Bimestral"
    QUARTERLY = "Trimestral"
    SEMIANNUAL = "Semestral"
    ANNUAL = "Anual"

    @classmethod
    def parse(cls, value: Any, requirement_id: str = None) -> "Periodicity":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip()
            for member in cls:
                if key == member.value or key.upper() == member.name:
                    return member
        raise InvalidPeriodicityException(value, requirement_id=requirement_id)


class EvidenceType(str, Enum):
    """How evidence is delivered."""
    FILE = "FILE"
    LINK = "LINK"


class EvidenceStatus(str, Enum):
    """Review status of an evidence instance."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @classmethod
    def parse(cls, value: Any) -> "EvidenceStatus":
        # Evidence stored without a status is awaiting review
        if value is None or value == "":
            return cls.PENDING
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValidationException(
                message=f"Invalid evidence status: {value!r}",
                field="status",
            )


class SpanStatus(str, Enum):
    """Collapsed status of one checkpoint span in the calendar."""
    EXECUTED = "executed"
    DELAYED = "delayed"
    PLANNED = "planned"
    BLANK = "blank"


class StandardType(str, Enum):
    """Management-system standards shipped with the default seed."""
    ISO9001 = "ISO 9001:2015 (Calidad)"
    SGSST = "SG-SST (Seguridad y Salud)"
    FSC = "FSC (Cadena de Custodia)"


class UserRole(str, Enum):
    """Application roles."""
    ADMIN = "Administrador"
    LEADER = "Líder de Proceso"
