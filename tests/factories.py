"""
SGI Compliance Tracker - Test Factories
"""

from datetime import datetime, timezone
from pathlib import Path

from app.config import Settings
from app.models.compliance_enums import Periodicity
from app.services.compliance_plan import Requirement, generate_plan


# Fixed "today" for evidence timestamps and dashboard reference months
FIXED_NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_settings(tmp_path: Path, backend: str = "database") -> Settings:
    return Settings(
        app_env="testing",
        persistence_backend=backend,
        database_url_async=TEST_DATABASE_URL,
        local_store_path=str(tmp_path / "store.json"),
        storage_backend="local",
        storage_local_path=str(tmp_path / "uploads"),
        max_upload_size_bytes=1024,
        legacy_plan_year=2025,
        main_plant_id="MOSQUERA",
    )


def make_requirement(**overrides) -> Requirement:
    """Requirement with sensible defaults; plans are not generated."""
    data = {
        "clause": "7.5",
        "sub_clause": "7.5.3",
        "clause_title": "Control de la información documentada",
        "standards": ["ISO 9001:2015 (Calidad)"],
        "responsible_area": "Calidad",
        "periodicity": Periodicity.QUARTERLY,
        "plant_ids": ["MOSQUERA"],
    }
    data.update(overrides)
    if isinstance(data["periodicity"], str):
        data["periodicity"] = Periodicity.parse(data["periodicity"])
    return Requirement(**data)


def with_plan(requirement: Requirement, year: int) -> Requirement:
    requirement.plans[year] = generate_plan(requirement.periodicity, year)
    return requirement
