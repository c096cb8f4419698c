"""
Seed Initial Data for the SGI Compliance Tracker

Loads the default standard definitions (ISO 9001, SG-SST, FSC), the
main plant and, optionally, requirements and users from a JSON export:

    python scripts/seed_initial_data.py
    python scripts/seed_initial_data.py --file export.json --year 2025

The export holds {"requirements": [...], "users": [...]}; requirement
documents may use the legacy browser-era shape and are normalized
before they are stored.
"""

import argparse
import asyncio
import json
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import settings
from app.database import close_db, create_engine, create_session_factory, init_db
from app.services.compliance_plan import Requirement
from app.services.data_service import PLANTS, build_data_service
from app.services.legacy_migration import normalize_legacy_document


async def seed(export_path=None, creation_year=None):
    engine = None
    session_factory = None
    if not settings.uses_local_store:
        engine = create_engine(settings)
        session_factory = create_session_factory(engine)
        await init_db(engine)

    data_service = build_data_service(settings, session_factory)

    requirements = []
    users = []
    if export_path:
        with open(export_path, "r", encoding="utf-8") as f:
            export = json.load(f)
        for doc in export.get("requirements", []):
            canonical = normalize_legacy_document(doc, settings.legacy_plan_year, settings.main_plant_id)
            requirements.append(Requirement.from_document(canonical))
        users = export.get("users", [])
        print(f"Loaded {len(requirements)} requirements and {len(users)} users from {export_path}")

    try:
        main_plant = settings.main_plant_id.upper()
        await data_service.stores[PLANTS].create(
            main_plant,
            {"name": main_plant.title(), "location": "", "is_main": True, "description": "Planta principal"},
        )
        counts = await data_service.seed_initial_data(requirements, users, creation_year=creation_year)
        print(f"Seed complete: {counts}")
    finally:
        if engine is not None:
            await close_db(engine)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the compliance tracker")
    parser.add_argument("--file", help="JSON export with requirements and users")
    parser.add_argument("--year", type=int, help="Year whose plan is generated for new requirements")
    args = parser.parse_args()
    asyncio.run(seed(args.file, args.year))
