"""
SGI Compliance Tracker - Data Service Tests

Runs against both persistence backends (SQL and local JSON file).
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.database import create_engine
from app.models.compliance_enums import Periodicity, UserRole
from app.services.data_service import (
    AREAS,
    REQUIREMENTS,
    DataService,
    build_data_service,
)
from app.services.evidence_storage import EvidenceStorage
from app.utils.error_handling import (
    DuplicateEntryException,
    NotFoundException,
    RequirementNotFoundException,
    TransportException,
    ValidationException,
)
from app.utils.security import verify_password
from tests.factories import make_requirement, make_settings


class TestRequirements:
    """Requirement CRUD."""

    async def test_create_generates_creation_year_plan(self, data_service: DataService):
        """Only the creation year is stored; plants are normalized."""
        req = make_requirement(plant_ids=["planta norte"])
        created = await data_service.create_requirement(req, creation_year=2025)

        assert list(created.plans) == [2025]
        assert sum(r.planned for r in created.plans[2025]) == 4
        assert created.plant_ids == ["PLANTA NORTE", "MOSQUERA"]
        assert created.created_at is not None

        fetched = await data_service.get_requirement(created.id)
        assert fetched.to_document()["plans"] == created.to_document()["plans"]

    async def test_create_is_idempotent_per_id(self, data_service: DataService):
        req = make_requirement()
        await data_service.create_requirement(req, creation_year=2025)
        await data_service.create_requirement(req, creation_year=2025)
        assert len(await data_service.list_requirements()) == 1

    async def test_missing_area_is_rejected(self, data_service: DataService):
        with pytest.raises(ValidationException) as exc_info:
            await data_service.create_requirement(make_requirement(responsible_area="  "), creation_year=2025)
        assert exc_info.value.field == "responsible_area"

    async def test_missing_standards_are_rejected(self, data_service: DataService):
        with pytest.raises(ValidationException):
            await data_service.create_requirement(make_requirement(standards=[" "]), creation_year=2025)

    async def test_duplicate_identity(self, data_service: DataService):
        """Same clause, sub-clause, title and area cannot be stored twice."""
        await data_service.create_requirement(make_requirement(), creation_year=2025)
        with pytest.raises(DuplicateEntryException) as exc_info:
            await data_service.create_requirement(make_requirement(), creation_year=2025)
        assert exc_info.value.status_code == 409

    async def test_update_with_periodicity_change(self, data_service: DataService):
        created = await data_service.create_requirement(make_requirement(), creation_year=2025)
        created.plans[2025][2].executed = True
        created.plans[2026] = created.plan_for_year(2026)
        created.change_periodicity(Periodicity.MONTHLY)
        created.description = "Nueva descripción"

        updated = await data_service.update_requirement(created)
        assert updated.periodicity == Periodicity.MONTHLY
        assert updated.description == "Nueva descripción"
        assert sum(r.planned for r in updated.plans[2025]) == 4
        assert updated.plans[2025][2].executed is True
        assert sum(r.planned for r in updated.plans[2026]) == 12

    async def test_patch_only_touches_given_fields(self, data_service: DataService):
        created = await data_service.create_requirement(make_requirement(), creation_year=2025)
        patched = await data_service.patch_requirement(created.id, {"contextualization": "Planta A"})
        assert patched.contextualization == "Planta A"
        assert patched.clause_title == created.clause_title

    async def test_patch_unknown(self, data_service: DataService):
        with pytest.raises(RequirementNotFoundException):
            await data_service.patch_requirement("ACT-NOPE", {"description": "x"})

    async def test_delete_twice(self, data_service: DataService):
        """The second delete reports not found and leaves the others alone."""
        first = await data_service.create_requirement(make_requirement(), creation_year=2025)
        second = await data_service.create_requirement(make_requirement(sub_clause="7.5.1"), creation_year=2025)

        await data_service.delete_requirement(first.id)
        with pytest.raises(RequirementNotFoundException) as exc_info:
            await data_service.delete_requirement(first.id)
        assert exc_info.value.status_code == 404

        remaining = await data_service.list_requirements()
        assert [r.id for r in remaining] == [second.id]


class TestSubscriptions:
    """Full snapshots on subscribe and after each change."""

    async def test_snapshots_follow_changes(self, data_service: DataService):
        snapshots = []
        unsubscribe = await data_service.subscribe_to_requirements(snapshots.append)
        assert snapshots == [[]]

        created = await data_service.create_requirement(make_requirement(), creation_year=2025)
        assert [r.id for r in snapshots[-1]] == [created.id]

        unsubscribe()
        unsubscribe()
        await data_service.delete_requirement(created.id)
        assert len(snapshots) == 2

    async def test_loader_failure_reaches_on_error(self, data_service: DataService):
        on_data = AsyncMock()
        on_error = AsyncMock()
        await data_service.subscribe_to_users(on_data, on_error)

        failure = TransportException("database", "connection lost")
        data_service.feeds["users"]._loader = AsyncMock(side_effect=failure)
        await data_service.create_user({"name": "Ana", "email": "ana@example.com"})

        on_data.assert_awaited_once_with([])
        on_error.assert_awaited_once_with(failure)

    async def test_failing_subscriber_does_not_block_others(self, data_service: DataService):
        received = []
        calls = []

        def flaky(snapshot):
            calls.append(snapshot)
            if len(calls) > 1:
                raise RuntimeError("render failed")

        await data_service.subscribe_to_standards(flaky)
        unsubscribe = await data_service.subscribe_to_standards(received.append)

        await data_service.upsert_standard({"id": "std-x", "type": "ISO 14001"})
        assert len(calls) == 2
        assert [s["id"] for s in received[-1]] == ["std-x"]
        unsubscribe()


class TestUsers:

    async def test_password_is_hashed_and_hidden(self, data_service: DataService):
        user = await data_service.create_user({
            "name": "Admin", "email": "admin@example.com", "role": "ADMIN", "password": "secreto1",
        })
        assert user["role"] == UserRole.ADMIN.value
        assert "password_hash" not in user
        assert "password" not in user

        stored = await data_service.stores["users"].get(user["id"])
        assert verify_password("secreto1", stored["password_hash"])
        assert all("password_hash" not in u for u in await data_service.list_users())

    async def test_default_role_and_duplicate_email(self, data_service: DataService):
        user = await data_service.create_user({"name": "Líder", "email": "lider@example.com"})
        assert user["role"] == UserRole.LEADER.value
        with pytest.raises(DuplicateEntryException):
            await data_service.create_user({"name": "Otro", "email": "LIDER@example.com"})

    async def test_unknown_role(self, data_service: DataService):
        with pytest.raises(ValidationException):
            await data_service.create_user({"name": "X", "email": "x@example.com", "role": "Auditor"})

    async def test_update_and_delete(self, data_service: DataService):
        user = await data_service.create_user({"name": "Ana", "email": "ana@example.com"})
        updated = await data_service.update_user(user["id"], {"assigned_area": "Calidad"})
        assert updated["assigned_area"] == "Calidad"
        await data_service.delete_user(user["id"])
        with pytest.raises(NotFoundException):
            await data_service.get_user(user["id"])


class TestRegistries:

    async def test_area_names_are_unique(self, data_service: DataService):
        await data_service.create_registry_entry(AREAS, {"name": "Calidad"}, "area")
        with pytest.raises(DuplicateEntryException):
            await data_service.create_registry_entry(AREAS, {"name": "calidad"}, "area")

    async def test_standard_comments_survive_upsert(self, data_service: DataService):
        await data_service.upsert_standard({"id": "std-iso", "type": "ISO 9001:2015 (Calidad)"})
        await data_service.add_standard_comment("std-iso", "Auditoría en marzo", "admin")
        standard = await data_service.upsert_standard({
            "id": "std-iso", "type": "ISO 9001:2015 (Calidad)", "objective": "Satisfacción",
        })
        assert standard["objective"] == "Satisfacción"
        assert [c["text"] for c in standard["comments"]] == ["Auditoría en marzo"]

    async def test_comment_on_unknown_standard(self, data_service: DataService):
        with pytest.raises(NotFoundException):
            await data_service.add_standard_comment("std-nope", "x", "admin")

    async def test_settings(self, data_service: DataService):
        assert await data_service.get_settings() == {"company_logo": None}
        settings = await data_service.update_settings("data:image/png;base64,AAAA")
        assert settings == {"company_logo": "data:image/png;base64,AAAA"}

    async def test_seed_counts(self, data_service: DataService):
        counts = await data_service.seed_initial_data(
            requirements=[make_requirement()],
            users=[{"name": "Admin", "email": "admin@example.com", "role": "ADMIN"}],
            creation_year=2025,
        )
        assert counts == {"standards": 3, "requirements": 1, "users": 1}
        assert len(await data_service.list_standards()) == 3


class TestLegacyDocuments:
    """Documents written by the browser-era client (local backend)."""

    @pytest.fixture
    def local_service(self, tmp_path) -> DataService:
        config = make_settings(tmp_path, backend="local")
        legacy = {
            REQUIREMENTS: {
                "ACT-OLD": {
                    "id": "ACT-OLD",
                    "clause": "6.1",
                    "subClause": "6.1.2",
                    "clauseTitle": "Riesgos",
                    "standards": ["SG-SST (Seguridad y Salud)"],
                    "responsibleArea": "SST",
                    "periodicity": "Semestral",
                    "evidenceUrl": "https://drive/matriz",
                }
            }
        }
        (tmp_path / "store.json").write_text(json.dumps(legacy), encoding="utf-8")
        return build_data_service(config)

    async def test_read_normalizes(self, local_service: DataService):
        req = await local_service.get_requirement("ACT-OLD")
        assert req.sub_clause == "6.1.2"
        assert req.plans[2025][11].evidence.url == "https://drive/matriz"

    async def test_patch_does_not_duplicate_legacy_evidence(self, local_service: DataService):
        await local_service.patch_requirement("ACT-OLD", {"description": "Matriz de riesgos"})
        req = await local_service.get_requirement("ACT-OLD")
        stored = await local_service.stores[REQUIREMENTS].get("ACT-OLD")
        assert "evidenceUrl" not in stored
        with_evidence = [r for r in req.plans[2025] if r.evidence is not None]
        assert [r.month for r in with_evidence] == [11]
        assert req.description == "Matriz de riesgos"

    async def test_normalize_pass(self, local_service: DataService):
        result = await local_service.normalize_legacy_requirements()
        assert result == {"scanned": 1, "migrated": 1}
        assert await local_service.normalize_legacy_requirements() == {"scanned": 1, "migrated": 0}


class TestBuild:

    def test_database_backend_needs_sessions(self, tmp_path):
        with pytest.raises(ValueError):
            build_data_service(make_settings(tmp_path, backend="database"))

    def test_local_backend(self, tmp_path):
        service = build_data_service(make_settings(tmp_path, backend="local"))
        assert service.backend == "local"
        assert service.legacy_year == 2025

    async def test_sqlite_engine_skips_pool_sizing(self, tmp_path):
        engine = create_engine(make_settings(tmp_path))
        assert engine.url.drivername == "sqlite+aiosqlite"
        await engine.dispose()


class TestTransportErrors:
    """Backend failures surface as TransportException (HTTP 503)."""

    async def test_database_failure(self, tmp_path):
        session_factory = MagicMock(
            side_effect=OperationalError("SELECT", {}, Exception("database is locked"))
        )
        service = build_data_service(make_settings(tmp_path), session_factory)

        with pytest.raises(TransportException) as exc_info:
            await service.list_requirements()
        assert exc_info.value.status_code == 503
        assert exc_info.value.details["service"] == "database"
        assert exc_info.value.details["collection"] == REQUIREMENTS

    async def test_corrupt_local_store(self, tmp_path):
        config = make_settings(tmp_path, backend="local")
        Path(config.local_store_path).write_text("{\"requirements\": {", encoding="utf-8")
        service = build_data_service(config)

        with pytest.raises(TransportException) as exc_info:
            await service.list_requirements()
        assert exc_info.value.status_code == 503
        assert exc_info.value.details["service"] == "local storage"

    async def test_local_evidence_write_failure(self, tmp_path):
        storage = EvidenceStorage(make_settings(tmp_path))

        with patch("app.services.evidence_storage.aiofiles.open", side_effect=OSError("No space left on device")):
            with pytest.raises(TransportException) as exc_info:
                await storage.store(b"%PDF-1.4 acta", "acta.pdf", "application/pdf", "ACT-1", 2025, 5)
        assert exc_info.value.status_code == 503
        assert exc_info.value.details["service"] == "file storage"
