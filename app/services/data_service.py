"""
SGI Compliance Tracker - Data Service

Persistence/subscription collaborator consumed by the compliance core
and the API: real-time snapshots of requirements, users, standards and
settings, plus create/update/delete operations on every collection.

The service is built explicitly from settings (``build_data_service``)
and handed to whoever needs it; there is no module-level client.
"""

import logging
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings
from app.models.compliance_enums import StandardType, UserRole
from app.models.registry import AppSetting, Area, Plant, StandardDefinition, User
from app.models.requirement import RequirementRecord
from app.services.change_feed import ChangeFeed, DataCallback, ErrorCallback
from app.services.compliance_plan import (
    DEFAULT_LEGACY_PLAN_YEAR,
    DEFAULT_MAIN_PLANT_ID,
    Requirement,
    generate_plan,
    normalize_plant_ids,
    utcnow,
)
from app.services.document_store import (
    CollectionStore,
    LocalCollectionStore,
    LocalJsonFile,
    SqlCollectionStore,
)
from app.services.legacy_migration import FIELD_ALIASES, LEGACY_EVIDENCE_KEYS, normalize_legacy_document
from app.utils.error_handling import (
    DuplicateEntryException,
    NotFoundException,
    RequirementNotFoundException,
    ValidationException,
    require_non_empty,
)
from app.utils.security import get_password_hash

logger = logging.getLogger(__name__)

REQUIREMENTS = "requirements"
USERS = "users"
AREAS = "areas"
PLANTS = "plants"
STANDARDS = "standards"
SETTINGS = "settings"

GENERAL_SETTINGS_ID = "general"

DEFAULT_STANDARDS = [
    {
        "id": "std-iso",
        "type": StandardType.ISO9001.value,
        "description": "Norma Internacional de Sistemas de Gestión de Calidad.",
        "objective": "Aumentar la satisfacción del cliente.",
        "certifying_body": "ICONTEC",
        "comments": [],
    },
    {
        "id": "std-sst",
        "type": StandardType.SGSST.value,
        "description": "Sistema de Gestión de Seguridad y Salud en el Trabajo.",
        "objective": "Prevenir lesiones y deterioro de la salud.",
        "certifying_body": "ARL / MinTrabajo",
        "comments": [],
    },
    {
        "id": "std-fsc",
        "type": StandardType.FSC.value,
        "description": "Certificación de manejo forestal responsable.",
        "objective": "Garantizar la trazabilidad de la madera.",
        "certifying_body": "FSC International",
        "comments": [],
    },
]


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _is_legacy_document(doc: Dict[str, Any]) -> bool:
    return any(key in doc for key in FIELD_ALIASES) or any(key in doc for key in LEGACY_EVIDENCE_KEYS)


def _parse_role(value: Any) -> str:
    """Role by enum name (ADMIN) or label (Administrador)."""
    if isinstance(value, UserRole):
        return value.value
    text = str(value).strip()
    if text.upper() in UserRole.__members__:
        return UserRole[text.upper()].value
    try:
        return UserRole(text).value
    except ValueError:
        raise ValidationException(
            message=f"Unknown role '{value}'",
            field="role",
            details={"allowed": [r.value for r in UserRole]},
        )


def public_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    """User document without credentials."""
    return {key: value for key, value in doc.items() if key not in ("password_hash", "password")}


class DataService:
    """
    Collections and change feeds of the compliance tracker.

    Usage:
        service = build_data_service(settings, session_factory)
        unsubscribe = await service.subscribe_to_requirements(on_data, on_error)
        await service.create_requirement(requirement)
    """

    def __init__(
        self,
        stores: Dict[str, CollectionStore],
        legacy_year: int = DEFAULT_LEGACY_PLAN_YEAR,
        main_plant_id: str = DEFAULT_MAIN_PLANT_ID,
        backend: str = "database",
    ):
        self.stores = stores
        self.legacy_year = legacy_year
        self.main_plant_id = main_plant_id
        self.backend = backend

        self.feeds = {
            REQUIREMENTS: ChangeFeed(REQUIREMENTS, self.list_requirements),
            USERS: ChangeFeed(USERS, self.list_users),
            STANDARDS: ChangeFeed(STANDARDS, self.list_standards),
            SETTINGS: ChangeFeed(SETTINGS, self._settings_snapshot),
        }

    async def _changed(self, collection: str) -> None:
        feed = self.feeds.get(collection)
        if feed is not None:
            await feed.publish()

    # ===========================================
    # SUBSCRIPTIONS (REAL-TIME UPDATES)
    # ===========================================

    async def subscribe_to_requirements(
        self,
        on_data: DataCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        return await self.feeds[REQUIREMENTS].subscribe(on_data, on_error)

    async def subscribe_to_users(
        self,
        on_data: DataCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        return await self.feeds[USERS].subscribe(on_data, on_error)

    async def subscribe_to_standards(
        self,
        on_data: DataCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        return await self.feeds[STANDARDS].subscribe(on_data, on_error)

    async def subscribe_to_settings(
        self,
        on_data: DataCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        return await self.feeds[SETTINGS].subscribe(on_data, on_error)

    # ===========================================
    # REQUIREMENTS
    # ===========================================

    def _to_requirement(self, doc: Dict[str, Any]) -> Requirement:
        if _is_legacy_document(doc):
            doc = normalize_legacy_document(doc, self.legacy_year, self.main_plant_id)
        return Requirement.from_document(doc)

    async def list_requirements(self) -> List[Requirement]:
        docs = await self.stores[REQUIREMENTS].list_all()
        return [self._to_requirement(doc) for doc in docs]

    async def get_requirement(self, requirement_id: str) -> Requirement:
        doc = await self.stores[REQUIREMENTS].get(requirement_id)
        if doc is None:
            raise RequirementNotFoundException(requirement_id)
        return self._to_requirement(doc)

    async def _check_unique(self, requirement: Requirement) -> None:
        for other in await self.list_requirements():
            if other.id != requirement.id and other.identity_key == requirement.identity_key:
                raise DuplicateEntryException(
                    "Requirement",
                    "clause/sub_clause/clause_title/responsible_area",
                    f"{requirement.clause} {requirement.sub_clause} ({requirement.responsible_area})",
                )

    def _validate(self, requirement: Requirement) -> None:
        requirement.responsible_area = require_non_empty(requirement.responsible_area, "responsible_area")
        standards = [s.strip() for s in requirement.standards if s and s.strip()]
        if not standards:
            raise ValidationException(
                message="A requirement must belong to at least one standard",
                field="standards",
            )
        requirement.standards = list(dict.fromkeys(standards))
        requirement.plant_ids = normalize_plant_ids(requirement.plant_ids, self.main_plant_id)

    async def create_requirement(
        self,
        requirement: Requirement,
        creation_year: Optional[int] = None,
    ) -> Requirement:
        """
        Store a new requirement with its creation-year plan expanded.
        Repeating the call with the same id replaces the document.
        """
        self._validate(requirement)
        await self._check_unique(requirement)

        year = creation_year or utcnow().year
        if year not in requirement.plans and requirement.stored_plan(year, self.legacy_year) is None:
            requirement.plans[year] = generate_plan(requirement.periodicity, year)

        now = utcnow()
        requirement.created_at = requirement.created_at or now
        requirement.updated_at = now

        stored = await self.stores[REQUIREMENTS].create(requirement.id, requirement.to_document())
        logger.info(f"Requirement created: {requirement.id} ({requirement.periodicity.value}, {requirement.responsible_area})")
        await self._changed(REQUIREMENTS)
        return self._to_requirement(stored)

    async def update_requirement(self, requirement: Requirement) -> Requirement:
        """Replace every field group of an existing requirement."""
        self._validate(requirement)
        await self._check_unique(requirement)
        requirement.updated_at = utcnow()
        doc = requirement.to_document()
        doc.pop("created_at", None)
        return await self.patch_requirement(requirement.id, doc)

    async def patch_requirement(self, requirement_id: str, fields: Dict[str, Any]) -> Requirement:
        """Merge only the given top-level fields into the stored requirement."""
        fields = dict(fields)
        fields.pop("id", None)
        fields.setdefault("updated_at", utcnow().isoformat())
        await self._canonicalize(requirement_id)
        try:
            stored = await self.stores[REQUIREMENTS].update(requirement_id, fields)
        except NotFoundException:
            raise RequirementNotFoundException(requirement_id)
        logger.info(f"Requirement updated: {requirement_id} ({', '.join(sorted(fields))})")
        await self._changed(REQUIREMENTS)
        return self._to_requirement(stored)

    async def _canonicalize(self, requirement_id: str) -> None:
        # Legacy keys left next to merged fields would be re-read on top of them
        doc = await self.stores[REQUIREMENTS].get(requirement_id)
        if doc is None:
            raise RequirementNotFoundException(requirement_id)
        if _is_legacy_document(doc):
            requirement = self._to_requirement(doc)
            await self.stores[REQUIREMENTS].create(requirement_id, requirement.to_document())

    async def delete_requirement(self, requirement_id: str) -> None:
        try:
            await self.stores[REQUIREMENTS].delete(requirement_id)
        except NotFoundException:
            raise RequirementNotFoundException(requirement_id)
        logger.info(f"Requirement deleted: {requirement_id}")
        await self._changed(REQUIREMENTS)

    async def normalize_legacy_requirements(self) -> Dict[str, int]:
        """Rewrite every stored requirement in the canonical shape."""
        docs = await self.stores[REQUIREMENTS].list_all()
        migrated = 0
        for doc in docs:
            if not _is_legacy_document(doc) and not doc.get("monthly_plan"):
                continue
            canonical = normalize_legacy_document(doc, self.legacy_year, self.main_plant_id)
            # Round-trip through the model to fail fast on bad periodicity
            requirement = Requirement.from_document(canonical)
            await self.stores[REQUIREMENTS].create(requirement.id, requirement.to_document())
            migrated += 1
        if migrated:
            logger.info(f"Normalized {migrated} legacy requirement documents")
            await self._changed(REQUIREMENTS)
        return {"scanned": len(docs), "migrated": migrated}

    # ===========================================
    # USERS
    # ===========================================

    async def list_users(self) -> List[Dict[str, Any]]:
        return [public_user(doc) for doc in await self.stores[USERS].list_all()]

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        doc = await self.stores[USERS].get(user_id)
        if doc is None:
            raise NotFoundException("User", user_id)
        return public_user(doc)

    async def _check_unique_field(self, collection: str, field: str, value: str, doc_id: Optional[str]) -> None:
        for doc in await self.stores[collection].list_all():
            if doc.get("id") != doc_id and str(doc.get(field, "")).strip().lower() == value.strip().lower():
                raise DuplicateEntryException(collection.rstrip("s").capitalize(), field, value)

    def _user_fields(self, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = {k: v for k, v in data.items() if k not in ("id", "password")}
        if "role" in fields and fields["role"] is not None:
            fields["role"] = _parse_role(fields["role"])
        if data.get("password"):
            fields["password_hash"] = get_password_hash(data["password"])
        return fields

    async def create_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        user_id = data.get("id") or _new_id("usr")
        require_non_empty(data.get("name"), "name")
        email = require_non_empty(data.get("email"), "email")
        await self._check_unique_field(USERS, "email", email, user_id)
        fields = self._user_fields(data)
        fields.setdefault("role", UserRole.LEADER.value)
        fields.setdefault("notifications", {})
        stored = await self.stores[USERS].create(user_id, fields)
        logger.info(f"User created: {user_id}")
        await self._changed(USERS)
        return public_user(stored)

    async def update_user(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if data.get("email"):
            await self._check_unique_field(USERS, "email", data["email"], user_id)
        try:
            stored = await self.stores[USERS].update(user_id, self._user_fields(data))
        except NotFoundException:
            raise NotFoundException("User", user_id)
        await self._changed(USERS)
        return public_user(stored)

    async def delete_user(self, user_id: str) -> None:
        try:
            await self.stores[USERS].delete(user_id)
        except NotFoundException:
            raise NotFoundException("User", user_id)
        logger.info(f"User deleted: {user_id}")
        await self._changed(USERS)

    # ===========================================
    # AREAS / PLANTS
    # ===========================================

    async def list_registry(self, collection: str) -> List[Dict[str, Any]]:
        return await self.stores[collection].list_all()

    async def create_registry_entry(self, collection: str, data: Dict[str, Any], prefix: str) -> Dict[str, Any]:
        entry_id = data.get("id") or _new_id(prefix)
        name = require_non_empty(data.get("name"), "name")
        await self._check_unique_field(collection, "name", name, entry_id)
        fields = {k: v for k, v in data.items() if k != "id"}
        fields["name"] = name
        stored = await self.stores[collection].create(entry_id, fields)
        logger.info(f"{collection}: created {entry_id} ({name})")
        return stored

    async def update_registry_entry(self, collection: str, entry_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = {k: v for k, v in data.items() if k != "id"}
        if "name" in fields:
            fields["name"] = require_non_empty(fields["name"], "name")
            await self._check_unique_field(collection, "name", fields["name"], entry_id)
        return await self.stores[collection].update(entry_id, fields)

    async def delete_registry_entry(self, collection: str, entry_id: str) -> None:
        await self.stores[collection].delete(entry_id)
        logger.info(f"{collection}: deleted {entry_id}")

    async def list_plant_ids(self) -> List[str]:
        plants = await self.stores[PLANTS].list_all()
        return [p["id"].upper() for p in plants]

    # ===========================================
    # STANDARDS
    # ===========================================

    async def list_standards(self) -> List[Dict[str, Any]]:
        return await self.stores[STANDARDS].list_all()

    async def upsert_standard(self, data: Dict[str, Any]) -> Dict[str, Any]:
        standard_id = data.get("id") or _new_id("std")
        require_non_empty(data.get("type"), "type")
        fields = {k: v for k, v in data.items() if k != "id"}
        existing = await self.stores[STANDARDS].get(standard_id)
        if existing is not None:
            fields.setdefault("comments", existing.get("comments", []))
        fields.setdefault("comments", [])
        stored = await self.stores[STANDARDS].create(standard_id, fields)
        await self._changed(STANDARDS)
        return stored

    async def add_standard_comment(self, standard_id: str, text: str, author: str) -> Dict[str, Any]:
        text = require_non_empty(text, "text")
        existing = await self.stores[STANDARDS].get(standard_id)
        if existing is None:
            raise NotFoundException("Standard", standard_id)
        comments = list(existing.get("comments") or [])
        comments.append({
            "id": _new_id("cmt"),
            "text": text,
            "author": author,
            "date": utcnow().isoformat(),
        })
        stored = await self.stores[STANDARDS].update(standard_id, {"comments": comments})
        await self._changed(STANDARDS)
        return stored

    # ===========================================
    # SETTINGS
    # ===========================================

    async def _settings_snapshot(self) -> Dict[str, Any]:
        doc = await self.stores[SETTINGS].get(GENERAL_SETTINGS_ID)
        return {"company_logo": doc.get("company_logo") if doc else None}

    async def get_settings(self) -> Dict[str, Any]:
        return await self._settings_snapshot()

    async def update_settings(self, company_logo: Optional[str]) -> Dict[str, Any]:
        await self.stores[SETTINGS].create(GENERAL_SETTINGS_ID, {"company_logo": company_logo or None})
        await self._changed(SETTINGS)
        return await self._settings_snapshot()

    # ===========================================
    # SEED DATA
    # ===========================================

    async def seed_initial_data(
        self,
        requirements: Iterable[Requirement] = (),
        users: Iterable[Dict[str, Any]] = (),
        creation_year: Optional[int] = None,
    ) -> Dict[str, int]:
        """Load default standards plus any given requirements and users."""
        logger.info("Seeding initial data...")
        counts = {"standards": 0, "requirements": 0, "users": 0}
        for standard in DEFAULT_STANDARDS:
            await self.upsert_standard(dict(standard))
            counts["standards"] += 1
        for requirement in requirements:
            await self.create_requirement(requirement, creation_year=creation_year)
            counts["requirements"] += 1
        for user in users:
            await self.create_user(dict(user))
            counts["users"] += 1
        logger.info(f"Seed complete: {counts}")
        return counts


def build_data_service(
    config: Settings,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> DataService:
    """Select the persistence backend from settings."""
    if config.uses_local_store:
        storage = LocalJsonFile(config.local_store_path)
        stores = {
            name: LocalCollectionStore(name, storage)
            for name in (REQUIREMENTS, USERS, AREAS, PLANTS, STANDARDS, SETTINGS)
        }
        backend = "local"
    else:
        if session_factory is None:
            raise ValueError("A session factory is required for the database backend")
        models = {
            REQUIREMENTS: RequirementRecord,
            USERS: User,
            AREAS: Area,
            PLANTS: Plant,
            STANDARDS: StandardDefinition,
            SETTINGS: AppSetting,
        }
        stores = {
            name: SqlCollectionStore(name, model, session_factory)
            for name, model in models.items()
        }
        backend = "database"

    logger.info(f"Persistence backend: {backend}")
    return DataService(
        stores,
        legacy_year=config.legacy_plan_year,
        main_plant_id=config.main_plant_id,
        backend=backend,
    )
