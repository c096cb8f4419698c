"""
SGI Compliance Tracker - Document Stores

Collection-level persistence used by the data service. Two backends
hold the same document shapes:

- SqlCollectionStore: one SQLAlchemy model per collection
- LocalCollectionStore: one JSON file shared by all collections

Semantics are last-write-wins: ``create`` replaces the whole document
(safe to retry with the same id), ``update`` merges the given fields
into the stored document, ``delete`` removes it. ``update`` and
``delete`` of a missing id raise NotFoundException.

The local backend serializes writers of one process with an asyncio
lock; several processes sharing the file overwrite each other (the
last flush wins).
"""

import asyncio
import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

import aiofiles
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.base import BaseModel
from app.utils.error_handling import NotFoundException, TransportException

logger = logging.getLogger(__name__)


class CollectionStore(ABC):
    """Persistence contract for one collection of documents."""

    name: str

    @abstractmethod
    async def list_all(self) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def create(self, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def update(self, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def delete(self, doc_id: str) -> None:
        ...


# ===========================================
# SQL BACKEND
# ===========================================

class SqlCollectionStore(CollectionStore):
    """Collection backed by an ORM model."""

    def __init__(
        self,
        name: str,
        model: Type[BaseModel],
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self.name = name
        self.model = model
        self.session_factory = session_factory

    def _transport_error(self, action: str, exc: Exception) -> TransportException:
        logger.error(f"{self.name}: {action} failed: {exc}")
        return TransportException(
            service_name="database",
            message=f"Could not {action} {self.name}. Please try again.",
            original_error=exc,
            details={"collection": self.name},
        )

    async def list_all(self) -> List[Dict[str, Any]]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(self.model).order_by(self.model.id))
                return [row.to_document() for row in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise self._transport_error("list", exc)

    async def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            async with self.session_factory() as session:
                row = await session.get(self.model, doc_id)
                return row.to_document() if row else None
        except SQLAlchemyError as exc:
            raise self._transport_error("read", exc)

    async def create(self, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with self.session_factory() as session:
                row = await session.get(self.model, doc_id)
                if row is None:
                    row = self.model(id=doc_id)
                    session.add(row)
                else:
                    # Whole-document replace: reset fields absent from data
                    for name in self.model.DOCUMENT_FIELDS:
                        column = self.model.__table__.columns[name]
                        if name not in data and column.nullable:
                            setattr(row, name, None)
                row.apply_document(data)
                await session.commit()
                await session.refresh(row)
                return row.to_document()
        except SQLAlchemyError as exc:
            raise self._transport_error("create", exc)

    async def update(self, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with self.session_factory() as session:
                row = await session.get(self.model, doc_id)
                if row is None:
                    raise NotFoundException(self.name, doc_id)
                row.apply_document(data)
                await session.commit()
                await session.refresh(row)
                return row.to_document()
        except SQLAlchemyError as exc:
            raise self._transport_error("update", exc)

    async def delete(self, doc_id: str) -> None:
        try:
            async with self.session_factory() as session:
                row = await session.get(self.model, doc_id)
                if row is None:
                    raise NotFoundException(self.name, doc_id)
                await session.delete(row)
                await session.commit()
        except SQLAlchemyError as exc:
            raise self._transport_error("delete", exc)


# ===========================================
# LOCAL JSON BACKEND
# ===========================================

class LocalJsonFile:
    """
    The JSON file behind all local collections:
    {"requirements": {"<id>": {...}}, "users": {...}, ...}
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self.lock = asyncio.Lock()

    async def read(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                content = await f.read()
        except OSError as exc:
            raise TransportException("local storage", f"Could not read {self.path}", original_error=exc)
        if not content.strip():
            return {}
        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            raise TransportException("local storage", f"Corrupt local store {self.path}", original_error=exc)

    async def write(self, data: Dict[str, Dict[str, Any]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(data, ensure_ascii=False, indent=2, default=str))
            tmp_path.replace(self.path)
        except OSError as exc:
            raise TransportException("local storage", f"Could not write {self.path}", original_error=exc)


class LocalCollectionStore(CollectionStore):
    """Collection kept in the shared local JSON file."""

    def __init__(self, name: str, storage: LocalJsonFile):
        self.name = name
        self.storage = storage

    async def list_all(self) -> List[Dict[str, Any]]:
        data = await self.storage.read()
        collection = data.get(self.name, {})
        return [copy.deepcopy(collection[key]) for key in sorted(collection)]

    async def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        data = await self.storage.read()
        doc = data.get(self.name, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def create(self, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        async with self.storage.lock:
            content = await self.storage.read()
            doc = copy.deepcopy(data)
            doc["id"] = doc_id
            content.setdefault(self.name, {})[doc_id] = doc
            await self.storage.write(content)
            return copy.deepcopy(doc)

    async def update(self, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        async with self.storage.lock:
            content = await self.storage.read()
            collection = content.setdefault(self.name, {})
            if doc_id not in collection:
                raise NotFoundException(self.name, doc_id)
            collection[doc_id].update(copy.deepcopy(data))
            collection[doc_id]["id"] = doc_id
            await self.storage.write(content)
            return copy.deepcopy(collection[doc_id])

    async def delete(self, doc_id: str) -> None:
        async with self.storage.lock:
            content = await self.storage.read()
            collection = content.setdefault(self.name, {})
            if doc_id not in collection:
                raise NotFoundException(self.name, doc_id)
            del collection[doc_id]
            await self.storage.write(content)
