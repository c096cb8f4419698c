"""
SGI Compliance Tracker - Evidence File Storage

Storage collaborator for uploaded evidence files. Returns a durable URL
for the stored object; the evidence record keeps only that URL.

Supports:
- Local file storage (development), served under /uploads
- Azure Blob Storage (production)
"""

import asyncio
import logging
import mimetypes
import uuid
from enum import Enum
from pathlib import Path
from typing import Optional

import aiofiles

from app.config import Settings
from app.utils.error_handling import InvalidFileException, TransportException

logger = logging.getLogger(__name__)

LOCAL_URL_PREFIX = "/uploads"


class StorageProvider(str, Enum):
    """Storage provider types."""
    AZURE_BLOB = "azure"
    LOCAL = "local"


def sanitize_filename(filename: str) -> str:
    safe = "".join(c if c.isalnum() or c in ".-_" else "_" for c in filename or "")
    return safe.strip("._") or "evidence"


class EvidenceStorage:
    """
    Evidence file storage.

    Uses Azure Blob Storage when a connection string is configured and
    the azure backend is selected, local files otherwise.
    """

    def __init__(self, config: Settings):
        self.config = config
        self.local_storage_path = Path(config.storage_local_path)
        self.azure_connection_string = config.azure_storage_connection_string
        self.azure_container = config.azure_storage_container
        self.provider = self._determine_provider()

        if self.provider == StorageProvider.LOCAL:
            self.local_storage_path.mkdir(parents=True, exist_ok=True)

    def _determine_provider(self) -> StorageProvider:
        if self.config.storage_backend.lower() == StorageProvider.AZURE_BLOB.value:
            if not self.azure_connection_string:
                raise ValueError("azure_storage_connection_string is required for the azure storage backend")
            return StorageProvider.AZURE_BLOB
        return StorageProvider.LOCAL

    def _generate_blob_name(self, requirement_id: str, year: int, month: int, original_filename: str) -> str:
        """
        Unique blob name grouped by requirement and period.

        Format: evidence/<requirement_id>/<year>/<month 01-12>/<unique>_<filename>
        """
        file_id = uuid.uuid4().hex[:12]
        safe_requirement = sanitize_filename(requirement_id)
        return f"evidence/{safe_requirement}/{year}/{month + 1:02d}/{file_id}_{sanitize_filename(original_filename)}"

    def validate(self, content: bytes, filename: str, content_type: Optional[str]) -> str:
        """Check size and type; returns the effective content type."""
        if not filename:
            raise InvalidFileException("Evidence file must have a name")
        if not content:
            raise InvalidFileException("Evidence file is empty", details={"filename": filename})
        if len(content) > self.config.max_upload_size_bytes:
            raise InvalidFileException(
                f"Evidence file exceeds {self.config.max_upload_size_bytes} bytes",
                details={"filename": filename, "size": len(content)},
            )
        effective = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        allowed = self.config.allowed_evidence_mime_types_list
        if allowed and effective not in allowed:
            raise InvalidFileException(
                f"File type '{effective}' is not accepted as evidence",
                details={"filename": filename, "allowed": allowed},
            )
        return effective

    async def store(
        self,
        content: bytes,
        filename: str,
        content_type: Optional[str],
        requirement_id: str,
        year: int,
        month: int,
    ) -> str:
        """
        Store an evidence file.

        Returns:
            Durable URL of the stored object

        Raises:
            InvalidFileException: empty, oversized or disallowed file
            TransportException: storage backend failure
        """
        content_type = self.validate(content, filename, content_type)
        blob_name = self._generate_blob_name(requirement_id, year, month, filename)

        if self.provider == StorageProvider.AZURE_BLOB:
            url = await self._upload_to_azure(blob_name, content, content_type)
        else:
            url = await self._upload_to_local(blob_name, content)

        logger.info(f"Evidence stored: {blob_name} ({len(content)} bytes, {self.provider.value})")
        return url

    async def _upload_to_local(self, blob_name: str, content: bytes) -> str:
        file_path = self.local_storage_path / blob_name
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error(f"Local evidence upload error: {e}")
            raise TransportException("file storage", "Could not store evidence file", original_error=e)
        return f"{LOCAL_URL_PREFIX}/{blob_name}"

    def _azure_upload_sync(self, blob_name: str, content: bytes, content_type: str) -> str:
        from azure.storage.blob import BlobServiceClient, ContentSettings

        blob_service = BlobServiceClient.from_connection_string(self.azure_connection_string)
        container_client = blob_service.get_container_client(self.azure_container)
        if not container_client.exists():
            container_client.create_container()
        blob_client = container_client.get_blob_client(blob_name)
        blob_client.upload_blob(
            content,
            content_settings=ContentSettings(content_type=content_type),
            overwrite=True,
        )
        return blob_client.url

    async def _upload_to_azure(self, blob_name: str, content: bytes, content_type: str) -> str:
        from azure.core.exceptions import AzureError

        try:
            return await asyncio.to_thread(self._azure_upload_sync, blob_name, content, content_type)
        except AzureError as e:
            logger.error(f"Azure upload error: {e}")
            raise TransportException("file storage", "Could not store evidence file", original_error=e)
