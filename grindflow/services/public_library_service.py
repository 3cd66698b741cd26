"""Public library: sharing rated documents with everyone."""

from typing import Any, Dict, List, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from grindflow.core.config import settings
from grindflow.core.exceptions import DocumentNotFoundError
from grindflow.database.models import Document
from grindflow.repositories.document_repository import DocumentRepository
from grindflow.repositories.public_library_repository import PublicLibraryRepository
from grindflow.services.document_service import DocumentService
from grindflow.services.storage_service import StorageService
from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

ENTRY_FIELDS = (
    "subject",
    "unit",
    "year",
    "degree",
    "score",
    "analysis_keyword",
    "verdict",
    "rationale",
    "focus_topics",
    "repetitive_topics",
    "suggested_plan",
)


class PublicLibraryService:
    """List, share, view and download public library documents."""

    def __init__(self, session: AsyncSession, storage_service: StorageService):
        self.entries = PublicLibraryRepository(session)
        self.documents = DocumentRepository(session)
        self.document_service = DocumentService(session, storage_service)
        self.storage = storage_service

    async def list_entries(self) -> List[Dict[str, Any]]:
        """All shared documents, newest first, flattened with file details."""
        rows = []
        for entry, document in await self.entries.list_with_documents():
            row = {field: getattr(entry, field) for field in ENTRY_FIELDS}
            row.update({
                "id": str(entry.id),
                "document_id": str(entry.document_id),
                "uploaded_by": entry.uploaded_by,
                "uploaded_at": entry.uploaded_at.isoformat() if entry.uploaded_at else None,
                "file_name": document.file_name if document else None,
                "storage_path": document.storage_path if document else None,
            })
            rows.append(row)
        return rows

    async def submit(self, user_id: str, document_id: UUID, fields: Dict[str, Any]) -> str:
        """Share one of the user's documents, replacing an earlier submission.

        Args:
            user_id: Caller's Supabase user ID
            document_id: Document to share
            fields: Entry fields (subject, unit, year, rating details, ...)

        Returns:
            ID of the library entry

        Raises:
            DocumentNotFoundError: If the document does not exist
            DocumentAccessDeniedError: If the caller does not own it
        """
        await self.document_service.get_owned_document(document_id, user_id)

        values = {field: fields.get(field) for field in ENTRY_FIELDS}
        entry = await self.entries.save_entry(document_id, uploaded_by=user_id, **values)
        LOGGER.info("Document shared to public library", extra={"document_id": str(document_id)})
        return str(entry.id)

    async def _shared_document(self, document_id: UUID) -> Document:
        """Only documents that were shared can be opened anonymously."""
        entry = await self.entries.get_by_document_id(document_id)
        document = await self.documents.get_by_id(document_id) if entry else None
        if document is None:
            raise DocumentNotFoundError("Document not found")
        return document

    async def get_view_url(self, document_id: UUID) -> str:
        """One-hour signed URL for a shared document."""
        document = await self._shared_document(document_id)
        return await self.storage.create_download_url(
            document.storage_path, settings.supabase.signed_url_ttl
        )

    async def download(self, document_id: UUID) -> Tuple[bytes, str]:
        """PDF bytes and file name of a shared document."""
        document = await self._shared_document(document_id)
        content = await self.storage.download(document.storage_path)
        return content, document.file_name or "document.pdf"
