"""Document ownership, listing, upload and the extracted-text cache."""

import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from grindflow.core.config import settings
from grindflow.core.exceptions import (
    DocumentAccessDeniedError,
    DocumentNotFoundError,
    StorageError,
    ValidationError,
)
from grindflow.database.models import Document
from grindflow.repositories.document_repository import DocumentRepository
from grindflow.repositories.document_text_repository import DocumentTextRepository
from grindflow.services.pdf_extractor import extract_pdf_text_async
from grindflow.services.storage_service import StorageService
from grindflow.utils.logging import get_logger
from grindflow.utils.text import build_short_text, normalize_for_prompt

LOGGER = get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.\- ]+")


@dataclass
class DocumentTextBundle:
    """The three text forms of a document.

    ``short`` is the preview form capped at the text preview budget; the
    pipelines cut their own windows from ``normalized``.
    """

    document_id: UUID
    raw: str
    normalized: str
    short: str
    source: str  # cache | extracted


class DocumentService:
    """Service for document-level operations on behalf of a user."""

    def __init__(self, session: AsyncSession, storage_service: StorageService):
        """Initialize the document service.

        Args:
            session: SQLAlchemy async session
            storage_service: Supabase storage client
        """
        self.documents = DocumentRepository(session)
        self.texts = DocumentTextRepository(session)
        self.storage = storage_service
        self.preview_max_chars = settings.pipeline.text_preview_max_chars

    async def get_owned_document(self, document_id: UUID, user_id: str) -> Document:
        """Load a document and check the caller owns it.

        Raises:
            DocumentNotFoundError: If no such document exists
            DocumentAccessDeniedError: If it belongs to another user
        """
        document = await self.documents.get_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError("Document not found")
        if document.user_id != user_id:
            LOGGER.warning(
                "Document access denied",
                extra={"document_id": str(document_id), "user_id": user_id},
            )
            raise DocumentAccessDeniedError("Forbidden")
        return document

    async def _cache_text(self, document_id: UUID, **fields) -> bool:
        """Write text forms back to the cache; failures are logged only."""
        try:
            await self.texts.save_text(document_id, **fields)
            return True
        except SQLAlchemyError as e:
            LOGGER.warning(
                f"Text cache write failed for {document_id}: {e}",
                extra={"fields": list(fields)},
            )
            await self.texts.rollback()
            return False

    async def get_document_text(self, document: Document) -> DocumentTextBundle:
        """Cached text when present, otherwise download, extract and cache.

        Raises:
            StorageError: If the PDF cannot be downloaded
            TextExtractionError: If the PDF cannot be parsed
        """
        cached = await self.texts.get_text(document.id)
        if cached is not None and cached.text:
            normalized = cached.normalized_text or normalize_for_prompt(cached.text)
            short = cached.short_text or build_short_text(normalized, self.preview_max_chars)

            derived: Dict[str, Any] = {}
            if not cached.normalized_text:
                derived["normalized_text"] = normalized
            if not cached.short_text and short:
                derived["short_text"] = short
            if derived:
                await self._cache_text(document.id, **derived)

            return DocumentTextBundle(document.id, cached.text, normalized, short, "cache")

        LOGGER.info(f"No cached text for {document.id}, extracting from PDF")
        pdf_bytes = await self.storage.download(document.storage_path)
        raw = await extract_pdf_text_async(pdf_bytes)
        normalized = normalize_for_prompt(raw)
        short = build_short_text(normalized, self.preview_max_chars)

        await self._cache_text(
            document.id,
            text=raw,
            normalized_text=normalized,
            short_text=short,
            extracted_at=datetime.now(timezone.utc),
        )
        return DocumentTextBundle(document.id, raw, normalized, short, "extracted")

    async def get_text_status(self, document: Document) -> Dict[str, Any]:
        """Readiness of the cached text for a document.

        Returns:
            ``status`` (ready, partial or missing), ``length`` and ``short_text``
        """
        cached = await self.texts.get_text(document.id)
        if cached is None:
            return {"status": "missing", "length": 0, "short_text": ""}

        raw = cached.text or ""
        normalized = cached.normalized_text or (normalize_for_prompt(raw) if raw else "")
        short = cached.short_text or (build_short_text(normalized, self.preview_max_chars) if normalized else "")

        derived: Dict[str, Any] = {}
        if normalized and not cached.normalized_text:
            derived["normalized_text"] = normalized
        if short and not cached.short_text:
            derived["short_text"] = short
        if derived:
            await self._cache_text(document.id, **derived)

        if short:
            status = "ready"
        elif raw:
            status = "partial"
        else:
            status = "missing"
        return {"status": status, "length": len(short or raw), "short_text": short}

    async def list_documents(self, user_id: str) -> List[Dict[str, Any]]:
        """The user's documents, newest first, with a URL to open each file."""
        documents = await self.documents.list_by_user(user_id)

        rows = []
        for document in documents:
            rows.append({
                "id": str(document.id),
                "user_id": document.user_id,
                "file_name": document.file_name,
                "storage_path": document.storage_path,
                "created_at": document.created_at.isoformat() if document.created_at else None,
                "publicUrl": await self.storage.resolve_file_url(document.storage_path),
                "bucket": self.storage.bucket,
            })
        return rows

    async def delete_document(self, document_id: UUID, user_id: str) -> Dict[str, bool]:
        """Delete the stored PDF and the document row.

        A storage failure is reported but does not stop the row delete.
        """
        document = await self.get_owned_document(document_id, user_id)

        removed_from_storage = True
        try:
            await self.storage.remove([document.storage_path])
        except StorageError as e:
            removed_from_storage = False
            LOGGER.warning(f"Storage delete failed for {document.storage_path}: {e}")

        await self.documents.delete(document.id)
        LOGGER.info(
            "Document deleted",
            extra={"document_id": str(document_id), "removed_from_storage": removed_from_storage},
        )
        return {"success": True, "removedFromStorage": removed_from_storage}

    @staticmethod
    def safe_file_name(file_name: str) -> str:
        cleaned = _UNSAFE_FILENAME_CHARS.sub("_", (file_name or "").strip())
        return cleaned or "document.pdf"

    async def upload_document(
        self,
        user_id: str,
        file_name: str,
        content: bytes,
        content_type: Optional[str],
    ) -> Dict[str, Any]:
        """Store a PDF and record it for the user.

        Args:
            user_id: Owner's Supabase user ID
            file_name: Original file name
            content: PDF bytes
            content_type: MIME type sent by the client

        Returns:
            File information, URL and the outcome of the row insert

        Raises:
            ValidationError: If the file is not a PDF or is empty
            StorageError: If the upload fails
        """
        if content_type != PDF_CONTENT_TYPE and not (file_name or "").lower().endswith(".pdf"):
            raise ValidationError("Only PDF files are allowed")
        if not content:
            raise ValidationError("No file provided")

        started = time.monotonic()
        await self.storage.ensure_public_bucket()

        storage_path = f"{int(time.time() * 1000)}-{self.safe_file_name(file_name)}"
        await self.storage.upload_bytes(content, storage_path, PDF_CONTENT_TYPE)

        db_result: Dict[str, Any] = {"inserted": False}
        try:
            document = await self.documents.create(
                user_id=user_id,
                file_name=file_name,
                storage_path=storage_path,
            )
            db_result = {"inserted": True, "id": str(document.id)}
        except SQLAlchemyError as e:
            LOGGER.warning(f"Uploaded {storage_path} but failed to record document: {e}")
            await self.documents.rollback()
            db_result = {"inserted": False, "warning": "File stored but document record could not be saved"}

        return {
            "fileName": file_name,
            "path": storage_path,
            "size": len(content),
            "bucket": self.storage.bucket,
            "publicUrl": self.storage.get_public_url(storage_path),
            "db": db_result,
            "durationMs": int((time.monotonic() - started) * 1000),
        }
