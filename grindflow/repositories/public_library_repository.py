"""Repository for public library entries."""

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from grindflow.database.models import Document, PublicLibraryEntry
from grindflow.repositories.base_repository import BaseRepository


class PublicLibraryRepository(BaseRepository[PublicLibraryEntry]):
    """Data access for the ``public_library`` table."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, PublicLibraryEntry)

    async def list_with_documents(self, limit: int = 200) -> List[Tuple[PublicLibraryEntry, Optional[Document]]]:
        """Library entries newest first, each with its source document.

        Args:
            limit: Maximum number of rows

        Returns:
            List of ``(entry, document)`` pairs
        """
        try:
            query = (
                select(PublicLibraryEntry, Document)
                .outerjoin(Document, Document.id == PublicLibraryEntry.document_id)
                .order_by(PublicLibraryEntry.uploaded_at.desc())
                .limit(limit)
            )
            result = await self.session.execute(query)
            return [(entry, document) for entry, document in result.all()]
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing public library: {str(e)}", exc_info=True)
            raise

    async def save_entry(self, document_id: UUID, **fields) -> PublicLibraryEntry:
        """Share a document, updating the existing entry if it was shared before."""
        return await self.upsert("document_id", document_id=document_id, **fields)

    async def get_by_document_id(self, document_id: UUID) -> Optional[PublicLibraryEntry]:
        try:
            query = select(PublicLibraryEntry).where(PublicLibraryEntry.document_id == document_id)
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error retrieving library entry for {document_id}: {str(e)}", exc_info=True)
            raise
