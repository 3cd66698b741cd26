"""Repository for the extracted text cache."""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from grindflow.database.models import DocumentText
from grindflow.repositories.base_repository import BaseRepository


class DocumentTextRepository(BaseRepository[DocumentText]):
    """Data access for the ``documents_text`` table, keyed by document ID."""

    id_field = "document_id"

    def __init__(self, session: AsyncSession):
        super().__init__(session, DocumentText)

    async def save_text(self, document_id: UUID, **fields) -> DocumentText:
        """Insert or update the cached text forms of a document.

        Only the given columns are written, so deriving the short form
        never clobbers the raw text.
        """
        return await self.upsert("document_id", document_id=document_id, **fields)

    async def get_text(self, document_id: UUID) -> Optional[DocumentText]:
        return await self.get_by_id(document_id)
