"""Repository for AI rating metadata."""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from grindflow.database.models import DocumentMetadata
from grindflow.repositories.base_repository import BaseRepository


class DocumentMetadataRepository(BaseRepository[DocumentMetadata]):
    """Data access for the ``documents_metadata`` table, keyed by document ID."""

    id_field = "document_id"

    def __init__(self, session: AsyncSession):
        super().__init__(session, DocumentMetadata)

    async def save_rating(self, document_id: UUID, score: int, critique: str) -> DocumentMetadata:
        """Store the latest rating of a document, replacing any previous one."""
        return await self.upsert(
            "document_id",
            document_id=document_id,
            ai_rating=score,
            ai_critique=critique,
            updated_at=datetime.now(timezone.utc),
        )
