"""Repository for uploaded documents."""

from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from grindflow.database.models import Document
from grindflow.repositories.base_repository import BaseRepository


class DocumentRepository(BaseRepository[Document]):
    """Data access for the ``documents`` table."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Document)

    async def list_by_user(self, user_id: str, limit: int = 200) -> List[Document]:
        """Documents owned by a user, newest first.

        Args:
            user_id: Supabase user ID
            limit: Maximum number of rows

        Returns:
            List of documents
        """
        try:
            query = (
                select(Document)
                .where(Document.user_id == user_id)
                .order_by(Document.created_at.desc())
                .limit(limit)
            )
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing documents for user {user_id}: {str(e)}", exc_info=True)
            raise
