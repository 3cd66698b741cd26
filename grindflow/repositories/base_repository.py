"""Generic async repository shared by the table repositories."""

from typing import Generic, TypeVar, Type, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError

from grindflow.utils.logging import get_logger

# Define a generic type for SQLAlchemy models
ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Lookup, create, upsert and delete for one mapped table.

    Writes commit immediately; callers that swallow a failed write call
    ``rollback`` so the session stays usable.
    """

    # Name of the primary key attribute used by get_by_id and delete
    id_field: str = "id"

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session
            model: The SQLAlchemy model class this repository manages
        """
        self.session = session
        self.model = model
        self.logger = LOGGER

    @property
    def _id_column(self):
        return getattr(self.model, self.id_field)

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        """Get a record by its primary key.

        Args:
            id: The UUID of the record

        Returns:
            The record if found, None otherwise
        """
        try:
            query = select(self.model).where(self._id_column == id)
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving {self.model.__name__} by ID {id}: {str(e)}",
                exc_info=True
            )
            raise

    async def create(self, **kwargs) -> ModelType:
        """Create a new record.

        Args:
            **kwargs: Fields and values for the new record

        Returns:
            The created record
        """
        try:
            instance = self.model(**kwargs)
            self.session.add(instance)
            await self.session.flush()
            await self.session.commit()
            return instance
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error creating {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise

    async def upsert(self, conflict_field: str, **values) -> ModelType:
        """Insert a record or update it when ``conflict_field`` already exists.

        Args:
            conflict_field: Unique column the conflict is detected on
            **values: Fields and values to write

        Returns:
            The inserted or updated record
        """
        try:
            stmt = pg_insert(self.model).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[conflict_field],
                set_={key: stmt.excluded[key] for key in values if key != conflict_field},
            ).returning(self.model)

            result = await self.session.execute(
                stmt, execution_options={"populate_existing": True}
            )
            instance = result.scalar_one()
            await self.session.commit()
            return instance
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error upserting {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise

    async def delete(self, id: UUID) -> bool:
        """Delete a record by ID.

        Args:
            id: The UUID of the record to delete

        Returns:
            True if deleted, False if not found
        """
        try:
            instance = await self.get_by_id(id)
            if not instance:
                return False

            await self.session.delete(instance)
            await self.session.flush()
            await self.session.commit()
            return True
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error deleting {self.model.__name__} {id}: {str(e)}",
                exc_info=True
            )
            raise

    async def rollback(self) -> None:
        """Discard the pending transaction after a failed write."""
        await self.session.rollback()
