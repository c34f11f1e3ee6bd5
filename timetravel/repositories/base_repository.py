from typing import Generic, Optional, Type, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from timetravel.utils.logging import get_logger

# Define a generic type for SQLAlchemy models
ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Base repository implementing common operations on one table.

    Repositories only flush. Committing or rolling back is left to the
    caller that opened the transaction, so several repository calls can
    form one atomic unit.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session
            model: The SQLAlchemy model class this repository manages
        """
        self.session = session
        self.model = model
        self.logger = LOGGER

    async def get_by_id(self, id: int) -> Optional[ModelType]:
        """Get a row by its primary key.

        Args:
            id: Primary key of the row

        Returns:
            The row if found, None otherwise
        """
        try:
            query = select(self.model).where(self.model.id == id)
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving {self.model.__name__} by ID {id}: {str(e)}",
                exc_info=True
            )
            raise

    async def add(self, **kwargs) -> ModelType:
        """Insert a new row and flush so its primary key is populated.

        Args:
            **kwargs: Column values for the new row

        Returns:
            The inserted row
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def delete_where(self, **filters) -> int:
        """Delete every row matching equality filters.

        Returns:
            Number of deleted rows
        """
        statement = delete(self.model)
        for field, value in filters.items():
            statement = statement.where(getattr(self.model, field) == value)
        result = await self.session.execute(statement)
        return result.rowcount
