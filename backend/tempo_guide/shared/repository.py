"""
Base repository with common CRUD operations.

Provides generic database operations for all feature repositories.
Uses SQLAlchemy async session for non-blocking database access.

Usage:
    class ProfileRepository(BaseRepository[Profile]):
        def __init__(self, db: AsyncSession):
            super().__init__(db, Profile)

        async def get_by_user_id(self, user_id: str) -> Profile | None:
            return await self.get_by(user_id=user_id)
"""

from typing import Iterable, TypeVar, Generic, Type
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base repository for database operations.

    Provides common CRUD methods that can be inherited by feature repositories.
    All methods are async for use with AsyncSession. Methods flush but never
    commit: the calling service owns the transaction boundary.
    """

    def __init__(self, db: AsyncSession, model: Type[T]):
        """
        Initialize repository.

        Args:
            db: Async database session
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model

    async def get_by(self, **kwargs) -> T | None:
        """
        Get single entity by arbitrary field values.

        Args:
            **kwargs: Field name-value pairs to filter by

        Returns:
            First matching entity or None
        """
        query = select(self.model)
        for key, value in kwargs.items():
            query = query.where(getattr(self.model, key) == value)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create(self, **kwargs) -> T:
        """
        Create new entity.

        Args:
            **kwargs: Field values for new entity

        Returns:
            Created entity with generated ID
        """
        entity = self.model(**kwargs)
        self.db.add(entity)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity

    async def update(self, entity: T, **kwargs) -> T:
        """
        Update entity fields.

        Args:
            entity: Entity to update
            **kwargs: Field values to update

        Returns:
            Updated entity
        """
        for key, value in kwargs.items():
            setattr(entity, key, value)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity

    async def delete_where(self, **kwargs) -> int:
        """
        Delete all entities matching criteria.

        Returns:
            Number of deleted rows
        """
        statement = delete(self.model)
        for key, value in kwargs.items():
            statement = statement.where(getattr(self.model, key) == value)
        result = await self.db.execute(statement)
        return result.rowcount or 0

    async def insert_in_batches(
        self,
        rows: Iterable[dict],
        batch_size: int = 50
    ) -> int:
        """
        Insert rows in fixed-size batches, flushing after each batch.

        Args:
            rows: Column value dicts
            batch_size: Rows per flush

        Returns:
            Number of inserted rows
        """
        batch: list[T] = []
        inserted = 0
        for row in rows:
            batch.append(self.model(**row))
            if len(batch) >= batch_size:
                self.db.add_all(batch)
                await self.db.flush()
                inserted += len(batch)
                batch = []
        if batch:
            self.db.add_all(batch)
            await self.db.flush()
            inserted += len(batch)
        return inserted
