"""
Base repository with generic CRUD operations.

Repositories are stateless: every method is a classmethod that receives the
request's AsyncSession, so nothing is shared between requests.
"""
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository providing common CRUD operations.

    Usage:
        class CustomerRepository(BaseRepository[Customer]):
            model = Customer
    """

    model: Type[ModelType] = None

    @classmethod
    def _apply_filters(cls, stmt, filters: Optional[Dict[str, Any]]):
        if filters:
            for field, value in filters.items():
                stmt = stmt.where(getattr(cls.model, field) == value)
        return stmt

    @classmethod
    async def find_by_id(cls, db: AsyncSession, id_value: Any) -> Optional[ModelType]:
        """
        Find a single record by primary key.

        Args:
            db: Database session
            id_value: The ID value to search for

        Returns:
            Model instance or None if not found
        """
        stmt = select(cls.model).where(cls.model.id == id_value)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @classmethod
    async def find_one(
        cls,
        db: AsyncSession,
        *,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Optional[ModelType]:
        """Find a single record matching all field:value filters."""
        stmt = cls._apply_filters(select(cls.model), filters)
        result = await db.execute(stmt)
        return result.scalars().first()

    @classmethod
    async def find_all(
        cls,
        db: AsyncSession,
        *,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Any] = None,
        limit: Optional[int] = None,
    ) -> List[ModelType]:
        """
        Find all records matching filters.

        Args:
            db: Database session
            filters: Dictionary of field:value filters
            order_by: Column (or tuple of columns) to order by
            limit: Maximum number of records

        Returns:
            List of model instances
        """
        stmt = cls._apply_filters(select(cls.model), filters)

        if order_by is not None:
            if isinstance(order_by, (list, tuple)):
                stmt = stmt.order_by(*order_by)
            else:
                stmt = stmt.order_by(order_by)

        if limit:
            stmt = stmt.limit(limit)

        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    async def count(
        cls,
        db: AsyncSession,
        *,
        filters: Optional[Dict[str, Any]] = None,
    ) -> int:
        stmt = cls._apply_filters(select(func.count(cls.model.id)), filters)
        result = await db.execute(stmt)
        return result.scalar() or 0

    @classmethod
    async def create(
        cls,
        db: AsyncSession,
        *,
        obj_in: Dict[str, Any],
        commit: bool = True,
    ) -> ModelType:
        """
        Create a new record.

        Args:
            db: Database session
            obj_in: Dictionary of field values
            commit: Whether to commit immediately (flush otherwise)

        Returns:
            Created model instance
        """
        db_obj = cls.model(**obj_in)
        db.add(db_obj)

        if commit:
            await db.commit()
            await db.refresh(db_obj)
        else:
            await db.flush()

        return db_obj

    @classmethod
    async def update(
        cls,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: Dict[str, Any],
        commit: bool = True,
    ) -> ModelType:
        """Apply field values to an already-loaded record."""
        for field, value in obj_in.items():
            setattr(db_obj, field, value)
        db.add(db_obj)

        if commit:
            await db.commit()
            await db.refresh(db_obj)
        else:
            await db.flush()

        return db_obj

    @classmethod
    async def delete(cls, db: AsyncSession, *, db_obj: ModelType, commit: bool = True) -> None:
        await db.delete(db_obj)
        if commit:
            await db.commit()
        else:
            await db.flush()

    @classmethod
    async def exists(cls, db: AsyncSession, *, filters: Dict[str, Any]) -> bool:
        """Check if a record exists matching filters."""
        return await cls.count(db, filters=filters) > 0
