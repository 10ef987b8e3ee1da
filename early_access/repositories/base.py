from abc import ABC
from typing import Generic, TypeVar, Type, Any, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType], ABC):
    """
    Base repository class providing common read and write operations.
    """

    def __init__(self, db: AsyncSession, model: Type[ModelType]):
        self.db = db
        self.model = model

    async def create(self, obj_data: Dict[str, Any]) -> ModelType:
        """Create a new record."""
        obj = self.model(**obj_data)
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def apply(self, obj: ModelType, changes: Dict[str, Any]) -> ModelType:
        """Set attributes on a loaded record and flush them."""
        for field, value in changes.items():
            setattr(obj, field, value)
        await self.db.flush()
        return obj

    async def count(self) -> int:
        """Count total records."""
        result = await self.db.execute(
            select(func.count(self.model.id))
        )
        return result.scalar()
