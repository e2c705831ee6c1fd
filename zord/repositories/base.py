"""
Base Repository

Generic base class for all repositories.
Provides common database operations.
"""

from typing import Generic, TypeVar, Type, Optional, List, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from zord.models.base import BaseModel

ModelType = TypeVar("ModelType", bound=BaseModel)

class BaseRepository(Generic[ModelType]):
    """
    Base repository class with common CRUD operations.

    All repositories should inherit from this class.
    """
    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    # -----------------------------
    # Get Element By id
    # -----------------------------
    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        """Get a record by ID."""
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.unique().scalar_one_or_none()

    # -----------------------------
    # Create Single Record
    # -----------------------------
    async def create(self, **kwargs) -> ModelType:
        """Create a new record and commit the session."""
        instance = self.model(**kwargs)
        self.db.add(instance)
        await self.db.commit()
        await self.db.refresh(instance)
        return instance

    # -----------------------------
    # Update record
    # -----------------------------
    async def update(self, id: Any, **kwargs) -> Optional[ModelType]:
        """Update a record by ID."""
        instance = await self.get_by_id(id)
        if not instance:
            return None

        for key, value in kwargs.items():
            setattr(instance, key, value)

        await self.db.commit()
        await self.db.refresh(instance)
        return instance

    # -----------------------------
    # Paginated listing
    # -----------------------------
    async def _paginate(self, query, page: int, limit: int) -> List[Any]:
        """Apply page/limit (1-based page) to a select and return scalars."""
        result = await self.db.execute(
            query.offset((page - 1) * limit).limit(limit)
        )
        return list(result.unique().scalars().all())

    async def _count(self, query) -> int:
        """Count rows produced by a select."""
        result = await self.db.execute(
            select(func.count()).select_from(query.order_by(None).subquery())
        )
        return result.scalar() or 0
