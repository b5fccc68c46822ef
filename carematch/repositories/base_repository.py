from typing import Any, Dict, Generic, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.database import Base

ModelType = TypeVar("ModelType", bound=Base)
PydanticType = TypeVar("PydanticType", bound=BaseModel)


class BaseRepository(Generic[ModelType, PydanticType]):
    """Generic base repository with common CRUD operations.

    Repositories only flush; committing belongs to the service that owns the
    transaction.
    """

    def __init__(self, db: AsyncSession, model_class: Any):
        self.db = db
        self.model_class = model_class

    async def get_by_id(
        self, id: UUID, for_update: bool = False
    ) -> Optional[PydanticType]:
        """Get a single record by ID."""
        db_model = await self._get_model(id, for_update=for_update)
        return self._to_pydantic(db_model) if db_model else None

    async def update(self, id: UUID, values: Dict[str, Any]) -> Optional[PydanticType]:
        """Update an existing record with the given column values."""
        db_model = await self._get_model(id, for_update=True)

        if not db_model:
            return None

        for field, value in values.items():
            if hasattr(db_model, field):
                setattr(db_model, field, value)

        await self.db.flush()
        return await self._reload(id)

    async def count(self, **filters: Any) -> int:
        """Count records matching simple equality filters."""
        query = select(func.count()).select_from(self.model_class)
        for field, value in filters.items():
            query = query.where(getattr(self.model_class, field) == value)
        result = await self.db.execute(query)
        return int(result.scalar_one())

    async def _get_model(self, id: UUID, for_update: bool = False) -> Optional[ModelType]:
        # populate_existing so rows changed by bulk UPDATEs are not served stale
        query = (
            select(self.model_class)
            .where(self.model_class.id == id)
            .execution_options(populate_existing=True)
        )  # type: ignore
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _insert(self, db_model: ModelType) -> PydanticType:
        """Add a new row and return it as a pydantic model."""
        self.db.add(db_model)
        await self.db.flush()
        return await self._reload(db_model.id)

    async def _reload(self, id: UUID) -> PydanticType:
        # Re-select so eager loads and server-side values are populated
        db_model = await self._get_model(id)
        if db_model is None:
            raise LookupError(f"{self.model_class.__name__} {id} vanished after flush")
        return self._to_pydantic(db_model)

    def _to_pydantic(self, db_model: ModelType) -> PydanticType:
        """Convert SQLAlchemy model to Pydantic model.

        This should be overridden in subclasses for specific conversion logic.
        """
        raise NotImplementedError
