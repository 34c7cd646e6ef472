from typing import Any, Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from rushr_messaging.database import Base

ModelType = TypeVar("ModelType", bound=Base)
PydanticType = TypeVar("PydanticType", bound=BaseModel)


class BaseRepository(Generic[ModelType, PydanticType]):
    """Generic base repository with common read/write operations.

    Repositories only flush. The calling service owns the transaction and
    decides when to commit or roll back, so that an append and its
    denormalized aggregates land together.
    """

    def __init__(self, db: AsyncSession, model_class: Any):
        self.db = db
        self.model_class = model_class

    def _select(self) -> Select:
        """Base query that refreshes rows already held by the session.

        Conditional updates run as bulk statements, so identity-mapped
        objects may be stale.
        """
        return select(self.model_class).execution_options(populate_existing=True)

    async def get_model(self, id: UUID) -> Optional[ModelType]:
        """Get a single database row by ID."""
        query = self._select().where(self.model_class.id == id)  # type: ignore
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_id(self, id: UUID) -> Optional[PydanticType]:
        """Get a single record by ID."""
        db_model = await self.get_model(id)
        return self._to_pydantic(db_model) if db_model else None

    async def add(self, db_model: ModelType) -> ModelType:
        """Stage a new row and flush it so generated values are available."""
        self.db.add(db_model)
        await self.db.flush()
        return db_model

    async def get_all(self, limit: int = 100, offset: int = 0) -> List[PydanticType]:
        """Get all records with pagination."""
        query = self._select().limit(limit).offset(offset)
        result = await self.db.execute(query)
        db_models = result.scalars().all()
        return [self._to_pydantic(db_model) for db_model in db_models]

    def to_response(self, db_model: ModelType) -> PydanticType:
        """Convert a row the caller already holds."""
        return self._to_pydantic(db_model)

    def _to_pydantic(self, db_model: ModelType) -> PydanticType:
        """Convert SQLAlchemy model to Pydantic model.

        This should be overridden in subclasses for specific conversion logic.
        """
        raise NotImplementedError
