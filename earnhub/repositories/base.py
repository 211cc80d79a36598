"""
Base repository.

Shared lookups and inserts for the ledger tables. Repositories never
commit: the surrounding ledger transaction owns the session.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Repository bound to one model and one transaction's session.

    Ledger rows are append-only, so there is no generic update or delete.
    State changes live in the conditional update methods of each
    concrete repository.

    Example:
        class DepositRepository(BaseRepository[Deposit]):
            def __init__(self, session: AsyncSession):
                super().__init__(Deposit, session)
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self.model = model
        self.session = session

    def _select(self, **filters: Any) -> Select:
        """SELECT of the model with equality filters applied."""
        stmt = select(self.model)
        if filters:
            stmt = stmt.filter_by(**filters)
        return stmt

    async def get_by_id(self, id: int) -> ModelType | None:
        """Get row by primary key (identity map first)."""
        return await self.session.get(self.model, id)

    async def get_by(self, **filters: Any) -> ModelType | None:
        """First row matching filters, or None."""
        result = await self.session.execute(self._select(**filters).limit(1))
        return result.scalars().first()

    async def find_by(
        self,
        limit: int | None = None,
        offset: int | None = None,
        **filters: Any,
    ) -> list[ModelType]:
        """
        Rows matching filters in insertion (id) order.

        Args:
            limit: Page size, None for all rows
            offset: Rows to skip
            **filters: Column equality filters
        """
        stmt = self._select(**filters).order_by(self.model.id)
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, **data: Any) -> ModelType:
        """
        Insert a row and flush it.

        Flushing assigns the primary key and surfaces unique-key
        violations (IntegrityError) inside the caller's transaction.
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def count(self, **filters: Any) -> int:
        """Number of rows matching filters."""
        stmt = select(func.count()).select_from(self.model)
        if filters:
            stmt = stmt.filter_by(**filters)
        return (await self.session.scalar(stmt)) or 0

    async def exists(self, **filters: Any) -> bool:
        """True if a row matches filters."""
        return await self.get_by(**filters) is not None

    async def refresh(self, entity: ModelType) -> ModelType:
        """Reload a row after a bulk UPDATE touched it."""
        await self.session.refresh(entity)
        return entity
