"""
Financial record repository.

Append-only audit log access.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.financial_record import FinancialRecord
from earnhub.repositories.base import BaseRepository


class FinancialRecordRepository(BaseRepository[FinancialRecord]):
    """Financial record repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize financial record repository."""
        super().__init__(FinancialRecord, session)

    async def get_for_user(
        self, user_id: int, record_type: str | None = None
    ) -> list[FinancialRecord]:
        """Get a user's records oldest first, optionally of one type."""
        if record_type:
            return await self.find_by(user_id=user_id, type=record_type)
        return await self.find_by(user_id=user_id)

    async def sum_for_user(self, user_id: int) -> Decimal:
        """
        Sum signed amounts of all records of a user.

        Args:
            user_id: User ID

        Returns:
            Net amount the log says the user's wallets hold
        """
        stmt = select(
            func.coalesce(func.sum(FinancialRecord.amount), Decimal("0"))
        ).where(FinancialRecord.user_id == user_id)
        result = await self.session.execute(stmt)
        return Decimal(result.scalar_one())
