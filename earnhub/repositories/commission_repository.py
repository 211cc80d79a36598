"""
Commission repository.

Data access layer for CommissionRecord model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.commission import CommissionRecord
from earnhub.repositories.base import BaseRepository


class CommissionRepository(BaseRepository[CommissionRecord]):
    """Commission record repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission repository."""
        super().__init__(CommissionRecord, session)

    async def get_for_event(self, event_id: str) -> list[CommissionRecord]:
        """Get all records of one settlement event ordered by level."""
        stmt = (
            select(CommissionRecord)
            .where(CommissionRecord.event_id == event_id)
            .order_by(CommissionRecord.level)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_key(
        self, event_id: str, beneficiary_id: int, level: str
    ) -> CommissionRecord | None:
        """Get the record for an idempotency key."""
        return await self.get_by(
            event_id=event_id, beneficiary_id=beneficiary_id, level=level
        )

    async def get_totals_by_status(
        self, beneficiary_id: int
    ) -> dict[str, Decimal]:
        """Sum commission amounts per status."""
        stmt = (
            select(
                CommissionRecord.status,
                func.coalesce(
                    func.sum(CommissionRecord.commission_amount), Decimal("0")
                ).label("total"),
            )
            .where(CommissionRecord.beneficiary_id == beneficiary_id)
            .group_by(CommissionRecord.status)
        )
        result = await self.session.execute(stmt)
        return {row.status: Decimal(row.total) for row in result}

    async def get_totals_by_type(
        self, beneficiary_id: int
    ) -> dict[str, Decimal]:
        """Sum commission amounts per commission type."""
        stmt = (
            select(
                CommissionRecord.commission_type,
                func.coalesce(
                    func.sum(CommissionRecord.commission_amount), Decimal("0")
                ).label("total"),
            )
            .where(CommissionRecord.beneficiary_id == beneficiary_id)
            .group_by(CommissionRecord.commission_type)
        )
        result = await self.session.execute(stmt)
        return {row.commission_type: Decimal(row.total) for row in result}

    async def get_counts_by_level(self, beneficiary_id: int) -> dict[str, int]:
        """Count commission records per level."""
        stmt = (
            select(
                CommissionRecord.level,
                func.count(CommissionRecord.id).label("count"),
            )
            .where(CommissionRecord.beneficiary_id == beneficiary_id)
            .group_by(CommissionRecord.level)
        )
        result = await self.session.execute(stmt)
        return {row.level: row.count for row in result}
