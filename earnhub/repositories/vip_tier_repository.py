"""
VIP tier repository.

Read-only access to the vip_tiers reference table.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.vip_tier import VipTier
from earnhub.repositories.base import BaseRepository


class VipTierRepository(BaseRepository[VipTier]):
    """VIP tier repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize VIP tier repository."""
        super().__init__(VipTier, session)

    async def get_by_rank(self, rank: int) -> VipTier | None:
        """
        Get active tier by rank.

        Args:
            rank: Tier rank (0 has no row)

        Returns:
            VipTier or None
        """
        stmt = select(VipTier).where(
            VipTier.rank == rank, VipTier.is_active.is_(True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_highest_affordable(
        self, invested_total: Decimal
    ) -> VipTier | None:
        """
        Get the highest active tier whose threshold is covered.

        Exact threshold matches are eligible.

        Args:
            invested_total: Cumulative investment

        Returns:
            VipTier or None if no threshold is reached
        """
        stmt = (
            select(VipTier)
            .where(
                VipTier.is_active.is_(True),
                VipTier.investment_threshold <= invested_total,
            )
            .order_by(VipTier.rank.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()
