"""
Referral repository.

Data access layer for ReferralEdge model.
"""

from typing import NamedTuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.config.constants import MAX_REFERRAL_DEPTH, REFERRAL_LEVELS
from earnhub.models.referral import ReferralEdge
from earnhub.models.user import User
from earnhub.repositories.base import BaseRepository


class AncestorLink(NamedTuple):
    """One entry of a user's ancestor chain."""

    ancestor_id: int
    level: str


class ReferralRepository(BaseRepository[ReferralEdge]):
    """Referral edge repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral repository."""
        super().__init__(ReferralEdge, session)

    async def get_ancestor_chain(
        self, user_id: int, active_only: bool = True
    ) -> list[AncestorLink]:
        """
        Get ancestors of a user ordered A..D.

        Args:
            user_id: Descendant user ID
            active_only: Skip edges marked inactive

        Returns:
            At most MAX_REFERRAL_DEPTH links, nearest first
        """
        stmt = select(ReferralEdge.ancestor_id, ReferralEdge.level).where(
            ReferralEdge.descendant_id == user_id
        )
        if active_only:
            stmt = stmt.where(ReferralEdge.is_active.is_(True))
        stmt = stmt.order_by(ReferralEdge.level).limit(MAX_REFERRAL_DEPTH)

        result = await self.session.execute(stmt)
        return [AncestorLink(row.ancestor_id, row.level) for row in result]

    async def deactivate_for_ancestor(self, ancestor_id: int) -> int:
        """
        Mark every edge where the user is the ancestor inactive.

        Args:
            ancestor_id: Ancestor user ID

        Returns:
            Number of edges changed
        """
        stmt = (
            update(ReferralEdge)
            .where(
                ReferralEdge.ancestor_id == ancestor_id,
                ReferralEdge.is_active.is_(True),
            )
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def reactivate_for_ancestor(self, ancestor_id: int) -> int:
        """Undo deactivate_for_ancestor."""
        stmt = (
            update(ReferralEdge)
            .where(
                ReferralEdge.ancestor_id == ancestor_id,
                ReferralEdge.is_active.is_(False),
            )
            .values(is_active=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def get_level_counts(self, ancestor_id: int) -> dict[str, int]:
        """
        Get team size per level in a single query.

        Args:
            ancestor_id: Ancestor user ID

        Returns:
            Dict mapping level to count {"A": 3, "B": 1, "C": 0, "D": 0}
        """
        stmt = (
            select(ReferralEdge.level, func.count(ReferralEdge.id).label("count"))
            .where(ReferralEdge.ancestor_id == ancestor_id)
            .group_by(ReferralEdge.level)
        )
        result = await self.session.execute(stmt)

        # All levels present, default 0
        level_counts = {level: 0 for level in REFERRAL_LEVELS}
        for row in result:
            level_counts[row.level] = row.count
        return level_counts

    async def get_team_page(
        self,
        ancestor_id: int,
        level: str | None,
        limit: int,
        offset: int,
    ) -> list[tuple[ReferralEdge, User]]:
        """
        Get one page of a user's team with the member rows.

        Args:
            ancestor_id: Ancestor user ID
            level: Optional level filter
            limit: Page size
            offset: Rows to skip

        Returns:
            (edge, descendant) pairs, newest first
        """
        stmt = (
            select(ReferralEdge, User)
            .join(User, User.id == ReferralEdge.descendant_id)
            .where(ReferralEdge.ancestor_id == ancestor_id)
        )
        if level:
            stmt = stmt.where(ReferralEdge.level == level)
        stmt = (
            stmt.order_by(ReferralEdge.created_at.desc(), ReferralEdge.id.desc())
            .limit(limit)
            .offset(offset)
        )

        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def count_team(self, ancestor_id: int, level: str | None) -> int:
        """Count team members, optionally for one level."""
        if level:
            return await self.count(ancestor_id=ancestor_id, level=level)
        return await self.count(ancestor_id=ancestor_id)

    async def get_referrers(self, user_id: int) -> list[tuple[ReferralEdge, User]]:
        """Get (edge, ancestor) pairs of a user ordered A..D."""
        stmt = (
            select(ReferralEdge, User)
            .join(User, User.id == ReferralEdge.ancestor_id)
            .where(ReferralEdge.descendant_id == user_id)
            .order_by(ReferralEdge.level)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]
