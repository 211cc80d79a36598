"""
User repository.

Data access layer for User model. Balance columns are only ever changed
with single atomic UPDATE statements (col = col + delta), never with a
read-modify-write in Python.
"""

from datetime import date
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.user import User
from earnhub.repositories.base import BaseRepository


class BalanceSnapshot(NamedTuple):
    """User balances right after an atomic update."""

    income_balance: Decimal
    personal_balance: Decimal
    invested_total: Decimal
    total_earnings: Decimal


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def get_by_referral_code(
        self, referral_code: str
    ) -> User | None:
        """
        Get user by referral code (case-insensitive, codes are stored upper).

        Args:
            referral_code: Referral code

        Returns:
            User or None
        """
        return await self.get_by(referral_code=referral_code.strip().upper())

    async def get_by_username(self, username: str) -> User | None:
        """Get user by username."""
        return await self.get_by(username=username)

    async def increment_balances(
        self,
        user_id: int,
        income: Decimal = Decimal("0"),
        personal: Decimal = Decimal("0"),
        invested: Decimal = Decimal("0"),
        earnings: Decimal = Decimal("0"),
        require_income: Decimal | None = None,
        require_personal: Decimal | None = None,
    ) -> BalanceSnapshot | None:
        """
        Atomically add deltas to a user's balance columns.

        Args:
            user_id: User ID
            income: Delta for income_balance
            personal: Delta for personal_balance
            invested: Delta for invested_total
            earnings: Delta for total_earnings
            require_income: Only apply if income_balance >= this value
            require_personal: Only apply if personal_balance >= this value

        Returns:
            Balances after the update, or None if no row matched
            (unknown user or a require_* guard failed)
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(
                income_balance=User.income_balance + income,
                personal_balance=User.personal_balance + personal,
                invested_total=User.invested_total + invested,
                total_earnings=User.total_earnings + earnings,
            )
            .returning(
                User.income_balance,
                User.personal_balance,
                User.invested_total,
                User.total_earnings,
            )
        )
        if require_income is not None:
            stmt = stmt.where(User.income_balance >= require_income)
        if require_personal is not None:
            stmt = stmt.where(User.personal_balance >= require_personal)

        result = await self.session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return BalanceSnapshot(*row)

    async def set_referrer_if_unset(
        self, user_id: int, referrer_id: int
    ) -> bool:
        """
        Set referrer_id only when it is still NULL.

        Returns:
            True if this call set the referrer, False if already set
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.referrer_id.is_(None))
            .values(referrer_id=referrer_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def raise_vip_rank(self, user_id: int, new_rank: int) -> bool:
        """
        Conditional tier write: only succeeds if the current rank is lower.

        Two racing evaluations for the same crossing both target the same
        rank, so exactly one of them sees rowcount == 1.

        Returns:
            True if the rank was raised by this call
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.vip_rank < new_rank)
            .values(vip_rank=new_rank)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def reset_daily_counters(self, user_id: int, today: date) -> bool:
        """
        Lazily zero the daily counters when the stored day is stale.

        Returns:
            True if counters were reset
        """
        stmt = (
            update(User)
            .where(
                User.id == user_id,
                (User.counters_reset_on.is_(None))
                | (User.counters_reset_on != today),
            )
            .values(
                daily_task_count=0,
                daily_video_count=0,
                counters_reset_on=today,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def take_daily_slot(
        self, user_id: int, counter: str, limit: int
    ) -> bool:
        """
        Increment a daily counter if it is still below limit.

        Args:
            user_id: User ID
            counter: "daily_task_count" or "daily_video_count"
            limit: Daily allowance

        Returns:
            True if a slot was taken
        """
        column = getattr(User, counter)
        stmt = (
            update(User)
            .where(User.id == user_id, column < limit)
            .values({counter: column + 1})
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def set_status(self, user_id: int, status: str) -> bool:
        """Set soft status; returns False for unknown users."""
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
