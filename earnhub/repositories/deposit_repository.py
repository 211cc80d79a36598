"""
Deposit repository.

Data access layer for Deposit model.
"""

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.deposit import Deposit
from earnhub.models.enums import DepositStatus
from earnhub.repositories.base import BaseRepository
from earnhub.utils.datetime_utils import utc_now


class DepositRepository(BaseRepository[Deposit]):
    """Deposit repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize deposit repository."""
        super().__init__(Deposit, session)

    async def get_pending(self, limit: int | None = None) -> list[Deposit]:
        """Get deposits awaiting verification, oldest first."""
        return await self.find_by(
            limit=limit, status=DepositStatus.PENDING.value
        )

    async def get_by_user(self, user_id: int) -> list[Deposit]:
        """Get all deposits of a user."""
        return await self.find_by(user_id=user_id)

    async def finish(
        self, deposit_id: int, status: DepositStatus, admin_note: str | None
    ) -> bool:
        """
        Move a pending deposit to a final status.

        Args:
            deposit_id: Deposit ID
            status: APPROVED or REJECTED
            admin_note: Optional reviewer note

        Returns:
            True if the deposit was pending and is now final
        """
        stmt = (
            update(Deposit)
            .where(
                Deposit.id == deposit_id,
                Deposit.status == DepositStatus.PENDING.value,
            )
            .values(
                status=status.value,
                admin_note=admin_note,
                processed_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
