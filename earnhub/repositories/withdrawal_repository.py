"""
Withdrawal repository.

Data access layer for WithdrawalRequest model.
"""

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.enums import WithdrawalStatus
from earnhub.models.withdrawal import WithdrawalRequest
from earnhub.repositories.base import BaseRepository
from earnhub.utils.datetime_utils import utc_now


class WithdrawalRepository(BaseRepository[WithdrawalRequest]):
    """Withdrawal request repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize withdrawal repository."""
        super().__init__(WithdrawalRequest, session)

    async def get_pending(
        self, limit: int | None = None
    ) -> list[WithdrawalRequest]:
        """Get requests awaiting payout, oldest first."""
        return await self.find_by(
            limit=limit, status=WithdrawalStatus.PENDING.value
        )

    async def finish(
        self,
        withdrawal_id: int,
        status: WithdrawalStatus,
        note: str | None,
    ) -> bool:
        """
        Move a pending request to PAID or REJECTED.

        Returns:
            True if the request was pending and is now final
        """
        stmt = (
            update(WithdrawalRequest)
            .where(
                WithdrawalRequest.id == withdrawal_id,
                WithdrawalRequest.status == WithdrawalStatus.PENDING.value,
            )
            .values(status=status.value, note=note, processed_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
