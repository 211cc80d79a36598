"""
Task service.

Daily tasks pay the tier's task reward to the user's income wallet.
Task rewards never produce referral commission.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from earnhub.config.settings import settings
from earnhub.models.activity import TaskCompletion
from earnhub.models.enums import FinancialRecordType
from earnhub.services.base_service import BaseService
from earnhub.services.ledger.store import BalanceDelta, LedgerTransaction
from earnhub.utils.datetime_utils import utc_today
from earnhub.utils.exceptions import (
    AlreadyCompleted,
    DailyLimitReached,
    OperationError,
)


class TaskService(BaseService):
    """Daily task rewards."""

    async def complete_task(self, user_id: int, task_id: str) -> TaskCompletion:
        """
        Record a completed task and credit its reward.

        Args:
            user_id: User ID
            task_id: Task identifier

        Returns:
            TaskCompletion

        Raises:
            OperationError: User is not active
            AlreadyCompleted: Task already completed today
            DailyLimitReached: No task allowance left today
        """
        today = utc_today()

        async def _complete(tx: LedgerTransaction) -> TaskCompletion:
            return await self._complete(tx, user_id, task_id, today)

        try:
            completion = await self.run(_complete)
        except IntegrityError as e:
            raise AlreadyCompleted(f"Task {task_id} already completed today") from e

        self.logger.info(
            "Task completed",
            extra={
                "user_id": user_id,
                "task_id": task_id,
                "reward": str(completion.reward_amount),
            },
        )
        return completion

    async def _complete(
        self, tx: LedgerTransaction, user_id: int, task_id: str, today: date
    ) -> TaskCompletion:
        user = await tx.require_user(user_id)
        if not user.is_active:
            raise OperationError(f"User {user_id} is {user.status}")

        if await tx.task_completions.has_completed(user_id, task_id, today):
            raise AlreadyCompleted(f"Task {task_id} already completed today")

        tier = await tx.tiers.get_by_rank(user.vip_rank)
        if tier:
            limit, reward = tier.daily_task_limit, tier.task_reward
        else:
            limit, reward = settings.free_daily_task_limit, Decimal("0")

        await tx.users.reset_daily_counters(user_id, today)
        if not await tx.users.take_daily_slot(user_id, "daily_task_count", limit):
            user = await tx.get_user_for_update(user_id)
            raise DailyLimitReached(limit, user.daily_task_count)

        completion = await tx.task_completions.create(
            user_id=user_id,
            task_id=task_id,
            reward_amount=reward,
            completed_on=today,
        )
        # Free tasks without a tier count toward the limit but pay nothing
        if reward > 0:
            await tx.update_balances(
                user_id,
                BalanceDelta(income=reward, total_earnings=reward),
                FinancialRecordType.TASK_REWARD,
                reference_id=f"task:{completion.id}",
                reference_type="task",
                description=f"Task {task_id}",
            )
        return completion
