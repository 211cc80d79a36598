"""
Video service.

Rewarded video watches. The watcher is credited first in their own
transaction; referral commission is settled afterwards and can never
fail the watch.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from earnhub.config.settings import settings
from earnhub.models.activity import VideoWatch
from earnhub.models.commission import CommissionRecord
from earnhub.models.enums import FinancialRecordType, SettlementEventType
from earnhub.models.user import User
from earnhub.services.base_service import BaseService
from earnhub.services.ledger.store import (
    BalanceDelta,
    LedgerStore,
    LedgerTransaction,
)
from earnhub.services.referral.settlement import CommissionSettlementService
from earnhub.utils.datetime_utils import utc_today
from earnhub.utils.exceptions import (
    AlreadyCompleted,
    DailyLimitReached,
    EarnhubError,
    InvalidAmount,
    OperationError,
)
from earnhub.utils.money import to_decimal


@dataclass
class WatchResult:
    """Credited watch and the commissions it produced."""

    watch: VideoWatch
    commissions: list[CommissionRecord] = field(default_factory=list)


async def daily_video_limit(
    tx: LedgerTransaction, user: User, today: date
) -> int:
    """
    Videos per day for a user.

    Trial limit while the trial lasts, else the tier's limit, else 0.
    """
    if user.is_on_trial(today):
        return settings.trial_daily_video_limit
    tier = await tx.tiers.get_by_rank(user.vip_rank)
    return tier.daily_video_limit if tier else 0


class VideoService(BaseService):
    """Video watch rewards."""

    def __init__(
        self,
        ledger: LedgerStore,
        settlement: CommissionSettlementService | None = None,
    ) -> None:
        """
        Initialize video service.

        Args:
            ledger: Ledger store
            settlement: Commission settlement service
        """
        super().__init__(ledger)
        self.settlement = settlement or CommissionSettlementService(ledger)

    async def watch_video(
        self, user_id: int, video_id: str, reward_amount: Decimal
    ) -> WatchResult:
        """
        Reward a video watch and settle commission to the ancestors.

        Args:
            user_id: Watching user
            video_id: Video identifier
            reward_amount: Reward credited to the watcher

        Returns:
            WatchResult

        Raises:
            InvalidAmount: Non-positive reward
            OperationError: User is not active
            AlreadyCompleted: Video already rewarded today
            DailyLimitReached: No video allowance left today
        """
        reward_amount = to_decimal(reward_amount)
        if reward_amount <= 0:
            raise InvalidAmount("Video reward must be positive")

        today = utc_today()

        async def _credit(tx: LedgerTransaction) -> VideoWatch:
            return await self._credit_watch(
                tx, user_id, video_id, reward_amount, today
            )

        try:
            watch = await self.run(_credit)
        except IntegrityError as e:
            raise AlreadyCompleted(
                f"Video {video_id} already watched today"
            ) from e

        self.logger.info(
            "Video reward credited",
            extra={
                "user_id": user_id,
                "video_id": video_id,
                "watch_id": watch.id,
                "amount": str(reward_amount),
            },
        )

        result = WatchResult(watch=watch)
        try:
            result.commissions = await self.settlement.settle_earning(
                user_id, reward_amount, SettlementEventType.VIDEO, watch.event_id
            )
        except EarnhubError as e:
            self.logger.opt(exception=e).error(
                "Video commission settlement failed, manual reconciliation required",
                extra={"user_id": user_id, "event_id": watch.event_id},
            )
        return result

    async def _credit_watch(
        self,
        tx: LedgerTransaction,
        user_id: int,
        video_id: str,
        reward_amount: Decimal,
        today: date,
    ) -> VideoWatch:
        user = await tx.require_user(user_id)
        if not user.is_active:
            raise OperationError(f"User {user_id} is {user.status}")

        if await tx.video_watches.has_watched(user_id, video_id, today):
            raise AlreadyCompleted(f"Video {video_id} already watched today")

        await tx.users.reset_daily_counters(user_id, today)
        limit = await daily_video_limit(tx, user, today)
        if not await tx.users.take_daily_slot(
            user_id, "daily_video_count", limit
        ):
            user = await tx.get_user_for_update(user_id)
            raise DailyLimitReached(limit, user.daily_video_count)

        watch = await tx.video_watches.create(
            user_id=user_id,
            video_id=video_id,
            reward_amount=reward_amount,
            watched_on=today,
        )
        await tx.update_balances(
            user_id,
            BalanceDelta(income=reward_amount, total_earnings=reward_amount),
            FinancialRecordType.VIDEO_REWARD,
            reference_id=watch.event_id,
            reference_type="video",
            description=f"Video {video_id}",
        )
        return watch
